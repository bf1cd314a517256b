"""Tests for table handler dispatch."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from schoolsync.sync.handlers import CallableHandler, HandlerRegistry


class TestCallableHandler:
    def test_applies_only_to_its_table(self):
        handler = CallableHandler("fees", MagicMock())
        assert handler.applies("fees")
        assert not handler.applies("classes")

    @pytest.mark.asyncio
    async def test_sync_function(self):
        func = MagicMock()
        await CallableHandler("fees", func).update({"total_collected": 1.0})
        func.assert_called_once_with({"total_collected": 1.0})

    @pytest.mark.asyncio
    async def test_async_function_awaited(self):
        func = AsyncMock()
        await CallableHandler("fees", func).update({"total_collected": 1.0})
        func.assert_awaited_once_with({"total_collected": 1.0})

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        func = AsyncMock(side_effect=RuntimeError("db down"))
        with pytest.raises(RuntimeError, match="db down"):
            await CallableHandler("fees", func).update({})


class TestHandlerRegistry:
    def test_get_returns_matching_handler(self):
        fees = CallableHandler("fees", MagicMock())
        classes = CallableHandler("classes", MagicMock())
        registry = HandlerRegistry([fees, classes])
        assert registry.get("classes") is classes

    def test_get_unknown_returns_none(self):
        assert HandlerRegistry().get("fees") is None

    def test_first_registered_wins(self):
        first = CallableHandler("fees", MagicMock())
        second = CallableHandler("fees", MagicMock())
        registry = HandlerRegistry([first])
        registry.register(second)
        assert registry.get("fees") is first
        assert len(registry) == 2
