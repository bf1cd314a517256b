"""
Table update handlers.

The engine never writes to storage itself: each table name is served by a
handler registered at construction. A handler is any object with
``applies(table) -> bool`` and ``async update(columns)``.
"""
import inspect
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol


class TableHandler(Protocol):
    def applies(self, table: str) -> bool:
        ...

    async def update(self, columns: Dict[str, Any]) -> None:
        ...


class CallableHandler:
    """Serve one table with a plain function or coroutine function."""

    def __init__(self, table: str, func: Callable[[Dict[str, Any]], Any]):
        self.table = table
        self.func = func

    def applies(self, table: str) -> bool:
        return table == self.table

    async def update(self, columns: Dict[str, Any]) -> None:
        result = self.func(columns)
        if inspect.isawaitable(result):
            await result

    def __repr__(self) -> str:
        return f"CallableHandler({self.table!r})"


class HandlerRegistry:
    """Resolves a table name to the first registered handler that applies."""

    def __init__(self, handlers: Iterable[TableHandler] = ()) -> None:
        self._handlers: List[TableHandler] = list(handlers)

    def register(self, handler: TableHandler) -> None:
        self._handlers.append(handler)

    def get(self, table: str) -> Optional[TableHandler]:
        for handler in self._handlers:
            if handler.applies(table):
                return handler
        return None

    def __len__(self) -> int:
        return len(self._handlers)
