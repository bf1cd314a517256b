"""Dependency ordering for diffed tables."""
from typing import Dict, Iterable, List, Sequence, Set

from schoolsync.sync.errors import DependencyCycleError


def sort_by_dependencies(
    nodes: Sequence[str], edges: Dict[str, Iterable[str]]
) -> List[str]:
    """
    Topologically order ``nodes`` so every table follows its dependencies.

    Depth-first, in input order. Dependencies that are not themselves in
    ``nodes`` are ignored: only tables present in the diff constrain the
    order.

    Args:
        nodes: Table names to order.
        edges: Table name -> names of tables that must come first.

    Returns:
        The ordered table names.

    Raises:
        DependencyCycleError: if the restricted graph contains a cycle.
    """
    present = set(nodes)
    ordered: List[str] = []
    visited: Set[str] = set()
    visiting: Set[str] = set()

    def visit(name: str) -> None:
        if name in visited:
            return
        if name in visiting:
            raise DependencyCycleError(name)
        visiting.add(name)
        for dep in edges.get(name, ()):
            if dep in present:
                visit(dep)
        visiting.discard(name)
        visited.add(name)
        ordered.append(name)

    for name in nodes:
        visit(name)
    return ordered
