"""
Dependency graph of declared resources.

Each node lists the nodes it must wait for. Levels group nodes whose
dependencies are all in earlier levels, so every level can be created
concurrently once the previous ones exist.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator

from moraine.core.errors import CycleError


class DependencyGraph:
    """
    Creation dependencies between resources, keyed by URN.

    Example:
        graph = DependencyGraph.from_handles(run.resources())
        graph.levels()  # [["vercel:Project::api"], ["vercel:Project::web"]]
    """

    def __init__(self):
        self._items: dict[str, Any] = {}
        self._requires: dict[str, set[str]] = {}

    @classmethod
    def from_handles(cls, handles: Iterable[Any]) -> DependencyGraph:
        """
        Build the graph from ResourceHandles.

        Dependencies on handles outside the given set are left out; the
        engine still waits for them through their values.
        """
        handles = list(handles)
        known = {handle.urn for handle in handles}
        graph = cls()
        for handle in handles:
            graph.add(
                handle.urn,
                handle,
                requires=[dep.urn for dep in handle.dependencies() if dep.urn in known],
            )
        return graph

    def add(self, key: str, item: Any, requires: Iterable[str] = ()) -> None:
        """Add a node that must wait for the nodes in requires."""
        self._items[key] = item
        self._requires.setdefault(key, set()).update(requires)

    def item(self, key: str) -> Any:
        return self._items[key]

    def requires(self, key: str) -> set[str]:
        """Keys this node waits for."""
        return set(self._requires[key])

    def levels(self) -> list[list[str]]:
        """
        Group keys into creation levels, keeping insertion order in a level.

        Raises:
            CycleError: If some nodes wait on each other
            KeyError: If a node waits on a key that was never added
        """
        for key, requires in self._requires.items():
            for dep in requires:
                if dep not in self._items:
                    raise KeyError(f"{key} requires unknown node {dep}")

        placed: set[str] = set()
        remaining = list(self._items)
        levels = []
        while remaining:
            level = [key for key in remaining if self._requires[key] <= placed]
            if not level:
                raise CycleError(self._find_cycle(remaining, placed))
            levels.append(level)
            placed.update(level)
            remaining = [key for key in remaining if key not in placed]
        return levels

    def order(self) -> list[str]:
        """All keys in a valid creation order."""
        return [key for level in self.levels() for key in level]

    def _find_cycle(self, remaining: list[str], placed: set[str]) -> list[str]:
        # Every unplaced node waits on another unplaced node, so walking
        # unplaced requirements must revisit a node.
        path = [remaining[0]]
        while True:
            pending = sorted(self._requires[path[-1]] - placed)
            nxt = pending[0]
            if nxt in path:
                return path[path.index(nxt):] + [nxt]
            path.append(nxt)

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        edges = sum(len(requires) for requires in self._requires.values())
        return f"DependencyGraph(nodes={len(self)}, edges={edges})"
