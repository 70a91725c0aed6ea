"""
Dependency graph construction.

Turns explicit ``depends_on`` declarations into a validated DAG. Only explicit
edges exist; declaration order never implies one.
"""

import logging
from collections.abc import Iterable, Iterator

from ..errors import (
    CycleError,
    DuplicateIdError,
    MissingDependencyError,
    StageOrderError,
)
from ..resources.base import Resource

logger = logging.getLogger(__name__)

_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2


class DependencyGraph:
    """Validated DAG of resources, iterable in insertion order.

    Edges point from a resource to the resources it depends on.
    """

    def __init__(self, resources: dict[str, Resource], dependencies: dict[str, list[str]]):
        self._resources = resources
        self._dependencies = dependencies
        self._dependents: dict[str, list[str]] = {rid: [] for rid in resources}
        for rid, deps in dependencies.items():
            for dep in deps:
                self._dependents[dep].append(rid)
        self._position = {rid: index for index, rid in enumerate(resources)}

    def resource(self, resource_id: str) -> Resource:
        return self._resources[resource_id]

    def position(self, resource_id: str) -> int:
        """Insertion index, used as the scheduling tie-break."""
        return self._position[resource_id]

    def dependencies(self, resource_id: str) -> list[str]:
        return list(self._dependencies[resource_id])

    def dependents(self, resource_id: str) -> list[str]:
        return list(self._dependents[resource_id])

    def transitive_dependents(self, resource_id: str) -> list[str]:
        """Every resource reachable through dependents, in insertion order."""
        seen: set[str] = set()
        stack = [resource_id]
        while stack:
            for dependent in self._dependents[stack.pop()]:
                if dependent not in seen:
                    seen.add(dependent)
                    stack.append(dependent)
        return sorted(seen, key=self.position)

    def resources(self) -> list[Resource]:
        return list(self._resources.values())

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._resources

    def __iter__(self) -> Iterator[str]:
        return iter(self._resources)

    def __len__(self) -> int:
        return len(self._resources)


class GraphBuilder:
    """Build a DependencyGraph, rejecting anything that is not a valid DAG."""

    def build(self, resources: Iterable[Resource]) -> DependencyGraph:
        """Validate declarations and return the graph.

        Raises:
            DuplicateIdError: If two resources share an id
            MissingDependencyError: If a dependency id is not declared
            StageOrderError: If a resource depends on a later-stage resource
            CycleError: If the dependencies contain a cycle
        """
        by_id: dict[str, Resource] = {}
        for resource in resources:
            if resource.id in by_id:
                raise DuplicateIdError(f"Resource '{resource.id}' is declared twice")
            by_id[resource.id] = resource

        dependencies: dict[str, list[str]] = {}
        for rid, resource in by_id.items():
            deps: list[str] = []
            for dep in resource.depends_on:
                if dep not in by_id:
                    raise MissingDependencyError(
                        f"Resource '{rid}' depends on unknown resource '{dep}'"
                    )
                if by_id[dep].stage.rank > resource.stage.rank:
                    raise StageOrderError(
                        f"Resource '{rid}' ({resource.stage.value} stage) cannot depend on "
                        f"'{dep}' ({by_id[dep].stage.value} stage)"
                    )
                if dep not in deps:
                    deps.append(dep)
            dependencies[rid] = deps

        self._detect_cycles(by_id, dependencies)
        logger.debug(f"Dependency graph built: {len(by_id)} resources, no cycles")
        return DependencyGraph(by_id, dependencies)

    def _detect_cycles(
        self, by_id: dict[str, Resource], dependencies: dict[str, list[str]]
    ) -> None:
        color = {rid: _UNVISITED for rid in by_id}

        for root in by_id:
            if color[root] != _UNVISITED:
                continue
            # path[i] is the resource whose dependencies stack[i] iterates.
            path = [root]
            stack = [iter(dependencies[root])]
            color[root] = _IN_PROGRESS
            while stack:
                dep = next(stack[-1], None)
                if dep is None:
                    color[path.pop()] = _DONE
                    stack.pop()
                elif color[dep] == _IN_PROGRESS:
                    raise CycleError(path[path.index(dep):] + [dep])
                elif color[dep] == _UNVISITED:
                    color[dep] = _IN_PROGRESS
                    path.append(dep)
                    stack.append(iter(dependencies[dep]))
