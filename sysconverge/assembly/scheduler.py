"""
Stage scheduling.

Orders a dependency graph into an execution sequence: every main-stage
resource first, then every last-stage resource. Within a stage, Kahn's
algorithm with insertion order as the tie-break keeps the output identical
across runs with identical input.
"""

import heapq
import logging

from ..errors import CycleError
from ..models import Stage
from ..resources.base import Resource
from .graph import DependencyGraph

logger = logging.getLogger(__name__)


class StageScheduler:
    """Deterministic two-partition topological sort."""

    def schedule_stages(self, graph: DependencyGraph) -> dict[Stage, list[Resource]]:
        """Ordered resources for each stage, stages in execution order."""
        return {stage: self._order_stage(graph, stage) for stage in Stage}

    def schedule(self, graph: DependencyGraph) -> list[Resource]:
        """Flat execution order; all of one stage precedes the next."""
        ordered: list[Resource] = []
        for resources in self.schedule_stages(graph).values():
            ordered.extend(resources)
        logger.debug(f"Schedule: {[r.id for r in ordered]}")
        return ordered

    def _order_stage(self, graph: DependencyGraph, stage: Stage) -> list[Resource]:
        members = [rid for rid in graph if graph.resource(rid).stage == stage]
        member_set = set(members)

        # Edges into earlier stages are already satisfied by the barrier.
        in_degree = {
            rid: sum(1 for dep in graph.dependencies(rid) if dep in member_set)
            for rid in members
        }
        ready = [(graph.position(rid), rid) for rid in members if in_degree[rid] == 0]
        heapq.heapify(ready)

        ordered: list[Resource] = []
        while ready:
            _, rid = heapq.heappop(ready)
            ordered.append(graph.resource(rid))
            for dependent in graph.dependents(rid):
                if dependent not in member_set:
                    continue
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, (graph.position(dependent), dependent))

        if len(ordered) != len(members):
            stuck = [rid for rid in members if in_degree[rid] > 0]
            raise CycleError(stuck + stuck[:1])
        return ordered
