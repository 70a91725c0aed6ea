"""
Convergence executor.

Walks an ordered resource list stage by stage. Each resource is inspected,
skipped when already converged, and otherwise applied through the adapter.
A failed resource blocks everything that depends on it, directly or not;
independent branches keep converging.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import TYPE_CHECKING

from ..errors import AdapterError, AggregationError, ContentError
from ..models import (
    DesiredState,
    PlanAction,
    PlanEntry,
    ResourceResult,
    ResourceStatus,
    RunReport,
    Stage,
)

if TYPE_CHECKING:
    from ..adapters.base import OsAdapter
    from ..resources.base import Resource

logger = logging.getLogger(__name__)

# Errors local to one resource. Anything else is a bug and propagates.
RESOURCE_ERRORS = (AdapterError, AggregationError, ContentError)

StageHook = Callable[[Stage], None]


class ConvergenceExecutor:
    """Apply resources in order and report every terminal status.

    Args:
        on_stage_complete: Called with each stage once all of its resources
            are terminal, before the next stage starts
    """

    def __init__(self, on_stage_complete: StageHook | None = None):
        self.on_stage_complete = on_stage_complete

    def apply(self, ordered: Sequence["Resource"], adapter: "OsAdapter") -> RunReport:
        """Converge resources in order.

        Args:
            ordered: Resources as produced by the stage scheduler
            adapter: OS primitives

        Returns:
            RunReport with one terminal result per resource
        """
        report = RunReport()
        results: dict[str, ResourceResult] = {}

        for stage, resources in self._by_stage(ordered):
            logger.info(f"Stage {stage.value}: {len(resources)} resources")
            for resource in resources:
                result = self._apply_one(resource, adapter, results)
                results[resource.id] = result
                report.results.append(result)
            self._stage_complete(stage)

        report.completed_at = datetime.now()
        counts = report.counts()
        logger.info(
            "Convergence complete: "
            + ", ".join(f"{count} {status}" for status, count in counts.items())
        )
        return report

    def plan(self, ordered: Sequence["Resource"], adapter: "OsAdapter") -> list[PlanEntry]:
        """Inspect every resource and report what apply() would change.

        Nothing is mutated. Inspection failures are reported as unknown.
        """
        entries: list[PlanEntry] = []
        for stage, resources in self._by_stage(ordered):
            for resource in resources:
                entries.append(self._plan_one(resource, adapter))
            self._stage_complete(stage)
        return entries

    def _by_stage(self, ordered: Sequence["Resource"]):
        # Stage barrier: an interleaved input still runs main entirely first.
        for stage in Stage:
            yield stage, [r for r in ordered if r.stage == stage]

    def _stage_complete(self, stage: Stage) -> None:
        logger.debug(f"Stage {stage.value} complete")
        if self.on_stage_complete is not None:
            self.on_stage_complete(stage)

    def _apply_one(
        self,
        resource: "Resource",
        adapter: "OsAdapter",
        results: dict[str, ResourceResult],
    ) -> ResourceResult:
        result = ResourceResult(
            resource_id=resource.id,
            kind=resource.kind,
            stage=resource.stage,
            desired_state=resource.desired_state,
        )

        blockers = [
            results[dep] for dep in resource.depends_on
            if dep in results and results[dep].status.is_error
        ]
        if blockers:
            first = blockers[0]
            result.status = ResourceStatus.BLOCKED
            result.reason = f"dependency {first.resource_id} {first.status.value}"
            result.reason_chain = [result.reason, *first.reason_chain]
            logger.warning(f"Blocked {resource.id}: {result.reason}")
            return result

        try:
            resource.resolve()
            result.desired_state = resource.desired_state
            current = resource.inspect(adapter)
            if resource.is_converged(current):
                result.status = ResourceStatus.SKIPPED
                logger.debug(f"Skipped {resource.id}: already {resource.desired_state.value}")
                return result

            logger.info(f"Applying {resource.describe()} -> {resource.desired_state.value}")
            resource.converge(adapter)
            result.status = ResourceStatus.APPLIED
        except RESOURCE_ERRORS as e:
            result.status = ResourceStatus.FAILED
            result.reason = f"{type(e).__name__}: {e}"
            result.reason_chain = [f"{resource.id} failed: {e}"]
            logger.error(f"Failed {resource.id}: {e}")
        return result

    def _plan_one(self, resource: "Resource", adapter: "OsAdapter") -> PlanEntry:
        entry = PlanEntry(
            resource_id=resource.id,
            kind=resource.kind,
            stage=resource.stage,
            action=PlanAction.NO_CHANGE,
            detail=resource.describe(),
        )
        try:
            resource.resolve()
            current = resource.inspect(adapter)
            if resource.is_converged(current):
                return entry
        except RESOURCE_ERRORS as e:
            entry.action = PlanAction.UNKNOWN
            entry.detail = f"{resource.describe()}: {e}"
            return entry

        if resource.desired_state == DesiredState.ABSENT:
            entry.action = PlanAction.REMOVE
        elif getattr(current, "exists", bool(current)):
            entry.action = PlanAction.UPDATE
        else:
            entry.action = PlanAction.CREATE
        return entry
