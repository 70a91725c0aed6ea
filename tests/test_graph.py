"""Tests for dependency graph construction and stage scheduling."""

import pytest

from sysconverge.assembly import GraphBuilder, StageScheduler
from sysconverge.errors import (
    CycleError,
    DuplicateIdError,
    MissingDependencyError,
    StageOrderError,
)
from sysconverge.models import Stage
from sysconverge.resources import PackageSetResource


def pkg(rid, *deps, stage=Stage.MAIN):
    return PackageSetResource(id=rid, packages=[f"pkg-{rid}"], depends_on=list(deps), stage=stage)


def ids(resources):
    return [r.id for r in resources]


def test_cycle_rejected():
    """A -> B -> C -> A is rejected with the cycle named."""
    resources = [pkg("a", "c"), pkg("b", "a"), pkg("c", "b")]

    with pytest.raises(CycleError) as exc_info:
        GraphBuilder().build(resources)

    cycle = exc_info.value.cycle
    assert cycle[0] == cycle[-1]
    assert set(cycle) == {"a", "b", "c"}
    assert "a" in str(exc_info.value)


def test_self_cycle_via_require_rejected():
    resource = pkg("a")
    with pytest.raises(ValueError):
        resource.require("a")


def test_missing_dependency_rejected():
    with pytest.raises(MissingDependencyError):
        GraphBuilder().build([pkg("a", "ghost")])


def test_duplicate_ids_rejected():
    with pytest.raises(DuplicateIdError):
        GraphBuilder().build([pkg("a"), pkg("a")])


def test_main_resource_cannot_depend_on_last_resource():
    resources = [pkg("late", stage=Stage.LAST), pkg("early", "late")]
    with pytest.raises(StageOrderError):
        GraphBuilder().build(resources)


def test_last_resource_may_depend_on_main_resource():
    resources = [pkg("late", "early", stage=Stage.LAST), pkg("early")]
    graph = GraphBuilder().build(resources)
    assert graph.dependencies("late") == ["early"]
    assert graph.dependents("early") == ["late"]


def test_transitive_dependents():
    graph = GraphBuilder().build([pkg("a"), pkg("b", "a"), pkg("c", "b"), pkg("d")])
    assert graph.transitive_dependents("a") == ["b", "c"]
    assert graph.transitive_dependents("d") == []


def test_schedule_respects_dependencies():
    """Dependencies come first even when declared later."""
    resources = [pkg("profile", "home"), pkg("home", "user"), pkg("user")]
    ordered = StageScheduler().schedule(GraphBuilder().build(resources))
    assert ids(ordered) == ["user", "home", "profile"]


def test_schedule_uses_insertion_order_for_ties():
    """Independent resources keep declaration order."""
    resources = [pkg("c"), pkg("a"), pkg("b"), pkg("d", "b")]
    ordered = StageScheduler().schedule(GraphBuilder().build(resources))
    assert ids(ordered) == ["c", "a", "b", "d"]


def test_schedule_puts_last_stage_after_main():
    """Last-stage resources follow every main resource regardless of position."""
    resources = [
        pkg("aliases", stage=Stage.LAST),
        pkg("x"),
        pkg("notify", "aliases", stage=Stage.LAST),
        pkg("y", "x"),
    ]
    scheduler = StageScheduler()
    graph = GraphBuilder().build(resources)

    assert ids(scheduler.schedule(graph)) == ["x", "y", "aliases", "notify"]
    stages = scheduler.schedule_stages(graph)
    assert ids(stages[Stage.MAIN]) == ["x", "y"]
    assert ids(stages[Stage.LAST]) == ["aliases", "notify"]


def test_schedule_is_deterministic():
    """Identical input yields identical ordering across runs."""

    def build():
        return [
            pkg("k"), pkg("b", "k"), pkg("z"), pkg("m", "z", "b"),
            pkg("last", "m", stage=Stage.LAST), pkg("a"),
        ]

    first = ids(StageScheduler().schedule(GraphBuilder().build(build())))
    second = ids(StageScheduler().schedule(GraphBuilder().build(build())))
    assert first == second
    assert first == ["k", "b", "z", "m", "a", "last"]


def test_declaration_order_does_not_imply_edges():
    """Without explicit edges, nothing depends on anything."""
    graph = GraphBuilder().build([pkg("a"), pkg("b")])
    assert graph.dependencies("b") == []
    assert graph.dependents("a") == []


def test_deep_chain_declared_dependents_first():
    """A long valid chain builds without hitting the recursion limit."""
    resources = [pkg(f"p{i}", f"p{i + 1}") for i in range(1500)] + [pkg("p1500")]

    graph = GraphBuilder().build(resources)
    ordered = StageScheduler().schedule(graph)

    assert ids(ordered)[0] == "p1500"
    assert ids(ordered)[-1] == "p0"
    assert len(graph.transitive_dependents("p1500")) == 1500


def test_cycle_at_end_of_deep_chain_is_named():
    resources = [pkg(f"p{i}", f"p{i + 1}") for i in range(1500)] + [pkg("p1500", "p1499")]

    with pytest.raises(CycleError) as exc_info:
        GraphBuilder().build(resources)

    assert exc_info.value.cycle == ["p1499", "p1500", "p1499"]
