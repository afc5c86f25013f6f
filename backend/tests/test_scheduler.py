"""
Tests for the scheduler: forward pass, critical path, milestones,
cascade previews and warnings.
"""

from datetime import date, datetime

import pytest

from cornerstone.enums import DependencyType, WarningKind, WorkItemStatus
from cornerstone.exceptions import CycleError, UnknownNodeError, ValidationError
from cornerstone.services.scheduler import compute_schedule, expand_milestone_requirements
from cornerstone.services.snapshot import (
    DependencySnapshot,
    MilestoneRequirement,
    MilestoneSnapshot,
    ScheduleSnapshot,
    WorkItemSnapshot,
)

TODAY = date(2026, 1, 1)
FS = DependencyType.FINISH_TO_START


def chain_snapshot(**overrides) -> ScheduleSnapshot:
    """
    a (Jan 1-10) -> b (5d) -> c (2d), plus an independent short item d.

    Resolved: b Jan 10-15, c Jan 15-17, d Jan 1-4; project end Jan 17.
    """
    data = {
        "work_items": (
            WorkItemSnapshot(id="a", start_date=date(2026, 1, 1), duration_days=9),
            WorkItemSnapshot(id="b", duration_days=5),
            WorkItemSnapshot(id="c", duration_days=2),
            WorkItemSnapshot(id="d", start_date=date(2026, 1, 1), duration_days=3),
        ),
        "dependencies": (
            DependencySnapshot("a", "b", FS, 0),
            DependencySnapshot("b", "c", FS, 0),
        ),
    }
    data.update(overrides)
    return ScheduleSnapshot(**data)


class TestForwardPass:

    def test_chain_dates(self):
        result = compute_schedule(chain_snapshot(), today=TODAY)

        b = result.resolved["b"]
        c = result.resolved["c"]
        assert (b.start_date, b.end_date, b.duration_days) == (date(2026, 1, 10), date(2026, 1, 15), 5)
        assert (c.start_date, c.end_date) == (date(2026, 1, 15), date(2026, 1, 17))
        assert result.project_end_date == date(2026, 1, 17)
        assert result.order == ["a", "b", "c", "d"]

    def test_lead_and_lag(self):
        snapshot = chain_snapshot(dependencies=(
            DependencySnapshot("a", "b", FS, 3),
            DependencySnapshot("b", "c", FS, -2),
        ))

        result = compute_schedule(snapshot, today=TODAY)

        assert result.resolved["b"].start_date == date(2026, 1, 13)
        assert result.resolved["c"].start_date == date(2026, 1, 16)

    def test_most_restrictive_predecessor_wins(self):
        snapshot = chain_snapshot(dependencies=(
            DependencySnapshot("a", "c", FS, 0),
            DependencySnapshot("d", "c", DependencyType.START_TO_START, 20),
        ))

        result = compute_schedule(snapshot, today=TODAY)

        assert result.resolved["c"].start_date == date(2026, 1, 21)

    def test_finish_to_finish_aligns_ends(self):
        snapshot = ScheduleSnapshot(
            work_items=(
                WorkItemSnapshot(id="a", start_date=date(2026, 1, 1), duration_days=4),
                WorkItemSnapshot(id="b", duration_days=2),
            ),
            dependencies=(DependencySnapshot("a", "b", DependencyType.FINISH_TO_FINISH, 0),),
        )

        result = compute_schedule(snapshot, today=TODAY)

        assert result.resolved["b"].start_date == date(2026, 1, 3)
        assert result.resolved["b"].end_date == date(2026, 1, 5)
        assert result.critical_path_ids == {"a", "b"}

    def test_unscheduled_item_is_kept_with_null_dates(self):
        snapshot = ScheduleSnapshot(
            work_items=(
                WorkItemSnapshot(id="a", start_date=date(2026, 1, 1), duration_days=2),
                WorkItemSnapshot(id="u"),
                WorkItemSnapshot(id="z", duration_days=1),
            ),
            dependencies=(
                DependencySnapshot("a", "z", FS, 0),
                DependencySnapshot("u", "z", FS, 0),
            ),
        )

        result = compute_schedule(snapshot, today=TODAY)

        u = result.resolved["u"]
        assert u.start_date is None and u.end_date is None
        assert u.is_critical is False
        assert "u" not in result.critical_path_ids
        assert result.resolved["z"].start_date == date(2026, 1, 3)

    def test_duration_only_items_start_today(self):
        snapshot = ScheduleSnapshot(work_items=(WorkItemSnapshot(id="a", duration_days=3),))

        result = compute_schedule(snapshot, today=date(2026, 6, 1))

        assert result.resolved["a"].start_date == date(2026, 6, 1)
        assert result.resolved["a"].changed is True

    def test_unchanged_item_is_not_reported_as_changed(self):
        snapshot = ScheduleSnapshot(work_items=(
            WorkItemSnapshot(
                id="a",
                start_date=date(2026, 1, 1),
                end_date=date(2026, 1, 4),
                duration_days=3,
            ),
        ))

        result = compute_schedule(snapshot, today=TODAY)

        assert result.resolved["a"].changed is False


class TestCriticalPath:

    def test_longest_chain_is_critical(self):
        result = compute_schedule(chain_snapshot(), today=TODAY)

        assert result.critical_path == ["a", "b", "c"]
        assert result.critical_path_ids == frozenset({"a", "b", "c"})
        assert result.resolved["d"].is_critical is False

    def test_float_values(self):
        result = compute_schedule(chain_snapshot(), today=TODAY)

        d = result.resolved["d"]
        assert d.latest_finish_date == date(2026, 1, 17)
        assert d.latest_start_date == date(2026, 1, 14)
        assert d.total_float == 13
        assert result.resolved["b"].total_float == 0

    def test_parallel_equal_paths_are_all_critical(self):
        snapshot = ScheduleSnapshot(
            work_items=(
                WorkItemSnapshot(id="start", start_date=date(2026, 1, 1), duration_days=1),
                WorkItemSnapshot(id="left", duration_days=4),
                WorkItemSnapshot(id="right", duration_days=4),
                WorkItemSnapshot(id="end", duration_days=1),
            ),
            dependencies=(
                DependencySnapshot("start", "left"),
                DependencySnapshot("start", "right"),
                DependencySnapshot("left", "end"),
                DependencySnapshot("right", "end"),
            ),
        )

        result = compute_schedule(snapshot, today=TODAY)

        assert result.critical_path_ids == {"start", "left", "right", "end"}

    def test_start_to_start_predecessor_cannot_outlast_the_project(self):
        snapshot = ScheduleSnapshot(
            work_items=(
                WorkItemSnapshot(id="a", start_date=date(2026, 1, 1), duration_days=10),
                WorkItemSnapshot(id="b", duration_days=3),
            ),
            dependencies=(DependencySnapshot("a", "b", DependencyType.START_TO_START, 2),),
        )

        result = compute_schedule(snapshot, today=TODAY)

        assert result.project_end_date == date(2026, 1, 11)
        assert result.resolved["a"].is_critical is True
        assert result.resolved["b"].total_float == 5

    def test_recomputing_is_deterministic(self):
        snapshot = chain_snapshot()

        first = compute_schedule(snapshot, today=TODAY)
        second = compute_schedule(snapshot, today=TODAY)

        assert first.resolved == second.resolved
        assert first.critical_path_ids == second.critical_path_ids
        assert first.warnings == second.warnings


class TestCycles:

    def test_cycle_aborts_the_run(self):
        snapshot = chain_snapshot(dependencies=(
            DependencySnapshot("a", "b"),
            DependencySnapshot("b", "c"),
            DependencySnapshot("c", "a"),
        ))

        with pytest.raises(CycleError) as exc_info:
            compute_schedule(snapshot, today=TODAY)

        assert exc_info.value.involved_node_ids == ["a", "b", "c"]

    def test_unknown_dependency_endpoint(self):
        snapshot = chain_snapshot(dependencies=(DependencySnapshot("a", "nope"),))

        with pytest.raises(UnknownNodeError):
            compute_schedule(snapshot, today=TODAY)

    def test_duplicate_work_item_ids(self):
        snapshot = ScheduleSnapshot(work_items=(
            WorkItemSnapshot(id="a", duration_days=1),
            WorkItemSnapshot(id="a", duration_days=2),
        ))

        with pytest.raises(ValidationError):
            compute_schedule(snapshot, today=TODAY)


class TestMilestones:

    def milestone_snapshot(self, **milestone_fields) -> ScheduleSnapshot:
        milestone = MilestoneSnapshot(
            id=1,
            title="Rough-in inspection",
            target_date=date(2026, 2, 1),
            work_item_ids=frozenset({"a"}),
            **milestone_fields,
        )
        return ScheduleSnapshot(
            work_items=(
                WorkItemSnapshot(id="a", start_date=date(2026, 1, 1), duration_days=9),
                WorkItemSnapshot(id="x", duration_days=2),
            ),
            milestones=(milestone,),
            milestone_requirements=(MilestoneRequirement("x", 1),),
        )

    def test_required_milestone_gates_on_target(self):
        result = compute_schedule(self.milestone_snapshot(), today=TODAY)

        assert result.resolved["x"].start_date == date(2026, 2, 1)
        assert result.resolved["x"].end_date == date(2026, 2, 3)

    def test_late_completion_gates_on_completion(self):
        snapshot = self.milestone_snapshot(is_completed=True, completed_at=datetime(2026, 2, 5, 9, 0))

        result = compute_schedule(snapshot, today=TODAY)

        assert result.resolved["x"].start_date == date(2026, 2, 5)

    def test_contributors_become_predecessors(self):
        snapshot = self.milestone_snapshot()
        late_contributor = WorkItemSnapshot(id="a", start_date=date(2026, 2, 1), duration_days=9)
        snapshot = ScheduleSnapshot(
            work_items=(late_contributor, snapshot.work_items[1]),
            milestones=snapshot.milestones,
            milestone_requirements=snapshot.milestone_requirements,
        )

        result = compute_schedule(snapshot, today=TODAY)

        assert result.resolved["x"].start_date == date(2026, 2, 10)
        assert result.critical_path == ["a", "x"]

    def test_required_ids_on_the_item_are_honoured(self):
        snapshot = self.milestone_snapshot()
        snapshot = ScheduleSnapshot(
            work_items=(
                snapshot.work_items[0],
                WorkItemSnapshot(id="x", duration_days=2, required_milestone_ids=frozenset({1})),
            ),
            milestones=snapshot.milestones,
        )

        result = compute_schedule(snapshot, today=TODAY)

        assert result.resolved["x"].start_date == date(2026, 2, 1)

    def test_expansion_builds_finish_to_start_edges(self):
        edges = expand_milestone_requirements(self.milestone_snapshot())

        assert edges == [DependencySnapshot("a", "x", FS, 0)]

    def test_unknown_milestone_is_a_validation_error(self):
        snapshot = ScheduleSnapshot(
            work_items=(WorkItemSnapshot(id="x", duration_days=1),),
            milestone_requirements=(MilestoneRequirement("x", 99),),
        )

        with pytest.raises(ValidationError):
            compute_schedule(snapshot, today=TODAY)

    def test_requirement_for_unknown_work_item(self):
        snapshot = ScheduleSnapshot(
            work_items=(WorkItemSnapshot(id="x", duration_days=1),),
            milestones=(MilestoneSnapshot(id=1, target_date=date(2026, 2, 1)),),
            milestone_requirements=(MilestoneRequirement("ghost", 1),),
        )

        with pytest.raises(UnknownNodeError):
            compute_schedule(snapshot, today=TODAY)


class TestCascade:

    def test_only_anchor_and_descendants_are_returned(self):
        result = compute_schedule(chain_snapshot(), today=TODAY, anchor_id="b")

        assert list(result.resolved) == ["b", "c"]
        assert result.critical_path == ["b", "c"]
        # Upstream dates still shape the downstream result
        assert result.resolved["b"].start_date == date(2026, 1, 10)

    def test_unknown_anchor(self):
        with pytest.raises(UnknownNodeError):
            compute_schedule(chain_snapshot(), today=TODAY, anchor_id="missing")


class TestWarnings:

    def kinds(self, result, work_item_id):
        return {w.kind for w in result.warnings if w.work_item_id == work_item_id}

    def test_start_before_violation(self):
        snapshot = chain_snapshot(work_items=(
            WorkItemSnapshot(id="a", start_date=date(2026, 1, 1), duration_days=9),
            WorkItemSnapshot(id="b", duration_days=5, start_before=date(2026, 1, 5)),
            WorkItemSnapshot(id="c", duration_days=2),
            WorkItemSnapshot(id="d", start_date=date(2026, 1, 1), duration_days=3),
        ))

        result = compute_schedule(snapshot, today=TODAY)

        assert self.kinds(result, "b") == {WarningKind.START_BEFORE_VIOLATED}
        # Advisory only: the item is still scheduled after its predecessor
        assert result.resolved["b"].start_date == date(2026, 1, 10)

    def test_no_duration(self):
        snapshot = ScheduleSnapshot(work_items=(WorkItemSnapshot(id="a", start_date=date(2026, 1, 1)),))

        result = compute_schedule(snapshot, today=TODAY)

        assert self.kinds(result, "a") == {WarningKind.NO_DURATION}

    def test_completed_item_keeps_its_dates(self):
        snapshot = chain_snapshot(work_items=(
            WorkItemSnapshot(id="a", start_date=date(2026, 1, 1), duration_days=9),
            WorkItemSnapshot(
                id="b",
                status=WorkItemStatus.COMPLETED,
                start_date=date(2026, 1, 5),
                end_date=date(2026, 1, 8),
                duration_days=3,
            ),
            WorkItemSnapshot(id="c", duration_days=2),
            WorkItemSnapshot(id="d", start_date=date(2026, 1, 1), duration_days=3),
        ))

        result = compute_schedule(snapshot, today=TODAY)

        b = result.resolved["b"]
        assert self.kinds(result, "b") == {WarningKind.ALREADY_COMPLETED}
        assert (b.start_date, b.end_date) == (date(2026, 1, 5), date(2026, 1, 8))
        assert b.changed is False
        assert result.resolved["c"].start_date == date(2026, 1, 8)

    def test_clean_schedule_has_no_warnings(self):
        result = compute_schedule(chain_snapshot(), today=TODAY)

        assert result.warnings == []


class TestTodayFloor:

    def test_stale_not_started_work_moves_to_today(self):
        snapshot = ScheduleSnapshot(
            work_items=(
                WorkItemSnapshot(id="a", start_date=date(2026, 1, 1), end_date=date(2026, 1, 2), duration_days=1),
                WorkItemSnapshot(id="b", start_date=date(2026, 1, 2), end_date=date(2026, 1, 4), duration_days=2),
            ),
            dependencies=(DependencySnapshot("a", "b", FS, 0),),
        )

        result = compute_schedule(snapshot, today=date(2026, 3, 1))

        a, b = result.resolved["a"], result.resolved["b"]
        assert (a.start_date, a.end_date) == (date(2026, 3, 1), date(2026, 3, 2))
        assert (b.start_date, b.end_date) == (date(2026, 3, 2), date(2026, 3, 4))
        assert a.changed and b.changed

    def test_started_and_completed_work_stays_put(self):
        snapshot = ScheduleSnapshot(work_items=(
            WorkItemSnapshot(
                id="a",
                status=WorkItemStatus.IN_PROGRESS,
                start_date=date(2026, 1, 1),
                end_date=date(2026, 1, 6),
                duration_days=5,
            ),
            WorkItemSnapshot(
                id="b",
                status=WorkItemStatus.COMPLETED,
                start_date=date(2026, 1, 1),
                end_date=date(2026, 1, 3),
                duration_days=2,
            ),
        ))

        result = compute_schedule(snapshot, today=date(2026, 3, 1))

        assert result.resolved["a"].changed is False
        assert result.resolved["b"].changed is False


class TestFinishBoundsWithoutDuration:

    def test_stored_span_is_used_for_finish_to_finish(self):
        snapshot = ScheduleSnapshot(
            work_items=(
                WorkItemSnapshot(id="p", start_date=date(2026, 1, 5), duration_days=10),
                WorkItemSnapshot(id="s", start_date=date(2026, 1, 1), end_date=date(2026, 1, 20)),
            ),
            dependencies=(DependencySnapshot("p", "s", DependencyType.FINISH_TO_FINISH, 0),),
        )

        result = compute_schedule(snapshot, today=TODAY)

        s = result.resolved["s"]
        # s already ends after p (Jan 15), so its start is not squeezed
        assert (s.start_date, s.end_date) == (date(2026, 1, 1), date(2026, 1, 20))
