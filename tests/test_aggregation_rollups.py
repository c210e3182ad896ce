from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from timeflow.domain.aggregation import (
    activity_stats,
    daily_average,
    daily_totals,
    group_by_date,
    group_by_user,
    hours_by_type,
    sum_hours,
    unique_users,
    week_breakdown,
    window_sum,
)
from timeflow.domain.records import (
    ActivityRecord,
    ActivityType,
    AreaRecord,
    ProcessActivityRecord,
    ProcessActivityStatus,
    ProcessRecord,
    ProcessStatus,
    ProjectRecord,
    ProjectStatus,
    Role,
    TaskRecord,
    TaskStatus,
    UserRecord,
)
from timeflow.domain.rollups import (
    average_completion,
    status_distribution,
    summarize_area,
    summarize_areas,
    summarize_project,
    summarize_user,
    task_status_counts,
    user_workloads,
)

USER_A = uuid.uuid4()
USER_B = uuid.uuid4()


def _activity(
    day: date,
    execution_time: str,
    *,
    user_id: uuid.UUID = USER_A,
    activity_type: ActivityType = ActivityType.INTERNO,
    area_id: uuid.UUID | None = None,
) -> ActivityRecord:
    return ActivityRecord(
        id=uuid.uuid4(),
        user_id=user_id,
        date=day,
        execution_time=Decimal(execution_time),
        activity_type=activity_type,
        area_id=area_id,
    )


def _project(estimated: str, used: str, **overrides: object) -> ProjectRecord:
    values: dict[str, object] = {
        "id": uuid.uuid4(),
        "name": "Project",
        "estimated_hours": Decimal(estimated),
        "used_hours": Decimal(used),
        "status": ProjectStatus.IN_PROGRESS,
        "creator_id": USER_A,
    }
    values.update(overrides)
    return ProjectRecord(**values)  # type: ignore[arg-type]


def test_group_by_date_preserves_first_seen_order() -> None:
    activities = [
        _activity(date(2024, 1, 3), "1"),
        _activity(date(2024, 1, 1), "2"),
        _activity(date(2024, 1, 3), "3"),
    ]

    grouped = group_by_date(activities)

    assert list(grouped) == [date(2024, 1, 3), date(2024, 1, 1)]
    assert [row.execution_time for row in grouped[date(2024, 1, 3)]] == [Decimal("1"), Decimal("3")]


def test_daily_average_counts_only_days_with_activity() -> None:
    activities = [
        _activity(date(2024, 1, 1), "4"),
        _activity(date(2024, 1, 1), "4"),
        _activity(date(2024, 1, 3), "6"),
    ]

    assert daily_totals(activities) == {date(2024, 1, 1): Decimal("8"), date(2024, 1, 3): Decimal("6")}
    assert daily_average(activities) == Decimal("7.0")


def test_empty_collections_give_zero_results() -> None:
    assert sum_hours([]) == 0
    assert daily_average([]) == 0
    assert group_by_date([]) == {}
    assert unique_users([]) == 0


def test_window_sum_includes_day_seven_and_excludes_day_eight() -> None:
    today = date(2024, 1, 10)
    activities = [
        _activity(date(2024, 1, 3), "2"),
        _activity(date(2024, 1, 2), "5"),
        _activity(date(2024, 1, 10), "1.5"),
    ]

    assert window_sum(activities, 7, today=today) == Decimal("3.5")


def test_sums_are_exact_for_fractional_hours() -> None:
    activities = [_activity(date(2024, 1, 1), "0.1") for _ in range(3)]

    assert sum_hours(activities) == Decimal("0.3")


def test_grouping_by_user_and_type() -> None:
    activities = [
        _activity(date(2024, 1, 1), "1", activity_type=ActivityType.TEAMS),
        _activity(date(2024, 1, 1), "2", user_id=USER_B, activity_type=ActivityType.TEAMS),
        _activity(date(2024, 1, 2), "3", user_id=USER_B, activity_type=ActivityType.PRUEBAS),
    ]

    assert set(group_by_user(activities)) == {USER_A, USER_B}
    assert hours_by_type(activities) == {ActivityType.TEAMS: Decimal("3"), ActivityType.PRUEBAS: Decimal("3")}
    assert unique_users(activities) == 2


def test_week_breakdown_fills_every_weekday() -> None:
    activities = [
        _activity(date(2024, 1, 1), "2"),
        _activity(date(2024, 1, 5), "3"),
        _activity(date(2024, 1, 8), "9"),
    ]

    breakdown = week_breakdown(activities, date(2024, 1, 1))

    assert list(breakdown) == ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
    assert breakdown["monday"] == Decimal("2")
    assert breakdown["friday"] == Decimal("3")
    assert breakdown["sunday"] == 0


def test_activity_stats_combines_aggregates() -> None:
    activities = [
        _activity(date(2024, 1, 1), "4"),
        _activity(date(2024, 1, 1), "4", user_id=USER_B),
        _activity(date(2024, 1, 9), "6"),
    ]

    stats = activity_stats(activities, today=date(2024, 1, 10), window_days=7)

    assert stats.total_hours == Decimal("14")
    assert stats.total_activities == 3
    assert stats.unique_users == 2
    assert stats.daily_average == Decimal("7")
    assert stats.window_hours == Decimal("6")
    assert activity_stats(activities, today=date(2024, 1, 10)) == stats


def test_average_completion_is_unweighted() -> None:
    projects = [_project("10", "10"), _project("1000", "0")]

    assert average_completion(projects) == Decimal("50")
    assert average_completion([]) == 0


def test_project_summary_keeps_signed_remaining() -> None:
    summary = summarize_project(_project("10", "12"))

    assert summary.remaining_hours == Decimal("-2")
    assert summary.completion_percent == Decimal("120")


def test_area_summary_counts_users_projects_and_hours() -> None:
    area = AreaRecord(id=uuid.uuid4(), name="Infra")
    users = [
        UserRecord(id=USER_A, role=Role.USER, area_id=area.id),
        UserRecord(id=USER_B, role=Role.USER, area_id=area.id),
        UserRecord(id=uuid.uuid4(), role=Role.ADMIN, area_id=area.id),
    ]
    projects = [
        _project("10", "5", area_id=area.id),
        _project("10", "10", area_id=area.id, is_active=False),
    ]
    activities = [_activity(date(2024, 1, 1), "3", area_id=area.id), _activity(date(2024, 1, 2), "2", area_id=area.id)]

    summary = summarize_area(area=area, users=users, projects=projects, activities=activities)

    assert summary.area_name == "Infra"
    assert summary.total_users == 2
    assert summary.total_projects == 2
    assert summary.active_projects == 1
    assert summary.total_hours == Decimal("5")
    assert summary.total_activities == 2
    assert summary.average_completion == Decimal("75")


def test_summarize_areas_splits_collections_per_area() -> None:
    first = AreaRecord(id=uuid.uuid4(), name="First")
    second = AreaRecord(id=uuid.uuid4(), name="Second")
    activities = [
        _activity(date(2024, 1, 1), "3", area_id=first.id),
        _activity(date(2024, 1, 1), "4", area_id=second.id),
    ]

    summaries = summarize_areas([first, second], users=[], projects=[], activities=activities)

    assert {item.area_name: item.total_hours for item in summaries} == {"First": Decimal("3"), "Second": Decimal("4")}


def test_user_summary_uses_assigned_projects() -> None:
    user = UserRecord(id=USER_A, role=Role.USER, display_name="Ana")
    projects = [
        _project("10", "10", assigned_user_id=USER_A),
        _project("10", "0", assigned_user_id=USER_B),
    ]
    activities = [_activity(date(2024, 1, 1), "2"), _activity(date(2024, 1, 1), "5", user_id=USER_B)]

    summary = summarize_user(user, activities=activities, projects=projects)

    assert summary.total_activities == 1
    assert summary.total_hours == Decimal("2")
    assert summary.assigned_projects == 1
    assert summary.average_completion == Decimal("100")


def test_status_distribution_and_task_counts() -> None:
    projects = [
        _project("1", "0", status=ProjectStatus.PAUSED),
        _project("1", "0", status=ProjectStatus.PAUSED),
        _project("1", "0", status=ProjectStatus.COMPLETED),
    ]
    tasks = [
        TaskRecord(
            id=uuid.uuid4(),
            project_id=projects[0].id,
            name="Task",
            estimated_hours=Decimal("1"),
            used_hours=Decimal("0"),
            status=TaskStatus.BACKLOG,
            creator_id=USER_A,
        )
    ]

    distribution = status_distribution(projects)

    assert distribution[ProjectStatus.PAUSED] == 2
    assert distribution[ProjectStatus.COMPLETED] == 1
    assert distribution[ProjectStatus.UNASSIGNED] == 0
    assert task_status_counts(tasks) == {"backlog": 1}


def test_user_workloads_count_pending_work_of_open_processes() -> None:
    user = UserRecord(id=USER_A, role=Role.USER, display_name="Ana")
    open_process = ProcessRecord(
        id=uuid.uuid4(),
        name="Open",
        estimated_hours=Decimal("10"),
        status=ProcessStatus.ACTIVE,
        creator_id=USER_B,
        assigned_user_ids=frozenset({USER_A}),
    )
    closed_process = ProcessRecord(
        id=uuid.uuid4(),
        name="Closed",
        estimated_hours=Decimal("10"),
        status=ProcessStatus.COMPLETED,
        creator_id=USER_B,
        assigned_user_ids=frozenset({USER_A}),
    )
    process_activities = [
        ProcessActivityRecord(
            id=uuid.uuid4(),
            process_id=open_process.id,
            name="Pending",
            status=ProcessActivityStatus.PENDING,
            estimated_hours=Decimal("2.5"),
        ),
        ProcessActivityRecord(
            id=uuid.uuid4(),
            process_id=open_process.id,
            name="Done",
            status=ProcessActivityStatus.COMPLETED,
            estimated_hours=Decimal("4"),
        ),
        ProcessActivityRecord(
            id=uuid.uuid4(),
            process_id=closed_process.id,
            name="Pending elsewhere",
            status=ProcessActivityStatus.PENDING,
            estimated_hours=Decimal("8"),
        ),
    ]

    [workload] = user_workloads(
        [user],
        processes=[open_process, closed_process],
        process_activities=process_activities,
    )

    assert workload.active_processes == 1
    assert workload.pending_activities == 1
    assert workload.pending_estimated_hours == Decimal("2.5")
