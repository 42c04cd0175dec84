"""
Tests for the aggregation functions in profile_dashboard.service.
"""

from datetime import date, datetime, timedelta, timezone

from profile_dashboard.dataset import parse_completions, parse_transactions
from profile_dashboard.models import (
    DEFAULT_EXCLUSIONS,
    PASS_GRADE,
    RATIO_NOT_APPLICABLE,
    AuditRecord,
    CompletionRecord,
    ExclusionVocabulary,
    ObjectRef,
    TransactionRecord,
)
from profile_dashboard.service import (
    audit_ratio,
    collect_completed_projects,
    completed_projects,
    pass_fail_ratio,
    projects_from_transactions,
    total_xp,
    xp_by_project,
    xp_over_time,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def tx(amount, created_at, path="", object_id=None, obj=None):
    return TransactionRecord(amount=amount, created_at=created_at, path=path, object_id=object_id, object=obj)


def project(object_id, name, path, grade, updated_at, source="result", kind="project"):
    return CompletionRecord(
        source=source,
        object_id=object_id,
        grade=grade,
        path=path,
        updated_at=updated_at,
        object=ObjectRef(id=object_id, name=name, type=kind),
    )


SAMPLE = [
    tx(100, utc(2024, 1, 1, 9), "/a"),
    tx(50, utc(2024, 1, 1, 18), "/b"),
    tx(200, utc(2024, 1, 3, 12), "/a"),
]


class TestXpAggregation:
    """Test total, daily and per-project XP aggregation."""

    def test_daily_series_with_cumulative_total(self):
        """Test that same-day transactions merge and the running total accumulates."""
        points = xp_over_time(SAMPLE)

        assert [(p.date, p.daily_xp, p.cumulative_xp) for p in points] == [
            (date(2024, 1, 1), 150, 150),
            (date(2024, 1, 3), 200, 350),
        ]
        assert total_xp(SAMPLE) == 350
        assert points[-1].cumulative_xp == total_xp(SAMPLE)

    def test_series_is_sorted_regardless_of_input_order(self):
        """Test that out-of-order records still produce ascending dates."""
        points = xp_over_time(list(reversed(SAMPLE)))

        assert [p.date for p in points] == [date(2024, 1, 1), date(2024, 1, 3)]
        cumulative = [p.cumulative_xp for p in points]
        assert cumulative == sorted(cumulative)

    def test_days_are_grouped_in_utc(self):
        """Test that an offset timestamp lands on its UTC calendar day."""
        late_evening = datetime(2024, 1, 1, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        points = xp_over_time([tx(10, late_evening)])

        assert points[0].date == date(2024, 1, 2)

    def test_records_without_timestamp_are_left_out_of_series(self):
        """Test that a missing timestamp does not break the series."""
        records = SAMPLE + [tx(999, None, "/c")]

        points = xp_over_time(records)

        assert points[-1].cumulative_xp == 350
        assert total_xp(records) == 1349

    def test_empty_inputs(self):
        """Test the empty-input results of each aggregation."""
        assert total_xp([]) == 0
        assert xp_over_time([]) == []
        assert xp_by_project([]) == []

    def test_xp_by_project_ranking(self):
        """Test that per-path totals are ranked by XP descending."""
        ranked = xp_by_project(SAMPLE)

        assert [(p.path, p.xp) for p in ranked] == [("/a", 300), ("/b", 50)]

    def test_xp_by_project_keeps_top_ten(self):
        """Test that only the ten largest totals are returned."""
        records = [tx(amount, utc(2024, 1, 1), f"/p{amount}") for amount in range(1, 16)]

        ranked = xp_by_project(records)

        assert len(ranked) == 10
        assert ranked[0].xp == 15
        assert ranked[-1].xp == 6

    def test_xp_by_project_ties_keep_encounter_order(self):
        """Test that equal totals keep the order they were first seen in."""
        records = [tx(10, None, "/first"), tx(10, None, "/second"), tx(20, None, "/top")]

        ranked = xp_by_project(records)

        assert [p.path for p in ranked] == ["/top", "/first", "/second"]

    def test_missing_path_is_grouped_as_unknown(self):
        """Test that records without a path fall into one bucket."""
        ranked = xp_by_project([tx(5, None, ""), tx(7, None, "")])

        assert [(p.path, p.xp) for p in ranked] == [("Unknown", 12)]

    def test_project_label_is_last_path_segment(self):
        """Test the short display label of a ranked project."""
        ranked = xp_by_project([tx(5, None, "/school/div-01/graphql")])

        assert ranked[0].label == "graphql"


class TestRatios:
    """Test audit and pass/fail ratios."""

    def test_audit_ratio(self):
        """Test a mixed set of audit grades."""
        result = audit_ratio([AuditRecord(1.0), AuditRecord(0.5), AuditRecord(1.0)])

        assert (result.passed, result.failed, result.total) == (2, 1, 3)
        assert result.ratio == 66.7
        assert result.label == "66.7%"
        assert result.is_applicable

    def test_audit_ratio_without_audits(self):
        """Test that an empty audit list is not applicable instead of dividing by zero."""
        result = audit_ratio([])

        assert (result.passed, result.failed, result.total) == (0, 0, 0)
        assert result.ratio is None
        assert result.label == RATIO_NOT_APPLICABLE
        assert not result.is_applicable

    def test_grade_of_exactly_one_passes(self):
        """Test the pass threshold boundary."""
        result = audit_ratio([AuditRecord(1.0), AuditRecord(0.99)])

        assert result.passed == 1
        assert result.failed == 1
        assert result.ratio == 50.0

    def test_pass_fail_ratio_counts_projects_only(self):
        """Test that exercises and piscine projects are ignored."""
        results = [
            project(1, "graphql", "/school/div-01/graphql", 1.0, None),
            project(2, "forum", "/school/div-01/forum", 0.4, None),
            project(3, "ex00", "/school/div-01/piscine-go/ex00", 0.0, None),
            project(4, "quest", "/school/div-01/quest-01", 1.0, None, kind="exercise"),
        ]

        result = pass_fail_ratio(results)

        assert (result.passed, result.failed, result.total) == (1, 1, 2)
        assert result.ratio == 50.0

    def test_pass_fail_ratio_empty(self):
        """Test that no project results gives the not-applicable sentinel."""
        assert pass_fail_ratio([]).ratio is None

    def test_ratio_ties_round_up(self):
        """Test that a percentage ending in 5 at the second decimal rounds up."""
        one_of_sixteen = audit_ratio([AuditRecord(1.0)] + [AuditRecord(0.0)] * 15)
        five_of_sixteen = audit_ratio([AuditRecord(1.0)] * 5 + [AuditRecord(0.0)] * 11)

        assert one_of_sixteen.ratio == 6.3
        assert one_of_sixteen.label == "6.3%"
        assert five_of_sixteen.ratio == 31.3

    def test_audit_and_result_share_pass_threshold(self):
        """Test that audits and project results pass at the same grade."""
        just_below = PASS_GRADE - 0.01

        assert AuditRecord(PASS_GRADE).passed
        assert not AuditRecord(just_below).passed
        result = pass_fail_ratio(
            [
                project(1, "graphql", "/school/div-01/graphql", PASS_GRADE, None),
                project(2, "forum", "/school/div-01/forum", just_below, None),
            ]
        )
        assert (result.passed, result.failed) == (1, 1)


class TestCompletedProjects:
    """Test the completed-project reconciliation pipeline."""

    def test_result_with_later_timestamp_and_higher_grade_wins(self):
        """Test that a result row replaces the progress row for the same id."""
        progress = [project(5, "graphql", "/school/div-01/graphql", 0.8, utc(2024, 2, 1), source="progress")]
        results = [project(5, "graphql", "/school/div-01/graphql", 1.0, utc(2024, 2, 5))]

        projects = completed_projects(progress, results)

        assert len(projects) == 1
        assert projects[0].grade == 1.0
        assert projects[0].completed_at == utc(2024, 2, 5)

    def test_older_lower_grade_result_does_not_replace(self):
        """Test that a result that is neither later nor better is dropped."""
        progress = [project(5, "graphql", "/g", 1.2, utc(2024, 2, 5), source="progress")]
        results = [project(5, "graphql", "/g", 1.0, utc(2024, 2, 1))]

        projects = completed_projects(progress, results)

        assert projects[0].grade == 1.2
        assert projects[0].completed_at == utc(2024, 2, 5)

    def test_higher_grade_alone_replaces(self):
        """Test that a strictly higher grade replaces even an older entry."""
        progress = [project(5, "graphql", "/g", 1.0, utc(2024, 2, 5), source="progress")]
        results = [project(5, "graphql", "/g", 1.5, utc(2024, 2, 1))]

        projects = completed_projects(progress, results)

        assert projects[0].grade == 1.5

    def test_first_progress_row_wins(self):
        """Test that duplicate progress rows keep the first one."""
        progress = [
            project(5, "graphql", "/g", 1.0, utc(2024, 2, 1), source="progress"),
            project(5, "graphql", "/g", 1.4, utc(2024, 3, 1), source="progress"),
        ]

        projects = completed_projects(progress, [])

        assert projects[0].grade == 1.0

    def test_ids_are_unique_and_sorted_newest_first(self):
        """Test the ordering and uniqueness of the final list."""
        results = [
            project(1, "old", "/old", 1.0, utc(2023, 5, 1)),
            project(2, "new", "/new", 1.0, utc(2024, 5, 1)),
            project(1, "old", "/old", 1.0, utc(2023, 4, 1)),
            project(3, "undated", "/undated", 1.0, None),
        ]

        projects = completed_projects([], results)

        assert [p.id for p in projects] == [2, 1, 3]

    def test_excluded_vocabulary(self):
        """Test that piscine, checkpoint and similar entries are filtered out."""
        results = [
            project(1, "ex01", "/school/piscine-js/ex01", 1.0, utc(2024, 1, 1)),
            project(2, "Checkpoint 1", "/school/div-01/cp1", 1.0, utc(2024, 1, 1)),
            project(3, "TOAD session", "/school/div-01/t", 1.0, utc(2024, 1, 1)),
            project(4, "graphql", "/school/div-01/graphql", 1.0, utc(2024, 1, 1)),
        ]

        projects = completed_projects([], results)

        assert [p.name for p in projects] == ["graphql"]

    def test_excluded_vocabulary_in_progress_rows(self):
        """Test that progress rows are filtered by the same vocabulary."""
        progress = [
            project(1, "ex01", "/school/piscine-js/ex01", 1.0, utc(2024, 1, 1), source="progress"),
            project(2, "Checkpoint 1", "/school/div-01/cp1", 1.0, utc(2024, 1, 1), source="progress"),
            project(4, "graphql", "/school/div-01/graphql", 1.0, utc(2024, 1, 1), source="progress"),
        ]

        stage = collect_completed_projects(progress, [])

        assert list(stage.projects) == [4]
        assert stage.excluded == 2

    def test_excluded_vocabulary_in_fallback_transactions(self):
        """Test that fallback transactions are filtered by the same vocabulary."""
        transactions = [
            tx(10, utc(2024, 1, 1), "/school/piscine-js/ex01", 1, ObjectRef(id=1, name="ex01", type="project")),
            tx(10, utc(2024, 1, 2), "/school/div-01/cp1", 2, ObjectRef(id=2, name="Checkpoint 1", type="project")),
            tx(10, utc(2024, 1, 3), "/school/div-01/graphql", 4, ObjectRef(id=4, name="graphql", type="project")),
        ]

        projects = completed_projects([], [], fallback_transactions=transactions)

        assert [p.name for p in projects] == ["graphql"]

    def test_custom_vocabulary(self):
        """Test that the exclusion list can be replaced."""
        results = [project(1, "forum", "/school/div-01/forum", 1.0, utc(2024, 1, 1))]

        assert completed_projects([], results, vocabulary=ExclusionVocabulary(("forum",))) == []

    def test_non_project_paths_are_skipped(self):
        """Test that untyped exercise and quest rows are not projects."""
        untyped = [
            CompletionRecord(source="result", object_id=1, grade=1.0, path="/school/exercise/ex01"),
            CompletionRecord(source="result", object_id=2, grade=1.0, path="/school/quest-01"),
            CompletionRecord(source="result", object_id=3, grade=1.0, path="/school/div-01/forum"),
        ]

        projects = completed_projects([], untyped)

        assert [(p.id, p.name) for p in projects] == [(3, "forum")]

    def test_rows_without_id_are_skipped(self):
        """Test that a row with no usable object id cannot enter the list."""
        rows = [CompletionRecord(source="result", object_id=None, grade=1.0, path="/school/div-01/forum")]

        stage = collect_completed_projects([], rows)

        assert stage.needs_fallback
        assert stage.considered == 1
        assert stage.excluded == 1

    def test_fallback_to_project_transactions(self):
        """Test that XP transactions stand in when no progress/result row survives."""
        graphql = ObjectRef(id=10, name="graphql", type="project")
        transactions = [
            tx(500, utc(2024, 3, 1), "/school/div-01/graphql", 10, graphql),
            tx(100, utc(2024, 3, 2), "/school/div-01/graphql", 10, graphql),
            tx(300, utc(2024, 4, 1), "/school/div-01/forum", None, ObjectRef(id=11, name="forum", type="project")),
            tx(50, utc(2024, 4, 2), "/school/div-01/ex", None, ObjectRef(id=12, name="ex", type="exercise")),
            tx(50, utc(2024, 4, 3), "/school/piscine-go/quad", None, ObjectRef(id=13, name="quad", type="project")),
        ]

        projects = completed_projects([], [], fallback_transactions=transactions)

        assert [(p.id, p.name, p.grade) for p in projects] == [(11, "forum", 1.0), (10, "graphql", 1.0)]
        assert projects[1].completed_at == utc(2024, 3, 1)

    def test_fallback_uses_path_when_no_id(self):
        """Test the id of a fallback project without any object id."""
        record = tx(10, utc(2024, 1, 1), "/school/div-01/forum", None, ObjectRef(name="forum", type="project"))

        projects = projects_from_transactions([record], DEFAULT_EXCLUSIONS)

        assert projects[0].id == "/school/div-01/forum"

    def test_fallback_is_not_used_when_stage_has_projects(self):
        """Test that transactions are ignored once progress/result yields a project."""
        results = [project(1, "forum", "/forum", 1.0, utc(2024, 1, 1))]
        transactions = [tx(10, utc(2024, 1, 1), "/graphql", 2, ObjectRef(id=2, name="graphql", type="project"))]

        projects = completed_projects([], results, fallback_transactions=transactions)

        assert [p.name for p in projects] == ["forum"]


class TestMalformedRecords:
    """Test that aggregation survives loosely shaped upstream rows."""

    def test_parsers_substitute_defaults(self):
        """Test that missing fields become defaults and non-mappings are skipped."""
        rows = [
            {"amount": "120", "createdAt": "2024-01-01"},
            {"amount": None, "createdAt": "not a date", "path": None},
            "garbage",
            None,
            {"amount": 30, "createdAt": "2024-01-02T00:00:00", "object": None},
        ]

        records = parse_transactions(rows)

        assert len(records) == 3
        assert total_xp(records) == 150
        assert [(p.date, p.cumulative_xp) for p in xp_over_time(records)] == [
            (date(2024, 1, 1), 120),
            (date(2024, 1, 2), 150),
        ]

    def test_completion_without_object_uses_path_name(self):
        """Test that a null ``object`` still yields a named project."""
        rows = [{"objectId": 9, "grade": "1", "path": "/school/div-01/make-your-game/", "object": None}]

        projects = completed_projects([], parse_completions(rows, "result"))

        assert projects[0].name == "make-your-game"
        assert projects[0].completed_at is None
