"""
Integration tests for the SQLAlchemy learner store (SQLite in memory).
"""
from dataclasses import replace
from datetime import timedelta

import pytest

from numeracy.core.errors import ConcurrentUpdateConflict
from numeracy.core.models import ErrorType, Operation, ProgressionState, Strategy, TaskOutcome
from numeracy.db.store import SqlAlchemyLearnerStore
from numeracy.engine import NumeracyEngine


@pytest.fixture
def sql_store():
    store = SqlAlchemyLearnerStore.from_url("sqlite://")
    yield store
    store.engine.dispose()


class TestOutcomes:
    """Tests for outcome history."""

    def test_append_and_load_in_order(self, sql_store, outcome_factory):
        for n in range(5):
            sql_store.append_outcome("u1", outcome_factory(n, 1, offset=n))

        outcomes = sql_store.load_recent_outcomes("u1", 3)

        assert [o.number1 for o in outcomes] == [2, 3, 4]

    def test_fields_survive_round_trip(self, sql_store, now):
        outcome = TaskOutcome.build(
            "-", 14, 7, 6, elapsed_ms=4100, strategy=Strategy.COUNTING_ON,
            session_id="s1", level=12, timestamp=now,
        )
        sql_store.append_outcome("u1", outcome)

        [loaded] = sql_store.load_recent_outcomes("u1", 10)

        assert loaded.operation is Operation.SUBTRACT
        assert loaded.error_type is ErrorType.DOUBLING_ERROR
        assert loaded.strategy is Strategy.COUNTING_ON
        assert loaded.elapsed_ms == 4100
        assert loaded.timestamp == now
        assert loaded == outcome

    def test_other_learners_not_loaded(self, sql_store, outcome_factory):
        sql_store.append_outcome("u1", outcome_factory())

        assert sql_store.load_recent_outcomes("u2", 10) == []

    def test_count_sessions(self, sql_store, outcome_factory):
        for session_id in ("a", "a", "b", None, "c"):
            sql_store.append_outcome("u1", outcome_factory(session_id=session_id))

        assert sql_store.count_sessions("u1") == 3
        assert sql_store.count_sessions("u2") == 0


class TestProgressionState:
    """Tests for versioned state persistence."""

    def test_new_learner_has_no_state(self, sql_store):
        assert sql_store.load_progression_state("u1") is None

    def test_save_and_load(self, sql_store, now):
        state = replace(ProgressionState.initial(3, now=now), version=1)

        sql_store.save_progression_state("u1", state)

        assert sql_store.load_progression_state("u1") == state

    def test_versioned_update(self, sql_store, now):
        first = replace(ProgressionState.initial(now=now), version=1)
        sql_store.save_progression_state("u1", first)

        second = replace(first, total_tasks=1, version=2)
        sql_store.save_progression_state("u1", second)

        assert sql_store.load_progression_state("u1").version == 2

    def test_stale_update_conflicts(self, sql_store, now):
        first = replace(ProgressionState.initial(now=now), version=1)
        sql_store.save_progression_state("u1", first)
        sql_store.save_progression_state("u1", replace(first, version=2))

        with pytest.raises(ConcurrentUpdateConflict) as exc_info:
            sql_store.save_progression_state("u1", replace(first, total_tasks=5, version=2))

        assert exc_info.value.actual_version == 2
        assert sql_store.load_progression_state("u1").total_tasks == 0

    def test_outcome_saved_with_state(self, sql_store, outcome_factory, now):
        state = replace(ProgressionState.initial(now=now), version=1)

        sql_store.save_progression_state("u1", state, outcome_factory(7, 1))

        assert sql_store.load_progression_state("u1") == state
        assert [o.number1 for o in sql_store.load_recent_outcomes("u1", 10)] == [7]

    def test_conflict_discards_outcome(self, sql_store, outcome_factory, now):
        first = replace(ProgressionState.initial(now=now), version=1)
        sql_store.save_progression_state("u1", first)
        sql_store.save_progression_state("u1", replace(first, version=2))

        with pytest.raises(ConcurrentUpdateConflict):
            sql_store.save_progression_state("u1", replace(first, version=2), outcome_factory())
        with pytest.raises(ConcurrentUpdateConflict):
            sql_store.save_progression_state("u2", replace(first, version=2), outcome_factory())

        assert sql_store.load_recent_outcomes("u1", 10) == []
        assert sql_store.load_recent_outcomes("u2", 10) == []

    def test_duplicate_insert_conflicts(self, sql_store, now):
        state = replace(ProgressionState.initial(now=now), version=1)
        sql_store.save_progression_state("u1", state)

        with pytest.raises(ConcurrentUpdateConflict):
            sql_store.save_progression_state("u1", state)


class TestPrerequisiteSkills:
    """Tests for skill snapshots."""

    def test_empty_snapshot(self, sql_store):
        assert len(sql_store.load_prerequisite_skills("u1")) == 0

    def test_upsert(self, sql_store):
        sql_store.set_prerequisite_skills("u1", {"comparison": 3, "seriation": 12})
        sql_store.set_prerequisite_skills("u1", {"comparison": 6})

        assert sql_store.load_prerequisite_skills("u1").levels == {"comparison": 6.0, "seriation": 10.0}


class TestEngineOverSql:
    """The engine works unchanged over the SQL store."""

    def test_submit_and_screen(self, sql_store, outcome_factory, now):
        engine = NumeracyEngine(sql_store, clock=lambda: now)

        for n in range(12):
            engine.submit_outcome(
                "u1", outcome_factory(8, 5, answer=12, elapsed_ms=9000, session_id=f"s{n}", offset=n)
            )

        state = sql_store.load_progression_state("u1")
        profile = engine.compute_risk_profile("u1")

        assert state.version == 12
        assert state.total_tasks == 12
        assert state.current_streak == 0
        assert profile.sample_size == 12
        assert profile.confidence == pytest.approx(0.6)
        assert "missing structured quantity perception" in [i.criterion for i in profile.indicators]
        assert sql_store.load_recent_outcomes("u1", 1)[0].timestamp == now + timedelta(seconds=11)
