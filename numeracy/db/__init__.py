"""
SQLAlchemy persistence for learner state, outcomes and prerequisite skills.
"""
from numeracy.db.database import create_db_engine, init_db, make_session_factory, session_scope
from numeracy.db.models import Base, LearnerProgression, PrerequisiteSkill, TaskOutcomeRecord
from numeracy.db.store import SqlAlchemyLearnerStore

__all__ = [
    "Base",
    "LearnerProgression",
    "PrerequisiteSkill",
    "SqlAlchemyLearnerStore",
    "TaskOutcomeRecord",
    "create_db_engine",
    "init_db",
    "make_session_factory",
    "session_scope",
]
