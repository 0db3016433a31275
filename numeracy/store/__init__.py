"""
Learner storage port and the in-memory adapter.

The SQLAlchemy adapter lives in numeracy.db so that importing the engine
does not require a database driver.
"""
from numeracy.store.base import LearnerStore
from numeracy.store.memory import InMemoryLearnerStore

__all__ = ["LearnerStore", "InMemoryLearnerStore"]
