# SecondBrain Storage
from .base import ThoughtStore, StorageError
from .sqlalchemy_store import SQLAlchemyThoughtStore

__all__ = [
    "ThoughtStore",
    "StorageError",
    "SQLAlchemyThoughtStore",
]
