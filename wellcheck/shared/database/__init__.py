"""Database access for wellcheck services.

Provides connection pooling, the repository base class and error
hierarchy, and the CheckinStore capability consumed by the services.
"""

from .connection import (
    DatabaseConfig,
    ConnectionManager,
    get_connection_manager,
)
from .repository import (
    BaseRepository,
    RepositoryError,
    DuplicateError,
    StoreUnavailableError,
)
from .store import CheckinStore, InMemoryCheckinStore
from .checkin_repository import (
    SubmissionRepository,
    ClassificationRepository,
    PostgresCheckinStore,
)

__all__ = [
    "DatabaseConfig",
    "ConnectionManager",
    "get_connection_manager",
    "BaseRepository",
    "RepositoryError",
    "DuplicateError",
    "StoreUnavailableError",
    "CheckinStore",
    "InMemoryCheckinStore",
    "SubmissionRepository",
    "ClassificationRepository",
    "PostgresCheckinStore",
]
