"""Base repository pattern for database operations.

Provides common query helpers with driver errors translated into the
repository error hierarchy, so callers never see psycopg2 types.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

import psycopg2
from psycopg2 import errors as pg_errors

from .connection import ConnectionManager

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RepositoryError(Exception):
    """Base exception for repository errors."""
    retryable = False


class DuplicateError(RepositoryError):
    """Duplicate entity already exists."""
    pass


class StoreUnavailableError(RepositoryError):
    """The store could not be read or written right now.

    Aggregations are idempotent, so callers may simply re-request.
    """
    retryable = True


class BaseRepository(ABC, Generic[T]):
    """Abstract base repository with common operations.

    Subclasses declare their column list and implement row mapping while
    inheriting:
    - Connection management
    - Error translation
    - Logging patterns
    """

    columns: Sequence[str] = ()

    def __init__(
        self,
        connection_manager: ConnectionManager,
        table_name: str,
    ):
        """Initialize repository.

        Args:
            connection_manager: Database connection manager
            table_name: Name of the database table
        """
        self.connection_manager = connection_manager
        self.table_name = table_name

        logger.info(
            "REPOSITORY_INITIALIZED",
            extra={"table_name": table_name}
        )

    @abstractmethod
    def _row_to_entity(self, row: tuple) -> T:
        """Convert database row to entity.

        Args:
            row: Database row tuple, in ``columns`` order

        Returns:
            Entity instance
        """
        pass

    @abstractmethod
    def _entity_to_params(self, entity: T) -> Dict[str, Any]:
        """Convert entity to database parameters.

        Args:
            entity: Entity instance

        Returns:
            Dictionary of column names to values
        """
        pass

    @property
    def _select_clause(self) -> str:
        return f"SELECT {', '.join(self.columns)} FROM {self.table_name}"

    def _fetchall(self, query: str, params: Sequence[Any] = ()) -> List[T]:
        """Run a read query and map every row to an entity."""
        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    rows = cur.fetchall()
        except psycopg2.Error as e:
            logger.error(
                "REPOSITORY_READ_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise StoreUnavailableError(f"Failed to read {self.table_name}") from e

        return [self._row_to_entity(row) for row in rows]

    def _fetchone_raw(self, query: str, params: Sequence[Any] = ()) -> Optional[tuple]:
        try:
            with self.connection_manager.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    return cur.fetchone()
        except psycopg2.Error as e:
            logger.error(
                "REPOSITORY_READ_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise StoreUnavailableError(f"Failed to read {self.table_name}") from e

    def insert(self, entity: T) -> T:
        """Insert an immutable entity.

        Args:
            entity: Entity to insert

        Returns:
            The inserted entity

        Raises:
            DuplicateError: If an entity with the same id exists
            StoreUnavailableError: On any other driver failure
        """
        params = self._entity_to_params(entity)
        columns = list(params.keys())
        placeholders = ", ".join(["%s"] * len(columns))

        query = (
            f"INSERT INTO {self.table_name} ({', '.join(columns)}) "
            f"VALUES ({placeholders})"
        )

        try:
            with self.connection_manager.get_connection() as conn:
                try:
                    with conn.cursor() as cur:
                        cur.execute(query, list(params.values()))
                    conn.commit()
                except psycopg2.Error:
                    conn.rollback()
                    raise
        except pg_errors.UniqueViolation as e:
            raise DuplicateError(f"{self.table_name} {params.get('id')} already exists") from e
        except psycopg2.Error as e:
            logger.error(
                "REPOSITORY_WRITE_FAILED",
                extra={"table_name": self.table_name, "error": str(e)}
            )
            raise StoreUnavailableError(f"Failed to write {self.table_name}") from e

        return entity
