"""PostgreSQL connection pool for the check-in store.

Credentials come from AWS Secrets Manager when DB_SECRET_ARN is set,
otherwise from DB_* environment variables (local development).
"""
import json
import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional

import boto3
from psycopg2 import pool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatabaseConfig:
    """Where and how to open pooled connections."""
    host: str
    port: int = 5432
    database: str = "wellcheck"
    username: str = ""
    password: str = ""
    min_connections: int = 2
    max_connections: int = 10
    ssl_mode: str = "require"

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Create config from DB_HOST, DB_PORT, DB_NAME, DB_USER,
        DB_PASSWORD, DB_MIN_CONN, DB_MAX_CONN and DB_SSL_MODE."""
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "wellcheck"),
            username=os.getenv("DB_USER", ""),
            password=os.getenv("DB_PASSWORD", ""),
            min_connections=int(os.getenv("DB_MIN_CONN", "2")),
            max_connections=int(os.getenv("DB_MAX_CONN", "10")),
            ssl_mode=os.getenv("DB_SSL_MODE", "require"),
        )

    @classmethod
    def from_secrets_manager(cls, secret_arn: str, region: str = "us-east-1") -> "DatabaseConfig":
        """Load credentials from a Secrets Manager JSON secret.

        Pool sizing and SSL mode still come from the environment; the
        secret only overrides the connection target and credentials.

        Raises:
            Whatever boto3 raises; startup must fail without credentials
        """
        try:
            client = boto3.client("secretsmanager", region_name=region)
            secret: Dict[str, Any] = json.loads(
                client.get_secret_value(SecretId=secret_arn)["SecretString"]
            )
        except Exception as e:
            logger.error(
                "DB_SECRET_LOAD_FAILED",
                extra={"error_type": type(e).__name__, "secret_arn": secret_arn}
            )
            raise

        base = cls.from_env()
        return cls(
            host=secret.get("host", base.host),
            port=int(secret.get("port", base.port)),
            database=secret.get("dbname", base.database),
            username=secret.get("username", base.username),
            password=secret.get("password", base.password),
            min_connections=base.min_connections,
            max_connections=base.max_connections,
            ssl_mode=base.ssl_mode,
        )


def load_database_config() -> DatabaseConfig:
    """Secrets Manager if DB_SECRET_ARN is set, plain env otherwise."""
    secret_arn = os.getenv("DB_SECRET_ARN")
    if secret_arn:
        return DatabaseConfig.from_secrets_manager(
            secret_arn, region=os.getenv("AWS_REGION", "us-east-1")
        )
    return DatabaseConfig.from_env()


class ConnectionManager:
    """Lazily opens a threaded pool and lends connections from it."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._pool: Optional[pool.ThreadedConnectionPool] = None
        self._lock = threading.Lock()

    def _ensure_pool(self) -> pool.ThreadedConnectionPool:
        with self._lock:
            if self._pool is None:
                self._pool = pool.ThreadedConnectionPool(
                    minconn=self.config.min_connections,
                    maxconn=self.config.max_connections,
                    host=self.config.host,
                    port=self.config.port,
                    database=self.config.database,
                    user=self.config.username,
                    password=self.config.password,
                    sslmode=self.config.ssl_mode,
                )
                logger.info(
                    "CONNECTION_POOL_OPENED",
                    extra={"host": self.config.host, "database": self.config.database}
                )
            return self._pool

    @contextmanager
    def get_connection(self):
        """Borrow a connection; it goes back to the pool on exit."""
        connections = self._ensure_pool()
        conn = connections.getconn()
        try:
            yield conn
        finally:
            connections.putconn(conn)


_connection_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    """Process-wide connection manager, created on first use."""
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager(load_database_config())
    return _connection_manager
