from __future__ import annotations

from dataclasses import dataclass

import mysql.connector
from mysql.connector import pooling


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    pool_size: int = 5
    connection_timeout: int = 5
    lock_wait_timeout: int = 5


class DatabaseConnection:
    """Shared store handle with its own connection pool.

    Built once by the container and injected into every repository.
    """

    def __init__(self, config: DBConfig, *, pool_name: str = "gym_access"):
        self._config = config
        self._pool_name = pool_name
        self._pool: pooling.MySQLConnectionPool | None = None

    @property
    def lock_wait_timeout(self) -> int:
        return int(self._config.lock_wait_timeout)

    def _get_pool(self) -> pooling.MySQLConnectionPool:
        # Created lazily so building the container never touches the network.
        if self._pool is None:
            self._pool = pooling.MySQLConnectionPool(
                pool_name=self._pool_name,
                pool_size=int(self._config.pool_size),
                host=self._config.host,
                port=int(self._config.port),
                user=self._config.user,
                password=self._config.password,
                database=self._config.database,
                connection_timeout=int(self._config.connection_timeout),
                time_zone="+00:00",
                autocommit=False,
            )
        return self._pool

    def connect(self):
        try:
            return self._get_pool().get_connection()
        except mysql.connector.errors.PoolError:
            # Pool exhausted: fall back to a short-lived connection.
            return mysql.connector.connect(
                host=self._config.host,
                port=int(self._config.port),
                user=self._config.user,
                password=self._config.password,
                database=self._config.database,
                connection_timeout=int(self._config.connection_timeout),
                time_zone="+00:00",
            )
