"""
Valkey connection pool handle.

This module owns the driver's blocking connection pool. The handle is
constructed and passed explicitly, so several isolated pools can coexist
(one per test, one per database, ...).
"""

import logging
from typing import Optional

import valkey
from valkey.backoff import NoBackoff
from valkey.connection import BlockingConnectionPool
from valkey.exceptions import ConnectionError, TimeoutError, ValkeyError
from valkey.retry import Retry

from .config import (
    ValkeyConfig,
    ValkeyConnectionError,
    ValkeyCommandError,
    StoreNotInitializedError,
)

logger = logging.getLogger(__name__)


class ValkeyPool:
    """
    Explicit handle on a bounded, blocking Valkey connection pool.

    Each driver command borrows one connection and returns it on every exit
    path. When ``max_connections`` are busy the borrow blocks, for at most
    ``pool_timeout`` seconds when one is configured. Nothing is retried.
    """

    def __init__(
        self,
        config: Optional[ValkeyConfig] = None,
        client: Optional[valkey.Valkey] = None
    ):
        """
        Create the handle without dialing anything.

        Args:
            config: ValkeyConfig instance, defaults to environment-based config
            client: Already built driver client to use instead of a new pool
        """
        self.config = config or ValkeyConfig.from_env()
        self._client: Optional[valkey.Valkey] = client
        self._connection_pool: Optional[BlockingConnectionPool] = None

    def initialize(self) -> "ValkeyPool":
        """Build the connection pool and driver client. Idempotent."""
        if self._client is not None:
            return self

        self._connection_pool = BlockingConnectionPool(
            retry=Retry(NoBackoff(), 0),
            **self.config.to_connection_pool_kwargs()
        )
        self._client = valkey.Valkey(connection_pool=self._connection_pool)

        logger.info(f"Initialized Valkey pool: {self.config}")
        return self

    @property
    def is_initialized(self) -> bool:
        """Check if the pool has been initialized."""
        return self._client is not None

    @property
    def client(self) -> valkey.Valkey:
        """
        Get the underlying Valkey client.

        Raises:
            StoreNotInitializedError: If initialize() has not been called
        """
        if self._client is None:
            raise StoreNotInitializedError("Valkey pool not initialized. Call initialize() first.")
        return self._client

    def ping(self) -> bool:
        """
        Check the server answers PING.

        Raises:
            ValkeyConnectionError: If the server cannot be reached
            ValkeyCommandError: If the server rejects the command
        """
        try:
            result = self.client.ping()
        except (ConnectionError, TimeoutError, OSError) as e:
            raise ValkeyConnectionError(f"Ping failed: {e}") from e
        except ValkeyError as e:
            raise ValkeyCommandError(f"Ping failed: {e}") from e

        if not result:
            raise ValkeyConnectionError("Ping returned False")
        return True

    def close(self) -> None:
        """Disconnect every pooled connection and drop the client."""
        if self._connection_pool is not None:
            self._connection_pool.disconnect()
            logger.info("Closed Valkey pool")
        self._connection_pool = None
        self._client = None

    def __enter__(self) -> "ValkeyPool":
        return self.initialize()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "initialized" if self.is_initialized else "uninitialized"
        return f"<ValkeyPool {self.config} {state}>"
