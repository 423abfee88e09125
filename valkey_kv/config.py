"""
Valkey store configuration and error types.

This module provides the configuration dataclass for the connection pool,
with environment variable support, plus the exceptions raised by the store.
"""

import os
from typing import Optional, Dict, Any
from dataclasses import dataclass
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


DEFAULT_PORT = 6379


@dataclass
class ValkeyConfig:
    """
    Configuration for the Valkey connection pool.

    Defaults give a bounded pool of 100 connections that blocks when
    exhausted, 5 second dial/read/write timeouts and a PING liveness probe
    on connections idle for more than a minute.
    """

    host: str = "localhost"
    port: int = DEFAULT_PORT
    password: Optional[str] = None
    database: int = 0
    max_connections: int = 100
    pool_timeout: Optional[float] = None  # None blocks until a connection frees up
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 5.0
    health_check_interval: int = 60
    decode_responses: bool = False

    @classmethod
    def from_env(cls) -> "ValkeyConfig":
        """
        Create ValkeyConfig from environment variables.

        Returns:
            ValkeyConfig: Configuration instance with values from environment
        """
        pool_timeout = os.getenv("VALKEY_POOL_TIMEOUT")
        return cls(
            host=os.getenv("VALKEY_HOST", "localhost"),
            port=int(os.getenv("VALKEY_PORT", str(DEFAULT_PORT))),
            password=os.getenv("VALKEY_PASSWORD") or None,
            database=int(os.getenv("VALKEY_DATABASE", "0")),
            max_connections=int(os.getenv("VALKEY_MAX_CONNECTIONS", "100")),
            pool_timeout=float(pool_timeout) if pool_timeout else None,
            socket_timeout=float(os.getenv("VALKEY_SOCKET_TIMEOUT", "5.0")),
            socket_connect_timeout=float(os.getenv("VALKEY_SOCKET_CONNECT_TIMEOUT", "5.0")),
            health_check_interval=int(os.getenv("VALKEY_HEALTH_CHECK_INTERVAL", "60")),
            decode_responses=os.getenv("VALKEY_DECODE_RESPONSES", "false").lower() == "true"
        )

    @classmethod
    def from_address(
        cls,
        address: str,
        password: Optional[str] = None,
        database: int = 0,
        **overrides: Any
    ) -> "ValkeyConfig":
        """
        Create ValkeyConfig from a ``host:port`` address.

        Args:
            address: Server address, ``host``, ``host:port`` or ``[v6]:port``
            password: Server password, empty string means none
            database: Database index
            **overrides: Any other ValkeyConfig field

        Returns:
            ValkeyConfig: Configuration for the given server

        Raises:
            ValkeyConfigurationError: If the address cannot be parsed
                or an override repeats host or port
        """
        reserved = sorted(set(overrides) & {"host", "port"})
        if reserved:
            raise ValkeyConfigurationError(
                f"Set {' and '.join(reserved)} through the address, not overrides"
            )
        host, port = _split_address(address)
        if database < 0:
            raise ValkeyConfigurationError(f"Invalid database index: {database}")
        return cls(
            host=host,
            port=port,
            password=password or None,
            database=database,
            **overrides
        )

    def to_connection_kwargs(self) -> Dict[str, Any]:
        """
        Convert configuration to Valkey connection parameters.

        Returns:
            Dict[str, Any]: Connection parameters for Valkey client
        """
        kwargs = {
            "host": self.host,
            "port": self.port,
            "db": self.database,
            "socket_timeout": self.socket_timeout,
            "socket_connect_timeout": self.socket_connect_timeout,
            "health_check_interval": self.health_check_interval,
            "retry_on_timeout": False,
            "decode_responses": self.decode_responses,
        }

        if self.password:
            kwargs["password"] = self.password

        return kwargs

    def to_connection_pool_kwargs(self) -> Dict[str, Any]:
        """
        Convert configuration to blocking connection pool parameters.

        Returns:
            Dict[str, Any]: Connection pool parameters for Valkey client
        """
        kwargs = self.to_connection_kwargs()
        kwargs["max_connections"] = self.max_connections
        kwargs["timeout"] = self.pool_timeout
        return kwargs

    def __str__(self) -> str:
        """String representation hiding sensitive information."""
        password_display = "***" if self.password else "None"
        return (
            f"ValkeyConfig(host={self.host}, port={self.port}, "
            f"db={self.database}, password={password_display}, "
            f"max_connections={self.max_connections})"
        )


def _split_address(address: str):
    if not address or not address.strip():
        raise ValkeyConfigurationError("Address must not be empty")

    address = address.strip()
    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        if not sep:
            raise ValkeyConfigurationError(f"Invalid address: {address!r}")
        port_text = rest[1:] if rest.startswith(":") else rest
    elif address.count(":") == 1:
        host, _, port_text = address.partition(":")
    else:
        # bare hostname or unbracketed IPv6 literal
        host, port_text = address, ""

    if not host:
        raise ValkeyConfigurationError(f"Invalid address: {address!r}")
    if not port_text:
        return host, DEFAULT_PORT

    try:
        port = int(port_text)
    except ValueError:
        raise ValkeyConfigurationError(f"Invalid port in address: {address!r}") from None
    if not 0 < port < 65536:
        raise ValkeyConfigurationError(f"Port out of range in address: {address!r}")
    return host, port


class ValkeyStoreError(Exception):
    """Base class for every error raised by the store."""
    pass


class ValkeyConfigurationError(ValkeyStoreError):
    """Custom exception for Valkey configuration issues."""
    pass


class StoreNotInitializedError(ValkeyStoreError):
    """Raised when an operation runs before the pool is initialized."""
    pass


class ValkeyConnectionError(ValkeyStoreError):
    """Dial, borrow or socket failure, including pool exhaustion timeouts."""
    pass


class ValkeyCommandError(ValkeyStoreError):
    """The server rejected or failed a command."""
    pass


class ValueEncodeError(ValkeyStoreError):
    """A value could not be serialized."""
    pass


class ValueDecodeError(ValkeyStoreError):
    """Stored bytes could not be decoded into the requested type."""
    pass


class KeyNotFoundError(ValkeyStoreError, KeyError):
    """The key, or hash field, does not exist."""

    def __init__(self, key: str, field: Optional[str] = None):
        self.key = key
        self.field = field
        target = f"{key}[{field}]" if field is not None else key
        super().__init__(f"Key not found: {target}")

    def __reduce__(self):
        return (type(self), (self.key, self.field))

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]
