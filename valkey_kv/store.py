"""
Key-value accessor over a Valkey connection pool.

ValkeyStore encodes values as JSON, issues one command per call through the
pool and decodes replies into the type the caller asks for. Scalar keys and
hash fields are both supported, each with an optional expiration.

Every failure is raised to the caller immediately as a ValkeyStoreError
subclass. Nothing is retried, cached or swallowed, except that an absent key
is a plain ``False`` for ``exists``/``hexists``/``delete``/``hdel``.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Type, TypeVar

import valkey
from valkey.exceptions import ConnectionError, TimeoutError, ValkeyError

from . import codec
from .client import ValkeyPool
from .config import (
    ValkeyConfig,
    ValkeyStoreError,
    ValkeyConnectionError,
    ValkeyCommandError,
    KeyNotFoundError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# HSET and EXPIRE run as one script so readers never see the field without
# the container's expiry.
HSET_EXPIRE_SCRIPT = """
redis.call("HSET", KEYS[1], ARGV[1], ARGV[2])
if tonumber(ARGV[3]) > 0 then
    redis.call("EXPIRE", KEYS[1], ARGV[3])
end
return 1
"""


class ValkeyStore:
    """
    JSON key-value accessor bound to an explicit ValkeyPool.

    Usage:
        store = ValkeyStore.initialize("localhost:6379")
        store.set_ex("session:42", {"user": "tom"}, 300)
        session = store.get("session:42", dict)
    """

    def __init__(self, pool: ValkeyPool):
        self.pool = pool
        self._hset_expire = None

    @classmethod
    def initialize(
        cls,
        address: str,
        password: Optional[str] = None,
        database: int = 0,
        **config_overrides: Any
    ) -> "ValkeyStore":
        """
        Build a pool for ``address`` and return a store using it.

        Args:
            address: Server address as ``host:port``
            password: Server password, empty or None for none
            database: Database index
            **config_overrides: Other ValkeyConfig fields (pool size, timeouts)
        """
        config = ValkeyConfig.from_address(address, password, database, **config_overrides)
        return cls(ValkeyPool(config).initialize())

    @classmethod
    def from_env(cls) -> "ValkeyStore":
        """Build an initialized store from VALKEY_* environment variables."""
        return cls(ValkeyPool(ValkeyConfig.from_env()).initialize())

    @contextmanager
    def _command(self, name: str, key: str) -> Iterator[valkey.Valkey]:
        """Yield the driver client and translate driver errors."""
        client = self.pool.client
        try:
            yield client
        except ValkeyStoreError:
            raise
        except (ConnectionError, TimeoutError, OSError) as e:
            logger.debug(f"{name} failed for key {key}: {e}")
            raise ValkeyConnectionError(f"{name} {key}: {e}") from e
        except ValkeyError as e:
            logger.debug(f"{name} failed for key {key}: {e}")
            raise ValkeyCommandError(f"{name} {key}: {e}") from e

    def ping(self) -> bool:
        return self.pool.ping()

    def close(self) -> None:
        self.pool.close()
        self._hset_expire = None

    # Scalar keys

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key`` without expiry."""
        self.set_ex(key, value, 0)

    def set_ex(self, key: str, value: Any, ttl_seconds: int) -> None:
        """
        Store ``value`` under ``key``, expiring after ``ttl_seconds``.

        A ``ttl_seconds`` of zero or less stores the value without expiry.
        """
        data = codec.encode(value)
        if ttl_seconds > 0:
            with self._command("SETEX", key) as client:
                client.setex(key, ttl_seconds, data)
        else:
            with self._command("SET", key) as client:
                client.set(key, data)
        logger.debug(f"Stored key {key} (ttl={ttl_seconds})")

    def get(self, key: str, target: Type[T] = Any) -> T:
        """
        Read ``key`` and decode it into ``target``.

        Raises:
            KeyNotFoundError: If the key does not exist
            ValueDecodeError: If the stored JSON does not fit ``target``
        """
        return self._get(key, target, strict=False)

    def get_as(self, key: str, target: Type[T]) -> T:
        """Read ``key`` as an instance of ``target`` (model, dataclass, ...)."""
        return self._get(key, target, strict=False)

    def get_string(self, key: str) -> str:
        return self._get(key, str, strict=True)

    def get_int(self, key: str) -> int:
        return self._get(key, int, strict=True)

    def get_bool(self, key: str) -> bool:
        return self._get(key, bool, strict=True)

    def _get(self, key: str, target: Any, strict: bool) -> Any:
        with self._command("GET", key) as client:
            data = client.get(key)
        if data is None:
            raise KeyNotFoundError(key)
        return codec.decode(data, target, strict=strict)

    def delete(self, key: str) -> bool:
        """Delete ``key``. Returns whether a key was removed."""
        with self._command("DEL", key) as client:
            removed = client.delete(key)
        return bool(removed)

    def exists(self, key: str) -> bool:
        with self._command("EXISTS", key) as client:
            return bool(client.exists(key))

    def ttl(self, key: str) -> Optional[int]:
        """
        Remaining time to live of ``key`` in seconds, None if it never expires.

        Raises:
            KeyNotFoundError: If the key does not exist
        """
        with self._command("TTL", key) as client:
            remaining = client.ttl(key)
        if remaining == -2:
            raise KeyNotFoundError(key)
        if remaining < 0:
            return None
        return remaining

    # Hash fields

    def hset(self, key: str, field: str, value: Any) -> None:
        """Store ``value`` in field ``field`` of hash ``key``."""
        self.hset_ex(key, field, value, 0)

    def hset_ex(self, key: str, field: str, value: Any, ttl_seconds: int) -> None:
        """
        Store ``value`` in a hash field and expire the whole hash.

        Expiry applies to the container ``key``, so every field of the hash
        goes away together after ``ttl_seconds``. The write and the expiry
        run atomically on the server. A ``ttl_seconds`` of zero or less
        leaves any existing expiry of the hash untouched.
        """
        data = codec.encode(value)
        if ttl_seconds > 0:
            with self._command("HSET+EXPIRE", key) as client:
                self._hset_expire_script(client)(
                    keys=[key], args=[field, data, ttl_seconds], client=client
                )
        else:
            with self._command("HSET", key) as client:
                client.hset(key, field, data)
        logger.debug(f"Stored field {field} of {key} (ttl={ttl_seconds})")

    def _hset_expire_script(self, client: valkey.Valkey):
        if self._hset_expire is None:
            self._hset_expire = client.register_script(HSET_EXPIRE_SCRIPT)
        return self._hset_expire

    def hget(self, key: str, field: str, target: Type[T] = Any) -> T:
        """
        Read field ``field`` of hash ``key`` and decode it into ``target``.

        Raises:
            KeyNotFoundError: If the hash or the field does not exist
            ValueDecodeError: If the stored JSON does not fit ``target``
        """
        return self._hget(key, field, target, strict=False)

    def hget_as(self, key: str, field: str, target: Type[T]) -> T:
        return self._hget(key, field, target, strict=False)

    def hget_string(self, key: str, field: str) -> str:
        return self._hget(key, field, str, strict=True)

    def hget_int(self, key: str, field: str) -> int:
        return self._hget(key, field, int, strict=True)

    def hget_bool(self, key: str, field: str) -> bool:
        return self._hget(key, field, bool, strict=True)

    def _hget(self, key: str, field: str, target: Any, strict: bool) -> Any:
        with self._command("HGET", key) as client:
            data = client.hget(key, field)
        if data is None:
            raise KeyNotFoundError(key, field)
        return codec.decode(data, target, strict=strict)

    def hdel(self, key: str, field: str) -> bool:
        """Delete one field of a hash. Returns whether it existed."""
        with self._command("HDEL", key) as client:
            return bool(client.hdel(key, field))

    def hexists(self, key: str, field: str) -> bool:
        with self._command("HEXISTS", key) as client:
            return bool(client.hexists(key, field))

    def __enter__(self) -> "ValkeyStore":
        self.pool.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<ValkeyStore {self.pool!r}>"
