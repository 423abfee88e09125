"""
JSON key-value access to Valkey.

This package wraps the Valkey driver with a configured blocking connection
pool, a JSON codec and get/set/delete/exists helpers for plain keys and
hash fields, each with optional expiration.
"""

from .config import (
    ValkeyConfig,
    ValkeyStoreError,
    ValkeyConfigurationError,
    StoreNotInitializedError,
    ValkeyConnectionError,
    ValkeyCommandError,
    ValueEncodeError,
    ValueDecodeError,
    KeyNotFoundError,
)
from .client import ValkeyPool
from .codec import encode, decode
from .store import ValkeyStore

__all__ = [
    # Configuration
    "ValkeyConfig",

    # Errors
    "ValkeyStoreError",
    "ValkeyConfigurationError",
    "StoreNotInitializedError",
    "ValkeyConnectionError",
    "ValkeyCommandError",
    "ValueEncodeError",
    "ValueDecodeError",
    "KeyNotFoundError",

    # Pool and store
    "ValkeyPool",
    "ValkeyStore",

    # Codec
    "encode",
    "decode",
]
