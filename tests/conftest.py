"""
Shared fixtures: an in-memory stand-in for the Valkey driver client.

MockValkeyClient implements the handful of commands the store issues,
including key expiry driven by a simulated clock and registered scripts,
so the tests run without a server.
"""

import pytest
from valkey.exceptions import ResponseError

from valkey_kv import ValkeyConfig, ValkeyPool, ValkeyStore

WRONGTYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self):
        self.now = 1_700_000_000.0

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MockScript:
    """Mock of a registered script: HSET then EXPIRE on the container."""

    def __init__(self, registered_client, script):
        self.registered_client = registered_client
        self.script = script
        self.calls = []

    def __call__(self, keys=[], args=[], client=None):
        client = client or self.registered_client
        self.calls.append((list(keys), list(args)))
        key = keys[0]
        field, value, seconds = args
        client.hset(key, field, value)
        if int(seconds) > 0:
            client.expire(key, int(seconds))
        return 1


class MockValkeyClient:
    """Mock Valkey client for testing."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.strings = {}
        self.hashes = {}
        self.expires = {}
        self.scripts = []
        self.commands = []

    def _purge(self, key):
        deadline = self.expires.get(key)
        if deadline is not None and self.clock.now >= deadline:
            self._remove(key)

    def _remove(self, key):
        self.expires.pop(key, None)
        existed = key in self.strings or key in self.hashes
        self.strings.pop(key, None)
        self.hashes.pop(key, None)
        return existed

    def _present(self, key):
        self._purge(key)
        return key in self.strings or key in self.hashes

    def ping(self):
        return True

    def set(self, key, value):
        """Mock SET operation."""
        self.commands.append("SET")
        self._remove(key)
        self.strings[key] = value
        return True

    def setex(self, key, seconds, value):
        """Mock SETEX operation."""
        self.commands.append("SETEX")
        if int(seconds) <= 0:
            raise ResponseError("invalid expire time in 'setex' command")
        self._remove(key)
        self.strings[key] = value
        self.expires[key] = self.clock.now + int(seconds)
        return True

    def get(self, key):
        """Mock GET operation."""
        self.commands.append("GET")
        self._purge(key)
        if key in self.hashes:
            raise ResponseError(WRONGTYPE)
        return self.strings.get(key)

    def delete(self, *keys):
        """Mock DEL operation."""
        self.commands.append("DEL")
        return sum(1 for key in keys if self._present(key) and self._remove(key))

    def exists(self, *keys):
        """Mock EXISTS operation."""
        self.commands.append("EXISTS")
        return sum(1 for key in keys if self._present(key))

    def expire(self, key, seconds):
        if not self._present(key):
            return False
        self.expires[key] = self.clock.now + int(seconds)
        return True

    def ttl(self, key):
        """Mock TTL operation."""
        self.commands.append("TTL")
        if not self._present(key):
            return -2
        deadline = self.expires.get(key)
        if deadline is None:
            return -1
        return round(deadline - self.clock.now)

    def hset(self, key, field, value):
        """Mock HSET operation."""
        self.commands.append("HSET")
        self._purge(key)
        if key in self.strings:
            raise ResponseError(WRONGTYPE)
        fields = self.hashes.setdefault(key, {})
        created = field not in fields
        fields[field] = value
        return int(created)

    def hget(self, key, field):
        """Mock HGET operation."""
        self.commands.append("HGET")
        self._purge(key)
        if key in self.strings:
            raise ResponseError(WRONGTYPE)
        return self.hashes.get(key, {}).get(field)

    def hdel(self, key, field):
        """Mock HDEL operation."""
        self.commands.append("HDEL")
        self._purge(key)
        fields = self.hashes.get(key, {})
        if field not in fields:
            return 0
        del fields[field]
        if not fields:
            self._remove(key)
        return 1

    def hexists(self, key, field):
        """Mock HEXISTS operation."""
        self.commands.append("HEXISTS")
        self._purge(key)
        return field in self.hashes.get(key, {})

    def register_script(self, script):
        """Mock script registration."""
        registered = MockScript(self, script)
        self.scripts.append(registered)
        return registered


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_valkey_client(clock):
    return MockValkeyClient(clock)


@pytest.fixture
def valkey_config():
    """Create a test Valkey configuration."""
    return ValkeyConfig(
        host="localhost",
        port=6379,
        database=15,
        password=None,
        max_connections=5,
        socket_timeout=2.0,
        socket_connect_timeout=2.0
    )


@pytest.fixture
def pool(valkey_config, mock_valkey_client):
    return ValkeyPool(valkey_config, client=mock_valkey_client)


@pytest.fixture
def store(pool):
    return ValkeyStore(pool)
