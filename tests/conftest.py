"""Shared pytest configuration and fixtures."""

import os
import threading
import time

import pytest

from db_checker.config.models import TargetDescriptor
from db_checker.utils.logger import setup_logger
from db_checker.utils.metrics import ProbeOutcome


ENV_PREFIXES = ("MYSQL_", "POSTGRES_", "MONGODB_")
ENV_KEYS = (
    "DB_TYPE", "TRIES", "EXPORTER", "EXPORTER_PORT",
    "CHECK_INTERVAL", "PROBE_TIMEOUT", "LOG_LEVEL", "METRICS_NAMESPACE",
)


class FakeProbe:
    """
    Thread-safe scripted probe.

    ``script`` maps a target name to a list of steps: True (available),
    False (unavailable) or an exception instance (raised). The last step
    repeats once the list runs out. Unscripted targets are always available.
    ``tls_errors`` maps a target name to the error verify_tls() raises.
    """

    def __init__(self, script=None, delay=0.0, tls_errors=None):
        self.script = script or {}
        self.delay = delay
        self.tls_errors = tls_errors or {}
        self.calls = {}
        self.tls_checked = []
        self._lock = threading.Lock()

    def probe(self, target):
        with self._lock:
            count = self.calls.get(target.name, 0) + 1
            self.calls[target.name] = count

        if self.delay:
            time.sleep(self.delay)

        steps = self.script.get(target.name, [True])
        step = steps[min(count, len(steps)) - 1]
        if isinstance(step, Exception):
            raise step
        if step:
            return ProbeOutcome.success(0.01)
        return ProbeOutcome.failure(ConnectionRefusedError(f"{target.name} refused (try {count})"), 0.01)

    def verify_tls(self, target):
        with self._lock:
            self.tls_checked.append(target.name)
        if target.name in self.tls_errors:
            raise self.tls_errors[target.name]

    @property
    def total_calls(self):
        with self._lock:
            return sum(self.calls.values())


class RecordingSleep:
    """Sleep stand-in that records requested durations."""

    def __init__(self):
        self.durations = []
        self._lock = threading.Lock()

    def __call__(self, seconds):
        with self._lock:
            self.durations.append(seconds)


class FakeFileReader:
    """FileReader returning fixed contents and counting reads."""

    def __init__(self, contents=b"", error=None):
        self.contents = contents
        self.error = error
        self.paths = []

    def read_file(self, path):
        self.paths.append(path)
        if self.error is not None:
            raise self.error
        return self.contents


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test", "DEBUG")


@pytest.fixture
def make_target():
    """Factory for target descriptors."""
    def _make(name="app", driver="mysql", host="db1.example.com", port=0, **kwargs):
        return TargetDescriptor(
            driver=driver,
            host=host,
            port=port,
            name=name,
            user=kwargs.pop("user", "checker"),
            password=kwargs.pop("password", "secret"),
            **kwargs
        )
    return _make


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable the environment loader reads."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIXES) or key in ENV_KEYS:
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def fake_probe():
    """Factory for scripted probes."""
    return FakeProbe


@pytest.fixture
def fake_file_reader():
    """Factory for counting file readers."""
    return FakeFileReader
