"""Tests for FanOutCoordinator."""

import time

import pytest
from unittest.mock import patch

from db_checker.errors import RetriesExhausted, SecurityConfigError
from db_checker.services.coordinator import FanOutCoordinator
from db_checker.services.retry_handler import RetryRunner


def make_coordinator(probe, logger, sleep):
    return FanOutCoordinator(RetryRunner(probe, logger, sleep=sleep), logger)


@pytest.mark.asyncio
@pytest.mark.parametrize("count", [1, 2, 7])
async def test_all_targets_succeed_first_try(count, make_target, logger, fake_probe, recording_sleep):
    """N healthy targets: success with exactly N probes."""
    probe = fake_probe()
    coordinator = make_coordinator(probe, logger, recording_sleep)
    targets = [make_target(name=f"db{i}") for i in range(count)]

    assert await coordinator.check_all(targets, max_tries=3) is None

    assert probe.total_calls == count
    assert recording_sleep.durations == []


@pytest.mark.asyncio
async def test_empty_targets_launch_nothing(logger, fake_probe, recording_sleep):
    probe = fake_probe()
    coordinator = make_coordinator(probe, logger, recording_sleep)

    with patch('db_checker.services.coordinator.ThreadPoolExecutor') as mock_executor:
        assert await coordinator.check_all([], max_tries=3) is None

    mock_executor.assert_not_called()
    assert probe.total_calls == 0


@pytest.mark.asyncio
async def test_rejects_non_positive_max_tries(make_target, logger, fake_probe, recording_sleep):
    probe = fake_probe()
    coordinator = make_coordinator(probe, logger, recording_sleep)

    with pytest.raises(ValueError):
        await coordinator.check_all([make_target()], max_tries=0)

    assert probe.total_calls == 0


@pytest.mark.asyncio
async def test_one_failing_target_is_reported(make_target, logger, fake_probe, recording_sleep):
    """The failing target is named; siblings still run their own retries to completion."""
    probe = fake_probe(script={
        "broken": [False],
        "slow_start": [False, False, True],
    })
    coordinator = make_coordinator(probe, logger, recording_sleep)
    broken = make_target(name="broken", host="db2.example.com")
    targets = [make_target(name="healthy"), broken, make_target(name="slow_start")]

    with pytest.raises(RetriesExhausted) as exc_info:
        await coordinator.check_all(targets, max_tries=4)

    assert exc_info.value.target == broken
    assert exc_info.value.last_reason == "broken refused (try 4)"
    assert "db2.example.com:3306/broken" in str(exc_info.value)

    assert probe.calls == {"healthy": 1, "broken": 4, "slow_start": 3}


@pytest.mark.asyncio
async def test_waits_for_every_runner_before_failing(make_target, logger, fake_probe):
    """A fast failure is only surfaced after the slow sibling has finished."""
    finished = []

    def slow_sleep(seconds):
        time.sleep(0.05)
        finished.append(seconds)

    probe = fake_probe(script={"broken": [False], "slow": [False, False, True]})
    coordinator = make_coordinator(probe, logger, slow_sleep)

    with pytest.raises(RetriesExhausted):
        await coordinator.check_all([make_target(name="broken"), make_target(name="slow")], max_tries=3)

    assert probe.calls["slow"] == 3
    assert probe.calls["broken"] == 3


@pytest.mark.asyncio
async def test_multiple_failures_surface_one_of_them(make_target, logger, fake_probe, recording_sleep):
    probe = fake_probe(script={"a": [False], "b": [False]})
    coordinator = make_coordinator(probe, logger, recording_sleep)

    with pytest.raises(RetriesExhausted) as exc_info:
        await coordinator.check_all([make_target(name="a"), make_target(name="b")], max_tries=2)

    assert exc_info.value.target.name in {"a", "b"}
    assert probe.calls == {"a": 2, "b": 2}


@pytest.mark.asyncio
async def test_targets_run_in_parallel(make_target, logger, fake_probe, recording_sleep):
    """Slow probes overlap instead of adding up."""
    probe = fake_probe(delay=0.3)
    coordinator = make_coordinator(probe, logger, recording_sleep)
    targets = [make_target(name=f"db{i}") for i in range(4)]

    start = time.monotonic()
    await coordinator.check_all(targets, max_tries=1)
    duration = time.monotonic() - start

    assert duration < 1.0
    assert probe.total_calls == 4


@pytest.mark.asyncio
async def test_duplicate_targets_are_probed_twice(make_target, logger, fake_probe, recording_sleep):
    probe = fake_probe()
    coordinator = make_coordinator(probe, logger, recording_sleep)
    target = make_target(name="dup")

    await coordinator.check_all([target, target], max_tries=2)

    assert probe.calls["dup"] == 2


@pytest.mark.asyncio
async def test_broken_tls_material_aborts_before_probing(make_target, logger, fake_probe, recording_sleep):
    """A bad trust bundle fails at once; healthy and failing siblings are never probed."""
    probe = fake_probe(script={"down": [False]}, tls_errors={"tls": SecurityConfigError("bad CA")})
    coordinator = make_coordinator(probe, logger, recording_sleep)

    start = time.monotonic()
    with pytest.raises(SecurityConfigError, match="bad CA"):
        await coordinator.check_all([make_target(name="down"), make_target(name="tls")], max_tries=4)

    assert time.monotonic() - start < 0.5
    assert probe.calls == {}
    assert recording_sleep.durations == []


@pytest.mark.asyncio
async def test_security_error_during_probing_wins_over_exhaustion(make_target, logger, fake_probe, recording_sleep):
    """Trust material that breaks after the initial check is still reported as fatal."""
    probe = fake_probe(script={"tls": [SecurityConfigError("bad CA")], "down": [False]})
    coordinator = make_coordinator(probe, logger, recording_sleep)

    with pytest.raises(SecurityConfigError):
        await coordinator.check_all([make_target(name="down"), make_target(name="tls")], max_tries=2)

    assert probe.tls_checked == ["down", "tls"]
    assert probe.calls == {"tls": 1, "down": 2}
