"""
Tests for the offline mode controller.
"""
import pytest

from orchestration import ErrorKind, OfflineModeController


@pytest.fixture
def offline():
    return OfflineModeController()


def test_starts_online(offline):
    assert not offline.is_offline()
    assert offline.consecutive_failures == 0


def test_quota_exceeded_goes_offline_immediately(offline):
    assert offline.record_failure(ErrorKind.QUOTA_EXCEEDED)
    assert offline.is_offline()
    assert offline.consecutive_failures == 999


def test_quota_offline_survives_successes(offline):
    offline.record_failure(ErrorKind.QUOTA_EXCEEDED)
    for _ in range(1000):
        offline.record_success()
    assert offline.is_offline()


def test_failures_after_quota_change_nothing(offline):
    offline.record_failure(ErrorKind.QUOTA_EXCEEDED)
    offline.record_success()
    offline.record_failure(ErrorKind.INVALID_REQUEST)
    offline.record_failure(ErrorKind.EMPTY_RESPONSE)
    assert offline.is_offline()


@pytest.mark.parametrize("kind", [
    ErrorKind.EMPTY_RESPONSE,
    ErrorKind.CONTENT_BLOCKED,
    ErrorKind.RATE_LIMITED,
])
def test_two_consecutive_streak_failures_go_offline(offline, kind):
    assert not offline.record_failure(kind)
    assert offline.record_failure(kind)
    assert offline.is_offline()


def test_mixed_streak_kinds_count_together(offline):
    offline.record_failure(ErrorKind.EMPTY_RESPONSE)
    assert offline.record_failure(ErrorKind.RATE_LIMITED)


def test_success_breaks_the_streak(offline):
    offline.record_failure(ErrorKind.EMPTY_RESPONSE)
    offline.record_success()
    assert not offline.record_failure(ErrorKind.EMPTY_RESPONSE)
    assert offline.consecutive_failures == 1


@pytest.mark.parametrize("kind", [
    ErrorKind.INVALID_CREDENTIAL,
    ErrorKind.INVALID_REQUEST,
    ErrorKind.ENDPOINT_NOT_FOUND,
    ErrorKind.SERVER_ERROR,
    ErrorKind.UNKNOWN,
])
def test_terminal_failures_never_go_offline(offline, kind):
    assert not offline.record_failure(kind)
    assert not offline.record_failure(kind)
    assert offline.consecutive_failures == 0


def test_terminal_failure_resets_the_streak(offline):
    offline.record_failure(ErrorKind.EMPTY_RESPONSE)
    offline.record_failure(ErrorKind.INVALID_REQUEST)
    assert offline.consecutive_failures == 0
    assert not offline.record_failure(ErrorKind.EMPTY_RESPONSE)


def test_success_does_not_bring_us_back_online(offline):
    offline.record_failure(ErrorKind.CONTENT_BLOCKED)
    offline.record_failure(ErrorKind.CONTENT_BLOCKED)
    offline.record_success()
    assert offline.is_offline()
    assert offline.consecutive_failures == 0


def test_reset_clears_everything(offline):
    offline.record_failure(ErrorKind.QUOTA_EXCEEDED)
    offline.reset()
    state = offline.snapshot()
    assert not state.offline
    assert state.consecutive_failures == 0


def test_custom_threshold():
    offline = OfflineModeController(threshold=3)
    offline.record_failure(ErrorKind.EMPTY_RESPONSE)
    offline.record_failure(ErrorKind.EMPTY_RESPONSE)
    assert not offline.is_offline()
    assert offline.record_failure(ErrorKind.EMPTY_RESPONSE)

    with pytest.raises(ValueError):
        OfflineModeController(threshold=0)
