import pytest

from actionproxy.runtime.core.envelope import (
    ABSOLUTE_DEADLINE_THRESHOLD_MS,
    EnvelopeBuilder,
    envelope_key,
    resolve_timeout,
)
from actionproxy.runtime.models.schemas import RunRequest

NOW = 1_700_000_000.0


def _builder(default_timeout: float = 3.0) -> EnvelopeBuilder:
    return EnvelopeBuilder(default_timeout, clock=lambda: NOW, monotonic=lambda: 100.0)


def test_envelope_key_naming():
    assert envelope_key("api_host") == "__OW_API_HOST"
    assert envelope_key("activation_id") == "__OW_ACTIVATION_ID"


def test_present_fields_are_forwarded_and_absent_fields_omitted():
    request = RunRequest(value={}, api_key="K", namespace="N")

    envelope = _builder().build(request)

    assert envelope.entries == {"__OW_API_KEY": "K", "__OW_NAMESPACE": "N"}
    assert "__OW_DEADLINE" not in envelope.entries
    assert "__OW_API_HOST" not in envelope.entries


def test_all_fields_forwarded():
    deadline = int((NOW + 5) * 1000)
    request = RunRequest(
        api_host="https://host",
        api_key="K",
        namespace="N",
        action_name="/N/hello",
        activation_id="abc123",
        deadline=deadline,
    )

    envelope = _builder().build(request)

    assert envelope.entries == {
        "__OW_API_HOST": "https://host",
        "__OW_API_KEY": "K",
        "__OW_NAMESPACE": "N",
        "__OW_ACTION_NAME": "/N/hello",
        "__OW_ACTIVATION_ID": "abc123",
        "__OW_DEADLINE": str(deadline),
    }
    assert envelope.activation_id == "abc123"
    assert envelope.timeout == pytest.approx(5.0)
    assert envelope.expires_at == pytest.approx(105.0)


def test_missing_deadline_uses_default():
    envelope = _builder(default_timeout=1.5).build(RunRequest())

    assert envelope.timeout == 1.5
    assert envelope.timeout_ms == 1500


def test_remaining_counts_down_and_floors_at_zero():
    envelope = _builder(default_timeout=2.0).build(RunRequest())

    assert envelope.remaining(now=100.5) == pytest.approx(1.5)
    assert envelope.remaining(now=500.0) == 0.0


class TestResolveTimeout:
    def test_absolute_epoch_milliseconds(self):
        assert resolve_timeout(str(int((NOW + 0.05) * 1000)), 3.0, now=NOW) == pytest.approx(
            0.05, abs=1e-3
        )

    def test_absolute_deadline_in_the_past(self):
        assert resolve_timeout(int((NOW - 10) * 1000), 3.0, now=NOW) == 0.0

    def test_relative_milliseconds(self):
        assert resolve_timeout(250, 3.0, now=NOW) == pytest.approx(0.25)
        assert resolve_timeout("1500", 3.0, now=NOW) == pytest.approx(1.5)

    def test_threshold_separates_relative_from_absolute(self):
        just_below = ABSOLUTE_DEADLINE_THRESHOLD_MS - 1
        assert resolve_timeout(just_below, 3.0, now=NOW) == pytest.approx(just_below / 1000)

    @pytest.mark.parametrize("deadline", [None, "soon", "", True, "nan", "inf"])
    def test_unusable_deadline_falls_back_to_default(self, deadline):
        assert resolve_timeout(deadline, 3.0, now=NOW) == 3.0

    def test_negative_relative_deadline_is_expired(self):
        assert resolve_timeout(-5, 3.0, now=NOW) == 0.0
