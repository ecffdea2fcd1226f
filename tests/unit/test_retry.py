"""Unit tests for the fixed-delay retry orchestrator."""

import asyncio

import pytest

from imagegen.core.backends import TransientBackendError
from imagegen.core.models import BackendPayload, GenerationRequest
from imagegen.core.retry import backoff_delay, submit_with_retry

REQUEST = GenerationRequest(prompt="a lighthouse", aspect_ratio="1:1")


class ScriptedSubmit:
    """Submit function failing or succeeding according to a script."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def __call__(self, request):
        self.calls.append(request)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _payload(marker: bytes) -> BackendPayload:
    return BackendPayload(status_code=200, body=marker)


class TestBackoffDelay:
    """Tests for the pure backoff schedule."""

    @pytest.mark.parametrize("attempt", [1, 2, 3, 10])
    def test_delay_is_constant(self, attempt):
        assert backoff_delay(attempt, 2.0) == 2.0

    def test_attempt_must_be_positive(self):
        with pytest.raises(ValueError):
            backoff_delay(0, 2.0)


class TestSubmitWithRetry:
    """Tests for submit_with_retry."""

    def test_first_success_returns_without_waiting(self, recording_sleep):
        submit = ScriptedSubmit([_payload(b"one")])

        payload = asyncio.run(
            submit_with_retry(submit, REQUEST, base_delay=2.0, sleep=recording_sleep)
        )

        assert payload.body == b"one"
        assert recording_sleep.delays == []
        assert len(submit.calls) == 1

    def test_success_on_third_attempt(self, recording_sleep):
        """Test that two failures then success returns attempt 3 after two delays."""
        submit = ScriptedSubmit(
            [
                TransientBackendError("boom 1", 503),
                TransientBackendError("boom 2"),
                _payload(b"third"),
            ]
        )

        payload = asyncio.run(
            submit_with_retry(submit, REQUEST, base_delay=2.0, sleep=recording_sleep)
        )

        assert payload.body == b"third"
        assert recording_sleep.delays == [2.0, 2.0]
        assert sum(recording_sleep.delays) == 2 * 2.0

    def test_last_error_surfaces(self, recording_sleep):
        """Test that exhaustion raises the error from the final attempt."""
        errors = [
            TransientBackendError("first failure", 500),
            TransientBackendError("second failure", 502),
            TransientBackendError("third failure", 503),
        ]
        submit = ScriptedSubmit(errors)

        with pytest.raises(TransientBackendError) as exc_info:
            asyncio.run(submit_with_retry(submit, REQUEST, base_delay=1.0, sleep=recording_sleep))

        assert exc_info.value is errors[2]
        assert exc_info.value.message == "third failure"
        assert exc_info.value.status_code == 503
        assert recording_sleep.delays == [1.0, 1.0]

    def test_same_request_sent_each_attempt(self, recording_sleep):
        submit = ScriptedSubmit([TransientBackendError("x"), _payload(b"ok")])

        asyncio.run(submit_with_retry(submit, REQUEST, base_delay=0.1, sleep=recording_sleep))

        assert submit.calls == [REQUEST, REQUEST]

    def test_non_transient_error_not_retried(self, recording_sleep):
        submit = ScriptedSubmit([RuntimeError("bug"), _payload(b"never")])

        with pytest.raises(RuntimeError):
            asyncio.run(submit_with_retry(submit, REQUEST, base_delay=1.0, sleep=recording_sleep))

        assert len(submit.calls) == 1
        assert recording_sleep.delays == []

    def test_custom_attempt_budget(self, recording_sleep):
        submit = ScriptedSubmit([TransientBackendError(str(i)) for i in range(5)])

        with pytest.raises(TransientBackendError, match="4"):
            asyncio.run(
                submit_with_retry(
                    submit, REQUEST, max_attempts=5, base_delay=0.5, sleep=recording_sleep
                )
            )

        assert recording_sleep.delays == [0.5] * 4

    def test_invalid_attempt_budget(self, recording_sleep):
        submit = ScriptedSubmit([])

        with pytest.raises(ValueError):
            asyncio.run(
                submit_with_retry(
                    submit, REQUEST, max_attempts=0, base_delay=1.0, sleep=recording_sleep
                )
            )
