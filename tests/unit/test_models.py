"""Unit tests for the core data models."""

import dataclasses

import pytest

from imagegen.core.models import GenerationRequest, GenerationResult


class TestGenerationRequest:
    """Tests for GenerationRequest."""

    def test_defaults(self):
        request = GenerationRequest(prompt="p", aspect_ratio="1:1")

        assert request.guidance_scale == 27
        assert request.num_inference_steps == 27
        assert request.accept == "image/jpeg"
        assert request.seed is None

    def test_backend_input_omits_accept_and_seed(self):
        request = GenerationRequest(prompt="p", aspect_ratio="1:1", seed=5)

        assert request.to_backend_input() == {
            "prompt": "p",
            "num_inference_steps": 27,
            "guidance_scale": 27,
            "aspect_ratio": "1:1",
        }

    def test_backend_input_includes_extra_fields(self):
        request = GenerationRequest(prompt="p", aspect_ratio="1:1", extra={"negative_prompt": "x"})

        assert request.to_backend_input()["negative_prompt"] == "x"

    def test_frozen(self):
        request = GenerationRequest(prompt="p", aspect_ratio="1:1")

        with pytest.raises(dataclasses.FrozenInstanceError):
            request.prompt = "changed"


class TestGenerationResult:
    """Tests for GenerationResult."""

    def test_timing_headers_only_known_values(self):
        result = GenerationResult(content=b"x", content_type="image/png", execution_time=2390)

        assert result.timing_headers() == {"X-Backend-Execution-Time": "2390"}

    def test_timing_headers_all(self):
        result = GenerationResult(
            content=b"x",
            content_type="image/png",
            delay_time=812,
            execution_time=2390,
            job_id="sync-1",
        )

        assert result.timing_headers() == {
            "X-Backend-Delay-Time": "812",
            "X-Backend-Execution-Time": "2390",
            "X-Backend-Job-Id": "sync-1",
        }
