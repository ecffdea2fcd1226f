"""Normalization of backend payloads into :class:`GenerationResult` objects.

Two reply shapes are supported:

Binary
    The response body *is* the image.  The content type was requested from
    the backend through the ``Accept`` header and is echoed back verbatim.

Base64 envelope
    The response body is JSON of the form::

        {"output": "<base64>", "delayTime": 812, "executionTime": 2390, "id": "sync-..."}

    The payload is decoded strictly.  The envelope carries no content type,
    so the type is inferred from the decoded bytes with Pillow; formats
    without a registered MIME type fall back to a configured default.

Any failure here is a :class:`NormalizationError`: the backend answered
successfully, so the problem is terminal and must not be retried as a
transport failure.
"""

from __future__ import annotations

import base64
import binascii
import io
import json
import logging
from typing import Any

from PIL import Image, UnidentifiedImageError

from .models import BackendPayload, GenerationResult

logger = logging.getLogger(__name__)


class NormalizationError(Exception):
    """Backend payload could not be turned into image bytes."""

    pass


def normalize_binary(payload: BackendPayload, accept: str) -> GenerationResult:
    """Wrap a raw image body.

    Args:
        payload: Successful backend reply whose body is the image.
        accept: Media type that was requested from the backend.

    Returns:
        Result carrying the body and ``accept`` as its content type.

    Raises:
        NormalizationError: If the body is empty.
    """
    if not payload.body:
        raise NormalizationError("Backend returned an empty image body")
    return GenerationResult(content=payload.body, content_type=accept)


def sniff_content_type(data: bytes, fallback: str) -> str:
    """Infer the media type of image bytes from their header.

    Args:
        data: Encoded image bytes.
        fallback: Type to report when Pillow knows the format but has no
            MIME type registered for it.

    Returns:
        Media type such as ``"image/png"``.

    Raises:
        NormalizationError: If the bytes are not a recognisable image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            image_format = img.format
    except (UnidentifiedImageError, OSError) as e:
        raise NormalizationError("Decoded payload is not a recognisable image") from e
    return Image.MIME.get(image_format or "", fallback)


def _optional_number(envelope: dict[str, Any], key: str) -> float | None:
    value = envelope.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def normalize_base64(payload: BackendPayload, fallback_content_type: str) -> GenerationResult:
    """Decode a base64 JSON envelope.

    Args:
        payload: Successful backend reply with a JSON body.
        fallback_content_type: Type used when the decoded format has no
            registered MIME type.

    Returns:
        Result with decoded bytes, inferred content type and the envelope's
        timing metadata.

    Raises:
        NormalizationError: If the body is not a JSON object, reports a
            failed job, lacks a string ``output`` field, or ``output`` is
            not valid base64 image data.
    """
    try:
        envelope = json.loads(payload.body)
    except ValueError as e:
        raise NormalizationError("Backend response is not valid JSON") from e

    if not isinstance(envelope, dict):
        raise NormalizationError("Backend response is not a JSON object")

    # Queue-style backends can answer 200 for a job that failed.
    if envelope.get("status") == "FAILED" or envelope.get("error"):
        message = envelope.get("error") or "Backend job failed"
        raise NormalizationError(f"Backend job failed: {message}")

    output = envelope.get("output")
    if not isinstance(output, str) or not output:
        raise NormalizationError("Backend response is missing the 'output' field")

    try:
        content = base64.b64decode(output, validate=True)
    except (binascii.Error, ValueError) as e:
        raise NormalizationError("Backend 'output' field is not valid base64") from e

    if not content:
        raise NormalizationError("Backend 'output' field decoded to no data")

    content_type = sniff_content_type(content, fallback_content_type)

    job_id = envelope.get("id")
    result = GenerationResult(
        content=content,
        content_type=content_type,
        delay_time=_optional_number(envelope, "delayTime"),
        execution_time=_optional_number(envelope, "executionTime"),
        job_id=str(job_id) if job_id is not None else None,
    )
    logger.info(
        f"Backend timing: delay={result.delay_time} execution={result.execution_time} "
        f"id={result.job_id}"
    )
    return result
