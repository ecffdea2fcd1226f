"""Validation of raw generation request bodies.

The validator turns an arbitrary decoded JSON body into a fully defaulted
:class:`~imagegen.core.models.GenerationRequest`, or into a list of
field-level :class:`Violation` records.  It never performs I/O and must run
before any backend call is attempted.

Rules are data: :data:`GENERATION_RULES` is a table of :class:`FieldRule`
entries, so a backend that accepts extra parameters can extend the table
without touching the call sites::

    rules = GENERATION_RULES + (FieldRule("strength", "number", maximum=1.0),)
    result = check_generation_request(body, rules)

Two entry points are provided:

- :func:`check_generation_request` returns a tagged :class:`ValidationResult`
  (``ok`` with ``request``, or not ``ok`` with ``violations``).
- :func:`validate_generation_request` returns the request or raises
  :class:`ValidationError`.

Violation codes mirror the ones the frontend already knows how to display:
``invalid_type``, ``too_small``, ``too_big`` and ``invalid_enum_value``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from .models import (
    DEFAULT_ACCEPT,
    DEFAULT_GUIDANCE_SCALE,
    DEFAULT_INFERENCE_STEPS,
    SUPPORTED_MEDIA_TYPES,
    GenerationRequest,
)

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class Violation:
    """A single field-level validation failure."""

    path: tuple[str, ...]
    code: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-serialisable detail entry for API responses."""
        return {"path": list(self.path), "code": self.code, "message": self.message}


class ValidationError(Exception):
    """Request body failed validation.

    Carries every violation found, not only the first one.  The string form
    joins the individual messages so it can be logged or shown directly.
    """

    def __init__(self, violations: list[Violation] | tuple[Violation, ...]):
        self.violations = tuple(violations)
        super().__init__(
            "; ".join(f"{'.'.join(v.path) or '<body>'}: {v.message}" for v in self.violations)
        )

    @property
    def fields(self) -> list[str]:
        """Names of the fields that failed, in table order."""
        return [v.path[0] for v in self.violations if v.path]


@dataclass(frozen=True)
class FieldRule:
    """Constraint for one request field.

    Attributes:
        name: Key in the request body and attribute on the request.
        kind: ``"string"``, ``"number"``, ``"integer"`` or ``"choice"``.
        required: Fail with ``invalid_type`` when the key is absent or null.
        default: Value used when an optional key is absent or null.
        minimum: Inclusive lower bound for numbers.
        maximum: Inclusive upper bound for numbers.
        min_length: Minimum length for strings.
        choices: Allowed values for ``"choice"`` fields.
    """

    name: str
    kind: Literal["string", "number", "integer", "choice"]
    required: bool = False
    default: Any = None
    minimum: float | None = None
    maximum: float | None = None
    min_length: int | None = None
    choices: tuple[str, ...] = field(default_factory=tuple)


GENERATION_RULES: tuple[FieldRule, ...] = (
    FieldRule("prompt", "string", required=True, min_length=1),
    FieldRule(
        "num_inference_steps",
        "number",
        default=DEFAULT_INFERENCE_STEPS,
        minimum=0,
        maximum=100,
    ),
    FieldRule(
        "guidance_scale",
        "number",
        default=DEFAULT_GUIDANCE_SCALE,
        minimum=0,
        maximum=100,
    ),
    FieldRule("aspect_ratio", "string", required=True, min_length=1),
    FieldRule("accept", "choice", default=DEFAULT_ACCEPT, choices=SUPPORTED_MEDIA_TYPES),
    FieldRule("seed", "integer", default=None),
)


@dataclass(frozen=True)
class ValidationResult:
    """Tagged outcome of :func:`check_generation_request`."""

    request: GenerationRequest | None = None
    violations: tuple[Violation, ...] = ()

    @property
    def ok(self) -> bool:
        return self.request is not None and not self.violations

    def unwrap(self) -> GenerationRequest:
        """Return the request or raise :class:`ValidationError`."""
        if not self.ok:
            raise ValidationError(self.violations)
        return self.request


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


def _format_bound(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)


def _check_field(rule: FieldRule, value: Any) -> Violation | None:
    """Check one present, non-null value against its rule."""
    path = (rule.name,)

    if rule.kind == "string":
        if not isinstance(value, str):
            return Violation(path, "invalid_type", f"Expected string, received {_type_name(value)}")
        if rule.min_length is not None and len(value) < rule.min_length:
            return Violation(
                path,
                "too_small",
                f"String must contain at least {rule.min_length} character(s)",
            )
        return None

    if rule.kind in ("number", "integer"):
        # bool is an int subclass but never a valid number here.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return Violation(path, "invalid_type", f"Expected number, received {_type_name(value)}")
        # Only floats can be non-finite; large ints must not go through float().
        if isinstance(value, float) and not math.isfinite(value):
            return Violation(path, "invalid_type", "Expected finite number")
        if rule.kind == "integer" and isinstance(value, float) and not value.is_integer():
            return Violation(path, "invalid_type", "Expected integer, received float")
        if rule.minimum is not None and value < rule.minimum:
            return Violation(
                path,
                "too_small",
                f"Number must be greater than or equal to {_format_bound(rule.minimum)}",
            )
        if rule.maximum is not None and value > rule.maximum:
            return Violation(
                path,
                "too_big",
                f"Number must be less than or equal to {_format_bound(rule.maximum)}",
            )
        return None

    if rule.kind == "choice":
        if value not in rule.choices:
            expected = " | ".join(f"'{c}'" for c in rule.choices)
            return Violation(
                path,
                "invalid_enum_value",
                f"Invalid enum value. Expected {expected}, received '{value}'",
            )
        return None

    raise ValueError(f"Unknown rule kind: {rule.kind}")


def check_generation_request(
    raw: Any,
    rules: tuple[FieldRule, ...] = GENERATION_RULES,
) -> ValidationResult:
    """Validate a raw request body and apply defaults.

    Unknown keys are ignored.  Optional fields that are absent or ``null``
    receive their rule's default; only present values of the wrong type or
    outside their range are violations.

    Args:
        raw: Decoded JSON body (anything; non-objects are rejected).
        rules: Field rule table to validate against.

    Returns:
        A :class:`ValidationResult`.  On success ``request`` holds the typed
        request; otherwise ``violations`` lists every failing field.
    """
    if not isinstance(raw, Mapping):
        return ValidationResult(
            violations=(
                Violation((), "invalid_type", f"Expected object, received {_type_name(raw)}"),
            )
        )

    values: dict[str, Any] = {}
    violations: list[Violation] = []

    for rule in rules:
        value = raw.get(rule.name, _MISSING)
        if value is _MISSING or value is None:
            if rule.required:
                violations.append(Violation((rule.name,), "invalid_type", "Required"))
            else:
                values[rule.name] = rule.default
            continue

        violation = _check_field(rule, value)
        if violation is not None:
            violations.append(violation)
        elif rule.kind == "integer":
            values[rule.name] = int(value)
        else:
            values[rule.name] = value

    if violations:
        return ValidationResult(violations=tuple(violations))

    known = set(GenerationRequest.__dataclass_fields__) - {"extra"}
    request = GenerationRequest(
        **{k: v for k, v in values.items() if k in known},
        extra={k: v for k, v in values.items() if k not in known and v is not None},
    )
    return ValidationResult(request=request)


def validate_generation_request(raw: Any) -> GenerationRequest:
    """Validate a raw request body, raising on failure.

    Args:
        raw: Decoded JSON body.

    Returns:
        Fully defaulted :class:`GenerationRequest`.

    Raises:
        ValidationError: If any field violates its rule.
    """
    result = check_generation_request(raw)
    if not result.ok:
        logger.info(f"Rejected generation request: {len(result.violations)} violation(s)")
    return result.unwrap()
