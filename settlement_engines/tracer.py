"""
settlement_engines.tracer -- SETTLEMENT_ENGINE_TRACE records for engine calls.

Responsibility:
    ``@traced_engine`` logs one SETTLEMENT_ENGINE_TRACE line per call of a
    pure engine entry point: engine name and version, how long the call
    took, and a fingerprint of the inputs that determine the result. Two
    runs over identical configuration and leases carry the same
    fingerprint, which is what an auditor compares.

Architecture position:
    Engines -- support code for the calculation layer. Reads arguments and
    logs; never touches the result.

Invariants enforced:
    - The fingerprint is the first 16 hex chars of a SHA-256 over a
      canonical text form of the selected arguments.
    - Canonical text ignores dict ordering and whether an argument was
      passed by position or by keyword.
    - A selected argument that was not passed canonicalizes as "null".

Usage:
    from settlement_engines.tracer import traced_engine

    @traced_engine("settlement", "1.0", fingerprint_fields=("config", "leases"))
    def calculate_settlement(config, leases, *, calculated_at):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

_logger = logging.getLogger("settlement_kernel.engines.tracer")

TRACE_TYPE = "SETTLEMENT_ENGINE_TRACE"
FINGERPRINT_LENGTH = 16


def _canonicalize(value: Any) -> str:
    """Text form of ``value`` that is identical for equal settlement inputs."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, Mapping):
        entries = sorted((str(k), _canonicalize(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in entries) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(map(_canonicalize, value)) + "]"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = ",".join(
            f"{field.name}={_canonicalize(getattr(value, field.name))}"
            for field in dataclasses.fields(value)
        )
        return f"{type(value).__name__}({fields})"
    # str, int, Decimal and Fraction all have a stable str()
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    canonical = "|".join(
        f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return digest[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Wrap an engine entry point so every call emits SETTLEMENT_ENGINE_TRACE.

    ``fingerprint_fields`` names parameters of the wrapped function; with
    none given the trace carries an empty fingerprint.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            if fingerprint_fields:
                arguments = signature.bind_partial(*args, **kwargs).arguments
                fingerprint = compute_input_fingerprint(fingerprint_fields, arguments)

            started = time.monotonic()
            result = func(*args, **kwargs)
            elapsed_ms = (time.monotonic() - started) * 1000

            _logger.info(TRACE_TYPE, extra={
                "trace_type": TRACE_TYPE,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": fingerprint,
                "duration_ms": round(elapsed_ms, 2),
                "function": func.__qualname__,
            })
            return result

        return wrapper

    return decorator
