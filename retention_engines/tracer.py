"""
retention_engines.tracer -- Engine invocation tracer emitting RETENTION_ENGINE_TRACE.

Responsibility:
    Provide a decorator (``@traced_engine``) that wraps pure engine
    invocations with one structured trace record: engine name, engine
    version, input fingerprint (SHA-256 of selected arguments) and
    duration.

Architecture position:
    Engines -- infrastructure support for the pure engine layer.
    Emits a log record only; the wrapped function stays pure.

Invariants enforced:
    - Fingerprints are deterministic: mappings are canonicalized with
      sorted keys, sequences keep their order, Decimals use their text.
    - The decorator never mutates arguments or results.

Failure modes:
    - A fingerprint field that names no parameter is recorded as "null".

Usage:
    from retention_engines.tracer import traced_engine

    @traced_engine("iva_validation", "1.0", fingerprint_fields=("lines",))
    def validate_iva_batch(lines, rules=None):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import asdict, is_dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

# Same namespace as the kernel loggers so configure_logging() covers it.
_logger = logging.getLogger("retention_kernel.engines.tracer")


def _canonicalize(value: Any) -> str:
    """Stable text for a value, used only for fingerprinting."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, str):
        return value
    if is_dataclass(value) and not isinstance(value, type):
        return _canonicalize(asdict(value))
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """16-hex-char SHA-256 prefix over the named arguments."""
    parts = [
        f"{name}={_canonicalize(arguments.get(name))}"
        for name in fingerprint_fields
    ]
    canonical = "|".join(parts)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator that emits RETENTION_ENGINE_TRACE for an engine call.

    Args:
        engine_name: Engine identifier (e.g., "voucher_numbering").
        engine_version: Engine version (e.g., "1.0").
        fingerprint_fields: Parameter names (positional or keyword) to
            include in the input fingerprint.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fp = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            t0 = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - t0) * 1000, 2)

            _logger.info(
                "RETENTION_ENGINE_TRACE",
                extra={
                    "trace_type": "RETENTION_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fp,
                    "duration_ms": duration_ms,
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
