"""
Engine call tracing.

``@traced_engine`` wraps a pure engine function and writes one
INVENTORY_ENGINE_TRACE record per call with the engine name and version,
a 16 hex character fingerprint of the selected inputs and the elapsed
milliseconds.  Arguments are bound against the function signature, so a
field is fingerprinted the same way whether it was passed by position or by
keyword.  The wrapper never alters arguments or the return value.

If the engine raises, the trace is still written (``outcome="error"``) and
the exception propagates unchanged.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

_logger = logging.getLogger("inventory_kernel.engines.tracer")

TRACE_MESSAGE = "INVENTORY_ENGINE_TRACE"
FINGERPRINT_LENGTH = 16


def _canonical_parts(value: Any) -> Iterable[str]:
    """Yield a stable token stream for ``value``.

    Mappings are emitted in key order; sequences and dataclass fields in
    their own order. Types without a rule use ``repr``.
    """
    if value is None:
        yield "~"
    elif isinstance(value, Enum):
        yield f"e:{value.value}"
    elif isinstance(value, bool):
        yield "b:1" if value else "b:0"
    elif isinstance(value, (int, Decimal, float)):
        yield f"n:{value}"
    elif isinstance(value, str):
        yield f"s:{len(value)}:{value}"
    elif isinstance(value, date):
        yield f"d:{value.isoformat()}"
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        yield f"<{type(value).__name__}"
        for f in dataclasses.fields(value):
            yield f.name
            yield from _canonical_parts(getattr(value, f.name))
        yield ">"
    elif isinstance(value, Mapping):
        yield "{"
        for key in sorted(value, key=str):
            yield str(key)
            yield from _canonical_parts(value[key])
        yield "}"
    elif isinstance(value, (list, tuple)):
        yield "["
        for element in value:
            yield from _canonical_parts(element)
        yield "]"
    else:
        yield f"r:{value!r}"


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """Hash the named arguments into a short hex fingerprint.

    Fields absent from ``arguments`` hash as None.
    """
    digest = hashlib.sha256()
    for name in fingerprint_fields:
        digest.update(name.encode("utf-8"))
        digest.update(b"=")
        for part in _canonical_parts(arguments.get(name)):
            digest.update(part.encode("utf-8"))
            digest.update(b"\x1f")
        digest.update(b"\x1e")
    return digest.hexdigest()[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorate a pure engine so each call emits INVENTORY_ENGINE_TRACE."""

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        def fingerprint(args: tuple, kwargs: dict) -> str:
            if not fingerprint_fields:
                return ""
            try:
                bound = signature.bind_partial(*args, **kwargs)
            except TypeError:
                # Let the real call raise the argument error.
                return ""
            bound.apply_defaults()
            return compute_input_fingerprint(fingerprint_fields, bound.arguments)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            input_fingerprint = fingerprint(args, kwargs)
            started = time.perf_counter()
            outcome = "error"
            try:
                result = func(*args, **kwargs)
                outcome = "ok"
                return result
            finally:
                _logger.info(
                    TRACE_MESSAGE,
                    extra={
                        "trace_type": TRACE_MESSAGE,
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": input_fingerprint,
                        "duration_ms": round((time.perf_counter() - started) * 1000, 3),
                        "outcome": outcome,
                        "function": func.__qualname__,
                    },
                )

        wrapper.engine_name = engine_name  # type: ignore[attr-defined]
        wrapper.engine_version = engine_version  # type: ignore[attr-defined]
        return wrapper

    return decorator
