from __future__ import annotations

import sys
from typing import Any, Protocol, TextIO


class Tracer(Protocol):
    def trace(self, name: str, **fields: Any) -> None: ...


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


class StderrTracer:
    """Print trace lines as `[prefix] name key=value ...`."""

    def __init__(self, prefix: str = "heatmap", stream: TextIO | None = None) -> None:
        self.prefix = prefix
        self._stream = stream

    def trace(self, name: str, **fields: Any) -> None:
        parts = [f"{key}={_format_value(value)}" for key, value in fields.items()]
        line = " ".join([name, *parts])
        print(f"[{self.prefix}] {line}", file=self._stream or sys.stderr, flush=True)


class RecordingTracer:
    def __init__(self) -> None:
        self.records: list[tuple[str, dict[str, Any]]] = []

    def trace(self, name: str, **fields: Any) -> None:
        self.records.append((name, dict(fields)))

    def names(self) -> list[str]:
        return [name for name, _ in self.records]

    def of(self, name: str) -> list[dict[str, Any]]:
        return [fields for record_name, fields in self.records if record_name == name]


def emit(tracer: Tracer | None, name: str, **fields: Any) -> None:
    if tracer is None:
        return
    tracer.trace(name, **fields)
