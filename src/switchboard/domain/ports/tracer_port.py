"""Tracer Port - Domain interface for span emission."""

from collections.abc import Mapping
from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class SpanPort(Protocol):
    """A started span."""

    def set_attribute(self, key: str, value: Any) -> None: ...

    def add_event(self, name: str, attributes: Optional[Mapping[str, Any]] = None) -> None: ...

    def set_status(self, ok: bool, description: Optional[str] = None) -> None: ...

    def record_exception(self, exception: BaseException) -> None: ...

    def end(self) -> None: ...


@runtime_checkable
class TracerPort(Protocol):
    """Protocol for starting spans."""

    def start_span(self, name: str, attributes: Optional[Mapping[str, Any]] = None) -> SpanPort:
        """Start a span; callers must call ``end()``."""
        ...


class NoopSpan:
    """Span that records nothing."""

    def set_attribute(self, key: str, value: Any) -> None:
        return None

    def add_event(self, name: str, attributes: Optional[Mapping[str, Any]] = None) -> None:
        return None

    def set_status(self, ok: bool, description: Optional[str] = None) -> None:
        return None

    def record_exception(self, exception: BaseException) -> None:
        return None

    def end(self) -> None:
        return None


class NoopTracer:
    """Tracer used when no tracing backend is configured."""

    _SPAN = NoopSpan()

    def start_span(self, name: str, attributes: Optional[Mapping[str, Any]] = None) -> SpanPort:
        return self._SPAN
