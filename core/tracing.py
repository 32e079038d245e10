import logging
from typing import Dict, Mapping, Optional

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import Span, SpanKind, Status, StatusCode, Tracer
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from config.config_entry import OtelConfig

logger = logging.getLogger(__name__)

TRACE_PARENT = "traceparent"
TRACE_STATE = "tracestate"
TRACE_HEADERS = (TRACE_PARENT, TRACE_STATE)


class TracePropagator:
    """
    Starts spans and moves W3C trace context in and out of HTTP headers.

    Only the traceparent and tracestate headers are read and written. When
    tracing is disabled a no-op tracer is used and no headers are touched.
    """

    def __init__(self, tracer: Optional[Tracer] = None):
        self.enabled = tracer is not None
        self.tracer = tracer or trace.NoOpTracer()
        self.propagator = TraceContextTextMapPropagator()

    @classmethod
    def from_config(cls, otel: OtelConfig) -> "TracePropagator":
        if not otel.active:
            return cls()
        return cls(trace.get_tracer(otel.trace.tracer_name or __name__))

    def start_span(self, name: str, context: Optional[Context] = None, kind: SpanKind = SpanKind.INTERNAL):
        """Context manager yielding the new span; the span ends on every exit path."""
        return self.tracer.start_as_current_span(name, context=context, kind=kind)

    @staticmethod
    def current_span() -> Span:
        return trace.get_current_span()

    @staticmethod
    def record_error(span: Span, error: BaseException) -> None:
        span.record_exception(error)
        span.set_status(Status(StatusCode.ERROR, str(error)))

    def extract(self, headers: Mapping[str, str]) -> Optional[Context]:
        if not self.enabled:
            return None
        carrier = {name: headers[name] for name in TRACE_HEADERS if headers.get(name)}
        if not carrier:
            return None
        return self.propagator.extract(carrier=carrier)

    def inject(self, headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {} if headers is None else headers
        if not self.enabled:
            return headers

        carrier: Dict[str, str] = {}
        self.propagator.inject(carrier)
        if carrier.get(TRACE_PARENT):
            headers[TRACE_PARENT] = carrier[TRACE_PARENT]
            if TRACE_STATE in carrier:
                headers[TRACE_STATE] = carrier[TRACE_STATE]
        return headers
