import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, List, Mapping, Optional

import httpx
from fastapi import FastAPI, Request
from opentelemetry import metrics
from opentelemetry.trace import Span, SpanKind
from starlette.responses import JSONResponse, Response

from config.config_entry import Configuration, Endpoint
from core.call_logger import CallLogger
from core.exceptions import SimulatedError
from core.message_renderer import MessageRenderer
from core.route_chain import RouteChainExecutor
from core.tracing import TracePropagator
from core.trigger_counter import TriggerCounter

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

# Status reported when the client went away before the response was ready.
CLIENT_CLOSED_REQUEST = 499


def build_data_context(service_name: str, env: Mapping[str, str], **extra: Any) -> Dict[str, Any]:
    """Data made available to message templates."""
    data = {
        "Env": env,
        "ServiceName": service_name,
    }
    data.update(extra)
    return data


@dataclass
class EndpointLoggers:
    endpoint: CallLogger
    error: CallLogger
    routes: List[CallLogger] = field(default_factory=list)


class EndpointDispatcher:
    """
    Entry point for simulated endpoints.

    Owns the uri -> endpoint table, the per-endpoint error counters and the
    per-endpoint/route call loggers. All tables are built once from the
    configuration and never replaced.
    """

    def __init__(self,
                 conf: Configuration,
                 http_client: httpx.AsyncClient,
                 tracing: Optional[TracePropagator] = None,
                 renderer: Optional[MessageRenderer] = None,
                 env: Optional[Mapping[str, str]] = None,
                 disconnect_poll_interval: float = 0.25):
        self.service_name = conf.service_name
        self.tracing = tracing or TracePropagator()
        self.renderer = renderer or MessageRenderer()
        self.env = dict(os.environ) if env is None else dict(env)
        self.disconnect_poll_interval = disconnect_poll_interval
        self.executor = RouteChainExecutor(http_client, self.tracing, self.service_name)

        self.endpoints: Dict[str, Endpoint] = {}
        self.error_counters: Dict[str, TriggerCounter] = {}
        self.loggers: Dict[str, EndpointLoggers] = {}
        for endpoint in conf.endpoints:
            self.endpoints[endpoint.uri] = endpoint
            self.error_counters[endpoint.uri] = TriggerCounter(endpoint.error_on_call)
            self.loggers[endpoint.uri] = EndpointLoggers(
                endpoint=CallLogger(endpoint.logging, self.renderer),
                error=CallLogger(endpoint.error_logging, self.renderer),
                routes=[CallLogger(route.logging, self.renderer) for route in endpoint.routes],
            )

        meter = metrics.get_meter(__name__)
        self.request_counter = meter.create_counter(
            "sim.requests", unit="{request}", description="Requests handled per endpoint")
        self.request_duration = meter.create_histogram(
            "sim.request.duration", unit="ms", description="Request handling time per endpoint")

    def register(self, app: FastAPI) -> None:
        """Register one handler per endpoint. Registration happens once."""
        for uri in self.endpoints:
            app.add_api_route(uri, self._make_handler(uri), methods=ALL_METHODS, include_in_schema=False)
            logger.info(f"  ↪ {uri}")

    def _make_handler(self, uri: str):
        async def handle_endpoint(request: Request) -> Response:
            return await self.handle(uri, request)
        return handle_endpoint

    def span_name(self, path: str) -> str:
        return f"{self.service_name}.{path.replace('/', '.').lstrip('.')}"

    def data_context(self, **extra: Any) -> Dict[str, Any]:
        return build_data_context(self.service_name, self.env, **extra)

    async def handle(self, uri: str, request: Request) -> Response:
        endpoint = self.endpoints[uri]
        start_time = time.perf_counter()
        parent = self.tracing.extract(request.headers)

        with self.tracing.start_span(self.span_name(request.url.path), context=parent, kind=SpanKind.SERVER) as span:
            span.set_attribute("http.request.method", request.method)
            span.set_attribute("url.path", request.url.path)
            response = await self._run_until_disconnect(request, self._dispatch(endpoint, request, span))
            span.set_attribute("http.response.status_code", response.status_code)

        attributes = {"uri": uri, "status": response.status_code}
        self.request_counter.add(1, attributes)
        self.request_duration.record((time.perf_counter() - start_time) * 1000, attributes)
        return response

    async def _dispatch(self, endpoint: Endpoint, request: Request, span: Span) -> Response:
        if request.method != "GET":
            logger.debug(f"method not allowed: {request.method} {request.url.path}")
            span.add_event("method not allowed", {"http.request.method": request.method})
            return Response(status_code=405, headers={"Allow": "GET"})

        data = self.data_context(Endpoint=endpoint)
        error_response = self._simulate_error(endpoint, data, span)
        if error_response is not None:
            return error_response

        loggers = self.loggers[endpoint.uri]
        loggers.endpoint.log_before(data)
        logger.debug(f"{request.method} {request.url.path}")
        response = await self.executor.execute(endpoint, loggers.routes, data)
        loggers.endpoint.log_after(data)
        return response

    def _simulate_error(self, endpoint: Endpoint, data: Dict[str, Any], span: Span) -> Optional[Response]:
        counter = self.error_counters[endpoint.uri]
        if not counter.active:
            return None

        counter.increment()
        if not counter.should_trigger():
            return None

        message = self.loggers[endpoint.uri].error.before_message(data)
        if not message:
            message = f"error while processing: {endpoint.uri}"

        self.tracing.record_error(span, SimulatedError(message))
        counter.reset()
        logger.error(message)
        logger.debug(f"err simulation triggered-nth-call={counter.trigger_on}")
        return JSONResponse(status_code=500, content={"message": message})

    async def _run_until_disconnect(self, request: Request, work: Awaitable[Response]) -> Response:
        """Run the request work, cancelling it if the client disconnects."""
        task = asyncio.ensure_future(work)
        try:
            while True:
                done, _ = await asyncio.wait({task}, timeout=self.disconnect_poll_interval)
                if done:
                    return task.result()
                if await request.is_disconnected():
                    logger.info(f"client disconnected, cancelling {request.url.path}")
                    task.cancel()
                    await asyncio.wait({task})
                    return Response(status_code=CLIENT_CLOSED_REQUEST)
        finally:
            if not task.done():
                task.cancel()
