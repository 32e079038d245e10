import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from opentelemetry.trace import SpanKind
from starlette.responses import PlainTextResponse, Response

from config.config_entry import Endpoint, Route
from core.call_logger import CallLogger
from core.exceptions import RouteCallError
from core.tracing import TracePropagator

logger = logging.getLogger(__name__)


def span_name_for(service_name: str, uri: str) -> str:
    return f"{service_name}.{uri.replace('/', '.')}"


class RouteChainExecutor:
    """
    Runs the body of one endpoint invocation.

    The endpoint's before-delay is applied, its routes are called one after
    another in declaration order, the after-delay is applied and the success
    body is written. A failing route with stop_on_fail ends the chain with a
    500; other route failures are traced and logged and the chain goes on.
    Nothing is retried.
    """

    def __init__(self, http_client: httpx.AsyncClient, tracing: TracePropagator, service_name: str):
        self.http_client = http_client
        self.tracing = tracing
        self.service_name = service_name

    async def execute(self, endpoint: Endpoint, route_loggers: List[CallLogger], data: Dict[str, Any]) -> Response:
        delay = endpoint.parsed_delay
        await delay.apply_before("routing", "self")

        if not endpoint.routes:
            logger.debug("no routes defined")

        for route, route_logger in zip(endpoint.routes, route_loggers):
            route_data = {**data, "Route": route}
            route_logger.log_before(route_data)
            error = await self.call_route(route)
            if error is not None:
                logger.error(f"Error when calling target={route.uri} error={error}")
                if route.stop_on_fail:
                    self.tracing.record_error(self.tracing.current_span(), error)
                    return PlainTextResponse(str(error), status_code=500)
            route_logger.log_after(route_data)

        await delay.apply_after("routing", "self")
        return self.success_response(endpoint)

    async def call_route(self, route: Route) -> Optional[RouteCallError]:
        """
        Call one downstream route inside its own client span.

        Returns:
            The error when the target could not be reached, otherwise None
        """
        url = f"http://{route.uri}"
        with self.tracing.start_span(span_name_for(self.service_name, route.uri), kind=SpanKind.CLIENT) as span:
            span.set_attribute("url.full", url)
            headers = self.tracing.inject({})
            delay = route.parsed_delay

            await delay.apply_before("route-call", route.uri)
            logger.debug(f"calling target={route.uri}")
            error = None
            try:
                response = await self.http_client.get(url, headers=headers)
                span.set_attribute("http.response.status_code", response.status_code)
            except (httpx.RequestError, httpx.InvalidURL) as e:
                error = RouteCallError(route.uri, e)
            logger.debug(f"returned target={route.uri} error={error}")
            await delay.apply_after("route-call", route.uri)

            if error is not None:
                self.tracing.record_error(span, error)
            return error

    def success_response(self, endpoint: Endpoint) -> Response:
        body = {"success": True}
        body.update(endpoint.body)
        try:
            content = json.dumps(body)
        except (TypeError, ValueError) as e:
            logger.error(f"failed to encode response body for {endpoint.uri}: {e}")
            self.tracing.record_error(self.tracing.current_span(), e)
            return PlainTextResponse(str(e), status_code=500)
        return Response(content=content, media_type="application/json")
