# core/server_factory.py

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from config.config_entry import Configuration
from core.dispatcher import EndpointDispatcher
from core.message_renderer import MessageRenderer
from core.tracing import TracePropagator


def create_server(conf: Configuration,
                  http_client: Optional[httpx.AsyncClient] = None,
                  tracing: Optional[TracePropagator] = None,
                  renderer: Optional[MessageRenderer] = None,
                  env=None) -> FastAPI:
    """
    Creates and configures a FastAPI app serving the configured endpoints.

    Downstream routes are called with `http_client`; when none is given the
    app owns a client without timeouts and closes it on shutdown.
    """
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=None)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_client:
            await client.aclose()

    # docs routes are disabled so endpoints may use any path
    app = FastAPI(title=conf.service_name, docs_url=None, redoc_url=None, openapi_url=None, lifespan=lifespan)

    dispatcher = EndpointDispatcher(
        conf,
        client,
        tracing=tracing or TracePropagator.from_config(conf.otel),
        renderer=renderer,
        env=env,
    )
    dispatcher.register(app)
    app.state.dispatcher = dispatcher
    return app
