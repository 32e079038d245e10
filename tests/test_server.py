import logging

import pytest
import uvicorn
from fastapi.testclient import TestClient
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter as GrpcSpanExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter as HttpSpanExporter

from config.config_entry import Configuration, TraceConfig
from core import server
from core.server_factory import create_server
from core.telemetry import create_span_exporter, http_export_url, init_open_telemetry


@pytest.fixture
def uvicorn_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr(server, "configure_logging", lambda level: logging.INFO)
    return calls


def test_start_server_runs_uvicorn(uvicorn_calls, caplog):
    conf = Configuration(serviceName="svc", port=9001, logging={"before": "hello from [[ ServiceName ]]"},
                         endpoints=[{"uri": "/a"}])

    with caplog.at_level(logging.INFO):
        server.start_server(conf)

    app, kwargs = uvicorn_calls[0]
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["port"] == 9001
    assert kwargs["log_level"] == "info"
    assert "ssl_certfile" not in kwargs
    assert app.state.dispatcher.service_name == "svc"
    assert "hello from svc" in caplog.text


def test_start_server_with_certificate(uvicorn_calls):
    conf = Configuration(certificate={"enabled": True, "certificate": "cert.pem", "key": "key.pem"})

    server.start_server(conf)

    _, kwargs = uvicorn_calls[0]
    assert kwargs["ssl_certfile"] == "cert.pem"
    assert kwargs["ssl_keyfile"] == "key.pem"


def test_app_owns_http_client_when_none_given():
    conf = Configuration(endpoints=[{"uri": "/a"}])
    app = create_server(conf)

    with TestClient(app) as client:
        assert client.get("/a").json() == {"success": True}

    assert app.state.dispatcher.executor.http_client.is_closed


def test_docs_routes_are_disabled():
    client = TestClient(create_server(Configuration(endpoints=[{"uri": "/a"}])))
    assert client.get("/docs").status_code == 404
    assert client.get("/openapi.json").status_code == 404


# === Telemetry ===

@pytest.mark.parametrize("config, expected", [
    ({"http-endpoint": "collector:4318", "insecure": True}, "http://collector:4318/v1/traces"),
    ({"http-endpoint": "collector:4318"}, "https://collector:4318/v1/traces"),
    ({"http-endpoint-url": "https://otel.example.com"}, "https://otel.example.com/v1/traces"),
    ({"http-endpoint-url": "https://otel.example.com/custom"}, "https://otel.example.com/custom"),
])
def test_http_export_url(config, expected):
    assert http_export_url(TraceConfig(**config), "traces") == expected


def test_exporter_protocol_follows_endpoint():
    http_config = TraceConfig(enabled=True, **{"http-endpoint": "collector:4318"})
    grpc_config = TraceConfig(enabled=True, insecure=True, **{"grpc-endpoint": "collector:4317"})
    assert isinstance(create_span_exporter(http_config), HttpSpanExporter)
    assert isinstance(create_span_exporter(grpc_config), GrpcSpanExporter)


def test_inactive_telemetry_installs_nothing():
    shutdown = init_open_telemetry(Configuration().otel, "svc")
    shutdown()
