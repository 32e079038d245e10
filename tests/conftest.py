import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from config.config_loader import ENV_OVERRIDES
from core.tracing import TracePropagator
from utils.downstream_recorder import DownstreamRecorder


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch):
    """Keep variables of the host environment out of config loading."""
    for name in list(ENV_OVERRIDES) + ["CONFIG_FILE"]:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def downstream():
    return DownstreamRecorder()


@pytest.fixture
def span_exporter():
    return InMemorySpanExporter()


@pytest.fixture
def tracing(span_exporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    return TracePropagator(provider.get_tracer("tests"))
