from datetime import timedelta

import pytest

from config.config_loader import ConfigLoader, ConfigLoadError

TOML_CONFIG = """
serviceName = "checkout"
port = 9000
logLevel = "debug"

[logging]
before = "starting [[ ServiceName ]]"

[[endpoints]]
uri = "/pay"
delay = "<5ms>"
errorOnCall = 4
body = { provider = "acme", retries = 2 }

[endpoints.errorLogging]
before = "payment failed"

[[endpoints.routes]]
uri = "ledger:8080/entry"
stopOnFail = true
delay = "10ms<>20ms"

[endpoints.routes.logging]
after = "ledger answered"
logOnCall = 5
"""

YAML_CONFIG = """
serviceName: inventory
endpoints:
  - uri: /stock
    body:
      items: 3
    routes:
      - uri: warehouse/count
"""


def test_load_toml():
    conf = ConfigLoader.load_from_string(TOML_CONFIG, "toml")

    assert conf.service_name == "checkout"
    assert conf.port == 9000
    assert conf.log_level == "debug"
    assert conf.logging.before == "starting [[ ServiceName ]]"

    endpoint = conf.endpoints[0]
    assert endpoint.uri == "/pay"
    assert endpoint.error_on_call == 4
    assert endpoint.error_logging.before == "payment failed"
    assert endpoint.body == {"provider": "acme", "retries": 2}
    assert endpoint.parsed_delay.before == timedelta(milliseconds=5)

    route = endpoint.routes[0]
    assert route.uri == "ledger:8080/entry"
    assert route.stop_on_fail is True
    assert route.parsed_delay.after == timedelta(milliseconds=20)
    assert route.logging.log_on_call == 5


def test_load_yaml_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(YAML_CONFIG)

    conf = ConfigLoader.load(path)

    assert conf.service_name == "inventory"
    assert conf.endpoints[0].routes[0].uri == "warehouse/count"
    assert conf.endpoints[0].routes[0].stop_on_fail is False


def test_defaults():
    conf = ConfigLoader.load()

    assert conf.service_name == "SimService"
    assert conf.address == "0.0.0.0"
    assert conf.port == 8080
    assert conf.log_level == "info"
    assert conf.logging.log_on_call == 1
    assert conf.endpoints == []
    assert conf.stress_ng.args == ["-c", "0", "-l", "10"]
    assert conf.mem_stress.mem_size == "10%"
    assert conf.mem_stress.growth_time == "10s"
    assert not conf.otel.active


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SERVICENAME", "from-env")
    monkeypatch.setenv("PORT", "9191")
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_TRACES_ENABLED", "true")
    monkeypatch.setenv("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", "collector:4318")

    conf = ConfigLoader.load_from_string(TOML_CONFIG, "toml")

    assert conf.service_name == "from-env"
    assert conf.port == 9191
    assert conf.otel.trace.enabled
    assert conf.otel.trace.http_endpoint == "collector:4318"
    assert conf.otel.active


def test_overrides_do_not_mutate_input():
    data = {"otel": {"trace": {"tracer-name": "x"}}}
    ConfigLoader.load_from_dict(data, environ={"OTEL_EXPORTER_OTLP_TRACES_TRACER_NAME": "y"})
    assert data == {"otel": {"trace": {"tracer-name": "x"}}}


def test_bad_delay_does_not_fail_loading():
    conf = ConfigLoader.load_from_dict({"endpoints": [{"uri": "/a", "delay": "<soon>"}]})
    assert not conf.endpoints[0].parsed_delay.enabled


def test_out_of_range_delay_does_not_fail_loading():
    conf = ConfigLoader.load_from_dict({"endpoints": [{"uri": "/a", "delay": "99999999999999h"}]})
    assert not conf.endpoints[0].parsed_delay.enabled


@pytest.mark.parametrize("data, fragment", [
    ({"endpoints": [{"uri": "no-slash"}]}, "must start with /"),
    ({"endpoints": [{"uri": "/a"}, {"uri": "/a"}]}, "Duplicate endpoint uri: /a"),
    ({"endpoints": [{"uri": "/a", "errorOnCall": -1}]}, "errorOnCall"),
    ({"endpoints": [{"uri": "/a", "errorOnCall": 1000}]}, "errorOnCall"),
    ({"logging": {"logOnCall": 1000}}, "logOnCall"),
    ({"certificate": {"enabled": True}}, "certificate and key are required"),
    ({"otel": {"trace": {"enabled": True}}}, "exactly one http or grpc endpoint"),
    ({"otel": {"metrics": {"enabled": True, "http-endpoint": "a:1", "grpc-endpoint": "b:2"}}},
     "exactly one http or grpc endpoint"),
])
def test_validation_errors(data, fragment):
    with pytest.raises(ConfigLoadError) as exc_info:
        ConfigLoader.load_from_dict(data, "inline")
    assert fragment in str(exc_info.value)
    assert exc_info.value.file_path == "inline"


def test_missing_file():
    with pytest.raises(ConfigLoadError, match="Config file not found"):
        ConfigLoader.load("does/not/exist.toml")


def test_unsupported_extension(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text("x=1")
    with pytest.raises(ConfigLoadError, match="Unsupported config format"):
        ConfigLoader.load(path)


def test_invalid_toml():
    with pytest.raises(ConfigLoadError, match="Failed to parse TOML"):
        ConfigLoader.load_from_string("serviceName = ", "toml")


def test_load_documents(tmp_path):
    path = tmp_path / "services.toml"
    path.write_text('serviceName = "front"\n+++\nserviceName = "back"\n[[endpoints]]\nuri = "/b"\n')

    documents = ConfigLoader.load_documents(path)

    assert [conf.service_name for _, conf in documents] == ["front", "back"]
    assert documents[1][0].strip().startswith('serviceName = "back"')


def test_load_documents_requires_toml(tmp_path):
    path = tmp_path / "services.yaml"
    path.write_text(YAML_CONFIG)
    with pytest.raises(ConfigLoadError, match="must be TOML"):
        ConfigLoader.load_documents(path)
