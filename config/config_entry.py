from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator

from core.delay import ParsedDelay, parse_delay
from core.trigger_counter import COUNTER_CEILING


class ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LogSettings(ConfigModel):
    """Messages logged around a call; rendered with the message renderer."""

    before: str = Field("", description="Message template logged before the call")
    after: str = Field("", description="Message template logged after the call")
    before_level: str = Field("info", alias="beforeLevel")
    after_level: str = Field("info", alias="afterLevel")
    log_on_call: int = Field(1, alias="logOnCall", ge=0, lt=COUNTER_CEILING, description="Log every Nth call (0 disables)")


class DelayedModel(ConfigModel):
    delay: str = Field("", description="Latency specification, e.g. '<5ms>' or '2s<>5s'")

    _parsed_delay: ParsedDelay = PrivateAttr(default_factory=ParsedDelay)

    @model_validator(mode="after")
    def parse_delay_value(self):
        self._parsed_delay = parse_delay(self.delay)
        return self

    @property
    def parsed_delay(self) -> ParsedDelay:
        return self._parsed_delay


class Route(DelayedModel):
    uri: str = Field(..., min_length=1, description="Downstream target, called as http://<uri>")
    stop_on_fail: bool = Field(False, alias="stopOnFail")
    logging: LogSettings = Field(default_factory=LogSettings)


class Endpoint(DelayedModel):
    uri: str = Field(..., description="Path served by this endpoint")
    error_on_call: int = Field(0, alias="errorOnCall", ge=0, lt=COUNTER_CEILING, description="Fail every Nth call (0 disables)")
    error_logging: LogSettings = Field(default_factory=LogSettings, alias="errorLogging")
    logging: LogSettings = Field(default_factory=LogSettings)
    body: Dict[str, Any] = Field(default_factory=dict, description="Merged into the success response")
    routes: List[Route] = Field(default_factory=list)

    @field_validator('uri')
    @classmethod
    def validate_uri(cls, v):
        if not v.startswith('/'):
            raise ValueError("Endpoint uri must start with /")
        return v


class Certificate(ConfigModel):
    enabled: bool = False
    cert_file: Optional[str] = Field(None, alias="certificate")
    key_file: Optional[str] = Field(None, alias="key")

    @model_validator(mode="after")
    def require_files(self):
        if self.enabled and not (self.cert_file and self.key_file):
            raise ValueError("certificate and key are required when the certificate is enabled")
        return self


class MemStress(ConfigModel):
    enabled: bool = False
    delay: str = ""
    mem_size: str = Field("10%", alias="memSize")
    growth_time: str = Field("10s", alias="growthTime")


class StressNg(ConfigModel):
    enabled: bool = False
    delay: str = ""
    args: List[str] = Field(default_factory=lambda: ["-c", "0", "-l", "10"])


class ExporterConfig(ConfigModel):
    enabled: bool = False
    http_endpoint: str = Field("", alias="http-endpoint")
    http_endpoint_url: str = Field("", alias="http-endpoint-url")
    grpc_endpoint: str = Field("", alias="grpc-endpoint")
    grpc_endpoint_url: str = Field("", alias="grpc-endpoint-url")
    insecure: bool = False

    @property
    def uses_grpc(self) -> bool:
        return bool(self.grpc_endpoint or self.grpc_endpoint_url)

    @model_validator(mode="after")
    def require_single_endpoint(self):
        configured = [e for e in (self.http_endpoint, self.http_endpoint_url,
                                  self.grpc_endpoint, self.grpc_endpoint_url) if e]
        if self.enabled and len(configured) != 1:
            raise ValueError("exactly one http or grpc endpoint is required when opentelemetry export is enabled")
        return self


class TraceConfig(ExporterConfig):
    tracer_name: str = Field("", alias="tracer-name")


class MetricsConfig(ExporterConfig):
    pass


class OtelConfig(ConfigModel):
    trace: TraceConfig = Field(default_factory=TraceConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @property
    def active(self) -> bool:
        return self.trace.enabled or self.metrics.enabled


class Configuration(ConfigModel):
    service_name: str = Field("SimService", alias="serviceName")
    address: str = "0.0.0.0"
    port: int = Field(8080, ge=1, le=65535)
    log_level: str = Field("info", alias="logLevel")
    logging: LogSettings = Field(default_factory=LogSettings)
    certificate: Certificate = Field(default_factory=Certificate)
    endpoints: List[Endpoint] = Field(default_factory=list)
    mem_stress: MemStress = Field(default_factory=MemStress, alias="memstress")
    stress_ng: StressNg = Field(default_factory=StressNg, alias="stressng")
    otel: OtelConfig = Field(default_factory=OtelConfig)

    @field_validator('endpoints')
    @classmethod
    def validate_unique_uris(cls, v):
        seen = set()
        duplicates = set()
        for endpoint in v:
            if endpoint.uri in seen:
                duplicates.add(endpoint.uri)
            seen.add(endpoint.uri)
        if duplicates:
            raise ValueError(f"Duplicate endpoint uri: {', '.join(sorted(duplicates))}")
        return v
