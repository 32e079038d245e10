import os
import re
import tomllib
import yaml
import logging
from typing import List, Dict, Any, Optional, Tuple, Union
from pathlib import Path
from pydantic import ValidationError

from config.config_entry import Configuration

logger = logging.getLogger(__name__)

TOML_SUFFIXES = {".toml"}
YAML_SUFFIXES = {".yaml", ".yml"}

# Separates the services of a multi-service TOML file.
DOCUMENT_SEPARATOR = re.compile(r"^\+\+\+\s*$", re.MULTILINE)

# Environment variable -> key path in the configuration mapping.
ENV_OVERRIDES = {
    "SERVICENAME": ("serviceName",),
    "ADDRESS": ("address",),
    "PORT": ("port",),
    "LOGLEVEL": ("logLevel",),
    "OTEL_EXPORTER_OTLP_TRACES_ENABLED": ("otel", "trace", "enabled"),
    "OTEL_EXPORTER_OTLP_TRACES_TRACER_NAME": ("otel", "trace", "tracer-name"),
    "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT": ("otel", "trace", "http-endpoint"),
    "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT_URL": ("otel", "trace", "http-endpoint-url"),
    "OTEL_EXPORTER_OTLP_TRACES_INSECURE": ("otel", "trace", "insecure"),
    "OTEL_EXPORTER_OTLP_METRICS_ENABLED": ("otel", "metrics", "enabled"),
    "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT": ("otel", "metrics", "http-endpoint"),
    "OTEL_EXPORTER_OTLP_METRICS_ENDPOINT_URL": ("otel", "metrics", "http-endpoint-url"),
    "OTEL_EXPORTER_OTLP_METRICS_INSECURE": ("otel", "metrics", "insecure"),
}


class ConfigLoadError(Exception):
    """Raised when configuration loading fails."""

    def __init__(self, message: str, file_path: Optional[str] = None, details: Optional[Any] = None):
        self.message = message
        self.file_path = file_path
        self.details = details
        full_message = f"{message}"
        if file_path:
            full_message += f" [File: {file_path}]"
        if details:
            full_message += f"\nDetails:\n{details}"
        super().__init__(full_message)


def _set_path(data: Dict[str, Any], keys: Tuple[str, ...], value: Any) -> None:
    target = data
    for key in keys[:-1]:
        child = target.get(key)
        if not isinstance(child, dict):
            child = {}
            target[key] = child
        target = child
    target[keys[-1]] = value


class ConfigLoader:
    """Loads and validates simulator configuration from TOML or YAML."""

    @staticmethod
    def load(file_path: Optional[Union[str, Path]] = None) -> Configuration:
        """Load a configuration file, or only defaults and environment overrides when no file is given."""
        if not file_path:
            return ConfigLoader.load_from_dict({}, "defaults")
        return ConfigLoader.load_from_file(file_path)

    @staticmethod
    def load_from_file(file_path: Union[str, Path]) -> Configuration:
        file_path = Path(file_path)
        if not file_path.exists():
            raise ConfigLoadError("Config file not found", str(file_path))

        try:
            content = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigLoadError("Failed to read config file", str(file_path), e)

        configuration = ConfigLoader.load_from_string(content, ConfigLoader.format_of(file_path), file_path)
        logger.info(f"✅ Loaded {len(configuration.endpoints)} endpoints from {file_path}")
        return configuration

    @staticmethod
    def format_of(file_path: Union[str, Path]) -> str:
        suffix = Path(file_path).suffix.lower()
        if suffix in TOML_SUFFIXES:
            return "toml"
        if suffix in YAML_SUFFIXES:
            return "yaml"
        raise ConfigLoadError(f"Unsupported config format '{suffix}'", str(file_path))

    @staticmethod
    def load_from_string(content: str, fmt: str, source: Optional[Union[str, Path]] = None) -> Configuration:
        source_str = str(source) if source else fmt
        try:
            if fmt == "toml":
                data = tomllib.loads(content)
            elif fmt == "yaml":
                data = yaml.safe_load(content)
            else:
                raise ConfigLoadError(f"Unsupported config format '{fmt}'", source_str)
        except tomllib.TOMLDecodeError as e:
            raise ConfigLoadError("Failed to parse TOML", source_str, e)
        except yaml.YAMLError as e:
            raise ConfigLoadError("Failed to parse YAML", source_str, e)

        return ConfigLoader.load_from_dict(data or {}, source_str)

    @staticmethod
    def load_from_dict(data: Dict[str, Any], source: Optional[Union[str, Path]] = None,
                       environ: Optional[Dict[str, str]] = None) -> Configuration:
        source_str = str(source) if source else "dictionary"

        if not isinstance(data, dict):
            raise ConfigLoadError("Configuration must be a mapping", source_str)

        data = ConfigLoader.apply_env_overrides(data, os.environ if environ is None else environ)

        try:
            return Configuration.model_validate(data)
        except ValidationError as e:
            raise ConfigLoadError(
                f"Config validation failed with {e.error_count()} error(s)",
                source_str,
                str(e)
            )

    @staticmethod
    def apply_env_overrides(data: Dict[str, Any], environ) -> Dict[str, Any]:
        merged = _copy_nested(data)
        for name, keys in ENV_OVERRIDES.items():
            value = environ.get(name)
            if not value:
                continue
            _set_path(merged, keys, value)
            logger.debug(f"config override from environment: {name}")
        return merged

    @staticmethod
    def load_documents(file_path: Union[str, Path]) -> List[Tuple[str, Configuration]]:
        """
        Load a multi-service TOML file whose services are separated by '+++' lines.

        Returns:
            (raw TOML text, validated configuration) for every service
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise ConfigLoadError("Config file not found", str(file_path))
        if ConfigLoader.format_of(file_path) != "toml":
            raise ConfigLoadError("Multi-service configuration must be TOML", str(file_path))

        content = file_path.read_text(encoding="utf-8")
        documents = [part for part in DOCUMENT_SEPARATOR.split(content) if part.strip()]
        if not documents:
            raise ConfigLoadError("No configuration found", str(file_path))

        loaded = []
        for i, document in enumerate(documents):
            configuration = ConfigLoader.load_from_string(document, "toml", f"{file_path}#{i + 1}")
            loaded.append((document, configuration))
        return loaded


def _copy_nested(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: _copy_nested(v) if isinstance(v, dict) else v for k, v in data.items()}
