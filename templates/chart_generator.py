import logging
from pathlib import Path
from typing import Any, Dict, Union

from jinja2 import StrictUndefined

from config.config_loader import ConfigLoader
from core.message_renderer import MessageEnvironment
from templates.chart_templates import CHART_FILES, SERVICE_FILES

logger = logging.getLogger(__name__)


def sanitize_name(name: str) -> str:
    return name.lower().replace(" ", "-")


class ChartGenerator:
    """Writes a Helm chart deploying every service of a multi-service config."""

    def __init__(self, chart_name: str, output_dir: Union[str, Path]):
        self.chart_name = chart_name
        self.chart_dir = Path(output_dir) / chart_name
        self.environment = MessageEnvironment(undefined=StrictUndefined, keep_trailing_newline=True)

    def render_to_file(self, template: str, target: Path, data: Dict[str, Any]) -> Path:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.environment.from_string(template).render(**data), encoding="utf-8")
        logger.debug(f"wrote {target}")
        return target

    def generate(self, config_file: Union[str, Path]) -> Path:
        """
        Generate the chart from a TOML file whose services are separated by '+++'.

        Raises:
            ConfigLoadError: if any of the service configurations is invalid
        """
        documents = ConfigLoader.load_documents(config_file)

        chart_data = {"chart_name": self.chart_name}
        for file_name, template in CHART_FILES.items():
            self.render_to_file(template, self.chart_dir / file_name, chart_data)

        template_dir = self.chart_dir / "templates"
        for content, configuration in documents:
            service_name = sanitize_name(configuration.service_name)
            service_data = {"service_name": service_name, "config": content.strip()}
            for suffix, template in SERVICE_FILES.items():
                self.render_to_file(template, template_dir / f"{service_name}-{suffix}.yaml", service_data)
            logger.info(f"📦 Added service {service_name}")

        return self.chart_dir


def generate_chart(config_file: Union[str, Path], chart_name: str, output_dir: Union[str, Path]) -> Path:
    return ChartGenerator(chart_name, output_dir).generate(config_file)
