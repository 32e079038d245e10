import logging
import random
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from jinja2 import Template, TemplateSyntaxError
from jinja2.sandbox import SandboxedEnvironment

logger = logging.getLogger(__name__)


def rand_int(low: int, high: int) -> int:
    """Random integer in [low, high)."""
    return random.randrange(low, high)


def now() -> str:
    return datetime.now(timezone.utc).isoformat()


class MessageEnvironment(SandboxedEnvironment):
    """
    Sandboxed Jinja environment for configured log and error messages.

    Messages use '[[ expr ]]' for expressions and '[% stmt %]' for
    statements so they can sit inside TOML/YAML and Helm files untouched.
    """

    def __init__(self, **kwargs):
        kwargs.setdefault("variable_start_string", "[[")
        kwargs.setdefault("variable_end_string", "]]")
        kwargs.setdefault("block_start_string", "[%")
        kwargs.setdefault("block_end_string", "%]")
        kwargs.setdefault("comment_start_string", "[#")
        kwargs.setdefault("comment_end_string", "#]")
        kwargs.setdefault("trim_blocks", True)
        kwargs.setdefault("lstrip_blocks", True)
        super().__init__(**kwargs)
        self.globals.update(
            rand_int=rand_int,
            choice=random.choice,
            now=now,
        )


class MessageRenderer:
    """Renders message templates against a request data context."""

    def __init__(self, environment: Optional[SandboxedEnvironment] = None):
        self.environment = environment or MessageEnvironment()
        self._templates: Dict[str, Optional[Template]] = {}
        self._lock = threading.Lock()

    def _get_template(self, source: str) -> Optional[Template]:
        with self._lock:
            if source in self._templates:
                return self._templates[source]

        try:
            template = self.environment.from_string(source)
        except TemplateSyntaxError as e:
            logger.error(f"failed to parse log template {source!r}: {e}")
            template = None

        with self._lock:
            self._templates[source] = template
        return template

    def render(self, source: str, data: Mapping[str, Any]) -> str:
        """
        Render a template; any failure is logged and yields an empty string.
        """
        if not source:
            return ""

        template = self._get_template(source)
        if template is None:
            return ""

        try:
            return template.render(**data).strip()
        except Exception as e:
            logger.error(f"error executing template {source!r}: {e}")
            return ""
