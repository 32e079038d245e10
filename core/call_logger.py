import logging
from typing import Any, Mapping, Optional

from config.config_entry import LogSettings
from core.message_renderer import MessageRenderer
from core.trigger_counter import TriggerCounter

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def level_for(name: Optional[str]) -> int:
    return LOG_LEVELS.get((name or "").lower(), logging.INFO)


class CallLogger:
    """
    Emits the configured before/after messages of a service, endpoint or route.

    With log_on_call == 0 nothing is logged, with 1 every call is logged, and
    with N > 1 every Nth call. When a before message is configured the after
    message is not sampled again, so the pair is never split.
    """

    def __init__(self, settings: LogSettings, renderer: MessageRenderer, output: Optional[logging.Logger] = None):
        self.settings = settings
        self.renderer = renderer
        self.output = output or logger
        self.counter = TriggerCounter(settings.log_on_call, active=True) if settings.log_on_call > 1 else None

    def before_message(self, data: Mapping[str, Any]) -> str:
        return self.renderer.render(self.settings.before, data)

    def after_message(self, data: Mapping[str, Any]) -> str:
        return self.renderer.render(self.settings.after, data)

    def log_before(self, data: Mapping[str, Any]) -> None:
        if self.settings.before and self._should_log(is_after_call=False):
            self._emit(self.settings.before_level, self.before_message(data))

    def log_after(self, data: Mapping[str, Any]) -> None:
        if self.settings.after and self._should_log(is_after_call=True):
            self._emit(self.settings.after_level, self.after_message(data))

    def _should_log(self, is_after_call: bool) -> bool:
        if self.settings.log_on_call == 0:
            return False
        if self.counter is None:
            return True
        if is_after_call and self.settings.before:
            # the before message already counted this call
            return True
        return self.counter.hit()

    def _emit(self, level_name: str, message: str) -> None:
        if not message:
            return
        level = level_for(level_name)
        for line in message.split("\n"):
            self.output.log(level, line)
