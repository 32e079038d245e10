import threading
from typing import Optional

COUNTER_CEILING = 1000


class TriggerCounter:
    """
    Thread-safe call counter that fires on every Nth call.

    The counter is shared by all in-flight requests of one endpoint (or one
    log configuration). Callers increment it, ask whether it should trigger,
    and reset it after acting on a trigger. The check and the reset are
    separate lock acquisitions, so two concurrent callers may both observe a
    trigger before either resets; firing is approximately every Nth call.

    Args:
        trigger_on: Fire on this call of every cycle (1-indexed)
        active: Whether the counter can fire at all (defaults to trigger_on > 0)
    """

    def __init__(self, trigger_on: int = 0, active: Optional[bool] = None):
        self.trigger_on = trigger_on
        self.active = trigger_on > 0 if active is None else active
        self._count = 0
        self._lock = threading.Lock()

    def increment(self) -> None:
        with self._lock:
            self._count += 1
            if self._count >= COUNTER_CEILING:
                self._count = 1

    def should_trigger(self) -> bool:
        with self._lock:
            return self.active and self._count >= self.trigger_on

    def reset(self) -> None:
        with self._lock:
            self._count = 0

    def get_count(self) -> int:
        with self._lock:
            return self._count

    def hit(self) -> bool:
        """Count one call and report (and reset) a trigger."""
        self.increment()
        if self.should_trigger():
            self.reset()
            return True
        return False

    def __repr__(self):
        return f"TriggerCounter(trigger_on={self.trigger_on}, active={self.active}, count={self.get_count()})"
