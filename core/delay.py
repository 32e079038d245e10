import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

from core.exceptions import DurationParseError

logger = logging.getLogger(__name__)

ZERO = timedelta(0)

_TOKEN = r"[0-9a-zµμ.]"

# Order matters: the first pattern that matches decides the form.
AROUND_PATTERN = re.compile(rf"^<({_TOKEN}*)>$")
BOTH_PATTERN = re.compile(rf"({_TOKEN}*)<>({_TOKEN}*)")
BEFORE_PATTERN = re.compile(rf"^({_TOKEN}+)<?")
AFTER_PATTERN = re.compile(rf">({_TOKEN}*)$")

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(token: str) -> timedelta:
    """
    Parse a duration token like '250ms', '5s' or '1m30s'.

    A bare '0' is accepted; every other value needs a unit.

    Raises:
        DurationParseError: if the token is not a valid duration
    """
    if token == "0":
        return ZERO

    seconds = 0.0
    pos = 0
    while pos < len(token):
        match = _DURATION_PART.match(token, pos)
        if not match:
            raise DurationParseError(token)
        seconds += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()

    if pos == 0:
        raise DurationParseError(token)
    try:
        return timedelta(seconds=seconds)
    except OverflowError:
        raise DurationParseError(token)


@dataclass(frozen=True)
class ParsedDelay:
    """Latency injected before and after a unit of work."""

    enabled: bool = True
    before: timedelta = ZERO
    after: timedelta = ZERO

    async def apply_before(self, service: str, target: str) -> None:
        await self._sleep("before", self.before, service, target)

    async def apply_after(self, service: str, target: str) -> None:
        await self._sleep("after", self.after, service, target)

    async def _sleep(self, phase: str, duration: timedelta, service: str, target: str) -> None:
        if not self.enabled or duration <= ZERO:
            return
        logger.debug(f"latency {phase} service={service} ms={duration // timedelta(milliseconds=1)} target={target}")
        await asyncio.sleep(duration.total_seconds())


def _split_tokens(value: str):
    match = AROUND_PATTERN.search(value)
    if match:
        return match.group(1), match.group(1)

    match = BOTH_PATTERN.search(value)
    if match:
        return match.group(1), match.group(2)

    match = BEFORE_PATTERN.search(value)
    if match:
        return match.group(1), ""

    match = AFTER_PATTERN.search(value)
    if match:
        return "", match.group(1)

    return "", ""


@lru_cache(maxsize=512)
def parse_delay(value: str) -> ParsedDelay:
    """
    Parse a latency specification into a ParsedDelay.

    Supported forms (first match wins):
        '<D>'     -> D before and after
        'D1<>D2'  -> D1 before, D2 after
        'D' / 'D<' -> D before only
        '>D'      -> D after only

    Empty or unrecognised input is a no-op delay. An invalid duration token
    disables the delay instead of raising.
    """
    if not value:
        return ParsedDelay()

    before_token, after_token = _split_tokens(value)

    enabled = True
    durations = []
    for token in (before_token, after_token):
        if not token:
            durations.append(ZERO)
            continue
        try:
            durations.append(parse_duration(token))
        except DurationParseError as e:
            logger.error(f"failed to parse duration delay={value!r} duration={e.token!r}")
            enabled = False
            durations.append(ZERO)

    return ParsedDelay(enabled=enabled, before=durations[0], after=durations[1])
