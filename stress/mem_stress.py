import logging
import mmap
import re
import threading
import time
from typing import Optional

import psutil

logger = logging.getLogger(__name__)

GROWTH_INTERVAL = 0.01
HOLD_INTERVAL = 2.0

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d*)?|\.\d+)\s*([a-zA-Z]*)\s*$")

_SIZE_UNITS = {
    "": 1,
    "b": 1,
    "k": 1000, "kb": 1000,
    "ki": 1024, "kib": 1024,
    "m": 1000 ** 2, "mb": 1000 ** 2,
    "mi": 1024 ** 2, "mib": 1024 ** 2,
    "g": 1000 ** 3, "gb": 1000 ** 3,
    "gi": 1024 ** 3, "gib": 1024 ** 3,
    "t": 1000 ** 4, "tb": 1000 ** 4,
    "ti": 1024 ** 4, "tib": 1024 ** 4,
}


def parse_mem_size(size: str, total_memory: Optional[int] = None) -> int:
    """
    Convert '15%', '512MB', '1GiB' or a plain byte count into bytes.

    Percentages are relative to total_memory, or to the machine's total
    memory when not given.

    Raises:
        ValueError: if the size cannot be parsed
    """
    size = size.strip()
    if size.endswith("%"):
        percentage = float(size[:-1])
        if total_memory is None:
            total_memory = psutil.virtual_memory().total
        return int(total_memory / 100.0 * percentage)

    match = _SIZE_PATTERN.match(size)
    if not match or match.group(2).lower() not in _SIZE_UNITS:
        raise ValueError(f"invalid memory size {size!r}")
    return int(float(match.group(1)) * _SIZE_UNITS[match.group(2).lower()])


def stress_memory(length: int, growth_time: float, stop: Optional[threading.Event] = None) -> mmap.mmap:
    """
    Allocate `length` bytes and touch every page, linearly over `growth_time`
    seconds, then hold the memory until `stop` is set.
    """
    data = mmap.mmap(-1, length)
    page_size = mmap.PAGESIZE
    pages = length // page_size

    if growth_time > 0:
        start = time.monotonic()
        allocated = 0
        while True:
            elapsed = min(time.monotonic() - start, growth_time)
            expected = int(pages * elapsed / growth_time)
            for page in range(allocated, expected):
                data[page * page_size] = 0
            allocated = expected
            if elapsed >= growth_time:
                break
            time.sleep(GROWTH_INTERVAL)
    else:
        for page in range(pages):
            data[page * page_size] = 0

    logger.info(f"memory stress holding {length} bytes")
    stop = stop or threading.Event()
    while not stop.wait(HOLD_INTERVAL):
        pass
    return data
