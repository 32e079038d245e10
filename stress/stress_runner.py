import logging
import os
import threading
import time
from typing import Callable, List

from config.config_entry import Configuration, MemStress, StressNg
from core.delay import parse_duration
from core.exceptions import DurationParseError
from stress.mem_stress import parse_mem_size, stress_memory
from stress.stress_ng import run_stress_ng

logger = logging.getLogger(__name__)


def wait_start_delay(name: str, delay: str) -> None:
    if not delay:
        return
    try:
        start_delay = parse_duration(delay)
    except DurationParseError:
        logger.error(f"Error parsing {name} start delay delay={delay!r}")
        return
    logger.debug(f"{name} start delay {start_delay}")
    time.sleep(start_delay.total_seconds())


def run_mem_stress(conf: MemStress, exit_process: Callable[[int], None] = os._exit) -> None:
    wait_start_delay("mem stress", conf.delay)
    logger.info(f"stressing memory size={conf.mem_size} timing={conf.growth_time}")
    try:
        growth_time = parse_duration(conf.growth_time)
        length = parse_mem_size(conf.mem_size)
        stress_memory(length, growth_time.total_seconds())
    except (DurationParseError, ValueError, OSError) as e:
        logger.error(f"failed to stress memory: {e}")
        exit_process(1)


def run_stress_ng_routine(conf: StressNg) -> None:
    wait_start_delay("stress", conf.delay)
    logger.info(f"stressing args={', '.join(conf.args)}")
    run_stress_ng(conf.args)


def start_stress_routines(conf: Configuration) -> List[threading.Thread]:
    """Start every enabled stress routine on its own daemon thread."""
    threads = []
    if conf.mem_stress.enabled:
        threads.append(_start("mem-stress", run_mem_stress, conf.mem_stress))
    if conf.stress_ng.enabled:
        threads.append(_start("stress-ng", run_stress_ng_routine, conf.stress_ng))
    return threads


def _start(name: str, target, *args) -> threading.Thread:
    thread = threading.Thread(target=target, args=args, name=name, daemon=True)
    thread.start()
    return thread
