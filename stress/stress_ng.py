import logging
import subprocess
from typing import List

logger = logging.getLogger(__name__)

STRESS_NG_BINARY = "stress-ng"


def run_stress_ng(args: List[str]) -> int:
    """Run stress-ng with the given arguments until it exits; returns its exit code."""
    try:
        completed = subprocess.run([STRESS_NG_BINARY, *args], check=False)
    except OSError as e:
        logger.error(f"Error when running stress-ng: {e}")
        return -1

    if completed.returncode != 0:
        logger.error(f"Error when running stress-ng: exit status {completed.returncode}")
    return completed.returncode
