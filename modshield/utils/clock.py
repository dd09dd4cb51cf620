import time
from typing import Callable

Clock = Callable[[], int]

MS_PER_DAY = 24 * 60 * 60 * 1000


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds"""
    return int(time.time() * 1000)


def days_to_ms(days: float) -> int:
    return int(days * MS_PER_DAY)
