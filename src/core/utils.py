"""
Small shared utilities.
"""
from __future__ import annotations

import time
from contextlib import contextmanager
from decimal import Decimal, ROUND_HALF_UP
from typing import Generator


@contextmanager
def timer() -> Generator[dict, None, None]:
    """Context manager that records elapsed wall-clock milliseconds."""
    result: dict = {}
    start = time.perf_counter()
    try:
        yield result
    finally:
        result["elapsed_ms"] = int((time.perf_counter() - start) * 1000)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a calculator: 2.5 -> 3, 0.125 -> 0.13 (digits=2).

    Python's built-in ``round`` uses banker's rounding, which would
    report 62.5% coverage as 62.
    """
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))
