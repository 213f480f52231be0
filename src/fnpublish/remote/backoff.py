"""Delay curves for retrying throttled AWS calls."""

import math
import random
from enum import Enum


class BackoffStrategy(str, Enum):
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    LOGARITHMIC = "logarithmic"


_CURVES = {
    BackoffStrategy.LINEAR: lambda attempt, base: base * (attempt + 1),
    BackoffStrategy.EXPONENTIAL: lambda attempt, base: base * 2**attempt,
    BackoffStrategy.LOGARITHMIC: lambda attempt, base: base * math.log2(attempt + 2),
}


def get_backoff_delay(
    attempt: int,
    base: float = 3.0,
    max_seconds: float = 30.0,
    jitter: float = 0.2,
    strategy: BackoffStrategy = BackoffStrategy.LINEAR,
) -> float:
    """
    Seconds to wait after ``attempt + 1`` throttled attempts.

    With the defaults: 3s, 6s, 9s, ... up to 30s, each scaled by a random
    factor in [0.8, 1.2]. ``jitter=0`` makes the delay exact.

    Raises:
        ValueError: For an unknown strategy
    """
    curve = _CURVES.get(strategy)
    if curve is None:
        raise ValueError(f"Unsupported backoff strategy: {strategy}")

    delay = min(curve(attempt, base), max_seconds)
    if jitter > 0:
        delay *= random.uniform(1 - jitter, 1 + jitter)
    return max(delay, 0.0)
