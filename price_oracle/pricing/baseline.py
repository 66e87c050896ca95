from __future__ import annotations

import math
from typing import Optional


def derive_baseline(current_price: float, percent_change: Optional[float]) -> float:
    """Recover the window-start price from the current price and its percent move.

    The current price is returned unchanged when the change is missing,
    non-finite, zero, or at or below -100 (no positive starting price).
    """
    if percent_change is None or not math.isfinite(percent_change):
        return current_price
    if percent_change == 0 or percent_change <= -100:
        return current_price
    return current_price / (1 + percent_change / 100)
