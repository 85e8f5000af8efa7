"""Funding goal progress for the incubator"""

from decimal import Decimal


def goal_progress_pct(balance: Decimal, goal: Decimal) -> float:
    """Percentage of the goal reached, capped at 100 and rounded to 2 places"""
    if goal <= 0:
        return 100.0
    pct = min(balance / goal * 100, Decimal("100"))
    return round(float(pct), 2)
