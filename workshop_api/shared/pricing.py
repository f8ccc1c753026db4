"""Price arithmetic shared by quotes and service orders"""

from typing import Iterable


def line_total(quantity: int, unit_cost: float) -> float:
    return round((quantity or 0) * (unit_cost or 0), 2)


def compute_total(
    labor_cost: float, parts_cost: float, discount: float, items: Iterable = ()
) -> float:
    """items + labor + parts - discount, rounded to cents and never negative"""
    items_total = sum(item.total_cost or 0 for item in items)
    total = items_total + (labor_cost or 0) + (parts_cost or 0) - (discount or 0)
    return round(max(total, 0), 2)
