"""
POS Core Primitives
=====================
Pure, framework-free building blocks shared by engines and integrations.
"""

from core.primitives.money import ZERO, floor_units, round_units, to_money

__all__ = [
    "ZERO",
    "floor_units",
    "round_units",
    "to_money",
]
