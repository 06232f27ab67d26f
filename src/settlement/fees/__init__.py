"""Protocol fee arithmetic."""

from settlement.fees.calculator import FeeCalculator

__all__ = ["FeeCalculator"]
