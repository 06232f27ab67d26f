"""Protocol fee computation for settlements.

All calculations use integer arithmetic exclusively -- no float or Decimal
conversions anywhere. The fee is floor(gross * numerator / denominator),
which matches the on-chain program's own fee accounting to the unit.
"""

from settlement.config import FeeSettings
from settlement.exceptions import InvalidAmount
from settlement.models import FeeSplit


class FeeCalculator:
    """Computes the protocol fee and the pot/fee split of a gross amount.

    Args:
        fee_settings: Fee ratio configuration (numerator/denominator).
    """

    def __init__(self, fee_settings: FeeSettings) -> None:
        self._numerator = fee_settings.numerator
        self._denominator = fee_settings.denominator

    def compute_fee(self, gross_amount: int) -> int:
        """Calculate the fee taken off a gross amount.

        Args:
            gross_amount: Amount in smallest units.

        Returns:
            floor(gross_amount * numerator / denominator).

        Raises:
            InvalidAmount: If gross_amount is negative or not an integer.
        """
        if isinstance(gross_amount, bool) or not isinstance(gross_amount, int):
            raise InvalidAmount(gross_amount, "amount must be an integer in smallest units")
        if gross_amount < 0:
            raise InvalidAmount(gross_amount, "amount cannot be negative")
        return (gross_amount * self._numerator) // self._denominator

    def split_for_settlement(self, gross_amount: int) -> FeeSplit:
        """Split a gross amount into the pot credit and the fee.

        The pot is derived by subtraction, so pot + fee == gross_amount
        exactly and no unit is lost to truncation.

        Args:
            gross_amount: Amount in smallest units.

        Returns:
            FeeSplit with pot_amount and fee_amount.
        """
        fee_amount = self.compute_fee(gross_amount)
        return FeeSplit(pot_amount=gross_amount - fee_amount, fee_amount=fee_amount)
