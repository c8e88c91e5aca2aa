import math
from dataclasses import dataclass
from decimal import Decimal

# points columns are 32-bit integers
POINTS_MIN = -2**31
POINTS_MAX = 2**31 - 1


@dataclass(frozen=True)
class LoyaltyRules:
    # whole points earned per whole currency unit spent; cents never earn
    points_per_unit: int = 1
    money_quantum: Decimal = Decimal("0.01")

    def points_for_amount(self, amount: Decimal) -> int:
        if amount <= 0:
            return 0
        return math.floor(amount) * self.points_per_unit


RULES = LoyaltyRules()
