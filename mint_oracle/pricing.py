"""
Price table for the voucher series.

The same ``PriceSchedule`` instance is injected into the oracle and served to
the storefront display, so there is exactly one editable copy of the tiers.
"""
from decimal import Decimal, ROUND_DOWN
from typing import Iterable, List, Sequence, Union

# Rounded payment-token amounts per sale position (~$25, $50, $100, $200, $400)
DEFAULT_PRICE_TIERS = (
    Decimal("4450"),
    Decimal("8900"),
    Decimal("17800"),
    Decimal("35600"),
    Decimal("71150"),
)

DEFAULT_TOKEN_DECIMALS = 18


def to_base_units(amount: Union[Decimal, int, str], decimals: int = DEFAULT_TOKEN_DECIMALS) -> int:
    """
    Convert a token-unit amount to integer base units, truncating any
    fraction smaller than one base unit.
    """
    scaled = Decimal(amount) * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


class PriceSchedule:
    """Ordered mapping of 1-based sale position to required token amount."""

    def __init__(self, tiers: Iterable[Union[Decimal, int, str]] = DEFAULT_PRICE_TIERS):
        self._tiers: List[Decimal] = [Decimal(str(t)) for t in tiers]
        if not self._tiers:
            raise ValueError("Price schedule needs at least one tier")
        if any(t <= 0 for t in self._tiers):
            raise ValueError("Price tiers must be positive")

    @classmethod
    def parse(cls, text: str) -> "PriceSchedule":
        """Build a schedule from a comma-separated list such as ``"4450,8900"``."""
        parts = [p.strip() for p in text.split(",") if p.strip()]
        return cls(parts)

    @property
    def tiers(self) -> Sequence[Decimal]:
        return tuple(self._tiers)

    @property
    def series_length(self) -> int:
        return len(self._tiers)

    def position_for(self, token_id: int) -> int:
        """Tier position (1-based) for a token id, capped at the last tier."""
        return max(1, min(token_id, len(self._tiers)))

    def expected_amount(self, token_id: int) -> Decimal:
        """Amount the buyer of ``token_id`` must pay, in token units."""
        return self._tiers[self.position_for(token_id) - 1]

    def as_list(self) -> List[dict]:
        return [
            {"sale": index, "amount": float(amount) if amount % 1 else int(amount)}
            for index, amount in enumerate(self._tiers, start=1)
        ]

    def __len__(self) -> int:
        return len(self._tiers)

    def __repr__(self) -> str:
        return f"PriceSchedule({[str(t) for t in self._tiers]})"
