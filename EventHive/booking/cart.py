"""Immutable cart value carried through the settlement pipeline."""

from dataclasses import dataclass
from typing import Iterable, Self

from .errors import EmptyCart


@dataclass(frozen=True)
class CartLine:
    """Requested quantity of one ticket tier."""

    tier_id: int
    quantity: int

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("Cart quantity must be at least 1")


@dataclass(frozen=True)
class Cart:
    """
    Ordered (tier, quantity) pairs, validated once at the Order Service boundary.

    Repeated tiers are merged, keeping the position of the first occurrence.
    """

    lines: tuple[CartLine, ...]

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[int, int]]) -> Self:
        merged: dict[int, int] = {}
        for tier_id, quantity in pairs:
            tier_id, quantity = int(tier_id), int(quantity)
            if quantity < 1:
                raise ValueError("Cart quantity must be at least 1")
            merged[tier_id] = merged.get(tier_id, 0) + quantity
        if not merged:
            raise EmptyCart()
        return cls(lines=tuple(CartLine(tier_id=t, quantity=q) for t, q in merged.items()))

    @property
    def tier_ids(self) -> list[int]:
        return [line.tier_id for line in self.lines]

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self.lines)

    def to_pairs(self) -> list[list[int]]:
        """JSON-friendly form used in checkout tokens and gateway notes."""
        return [[line.tier_id, line.quantity] for line in self.lines]

    def __iter__(self):
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self.lines)
