from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping

# Notes offered by the till count screen, largest first.
DEFAULT_DENOMINATIONS: tuple[int, ...] = (5000, 1000, 500, 100, 50, 20, 10)


def cash_counts_total(counts: Mapping[str, int] | None) -> Decimal:
    if not counts:
        return Decimal("0")
    total = Decimal("0")
    for denomination, count in counts.items():
        total += Decimal(str(denomination)) * max(0, int(count))
    return total


def compact_cash_counts(counts: Mapping[str, int] | None) -> dict[str, int] | None:
    """Drop zero rows; ``None`` when nothing was counted."""
    if not counts:
        return None
    kept = {str(key): int(value) for key, value in counts.items() if int(value) > 0}
    return kept or None


@dataclass(frozen=True)
class DrawerDifference:
    counted: Decimal
    expected: Decimal

    @property
    def difference(self) -> Decimal:
        return self.counted - self.expected

    @property
    def state(self) -> str:
        if self.difference > 0:
            return "over"
        if self.difference < 0:
            return "short"
        return "balanced"


def parse_cash_counts(
    pairs: list[str] | None,
    denominations: tuple[int, ...] = DEFAULT_DENOMINATIONS,
) -> dict[str, int] | None:
    """Parse ``value:count`` strings such as ``1000:3`` into a counts map."""
    if not pairs:
        return None
    counts: dict[str, int] = {}
    for raw in pairs:
        left, sep, right = raw.partition(":")
        if not sep:
            left, sep, right = raw.partition("=")
        if not sep:
            raise ValueError(f"Expected value:count, got {raw!r}")
        try:
            value = int(left.strip())
            count = int(right.strip())
        except ValueError as exc:
            raise ValueError(f"Expected integers in {raw!r}") from exc
        if value not in denominations:
            raise ValueError(f"Unsupported denomination {value}")
        if count < 0:
            raise ValueError(f"Negative count for {value}")
        counts[str(value)] = counts.get(str(value), 0) + count
    return compact_cash_counts(counts)
