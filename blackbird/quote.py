"""Bid/ask quote of an exchange."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Quote:
    """Best bid and ask prices at one moment."""

    bid: float
    ask: float

    @classmethod
    def from_pair(cls, pair) -> "Quote":
        """Build a quote from a ``(bid, ask)`` pair."""
        bid, ask = pair
        return cls(bid, ask)