"""State and outcome of one long/short arbitrage trade."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field, fields
from pathlib import Path

from .timefmt import print_date_time

MAX_EXCHANGES = 13


def _grid(value):
    return [[value] * MAX_EXCHANGES for _ in range(MAX_EXCHANGES)]


def _deque_grid():
    return [[deque() for _ in range(MAX_EXCHANGES)] for _ in range(MAX_EXCHANGES)]


def _f2(value: float) -> str:
    return f"{value:.2f}"


@dataclass
class Result:
    """A complete trade: two entry orders and two exit orders."""

    id: int = 0
    id_exch_long: int = 0
    id_exch_short: int = 0
    exposure: float = 0.0
    fees_long: float = 0.0
    fees_short: float = 0.0
    entry_time: int = 0
    exit_time: int = 0
    exch_name_long: str = ""
    exch_name_short: str = ""
    price_long_in: float = 0.0
    price_short_in: float = 0.0
    price_long_out: float = 0.0
    price_short_out: float = 0.0
    spread_in: float = 0.0
    spread_out: float = 0.0
    exit_target: float = 0.0
    min_spread: list = field(default_factory=lambda: _grid(1.0))
    max_spread: list = field(default_factory=lambda: _grid(-1.0))
    trailing: list = field(default_factory=lambda: _grid(-1.0))
    trailing_wait_count: list = field(default_factory=lambda: _grid(0))
    volatility: list = field(default_factory=_deque_grid)
    leg2_tot_balance_before: float = 0.0
    leg2_tot_balance_after: float = 0.0

    def target_perf_long(self) -> float:
        """Expected return of the long leg, fees included."""
        return (self.price_long_out - self.price_long_in) / self.price_long_in - 2.0 * self.fees_long

    def target_perf_short(self) -> float:
        """Expected return of the short leg, fees included."""
        return (self.price_short_in - self.price_short_out) / self.price_short_in - 2.0 * self.fees_short

    def actual_perf(self) -> float:
        """Return measured from the leg2 balances before and after the trade."""
        if self.exposure == 0.0:
            return 0.0
        return (self.leg2_tot_balance_after - self.leg2_tot_balance_before) / (self.exposure * 2.0)

    def trade_length_in_minutes(self) -> float:
        """Duration of the trade in minutes, or 0 if it is not closed."""
        if self.entry_time > 0 and self.exit_time > 0:
            return (self.exit_time - self.entry_time) / 60.0
        return 0.0

    def print_entry_info(self, stream) -> None:
        """Write the entry details to ``stream``."""
        stream.write(
            "\n[ ENTRY FOUND ]\n"
            f"   Date & Time:       {print_date_time(self.entry_time)}\n"
            f"   Exchange Long:     {self.exch_name_long} (id {self.id_exch_long})\n"
            f"   Exchange Short:    {self.exch_name_short} (id {self.id_exch_short})\n"
            f"   Fees:              {_f2(self.fees_long * 100.0)}% / {_f2(self.fees_short * 100.0)}%\n"
            f"   Price Long:        {_f2(self.price_long_in)} (target)\n"
            f"   Price Short:       {_f2(self.price_short_in)} (target)\n"
            f"   Spread:            {_f2(self.spread_in * 100.0)}%\n"
            f"   Cash used:         {_f2(self.exposure)} on each exchange\n"
            f"   Exit Target:       {_f2(self.exit_target * 100.0)}%\n"
            "\n"
        )

    def print_exit_info(self, stream) -> None:
        """Write the exit details to ``stream``."""
        stream.write(
            "\n[ EXIT FOUND ]\n"
            f"   Date & Time:       {print_date_time(self.exit_time)}\n"
            f"   Duration:          {_f2(self.trade_length_in_minutes())} minutes\n"
            f"   Price Long:        {_f2(self.price_long_out)} (target)\n"
            f"   Price Short:       {_f2(self.price_short_out)} (target)\n"
            f"   Spread:            {_f2(self.spread_out * 100.0)}%\n"
            "   ---------------------------\n"
            f"   Target Perf Long:  {_f2(self.target_perf_long() * 100.0)}% (fees incl.)\n"
            f"   Target Perf Short: {_f2(self.target_perf_short() * 100.0)}% (fees incl.)\n"
            "   ---------------------------\n"
            "\n"
        )

    def reset(self) -> None:
        """Return every field to its initial value."""
        fresh = Result()
        for f in fields(self):
            setattr(self, f.name, getattr(fresh, f.name))

    def load_partial_result(self, filename) -> bool:
        """Restore an open position from ``filename``.

        Returns False when the file is missing or empty. Raises ValueError
        when its content cannot be read.
        """
        path = Path(filename)
        try:
            text = path.read_text()
        except FileNotFoundError:
            return False
        tokens = text.split()
        if not tokens:
            return False
        if len(tokens) < 18:
            raise ValueError(f"incomplete partial result in {filename}")
        try:
            self.id = int(tokens[0])
            self.id_exch_long = int(tokens[1])
            self.id_exch_short = int(tokens[2])
            self.exch_name_long = tokens[3]
            self.exch_name_short = tokens[4]
            self.exposure = float(tokens[5])
            self.fees_long = float(tokens[6])
            self.fees_short = float(tokens[7])
            self.entry_time = int(tokens[8])
            self.spread_in = float(tokens[9])
            self.price_long_in = float(tokens[10])
            self.price_short_in = float(tokens[11])
            self.leg2_tot_balance_before = float(tokens[12])
            self.exit_target = float(tokens[13])
            i, j = self.id_exch_long, self.id_exch_short
            if not (0 <= i < MAX_EXCHANGES and 0 <= j < MAX_EXCHANGES):
                raise ValueError(f"exchange index out of range in {filename}")
            self.max_spread[i][j] = float(tokens[14])
            self.min_spread[i][j] = float(tokens[15])
            self.trailing[i][j] = float(tokens[16])
            self.trailing_wait_count[i][j] = int(tokens[17])
        except ValueError as exc:
            raise ValueError(f"malformed partial result in {filename}: {exc}") from exc
        return True

    def save_partial_result(self, filename) -> None:
        """Save the open position to ``filename`` so it can be restored."""
        i, j = self.id_exch_long, self.id_exch_short
        values = [
            self.id,
            self.id_exch_long,
            self.id_exch_short,
            self.exch_name_long,
            self.exch_name_short,
            f"{self.exposure:g}",
            f"{self.fees_long:g}",
            f"{self.fees_short:g}",
            int(self.entry_time),
            f"{self.spread_in:g}",
            f"{self.price_long_in:g}",
            f"{self.price_short_in:g}",
            f"{self.leg2_tot_balance_before:g}",
            f"{self.exit_target:g}",
            f"{self.max_spread[i][j]:g}",
            f"{self.min_spread[i][j]:g}",
            f"{self.trailing[i][j]:g}",
            self.trailing_wait_count[i][j],
        ]
        Path(filename).write_text("".join(f"{v}\n" for v in values))