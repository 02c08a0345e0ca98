"""Main arbitrage loop: configuration checks, start-up logging and scheduling."""

from __future__ import annotations

import os
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .result import Result
from .timefmt import print_date_time, print_date_time_db
from .trading import RESTORE_FILE, Balance, close_position, open_position, update_volatility

MIN_USD_EXPOSURE = 10.0
MAX_LEG1_AT_START = 0.0050
STOP_FILE = "stop_after_notrade"
START_POLL = 0.1
CSV_HEADER = (
    "TRADE_ID,EXCHANGE_LONG,EXHANGE_SHORT,ENTRY_TIME,EXIT_TIME,DURATION,"
    "TOTAL_EXPOSURE,BALANCE_BEFORE,BALANCE_AFTER,RETURN"
)


class ConfigError(Exception):
    """The settings or the account state do not allow the engine to run."""


@dataclass
class Strategy:
    """Entry and exit rules.

    ``check_entry(long_ex, short_ex, res, params)`` returns True when an
    opportunity exists and fills ``res`` with the pair and target prices.
    ``check_exit(long_ex, short_ex, res, params, curr_time)`` returns True
    when the open position should be closed and fills the exit targets.
    """

    check_entry: Callable[..., bool]
    check_exit: Callable[..., bool]


def validate_parameters(params) -> None:
    """Raise ConfigError when the settings cannot be traded with."""
    if not params.is_demo_mode and not params.use_full_exposure:
        if params.tested_exposure < MIN_USD_EXPOSURE and params.leg2 == "USD":
            raise ConfigError(
                "Minimum USD needed: $10.00. "
                "Otherwise some exchanges will reject the orders"
            )
        if params.tested_exposure > params.max_exposure:
            raise ConfigError(
                f"Test exposure ({params.tested_exposure:g}) is above max exposure "
                f"({params.max_exposure:g})"
            )
    if params.leg1 != "BTC" or params.leg2 != "USD":
        raise ConfigError("Valid currency pair is only BTC/USD for now.")


def write_csv_header(stream) -> None:
    """Write the header line of the trade result CSV file."""
    stream.write(CSV_HEADER + "\n")


class ArbitrageEngine:
    """Polls the exchanges at a fixed interval and trades the spreads found."""

    def __init__(self, params, exchanges, strategy, csv_file, log=None, *,
                 out=None, recorder: Optional[Callable] = None,
                 sleep=time.sleep, clock=time.time, stop_file=STOP_FILE):
        exchanges = list(exchanges)
        if len(exchanges) < 2:
            raise ConfigError(
                "Blackbird needs at least two Bitcoin exchanges. "
                "Please edit the config.json file to add new exchanges"
            )
        if log is None:
            log = params.log_file if params.log_file is not None else sys.stderr
        params.log_file = log
        self.params = params
        self.exchanges = exchanges
        self.strategy = strategy
        self.csv_file = csv_file
        self.log = log
        self.out = out if out is not None else sys.stdout
        self.recorder = recorder
        self.stop_file = stop_file
        self._sleep = sleep
        self._clock = clock
        self.balances = [Balance() for _ in exchanges]
        self.res = Result()
        self.in_market = False
        self.result_id = 0

    def log_header(self) -> None:
        """Write the start-up banner and the spread targets to the log."""
        p = self.params
        log = self.log
        log.write(
            "--------------------------------------------\n"
            "|   Blackbird Bitcoin Arbitrage Log File   |\n"
            "--------------------------------------------\n\n"
            f"Blackbird started on {print_date_time()}\n\n"
            f"Connected to database '{p.db_file}'\n\n"
        )
        if p.is_demo_mode:
            log.write("Demo mode: trades won't be generated\n\n")
        log.write(f"Pair traded: {p.leg1}/{p.leg2}\n\n")
        log.write(
            "[ Targets ]\n"
            f"   Spread Entry:  {p.spread_entry * 100.0:.2f}%\n"
            f"   Spread Target: {p.spread_target * 100.0:.2f}%\n"
        )
        if p.spread_entry <= 0.0:
            log.write("   WARNING: Spread Entry should be positive\n")
        if p.spread_target <= 0.0:
            log.write("   WARNING: Spread Target should be positive\n")
        log.write("\n")

    def load_balances(self) -> bool:
        """Read the starting balances and any saved open position.

        Returns whether a position is open. Raises ConfigError when an
        account holds leg1 while no position is open.
        """
        p = self.params
        log = self.log
        log.write("[ Current balances ]\n")
        if not p.is_demo_mode:
            for ex, bal in zip(self.exchanges, self.balances):
                bal.leg1 = ex.api.get_avail("btc")
                bal.leg2 = ex.api.get_avail("usd")
        self.res.reset()
        self.in_market = self.res.load_partial_result(RESTORE_FILE)
        for ex, bal in zip(self.exchanges, self.balances):
            if p.is_demo_mode:
                status = "n/a (demo mode)"
            elif not ex.is_implemented:
                status = "n/a (API not implemented)"
            else:
                status = f"{bal.leg2:.2f} {p.leg2}\t{bal.leg1:.6f} {p.leg1}"
            log.write(f"   {ex.name}:\t{status}\n")
            if bal.leg1 > MAX_LEG1_AT_START and not self.in_market:
                message = f"All {p.leg1} accounts must be empty before starting Blackbird"
                log.write(f"ERROR: {message}\n")
                raise ConfigError(message)
        log.write("\n[ Cash exposure ]\n")
        if p.is_demo_mode:
            log.write("   No cash - Demo mode\n")
        elif p.use_full_exposure:
            log.write("   FULL exposure used!\n")
        else:
            log.write(f"   TEST exposure used\n   Value: {p.tested_exposure:.2f}\n")
        log.write("\n")
        return self.in_market

    def _refresh_quotes(self, curr_time) -> None:
        p = self.params
        log = self.log
        for ex in self.exchanges:
            quote = ex.api.get_quote()
            if self.recorder is not None:
                self.recorder(ex.db_table, print_date_time_db(curr_time), quote.bid, quote.ask)
            if quote.bid == 0.0:
                log.write(f"   WARNING: {ex.name} bid is null\n")
            if quote.ask == 0.0:
                log.write(f"   WARNING: {ex.name} ask is null\n")
            if p.verbose:
                log.write(f"   {ex.name}: \t{quote.bid:.2f} / {quote.ask:.2f}\n")
            ex.update_data(quote)
        if p.verbose:
            log.write("   ----------------------------\n")

    def _look_for_entry(self, curr_time) -> None:
        p = self.params
        for long_ex in self.exchanges:
            for short_ex in self.exchanges:
                if long_ex is short_ex:
                    continue
                if self.strategy.check_entry(long_ex, short_ex, self.res, p):
                    if open_position(self.res, self.exchanges, self.balances, p,
                                     curr_time, self.result_id + 1, self._sleep):
                        self.result_id += 1
                        self.in_market = True
                    break
            if self.in_market:
                break
        if p.verbose:
            self.log.write("\n")

    def _look_for_exit(self, curr_time) -> None:
        p = self.params
        res = self.res
        long_ex = self.exchanges[res.id_exch_long]
        short_ex = self.exchanges[res.id_exch_short]
        if self.strategy.check_exit(long_ex, short_ex, res, p, curr_time):
            if close_position(res, self.exchanges, self.balances, p,
                              curr_time, self.csv_file, self._sleep):
                self.in_market = False
        if p.verbose:
            self.log.write("\n")

    def run_iteration(self, curr_time) -> bool:
        """Run one polling step at ``curr_time``; return whether a position is open."""
        p = self.params
        if p.verbose:
            stamp = print_date_time(curr_time)
            if self.in_market:
                self.log.write(
                    f"[ {stamp} IN MARKET: Long {self.res.exch_name_long} "
                    f"/ Short {self.res.exch_name_short} ]\n"
                )
            else:
                self.log.write(f"[ {stamp} ]\n")
        self._refresh_quotes(curr_time)
        if p.use_volatility:
            update_volatility(self.res, self.exchanges, p)
        if self.in_market:
            self._look_for_exit(curr_time)
        else:
            self._look_for_entry(curr_time)
        return self.in_market

    def run(self) -> None:
        """Log the start-up state, then poll every interval until told to stop."""
        p = self.params
        interval = int(p.interval)
        if interval < 1:
            raise ConfigError("interval must be at least one second")
        self.log_header()
        self.load_balances()
        self.out.write(f"Blackbird is running... (pid {os.getpid()})\n\n")

        now = int(self._clock())
        while time.localtime(now).tm_sec % interval != 0:
            self._sleep(START_POLL)
            now = int(self._clock())
        if not p.verbose:
            self.log.write("Running...\n")

        scheduled = now
        iteration = 0
        running = True
        while running:
            curr_time = scheduled
            diff = int(self._clock()) - curr_time
            if diff > 0:
                self.log.write(
                    f"WARNING: {diff} second(s) too late at {print_date_time(curr_time)}\n"
                )
                scheduled += (diff // interval + 1) * interval
                curr_time = scheduled
                self._sleep(interval - diff % interval)
                self.log.write("\n")
            elif diff < 0:
                self._sleep(-diff)

            self.run_iteration(curr_time)

            scheduled += interval
            iteration += 1
            if iteration >= p.debug_max_iteration:
                self.log.write(f"Max iteration reached ({p.debug_max_iteration})\n")
                running = False
            if Path(self.stop_file).exists() and not self.in_market:
                self.log.write("Exit after last trade (file stop_after_notrade found)\n")
                running = False
        self.csv_file.flush()