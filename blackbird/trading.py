"""Exchanges, balances and the opening and closing of arbitrage positions."""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .quote import Quote
from .send_email import send_email
from .timefmt import print_date_time_csv

RESTORE_FILE = "restore.txt"
ENTRY_WAIT = 5.0
POLL_WAIT = 3.0
EXPOSURE_MARGIN = 0.01


@dataclass
class ExchangeApi:
    """Operations offered by one exchange.

    ``get_quote()`` returns a Quote, ``get_avail(currency)`` the free balance,
    ``get_active_pos()`` the open leg1 position and
    ``get_limit_price(volume, is_bid)`` the price reaching ``volume`` in the
    order book. Order operations are optional: ``send_long_order`` and
    ``send_short_order`` take ``(direction, quantity, price)`` and return an
    order id, ``is_order_complete(order_id)`` tells whether it is filled.
    """

    get_quote: Callable[[], Quote]
    get_avail: Callable[[str], float]
    get_active_pos: Callable[[], float]
    get_limit_price: Callable[[float, bool], float]
    send_long_order: Optional[Callable[[str, float, float], str]] = None
    send_short_order: Optional[Callable[[str, float, float], str]] = None
    is_order_complete: Optional[Callable[[str], bool]] = None


@dataclass
class Exchange:
    """An exchange taking part in the run, with its latest quote."""

    id: int
    name: str
    fees: float
    can_short: bool
    is_implemented: bool
    api: ExchangeApi
    db_table: str = ""
    bid: float = 0.0
    ask: float = 0.0

    def update_data(self, quote: Quote) -> None:
        """Store the latest bid and ask."""
        self.bid = quote.bid
        self.ask = quote.ask

    def mid_price(self) -> float:
        """Middle of the latest bid and ask."""
        return (self.bid + self.ask) / 2.0


@dataclass
class Balance:
    """Balances of one exchange before and after a trade."""

    leg1: float = 0.0
    leg2: float = 0.0
    leg1_after: float = 0.0
    leg2_after: float = 0.0


def _operation(exchange: Exchange, name: str):
    func = getattr(exchange.api, name)
    if func is None:
        raise RuntimeError(f"{exchange.name} does not support {name}")
    return func


def _log(params):
    return params.log_file if params.log_file is not None else sys.stderr


def wait_for_orders(long_exch, short_exch, long_id, short_id, log, sleep=time.sleep) -> None:
    """Block until both orders are filled, polling the exchanges."""
    long_complete_of = _operation(long_exch, "is_order_complete")
    short_complete_of = _operation(short_exch, "is_order_complete")
    sleep(ENTRY_WAIT)
    long_done = long_complete_of(long_id)
    short_done = short_complete_of(short_id)
    while not (long_done and short_done):
        sleep(POLL_WAIT)
        if not long_done:
            log.write(f"Long order on {long_exch.name} still open...\n")
            long_done = long_complete_of(long_id)
        if not short_done:
            log.write(f"Short order on {short_exch.name} still open...\n")
            short_done = short_complete_of(short_id)


def update_volatility(res, exchanges, params) -> None:
    """Record the spread of every long/short pair, keeping the latest values."""
    for long_ex in exchanges:
        for short_ex in exchanges:
            if long_ex is short_ex or not short_ex.can_short:
                continue
            long_mid = long_ex.mid_price()
            short_mid = short_ex.mid_price()
            if long_mid > 0.0 and short_mid > 0.0:
                history = res.volatility[long_ex.id][short_ex.id]
                if len(history) >= params.volatility_period:
                    history.pop()
                history.appendleft((long_mid - short_mid) / long_mid)


def open_position(res, exchanges, balances, params, curr_time, result_id, sleep=time.sleep) -> bool:
    """Try to enter the opportunity described by ``res``.

    ``res`` holds the pair and target prices found by the entry check. On
    success the trade gets ``result_id``, both orders are filled, the state is
    saved for a restart and True is returned.
    """
    log = _log(params)
    i, j = res.id_exch_long, res.id_exch_short
    long_ex, short_ex = exchanges[i], exchanges[j]
    res.exposure = min(balances[i].leg2, balances[j].leg2)
    if params.is_demo_mode:
        log.write("INFO: Opportunity found but no trade will be generated (Demo mode)\n")
        return False
    if res.exposure == 0.0:
        log.write("WARNING: Opportunity found but no cash available. Trade canceled\n")
        return False
    if not params.use_full_exposure and res.exposure <= params.tested_exposure:
        log.write(
            "WARNING: Opportunity found but no enough cash. Need more than TEST cash "
            f"(min. ${params.tested_exposure:.2f}). Trade canceled\n"
        )
        return False
    if params.use_full_exposure:
        res.exposure -= EXPOSURE_MARGIN * res.exposure
        if res.exposure > params.max_exposure:
            log.write(
                f"WARNING: Opportunity found but exposure ({res.exposure:.2f}) above the limit\n"
                f"         Max exposure will be used instead ({params.max_exposure:.2f})\n"
            )
            res.exposure = params.max_exposure
    else:
        res.exposure = params.tested_exposure

    volume_long = res.exposure / long_ex.ask
    volume_short = res.exposure / short_ex.bid
    lim_long = long_ex.api.get_limit_price(volume_long, False)
    lim_short = short_ex.api.get_limit_price(volume_short, True)
    if lim_long == 0.0 or lim_short == 0.0:
        log.write(
            "WARNING: Opportunity found but error with the order books (limit price is null). Trade canceled\n"
            f"         Long limit price:  {lim_long:.2f}\n"
            f"         Short limit price: {lim_short:.2f}\n"
        )
        res.trailing[i][j] = -1.0
        return False
    if (lim_long - res.price_long_in > params.price_delta_lim
            or res.price_short_in - lim_short > params.price_delta_lim):
        log.write(
            "WARNING: Opportunity found but not enough liquidity. Trade canceled\n"
            f"         Target long price:  {res.price_long_in:.2f}, Real long price:  {lim_long:.2f}\n"
            f"         Target short price: {res.price_short_in:.2f}, Real short price: {lim_short:.2f}\n"
        )
        res.trailing[i][j] = -1.0
        return False

    res.id = result_id
    res.entry_time = curr_time
    res.price_long_in = lim_long
    res.price_short_in = lim_short
    res.print_entry_info(log)
    res.max_spread[i][j] = -1.0
    res.min_spread[i][j] = 1.0
    res.trailing[i][j] = 1.0

    long_id = _operation(long_ex, "send_long_order")("buy", volume_long, lim_long)
    short_id = _operation(short_ex, "send_short_order")("sell", volume_short, lim_short)
    log.write("Waiting for the two orders to be filled...\n")
    wait_for_orders(long_ex, short_ex, long_id, short_id, log, sleep)
    log.write("Done\n")
    res.save_partial_result(RESTORE_FILE)
    return True


def close_position(res, exchanges, balances, params, curr_time, csv_file, sleep=time.sleep) -> bool:
    """Try to leave the open position of ``res``.

    On success both exit orders are filled, the balances are refreshed, the
    trade is written to ``csv_file``, ``res`` is reset and True is returned.
    """
    log = _log(params)
    i, j = res.id_exch_long, res.id_exch_short
    long_ex, short_ex = exchanges[i], exchanges[j]
    btc_used = [ex.api.get_active_pos() for ex in exchanges]
    volume_long = btc_used[i]
    volume_short = btc_used[j]
    lim_long = long_ex.api.get_limit_price(volume_long, True)
    lim_short = short_ex.api.get_limit_price(volume_short, False)
    if lim_long == 0.0 or lim_short == 0.0:
        log.write(
            "WARNING: Opportunity found but error with the order books (limit price is null). Trade canceled\n"
            f"         Long limit price:  {lim_long:.2f}\n"
            f"         Short limit price: {lim_short:.2f}\n"
        )
        res.trailing[i][j] = 1.0
        return False
    if (res.price_long_out - lim_long > params.price_delta_lim
            or lim_short - res.price_short_out > params.price_delta_lim):
        log.write(
            "WARNING: Opportunity found but not enough liquidity. Trade canceled\n"
            f"         Target long price:  {res.price_long_out:.2f}, Real long price:  {lim_long:.2f}\n"
            f"         Target short price: {res.price_short_out:.2f}, Real short price: {lim_short:.2f}\n"
        )
        res.trailing[i][j] = 1.0
        return False

    res.exit_time = curr_time
    res.price_long_out = lim_long
    res.price_short_out = lim_short
    res.print_exit_info(log)
    log.write(
        f"{params.leg1} exposure on {long_ex.name}: {volume_long:.6f}\n"
        f"{params.leg1} exposure on {short_ex.name}: {volume_short:.6f}\n\n"
    )
    long_id = _operation(long_ex, "send_long_order")("sell", abs(volume_long), lim_long)
    short_id = _operation(short_ex, "send_short_order")("buy", abs(volume_short), lim_short)
    log.write("Waiting for the two orders to be filled...\n")
    wait_for_orders(long_ex, short_ex, long_id, short_id, log, sleep)
    log.write("Done\n\n")

    for ex, bal in zip(exchanges, balances):
        bal.leg2_after = ex.api.get_avail("usd")
        bal.leg1_after = ex.api.get_avail("btc")
    for ex, bal in zip(exchanges, balances):
        log.write(
            f"New balance on {ex.name}:  \t{bal.leg2_after:.2f} {params.leg2} "
            f"(perf {bal.leg2_after - bal.leg2:.2f}), {bal.leg1_after:.6f} {params.leg1}\n"
        )
    log.write("\n")
    for bal in balances:
        res.leg2_tot_balance_before += bal.leg2
        res.leg2_tot_balance_after += bal.leg2_after
    for bal in balances:
        bal.leg2 = bal.leg2_after
        bal.leg1 = bal.leg1_after

    profit = res.leg2_tot_balance_after - res.leg2_tot_balance_before
    log.write(f"ACTUAL PERFORMANCE: ${profit:.2f} ({res.actual_perf() * 100.0:.2f}%)\n\n")
    fields = [
        str(res.id),
        res.exch_name_long,
        res.exch_name_short,
        print_date_time_csv(res.entry_time),
        print_date_time_csv(res.exit_time),
        f"{res.trade_length_in_minutes():g}",
        f"{res.exposure * 2.0:g}",
        f"{res.leg2_tot_balance_before:g}",
        f"{res.leg2_tot_balance_after:g}",
        f"{res.actual_perf():g}",
    ]
    csv_file.write(",".join(fields) + "\n")
    csv_file.flush()
    if params.send_email:
        send_email(res, params, log)
        log.write("Email sent\n")
    res.reset()
    Path(RESTORE_FILE).write_text("")
    return True