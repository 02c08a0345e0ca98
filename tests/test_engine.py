import io
import os
from pathlib import Path

import pytest

from blackbird.engine import (
    ArbitrageEngine,
    ConfigError,
    Strategy,
    validate_parameters,
    write_csv_header,
)
from blackbird.parameters import Parameters
from blackbird.quote import Quote
from blackbird.result import Result
from blackbird.timefmt import print_date_time_db
from blackbird.trading import Exchange, ExchangeApi

T0 = 1_500_000_000


class FakeClock:
    def __init__(self, start=float(T0)):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def make_exchange(idx, name, bid, ask, *, avail=None, orders=None, on_quote=None,
                  implemented=True):
    avail = avail if avail is not None else {"btc": 0.0, "usd": 0.0}
    orders = orders if orders is not None else []

    def get_quote():
        if on_quote is not None:
            on_quote()
        return Quote(bid, ask)

    def send_long(direction, quantity, price):
        orders.append((name, "long", direction))
        return f"{name}-long"

    def send_short(direction, quantity, price):
        orders.append((name, "short", direction))
        return f"{name}-short"

    api = ExchangeApi(
        get_quote=get_quote,
        get_avail=lambda currency: avail[currency],
        get_active_pos=lambda: 0.0,
        get_limit_price=lambda volume, is_bid: bid if is_bid else ask,
        send_long_order=send_long,
        send_short_order=send_short,
        is_order_complete=lambda order_id: True,
    )
    return Exchange(idx, name, 0.0025, True, implemented, api, name.lower())


def entry_first_pair(long_ex, short_ex, res, params):
    if (long_ex.id, short_ex.id) != (0, 1):
        return False
    res.id_exch_long = long_ex.id
    res.id_exch_short = short_ex.id
    res.exch_name_long = long_ex.name
    res.exch_name_short = short_ex.name
    res.price_long_in = long_ex.ask
    res.price_short_in = short_ex.bid
    return True


def exit_always(long_ex, short_ex, res, params, curr_time):
    res.price_long_out = long_ex.bid
    res.price_short_out = short_ex.ask
    return True


def never_entry(long_ex, short_ex, res, params):
    return False


def never_exit(long_ex, short_ex, res, params, curr_time):
    return False


def make_engine(params, exchanges, strategy=None, **kwargs):
    strategy = strategy or Strategy(never_entry, never_exit)
    log = io.StringIO()
    csv = io.StringIO()
    clock = kwargs.pop("clock", FakeClock())
    engine = ArbitrageEngine(params, exchanges, strategy, csv, log,
                             out=io.StringIO(), sleep=clock.sleep, clock=clock, **kwargs)
    return engine, log, csv


@pytest.mark.parametrize(
    "kwargs, message",
    [
        (dict(tested_exposure=5.0, max_exposure=100.0), "Minimum USD"),
        (dict(tested_exposure=50.0, max_exposure=20.0), "above max exposure"),
        (dict(is_demo_mode=True, leg1="ETH"), "BTC/USD"),
        (dict(use_full_exposure=True, leg2="EUR"), "BTC/USD"),
    ],
)
def test_validate_parameters_errors(kwargs, message):
    with pytest.raises(ConfigError, match=message):
        validate_parameters(Parameters(**kwargs))


def test_write_csv_header():
    stream = io.StringIO()
    write_csv_header(stream)
    assert stream.getvalue() == (
        "TRADE_ID,EXCHANGE_LONG,EXHANGE_SHORT,ENTRY_TIME,EXIT_TIME,DURATION,"
        "TOTAL_EXPOSURE,BALANCE_BEFORE,BALANCE_AFTER,RETURN\n"
    )


def test_needs_two_exchanges():
    with pytest.raises(ConfigError, match="at least two"):
        make_engine(Parameters(), [make_exchange(0, "A", 99.0, 100.0)])


def test_engine_takes_over_log():
    params = Parameters()
    engine, log, _ = make_engine(params, [make_exchange(0, "A", 1, 2), make_exchange(1, "B", 1, 2)])
    assert params.log_file is log


def test_log_header_demo():
    params = Parameters(is_demo_mode=True, db_file="blackbird.db")
    engine, log, _ = make_engine(params, [make_exchange(0, "A", 1, 2), make_exchange(1, "B", 1, 2)])
    engine.log_header()
    text = log.getvalue()
    assert "|   Blackbird Bitcoin Arbitrage Log File   |" in text
    assert "Connected to database 'blackbird.db'" in text
    assert "Demo mode: trades won't be generated" in text
    assert "Pair traded: BTC/USD" in text
    assert "WARNING: Spread Entry should be positive" in text
    assert "WARNING: Spread Target should be positive" in text


def test_load_balances_reads_accounts(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    params = Parameters(tested_exposure=50.0, max_exposure=100.0)
    exchanges = [
        make_exchange(0, "A", 99.0, 100.0, avail={"btc": 0.0, "usd": 250.0}),
        make_exchange(1, "B", 110.0, 111.0, avail={"btc": 0.001, "usd": 300.0}),
    ]
    engine, log, _ = make_engine(params, exchanges)
    assert engine.load_balances() is False
    assert [b.leg2 for b in engine.balances] == [250.0, 300.0]
    assert engine.balances[1].leg1 == 0.001
    text = log.getvalue()
    assert "250.00 USD" in text
    assert "TEST exposure used" in text


def test_load_balances_refuses_leg1_holdings(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    params = Parameters(tested_exposure=50.0, max_exposure=100.0)
    exchanges = [
        make_exchange(0, "A", 99.0, 100.0, avail={"btc": 1.0, "usd": 250.0}),
        make_exchange(1, "B", 110.0, 111.0),
    ]
    engine, log, _ = make_engine(params, exchanges)
    with pytest.raises(ConfigError, match="must be empty"):
        engine.load_balances()
    assert "ERROR: All BTC accounts must be empty" in log.getvalue()


def test_load_balances_restores_open_position(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    saved = Result(id=3, id_exch_long=0, id_exch_short=1,
                   exch_name_long="A", exch_name_short="B", exposure=50.0)
    saved.save_partial_result("restore.txt")
    params = Parameters(tested_exposure=50.0, max_exposure=100.0)
    exchanges = [
        make_exchange(0, "A", 99.0, 100.0, avail={"btc": 1.0, "usd": 250.0}),
        make_exchange(1, "B", 110.0, 111.0),
    ]
    engine, _, _ = make_engine(params, exchanges)
    assert engine.load_balances() is True
    assert engine.in_market is True
    assert engine.res.id == 3
    assert engine.res.exch_name_short == "B"


def test_load_balances_demo_mode(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    params = Parameters(is_demo_mode=True)
    engine, log, _ = make_engine(params, [make_exchange(0, "A", 1, 2), make_exchange(1, "B", 1, 2)])
    engine.load_balances()
    text = log.getvalue()
    assert text.count("n/a (demo mode)") == 2
    assert "No cash - Demo mode" in text


def test_run_iteration_records_quotes_and_warns(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    records = []
    params = Parameters(is_demo_mode=True)
    exchanges = [make_exchange(0, "A", 0.0, 100.0), make_exchange(1, "B", 110.0, 111.0)]
    engine, log, _ = make_engine(params, exchanges,
                                 recorder=lambda *row: records.append(row))
    assert engine.run_iteration(T0) is False
    assert [r[0] for r in records] == ["a", "b"]
    assert records[1] == ("b", print_date_time_db(T0), 110.0, 111.0)
    assert "   WARNING: A bid is null" in log.getvalue()
    assert exchanges[1].bid == 110.0


def test_volatility_is_recorded(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    params = Parameters(is_demo_mode=True, use_volatility=True, volatility_period=5)
    exchanges = [make_exchange(0, "A", 99.0, 101.0), make_exchange(1, "B", 109.0, 111.0)]
    engine, _, _ = make_engine(params, exchanges)
    engine.run_iteration(T0)
    history = engine.res.volatility[0][1]
    assert len(history) == 1
    assert history[0] < 0.0
    assert engine.res.volatility[1][0][0] > 0.0


def test_demo_mode_does_not_trade(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    orders = []
    params = Parameters(is_demo_mode=True)
    exchanges = [make_exchange(0, "A", 99.0, 100.0, orders=orders),
                 make_exchange(1, "B", 110.0, 111.0, orders=orders)]
    engine, log, _ = make_engine(params, exchanges, Strategy(entry_first_pair, exit_always))
    assert engine.run_iteration(T0) is False
    assert engine.result_id == 0
    assert orders == []
    assert "INFO: Opportunity found but no trade will be generated (Demo mode)" in log.getvalue()


def test_full_trade_cycle(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    orders = []
    params = Parameters(tested_exposure=50.0, max_exposure=100.0)
    avail_a = {"btc": 0.0, "usd": 1000.0}
    avail_b = {"btc": 0.0, "usd": 1000.0}
    exchanges = [
        make_exchange(0, "A", 99.0, 100.0, avail=avail_a, orders=orders),
        make_exchange(1, "B", 110.0, 111.0, avail=avail_b, orders=orders),
    ]
    engine, log, csv = make_engine(params, exchanges, Strategy(entry_first_pair, exit_always))
    engine.load_balances()

    assert engine.run_iteration(T0) is True
    assert engine.result_id == 1
    assert engine.res.exposure == params.tested_exposure
    assert orders == [("A", "long", "buy"), ("B", "short", "sell")]
    assert Path("restore.txt").read_text() != ""

    avail_a["usd"] = 1001.0
    assert engine.run_iteration(T0 + 60) is False
    assert orders[2:] == [("A", "long", "sell"), ("B", "short", "buy")]
    assert csv.getvalue().startswith("1,A,B,")
    assert Path("restore.txt").read_text() == ""
    assert engine.res.id == 0
    assert engine.balances[0].leg2 == 1001.0
    assert "ACTUAL PERFORMANCE" in log.getvalue()


def test_in_market_header_when_verbose(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    params = Parameters(is_demo_mode=True, verbose=True)
    exchanges = [make_exchange(0, "A", 99.0, 100.0), make_exchange(1, "B", 110.0, 111.0)]
    engine, log, _ = make_engine(params, exchanges)
    engine.in_market = True
    engine.res.id_exch_long, engine.res.id_exch_short = 0, 1
    engine.res.exch_name_long, engine.res.exch_name_short = "A", "B"
    assert engine.run_iteration(T0) is True
    assert "IN MARKET: Long A / Short B ]" in log.getvalue()


def test_run_stops_at_max_iteration(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    calls = []
    params = Parameters(is_demo_mode=True, interval=1, debug_max_iteration=2)
    exchanges = [make_exchange(0, "A", 99.0, 100.0, on_quote=lambda: calls.append("A")),
                 make_exchange(1, "B", 110.0, 111.0)]
    engine, log, _ = make_engine(params, exchanges)
    engine.run()
    assert calls == ["A", "A"]
    text = log.getvalue()
    assert "Max iteration reached (2)" in text
    assert "Running..." in text
    assert f"(pid {os.getpid()})" in engine.out.getvalue()


def test_run_stops_on_stop_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    Path("stop_after_notrade").write_text("")
    params = Parameters(is_demo_mode=True, interval=1, debug_max_iteration=100)
    exchanges = [make_exchange(0, "A", 99.0, 100.0), make_exchange(1, "B", 110.0, 111.0)]
    engine, log, _ = make_engine(params, exchanges)
    engine.run()
    text = log.getvalue()
    assert "Exit after last trade (file stop_after_notrade found)" in text
    assert "Max iteration reached" not in text


def test_run_warns_when_late(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    clock = FakeClock()

    def slow_quote():
        clock.now += 3

    params = Parameters(is_demo_mode=True, interval=1, debug_max_iteration=2)
    exchanges = [make_exchange(0, "A", 99.0, 100.0, on_quote=slow_quote),
                 make_exchange(1, "B", 110.0, 111.0)]
    engine, log, _ = make_engine(params, exchanges, clock=clock)
    engine.run()
    assert "second(s) too late" in log.getvalue()


def test_run_rejects_zero_interval(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    params = Parameters(is_demo_mode=True, interval=0)
    engine, _, _ = make_engine(params, [make_exchange(0, "A", 1, 2), make_exchange(1, "B", 1, 2)])
    with pytest.raises(ConfigError, match="interval"):
        engine.run()