"""Run-time settings of the arbitrage engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Parameters:
    """All settings, plus the list of exchanges taking part in the run."""

    exch_name: list = field(default_factory=list)
    fees: list = field(default_factory=list)
    can_short: list = field(default_factory=list)
    is_implemented: list = field(default_factory=list)
    ticker_url: list = field(default_factory=list)

    spread_entry: float = 0.0
    spread_target: float = 0.0
    max_length: int = 0
    price_delta_lim: float = 0.0
    trailing_lim: float = 0.0
    trailing_count: int = 0
    order_book_factor: float = 0.0
    is_demo_mode: bool = False
    leg1: str = "BTC"
    leg2: str = "USD"
    verbose: bool = False
    log_file: Any = None
    interval: int = 1
    debug_max_iteration: int = 1
    use_full_exposure: bool = False
    tested_exposure: float = 0.0
    max_exposure: float = 0.0
    use_volatility: bool = False
    volatility_period: int = 0
    cacert: str = ""

    bitfinex_api: str = ""
    bitfinex_secret: str = ""
    bitfinex_fees: float = 0.0
    bitfinex_enable: bool = False
    okcoin_api: str = ""
    okcoin_secret: str = ""
    okcoin_fees: float = 0.0
    okcoin_enable: bool = False
    bitstamp_client_id: str = ""
    bitstamp_api: str = ""
    bitstamp_secret: str = ""
    bitstamp_fees: float = 0.0
    bitstamp_enable: bool = False
    gemini_api: str = ""
    gemini_secret: str = ""
    gemini_fees: float = 0.0
    gemini_enable: bool = False
    kraken_api: str = ""
    kraken_secret: str = ""
    kraken_fees: float = 0.0
    kraken_enable: bool = False
    itbit_api: str = ""
    itbit_secret: str = ""
    itbit_fees: float = 0.0
    itbit_enable: bool = False
    wex_api: str = ""
    wex_secret: str = ""
    wex_fees: float = 0.0
    wex_enable: bool = False
    poloniex_api: str = ""
    poloniex_secret: str = ""
    poloniex_fees: float = 0.0
    poloniex_enable: bool = False
    gdax_api: str = ""
    gdax_secret: str = ""
    gdax_phrase: str = ""
    gdax_fees: float = 0.0
    gdax_enable: bool = False
    quadriga_api: str = ""
    quadriga_secret: str = ""
    quadriga_client_id: str = ""
    quadriga_fees: float = 0.0
    quadriga_enable: bool = False
    exmo_api: str = ""
    exmo_secret: str = ""
    exmo_fees: float = 0.0
    exmo_enable: bool = False
    cexio_client_id: str = ""
    cexio_api: str = ""
    cexio_secret: str = ""
    cexio_fees: float = 0.0
    cexio_enable: bool = False
    bittrex_api: str = ""
    bittrex_secret: str = ""
    bittrex_fees: float = 0.0
    bittrex_enable: bool = False
    binance_api: str = ""
    binance_secret: str = ""
    binance_fees: float = 0.0
    binance_enable: bool = False

    send_email: bool = False
    sender_address: str = ""
    sender_username: str = ""
    sender_password: str = ""
    smtp_server_address: str = ""
    receiver_address: str = ""

    db_file: str = ""
    db_conn: Any = None

    def add_exchange(self, name, fees, can_short, is_implemented) -> None:
        """Register an exchange taking part in the run."""
        self.exch_name.append(name)
        self.fees.append(fees)
        self.can_short.append(can_short)
        self.is_implemented.append(is_implemented)

    def nb_exch(self) -> int:
        """Number of registered exchanges."""
        return len(self.exch_name)