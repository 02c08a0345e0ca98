# blackbird

A library for running a long/short arbitrage loop on bitcoin markets. At a
fixed interval it reads the bid and ask of every exchange you give it. When
your entry rule finds a wide enough spread between two exchanges, it opens a
market-neutral position: long on one exchange and short on the other. When
your exit rule says the spread has closed, it exits both legs, reads the new
balances and writes one line per trade to a CSV file.

## Installation

Install the package with pip. It needs Python 3.10 or later and `requests`.
The tests also need `pytest` and `responses`; install them with the `test`
extra.

## Running the engine

You supply four things: the exchanges, the strategy, a log stream and a CSV
stream.

- Each exchange is an `Exchange`. It holds an `ExchangeApi`, which is a set of
  callables: `get_quote`, `get_avail`, `get_active_pos` and `get_limit_price`.
  The order callables `send_long_order`, `send_short_order` and
  `is_order_complete` are optional. An exchange's `id` must equal its position
  in the list.
- The strategy is a `Strategy`. Its `check_entry` fills the `Result` with the
  pair of exchanges and the target prices. Its `check_exit` fills the exit
  targets.

```python
import sys

from blackbird.engine import ArbitrageEngine, Strategy, validate_parameters, write_csv_header
from blackbird.parameters import Parameters
from blackbird.quote import Quote
from blackbird.trading import Exchange, ExchangeApi


def make_api(bid, ask):
    return ExchangeApi(
        get_quote=lambda: Quote(bid, ask),
        get_avail=lambda currency: 0.0,
        get_active_pos=lambda: 0.0,
        get_limit_price=lambda volume, is_bid: bid if is_bid else ask,
    )


exchanges = [
    Exchange(0, "Alpha", 0.0025, True, True, make_api(9990.0, 10000.0), db_table="alpha"),
    Exchange(1, "Beta", 0.0020, True, True, make_api(10100.0, 10110.0), db_table="beta"),
]

params = Parameters(is_demo_mode=True, interval=5, debug_max_iteration=3,
                    spread_entry=0.008, spread_target=0.0, verbose=True)
validate_parameters(params)          # raises ConfigError on unusable settings

strategy = Strategy(
    check_entry=lambda long_ex, short_ex, res, p: False,
    check_exit=lambda long_ex, short_ex, res, p, now: False,
)

with open("results.csv", "w") as csv_file:
    write_csv_header(csv_file)
    engine = ArbitrageEngine(params, exchanges, strategy, csv_file, log=sys.stdout)
    engine.run()
```

`ArbitrageEngine.run()` works in these steps:

1. It writes a banner and the spread targets to the log.
2. It reads the starting balances. In demo mode it skips this step.
3. It loads any open position from `restore.txt` in the working directory.
4. It waits for a second that is a multiple of `interval`.
5. It calls `run_iteration` once per interval. If an iteration starts late, it
   logs a warning and skips ahead to the next slot.

The loop stops after `debug_max_iteration` iterations. It also stops when a
file named `stop_after_notrade` exists and no position is open.

`ArbitrageEngine` raises `ConfigError` in these cases:

- It is given fewer than two exchanges.
- `interval` is below one second.
- An account holds more than 0.005 BTC while no position is open.

An optional `recorder(table, timestamp, bid, ask)` callable receives every
quote, for example to store the quote history.

## Behaviour of the trading steps

`blackbird.trading.open_position` and `blackbird.trading.close_position` act on
the exchanges as follows.

Sizing the exposure:

- The exposure is the smaller of the two USD balances.
- With `use_full_exposure`, 1% is kept back and the exposure is capped at
  `max_exposure`.
- Otherwise `tested_exposure` is used. The trade is cancelled if the cash
  available does not exceed it.

Cancelling a trade:

- A trade is cancelled if a limit price from the order book is zero.
- A trade is cancelled if a limit price misses the target by more than
  `price_delta_lim`.

Placing orders:

- Both orders are sent.
- `wait_for_orders` first waits 5 seconds. It then polls every 3 seconds until
  both orders are filled.

Saving a position:

- An opened position is saved to `restore.txt`.
- On close, the file is emptied and the trade is written as one CSV line.

Demo mode:

- Opportunities are logged and no order is sent.

E-mail:

- With `send_email` set, `blackbird.send_email.send_email` runs a shell
  command that calls `sendemail` with an HTML summary of the trade.
- `build_email_command` returns that command without running it.

## Building blocks

```python
from blackbird.hexutil import hex_str
from blackbird.b64 import base64_encode, base64_decode
from blackbird.hmac_sha512 import HmacSha512

hex_str(b"\x01\xab")                       # '01ab'
hex_str(b"\x01\xab", upper=True)           # '01AB'
base64_decode(base64_encode(b"hello"))     # b'hello'
HmacSha512("secret", "message").hex_digest()
```

- `base64_decode` stops at the first `=` or at the first character outside
  the base64 alphabet.
- `blackbird.quote.Quote` is a frozen bid/ask pair. `Quote.from_pair` builds
  one from a `(bid, ask)` pair.
- `blackbird.timefmt` formats epoch times in local time:
  - `print_date_time_csv` gives `yyyy-mm-dd_hh:mm:ss`.
  - `print_date_time_db` gives `yyyy-mm-dd hh:mm:ss`.
  - `print_date_time` gives `mm/dd/yyyy hh:mm:ss`.
  - `print_date_time_file_name` gives the current time as `yyyymmdd_hhmmss`.
  - `get_time_t` converts a local date and time to epoch seconds.
- `blackbird.result.Result` holds one long/short trade. It provides:
  - the target and actual performance figures;
  - the trade length in minutes;
  - the entry and exit log entries;
  - `reset`;
  - `save_partial_result` and `load_partial_result` for the restore file.
- `blackbird.restapi.RestApi` is a JSON client for one host.
  - `get_request` and `post_request` return the decoded object or array.
  - On a transport or decoding error it logs the error and retries without
    limit, waiting 2 seconds between attempts.
  - Headers can be a mapping or a list of `"Name: value"` lines.
  - Certificates are verified only when a `cacert` path is given.
- `blackbird.parameters.Parameters` holds every setting. It also holds the
  list of exchanges registered with `add_exchange`; `nb_exch` returns how many
  there are.

## What the package does not do

- There is no command-line program.
- It does not read a configuration file. You build `Parameters` in code.
- It has no exchange clients. You write each exchange's `ExchangeApi`
  callables yourself, for example on top of `RestApi` and `HmacSha512`.
- It has no entry or exit rules. You provide them through `Strategy`.
- It does not store the quote history. Pass a `recorder` if you want one.
- It does not create log or CSV files. You open them and pass the streams in.

## Warning

Trading carries risk. Try demo mode and a small test exposure first. Use the
software at your own risk.