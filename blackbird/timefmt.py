"""Local date and time formatting helpers."""

from __future__ import annotations

import time

CSV_FORMAT = "%Y-%m-%d_%H:%M:%S"
DB_FORMAT = "%Y-%m-%d %H:%M:%S"
FILE_NAME_FORMAT = "%Y%m%d_%H%M%S"
DEFAULT_FORMAT = "%m/%d/%Y %H:%M:%S"


def _format(fmt: str, t: float) -> str:
    return time.strftime(fmt, time.localtime(t))


def get_time_t(y, m, d, h, n, s) -> int:
    """Return the epoch seconds of the given local date and time."""
    return int(time.mktime((y, m, d, h, n, s, 0, 0, -1)))


def print_date_time_csv(t) -> str:
    """Return ``yyyy-mm-dd_hh:nn:ss`` for the epoch time ``t``."""
    return _format(CSV_FORMAT, t)


def print_date_time_db(t) -> str:
    """Return ``yyyy-mm-dd hh:nn:ss`` for the epoch time ``t``."""
    return _format(DB_FORMAT, t)


def print_date_time_file_name() -> str:
    """Return the current time as ``yyyymmdd_hhnnss``."""
    return _format(FILE_NAME_FORMAT, time.time())


def print_date_time(t=None) -> str:
    """Return ``mm/dd/yyyy hh:nn:ss`` for ``t``, or for now when ``t`` is None."""
    return _format(DEFAULT_FORMAT, time.time() if t is None else t)