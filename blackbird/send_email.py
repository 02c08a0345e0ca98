"""Trade report e-mail, sent through the sendemail command."""

from __future__ import annotations

import subprocess
import sys

from .timefmt import print_date_time

_TD_STYLE = (
    "font-family:Georgia;font-size:11px;border-color:#A1A1A1;border-width:1px;"
    "border-style:solid;padding:2px;"
)
_CAPTION_STYLE = (
    "font-family:Georgia;font-size:13px;font-weight:normal;color:#0021BF;"
    "padding-bottom:6px;text-align:left;"
)
_TABLE_TITLE_STYLE = (
    "font-family:Georgia;font-variant:small-caps;font-size:13px;text-align:center;"
    "border-color:#A1A1A1;border-width:1px;border-style:solid;background-color:#EAEAEA;"
)
_Q = '\\"'


def _td(content: str, extra: str = "") -> str:
    return f"<td style={_Q}{_TD_STYLE}{extra}{_Q}>{content}</td>"


def build_email_command(result, params) -> str:
    """Return the shell command that mails the report of ``result``."""
    perf = result.actual_perf()
    positive = perf >= 0
    sign = "+" if positive else ""
    titles = [
        ("Entry Date", "width:120px;"),
        ("Exit Date", "width:120px;"),
        ("Long", "width:70px;"),
        ("Short", "width:70px;"),
        ("Exposure", "width:70px;"),
        ("Profit", "width:70px;"),
        ("Return", "width:70px;"),
    ]
    values = [
        print_date_time(result.entry_time),
        print_date_time(result.exit_time),
        result.exch_name_long,
        result.exch_name_short,
        f"\\${result.exposure * 2.0:.2f}",
        f"\\${result.leg2_tot_balance_after - result.leg2_tot_balance_before:.2f}",
    ]
    colour = "color:#000092;" if positive else "color:#920000;"
    parts = [
        f"sendemail -f {params.sender_address} -t {params.receiver_address}",
        f' -u "Blackbird Bitcoin Arbitrage - Trade {result.id} ({sign}{perf * 100.0:.2f}%)" -m "',
        "<html>",
        "  <div>",
        "    <br/><br/>",
        f"    <table style={_Q}border-width:0px;border-collapse:collapse;text-align:center;{_Q}>",
        f"      <caption style={_Q}{_CAPTION_STYLE}{_Q}>Blackbird Bitcoin Arbitrage - Trade {result.id}</caption>",
        f"      <tr style={_Q}{_TABLE_TITLE_STYLE}{_Q}>",
        *(f"        {_td(title, width)}" for title, width in titles),
        "      </tr>",
        "      <tr>",
        *(f"        {_td(value)}" for value in values),
        f"<td style={_Q}{_TD_STYLE}{colour}{_Q}>{sign}{perf * 100.0:.2f}%</td></tr>",
        "    </table>",
        "  </div>",
        f'</html>" -s {params.smtp_server_address} -xu {params.sender_username}'
        f" -xp {params.sender_password} -o tls=yes -o message-content-type=html >/dev/null",
    ]
    return "".join(parts)


def send_email(result, params, log=None) -> None:
    """Mail the report of ``result``; a failure to start the shell is logged."""
    if log is None:
        log = params.log_file if params.log_file is not None else sys.stderr
    try:
        subprocess.run(build_email_command(result, params), shell=True, check=False)
    except OSError:
        log.write("<sendEmail> Error with system call\n")