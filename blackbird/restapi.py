"""JSON REST client that retries until it gets a valid answer."""

from __future__ import annotations

import json
import sys
import time
from collections.abc import Mapping

import requests
from requests.structures import CaseInsensitiveDict

CONNECT_TIMEOUT = 10
READ_TIMEOUT = 20
USER_AGENT = "Blackbird"


def _header_dict(headers) -> CaseInsensitiveDict:
    result = CaseInsensitiveDict()
    if headers is None:
        return result
    if isinstance(headers, Mapping):
        result.update(headers)
        return result
    for line in headers:
        name, _, value = line.partition(":")
        result[name.strip()] = value.strip()
    return result


class RestApi:
    """Client for one host; every request is retried until valid JSON comes back.

    Headers may be given as a mapping or as ``"Name: value"`` lines.
    """

    def __init__(self, host, cacert=None, log=None, *, session=None,
                 retry_delay=2.0, sleep=time.sleep):
        self.host = host
        self.retry_delay = retry_delay
        self._verify = cacert if cacert else False
        self._log = log if log is not None else sys.stderr
        self._sleep = sleep
        self._session = session if session is not None else requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT, "Accept-Encoding": "gzip"})

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self._session.close()

    def get_request(self, uri, headers=None):
        """Send a GET request and return the decoded JSON object or array."""
        return self._request("GET", uri, _header_dict(headers), None)

    def post_request(self, uri, headers=None, post_data=""):
        """Send a POST request with ``post_data`` as body and return the decoded JSON."""
        hdrs = _header_dict(headers)
        hdrs.setdefault("Content-Type", "application/x-www-form-urlencoded")
        return self._request("POST", uri, hdrs, post_data)

    def _request(self, method, uri, headers, data):
        url = self.host + uri
        while True:
            try:
                response = self._session.request(
                    method, url, headers=headers, data=data,
                    timeout=(CONNECT_TIMEOUT, READ_TIMEOUT), verify=self._verify,
                )
            except requests.RequestException as exc:
                self._log.write(f"Error with request: {exc}\n  URL: {url}\n")
            else:
                try:
                    payload = json.loads(response.text)
                    if not isinstance(payload, (dict, list)):
                        raise ValueError("JSON text must be an object or array")
                except ValueError as exc:
                    self._log.write(
                        f"Server Response: {response.status_code} - {url}\n"
                        f"Error with JSON: {exc}\n"
                        f"Buffer:\n{response.text}\n"
                    )
                else:
                    return payload
            self._log.write(f"  Retry in {self.retry_delay:g} sec...\n")
            self._sleep(self.retry_delay)