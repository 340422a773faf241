from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests
from requests.adapters import HTTPAdapter

__all__ = [
    "DEFAULT_USER_AGENT",
    "logger_setup",
    "session_factory",
    "set_query_param",
    "with_query",
    "redact_url",
    "is_success",
]

DEFAULT_USER_AGENT = "modiopy/0.1"


def logger_setup(name: str,
                 level: int = logging.INFO,
                 *,
                 log_to_file: Optional[str] = None,
                 file_level: Optional[int] = None,
                 fmt: str = "%(asctime)s %(name)s %(levelname)s: %(message)s",
                 datefmt: str = "%Y-%m-%d %H:%M:%S") -> logging.Logger:
    """
    Attach console (and optionally file) handlers to the `name` logger.

    The library itself only logs through module loggers under "modiopy" and never
    installs handlers; applications call this once to see that output. Calling it
    again for the same name leaves the existing handlers in place.

    Parameters
    ----------
    name : str
        Logger to configure, normally "modiopy".
    level : int
        Console threshold.
    log_to_file : Optional[str]
        Also write records to this path.
    file_level : Optional[int]
        Threshold for the file handler; `level` when omitted.
    fmt, datefmt : str
        Passed to logging.Formatter.

    Example
    -------
    >>> log = logger_setup("modiopy", level=logging.DEBUG, log_to_file="modio.log")
    >>> log.debug("ready")
    """
    logger = logging.getLogger(name)
    logger.setLevel(min(level, file_level if file_level is not None else level))

    if not getattr(logger, "_modiopy_setup_done", False):
        formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

        ch = logging.StreamHandler()
        ch.setLevel(level)
        ch.setFormatter(formatter)
        logger.addHandler(ch)

        if log_to_file:
            fh = logging.FileHandler(log_to_file, encoding="utf-8")
            fh.setLevel(file_level if file_level is not None else level)
            fh.setFormatter(formatter)
            logger.addHandler(fh)

        logger._modiopy_setup_done = True

    return logger


def session_factory(*,
                    pool_connections: int = 10,
                    pool_maxsize: int = 10,
                    default_headers: Optional[Dict[str, str]] = None) -> requests.Session:
    """
    Create a pooled requests.Session for a Modio client.

    The adapter is mounted without a urllib3 Retry: the client never retries on
    its own, errors are always surfaced to the caller.

    Parameters
    ----------
    pool_connections : int
        Number of connection pools to cache.
    pool_maxsize : int
        Max connections kept per pool.
    default_headers : Optional[Dict[str,str]]
        Extra headers to set on session.headers.

    Returns
    -------
    requests.Session
    """
    session = requests.Session()
    if default_headers:
        session.headers.update(default_headers)

    adapter = HTTPAdapter(pool_connections=pool_connections, pool_maxsize=pool_maxsize)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def set_query_param(url: str, name: str, value: Any) -> str:
    """
    Return `url` with query parameter `name` set to `value`.

    The query is handled as a list of pairs: the first `name` pair is replaced
    where it stands, further `name` pairs are dropped, and every other pair
    (repeated keys such as ``id-in=1&id-in=2`` included) is kept as-is. When
    `name` is absent the pair is appended.
    """
    parts = urlsplit(url)
    pairs = []
    replaced = False
    for key, val in parse_qsl(parts.query, keep_blank_values=True):
        if key != name:
            pairs.append((key, val))
        elif not replaced:
            pairs.append((name, str(value)))
            replaced = True
    if not replaced:
        pairs.append((name, str(value)))
    return urlunsplit(parts._replace(query=urlencode(pairs)))


def with_query(path: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Append url-encoded `params` to `path` (which may already carry a query)."""
    if not params:
        return path
    encoded = urlencode({k: v for k, v in params.items() if v is not None}, doseq=True)
    if not encoded:
        return path
    sep = "&" if "?" in path else "?"
    return f"{path}{sep}{encoded}"


def redact_url(url: str) -> str:
    """Hide the api_key value so URLs can be logged."""
    parts = urlsplit(url)
    if "api_key" not in parts.query:
        return url
    pairs = [(k, "***" if k == "api_key" else v) for k, v in parse_qsl(parts.query, keep_blank_values=True)]
    return urlunsplit(parts._replace(query=urlencode(pairs)))


def is_success(status: int) -> bool:
    return 200 <= status < 300
