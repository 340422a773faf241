"""Shared fixtures: a mocked requests.Session and a factory for real Response objects."""
import io
import json
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlsplit

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from modiopy import Credentials, Modio

HOST = "https://api.test.mod.io/v1"
AGENT = "modiopy-tests/1.0"


def make_response(status=200, json_body=None, body=None, headers=None, url=HOST):
    """Build a requests.Response whose body is served from an in-memory stream."""
    headers = dict(headers or {})
    if json_body is not None:
        body = json.dumps(json_body).encode("utf-8")
        headers.setdefault("Content-Type", "application/json")
    resp = requests.Response()
    resp.status_code = status
    resp.headers = CaseInsensitiveDict(headers)
    resp.raw = io.BytesIO(body or b"")
    resp.url = url
    resp.encoding = "utf-8"
    return resp


def error_body(message="error", error_ref=10000, code=400, errors=None):
    err = {"code": code, "error_ref": error_ref, "message": message}
    if errors is not None:
        err["errors"] = errors
    return {"error": err}


def listing(items, offset=0, limit=100, total=None):
    return {
        "data": items,
        "result_count": len(items),
        "result_offset": offset,
        "result_limit": limit,
        "result_total": len(items) if total is None else total,
    }


def modfile(file_id, mod_id=19, version="1.0", url=None):
    return {
        "id": file_id,
        "mod_id": mod_id,
        "version": version,
        "filename": f"file{file_id}.zip",
        "download": {"binary_url": url or f"https://binary.modcdn.io/{file_id}.zip", "date_expires": 0},
    }


def query_of(url):
    return parse_qs(urlsplit(url).query)


def sent_urls(session):
    return [c.args[1] for c in session.request.call_args_list]


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(session):
    return Modio(AGENT, Credentials.api_key("KEY"), host=HOST, session=session)


@pytest.fixture
def token_client(session):
    return Modio(AGENT, Credentials.token("TOKEN"), host=HOST, session=session)
