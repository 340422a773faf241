"""Tests for request body variants."""
from contextlib import ExitStack

import pytest

from modiopy import BuilderError, Credentials, EncodedBody, Modio, MultipartForm

from conftest import make_response


def test_file_parts_are_opened_lazily_and_closed(tmp_path):
    archive = tmp_path / "mod.zip"
    archive.write_bytes(b"PK\x03\x04")
    form = MultipartForm().text("version", 2).file("filedata", archive, mime="application/zip")

    with ExitStack() as stack:
        kwargs = form.open(stack)
        name, (filename, fh, mime) = kwargs["files"][1]
        assert kwargs["files"][0] == ("version", (None, "2"))
        assert (name, filename, mime) == ("filedata", "mod.zip", "application/zip")
        assert fh.read() == b"PK\x03\x04"
    assert fh.closed


def test_unreadable_file_part_is_builder_error(tmp_path):
    form = MultipartForm().file("logfile", tmp_path / "missing.log")

    with ExitStack() as stack, pytest.raises(BuilderError):
        form.open(stack)


def test_unreadable_part_fails_before_request(client, session, tmp_path):
    form = MultipartForm().file("logfile", tmp_path / "missing.log")

    with pytest.raises(BuilderError):
        client.post_form("/report", form)
    session.request.assert_not_called()


def test_encoded_body_sets_content_type(session):
    modio = Modio("agent/1", Credentials.token("T"), session=session)
    session.request.return_value = make_response(json_body={"code": 200, "message": "ok"})

    modio._request("POST", "/oauth/logout", EncodedBody(b"{}", "application/json"))

    kwargs = session.request.call_args.kwargs
    assert kwargs["data"] == b"{}"
    assert kwargs["headers"]["Content-Type"] == "application/json"
    assert session.request.call_args.args[1] == "https://api.mod.io/v1/oauth/logout"
