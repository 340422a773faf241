"""Tests for download resolution and streaming."""
import io

import pytest
import requests

from modiopy import (
    MAX_REDIRECTS,
    DownloadError,
    DownloadErrorKind,
    File,
    Primary,
    RequestError,
    ResolvePolicy,
    StatusError,
    Url,
    Version,
)

from conftest import AGENT, HOST, error_body, listing, make_response, modfile, query_of, sent_urls

BINARY = "https://binary.modcdn.io/mods/1/2/file.zip"


def binary_response(data=b"0123456789", status=200, headers=None):
    return make_response(status, body=data, headers=headers, url=BINARY)


def test_raw_url_streams_without_lookup_or_credentials(client, session):
    session.request.return_value = binary_response(b"abc" * 10000)
    sink = io.BytesIO()

    written, returned = client.download(Url(BINARY), sink)

    assert written == 30000
    assert returned is sink
    assert sink.getvalue() == b"abc" * 10000
    assert sent_urls(session) == [BINARY]
    kwargs = session.request.call_args.kwargs
    assert kwargs["headers"] == {"User-Agent": AGENT}
    assert kwargs["stream"] is True
    assert kwargs["allow_redirects"] is False


def test_plain_string_action_is_a_url(client, session):
    session.request.return_value = binary_response(b"xyz")

    written, _ = client.download(BINARY, io.BytesIO())

    assert written == 3


def test_redirect_is_followed_verbatim_and_bytes_counted_once(client, session):
    target = "https://cdn.example/signed/file.zip?sig=abc"
    session.request.side_effect = [
        make_response(302, body=b"moved", headers={"Location": target}, url=BINARY),
        make_response(200, body=b"payload", url=target),
    ]
    sink = io.BytesIO()

    written, _ = client.download(Url(BINARY), sink)

    assert written == 7
    assert sink.getvalue() == b"payload"
    assert sent_urls(session) == [BINARY, target]
    assert "api_key" not in query_of(sent_urls(session)[1])
    assert all("Accept" not in c.kwargs["headers"] for c in session.request.call_args_list)


@pytest.mark.parametrize("status", [301, 307])
def test_other_redirect_statuses(client, session, status):
    session.request.side_effect = [
        make_response(status, headers={"Location": "/moved.zip"}, url=BINARY),
        make_response(200, body=b"ok"),
    ]

    written, _ = client.download(Url(BINARY), io.BytesIO())

    assert written == 2
    assert sent_urls(session)[1] == "https://binary.modcdn.io/moved.zip"


def test_redirect_loop_is_bounded(client, session):
    session.request.side_effect = lambda *a, **kw: make_response(302, headers={"Location": BINARY})

    with pytest.raises(RequestError):
        client.download(Url(BINARY), io.BytesIO())
    assert session.request.call_count == MAX_REDIRECTS + 1


def test_failed_binary_request_is_classified_and_nothing_written(client, session):
    session.request.return_value = make_response(404, json_body=error_body("gone", error_ref=14000, code=404))
    sink = io.BytesIO()

    with pytest.raises(StatusError):
        client.download(Url(BINARY), sink)
    assert sink.getvalue() == b""


def test_transport_error_mid_stream(client, session):
    resp = binary_response()
    resp.iter_content = lambda chunk_size=1: _broken()
    session.request.return_value = resp
    sink = io.BytesIO()

    with pytest.raises(RequestError):
        client.download(Url(BINARY), sink)
    assert sink.getvalue() == b"part"


def _broken():
    yield b"part"
    raise requests.exceptions.ChunkedEncodingError("connection reset")


def test_sink_write_failure_is_download_error(client, session):
    session.request.return_value = binary_response()

    class FullDisk(io.RawIOBase):
        def writable(self):
            return True

        def write(self, b):
            raise OSError(28, "No space left on device")

    with pytest.raises(DownloadError) as exc:
        client.download(Url(BINARY), FullDisk())
    assert exc.value.kind is DownloadErrorKind.IO


def test_primary_file(client, session):
    mod = {"id": 19, "game_id": 5, "modfile": modfile(101, url=BINARY)}
    session.request.side_effect = [make_response(json_body=mod), binary_response(b"primary")]

    written, _ = client.download(Primary(5, 19), io.BytesIO())

    assert written == 7
    lookup, binary = sent_urls(session)
    assert lookup.startswith(f"{HOST}/games/5/mods/19?")
    assert binary == BINARY


@pytest.mark.parametrize("primary", [None, {}])
def test_primary_file_missing(client, session, primary):
    session.request.return_value = make_response(json_body={"id": 19, "game_id": 5, "modfile": primary})

    with pytest.raises(DownloadError) as exc:
        client.download(Primary(5, 19), io.BytesIO())
    assert exc.value.kind is DownloadErrorKind.NO_PRIMARY_FILE
    assert (exc.value.game_id, exc.value.mod_id) == (5, 19)
    assert session.request.call_count == 1


def test_specific_file(client, session):
    session.request.side_effect = [make_response(json_body=modfile(101, url=BINARY)), binary_response(b"file")]

    written, _ = client.download(File(5, 19, 101), io.BytesIO())

    assert written == 4
    assert sent_urls(session)[0].startswith(f"{HOST}/games/5/mods/19/files/101?")


def test_specific_file_not_found_is_remapped(client, session):
    session.request.return_value = make_response(404, json_body=error_body("missing", error_ref=15010, code=404))

    with pytest.raises(DownloadError) as exc:
        client.download(File(5, 19, 101), io.BytesIO())
    assert exc.value.kind is DownloadErrorKind.FILE_NOT_FOUND
    assert (exc.value.game_id, exc.value.mod_id, exc.value.file_id) == (5, 19, 101)
    assert isinstance(exc.value.__cause__, StatusError)


def test_specific_file_other_errors_pass_through(client, session):
    session.request.return_value = make_response(500, json_body=error_body("boom", code=500))

    with pytest.raises(StatusError) as exc:
        client.download(File(5, 19, 101), io.BytesIO())
    assert exc.value.code == 500


def test_version_lookup_query(client, session):
    session.request.side_effect = [
        make_response(json_body=listing([modfile(101, url=BINARY)], limit=2)),
        binary_response(b"v"),
    ]

    client.download(Version(5, 19, "1.0"), io.BytesIO())

    lookup = sent_urls(session)[0]
    assert lookup.startswith(f"{HOST}/games/5/mods/19/files?")
    assert query_of(lookup) == {
        "version": ["1.0"],
        "_sort": ["-date_added"],
        "_limit": ["2"],
        "api_key": ["KEY"],
    }


@pytest.mark.parametrize("count,policy,outcome", [
    (0, ResolvePolicy.LATEST, DownloadErrorKind.VERSION_NOT_FOUND),
    (0, ResolvePolicy.FAIL, DownloadErrorKind.VERSION_NOT_FOUND),
    (1, ResolvePolicy.LATEST, 101),
    (1, ResolvePolicy.FAIL, 101),
    (2, ResolvePolicy.LATEST, 101),
    (2, ResolvePolicy.FAIL, DownloadErrorKind.MULTIPLE_FILES_FOUND),
])
def test_version_resolution_outcomes(client, session, count, policy, outcome):
    files = [modfile(101 + i, url=f"https://binary.modcdn.io/{101 + i}.zip") for i in range(count)]
    session.request.side_effect = [
        make_response(json_body=listing(files, limit=2, total=count)),
        make_response(200, body=b"data"),
    ]
    action = Version(5, 19, "1.0", policy)

    if isinstance(outcome, DownloadErrorKind):
        with pytest.raises(DownloadError) as exc:
            client.download(action, io.BytesIO())
        assert exc.value.kind is outcome
        assert exc.value.version == "1.0"
        assert session.request.call_count == 1
    else:
        written, _ = client.download(action, io.BytesIO())
        assert written == 4
        assert sent_urls(session)[1] == f"https://binary.modcdn.io/{outcome}.zip"
