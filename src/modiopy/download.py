"""
modiopy.download
----------------

Download helpers used by `Modio.download()`.

Features
- DownloadAction values describing *what* to download (primary file, a specific
  file, a release version, or a raw URL)
- Resolution of an action to the file's pre-signed binary URL
- Streaming of the binary into a caller supplied sink, following 301/302/307
  redirects (at most MAX_REDIRECTS hops)
- Optional tqdm progress bar

The binary request carries no credentials: binary URLs are pre-signed and
redirect targets are followed verbatim.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Tuple, TypeVar, Union
from urllib.parse import urljoin

import requests
from tqdm import tqdm

from .exceptions import DownloadError, DownloadErrorKind, RequestError, StatusError
from .utils import is_success

if TYPE_CHECKING:
    from .client import Modio

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 10
REDIRECT_STATUSES = (301, 302, 307)
CHUNK_SIZE = 8192

W = TypeVar("W")


class ResolvePolicy(Enum):
    """What to do when a version matches more than one file."""
    LATEST = "latest"
    FAIL = "fail"


class DownloadAction:
    """Base class of the download actions; `resolve()` returns the binary URL."""

    def resolve(self, client: "Modio") -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class Primary(DownloadAction):
    """Download the primary file of a mod."""
    game_id: int
    mod_id: int

    def resolve(self, client: "Modio") -> str:
        mod = client.mod(self.game_id, self.mod_id).get()
        if mod.modfile is None:
            raise DownloadError(DownloadErrorKind.NO_PRIMARY_FILE, game_id=self.game_id, mod_id=self.mod_id)
        return mod.modfile.download.binary_url


@dataclass(frozen=True)
class File(DownloadAction):
    """Download a specific file of a mod."""
    game_id: int
    mod_id: int
    file_id: int

    def resolve(self, client: "Modio") -> str:
        try:
            modfile = client.mod(self.game_id, self.mod_id).file(self.file_id).get()
        except StatusError as exc:
            if exc.code == 404:
                raise DownloadError(DownloadErrorKind.FILE_NOT_FOUND, game_id=self.game_id, mod_id=self.mod_id,
                                    file_id=self.file_id, code=exc.code, response=exc.response,
                                    error_ref=exc.error_ref) from exc
            raise
        return modfile.download.binary_url


@dataclass(frozen=True)
class Version(DownloadAction):
    """
    Download the file released under `version`.

    Files are looked up by exact version, newest first, and at most two are
    requested: that is enough to tell "one match" from "ambiguous".
    """
    game_id: int
    mod_id: int
    version: str
    policy: ResolvePolicy = ResolvePolicy.LATEST

    def resolve(self, client: "Modio") -> str:
        params = {"version": self.version, "_sort": "-date_added", "_limit": 2}
        files = client.mod(self.game_id, self.mod_id).files().list(params)
        ids = dict(game_id=self.game_id, mod_id=self.mod_id, version=self.version)

        if len(files) == 0:
            raise DownloadError(DownloadErrorKind.VERSION_NOT_FOUND, **ids)
        if len(files) > 1 and self.policy is ResolvePolicy.FAIL:
            raise DownloadError(DownloadErrorKind.MULTIPLE_FILES_FOUND, **ids)
        return files[0].download.binary_url


@dataclass(frozen=True)
class Url(DownloadAction):
    """Download from a URL directly, skipping any metadata lookup."""
    url: str

    def resolve(self, client: "Modio") -> str:
        return self.url


class Downloader:
    """
    Streams resolved downloads into sinks.

    Parameters
    ----------
    client : Modio
        Client whose session, User-Agent and timeout are used.
    """

    def __init__(self, client: "Modio"):
        self._client = client

    def download(self, action: Union[DownloadAction, str], sink: W, *, progress: bool = False) -> Tuple[int, W]:
        if isinstance(action, str):
            action = Url(action)
        url = action.resolve(self._client)
        return self.stream_to(url, sink, progress=progress)

    def stream_to(self, url: str, sink: W, *, progress: bool = False) -> Tuple[int, W]:
        """
        GET `url` and copy the body into `sink`, following redirects.

        Returns
        -------
        (bytes_written, sink)
        """
        headers = {"User-Agent": self._client.user_agent}
        for _ in range(MAX_REDIRECTS + 1):
            resp = self._client._send("GET", url, dict(headers), stream=True, allow_redirects=False)
            with resp:
                location = resp.headers.get("Location")
                if resp.status_code in REDIRECT_STATUSES and location:
                    url = urljoin(url, location)
                    logger.debug("download redirected (%s) to %s", resp.status_code, url)
                    continue
                if not is_success(resp.status_code):
                    raise self._client._error_for_response(resp)
                return self._copy(resp, sink, progress), sink
        raise RequestError(f"too many redirects (more than {MAX_REDIRECTS})")

    def _copy(self, resp: requests.Response, sink: Any, progress: bool) -> int:
        try:
            total = int(resp.headers["Content-Length"])
        except (KeyError, ValueError):
            total = None

        written = 0
        with tqdm(total=total, unit="B", unit_scale=True, ncols=80, disable=not progress) as bar:
            try:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    try:
                        sink.write(chunk)
                    except OSError as exc:
                        raise DownloadError(DownloadErrorKind.IO) from exc
                    written += len(chunk)
                    bar.update(len(chunk))
            except requests.RequestException as exc:
                raise RequestError(f"http request error while streaming body: {exc}") from exc
        logger.debug("downloaded %d bytes", written)
        return written
