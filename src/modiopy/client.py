"""
client.py - Core mod.io client (request dispatch layer)

Provides the Modio class that is the primary entrypoint for library users.
Every API call goes through `Modio._request()`, which:

  - resolves a path against the configured host (absolute URLs are used as-is),
  - injects credentials (``api_key`` query parameter or ``Authorization: Bearer``),
  - always sends the configured User-Agent,
  - reads the rate limit headers of the response,
  - decodes 2xx bodies into the caller's type or classifies the failure.

No retries, no caching: every error is surfaced to the caller as a ModioError
subclass (see exceptions.py).

Usage example:
    from modiopy import Modio, Credentials
    modio = Modio("my-tool/1.0", Credentials.api_key("MY_KEY"))
    for mod in modio.game(5).mods().iter():
        print(mod.id, mod.name)
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Any, BinaryIO, Callable, Dict, Mapping, Optional, Tuple, TypeVar, Union
from urllib.parse import urlencode, urlsplit

import requests
from requests.exceptions import InvalidHeader, InvalidSchema, InvalidURL, MissingSchema

from .auth import CredentialKind, Credentials, CredentialsLike, to_credentials
from .download import DownloadAction, Downloader
from .exceptions import (
    BuilderError,
    DecodeError,
    ErrorKind,
    ModioError,
    RateLimitSnapshot,
    RequestError,
    classify_error,
    error_for_status,
)
from .multipart import FORM_URLENCODED, EncodedBody, MultipartForm
from .pagination import ListStream
from .resources import GameRef, Games, Me, ModRef
from .types_models import ERRORENVELOPE
from .utils import DEFAULT_USER_AGENT, is_success, redact_url, set_query_param, session_factory

logger = logging.getLogger(__name__)

DEFAULT_HOST = "https://api.mod.io/v1"
TEST_HOST = "https://api.test.mod.io/v1"

# raised by requests while preparing the request, before anything hits the wire
_BUILDER_ERRORS = (MissingSchema, InvalidSchema, InvalidURL, InvalidHeader)

T = TypeVar("T")
Decoder = Optional[Callable[[Any], Any]]
RequestBody = Union[None, EncodedBody, MultipartForm]
Sink = TypeVar("Sink", bound=BinaryIO)


class Modio:
    """
    HTTP client for the mod.io REST API.

    Responsibilities:
      - Own (or borrow) a requests.Session used for every exchange.
      - Inject the configured credentials and User-Agent into each request.
      - Decode responses and map failures to the exception taxonomy.
      - Hand out resource references (games, mods, files, me) and run downloads.

    The configuration is read-only after construction, so a single client can be
    shared between threads. Use `with_credentials()` to get a client with other
    credentials.

    Parameters
    ----------
    user_agent : str
        Value of the User-Agent header sent with every request.
    credentials : Credentials | str | None
        API key, bearer token or no credentials. A bare string is an API key.
    host : str
        API root (defaults to DEFAULT_HOST; use TEST_HOST for the test environment).
    timeout : Optional[float]
        Transport timeout in seconds, passed to requests.
    session : Optional[requests.Session]
        Session to use. If omitted a pooled session is created and closed by `close()`.

    Examples
    --------
    >>> modio = Modio("my-tool/1.0", "MY_API_KEY", host=TEST_HOST)
    >>> game = modio.game(5).get()
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        credentials: CredentialsLike = None,
        *,
        host: str = DEFAULT_HOST,
        timeout: Optional[float] = 30.0,
        session: Optional[requests.Session] = None,
    ):
        if not isinstance(user_agent, str) or not user_agent:
            raise ValueError("user_agent must be a non-empty string")
        if not isinstance(host, str) or not host.startswith("http"):
            raise ValueError("host must be an http/https URL")
        self._user_agent = user_agent
        self._credentials = to_credentials(credentials)
        self._host = host.rstrip("/")
        self._timeout = timeout
        self._owns_session = session is None
        self._session = session if session is not None else session_factory()

    # Read-only configuration
    @property
    def host(self) -> str:
        return self._host

    @property
    def user_agent(self) -> str:
        return self._user_agent

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    @property
    def session(self) -> requests.Session:
        return self._session

    def with_credentials(self, credentials: CredentialsLike) -> "Modio":
        """
        Return a new client with `credentials`, sharing this client's session.

        The returned client does not own the session, closing it is left to the
        original client.
        """
        clone = Modio(self._user_agent, credentials, host=self._host, timeout=self._timeout, session=self._session)
        clone._owns_session = False
        return clone

    # Resource references
    def games(self) -> Games:
        return Games(self)

    def game(self, game_id: int) -> GameRef:
        return GameRef(self, game_id)

    def mod(self, game_id: int, mod_id: int) -> ModRef:
        return ModRef(self, game_id, mod_id)

    def me(self) -> Me:
        """Resources of the authenticated user. Requires a bearer token."""
        return Me(self)

    def download(self, action: Union[DownloadAction, str], sink: Sink, *, progress: bool = False) -> Tuple[int, Sink]:
        """
        Resolve `action` to a binary URL and stream it into `sink`.

        Parameters
        ----------
        action : DownloadAction | str
            Primary / File / Version / Url action. A bare string is a raw URL.
        sink : writable binary file-like
            Receives the bytes; it is handed back untouched apart from the writes.
        progress : bool
            Draw a tqdm progress bar while streaming.

        Returns
        -------
        (bytes_written, sink)

        Raises
        ------
        DownloadError
            No primary file, file not found, version not found, multiple files found,
            or the sink failed to accept a chunk.
        ModioError
            Any other error of the metadata lookups or of the binary request.
        """
        return Downloader(self).download(action, sink, progress=progress)

    # URL + credential handling
    def _build_url(self, url_or_path: str) -> str:
        if url_or_path.startswith(("http://", "https://")):
            url = url_or_path
        else:
            path = url_or_path if url_or_path.startswith("/") else "/" + url_or_path
            url = f"{self._host}{path}"
        try:
            parts = urlsplit(url)
        except ValueError as exc:
            raise BuilderError(f"invalid url {url!r}: {exc}") from exc
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise BuilderError(f"invalid url {url!r}")
        return url

    def _authorize(self, url: str, headers: Dict[str, str]) -> str:
        creds = self._credentials
        if creds.kind is CredentialKind.API_KEY:
            url = set_query_param(url, "api_key", creds.secret)
        elif creds.kind is CredentialKind.TOKEN:
            headers["Authorization"] = f"Bearer {creds.secret}"
        return url

    # Transport
    def _send(self, method: str, url: str, headers: Dict[str, str], **kwargs) -> requests.Response:
        """Run one exchange on the session, mapping requests exceptions to the taxonomy."""
        logger.debug("%s %s", method, redact_url(url))
        try:
            resp = self._session.request(method, url, headers=headers, timeout=self._timeout, **kwargs)
        except _BUILDER_ERRORS as exc:
            raise BuilderError(f"failed to build {method} request: {exc}") from exc
        except requests.RequestException as exc:
            raise RequestError(f"http request error: {exc}") from exc
        logger.debug("%s %s -> %s", method, redact_url(url), resp.status_code)
        return resp

    def _request(self, method: str, url_or_path: str, body: RequestBody = None,
                 decode: Decoder = None) -> Tuple[str, Any]:
        """
        Perform one API exchange.

        Parameters
        ----------
        method : str
            HTTP method (GET/POST/PUT/DELETE).
        url_or_path : str
            Path relative to the host or an absolute URL.
        body : None | EncodedBody | MultipartForm
            Request body.
        decode : Optional[Callable]
            Converts the decoded JSON into the caller's type (e.g. MODINFO.from_dict).
            None returns the raw JSON.

        Returns
        -------
        (final_url, decoded_body)
            final_url is the URL that was sent, credentials included.

        Raises
        ------
        BuilderError, RequestError, DecodeError, RateLimitError, ValidationError,
        AuthError, StatusError
        """
        method = method.upper()
        headers = {"User-Agent": self._user_agent, "Accept": "application/json"}
        url = self._authorize(self._build_url(url_or_path), headers)

        with ExitStack() as stack:
            kwargs: Dict[str, Any] = {}
            if isinstance(body, EncodedBody):
                kwargs["data"] = body.data
                if body.content_type:
                    headers["Content-Type"] = body.content_type
            elif isinstance(body, MultipartForm):
                kwargs.update(body.open(stack))
            resp = self._send(method, url, headers, **kwargs)

        with resp:
            return url, self._handle_response(resp, decode)

    def _handle_response(self, resp: requests.Response, decode: Decoder) -> Any:
        if not is_success(resp.status_code):
            raise self._error_for_response(resp)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise DecodeError(f"error decoding response body: {exc}", resp.status_code, resp) from exc
        if decode is None:
            return payload
        try:
            return decode(payload)
        except (KeyError, TypeError, ValueError) as exc:
            raise DecodeError(f"error decoding response body: unexpected shape ({exc!r})",
                              resp.status_code, resp) from exc

    def _error_for_response(self, resp: requests.Response) -> ModioError:
        """
        Classify a non-2xx response.

        The rate limit headers are checked before the body is even looked at; only
        when they do not signal exhaustion is the body decoded as an error envelope.
        """
        rate_limit = RateLimitSnapshot.from_headers(resp.headers)
        if rate_limit.exhausted:
            logger.warning("mod.io rate limit exhausted, retry in %s minutes", rate_limit.retry_after)
            return error_for_status(resp.status_code, None, rate_limit, resp)
        try:
            envelope = ERRORENVELOPE.from_dict(resp.json())
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            # 401 does not depend on the body
            if classify_error(resp.status_code, None, rate_limit) is ErrorKind.UNAUTHORIZED:
                return error_for_status(resp.status_code, None, rate_limit, resp)
            err = DecodeError(f"error decoding error response body (HTTP {resp.status_code}): {exc}",
                              resp.status_code, resp)
            err.__cause__ = exc
            return err
        return error_for_status(resp.status_code, envelope, rate_limit, resp)

    # Convenience wrappers
    def get(self, path: str, decode: Decoder = None) -> Any:
        return self._request("GET", path, None, decode)[1]

    def post(self, path: str, data: Optional[Mapping[str, Any]] = None, decode: Decoder = None) -> Any:
        """POST a form-urlencoded body."""
        return self._request("POST", path, _form_body(data), decode)[1]

    def post_form(self, path: str, form: MultipartForm, decode: Decoder = None) -> Any:
        """POST a multipart/form-data body."""
        return self._request("POST", path, form, decode)[1]

    def put(self, path: str, data: Optional[Mapping[str, Any]] = None, decode: Decoder = None) -> Any:
        """PUT a form-urlencoded body."""
        return self._request("PUT", path, _form_body(data), decode)[1]

    def delete(self, path: str, data: Optional[Mapping[str, Any]] = None) -> None:
        """
        DELETE a resource.

        Several DELETE endpoints answer 204 with an empty (or non-JSON) body, so a
        body that fails to decode on a 2xx response counts as success. Error
        responses are still classified normally.
        """
        try:
            self._request("DELETE", path, _form_body(data))
        except DecodeError as exc:
            if exc.code is not None and is_success(exc.code):
                logger.debug("DELETE %s: ignoring undecodable success body", path)
                return None
            raise
        return None

    def stream(self, path: str, decode: Decoder = None) -> ListStream:
        """Lazily iterate every entry of a listing, fetching pages on demand."""
        return ListStream(self, path, decode)

    # lifecycle
    def close(self) -> None:
        """Close the underlying session if this client created it."""
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "Modio":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<Modio host={self._host!r} credentials={self._credentials.kind.value}>"


def _form_body(data: Optional[Mapping[str, Any]]) -> Optional[EncodedBody]:
    if not data:
        return None
    return EncodedBody(urlencode(data, doseq=True), FORM_URLENCODED)


def create_client(api_key: Optional[str] = None, *, token: Optional[str] = None,
                  user_agent: str = DEFAULT_USER_AGENT, test: bool = False, **kwargs) -> Modio:
    """
    Convenience factory to create a configured Modio client.

    Parameters
    ----------
    api_key : Optional[str]
        Read-only API key.
    token : Optional[str]
        OAuth 2 access token. Mutually exclusive with api_key.
    user_agent : str
        User-Agent header value.
    test : bool
        Target the mod.io test environment instead of production.
    kwargs : additional args forwarded to the Modio constructor.

    Returns
    -------
    Modio
    """
    if api_key and token:
        raise ValueError("api_key and token are mutually exclusive")
    if token:
        credentials = Credentials.token(token)
    elif api_key:
        credentials = Credentials.api_key(api_key)
    else:
        credentials = Credentials.none()
    if test:
        kwargs.setdefault("host", TEST_HOST)
    return Modio(user_agent, credentials, **kwargs)
