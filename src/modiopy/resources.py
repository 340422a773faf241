"""
modiopy.resources
-----------------

Thin references to mod.io resources. Each method maps one path template to a
call on the client's dispatcher; no state is kept besides the ids.

    modio.games()                         /games
    modio.game(5)                         /games/5
    modio.game(5).mods()                  /games/5/mods
    modio.mod(5, 19)                      /games/5/mods/19
    modio.mod(5, 19).files()              /games/5/mods/19/files
    modio.mod(5, 19).file(101)            /games/5/mods/19/files/101
    modio.mod(5, 19).comments()           /games/5/mods/19/comments
    modio.me()                            /me  (bearer token only)

Listing methods take an optional mapping of query parameters (mod.io filters,
``_sort``, ``_limit``, ``_offset``) which is url-encoded as-is.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional

from .auth import CredentialKind
from .exceptions import token_required
from .multipart import MultipartForm
from .pagination import ListStream
from .types_models import (
    COMMENT,
    GAME,
    MESSAGE,
    MODDEPENDENCY,
    MODFILE,
    MODINFO,
    MODIOLIST,
    TAG,
    USER,
)
from .utils import with_query

if TYPE_CHECKING:
    from .client import Modio

Params = Optional[Mapping[str, Any]]


class Endpoint:
    """
    Generic listing sub-resource (tags, dependencies, ...).

    Parameters
    ----------
    client : Modio
    path : str
        Path relative to the API host.
    decode : Callable
        Decoder for one entry.
    """

    def __init__(self, client: "Modio", path: str, decode: Callable[[Dict[str, Any]], Any]):
        self._client = client
        self.path = path
        self._decode = decode

    def list(self, params: Params = None) -> MODIOLIST:
        """Fetch a single page."""
        return self._client.get(with_query(self.path, params), MODIOLIST.parser(self._decode))

    def iter(self, params: Params = None) -> ListStream:
        """Iterate over every entry, across pages."""
        return self._client.stream(with_query(self.path, params), self._decode)

    def add(self, params: Mapping[str, Any]) -> MESSAGE:
        return self._client.post(self.path, params, MESSAGE.from_dict)

    def delete(self, params: Params = None) -> None:
        self._client.delete(self.path, params)


class Games(Endpoint):
    def __init__(self, client: "Modio"):
        super().__init__(client, "/games", GAME.from_dict)


class GameRef:
    def __init__(self, client: "Modio", game_id: int):
        self._client = client
        self.game_id = game_id
        self.path = f"/games/{game_id}"

    def get(self) -> GAME:
        return self._client.get(self.path, GAME.from_dict)

    def mods(self) -> "Mods":
        return Mods(self._client, self.game_id)

    def mod(self, mod_id: int) -> "ModRef":
        return ModRef(self._client, self.game_id, mod_id)

    def tags(self) -> Endpoint:
        return Endpoint(self._client, f"{self.path}/tags", TAG.from_dict)


class Mods(Endpoint):
    def __init__(self, client: "Modio", game_id: int):
        super().__init__(client, f"/games/{game_id}/mods", MODINFO.from_dict)
        self.game_id = game_id


class ModRef:
    """Reference to a single mod and its sub-resources."""

    def __init__(self, client: "Modio", game_id: int, mod_id: int):
        self._client = client
        self.game_id = game_id
        self.mod_id = mod_id
        self.path = f"/games/{game_id}/mods/{mod_id}"

    def get(self) -> MODINFO:
        return self._client.get(self.path, MODINFO.from_dict)

    def files(self) -> "Files":
        return Files(self._client, self.game_id, self.mod_id)

    def file(self, file_id: int) -> "FileRef":
        return FileRef(self._client, self.game_id, self.mod_id, file_id)

    def comments(self) -> "Comments":
        return Comments(self._client, self.game_id, self.mod_id)

    def dependencies(self) -> Endpoint:
        return Endpoint(self._client, f"{self.path}/dependencies", MODDEPENDENCY.from_dict)

    def tags(self) -> Endpoint:
        return Endpoint(self._client, f"{self.path}/tags", TAG.from_dict)


class Files(Endpoint):
    def __init__(self, client: "Modio", game_id: int, mod_id: int):
        super().__init__(client, f"/games/{game_id}/mods/{mod_id}/files", MODFILE.from_dict)

    def upload(self, form: MultipartForm) -> MODFILE:
        """Upload a new modfile (``filedata`` part plus metadata fields)."""
        return self._client.post_form(self.path, form, MODFILE.from_dict)


class FileRef:
    def __init__(self, client: "Modio", game_id: int, mod_id: int, file_id: int):
        self._client = client
        self.file_id = file_id
        self.path = f"/games/{game_id}/mods/{mod_id}/files/{file_id}"

    def get(self) -> MODFILE:
        return self._client.get(self.path, MODFILE.from_dict)

    def delete(self) -> None:
        self._client.delete(self.path)


class Comments:
    def __init__(self, client: "Modio", game_id: int, mod_id: int):
        self._client = client
        self.path = f"/games/{game_id}/mods/{mod_id}/comments"

    def list(self, params: Params = None) -> MODIOLIST:
        return self._client.get(with_query(self.path, params), MODIOLIST.parser(COMMENT.from_dict))

    def iter(self, params: Params = None) -> ListStream:
        return self._client.stream(with_query(self.path, params), COMMENT.from_dict)

    def get(self, comment_id: int) -> COMMENT:
        return self._client.get(f"{self.path}/{comment_id}", COMMENT.from_dict)

    def delete(self, comment_id: int) -> None:
        self._client.delete(f"{self.path}/{comment_id}")


class Me:
    """
    Resources owned by the authenticated user.

    mod.io only serves these to OAuth 2 tokens, so every call fails with
    AuthError(TOKEN_REQUIRED) before any request when the client holds an API
    key or no credentials.
    """

    def __init__(self, client: "Modio"):
        self._client = client

    def _check(self) -> None:
        if self._client.credentials.kind is not CredentialKind.TOKEN:
            raise token_required()

    def get(self) -> USER:
        self._check()
        return self._client.get("/me", USER.from_dict)

    def subscriptions(self, params: Params = None) -> ListStream:
        self._check()
        return self._client.stream(with_query("/me/subscribed", params), MODINFO.from_dict)

    def mods(self, params: Params = None) -> ListStream:
        self._check()
        return self._client.stream(with_query("/me/mods", params), MODINFO.from_dict)

    def files(self, params: Params = None) -> ListStream:
        self._check()
        return self._client.stream(with_query("/me/files", params), MODFILE.from_dict)
