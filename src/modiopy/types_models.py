"""
types_models.py

Typed dataclasses for the mod.io API objects the client decodes.

Purpose
-------
- Provide typed, documented containers for mod.io payloads.
- Supply `from_dict()` factories that turn the raw JSON dict into typed objects.
- Keep the original raw payload available in `.data` for debugging/forward-compatibility.

Notes
-----
- Fields the client relies on (ids, download urls, listing counters) are read with
  ``d["key"]`` so a payload of the wrong shape raises KeyError/TypeError; the
  dispatcher reports that as a DecodeError. Everything else is optional.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, TypeVar

T = TypeVar("T")


def _pick(d: Dict[str, Any], *keys: str) -> Any:
    """Return the first present key; raise KeyError naming all of them otherwise."""
    for key in keys:
        if key in d:
            return d[key]
    raise KeyError(" / ".join(keys))


@dataclass
class MODIOLIST(Generic[T]):
    """
    One page of a listing.

    Attributes
    ----------
    items : List[T]
        Decoded entries of this page, in server order.
    offset : int
        Offset the page starts at.
    limit : int
        Page size the server applied.
    total : int
        Total number of entries across all pages.
    count : int
        Number of entries in this page.
    """
    items: List[T] = field(default_factory=list)
    offset: int = 0
    limit: int = 0
    total: int = 0
    count: int = 0

    @classmethod
    def from_dict(cls, d: Dict[str, Any], item: Optional[Callable[[Any], T]] = None) -> "MODIOLIST[T]":
        raw_items = d["data"]
        if not isinstance(raw_items, list):
            raise TypeError("listing 'data' must be an array")
        items = [item(x) for x in raw_items] if item is not None else list(raw_items)
        return cls(
            items=items,
            offset=int(_pick(d, "result_offset", "offset")),
            limit=int(_pick(d, "result_limit", "limit")),
            total=int(_pick(d, "result_total", "total")),
            count=int(d.get("result_count", len(items))),
        )

    @classmethod
    def parser(cls, item: Optional[Callable[[Any], T]] = None) -> Callable[[Dict[str, Any]], "MODIOLIST[T]"]:
        """Return a decode callable for listings of `item`."""
        def _decode(d: Dict[str, Any]) -> "MODIOLIST[T]":
            return cls.from_dict(d, item)
        return _decode

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __getitem__(self, index: int) -> T:
        return self.items[index]


@dataclass
class ERRORENVELOPE:
    """
    Error payload returned with non-2xx responses.

    Accepts both the bare envelope and mod.io's ``{"error": {...}}`` wrapper.

    Attributes
    ----------
    message : str
        Human readable description of the failure.
    errors : Dict[str,str]
        Field name -> validation message (only for 422 responses).
    error_ref : Optional[int]
        mod.io error reference code.
    code : Optional[int]
        HTTP status echoed by the server.
    """
    message: str = ""
    errors: Dict[str, str] = field(default_factory=dict)
    error_ref: Optional[int] = None
    code: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ERRORENVELOPE":
        if isinstance(d.get("error"), dict):
            d = d["error"]
        message = d["message"]
        errors = d.get("errors") or {}
        if not isinstance(errors, dict):
            raise TypeError("error envelope 'errors' must be an object")
        error_ref = d.get("error_ref")
        return cls(
            message=str(message),
            errors={str(k): str(v) for k, v in errors.items()},
            error_ref=int(error_ref) if error_ref is not None else None,
            code=d.get("code"),
        )

    def __str__(self) -> str:
        lines = [self.message]
        for k, v in self.errors.items():
            lines.append(f"  {k}: {v}")
        return "\n".join(lines)


@dataclass
class MESSAGE:
    """Generic ``{code, message}`` acknowledgement returned by write endpoints."""
    code: int = 0
    message: str = ""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MESSAGE":
        return cls(code=int(d["code"]), message=str(d["message"]))


@dataclass
class MODFILEDOWNLOAD:
    """
    Download information for a modfile.

    Attributes
    ----------
    binary_url : str
        Pre-signed URL of the binary.
    date_expires : Optional[int]
        Unix timestamp after which binary_url stops working.
    """
    binary_url: str = ""
    date_expires: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MODFILEDOWNLOAD":
        return cls(binary_url=str(d["binary_url"]), date_expires=d.get("date_expires"))


@dataclass
class MODFILE:
    """
    A file uploaded to a mod.

    Attributes
    ----------
    id : int
        Unique modfile id.
    mod_id : int
        Parent mod id.
    date_added : Optional[int]
        Unix timestamp of the upload.
    filename : Optional[str]
    filesize : Optional[int]
    version : Optional[str]
        Release version string.
    changelog : Optional[str]
    download : MODFILEDOWNLOAD
    data : Dict[str,Any]
        Original raw JSON payload.
    """
    id: int = 0
    mod_id: int = 0
    date_added: Optional[int] = None
    filename: Optional[str] = None
    filesize: Optional[int] = None
    version: Optional[str] = None
    changelog: Optional[str] = None
    download: MODFILEDOWNLOAD = field(default_factory=MODFILEDOWNLOAD)
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MODFILE":
        return cls(
            id=int(d["id"]),
            mod_id=int(d["mod_id"]),
            date_added=d.get("date_added"),
            filename=d.get("filename"),
            filesize=d.get("filesize"),
            version=d.get("version"),
            changelog=d.get("changelog"),
            download=MODFILEDOWNLOAD.from_dict(d["download"]),
            data=d,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __repr__(self) -> str:
        return f"<MODFILE id={self.id} mod_id={self.mod_id} version={self.version!r}>"


@dataclass
class USER:
    id: int = 0
    name_id: Optional[str] = None
    username: Optional[str] = None
    profile_url: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "USER":
        return cls(
            id=int(d["id"]),
            name_id=d.get("name_id"),
            username=d.get("username"),
            profile_url=d.get("profile_url"),
            data=d,
        )


@dataclass
class MODINFO:
    """
    A mod.

    Attributes
    ----------
    id : int
    game_id : int
    name : Optional[str]
    name_id : Optional[str]
        URL slug.
    summary : Optional[str]
    submitted_by : Optional[USER]
    modfile : Optional[MODFILE]
        The primary file, or None when the mod has no live file.
    data : Dict[str,Any]
    """
    id: int = 0
    game_id: int = 0
    name: Optional[str] = None
    name_id: Optional[str] = None
    summary: Optional[str] = None
    submitted_by: Optional[USER] = None
    modfile: Optional[MODFILE] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MODINFO":
        modfile = d.get("modfile")
        submitted_by = d.get("submitted_by")
        return cls(
            id=int(d["id"]),
            game_id=int(d["game_id"]),
            name=d.get("name"),
            name_id=d.get("name_id"),
            summary=d.get("summary"),
            submitted_by=USER.from_dict(submitted_by) if submitted_by else None,
            # mod.io sends an empty object or null when no primary file exists
            modfile=MODFILE.from_dict(modfile) if modfile else None,
            data=d,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __repr__(self) -> str:
        return f"<MODINFO id={self.id} game_id={self.game_id} name={self.name!r}>"


@dataclass
class GAME:
    id: int = 0
    name: Optional[str] = None
    name_id: Optional[str] = None
    summary: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GAME":
        return cls(
            id=int(d["id"]),
            name=d.get("name"),
            name_id=d.get("name_id"),
            summary=d.get("summary"),
            data=d,
        )


@dataclass
class COMMENT:
    id: int = 0
    mod_id: int = 0
    user: Optional[USER] = None
    date_added: Optional[int] = None
    reply_id: Optional[int] = None
    content: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "COMMENT":
        user = d.get("user")
        return cls(
            id=int(d["id"]),
            mod_id=int(d["mod_id"]),
            user=USER.from_dict(user) if user else None,
            date_added=d.get("date_added"),
            reply_id=d.get("reply_id"),
            content=d.get("content"),
            data=d,
        )


@dataclass
class TAG:
    name: str = ""
    date_added: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TAG":
        return cls(name=str(d["name"]), date_added=d.get("date_added"))


@dataclass
class MODDEPENDENCY:
    mod_id: int = 0
    date_added: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MODDEPENDENCY":
        return cls(mod_id=int(d["mod_id"]), date_added=d.get("date_added"))
