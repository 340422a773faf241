"""
auth.py

Credentials held by a Modio client.

mod.io accepts either a read-only API key (sent as the ``api_key`` query
parameter) or an OAuth 2 access token (sent as ``Authorization: Bearer``).
The two are mutually exclusive for a given client.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class CredentialKind(Enum):
    API_KEY = "api_key"
    TOKEN = "token"
    NONE = "none"


@dataclass(frozen=True)
class Credentials:
    """
    Immutable credential choice.

    Build instances with the classmethods rather than the constructor:

    >>> Credentials.api_key("abc")
    >>> Credentials.token("eyJ...")
    >>> Credentials.none()
    """
    kind: CredentialKind = CredentialKind.NONE
    secret: Optional[str] = None

    def __post_init__(self):
        if self.kind is CredentialKind.NONE:
            if self.secret is not None:
                raise ValueError("Credentials.none() takes no secret")
        elif not isinstance(self.secret, str) or not self.secret:
            raise ValueError(f"{self.kind.value} credentials need a non-empty string")

    @classmethod
    def api_key(cls, key: str) -> "Credentials":
        return cls(CredentialKind.API_KEY, key)

    @classmethod
    def token(cls, token: str) -> "Credentials":
        return cls(CredentialKind.TOKEN, token)

    @classmethod
    def none(cls) -> "Credentials":
        return cls(CredentialKind.NONE)

    def __repr__(self) -> str:
        # never print the secret
        return f"<Credentials kind={self.kind.value}>"


CredentialsLike = Union[Credentials, str, None]


def to_credentials(value: CredentialsLike) -> Credentials:
    """Coerce a bare string (API key) or None into Credentials."""
    if value is None:
        return Credentials.none()
    if isinstance(value, Credentials):
        return value
    if isinstance(value, str):
        return Credentials.api_key(value)
    raise TypeError(f"expected Credentials, str or None, got {type(value).__name__}")
