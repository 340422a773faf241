"""
modiopy package initializer.

This file exposes the high-level public API for the package:
 - Modio (main client) and create_client (convenience factory)
 - Credentials
 - download actions (Primary, File, Version, Url) and ResolvePolicy
 - MultipartForm / EncodedBody request bodies
 - the exception taxonomy (re-exported from .exceptions)
"""

__version__ = "0.1.0"

from .exceptions import *  # noqa: F401,F403
from .exceptions import __all__ as _exceptions_all

from .auth import CredentialKind, Credentials
from .client import DEFAULT_HOST, TEST_HOST, Modio, create_client
from .download import MAX_REDIRECTS, DownloadAction, File, Primary, ResolvePolicy, Url, Version
from .multipart import EncodedBody, MultipartForm
from .pagination import ListStream
from .utils import logger_setup

__all__ = [
    "Modio",
    "create_client",
    "DEFAULT_HOST",
    "TEST_HOST",
    "Credentials",
    "CredentialKind",
    "DownloadAction",
    "Primary",
    "File",
    "Version",
    "Url",
    "ResolvePolicy",
    "MAX_REDIRECTS",
    "EncodedBody",
    "MultipartForm",
    "ListStream",
    "logger_setup",
    "__version__",
] + list(_exceptions_all)
