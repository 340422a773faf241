"""
modiopy.multipart
-----------------

Request body variants accepted by the dispatcher.

- EncodedBody: raw bytes/str with an explicit Content-Type (form-urlencoded writes).
- MultipartForm: text fields + file parts for uploads (modfiles, media, reports).

The dispatcher treats a MultipartForm as opaque: it only asks the form to open
its parts inside an ExitStack right before the request is sent, so file handles
are closed as soon as the exchange finishes. Failing to open a file part is the
only way conversion can fail and is reported as BuilderError.
"""

from __future__ import annotations

import mimetypes
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .exceptions import BuilderError

FORM_URLENCODED = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class EncodedBody:
    """An already-encoded request body and its Content-Type."""
    data: Union[bytes, str]
    content_type: Optional[str] = None


@dataclass(frozen=True)
class _FilePart:
    name: str
    path: Optional[Path] = None
    content: Optional[bytes] = None
    filename: Optional[str] = None
    mime: Optional[str] = None


@dataclass
class MultipartForm:
    """
    Builder for multipart/form-data bodies.

    Example
    -------
    >>> form = MultipartForm().text("version", "1.2").file("filedata", "build/mod.zip")
    >>> client.mod(5, 19).files().upload(form)
    """
    fields: List[Tuple[str, str]] = field(default_factory=list)
    parts: List[_FilePart] = field(default_factory=list)

    def text(self, name: str, value: Any) -> "MultipartForm":
        self.fields.append((name, str(value)))
        return self

    def file(self, name: str, path: Union[str, Path], *, filename: Optional[str] = None,
             mime: Optional[str] = None) -> "MultipartForm":
        """Attach a file from disk; it is opened only when the request is sent."""
        path = Path(path)
        self.parts.append(_FilePart(name=name, path=path, filename=filename or path.name, mime=mime))
        return self

    def bytes(self, name: str, content: bytes, filename: str, *, mime: Optional[str] = None) -> "MultipartForm":
        self.parts.append(_FilePart(name=name, content=content, filename=filename, mime=mime))
        return self

    def open(self, stack: ExitStack) -> Dict[str, Any]:
        """
        Convert the form into the ``files`` keyword argument of ``requests``.

        File parts are opened in binary mode and registered on `stack`, so the
        caller controls when they are closed.

        Raises
        ------
        BuilderError
            If a file part cannot be opened.
        """
        # (None, value) keeps text fields in the multipart body even without file parts
        files: List[Tuple[str, Any]] = [(name, (None, value)) for name, value in self.fields]
        for part in self.parts:
            mime = part.mime or mimetypes.guess_type(part.filename or "")[0] or "application/octet-stream"
            if part.path is not None:
                try:
                    fh = stack.enter_context(open(part.path, "rb"))
                except OSError as exc:
                    raise BuilderError(f"failed to read multipart file part {part.name!r}: {exc}") from exc
                files.append((part.name, (part.filename, fh, mime)))
            else:
                files.append((part.name, (part.filename, part.content or b"", mime)))
        return {"files": files}
