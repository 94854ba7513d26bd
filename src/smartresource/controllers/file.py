"""Physical file controller (scheme ``file``) and file helpers.

``PhysicalFileController`` serves ``FileRequest``s:

- Get opens the file and answers a single-read streaming body with
  ``length``/``modified_on`` metadata and a ``mimetypes`` guess; missing files
  answer NotFound.
- Put writes the body (bytes, text or JSON for other objects), creating parent
  directories, and answers with a Get.
- Delete unlinks the file when present and answers NotFound.

Blocking filesystem calls run in ``asyncio.to_thread``. Relative uris resolve
against ``base_dir`` and are only accepted when one is configured.
``metadata.cancellation`` is checked before any I/O.
"""

from __future__ import annotations

import asyncio
import mimetypes
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional, Union
from urllib.parse import quote

from smartresource.core.controller import Controller
from smartresource.core.messages import (
    Body,
    ControllerName,
    FileRequest,
    Request,
    RequestMethod,
    Response,
    ResponseMetadata,
)
from smartresource.core.uri import UriString

__all__ = [
    "PhysicalFileController",
    "delete_file",
    "file_uri",
    "get_file",
    "read_text_file",
    "write_text_file",
]

_DRIVE = re.compile(r"^[a-zA-Z]:/")


class PhysicalFileController(Controller):
    request_type = FileRequest

    def __init__(
        self,
        name: str = "",
        *,
        base_dir: Optional[Union[str, os.PathLike]] = None,
        tags: Optional[Union[str, Iterable[str]]] = None,
    ) -> None:
        self.base_dir = Path(base_dir) if base_dir is not None else None
        super().__init__(
            name, tags=tags, schemes=("file",), supports_relative_uri=self.base_dir is not None
        )

    def method_table(self):
        return (
            (RequestMethod.GET, self.get_content),
            (RequestMethod.PUT, self.put_content),
            (RequestMethod.DELETE, self.delete_content),
        )

    def resolve_path(self, uri: UriString) -> Path:
        path = uri.path_decoded
        if uri.is_relative:
            if self.base_dir is None:
                raise ValueError(f"Relative uri '{uri}' needs a base directory")
            return self.base_dir / path.lstrip("/")
        if uri.authority:
            # UNC share
            return Path(f"//{uri.authority}{path}")
        if len(path) > 2 and path[0] == "/" and path[2] == ":":
            # drive letter: /c:/temp
            path = path[1:]
        return Path(path)

    async def get_content(self, request: Request) -> Response:
        request.raise_if_cancelled()
        path = self.resolve_path(request.uri)
        return await asyncio.to_thread(self._open, path)

    @staticmethod
    def _open(path: Path) -> Response:
        if not path.is_file():
            return Response.not_found()
        stat = path.stat()
        metadata = ResponseMetadata(
            length=stat.st_size,
            modified_on=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return Response.ok(Body(path.open("rb")), content_type=content_type, metadata=metadata)

    async def put_content(self, request: Request) -> Response:
        request.raise_if_cancelled()
        path = self.resolve_path(request.uri)
        body = request.body if request.body is not None else b""
        data = Body(body, encoding=request.metadata.encoding).read()
        await asyncio.to_thread(self._write, path, data)
        return await self.get_content(request)

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def delete_content(self, request: Request) -> Response:
        request.raise_if_cancelled()
        path = self.resolve_path(request.uri)
        await asyncio.to_thread(path.unlink, missing_ok=True)
        return Response.not_found()


def file_uri(path: Union[str, os.PathLike]) -> UriString:
    """Rooted paths become ``file:`` uris; relative paths stay relative."""
    text = os.fspath(path).replace("\\", "/")
    if text.startswith("/"):
        return UriString(f"file://{quote(text)}")
    if _DRIVE.match(text):
        return UriString(f"file:///{quote(text, safe='/:')}")
    return UriString(quote(text))


def _controller_name(controller: Optional[str]) -> Optional[ControllerName]:
    return ControllerName(controller) if controller else None


async def get_file(
    repository: Any,
    path: Union[str, os.PathLike],
    *,
    controller: Optional[str] = None,
    **metadata: Any,
) -> Response:
    """Get a file through ``repository``; ``metadata`` seeds ``RequestMetadata``."""
    request = FileRequest.get(
        file_uri(path), controller_name=_controller_name(controller), metadata=metadata or None
    )
    return await repository.invoke(request)


async def read_text_file(
    repository: Any,
    path: Union[str, os.PathLike],
    *,
    controller: Optional[str] = None,
    encoding: str = "utf-8",
) -> str:
    """Return the file's text or raise ``FileNotFoundError``."""
    async with await get_file(repository, path, controller=controller) as response:
        if not response.exists():
            raise FileNotFoundError(os.fspath(path))
        return response.read_text(encoding)


async def write_text_file(
    repository: Any,
    path: Union[str, os.PathLike],
    text: str,
    *,
    controller: Optional[str] = None,
    encoding: str = "utf-8",
) -> None:
    request = FileRequest.put(
        file_uri(path),
        text.encode(encoding),
        controller_name=_controller_name(controller),
    )
    response = await repository.invoke(request)
    response.release()


async def delete_file(
    repository: Any, path: Union[str, os.PathLike], *, controller: Optional[str] = None
) -> None:
    response = await repository.invoke(
        FileRequest.delete(file_uri(path), controller_name=_controller_name(controller))
    )
    response.release()
