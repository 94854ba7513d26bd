"""Environment variable controller (scheme ``env``).

``env:HOME`` (or ``env://HOME``) names the variable ``HOME``. Get answers the
value as text or NotFound, Put sets it from the body, Delete unsets it.
"""

from __future__ import annotations

import os
from typing import Any, Iterable, MutableMapping, Optional, Union

from smartresource.core.controller import Controller
from smartresource.core.messages import Body, Request, RequestMethod, Response

__all__ = ["EnvironmentVariableController"]


class EnvironmentVariableController(Controller):
    def __init__(
        self,
        name: str = "",
        *,
        tags: Optional[Union[str, Iterable[str]]] = None,
        environ: Optional[MutableMapping[str, str]] = None,
    ) -> None:
        self._environ = os.environ if environ is None else environ
        super().__init__(name, tags=tags, schemes=("env",))

    def method_table(self):
        return (
            (RequestMethod.GET, self.get_variable),
            (RequestMethod.PUT, self.put_variable),
            (RequestMethod.DELETE, self.delete_variable),
        )

    @staticmethod
    def variable_name(request: Request) -> str:
        uri = request.uri
        name = uri.authority or uri.path_decoded.strip("/")
        if not name:
            raise ValueError(f"Uri '{uri}' does not name an environment variable")
        return name

    async def get_variable(self, request: Request) -> Response:
        value = self._environ.get(self.variable_name(request))
        if value is None:
            return Response.not_found()
        return Response.ok(value, content_type="text/plain")

    async def put_variable(self, request: Request) -> Response:
        self._environ[self.variable_name(request)] = _as_text(request.body, request.metadata.encoding)
        return await self.get_variable(request)

    async def delete_variable(self, request: Request) -> Response:
        self._environ.pop(self.variable_name(request), None)
        return Response.not_found()


def _as_text(body: Any, encoding: str) -> str:
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    if isinstance(body, (bytes, bytearray)):
        return bytes(body).decode(encoding)
    return Body(body, encoding=encoding).read().decode(encoding)
