"""Settings controllers (scheme ``config``) and setting helpers.

Setting uris look like ``config:settings?name=<setting>``. Values travel as
JSON bodies and are converted with a pydantic ``TypeAdapter`` on read.
Setting names are case-insensitive.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional, Type, TypeVar, Union

from pydantic import TypeAdapter
from pydantic_core import to_json

from smartresource.core.controller import Controller
from smartresource.core.messages import (
    Body,
    ConfigRequest,
    ControllerName,
    Request,
    RequestMethod,
    Response,
)
from smartresource.core.uri import UriString

__all__ = [
    "ConfigController",
    "SettingsController",
    "read_setting",
    "setting_uri",
    "write_setting",
]

T = TypeVar("T")


class ConfigController(Controller):
    """Base for controllers serving ``ConfigRequest``s on the ``config`` scheme."""

    request_type = ConfigRequest

    def __init__(self, name: str = "", *, tags: Optional[Union[str, Iterable[str]]] = None) -> None:
        super().__init__(name, tags=tags, schemes=("config",))

    @staticmethod
    def setting_name(request: Request) -> str:
        uri = request.uri
        name = uri.query.get("name") or uri.path_decoded.strip("/")
        if not name:
            raise ValueError(f"Uri '{uri}' does not name a setting")
        return name


class SettingsController(ConfigController):
    """In-process settings store."""

    def __init__(
        self,
        name: str = "",
        settings: Optional[Mapping[str, Any]] = None,
        *,
        tags: Optional[Union[str, Iterable[str]]] = None,
    ) -> None:
        self._values: Dict[str, bytes] = {}
        super().__init__(name, tags=tags)
        for key, value in (settings or {}).items():
            self._values[key.casefold()] = to_json(value)

    def method_table(self):
        return (
            (RequestMethod.GET, self.get_setting),
            (RequestMethod.PUT, self.put_setting),
        )

    async def get_setting(self, request: Request) -> Response:
        data = self._values.get(self.setting_name(request).casefold())
        if data is None:
            return Response.not_found()
        return Response.ok(Body(data), content_type="application/json")

    async def put_setting(self, request: Request) -> Response:
        body = request.body
        if isinstance(body, (bytes, bytearray)):
            data = bytes(body)
        elif callable(getattr(body, "read", None)):
            data = Body(body).read()
        else:
            data = to_json(body)
        self._values[self.setting_name(request).casefold()] = data
        return await self.get_setting(request)


def setting_uri(name: str) -> UriString:
    return UriString.create_query("config", "settings", {"name": name})


def _routing(controller: Optional[str]) -> Optional[ControllerName]:
    return ControllerName(tags=controller) if controller else None


async def read_setting(
    repository: Any, name: str, type_: Type[T] = str, *, controller: Optional[str] = None
) -> T:
    """Read and convert setting ``name``; raise ``KeyError`` when missing."""
    request = ConfigRequest.get(setting_uri(name), controller_name=_routing(controller))
    async with await repository.invoke(request) as response:
        if not response.exists():
            raise KeyError(name)
        return TypeAdapter(type_).validate_json(response.read())


async def write_setting(
    repository: Any, name: str, value: Any, *, controller: Optional[str] = None
) -> None:
    request = ConfigRequest.put(setting_uri(name), to_json(value), controller_name=_routing(controller))
    response = await repository.invoke(request)
    response.release()
