"""Tests for the controller capability contract and dispatcher."""

import pytest

from smartresource import (
    AmbiguousMethod,
    Controller,
    HandlerFailure,
    MethodNotFound,
    Request,
    RequestMethod,
    Response,
)
from smartresource.core import MethodTable, dispatch


class GetPutController(Controller):
    def method_table(self):
        return (
            (RequestMethod.GET, self.on_get),
            ("put", self.on_put),
        )

    async def on_get(self, request):
        return Response.ok("got")

    async def on_put(self, request):
        return Response.ok(request.body)


def test_method_table_is_explicit():
    controller = GetPutController("gp")
    assert controller.methods.methods() == (RequestMethod.GET, RequestMethod.PUT)
    assert controller.supports("GET")
    assert not controller.supports(RequestMethod.DELETE)
    assert controller.handler_for("delete") is None
    assert len(controller.methods) == 2


def test_duplicate_handler_is_rejected_at_construction():
    class Duplicated(Controller):
        def method_table(self):
            return (("get", self.one), (RequestMethod.GET, self.two))

        async def one(self, request):
            return Response.ok()

        async def two(self, request):
            return Response.ok()

    with pytest.raises(AmbiguousMethod) as excinfo:
        Duplicated("dup")
    assert excinfo.value.code == "AMBIGUOUS_METHOD"
    assert isinstance(excinfo.value, ValueError)


def test_non_callable_handler_is_rejected():
    with pytest.raises(TypeError):
        MethodTable(object(), [("get", "not-callable")])


def test_controller_tags_include_name_and_class():
    controller = GetPutController("B", tags={"BB"})
    assert controller.tags == frozenset({"b", "bb", "getputcontroller"})


def test_controller_requires_a_scheme():
    with pytest.raises(ValueError):
        GetPutController("x", schemes=())


def test_scheme_matching():
    assert GetPutController().handles_scheme("anything")
    narrow = GetPutController(schemes=("MEM",))
    assert narrow.handles_scheme("mem")
    assert not narrow.handles_scheme("file")


async def test_dispatch_calls_handler_and_stamps_controller():
    controller = GetPutController("gp")
    response = await dispatch(controller, Request.get("mem:x"))
    assert response.read_text() == "got"
    assert response.metadata.controller == "gp"


async def test_dispatch_missing_method():
    controller = GetPutController("gp")
    request = Request.delete("mem:x")
    with pytest.raises(MethodNotFound) as excinfo:
        await dispatch(controller, request)
    error = excinfo.value
    assert error.code == "METHOD_NOT_FOUND"
    assert error.method is RequestMethod.DELETE
    assert error.details()["method"] == "DELETE"
    assert error.resource_key == request.resource_key
    assert isinstance(error, NotImplementedError)


async def test_dispatch_wraps_handler_errors():
    class Failing(Controller):
        def method_table(self):
            return ((RequestMethod.PUT, self.explode),)

        async def explode(self, request):
            raise OSError("disk full")

    request = Request.put("mem:x", b"data")
    with pytest.raises(HandlerFailure) as excinfo:
        await dispatch(Failing("f"), request)
    error = excinfo.value
    assert isinstance(error.__cause__, OSError)
    assert error.cause is error.__cause__
    assert error.method is RequestMethod.PUT
    assert error.details()["uri"] == "mem:x"
    assert error.resource_key == "mem:x"
    assert error.code == "HANDLER_FAILED"


async def test_dispatch_rejects_non_response_results():
    class Sloppy(Controller):
        def method_table(self):
            return ((RequestMethod.GET, self.wrong),)

        async def wrong(self, request):
            return "not a response"

    with pytest.raises(HandlerFailure) as excinfo:
        await dispatch(Sloppy(), Request.get("mem:x"))
    assert isinstance(excinfo.value.__cause__, TypeError)


async def test_dispatch_accepts_sync_handlers():
    class Sync(Controller):
        def method_table(self):
            return ((RequestMethod.GET, lambda request: Response.ok("sync")),)

    response = await dispatch(Sync("s"), Request.get("mem:x"))
    assert response.read_text() == "sync"
