"""Tests for the repository pipeline, plugin registry and configuration."""

import sys

import pytest
from pydantic import ValidationError

from smartresource import (
    BaseRepository,
    InMemoryController,
    Request,
    ResourceRepository,
    Response,
)
from smartresource.plugins._base_plugin import BasePlugin


class TracePlugin(BasePlugin):
    plugin_code = "trace"
    plugin_description = "Records stage order"

    def configure(self, label: str = "trace"):
        """Label written into the trace."""

    def wrap_invoke(self, repository, call_next):
        async def traced(context):
            label = self.configuration(context.request.method.value).get("label", self.name)
            context.items.setdefault("trace", []).append(f"{label}:in")
            await call_next(context)
            context.items["trace"].append(f"{label}:out")
            repository.set_runtime_data(context.request.method.value, self.name, "last", context.items["trace"])

        return traced


class OuterPlugin(TracePlugin):
    plugin_code = "outer"


class ShortCircuitPlugin(BasePlugin):
    plugin_code = "short"
    plugin_description = "Answers without reaching controllers"

    def wrap_invoke(self, repository, call_next):
        async def answer(context):
            context.response = Response.ok("short")

        return answer


class SilentPlugin(BasePlugin):
    plugin_code = "silent"

    def wrap_invoke(self, repository, call_next):
        async def swallow(context):
            return None

        return swallow


ResourceRepository.register_plugin(TracePlugin)
ResourceRepository.register_plugin(OuterPlugin)
ResourceRepository.register_plugin(ShortCircuitPlugin)
ResourceRepository.register_plugin(SilentPlugin)


def make_repository(**kwargs):
    memory = InMemoryController("memory", {"mem:greeting": "hello"})
    return ResourceRepository([memory], name="repo", **kwargs), memory


async def test_base_repository_round_trip():
    repository = BaseRepository([InMemoryController("m")])
    (await repository.put("mem:item", "value")).release()
    async with await repository.get("mem:item") as response:
        assert response.read_text() == "value"


def test_repository_rejects_non_controllers():
    with pytest.raises(TypeError):
        ResourceRepository([object()])


async def test_first_plugged_is_outermost():
    repository, _ = make_repository()
    repository.plug("outer").plug("trace")
    request = Request.get("mem:greeting")
    await repository.invoke(request)
    trace = repository.get_runtime_data("get", "trace", "last")
    assert trace == ["outer:in", "trace:in", "trace:out", "outer:out"]
    assert [plugin.name for plugin in repository.iter_plugins()] == ["outer", "trace"]


async def test_short_circuit_skips_controllers():
    controller = InMemoryController("memory")
    repository = ResourceRepository([controller]).plug("short")
    response = await repository.get("mem:anything")
    assert response.read_text() == "short"
    assert len(repository.cache) == 0


async def test_stage_without_response_is_an_error():
    repository, _ = make_repository()
    repository.plug("silent")
    with pytest.raises(RuntimeError):
        await repository.get("mem:greeting")


async def test_disable_plugin_per_method():
    repository, _ = make_repository()
    repository.plug("short")
    repository.set_plugin_enabled("get", "short", False)
    response = await repository.get("mem:greeting")
    assert response.read_text() == "hello"
    assert repository.is_plugin_enabled("put", "short")
    assert not repository.is_plugin_enabled("get", "short")


async def test_configure_with_selector_targets_methods():
    repository, _ = make_repository()
    repository.plug("trace")
    result = repository.configure("trace/p*", label="write")
    assert result == {"target": "trace/p*", "updated": ["post", "put"]}
    assert repository.get_config("trace", "put")["label"] == "write"
    assert "label" not in repository.get_config("trace", "get")

    (await repository.put("mem:x", "1")).release()
    assert repository.get_runtime_data("put", "trace", "last")[0] == "write:in"


def test_configure_all_and_list_forms():
    repository, _ = make_repository()
    repository.plug("trace")
    assert repository.configure("trace", label="base") == {"target": "trace", "updated": ["_all_"]}
    assert repository.trace.configuration()["label"] == "base"
    results = repository.configure(
        [{"target": "trace/get", "label": "g"}, {"target": "trace/delete", "label": "d"}]
    )
    assert [r["updated"] for r in results] == [["get"], ["delete"]]


def test_configure_errors():
    repository, _ = make_repository()
    repository.plug("trace")
    with pytest.raises(KeyError):
        repository.configure("trace/patch", label="x")
    with pytest.raises(AttributeError):
        repository.configure("missing/get", label="x")
    with pytest.raises(ValueError):
        repository.configure("trace/get")
    with pytest.raises(ValueError):
        repository.configure({"label": "x"})
    with pytest.raises(TypeError):
        repository.configure(42)


def test_configure_question_mark_describes():
    repository, _ = make_repository()
    repository.plug("trace")
    description = repository.configure("?")
    assert description["name"] == "repo"
    assert description["plugins"][0]["name"] == "trace"


def test_plugin_configuration_is_validated():
    repository, _ = make_repository()
    with pytest.raises(ValidationError):
        repository.plug("trace", label=["not", "a", "string"])


def test_registry_rules():
    with pytest.raises(TypeError):
        ResourceRepository.register_plugin(object)  # type: ignore[arg-type]

    class NoCode(BasePlugin):
        pass

    with pytest.raises(ValueError):
        ResourceRepository.register_plugin(NoCode)

    class Impostor(BasePlugin):
        plugin_code = "trace"

    with pytest.raises(ValueError):
        ResourceRepository.register_plugin(Impostor)
    ResourceRepository.register_plugin(TracePlugin)
    assert ResourceRepository.available_plugins()["trace"] is TracePlugin


def test_plug_errors():
    repository, _ = make_repository()
    with pytest.raises(ValueError):
        repository.plug("does-not-exist")
    with pytest.raises(TypeError):
        repository.plug(TracePlugin)  # type: ignore[arg-type]
    repository.plug("trace")
    with pytest.raises(ValueError):
        repository.plug("trace")
    with pytest.raises(AttributeError):
        repository.missing_plugin
    with pytest.raises(AttributeError):
        repository.set_plugin_enabled("get", "missing_plugin", False)


def test_handler_with_smartasync(monkeypatch):
    calls = []

    def fake_smartasync(fn):
        def wrapper(*a, **k):
            calls.append("wrapped")
            return fn(*a, **k)

        return wrapper

    fake_module = type(sys)("smartasync")
    fake_module.smartasync = fake_smartasync
    monkeypatch.setitem(sys.modules, "smartasync", fake_module)

    repository, _ = make_repository()
    handler = repository.handler(use_smartasync=True)
    coroutine = handler(Request.get("mem:greeting"))
    coroutine.close()
    assert calls == ["wrapped"]


def test_handler_uses_init_smartasync_default(monkeypatch):
    fake_module = type(sys)("smartasync")
    fake_module.smartasync = lambda fn: ("bridged", fn)
    monkeypatch.setitem(sys.modules, "smartasync", fake_module)

    repository, _ = make_repository(invoke_use_smartasync=True)
    assert repository.handler()[0] == "bridged"


async def test_describe_lists_controllers_cache_and_plugins():
    repository, memory = make_repository()
    repository.plug("trace")
    repository.configure("trace/put", label="write")
    (await repository.get("mem:greeting")).release()

    description = repository.describe()
    controller = description["controllers"][0]
    assert controller["name"] == "memory"
    assert controller["type"] == "InMemoryController"
    assert controller["methods"] == ["get", "put", "delete"]
    assert controller["request_type"] == "Request"
    assert "inmemorycontroller" in controller["tags"]
    assert description["cache"] == ["mem:greeting"]
    plugin = description["plugins"][0]
    assert plugin["overrides"]["put"] == {"enabled": True, "label": "write"}
    assert description["plugin_info"]["trace"]["put"]["config"] == {"label": "write"}


async def test_async_context_closes_controllers():
    closed = []

    class Closing(InMemoryController):
        def close(self):
            closed.append(self.name)

    async with ResourceRepository([Closing("a"), Closing("b")]) as repository:
        (await repository.get("mem:x")).release()
    assert closed == ["a", "b"]
