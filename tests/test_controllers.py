"""Tests for the reference controllers and repository helpers."""

import asyncio
import io
from datetime import timedelta
from pathlib import Path

import pytest

from smartresource import (
    AmbiguousControllers,
    EnvironmentVariableController,
    FileRequest,
    InMemoryController,
    PhysicalFileController,
    ResourceRepository,
    SettingsController,
    UriString,
    delete_file,
    get_file,
    read_setting,
    read_text_file,
    write_setting,
    write_text_file,
)
from smartresource.controllers import file_uri, setting_uri


async def test_memory_put_then_get_round_trip():
    memory = InMemoryController("memory")
    repository = ResourceRepository([memory])
    (await repository.put("MEM:doc?b=2&a=1", {"title": "x"})).release()
    async with await repository.get("mem:doc?a=1&b=2") as response:
        assert response.read_json() == {"title": "x"}
        assert response.content_type == "application/json"
        assert response.metadata.controller == "memory"
    assert "mem:doc?b=2&a=1" in memory
    (await repository.delete("mem:doc?a=1&b=2")).release()
    assert not (await repository.get("mem:doc?a=1&b=2")).exists()


async def test_memory_stream_body_survives_put_response():
    repository = ResourceRepository([InMemoryController("memory")])
    async with await repository.put("mem:blob", io.BytesIO(b"payload")) as response:
        assert response.read() == b"payload"
    for _ in range(2):
        async with await repository.get("mem:blob") as response:
            assert response.read() == b"payload"


async def test_memory_accepts_relative_uris():
    repository = ResourceRepository([InMemoryController(items={"notes/today": "remember"})])
    async with await repository.get("notes/today") as response:
        assert response.read_text() == "remember"


async def test_environment_variables():
    environ = {"APP_MODE": "test"}
    repository = ResourceRepository([EnvironmentVariableController("env", environ=environ)])
    async with await repository.get("env:APP_MODE") as response:
        assert response.read_text() == "test"
        assert response.content_type == "text/plain"

    (await repository.put("env:APP_LEVEL", b"3")).release()
    assert environ["APP_LEVEL"] == "3"

    (await repository.delete("env:APP_MODE")).release()
    assert "APP_MODE" not in environ
    assert not (await repository.get("env:APP_MODE")).exists()


async def test_environment_controller_ignores_other_schemes():
    repository = ResourceRepository([EnvironmentVariableController(environ={})])
    assert not (await repository.get("mem:APP_MODE")).exists()


def test_file_uri_forms():
    assert file_uri("/tmp/a b.txt") == UriString("file:///tmp/a%20b.txt")
    assert file_uri("c:\\temp\\x.txt") == UriString("file:///c:/temp/x.txt")
    assert file_uri("notes/a.txt").is_relative


def test_file_controller_resolves_paths(tmp_path):
    controller = PhysicalFileController(base_dir=tmp_path)
    assert controller.resolve_path(UriString("file:///c:/temp/x.txt")) == Path("c:/temp/x.txt")
    assert controller.resolve_path(UriString("file://server/share/x.txt")) == Path("//server/share/x.txt")
    assert controller.resolve_path(UriString("notes/a.txt")) == tmp_path / "notes" / "a.txt"
    with pytest.raises(ValueError):
        PhysicalFileController().resolve_path(UriString("notes/a.txt"))


async def test_file_helpers_round_trip(tmp_path):
    repository = ResourceRepository([PhysicalFileController("files")])
    path = tmp_path / "sub" / "hello.txt"

    await write_text_file(repository, path, "hello world")
    assert path.read_text() == "hello world"
    assert await read_text_file(repository, path) == "hello world"

    async with await get_file(repository, path) as response:
        assert response.content_type == "text/plain"
        assert response.metadata.length == len("hello world")
        assert response.metadata.modified_on.utcoffset() == timedelta(0)
        assert response.metadata.controller == "files"
        assert response.read() == b"hello world"

    await delete_file(repository, path)
    assert not path.exists()
    with pytest.raises(FileNotFoundError):
        await read_text_file(repository, path)


async def test_file_controller_requires_file_requests(tmp_path):
    path = tmp_path / "plain.txt"
    path.write_text("x")
    repository = ResourceRepository([PhysicalFileController()])
    assert not (await repository.get(file_uri(path))).exists()
    async with await repository.get(file_uri(path), request_type=FileRequest) as response:
        assert response.read_text() == "x"


async def test_relative_files_use_base_dir(tmp_path):
    repository = ResourceRepository([PhysicalFileController("files", base_dir=tmp_path)])
    await write_text_file(repository, "notes/a.txt", "relative")
    assert (tmp_path / "notes" / "a.txt").read_text() == "relative"
    assert await read_text_file(repository, "notes/a.txt", controller="files") == "relative"


async def test_file_get_honours_cancellation(tmp_path):
    path = tmp_path / "a.txt"
    path.write_text("x")
    event = asyncio.Event()
    event.set()
    repository = ResourceRepository([PhysicalFileController()])
    with pytest.raises(asyncio.CancelledError):
        await get_file(repository, path, cancellation=event)


async def test_settings_are_typed_and_case_insensitive():
    repository = ResourceRepository([SettingsController("settings", {"Timeout": 30})])
    assert await read_setting(repository, "timeout", int) == 30
    await write_setting(repository, "Retries", [1, 2])
    assert await read_setting(repository, "RETRIES", list) == [1, 2]
    with pytest.raises(KeyError):
        await read_setting(repository, "missing")


async def test_settings_routed_by_tag():
    primary = SettingsController("primary", {"mode": "a"})
    secondary = SettingsController("secondary", {"mode": "b"}, tags="fallback")
    repository = ResourceRepository([primary, secondary])

    with pytest.raises(AmbiguousControllers):
        await write_setting(repository, "mode", "c")

    assert await read_setting(repository, "mode") == "a"
    assert await read_setting(repository, "mode", controller="fallback") == "b"
    await write_setting(repository, "mode", "c", controller="secondary")
    assert await read_setting(repository, "mode", controller="secondary") == "c"
    assert await read_setting(repository, "mode") == "a"


def test_setting_uri_carries_name_in_query():
    uri = setting_uri("Timeout")
    assert uri.scheme == "config"
    assert uri.query["name"] == "Timeout"
