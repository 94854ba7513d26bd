"""Tests for the logging plugin."""

import pytest

from smartresource import ControllerNotFound, InMemoryController, ResourceRepository


class DummyLogger:
    def __init__(self, records, has_handlers=True):
        self._records = records
        self._has_handlers = has_handlers

    def hasHandlers(self):  # noqa: N802
        return self._has_handlers

    def info(self, message):
        self._records.append(message)


def make_repository(records, **config):
    repository = ResourceRepository([InMemoryController("memory", {"mem:a": "A"})])
    repository.plug("logging", logger=DummyLogger(records), **config)
    return repository


async def test_logging_plugin_logs_start_and_end_with_status():
    records = []
    repository = make_repository(records)

    (await repository.get("mem:a")).release()
    (await repository.get("mem:missing")).release()

    assert records[0] == "GET mem:a start"
    assert records[1].startswith("GET mem:a end (") and records[1].endswith(" ms) ok")
    assert records[3].endswith(" ms) not_found")


async def test_logging_plugin_flags_and_per_method_config():
    records = []
    repository = make_repository(records, flags="before:off")

    (await repository.get("mem:a")).release()
    assert len(records) == 1 and "end" in records[0]

    repository.configure("logging/put", enabled=False)
    (await repository.put("mem:b", "B")).release()
    assert len(records) == 1


async def test_logging_plugin_runtime_toggle():
    records = []
    repository = make_repository(records)
    repository.set_plugin_enabled("get", "logging", False)
    (await repository.get("mem:a")).release()
    assert records == []
    repository.set_plugin_enabled("get", "logging", True)
    (await repository.get("mem:a")).release()
    assert len(records) == 2


async def test_logging_plugin_print_sink(capsys):
    records = []
    repository = make_repository(records, print=True, after=False)
    (await repository.get("mem:a")).release()
    assert records == []
    assert capsys.readouterr().out.strip() == "GET mem:a start"


async def test_logging_plugin_falls_back_to_print_without_handlers(capsys):
    records = []
    repository = ResourceRepository([InMemoryController("memory", {"mem:a": "A"})])
    repository.plug("logging", logger=DummyLogger(records, has_handlers=False), after=False)
    (await repository.get("mem:a")).release()
    assert records == []
    assert "GET mem:a start" in capsys.readouterr().out


async def test_logging_plugin_skips_end_message_on_error():
    records = []
    repository = ResourceRepository([InMemoryController("memory", schemes=("mem",))])
    repository.plug("logging", logger=DummyLogger(records))
    with pytest.raises(ControllerNotFound):
        await repository.delete("env:NOPE")
    assert records == ["DELETE env:NOPE start"]
