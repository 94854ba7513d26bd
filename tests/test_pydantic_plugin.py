"""Tests for the Pydantic plugin."""

import pytest
from pydantic import BaseModel, ValidationError

from smartresource import InMemoryController, Request, ResourceRepository


class User(BaseModel):
    name: str
    age: int = 0


class Counting(InMemoryController):
    def __init__(self, *args, **kwargs):
        self.puts = 0
        super().__init__(*args, **kwargs)

    async def put_item(self, request):
        self.puts += 1
        return await super().put_item(request)


def make_repository():
    memory = Counting("memory")
    return ResourceRepository([memory]).plug("pydantic"), memory


async def test_pydantic_plugin_accepts_and_normalizes_body():
    repository, memory = make_repository()
    metadata = {"body_model": User}
    async with await repository.put("mem:user", {"name": "ada", "age": "36"}, metadata=metadata) as response:
        assert response.read_json() == {"name": "ada", "age": 36}
    assert dict(memory)["mem:user"] == {"name": "ada", "age": 36}


async def test_pydantic_plugin_validates_json_bytes():
    repository, memory = make_repository()
    response = await repository.put("mem:user", b'{"name": "bob"}', metadata={"body_model": User})
    response.release()
    assert dict(memory)["mem:user"] == {"name": "bob", "age": 0}


async def test_pydantic_plugin_rejects_invalid_body_before_controllers():
    repository, memory = make_repository()
    with pytest.raises(ValidationError) as excinfo:
        await repository.put("mem:user", {"age": "old"}, metadata={"body_model": User})
    assert excinfo.value.title == "Validation error in PUT mem:user"
    assert memory.puts == 0
    assert "mem:user" not in memory


async def test_requests_without_model_pass_through():
    repository, memory = make_repository()
    (await repository.put("mem:raw", "anything")).release()
    assert dict(memory)["mem:raw"] == "anything"
    assert repository.pydantic.get_model(Request.put("mem:raw", {"name": "x"})) is None


async def test_pydantic_plugin_disabled_per_method():
    repository, memory = make_repository()
    repository.configure("pydantic/put", disabled=True)
    (await repository.put("mem:user", {"age": "old"}, metadata={"body_model": User})).release()
    assert dict(memory)["mem:user"] == {"age": "old"}

    with pytest.raises(ValidationError):
        await repository.post("mem:user", {"age": "old"}, metadata={"body_model": User})


async def test_pydantic_plugin_disabled_at_runtime():
    repository, memory = make_repository()
    repository.pydantic.configure(disabled=True)
    (await repository.put("mem:user", {"age": "old"}, metadata={"body_model": User})).release()
    assert memory.puts == 1
