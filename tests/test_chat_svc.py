import json
from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError

from conftest import FakeCarRepo, make_car
from driveease.core.config import Settings
from driveease.domain.services.chat_svc import ChatUnavailableError, chat, fleet_context

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class FakeMessage(SimpleNamespace):
    def model_dump(self, exclude_none=False):
        return {
            "role": "assistant",
            "content": self.content,
            "tool_calls": [
                {"id": c.id, "type": "function",
                 "function": {"name": c.function.name, "arguments": c.function.arguments}}
                for c in self.tool_calls or []
            ],
        }


def completion(content=None, tool_calls=None):
    return SimpleNamespace(choices=[SimpleNamespace(message=FakeMessage(content=content, tool_calls=tool_calls))])


def tool_call(arguments, name="check_availability"):
    return SimpleNamespace(id="call_1", function=SimpleNamespace(name=name, arguments=json.dumps(arguments)))


class FakeOpenAI:
    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def settings():
    return Settings(OPENAI_CHAT_MODELS=["model-a", "model-b"])


@pytest.fixture
def repo():
    return FakeCarRepo([
        make_car("suv", 4.8, name="Toyota Prado", model="Prado", listing_type="Both", sale_price=9_500_000),
        make_car("sedan", 4.1, name="Toyota Camry", model="Camry", sale_price=3_000_000),
    ])


@pytest.mark.asyncio
async def test_fleet_context_summarizes_inventory(repo, settings):
    ctx = await fleet_context(repo, settings)
    assert ctx["categories"] == "sedan, suv"
    assert ctx["price_range"] == "KES 3,000,000 - 9,500,000"
    assert "SUV: Toyota Prado (Both: KES 9,500,000)" in ctx["available_cars"]
    assert ctx["locations"] == "Mombasa, Nairobi"


@pytest.mark.asyncio
async def test_plain_answer_without_tool(repo, settings):
    client = FakeOpenAI(completion("Welcome to Dacad Motors!"))
    history = [{"role": "assistant", "content": "Hi!"}, {"role": "user", "content": "hello"}]

    reply = await chat(repo, message="Any SUVs?", history=history, settings=settings, client=client)

    assert reply == "Welcome to Dacad Motors!"
    roles = [m["role"] for m in client.requests[0]["messages"]]
    # leading assistant greeting dropped
    assert roles == ["system", "user", "user"]


@pytest.mark.asyncio
async def test_tool_call_result_is_sent_back(repo, settings):
    client = FakeOpenAI(
        completion(tool_calls=[tool_call({"query": "prado", "intent": "rent"})]),
        completion("Yes, the Prado is available for rent."),
    )

    reply = await chat(repo, message="Can I rent a Prado?", settings=settings, client=client)

    assert reply == "Yes, the Prado is available for rent."
    tool_msg = client.requests[1]["messages"][-1]
    assert tool_msg["role"] == "tool"
    assert tool_msg["tool_call_id"] == "call_1"
    assert json.loads(tool_msg["content"])["cars"][0]["name"] == "Toyota Prado"


@pytest.mark.asyncio
async def test_tool_failure_is_reported_to_model(repo, settings):
    client = FakeOpenAI(
        completion(tool_calls=[tool_call({"query": "prado"})]),
        completion("Sorry, I could not check right now."),
    )
    original = repo.search_available

    async def broken(*args, **kwargs):
        raise RuntimeError("db down")

    repo.search_available = broken
    reply = await chat(repo, message="Prado?", settings=settings, client=client)
    repo.search_available = original

    assert reply == "Sorry, I could not check right now."
    assert "error" in json.loads(client.requests[1]["messages"][-1]["content"])


@pytest.mark.asyncio
async def test_falls_back_to_next_model(repo, settings):
    client = FakeOpenAI(APIConnectionError(request=REQUEST), completion("From model b"))
    assert await chat(repo, message="hi", settings=settings, client=client) == "From model b"
    assert [r["model"] for r in client.requests] == ["model-a", "model-b"]


@pytest.mark.asyncio
async def test_all_models_failing_raises(repo, settings):
    client = FakeOpenAI(APIConnectionError(request=REQUEST), APIConnectionError(request=REQUEST))
    with pytest.raises(ChatUnavailableError):
        await chat(repo, message="hi", settings=settings, client=client)


@pytest.mark.asyncio
async def test_missing_api_key_raises(repo):
    with pytest.raises(ChatUnavailableError):
        await chat(repo, message="hi", settings=Settings(OPENAI_API_KEY=None))
