import json

import httpx
import pytest

from examprep.errors import GenerationError
from examprep.models.question import Difficulty, Question
from examprep.services.generator_client import GeneratorClient

from conftest import make_questions


def _client(handler, api_key="secret"):
    return GeneratorClient("http://generator.test", api_key=api_key, transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_generate_posts_topic_and_difficulty():
    seen = {}

    def handler(request: httpx.Request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"id": "tmp-1", "questions": make_questions("Math", 1)})

    client = _client(handler)
    payload = await client.generate(" Math ", Difficulty.hard)
    await client.aclose()

    assert seen["path"] == "/generate-exam"
    assert seen["body"] == {"topic": "Math", "difficulty": "hard"}
    assert seen["auth"] == "Bearer secret"
    assert payload["id"] == "tmp-1"


@pytest.mark.anyio
async def test_error_body_becomes_generation_error():
    client = _client(lambda r: httpx.Response(200, json={"error": "quota exceeded", "details": "try later"}))
    with pytest.raises(GenerationError) as exc:
        await client.generate("Math", Difficulty.easy)
    assert exc.value.details == "try later"
    assert "quota exceeded" in str(exc.value)


@pytest.mark.anyio
async def test_http_error_status():
    client = _client(lambda r: httpx.Response(500, json={"error": "boom"}))
    with pytest.raises(GenerationError):
        await client.generate("Math", Difficulty.easy)


@pytest.mark.anyio
async def test_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    with pytest.raises(GenerationError):
        await client.generate("Math", Difficulty.easy)


@pytest.mark.anyio
async def test_non_object_body():
    client = _client(lambda r: httpx.Response(200, json=[1, 2, 3]))
    with pytest.raises(GenerationError):
        await client.generate("Math", Difficulty.easy)


@pytest.mark.anyio
async def test_explain_sends_option_texts():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"explanation": "Because.", "trap_analysis": "Distractor.", "mnemonic": "M"})

    question = Question.model_validate(make_questions("Bio", 1, [2])[0])
    client = _client(handler)
    coaching = await client.explain(question, 1)

    assert seen["path"] == "/explain-question"
    assert seen["body"]["correctAnswer"] == "C"
    assert seen["body"]["userAnswer"] == "B"
    assert seen["body"]["options"] == ["A", "B", "C", "D"]
    assert coaching.explanation == "Because."
    assert coaching.trap_analysis == "Distractor."


@pytest.mark.anyio
async def test_explain_rejects_malformed_payload():
    question = Question.model_validate(make_questions("Bio", 1)[0])
    client = _client(lambda r: httpx.Response(200, json={"mnemonic": "only"}))
    with pytest.raises(GenerationError):
        await client.explain(question, None)


@pytest.mark.anyio
async def test_explain_sends_null_for_invalid_user_answer():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"explanation": "Because."})

    question = Question.model_validate(make_questions("Bio", 1)[0])
    client = _client(handler)
    await client.explain(question, 7)
    assert seen["body"]["userAnswer"] is None
