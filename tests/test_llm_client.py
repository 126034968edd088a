import json

import httpx
import pytest

from meal_planner.app.services import llm_client
from meal_planner.app.services.meal_generation import GenerationFailed

from conftest import MINIMAL_MEAL_JSON, OLLAMA_HOST


@pytest.mark.asyncio
async def test_call_generate_posts_ollama_payload(mock_ollama):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["payload"] = json.loads(request.content)
        return httpx.Response(200, json={"model": "llama3.2", "response": MINIMAL_MEAL_JSON, "done": True})

    mock_ollama(handler)
    content = await llm_client.call_generate("make soup", 0.5, 2000)

    assert content == MINIMAL_MEAL_JSON
    assert seen["url"] == f"{OLLAMA_HOST}/api/generate"
    payload = seen["payload"]
    assert payload["model"] == "llama3.2:latest"
    assert payload["prompt"] == "make soup"
    assert payload["stream"] is False
    assert payload["format"] == "json"
    assert payload["options"] == {"temperature": 0.5, "num_predict": 2000}


@pytest.mark.asyncio
async def test_call_generate_omits_format_when_json_mode_disabled(mock_ollama, ollama_settings):
    ollama_settings.ollama_json_mode = False
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["payload"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "plain text"})

    mock_ollama(handler)
    assert await llm_client.call_generate("p", 0.3, 10) == "plain text"
    assert "format" not in seen["payload"]


@pytest.mark.asyncio
async def test_call_generate_raises_on_http_error(mock_ollama):
    mock_ollama(lambda request: httpx.Response(500, text="model crashed"))
    with pytest.raises(ValueError, match="500"):
        await llm_client.call_generate("p", 0.7, 10)


@pytest.mark.asyncio
async def test_call_generate_raises_on_error_body(mock_ollama):
    mock_ollama(lambda request: httpx.Response(200, json={"error": "model 'llama3.2' not found"}))
    with pytest.raises(ValueError, match="not found"):
        await llm_client.call_generate("p", 0.7, 10)


@pytest.mark.asyncio
async def test_check_backend_status_model_available(mock_ollama):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/tags"
        return httpx.Response(200, json={"models": [{"name": "mistral:7b"}, {"name": "llama3.2:latest"}]})

    mock_ollama(handler)
    status = await llm_client.check_backend_status()
    assert status.reachable is True
    assert status.model_available is True
    assert status.error is None


@pytest.mark.asyncio
async def test_check_backend_status_model_missing(mock_ollama):
    mock_ollama(lambda request: httpx.Response(200, json={"models": [{"name": "mistral:7b"}]}))
    status = await llm_client.check_backend_status()
    assert status.reachable is True
    assert status.model_available is False


@pytest.mark.asyncio
async def test_check_backend_status_unreachable(mock_ollama):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    mock_ollama(handler)
    status = await llm_client.check_backend_status()
    assert status.reachable is False
    assert status.model_available is False
    assert status.error
    assert OLLAMA_HOST in status.error


@pytest.mark.asyncio
async def test_check_backend_status_server_error(mock_ollama):
    mock_ollama(lambda request: httpx.Response(503, text="starting"))
    status = await llm_client.check_backend_status()
    assert status.reachable is False
    assert status.error


def test_build_suggestion_prompt_includes_constraints():
    prompt = llm_client.build_suggestion_prompt("dinner", ["Tacos", "Beef Stew"], ["vegetarian"])
    assert "a dinner meal" in prompt
    assert "Avoid these meals that are already planned: Tacos, Beef Stew." in prompt
    assert "Consider these dietary preferences: vegetarian." in prompt
    assert '"dietaryTags"' in prompt


def test_build_suggestion_prompt_without_constraints():
    prompt = llm_client.build_suggestion_prompt("breakfast")
    assert "a breakfast meal" in prompt
    assert "Avoid" not in prompt
    assert "dietary preferences" not in prompt


def test_build_transcription_prompt_embeds_content():
    prompt = llm_client.build_transcription_prompt("Grandma's pancakes\n2 cups flour")
    assert "Grandma's pancakes\n2 cups flour" in prompt
    assert "Estimate nutrition if not provided." in prompt


@pytest.mark.asyncio
async def test_generate_meal_suggestion_retries_with_lower_temperature(monkeypatch):
    calls = []
    responses = iter(["", "```json\n{broken\n```", MINIMAL_MEAL_JSON])

    async def fake_generate(prompt, temperature, max_tokens):
        calls.append((prompt, temperature, max_tokens))
        return next(responses)

    monkeypatch.setattr(llm_client, "call_generate", fake_generate)
    meal = await llm_client.generate_meal_suggestion("lunch", ["Soup"], ["vegan"])

    assert meal.title == "Soup"
    assert [c[1] for c in calls] == [0.7, 0.5, 0.3]
    assert all(c[2] == 2000 for c in calls)
    assert "Avoid these meals that are already planned: Soup." in calls[0][0]


@pytest.mark.asyncio
async def test_transcribe_recipe_uses_transcription_policy(monkeypatch):
    calls = []

    async def fake_generate(prompt, temperature, max_tokens):
        calls.append((prompt, temperature, max_tokens))
        return "not a recipe"

    monkeypatch.setattr(llm_client, "call_generate", fake_generate)
    with pytest.raises(GenerationFailed) as exc_info:
        await llm_client.transcribe_recipe("1 cup water. Boil.")

    assert exc_info.value.attempts == 3
    assert [c[1] for c in calls] == [0.3, 0.2, 0.1]
    assert all(c[2] == 1200 for c in calls)
    assert "1 cup water. Boil." in calls[0][0]


@pytest.mark.asyncio
async def test_generate_meal_suggestion_honors_configured_attempts(monkeypatch, ollama_settings):
    ollama_settings.generation_max_attempts = 5
    calls = []

    async def fake_generate(prompt, temperature, max_tokens):
        calls.append(temperature)
        return "{}"

    monkeypatch.setattr(llm_client, "call_generate", fake_generate)
    with pytest.raises(GenerationFailed):
        await llm_client.generate_meal_suggestion("dinner")
    assert len(calls) == 5
    assert calls[-1] == 0.1


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"models": 5}, {"models": None}, ["llama3.2"], {}])
async def test_check_backend_status_malformed_model_list(mock_ollama, body):
    mock_ollama(lambda request: httpx.Response(200, json=body))
    status = await llm_client.check_backend_status()
    assert status.reachable is True
    assert status.model_available is False


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [httpx.InvalidURL("bad host"), TypeError("unexpected body")])
async def test_check_backend_status_never_raises(monkeypatch, error):
    async def failing_list_models():
        raise error

    monkeypatch.setattr(llm_client, "list_models", failing_list_models)
    status = await llm_client.check_backend_status()
    assert status.reachable is False
    assert status.model_available is False
    assert status.error
