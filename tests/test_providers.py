"""Tests for the provider adapters."""
import json
from unittest.mock import AsyncMock, patch

import httpx
import openai
import pytest

from conftest import chat_response, fake_openai_client
from flowengine.errors import (
    ConfigurationError,
    ProviderError,
    ProviderUnavailableError,
    RateLimitExceededError,
)
from flowengine.providers import (
    HTTPAPIAdapter,
    HuggingFaceAdapter,
    KeywordPlaceholderStrategy,
    OllamaAdapter,
    OpenAIChatAdapter,
)
from flowengine.providers.huggingface import build_prompt, clean_response, extract_generated_text
from flowengine.providers.http_api import parse_headers
from flowengine.retry import backoff_schedule


def rate_limit_error() -> openai.RateLimitError:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(429, request=request)
    return openai.RateLimitError("Rate limit reached", response=response, body=None)


def auth_error() -> openai.AuthenticationError:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(401, request=request)
    return openai.AuthenticationError("Incorrect API key provided", response=response, body=None)


class TestOpenAIChatAdapter:
    @pytest.mark.asyncio
    async def test_persistent_rate_limit_gives_up_after_three_attempts(self, settings):
        client = fake_openai_client(side_effect=rate_limit_error())
        adapter = OpenAIChatAdapter(client=client, settings=settings)

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(RateLimitExceededError) as exc:
                await adapter.complete("hello")

        assert client.chat.completions.create.await_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]
        assert "rate limit" in exc.value.message
        assert "quota" in exc.value.message

    @pytest.mark.asyncio
    async def test_recovers_after_one_rate_limit(self, settings):
        client = fake_openai_client(side_effect=[rate_limit_error(), chat_response("recovered")])
        adapter = OpenAIChatAdapter(client=client, settings=settings)

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            text = await adapter.complete("hello")

        assert text == "recovered"
        assert client.chat.completions.create.await_count == 2
        mock_sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self, settings):
        client = fake_openai_client(side_effect=auth_error())
        adapter = OpenAIChatAdapter(client=client, settings=settings)

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(ProviderError) as exc:
                await adapter.complete("hello")

        assert not isinstance(exc.value, RateLimitExceededError)
        assert exc.value.message.startswith("OpenAI request failed")
        assert client.chat.completions.create.await_count == 1
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_key_runs_degraded(self, settings):
        adapter = OpenAIChatAdapter(settings=settings)

        assert not adapter.configured
        text = await adapter.complete("Write an email to the team about the offsite")

        assert text.startswith("Subject: Write an email to the team about the offsite")

    @pytest.mark.asyncio
    async def test_degraded_mode_uses_injected_placeholder(self, settings):
        class Canned:
            def generate(self, prompt, system_prompt=""):
                return f"canned: {prompt}"

        adapter = OpenAIChatAdapter(placeholder=Canned(), settings=settings)

        assert await adapter.complete("hello") == "canned: hello"

    @pytest.mark.asyncio
    async def test_injected_client_is_used_without_key(self, settings):
        client = fake_openai_client(content="live")
        adapter = OpenAIChatAdapter(client=client, settings=settings)

        assert adapter.configured
        assert await adapter.complete("hello") == "live"
        client.chat.completions.create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_content_becomes_empty_string(self, settings):
        adapter = OpenAIChatAdapter(client=fake_openai_client(content=None), settings=settings)

        assert await adapter.complete("hello") == ""

    def test_backoff_schedule(self):
        assert backoff_schedule(3, 1.0) == [1.0, 2.0]
        assert backoff_schedule(1, 1.0) == []


class TestHuggingFaceAdapter:
    @pytest.fixture
    def adapter(self, http_client, settings):
        return HuggingFaceAdapter(api_key="hf_test", client=http_client, settings=settings)

    @pytest.mark.asyncio
    async def test_no_key_uses_placeholder(self, http_client, http_handler, settings):
        adapter = HuggingFaceAdapter(client=http_client, settings=settings)

        text = await adapter.complete("Write a blog post about dogs")

        assert text.startswith("# Write a blog post about dogs")
        assert http_handler.requests == []

    @pytest.mark.asyncio
    async def test_generated_text_is_cleaned(self, adapter, http_handler):
        prompt = "Tell me about dogs"
        http_handler.respond = lambda request: httpx.Response(
            200, json=[{"generated_text": "Assistant: Dogs are loyal companions that love to play."}]
        )

        text = await adapter.complete(prompt, model="distilgpt2", temperature=0)

        assert text == "Dogs are loyal companions that love to play."
        request = http_handler.requests[0]
        assert request.url.path.endswith("/distilgpt2")
        assert request.headers["Authorization"] == "Bearer hf_test"
        body = json.loads(request.content)
        assert body["inputs"] == "Human: Tell me about dogs\nAssistant:"
        assert body["parameters"]["temperature"] == 0.01
        assert body["parameters"]["return_full_text"] is False

    @pytest.mark.asyncio
    async def test_falls_back_to_alternates_in_order(self, adapter, http_handler):
        def respond(request):
            if request.url.path.endswith("/distilgpt2"):
                return httpx.Response(200, json=[{"generated_text": "Loyal, playful and very good friends."}])
            return httpx.Response(503, json={"error": "Model is loading"})

        http_handler.respond = respond

        text = await adapter.complete("Describe canines", model="microsoft/DialoGPT-small")

        assert text == "Loyal, playful and very good friends."
        tried = [r.url.path.split("/models/", 1)[1] for r in http_handler.requests]
        assert tried == ["microsoft/DialoGPT-small", "gpt2", "distilgpt2"]

    @pytest.mark.asyncio
    async def test_alternates_are_capped(self, adapter, http_handler):
        http_handler.respond = lambda request: httpx.Response(500)

        text = await adapter.complete("What is a dog?")

        assert len(http_handler.requests) == 3
        assert text.startswith("Great question about What is a dog?")

    @pytest.mark.asyncio
    async def test_short_answer_uses_placeholder(self, adapter, http_handler):
        http_handler.respond = lambda request: httpx.Response(200, json=[{"generated_text": "ok"}])

        text = await adapter.complete("Summarize the meeting")

        assert text.startswith("Summary: Summarize the meeting")
        assert len(http_handler.requests) == 1

    @pytest.mark.asyncio
    async def test_unreachable_counts_as_model_failure(self, adapter, http_handler):
        def unreachable(request):
            raise httpx.ConnectError("down", request=request)

        http_handler.respond = unreachable

        text = await adapter.complete("hello there")

        assert text
        assert len(http_handler.requests) == 3

    def test_unknown_model_is_substituted(self):
        assert HuggingFaceAdapter.resolve_model("meta-llama/Llama-2-70b") == "gpt2"
        assert HuggingFaceAdapter.resolve_model(None) == "gpt2"
        assert HuggingFaceAdapter.resolve_model("distilgpt2") == "distilgpt2"

    def test_candidates_skip_requested_model(self):
        assert HuggingFaceAdapter.candidate_models("distilgpt2") == [
            "distilgpt2",
            "gpt2",
            "microsoft/DialoGPT-small",
        ]

    def test_build_prompt_with_system(self):
        assert build_prompt("hi", "Be brief") == "Be brief\n\nHuman: hi\nAssistant:"

    def test_clean_response_strips_echo_and_labels(self):
        full = build_prompt("dogs")
        raw = full + " dogs\nAI: They bark."
        assert clean_response(raw, full, "dogs") == "They bark."

    def test_clean_response_keeps_input_mentioned_in_answer(self):
        full = build_prompt("dog")
        answer = "The dog is a loyal animal and every dog loves a walk."
        assert clean_response(answer, full, "dog") == answer

    @pytest.mark.asyncio
    async def test_answer_mentioning_topic_is_untouched(self, adapter, http_handler):
        answer = "The dog is a loyal animal and every dog loves a walk."
        http_handler.respond = lambda request: httpx.Response(200, json=[{"generated_text": answer}])

        assert await adapter.complete("dog") == answer

    def test_configured_follows_token(self, settings):
        assert HuggingFaceAdapter(api_key="hf_test", settings=settings).configured
        assert not HuggingFaceAdapter(settings=settings).configured

    def test_error_body_raises(self):
        with pytest.raises(ProviderError, match="loading"):
            extract_generated_text({"error": "Model gpt2 is currently loading"})

    def test_summary_text_is_accepted(self):
        assert extract_generated_text([{"summary_text": "short"}]) == "short"


class TestPlaceholder:
    def test_default_template(self):
        text = KeywordPlaceholderStrategy().generate("bananas")
        assert "bananas" in text

    def test_empty_prompt(self):
        assert "your request" in KeywordPlaceholderStrategy().generate("   ")

    def test_long_topic_is_truncated(self):
        text = KeywordPlaceholderStrategy().generate("word " * 100)
        assert "..." in text
        assert len(text) < 400


class TestOllamaAdapter:
    @pytest.mark.asyncio
    async def test_generate(self, http_client, http_handler, settings):
        http_handler.respond = lambda request: httpx.Response(200, json={"response": "Woof.", "done": True})
        adapter = OllamaAdapter(client=http_client, settings=settings)

        text = await adapter.complete("dogs", system_prompt="Be a dog", model="llama2", endpoint="http://gpu:11434/")

        assert text == "Woof."
        request = http_handler.requests[0]
        assert str(request.url) == "http://gpu:11434/api/generate"
        body = json.loads(request.content)
        assert body["stream"] is False
        assert body["system"] == "Be a dog"
        assert body["model"] == "llama2"

    @pytest.mark.asyncio
    async def test_unreachable_server(self, http_client, http_handler, settings):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        http_handler.respond = refuse
        adapter = OllamaAdapter(client=http_client, settings=settings)

        with pytest.raises(ProviderUnavailableError) as exc:
            await adapter.complete("dogs")

        assert exc.value.message.startswith("Ollama server not reachable at http://localhost:11434")
        assert exc.value.endpoint == "http://localhost:11434"

    @pytest.mark.asyncio
    async def test_error_status(self, http_client, http_handler, settings):
        http_handler.respond = lambda request: httpx.Response(404, json={"error": "model not found"})
        adapter = OllamaAdapter(client=http_client, settings=settings)

        with pytest.raises(ProviderError, match="404"):
            await adapter.complete("dogs", model="nope")


class TestHTTPAPIAdapter:
    @pytest.fixture
    def adapter(self, http_client, settings):
        return HTTPAPIAdapter(client=http_client, settings=settings)

    @pytest.mark.asyncio
    async def test_post_sends_query_body(self, adapter, http_handler):
        http_handler.respond = lambda request: httpx.Response(200, json={"temp": 21})

        text = await adapter.request(
            "https://api.example.com/weather",
            method="post",
            headers='{"X-Api-Key": "secret"}',
            query="Paris",
        )

        assert json.loads(text) == {"temp": 21}
        request = http_handler.requests[0]
        assert request.method == "POST"
        assert json.loads(request.content) == {"query": "Paris"}
        assert request.headers["X-Api-Key"] == "secret"
        assert request.headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_json_body_is_returned_verbatim(self, adapter, http_handler):
        body = '{"city":"Zürich","temp":21.0}'
        http_handler.respond = lambda request: httpx.Response(
            200,
            content=body.encode("utf-8"),
            headers={"Content-Type": "application/json; charset=utf-8"},
        )

        assert await adapter.request("https://api.example.com/weather") == body

    @pytest.mark.asyncio
    async def test_get_sends_no_body(self, adapter, http_handler):
        http_handler.respond = lambda request: httpx.Response(200, text="plain answer")

        text = await adapter.request("https://api.example.com/status", query="ignored")

        assert text == "plain answer"
        assert http_handler.requests[0].method == "GET"
        assert http_handler.requests[0].content == b""

    @pytest.mark.asyncio
    async def test_error_status_is_a_failure(self, adapter, http_handler):
        http_handler.respond = lambda request: httpx.Response(500, text="boom")

        with pytest.raises(ProviderError, match="status 500"):
            await adapter.request("https://api.example.com/broken", method="POST")

    @pytest.mark.asyncio
    async def test_missing_endpoint(self, adapter):
        with pytest.raises(ConfigurationError, match="API endpoint not specified"):
            await adapter.request("")

    def test_parse_headers(self):
        assert parse_headers(None) == {}
        assert parse_headers({"A": 1}) == {"A": "1"}
        with pytest.raises(ConfigurationError):
            parse_headers("{not json")
        with pytest.raises(ConfigurationError):
            parse_headers("[1, 2]")
