from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import requests

from services.llm_client import (
    GenerationOptions,
    LLMError,
    LlamaCppClient,
    OllamaClient,
    create_llm_client,
)


class DummyResponse:
    def __init__(self, json_data=None, status_code=200, text=""):
        self._json = json_data
        self.status_code = status_code
        self.text = text
        self.ok = status_code < 400

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"HTTP {self.status_code}")

    def json(self):
        if self._json is None:
            raise ValueError("no json")
        return self._json


def _ollama(response=None, side_effect=None):
    session = MagicMock()
    if side_effect is not None:
        session.post.side_effect = side_effect
    else:
        session.post.return_value = response
    return OllamaClient("http://llm:11434/", "mistral", session=session), session


def test_ollama_chat_request_shape():
    client, session = _ollama(DummyResponse({"message": {"role": "assistant", "content": "hi"}}))

    text = client.generate("hello", "be nice", GenerationOptions(temperature=0.0, max_tokens=50, strict_json=True, timeout=3))

    assert text == "hi"
    url = session.post.call_args.args[0]
    body = session.post.call_args.kwargs["json"]
    assert url == "http://llm:11434/api/chat"
    assert body["messages"][0] == {"role": "system", "content": "be nice"}
    assert body["messages"][1] == {"role": "user", "content": "hello"}
    assert body["options"] == {"temperature": 0.0, "num_predict": 50}
    assert body["format"] == "json"
    assert body["stream"] is False
    assert session.post.call_args.kwargs["timeout"] == 3


def test_ollama_defaults_fill_missing_options():
    client, session = _ollama(DummyResponse({"response": "ok"}))
    client.default_timeout = 42.0

    assert client.generate("hello") == "ok"
    body = session.post.call_args.kwargs["json"]
    assert body["options"] == {"temperature": 0.7, "num_predict": 500}
    assert "format" not in body
    assert session.post.call_args.kwargs["timeout"] == 42.0


@pytest.mark.parametrize(
    "payload",
    [
        {"messages": [{"role": "user", "content": "q"}, {"role": "assistant", "content": "answer"}]},
        {"response": "answer"},
        {"message": {"content": "answer"}},
    ],
)
def test_ollama_response_shapes(payload):
    client, _ = _ollama(DummyResponse(payload))
    assert client.generate("q") == "answer"


def test_ollama_unknown_shape_raises():
    client, _ = _ollama(DummyResponse({"unexpected": 1}))
    with pytest.raises(LLMError):
        client.generate("q")


def test_ollama_missing_model_message():
    client, _ = _ollama(DummyResponse({}, status_code=404))
    with pytest.raises(LLMError, match="ollama pull mistral"):
        client.generate("q")


def test_ollama_connection_refused():
    client, _ = _ollama(side_effect=requests.exceptions.ConnectionError("refused"))
    with pytest.raises(LLMError, match="ollama serve"):
        client.generate("q")


def test_ollama_timeout():
    client, _ = _ollama(side_effect=requests.exceptions.Timeout("slow"))
    with pytest.raises(LLMError, match="timed out"):
        client.generate("q")


def test_ollama_check_model():
    session = MagicMock()
    session.get.return_value = DummyResponse({"models": [{"name": "mistral"}, {"name": "llama3"}]})
    client = OllamaClient("http://llm:11434", "mistral", session=session)
    assert client.check_model() is True

    client.model = "qwen"
    assert client.check_model() is False


def test_llamacpp_prepends_system_prompt():
    session = MagicMock()
    session.post.return_value = DummyResponse({"content": "done"})
    client = LlamaCppClient("http://llama:8080", "local", session=session)

    assert client.generate("question", "system") == "done"
    url = session.post.call_args.args[0]
    body = session.post.call_args.kwargs["json"]
    assert url == "http://llama:8080/completion"
    assert body["prompt"] == "system\n\nquestion"
    assert body["stop"] == ["\n\n", "User:", "Assistant:"]


def test_llamacpp_error_is_wrapped():
    session = MagicMock()
    session.post.return_value = DummyResponse({}, status_code=500)
    client = LlamaCppClient("http://llama:8080", "local", session=session)
    with pytest.raises(LLMError):
        client.generate("q")


def _settings(provider):
    return SimpleNamespace(
        LLM_PROVIDER=provider,
        LLM_ENDPOINT="http://x",
        LLM_MODEL="m",
        LLM_TEMPERATURE=0.2,
        LLM_MAX_TOKENS=100,
        LLM_TIMEOUT=30.0,
    )


def test_factory_selects_backend():
    assert isinstance(create_llm_client(_settings("ollama")), OllamaClient)
    llama = create_llm_client(_settings("llamacpp"))
    assert isinstance(llama, LlamaCppClient)
    assert llama.default_temperature == 0.2


def test_factory_rejects_unknown_provider():
    with pytest.raises(ValueError):
        create_llm_client(_settings("gpt-remote"))
