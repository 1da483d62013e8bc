"""
Text-generation clients for local LLM servers.

Two backends are supported, selected once from configuration:
- ``ollama``: chat endpoint (``/api/chat``)
- ``llamacpp``: llama.cpp server completion endpoint (``/completion``)

Both expose the same small surface (``generate``) so callers never branch on
the provider name.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """Raised when the text-generation backend cannot produce a response."""


@dataclass
class GenerationOptions:
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    strict_json: bool = False
    timeout: Optional[float] = None  # seconds


class LLMClient:
    """Base class for text-generation backends."""

    provider = "base"

    def __init__(
        self,
        endpoint: str,
        model: str,
        default_temperature: float = 0.7,
        default_max_tokens: int = 500,
        default_timeout: float = 120.0,
        session: Optional[requests.Session] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.model = model
        self.default_temperature = default_temperature
        self.default_max_tokens = default_max_tokens
        self.default_timeout = default_timeout
        self.session = session or requests.Session()

    def _resolve(self, options: Optional[GenerationOptions]) -> GenerationOptions:
        opts = options or GenerationOptions()
        return GenerationOptions(
            temperature=opts.temperature if opts.temperature is not None else self.default_temperature,
            max_tokens=opts.max_tokens if opts.max_tokens is not None else self.default_max_tokens,
            strict_json=opts.strict_json,
            timeout=opts.timeout if opts.timeout is not None else self.default_timeout,
        )

    def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
    ) -> str:
        opts = self._resolve(options)
        try:
            text = self._generate(prompt, system_prompt, opts)
        except LLMError as exc:
            logger.error("LLM generation failed (%s): %s", self.provider, exc)
            raise
        if not text or not isinstance(text, str):
            raise LLMError(f"Empty response from {self.provider}")
        return text

    def _generate(self, prompt: str, system_prompt: Optional[str], opts: GenerationOptions) -> str:
        raise NotImplementedError

    def test_connection(self) -> bool:
        return False

    def check_model(self) -> bool:
        return True


class OllamaClient(LLMClient):
    provider = "ollama"

    def _generate(self, prompt: str, system_prompt: Optional[str], opts: GenerationOptions) -> str:
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        body: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": {
                "temperature": opts.temperature,
                "num_predict": opts.max_tokens,
            },
        }
        if opts.strict_json:
            body["format"] = "json"

        url = f"{self.endpoint}/api/chat"
        logger.info("Calling Ollama %s model=%s", url, self.model)
        try:
            resp = self.session.post(url, json=body, timeout=opts.timeout)
        except requests.exceptions.ConnectionError as exc:
            raise LLMError("Cannot connect to Ollama. Ensure 'ollama serve' is running.") from exc
        except requests.exceptions.Timeout as exc:
            raise LLMError("Ollama request timed out. Model may be loading.") from exc
        except requests.exceptions.RequestException as exc:
            raise LLMError(f"Failed to generate LLM response: {exc}") from exc

        if resp.status_code == 404:
            raise LLMError(f"Model '{self.model}' not found on Ollama. Run: ollama pull {self.model}")
        if resp.status_code >= 500:
            raise LLMError("Ollama server error. Check Ollama logs.")
        if resp.status_code >= 400:
            raise LLMError(f"Ollama returned HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            data = resp.text
        return _ollama_text(data)

    def _tags(self) -> List[str]:
        resp = self.session.get(f"{self.endpoint}/api/tags", timeout=5.0)
        resp.raise_for_status()
        return [m.get("name", "") for m in resp.json().get("models") or []]

    def test_connection(self) -> bool:
        try:
            names = self._tags()
        except Exception as exc:
            logger.error("LLM connection test failed: %s", exc)
            return False
        logger.info("Ollama connection test successful")
        logger.info("Available models: %s", ", ".join(names))
        return True

    def check_model(self) -> bool:
        try:
            names = self._tags()
        except Exception as exc:
            logger.error("Failed to check model availability: %s", exc)
            return False
        if self.model not in names:
            logger.warning("Model '%s' not found. Available models: %s", self.model, ", ".join(names))
            return False
        logger.info("Model '%s' is available", self.model)
        return True


def _ollama_text(data: Any) -> str:
    """Pull the assistant text out of the shapes Ollama has been seen to return."""
    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, dict) and message.get("content"):
            return message["content"]
        messages = data.get("messages")
        if isinstance(messages, list) and messages:
            assistant = next((m for m in messages if m.get("role") == "assistant"), None)
            return (assistant or messages[0]).get("content") or ""
        if isinstance(data.get("response"), str):
            return data["response"]
    if isinstance(data, str):
        return data
    logger.error("Unexpected Ollama response format: %s", data)
    raise LLMError("Invalid response shape from Ollama")


class LlamaCppClient(LLMClient):
    provider = "llamacpp"

    def _generate(self, prompt: str, system_prompt: Optional[str], opts: GenerationOptions) -> str:
        full_prompt = f"{system_prompt}\n\n{prompt}" if system_prompt else prompt
        body = {
            "prompt": full_prompt,
            "temperature": opts.temperature,
            "n_predict": opts.max_tokens,
            "stop": ["\n\n", "User:", "Assistant:"],
        }
        try:
            resp = self.session.post(f"{self.endpoint}/completion", json=body, timeout=opts.timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as exc:
            raise LLMError("Failed to generate LLM response from Llama.cpp") from exc

        try:
            data = resp.json()
        except ValueError:
            return resp.text
        if isinstance(data, dict):
            if data.get("content"):
                return data["content"]
            if data.get("response"):
                return data["response"]
        return data if isinstance(data, str) else json.dumps(data)

    def test_connection(self) -> bool:
        try:
            resp = self.session.get(f"{self.endpoint}/health", timeout=5.0)
            return resp.ok
        except requests.exceptions.RequestException as exc:
            logger.error("LLM connection test failed: %s", exc)
            return False


_BACKENDS = {
    OllamaClient.provider: OllamaClient,
    LlamaCppClient.provider: LlamaCppClient,
}


def create_llm_client(settings, session: Optional[requests.Session] = None) -> LLMClient:
    """Build the configured backend."""
    cls = _BACKENDS.get(settings.LLM_PROVIDER)
    if cls is None:
        raise ValueError(f"Unknown LLM provider: {settings.LLM_PROVIDER}")
    return cls(
        endpoint=settings.LLM_ENDPOINT,
        model=settings.LLM_MODEL,
        default_temperature=settings.LLM_TEMPERATURE,
        default_max_tokens=settings.LLM_MAX_TOKENS,
        default_timeout=settings.LLM_TIMEOUT,
        session=session,
    )
