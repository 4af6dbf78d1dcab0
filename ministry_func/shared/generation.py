"""Text generation and speech synthesis through the OpenAI API."""

from __future__ import annotations

import io
import json
import re
from typing import Any, Dict, List, Optional

from openai import APITimeoutError, OpenAI, OpenAIError

from .logging_utils import get_json_logger

DEFAULT_TIMEOUT_SECONDS = 25.0
AUDIO_TEXT_LIMIT = 2500

_FENCE_OPEN_RE = re.compile(r"^\s*```[a-zA-Z]*\s*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")


class UpstreamError(RuntimeError):
    """Raised when a generation, speech or other third-party call fails."""

    retryable = False


class UpstreamTimeoutError(UpstreamError):
    """The provider did not answer within the configured timeout."""

    retryable = True


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json / trailing ``` pair if the model added one."""
    stripped = _FENCE_OPEN_RE.sub("", text, count=1)
    return _FENCE_CLOSE_RE.sub("", stripped, count=1).strip()


def parse_generated_json(text: Optional[str]) -> Dict[str, Any]:
    """Parse a model reply that must be a JSON object."""
    if not text or not text.strip():
        raise UpstreamError("No content returned from the AI model.")
    try:
        data = json.loads(strip_code_fences(text))
    except ValueError as exc:
        raise UpstreamError("Malformed JSON received from AI model.") from exc
    if not isinstance(data, dict):
        raise UpstreamError("AI model returned JSON that is not an object.")
    return data


class GenerationClient:
    """Contract for the text and audio providers."""

    def generate_text(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        json_mode: bool = False,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
        purpose: str = "text",
    ) -> str:
        raise NotImplementedError

    def synthesize_speech(self, text: str) -> bytes:
        raise NotImplementedError


class OpenAIGenerationClient(GenerationClient):
    """:class:`GenerationClient` backed by the OpenAI v1 SDK."""

    def __init__(
        self,
        api_key: str,
        *,
        text_model: str = "gpt-4.1",
        tts_model: str = "gpt-4o-mini-tts",
        tts_voice: str = "onyx",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = 0,
        client: Optional[OpenAI] = None,
    ) -> None:
        self._logger = get_json_logger("ministry.generation")
        self.text_model = text_model
        self.tts_model = tts_model
        self.tts_voice = tts_voice
        self.timeout = timeout
        if client is not None:
            self._client = client
        elif api_key.startswith("sk-proj"):
            self._client = OpenAI(
                api_key=api_key,
                timeout=timeout,
                max_retries=max_retries,
                default_headers={"OpenAI-Beta": "use-project-api"},
            )
        else:
            self._client = OpenAI(api_key=api_key, timeout=timeout, max_retries=max_retries)

    def generate_text(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        json_mode: bool = False,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
        purpose: str = "text",
    ) -> str:
        messages: List[Dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        request_body: Dict[str, Any] = {
            "model": model or self.text_model,
            "messages": messages,
            "temperature": temperature,
        }
        if json_mode:
            request_body["response_format"] = {"type": "json_object"}
        if max_tokens:
            request_body["max_tokens"] = max_tokens

        log_context = {"purpose": purpose, "model": request_body["model"], "prompt_len": len(prompt)}
        self._logger.info("Generation request", extra={"event": "generation_start", **log_context})
        try:
            resp = self._client.chat.completions.create(**request_body)
        except APITimeoutError as exc:
            self._logger.error("Generation timed out", extra={"event": "generation_timeout", "timeout": self.timeout, **log_context})
            raise UpstreamTimeoutError(f"Text generation timed out after {self.timeout:.0f}s") from exc
        except OpenAIError as exc:
            self._logger.error("Generation failed", extra={"event": "generation_error", "error": str(exc), **log_context})
            raise UpstreamError("Text generation request failed.") from exc

        content = ""
        if resp.choices and resp.choices[0].message:
            content = (resp.choices[0].message.content or "").strip()
        if not content:
            self._logger.warning("Generation returned no content", extra={"event": "generation_empty", **log_context})
            raise UpstreamError("AI model returned an empty response.")

        self._logger.info("Generation done", extra={"event": "generation_ok", "content_len": len(content), **log_context})
        return content

    def synthesize_speech(self, text: str) -> bytes:
        spoken = (text or "")[:AUDIO_TEXT_LIMIT]
        if not spoken.strip():
            raise UpstreamError("Nothing to synthesize.")

        log_context = {"model": self.tts_model, "voice": self.tts_voice, "chars": len(spoken)}
        self._logger.info("Speech request", extra={"event": "tts_start", **log_context})
        try:
            with self._client.audio.speech.with_streaming_response.create(
                model=self.tts_model,
                voice=self.tts_voice,
                input=spoken,
                response_format="mp3",
            ) as resp:
                buf = io.BytesIO()
                for chunk in resp.iter_bytes():
                    buf.write(chunk)
        except APITimeoutError as exc:
            raise UpstreamTimeoutError(f"Speech synthesis timed out after {self.timeout:.0f}s") from exc
        except OpenAIError as exc:
            raise UpstreamError("Speech synthesis request failed.") from exc

        audio = buf.getvalue()
        self._logger.info("Speech done", extra={"event": "tts_ok", "bytes": len(audio), **log_context})
        return audio
