"""Unified LLM client — Gemini first (with Google Search grounding), then OpenAI, then Anthropic."""

import logging
from dataclasses import dataclass

import anthropic
import httpx
import openai
from openai import AsyncOpenAI

from pricedrop.config import Settings, settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attachment:
    """Inline media sent alongside a prompt. ``data`` is base64-encoded."""

    mime_type: str
    data: str

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


class LLMError(RuntimeError):
    """Raised when no provider produced a usable completion."""

    def __init__(self, message: str, *, status_code: int | None = None, unavailable: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.unavailable = unavailable


def _describe_failure(exc: Exception) -> tuple[int | None, bool]:
    """Return (http status, provider unavailable) for a provider exception."""
    status = None
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
    elif isinstance(exc, (openai.APIStatusError, anthropic.APIStatusError)):
        status = exc.status_code
    elif isinstance(exc, LLMError):
        return exc.status_code, exc.unavailable

    connection_failed = isinstance(
        exc, (httpx.TransportError, openai.APIConnectionError, anthropic.APIConnectionError)
    )
    return status, connection_failed or status == 503


class LLMClient:
    """Async LLM client with Gemini primary + OpenAI / Anthropic fallback."""

    def __init__(self, config: Settings = settings, http_client: httpx.AsyncClient | None = None):
        self._config = config
        self._http = http_client
        self._openai = None
        self._anthropic = None

        if config.openai_api_key:
            self._openai = AsyncOpenAI(api_key=config.openai_api_key)
        if config.anthropic_api_key:
            self._anthropic = anthropic.AsyncAnthropic(api_key=config.anthropic_api_key)

    @property
    def is_configured(self) -> bool:
        return bool(self._config.gemini_api_key or self._openai or self._anthropic)

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(base_url=self._config.gemini_base_url)
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def complete(
        self,
        prompt: str,
        *,
        attachment: Attachment | None = None,
        web_search: bool = False,
        timeout: float = 45.0,
        max_tokens: int = 1000,
    ) -> str:
        """Get a completion from the first provider that answers.

        Args:
            prompt: Natural-language prompt
            attachment: Optional inline media (only images are sent inline)
            web_search: Enable the provider's web-search / grounding tool
            timeout: Per-provider request timeout in seconds
            max_tokens: Max output tokens

        Returns:
            Raw text response from the LLM.

        Raises:
            LLMError if every configured provider fails, or none is configured.
        """
        providers = []
        if self._config.gemini_api_key:
            providers.append(("Gemini", self._complete_gemini))
        if self._openai:
            providers.append(("OpenAI", self._complete_openai))
        if self._anthropic:
            providers.append(("Anthropic", self._complete_anthropic))

        if not providers:
            raise LLMError("No LLM provider configured")

        errors = []
        status_code = None
        unavailable = False
        for name, call in providers:
            try:
                text = await call(prompt, attachment, web_search, timeout, max_tokens)
                if not text:
                    raise LLMError(f"Empty response from {name}")
                return text
            except Exception as e:
                status_code, unavailable = _describe_failure(e)
                errors.append(f"{name}: {e}")
                logger.warning(f"{name} failed: {e}")

        raise LLMError(
            f"All LLM providers failed: {'; '.join(errors)}",
            status_code=status_code,
            unavailable=unavailable,
        )

    async def _complete_gemini(
        self, prompt: str, attachment: Attachment | None, web_search: bool, timeout: float, max_tokens: int
    ) -> str:
        model = self._config.gemini_search_model if web_search else self._config.gemini_analysis_model

        parts: list[dict] = [{"text": prompt}]
        if attachment and attachment.is_image:
            parts.append({"inline_data": {"mime_type": attachment.mime_type, "data": attachment.data}})

        payload: dict = {
            "contents": [{"parts": parts}],
            "generationConfig": {"maxOutputTokens": max_tokens},
        }
        if web_search:
            payload["tools"] = [{"google_search": {}}]

        client = await self._get_http()
        resp = await client.post(
            f"/models/{model}:generateContent",
            params={"key": self._config.gemini_api_key},
            json=payload,
            timeout=timeout,
        )
        resp.raise_for_status()
        data = resp.json()

        candidates = data.get("candidates") or []
        if not candidates:
            raise LLMError("No candidates in Gemini response")
        content_parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(p.get("text", "") for p in content_parts).strip()

    async def _complete_openai(
        self, prompt: str, attachment: Attachment | None, web_search: bool, timeout: float, max_tokens: int
    ) -> str:
        content: str | list[dict] = prompt
        if attachment and attachment.is_image:
            content = [
                {"type": "text", "text": prompt},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{attachment.mime_type};base64,{attachment.data}"},
                },
            ]

        kwargs: dict = {
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": content}],
            "timeout": timeout,
        }
        if web_search:
            # Search-preview models reject sampling parameters
            kwargs["model"] = self._config.openai_search_model
            kwargs["web_search_options"] = {}
        else:
            kwargs["model"] = self._config.openai_analysis_model
            kwargs["temperature"] = 0

        response = await self._openai.chat.completions.create(**kwargs)
        return (response.choices[0].message.content or "").strip()

    async def _complete_anthropic(
        self, prompt: str, attachment: Attachment | None, web_search: bool, timeout: float, max_tokens: int
    ) -> str:
        content: str | list[dict] = prompt
        if attachment and attachment.is_image:
            content = [
                {
                    "type": "image",
                    "source": {"type": "base64", "media_type": attachment.mime_type, "data": attachment.data},
                },
                {"type": "text", "text": prompt},
            ]

        kwargs: dict = {
            "model": self._config.anthropic_model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": content}],
            "timeout": timeout,
        }
        if web_search:
            kwargs["tools"] = [{"type": "web_search_20250305", "name": "web_search", "max_uses": 5}]
        else:
            kwargs["temperature"] = 0

        response = await self._anthropic.messages.create(**kwargs)
        return "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        ).strip()


# Singleton
llm_client = LLMClient()
