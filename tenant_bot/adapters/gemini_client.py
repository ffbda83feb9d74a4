from __future__ import annotations

from typing import Sequence

try:
    from google import genai  # type: ignore[attr-defined]
    from google.genai import errors, types
except ImportError:  # pragma: no cover - optional dependency guard
    genai = None  # type: ignore

from tenant_bot.services.sessions import ChatTurn


class CompletionError(RuntimeError):
    """Provider failure; ``retryable`` tells the caller whether another attempt may help."""

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class GeminiCompletionClient:
    """Chat completion against Gemini using the async google-genai client."""

    def __init__(
        self,
        api_key: str,
        model_name: str,
        temperature: float = 0.7,
        max_output_tokens: int = 1024,
    ) -> None:
        if genai is None:
            raise RuntimeError("google-genai package is required for AI replies")
        if not api_key:
            raise RuntimeError("Gemini API key is required for AI replies")
        self._client = genai.Client(api_key=api_key)
        self._model_name = model_name
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[ChatTurn],
        user_text: str,
        timeout_seconds: float,
    ) -> str:
        contents = [
            types.Content(role=turn.role, parts=[types.Part(text=turn.text)])
            for turn in history
        ]
        contents.append(types.Content(role="user", parts=[types.Part(text=user_text)]))
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=self._temperature,
            max_output_tokens=self._max_output_tokens,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model_name,
                contents=contents,
                config=config,
            )
        except errors.ClientError as exc:
            raise CompletionError(f"Gemini rejected the request: {exc}", retryable=exc.code == 429) from exc
        except errors.APIError as exc:
            raise CompletionError(f"Gemini request failed: {exc}") from exc
        return self._extract_text(response)

    def _extract_text(self, response) -> str:
        candidates = getattr(response, "candidates", None) or []
        for candidate in candidates:
            content = getattr(candidate, "content", None)
            parts = getattr(content, "parts", None) or [] if content else []
            texts = [part.text for part in parts if getattr(part, "text", None)]
            if texts:
                return "".join(texts).strip()
        raise CompletionError("Gemini did not return any text")
