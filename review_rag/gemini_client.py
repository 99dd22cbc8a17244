from __future__ import annotations

from typing import Optional

try:
    from google import genai
    from google.genai import types
except ImportError as exc:
    raise RuntimeError(
        "google-genai not found. Run: pip install -e ."
    ) from exc

from review_rag.errors import ModelError
from review_rag.settings import Settings


def build_client(settings: Settings) -> genai.Client:
    if settings.google_api_key and not settings.gcp_project:
        return genai.Client(api_key=settings.google_api_key)
    return genai.Client(
        vertexai=True,
        project=settings.gcp_project,
        location=settings.gcp_location,
    )


def generate_text(
    client: genai.Client,
    model: str,
    prompt: str,
    temperature: Optional[float] = None,
) -> Optional[str]:
    """Single-turn generation. Returns None when the model produced no text."""
    config = None
    if temperature is not None:
        config = types.GenerateContentConfig(temperature=temperature)
    try:
        response = client.models.generate_content(
            model=model,
            contents=[prompt],
            config=config,
        )
    except Exception as exc:
        raise ModelError(f"Gemini generation failed: {exc}") from exc
    if not response or not response.text:
        return None
    return response.text


class GeminiChat:
    """Callable chat model: ``chat(prompt) -> text``.

    This is the ``llm_fn`` shape the enhancer and the RAG pipeline consume.
    """

    def __init__(
        self,
        client: genai.Client,
        model: str,
        temperature: Optional[float] = None,
    ) -> None:
        self._client = client
        self.model = model
        self.temperature = temperature

    def __call__(self, prompt: str) -> Optional[str]:
        return generate_text(
            client=self._client,
            model=self.model,
            prompt=prompt,
            temperature=self.temperature,
        )


def build_chat(settings: Settings, client: Optional[genai.Client] = None) -> GeminiChat:
    return GeminiChat(client=client or build_client(settings), model=settings.gemini_model)
