from typing import Optional

from openai import AsyncOpenAI

from ..config import Settings, get_settings
from ..errors import TranslationError


class LLMClient:
    """Chat completions against OpenAI or any compatible endpoint.

    Without an API key the client stays unconfigured and `chat` raises
    TranslationError, so callers can fall back to local parsing.
    """

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        if not settings.openai_api_key:
            self.client = None
            self.default_model = None
            return
        self.client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=str(settings.openai_api_base) if settings.openai_api_base else None,
            timeout=20,
            max_retries=2,
        )
        self.default_model = settings.openai_model

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def chat(self, system_prompt: str, user_prompt: str, model: Optional[str] = None) -> str:
        if not self.client:
            raise TranslationError("LLM client not configured: set OPENAI_API_KEY")
        model = model or self.default_model or "gpt-4o-mini"
        resp = await self.client.chat.completions.create(
            model=model,
            messages=[{"role": "system", "content": system_prompt}, {"role": "user", "content": user_prompt}],
            temperature=0.2,
            timeout=20,
        )
        return resp.choices[0].message.content or ""
