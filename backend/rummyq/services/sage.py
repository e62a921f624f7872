"""Rummy Sage: one-shot rules and strategy questions answered by an LLM."""

from __future__ import annotations

import logging
import re

from openai import APITimeoutError, AsyncOpenAI, AuthenticationError, RateLimitError
from openai.types.chat import ChatCompletionMessageParam

LOGGER: logging.Logger = logging.getLogger("RummySage")

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

FALLBACK_MODELS: list[str] = [
    "meta-llama/llama-3.3-70b-instruct:free",
    "deepseek/deepseek-r1-0528:free",
    "z-ai/glm-4.5-air:free",
]

SYSTEM_INSTRUCTION = (
    "You are the 'Rummy Sage', an expert Rummy card game referee and strategist. "
    "Keep answers concise (under 50 words), witty, and helpful. "
    "You speak with a slight casino dealer charm."
)

OFFLINE_REPLY = "I'm currently offline (API Key missing). Please check the configuration."
EMPTY_REPLY = "I couldn't read the cards on that one. Try again."
ERROR_REPLY = "The spirits of the cards are silent right now. (Error connecting to AI)"


class RummySage:
    """Stateless question/answer client. Never raises to the caller."""

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        client: AsyncOpenAI | None = None,
        max_tokens: int = 300,
    ) -> None:
        self.max_tokens = max_tokens
        self.models = [model] + [m for m in FALLBACK_MODELS if m != model] if model else []
        self.client = client
        if self.client is None and api_key.strip():
            self.client = AsyncOpenAI(base_url=OPENROUTER_BASE_URL, api_key=api_key)

    @property
    def is_configured(self) -> bool:
        return self.client is not None and bool(self.models)

    @staticmethod
    def _clean(raw: str) -> str:
        # Reasoning models may leak their scratchpad
        text = re.sub(r"<think>[\s\S]*?</think>", "", raw)
        text = re.sub(r"<think>[\s\S]*$", "", text)
        return text.strip()

    async def ask(self, question: str) -> str:
        if not self.is_configured:
            return OFFLINE_REPLY
        question = question.strip()
        if not question:
            return EMPTY_REPLY

        messages: list[ChatCompletionMessageParam] = [
            {"role": "system", "content": SYSTEM_INSTRUCTION},
            {"role": "user", "content": question},
        ]

        try:
            for model in self.models:
                try:
                    completion = await self.client.chat.completions.create(
                        model=model,
                        max_tokens=self.max_tokens,
                        messages=messages,
                    )
                except RateLimitError:
                    LOGGER.warning(f"Sage rate limit on {model}, trying next model")
                    continue

                if not completion.choices:
                    LOGGER.warning(f"Sage [{model}]: no choices")
                    continue
                answer = self._clean(completion.choices[0].message.content or "")
                LOGGER.info(f"Sage [{model}]: answered {len(answer)} chars")
                return answer or EMPTY_REPLY
        except AuthenticationError as e:
            LOGGER.error(f"Sage: OpenRouter rejected the API key: {e}")
            return ERROR_REPLY
        except APITimeoutError as e:
            LOGGER.error(f"Sage: request timed out: {e}")
            return ERROR_REPLY
        except Exception as e:
            LOGGER.error(f"Sage request failed: {type(e).__name__}: {e}")
            return ERROR_REPLY

        LOGGER.warning("Sage: no model produced an answer")
        return ERROR_REPLY
