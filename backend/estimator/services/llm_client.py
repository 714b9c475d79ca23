"""
LLM Client Abstraction
Single entry point for all generative calls in the estimation pipeline.
Primary and fallback models are set in agents/config.py (LLM_PRIMARY_MODEL,
LLM_FALLBACK_MODEL) and reached through litellm.

Passes never call litellm directly: they receive a TextGenerator, so tests
can inject a stub and production injects LLMClient.
"""
import logging
from typing import Optional, Protocol

import litellm

from estimator.agents.config import FALLBACK_MODEL, PRIMARY_MODEL

logger = logging.getLogger("estimator-llm")

# Suppress litellm verbose logging
litellm.set_verbose = False


class TextGenerator(Protocol):
    """Prompt text in, free-form text out."""

    async def generate(self, prompt: str, system: str = "") -> str:
        ...


async def complete(
    messages: list,
    temperature: float = 0.1,
    json_mode: bool = False,
    max_tokens: int = 4096,
    model: Optional[str] = None,
) -> str:
    """
    Call the primary model. Falls back to the secondary model on rate limit
    or error. Returns the response content string.
    """
    primary = model or PRIMARY_MODEL
    kwargs = {
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}

    try:
        response = await litellm.acompletion(model=primary, **kwargs)
        return response.choices[0].message.content or ""
    except litellm.RateLimitError:
        logger.warning(f"{primary} rate limit hit, falling back to {FALLBACK_MODEL}")
    except litellm.AuthenticationError:
        logger.warning(f"{primary} auth error, falling back to {FALLBACK_MODEL}")
    except Exception as e:
        logger.warning(f"{primary} error ({type(e).__name__}: {e}), falling back to {FALLBACK_MODEL}")

    try:
        # Not every provider accepts response_format
        fallback_kwargs = {k: v for k, v in kwargs.items() if k != "response_format"}
        if json_mode:
            messages = [dict(m) for m in fallback_kwargs["messages"]]
            if messages and messages[0]["role"] == "system":
                messages[0]["content"] += "\n\nIMPORTANT: Respond with valid JSON only."
            else:
                messages = [{"role": "system", "content": "You must respond with valid JSON only."}] + messages
            fallback_kwargs["messages"] = messages
        response = await litellm.acompletion(model=FALLBACK_MODEL, **fallback_kwargs)
        return response.choices[0].message.content or ""
    except Exception as e:
        logger.error(f"Both LLMs failed. Fallback error: {e}")
        raise RuntimeError(f"All LLM providers failed. Last error: {e}") from e


class LLMClient:
    """TextGenerator backed by litellm with primary/fallback routing."""

    def __init__(self, model: Optional[str] = None, temperature: float = 0.1, max_tokens: int = 4096):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate(self, prompt: str, system: str = "") -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return await complete(
            messages,
            temperature=self.temperature,
            json_mode=True,
            max_tokens=self.max_tokens,
            model=self.model,
        )


def get_system_prompt(role: str) -> str:
    """Standard system prompts for the estimation roles."""
    prompts = {
        "estimator": (
            "You are a Senior Structural Steel Estimator with 20+ years of quantity surveying "
            "experience across AISC, IS, BS EN, AS and pre-engineered building projects. "
            "You read drawing text precisely, count members grid by grid, and never invent "
            "sizes that are not on the drawings. Always return structured, precise JSON."
        ),
        "sheet_classifier": (
            "You are a drawing controller. You classify construction drawing sheets by type, "
            "read title blocks and scales, and detect the design standard and unit system."
        ),
        "reviewer": (
            "You are a Chief Estimator reviewing a priced bill of quantities. You check the "
            "arithmetic, compare totals against market benchmarks and list missing trades."
        ),
    }
    return prompts.get(role, prompts["estimator"])
