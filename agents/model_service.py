"""Text-in/text-out model service used by the analyzer.

The analyzer treats the model as opaque: it sends one prompt and gets the
full reply text back. Everything about the reply (error phrasing, JSON
shape) is handled by the analyzer, so the agent here is created with plain
string output rather than a structured output type.

Model strings:
    'anthropic:claude-3-5-sonnet-latest'   Any pydantic-ai model string
    'openai:<model>@<base_url>'            OpenAI-compatible local server
"""

import logging
from typing import Protocol

from openai import AsyncOpenAI
from pydantic_ai import Agent
from pydantic_ai.usage import UsageLimits
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.profiles.openai import OpenAIModelProfile
from pydantic_ai.providers.openai import OpenAIProvider

from config import is_local_model

logger = logging.getLogger(__name__)

SYSTEM_PROMPTS = {
    "en": "You are a technology analyst who reads Hacker News items and replies with precise, structured JSON.",
    "zh": "你是一名技术分析师，负责阅读 Hacker News 内容并以精确的结构化 JSON 回复。",
}


class ModelService(Protocol):
    """Anything that turns a prompt into a reply string."""

    async def complete(self, prompt: str) -> str: ...


def _parse_local_model(model_str: str) -> tuple[str, str] | None:
    """Parse local model string into (model_name, base_url) or None if not local."""
    if is_local_model(model_str):
        model_name, base_url = model_str[len("openai:"):].split("@", 1)
        return model_name, base_url
    return None


def _create_model(model_str: str):
    """Create a PydanticAI model instance or pass through remote model string."""
    parsed = _parse_local_model(model_str)
    if parsed:
        model_name, base_url = parsed
        logger.info("Using local model | model=%s base_url=%s", model_name, base_url)
        client = AsyncOpenAI(base_url=base_url, api_key="local-model")
        profile = OpenAIModelProfile(supports_json_object_output=False)
        return OpenAIChatModel(
            model_name=model_name,
            provider=OpenAIProvider(openai_client=client),
            profile=profile,
        )
    return model_str


class PydanticAIModelService:
    """ModelService backed by a pydantic-ai Agent with plain-text output.

    Example:
        >>> service = PydanticAIModelService("anthropic:claude-3-5-sonnet-latest")
        >>> reply = await service.complete("Analyze ...")
    """

    def __init__(self, model: str, language: str = "en"):
        self.model = model
        self._agent = Agent(
            _create_model(model),
            output_type=str,
            system_prompt=SYSTEM_PROMPTS.get(language, SYSTEM_PROMPTS["en"]),
            retries=1,
        )

    async def complete(self, prompt: str) -> str:
        result = await self._agent.run(prompt, usage_limits=UsageLimits(request_limit=2))
        usage = result.usage()
        logger.debug(
            "Model call complete | model=%s input_tokens=%d output_tokens=%d",
            self.model,
            usage.input_tokens or 0,
            usage.output_tokens or 0,
        )
        return result.output
