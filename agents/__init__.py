"""Model-backed analysis for the HN Brief pipeline.

AnalyzerAgent:
    Builds the prompt for an item, calls the model service, classifies the
    reply and runs the parse cascade. Failures degrade to sentinel results.

ModelService / PydanticAIModelService:
    Text-in/text-out model backend (pydantic-ai Agent with str output).

Example:
    >>> from agents import AnalyzerAgent
    >>> analyzer = AnalyzerAgent(config)
    >>> result = await analyzer.analyze(item)
"""

from agents.analyzer import AnalyzerAgent
from agents.model_service import ModelService, PydanticAIModelService

__all__ = [
    "AnalyzerAgent",
    "ModelService",
    "PydanticAIModelService",
]
