from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel

from app.agent.llm_client import LLMClient, UserContent
from app.core.config import settings

InType = TypeVar("InType", bound=BaseModel | str)
OutType = TypeVar("OutType", bound=BaseModel)


class BaseAgent(ABC, Generic[InType, OutType]):
    """Abstract base class for the AI content generators."""

    # Name used for cache keys and logs
    endpoint: str = ""

    def __init__(self, model_name: str | None = None):
        self.model_name = model_name or settings.MODEL_DEFAULT
        self.llm = LLMClient(model_name=self.model_name)

    @abstractmethod
    def build_prompts(self, input_data: InType) -> tuple[str, UserContent]:
        """Return the (system, user) prompts sent to the model for ``input_data``."""

    @abstractmethod
    async def run(self, input_data: InType) -> OutType:
        """Run the agent on the given input to produce the output artifact."""
