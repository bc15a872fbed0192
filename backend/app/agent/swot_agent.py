from datetime import datetime
from typing import Any

from app.agent.artifacts import SWOTAnalysis, SWOTItem, StrategyRequest
from app.agent.base import BaseAgent
from app.agent.prompts.context import plan_context_block, taxonomy_block
from app.agent.prompts.swot import SWOT_SYSTEM_PROMPT, SWOT_USER_PROMPT

SWOT_CATEGORIES = ("strengths", "weaknesses", "opportunities", "threats")
PRIORITIES = {"high", "medium", "low"}


def normalize_swot_items(items: Any, category: str) -> list[SWOTItem]:
    """
    Coerce whatever the model returned for one quadrant into SWOT items.
    Missing English text falls back to a generic ``text`` key, then to a numbered label.
    """
    if not isinstance(items, list):
        return []
    normalized = []
    for i, item in enumerate(items):
        if isinstance(item, str):
            item = {"text_en": item}
        elif not isinstance(item, dict):
            continue
        priority = item.get("priority")
        normalized.append(
            SWOTItem(
                text_en=str(item.get("text_en") or item.get("text") or f"{category.capitalize()} item {i + 1}"),
                text_ar=str(item.get("text_ar") or ""),
                priority=priority if priority in PRIORITIES else "medium",
            )
        )
    return normalized


class SWOTAgent(BaseAgent[StrategyRequest, SWOTAnalysis]):
    """
    Agent responsible for drafting a bilingual SWOT analysis
    from the strategic plan wizard context.
    """

    endpoint = "strategy-swot-generator"

    def build_prompts(self, input_data: StrategyRequest) -> tuple[str, str]:
        system_prompt = SWOT_SYSTEM_PROMPT.format(taxonomy=taxonomy_block(input_data.taxonomy))
        user_prompt = SWOT_USER_PROMPT.format(
            plan_context=plan_context_block(input_data.context, datetime.now().year)
        )
        return system_prompt, user_prompt

    async def run(self, input_data: StrategyRequest) -> SWOTAnalysis:
        system_prompt, user_prompt = self.build_prompts(input_data)
        raw = await self.llm.generate_json(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            json_schema=SWOTAnalysis.model_json_schema(),
        )

        swot = SWOTAnalysis(
            **{category: normalize_swot_items(raw.get(category), category) for category in SWOT_CATEGORIES}
        )

        # Post-validation: every quadrant must have content.
        empty = [category for category in SWOT_CATEGORIES if not getattr(swot, category)]
        if empty:
            raise ValueError(f"SWOTAgent returned no items for: {', '.join(empty)}")

        return swot
