from datetime import datetime
from typing import Any

from app.agent.artifacts import Assumption, Outcome, Scenario, ScenarioSet, StrategyRequest
from app.agent.base import BaseAgent
from app.agent.prompts.context import plan_context_block, taxonomy_block
from app.agent.prompts.scenarios import (
    SCENARIO_SYSTEM_PROMPT,
    SCENARIO_USER_PROMPT,
    pestel_context_block,
    swot_context_block,
)

DEFAULT_PROBABILITIES = {"best_case": 20, "most_likely": 60, "worst_case": 20}


def _as_dicts(items: Any) -> list[dict]:
    if not isinstance(items, list):
        return []
    return [item if isinstance(item, dict) else {"text": str(item)} for item in items]


def normalize_scenario(raw: Any, name: str) -> Scenario:
    raw = raw if isinstance(raw, dict) else {}
    probability = raw.get("probability")
    if isinstance(probability, bool) or not isinstance(probability, int | float):
        probability = DEFAULT_PROBABILITIES[name]

    return Scenario(
        description_en=str(raw.get("description_en") or raw.get("description") or ""),
        description_ar=str(raw.get("description_ar") or ""),
        assumptions=[
            Assumption(
                text_en=str(a.get("text_en") or a.get("text") or ""),
                text_ar=str(a.get("text_ar") or ""),
            )
            for a in _as_dicts(raw.get("assumptions"))
        ],
        outcomes=[
            Outcome(
                metric_en=str(o.get("metric_en") or o.get("metric") or ""),
                metric_ar=str(o.get("metric_ar") or ""),
                value="" if o.get("value") is None else str(o.get("value")),
            )
            for o in _as_dicts(raw.get("outcomes"))
        ],
        probability=probability,
    )


class ScenarioAgent(BaseAgent[StrategyRequest, ScenarioSet]):
    """Drafts best-case, most-likely and worst-case planning scenarios."""

    endpoint = "strategy-scenario-generator"

    def build_prompts(self, input_data: StrategyRequest) -> tuple[str, str]:
        context = input_data.context
        system_prompt = SCENARIO_SYSTEM_PROMPT.format(taxonomy=taxonomy_block(input_data.taxonomy))
        user_prompt = SCENARIO_USER_PROMPT.format(
            plan_context=plan_context_block(context, datetime.now().year),
            swot_context=swot_context_block(context.swot),
            pestel_context=pestel_context_block(context.pestel),
        )
        return system_prompt, user_prompt

    async def run(self, input_data: StrategyRequest) -> ScenarioSet:
        system_prompt, user_prompt = self.build_prompts(input_data)
        raw = await self.llm.generate_json(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            json_schema=ScenarioSet.model_json_schema(),
        )

        scenarios = ScenarioSet(
            **{name: normalize_scenario(raw.get(name), name) for name in DEFAULT_PROBABILITIES}
        )

        if not any(getattr(scenarios, name).description_en for name in DEFAULT_PROBABILITIES):
            raise ValueError("ScenarioAgent failed to describe any scenario.")

        return scenarios
