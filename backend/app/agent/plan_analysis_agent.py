from app.agent.artifacts import PlanAnalysis, PlanAnalysisRequest
from app.agent.base import BaseAgent
from app.agent.prompts.plan_analysis import (
    PLAN_ANALYSIS_SYSTEM_PROMPTS,
    PLAN_ANALYSIS_USER_PROMPTS,
    build_plan_summary,
)


class PlanAnalysisAgent(BaseAgent[PlanAnalysisRequest, PlanAnalysis]):
    """
    Agent responsible for scoring a complete strategic plan and
    listing its gaps, quick wins and recommendations.
    """

    endpoint = "analyze-strategic-plan"

    def build_prompts(self, input_data: PlanAnalysisRequest) -> tuple[str, str]:
        language = input_data.language
        summary = build_plan_summary(input_data.plan_data, language)
        return (
            PLAN_ANALYSIS_SYSTEM_PROMPTS[language],
            PLAN_ANALYSIS_USER_PROMPTS[language].format(summary=summary),
        )

    async def run(self, input_data: PlanAnalysisRequest) -> PlanAnalysis:
        system_prompt, user_prompt = self.build_prompts(input_data)
        analysis = await self.llm.generate_structured(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            response_schema=PlanAnalysis,
        )

        if not analysis.section_analysis:
            raise ValueError("PlanAnalysisAgent returned no section analysis.")

        return analysis
