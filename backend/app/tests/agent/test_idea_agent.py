import unittest
from unittest.mock import AsyncMock, patch

from app.agent.artifacts import IdeaAnalysis, IdeaInput
from app.agent.idea_agent import IdeaAnalysisAgent


def _analysis(**overrides) -> IdeaAnalysis:
    data = {
        "title_en": "Shaded bus stops",
        "title_ar": "مظلات لمواقف الحافلات",
        "description_en": "Install shaded, cooled bus stops on main roads.",
        "category": "Public Spaces",
        "tags_en": [" Shade ", "Transport", "", "heat", "comfort", "bus", "summer", "extra"],
        "impact_score": 80,
        "feasibility_score": 65,
        "ai_summary_en": "Cooled bus stops. High public value.",
    }
    data.update(overrides)
    return IdeaAnalysis.model_validate(data)


class IdeaAnalysisAgentTests(unittest.IsolatedAsyncioTestCase):
    def _agent(self, analysis: IdeaAnalysis) -> IdeaAnalysisAgent:
        with patch("app.agent.llm_client.AsyncOpenAI"):
            with patch("app.agent.llm_client.settings.LLM_API_KEY", "dummy_key"):
                agent = IdeaAnalysisAgent()
        agent.llm.generate_structured = AsyncMock(return_value=analysis)
        return agent

    async def test_category_and_tags_are_normalised(self):
        agent = self._agent(_analysis())

        result = await agent.run(
            IdeaInput(title=" Bus stops ", description="Too hot in summer", municipality_name="Riyadh")
        )

        self.assertEqual(result.category, "public_spaces")
        self.assertEqual(result.tags_en, ["shade", "transport", "heat", "comfort", "bus", "summer"])
        user_prompt = agent.llm.generate_structured.call_args.kwargs["user_prompt"]
        self.assertIn("Title: Bus stops", user_prompt)
        self.assertIn("Municipality: Riyadh", user_prompt)

    async def test_unknown_category_becomes_other(self):
        agent = self._agent(_analysis(category="space tourism"))

        result = await agent.run(IdeaInput(title="Rocket port", description="Launch site", language="ar"))

        self.assertEqual(result.category, "other")
        user_prompt = agent.llm.generate_structured.call_args.kwargs["user_prompt"]
        self.assertIn("submitted in Arabic", user_prompt)
        self.assertIn("Municipality: Not specified", user_prompt)
        self.assertIs(agent.llm.generate_structured.call_args.kwargs["response_schema"], IdeaAnalysis)
