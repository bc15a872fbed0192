import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.agent.artifacts import PlanAnalysis, PlanAnalysisRequest
from app.agent.plan_analysis_agent import PlanAnalysisAgent

ANALYSIS = {
    "executive_summary": {
        "overall_score": 72,
        "grade": "B",
        "verdict": "Solid foundation with measurement gaps.",
        "readiness_level": "needs_minor_changes",
    },
    "scores": {
        "completeness": 80,
        "coherence": 75,
        "feasibility": 70,
        "measurability": 55,
        "risk_management": 60,
        "stakeholder_engagement": 78,
        "national_alignment": 85,
        "change_readiness": 50,
    },
    "strengths": [{"area": "Vision", "description": "Clear and aligned"}],
    "critical_gaps": [
        {"area": "KPIs", "issue": "No baselines", "recommendation": "Add baselines", "priority": "high"}
    ],
    "section_analysis": [
        {"section": "KPIs", "score": 55, "status": "needs_improvement", "findings": ["No baselines"]}
    ],
    "smart_kpi_analysis": {
        "total_kpis": 1,
        "smart_compliant": 0,
        "issues": ["Missing baseline"],
    },
    "quick_wins": ["Add KPI baselines"],
    "strategic_recommendations": [
        {"title": "Measurement office", "description": "Create one", "impact": "high", "effort": "medium"}
    ],
}


def _mock_openai(content: str):
    mock_message = MagicMock()
    mock_message.content = content
    mock_choice = MagicMock()
    mock_choice.message = mock_message
    mock_response = MagicMock()
    mock_response.choices = [mock_choice]

    mock_completions = MagicMock()
    mock_completions.create = AsyncMock(return_value=mock_response)
    mock_chat = MagicMock()
    mock_chat.completions = mock_completions
    mock_client_instance = AsyncMock()
    mock_client_instance.chat = mock_chat
    return mock_client_instance, mock_completions.create


@pytest.mark.asyncio
async def test_plan_analysis_agent():
    mock_client_instance, create = _mock_openai(json.dumps(ANALYSIS))

    with patch("app.agent.llm_client.AsyncOpenAI", return_value=mock_client_instance):
        with patch("app.agent.llm_client.settings.LLM_API_KEY", "dummy_key"):
            analysis = await PlanAnalysisAgent().run(
                PlanAnalysisRequest(plan_data={"name_en": "Plan"}, language="en")
            )

    assert isinstance(analysis, PlanAnalysis)
    assert analysis.executive_summary.grade == "B"
    assert analysis.critical_gaps[0].priority == "high"
    create.assert_called_once()


@pytest.mark.asyncio
async def test_plan_analysis_agent_requires_sections():
    mock_client_instance, _ = _mock_openai(json.dumps({**ANALYSIS, "section_analysis": []}))

    with patch("app.agent.llm_client.AsyncOpenAI", return_value=mock_client_instance):
        with patch("app.agent.llm_client.settings.LLM_API_KEY", "dummy_key"):
            with pytest.raises(ValueError, match="no section analysis"):
                await PlanAnalysisAgent().run(PlanAnalysisRequest(plan_data={}))
