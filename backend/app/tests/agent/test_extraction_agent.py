import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.agent.artifacts import ExtractionInput, ExtractionResult
from app.agent.extraction_agent import ExtractionAgent


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
async def test_extraction_agent_from_text():
    content = json.dumps({"headers": ["KPI", "Target"], "rows": [{"KPI": "Permits", "Target": "90%"}]})
    mock_client_instance, create = _mock_openai(content)

    with patch("app.agent.llm_client.AsyncOpenAI", return_value=mock_client_instance):
        with patch("app.agent.llm_client.settings.LLM_API_KEY", "dummy_key"):
            result = await ExtractionAgent().run(
                ExtractionInput(file_name="kpis.txt", text="KPI: Permits, Target: 90%")
            )

    assert isinstance(result, ExtractionResult)
    assert result.rows == [{"KPI": "Permits", "Target": "90%"}]
    user_prompt = create.call_args.kwargs["messages"][1]["content"]
    assert isinstance(user_prompt, str)
    assert "KPI: Permits, Target: 90%" in user_prompt


@pytest.mark.asyncio
async def test_extraction_agent_sends_images_as_content_parts():
    mock_client_instance, create = _mock_openai(json.dumps({"headers": [], "rows": []}))
    data_url = "data:image/png;base64,iVBORw0KGgo="

    with patch("app.agent.llm_client.AsyncOpenAI", return_value=mock_client_instance):
        with patch("app.agent.llm_client.settings.LLM_API_KEY", "dummy_key"):
            await ExtractionAgent().run(ExtractionInput(file_name="scan.png", data_url=data_url))

    user_prompt = create.call_args.kwargs["messages"][1]["content"]
    assert user_prompt[0]["type"] == "text"
    assert user_prompt[1] == {"type": "image_url", "image_url": {"url": data_url}}


@pytest.mark.asyncio
async def test_extraction_agent_keeps_custom_schema_shape():
    schema = {"type": "object", "properties": {"objectives": {"type": "array"}}}
    mock_client_instance, create = _mock_openai(json.dumps({"objectives": [{"name": "Digitise permits"}]}))

    with patch("app.agent.llm_client.AsyncOpenAI", return_value=mock_client_instance):
        with patch("app.agent.llm_client.settings.LLM_API_KEY", "dummy_key"):
            result = await ExtractionAgent().run(
                ExtractionInput(file_name="plan.txt", text="Objective: Digitise permits", json_schema=schema)
            )

    assert result.model_dump()["objectives"] == [{"name": "Digitise permits"}]
    system_prompt = create.call_args.kwargs["messages"][0]["content"]
    assert json.dumps(schema) in system_prompt


@pytest.mark.asyncio
async def test_extraction_agent_needs_content():
    with patch("app.agent.llm_client.AsyncOpenAI"):
        with patch("app.agent.llm_client.settings.LLM_API_KEY", "dummy_key"):
            with pytest.raises(ValueError, match="No file content or URL provided"):
                await ExtractionAgent().run(ExtractionInput(file_name="empty.txt"))


def test_extraction_model_override():
    with patch("app.agent.llm_client.AsyncOpenAI"):
        with patch("app.agent.llm_client.settings.LLM_API_KEY", "dummy_key"):
            with patch("app.agent.extraction_agent.settings.MODEL_EXTRACTION", "vision-model"):
                assert ExtractionAgent().model_name == "vision-model"
