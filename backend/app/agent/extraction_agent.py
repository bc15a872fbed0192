import json

from app.agent.artifacts import ExtractionInput, ExtractionResult
from app.agent.base import BaseAgent
from app.agent.llm_client import UserContent
from app.agent.prompts.extraction import (
    EXTRACTION_FILE_PROMPT,
    EXTRACTION_SCHEMA_PROMPT,
    EXTRACTION_SYSTEM_PROMPT,
    EXTRACTION_TEXT_PROMPT,
)
from app.core.config import settings


class ExtractionAgent(BaseAgent[ExtractionInput, ExtractionResult]):
    """
    Extracts tabular data from file content the local parsers could not handle.
    Text goes into the prompt; images and scanned PDFs go in as a data-URL content part.
    """

    endpoint = "extract-file-data"

    def __init__(self, model_name: str | None = None):
        super().__init__(model_name=model_name or settings.MODEL_EXTRACTION)

    def build_prompts(self, input_data: ExtractionInput) -> tuple[str, UserContent]:
        content = input_data.text or ""
        if input_data.json_schema is not None:
            text = EXTRACTION_SCHEMA_PROMPT.format(
                schema=json.dumps(input_data.json_schema, indent=2),
                file_name=input_data.file_name,
                content=content,
            )
        elif input_data.data_url:
            text = EXTRACTION_FILE_PROMPT.format(file_name=input_data.file_name)
        else:
            text = EXTRACTION_TEXT_PROMPT.format(file_name=input_data.file_name, content=content)

        if not input_data.data_url:
            return EXTRACTION_SYSTEM_PROMPT, text
        return EXTRACTION_SYSTEM_PROMPT, [
            {"type": "text", "text": text},
            {"type": "image_url", "image_url": {"url": input_data.data_url}},
        ]

    async def run(self, input_data: ExtractionInput) -> ExtractionResult:
        if not input_data.text and not input_data.data_url:
            raise ValueError("No file content or URL provided")

        system_prompt, user_prompt = self.build_prompts(input_data)
        if input_data.json_schema is not None:
            data = await self.llm.generate_json(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                json_schema=input_data.json_schema,
            )
            return ExtractionResult.model_validate(data)

        return await self.llm.generate_structured(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            response_schema=ExtractionResult,
        )
