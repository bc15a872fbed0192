import json
import logging
import re
from typing import Any, TypeVar

from openai import APIConnectionError, APIStatusError, AsyncOpenAI
from pydantic import BaseModel, ValidationError

from app.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

UserContent = str | list[dict[str, Any]]

GATEWAY_ERROR_MESSAGES = {
    429: "Rate limit exceeded. Please try again later.",
    402: "AI credits exhausted. Please add more credits.",
}


class AIGatewayError(Exception):
    """The LLM gateway refused or failed a request; ``status_code`` is what the API should answer with."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message)


def _extract_fenced_block(text: str) -> str | None:
    blocks = re.findall(r"```(?:json)?\s*(.*?)\s*```", text, re.DOTALL | re.IGNORECASE)
    return blocks[0].strip() if blocks else None


def _extract_balanced_json_span(text: str) -> str | None:
    """Best-effort extraction of the first balanced top-level JSON object/array."""
    if not text:
        return None

    starts = []
    first_obj = text.find("{")
    first_arr = text.find("[")
    if first_obj != -1:
        starts.append((first_obj, "{", "}"))
    if first_arr != -1:
        starts.append((first_arr, "[", "]"))
    if not starts:
        return None

    start_idx, open_ch, close_ch = min(starts, key=lambda x: x[0])
    depth = 0
    in_string = False
    escape = False
    for i in range(start_idx, len(text)):
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return text[start_idx:i + 1]
    return None


def _structured_text_candidates(raw_text: str) -> list[str]:
    text = (raw_text or "").strip()
    if not text:
        return []

    candidates: list[str] = []
    fenced = _extract_fenced_block(text)
    if fenced:
        candidates.append(fenced)

    candidates.append(text)

    balanced = _extract_balanced_json_span(text)
    if balanced:
        candidates.append(balanced)

    # Remove leading "json" token some models emit before the object.
    if text.lower().startswith("json"):
        trimmed = text[4:].lstrip(": \n\r\t")
        if trimmed:
            candidates.append(trimmed)
            balanced_trimmed = _extract_balanced_json_span(trimmed)
            if balanced_trimmed:
                candidates.append(balanced_trimmed)

    seen = set()
    unique: list[str] = []
    for candidate in candidates:
        c = candidate.strip()
        if not c or c in seen:
            continue
        seen.add(c)
        unique.append(c)
    return unique


def _gateway_error(exc: Exception) -> AIGatewayError:
    if isinstance(exc, APIStatusError):
        status = exc.status_code
        message = GATEWAY_ERROR_MESSAGES.get(status, f"AI gateway error: {status}")
        return AIGatewayError(status if status in GATEWAY_ERROR_MESSAGES else 502, message)
    return AIGatewayError(502, "Failed to contact the AI gateway.")


class LLMClient:
    """Client for the OpenAI-compatible LLM gateway with JSON-only structured generation."""

    def __init__(
        self,
        model_name: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
    ):
        self.model_name = model_name or settings.MODEL_DEFAULT

        resolved_api_key = api_key or settings.LLM_API_KEY
        if not resolved_api_key:
            raise AIGatewayError(500, "LLM_API_KEY is not configured")

        self.client = AsyncOpenAI(
            base_url=base_url or settings.LLM_BASE_URL,
            api_key=resolved_api_key,
        )

    def _chat_completion_kwargs(self, *, temperature: float | None) -> dict:
        """Build provider/model-compatible kwargs for chat completions."""
        model_name = (self.model_name or "").lower()
        # GPT-5 family rejects non-default temperature values in some OpenAI endpoints.
        if model_name.startswith("gpt-5"):
            return {}
        if temperature is None:
            return {}
        return {"temperature": temperature}

    async def _complete(self, system_prompt: str, user_content: UserContent, temperature: float) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                **self._chat_completion_kwargs(temperature=temperature),
            )
        except (APIStatusError, APIConnectionError) as e:
            error = _gateway_error(e)
            logger.error("AI gateway error from %s: %s", self.model_name, e)
            raise error from e

        if getattr(response, "choices", None) is None:
            logger.error("Received invalid response structure from %s: %s", self.model_name, response)
            raise ValueError(f"Provider {self.model_name} returned an invalid response.")
        if len(response.choices) == 0:
            logger.error("Received 0 choices from %s: %s", self.model_name, response)
            raise ValueError(f"Provider {self.model_name} returned no output.")
        return response.choices[0].message.content or ""

    async def _generate_parsed(
        self,
        system_prompt: str,
        user_content: UserContent,
        expected_schema: dict[str, Any] | None,
        parse: Any,
    ) -> Any:
        augmented_system_prompt = (
            f"{system_prompt}\n\n"
            "CRITICAL: You must respond in ONLY valid JSON. "
            "Do not include markdown code blocks (```json) or any conversational text around the JSON."
        )
        if expected_schema is not None:
            augmented_system_prompt += f"\n\nEXPECTED SCHEMA:\n{json.dumps(expected_schema)}"

        attempt_prompts = [
            augmented_system_prompt,
            (
                f"{augmented_system_prompt}\n\n"
                "RETRY INSTRUCTIONS: Your previous response was invalid or incomplete. "
                "Return ONLY a single JSON object matching the schema. "
                "Do not add any prose, headings, markdown fences, or explanations."
            ),
        ]

        for attempt_idx, system_prompt_attempt in enumerate(attempt_prompts, start=1):
            try:
                logger.info(
                    "Issuing structured request to model %s (attempt %s/%s)...",
                    self.model_name,
                    attempt_idx,
                    len(attempt_prompts),
                )
                text_response = await self._complete(
                    system_prompt_attempt,
                    user_content,
                    temperature=0 if attempt_idx > 1 else 0.2,
                )

                parse_candidates = _structured_text_candidates(text_response)
                if not parse_candidates:
                    raise ValueError("Model returned empty content for structured response")
                parse_errors: list[str] = []
                for candidate in parse_candidates:
                    try:
                        return parse(json.loads(candidate, strict=False))
                    except (json.JSONDecodeError, ValidationError, ValueError) as candidate_error:
                        parse_errors.append(str(candidate_error))
                raise ValueError(
                    "Unable to parse structured response after candidate extraction: "
                    + " | ".join(parse_errors[:3])
                )

            except (json.JSONDecodeError, ValidationError, ValueError) as e:
                if attempt_idx < len(attempt_prompts):
                    logger.warning(
                        "Structured parsing failed for %s on attempt %s/%s: %s. Retrying...",
                        self.model_name,
                        attempt_idx,
                        len(attempt_prompts),
                        e,
                    )
                    continue
                logger.error("Error parsing structured LLM response from %s: %s", self.model_name, e)
                raise

        raise RuntimeError("Structured generation failed without a captured error")

    async def generate_structured(
        self, system_prompt: str, user_prompt: UserContent, response_schema: type[T]
    ) -> T:
        """
        Generate a structured response matching the provided Pydantic schema.
        The schema is injected into the system prompt; the reply is parsed and validated.
        """
        return await self._generate_parsed(
            system_prompt,
            user_prompt,
            response_schema.model_json_schema(),
            response_schema.model_validate,
        )

    async def generate_json(
        self,
        system_prompt: str,
        user_prompt: UserContent,
        json_schema: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Generate a free-form JSON object, optionally constrained by a caller-supplied JSON Schema."""

        def parse(data: Any) -> dict[str, Any]:
            if not isinstance(data, dict):
                raise ValueError("Expected a JSON object")
            return data

        return await self._generate_parsed(system_prompt, user_prompt, json_schema, parse)
