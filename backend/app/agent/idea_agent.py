from app.agent.artifacts import IdeaAnalysis, IdeaInput
from app.agent.base import BaseAgent
from app.agent.prompts.idea import IDEA_CATEGORIES, IDEA_SYSTEM_PROMPT, IDEA_USER_PROMPT

LANGUAGE_NAMES = {"en": "English", "ar": "Arabic"}


class IdeaAnalysisAgent(BaseAgent[IdeaInput, IdeaAnalysis]):
    """Turns a raw citizen idea into a categorised bilingual record."""

    endpoint = "public-idea-ai"

    def build_prompts(self, input_data: IdeaInput) -> tuple[str, str]:
        return IDEA_SYSTEM_PROMPT, IDEA_USER_PROMPT.format(
            language_name=LANGUAGE_NAMES[input_data.language],
            title=input_data.title.strip(),
            description=input_data.description.strip(),
            municipality=input_data.municipality_name or "Not specified",
        )

    async def run(self, input_data: IdeaInput) -> IdeaAnalysis:
        system_prompt, user_prompt = self.build_prompts(input_data)
        analysis = await self.llm.generate_structured(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            response_schema=IdeaAnalysis,
        )

        category = analysis.category.strip().lower().replace(" ", "_")
        analysis.category = category if category in IDEA_CATEGORIES else "other"
        analysis.tags_en = [tag.strip().lower() for tag in analysis.tags_en if tag.strip()][:6]
        return analysis
