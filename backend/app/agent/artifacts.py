from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Priority = Literal["high", "medium", "low"]


# Inputs shared by the strategy generators

class Taxonomy(BaseModel):
    sectors: list[dict[str, Any] | str] = Field(default_factory=list)
    strategic_themes: list[dict[str, Any] | str] = Field(default_factory=list)
    technologies: list[dict[str, Any] | str] = Field(default_factory=list)
    vision_programs: list[dict[str, Any] | str] = Field(default_factory=list)
    risk_categories: list[dict[str, Any] | str] = Field(default_factory=list)


class PlanContext(BaseModel):
    """What the planning wizard knows about a strategic plan so far."""
    plan_name: str | None = None
    plan_name_ar: str | None = None
    vision: str | None = None
    vision_ar: str | None = None
    mission: str | None = None
    mission_ar: str | None = None
    description: str | None = None
    sectors: list[str] = Field(default_factory=list)
    themes: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    vision_2030_programs: list[str] = Field(default_factory=list)
    regions: list[str] = Field(default_factory=list)
    start_year: int | None = None
    end_year: int | None = None
    budget_range: str | None = None
    key_challenges: str | None = None
    available_resources: str | None = None
    initial_constraints: str | None = None
    stakeholders: list[dict[str, Any] | str] = Field(default_factory=list)
    swot: dict[str, Any] | None = Field(default=None, description="Existing SWOT, used by scenario planning")
    pestel: dict[str, Any] | None = None


class StrategyRequest(BaseModel):
    strategic_plan_id: str | None = None
    context: PlanContext = Field(default_factory=PlanContext)
    language: Literal["en", "ar"] = "en"
    taxonomy: Taxonomy | None = None


# SWOT

class SWOTItem(BaseModel):
    text_en: str = Field(description="Description in English (1-2 sentences)")
    text_ar: str = Field(default="", description="Description in formal Arabic")
    priority: Priority = "medium"


class SWOTAnalysis(BaseModel):
    """Artifact produced by the SWOT Agent."""
    strengths: list[SWOTItem] = Field(description="Internal positive factors, 5-7 items")
    weaknesses: list[SWOTItem] = Field(description="Internal negative factors, 5-7 items")
    opportunities: list[SWOTItem] = Field(description="External positive factors, 5-7 items")
    threats: list[SWOTItem] = Field(description="External negative factors, 5-7 items")


# Scenarios

class Assumption(BaseModel):
    text_en: str = ""
    text_ar: str = ""


class Outcome(BaseModel):
    metric_en: str = ""
    metric_ar: str = ""
    value: str = Field(default="", description="Measurable value, e.g. '85%' or '12,000 units'")


class Scenario(BaseModel):
    description_en: str = Field(default="", description="3-4 sentence narrative in English")
    description_ar: str = ""
    assumptions: list[Assumption] = Field(default_factory=list, description="4-5 key assumptions")
    outcomes: list[Outcome] = Field(default_factory=list, description="4-5 expected outcomes")
    probability: float = Field(description="Likelihood percentage; the three scenarios sum to ~100")


class ScenarioSet(BaseModel):
    """Artifact produced by the Scenario Agent."""
    best_case: Scenario
    most_likely: Scenario
    worst_case: Scenario


# Strategic plan analysis

class ExecutiveSummary(BaseModel):
    overall_score: float = Field(ge=0, le=100, description="Overall plan quality score 0-100")
    grade: str = Field(description="Letter grade: A+, A, B+, B, C+, C, D, F")
    verdict: str = Field(description="One sentence verdict on plan quality")
    readiness_level: Literal["ready", "needs_minor_changes", "needs_major_changes", "not_ready"]


class PlanScores(BaseModel):
    completeness: float = Field(description="Score 0-100 for plan completeness")
    coherence: float = Field(description="Score 0-100 for internal consistency and alignment")
    feasibility: float = Field(description="Score 0-100 for realistic execution potential")
    measurability: float = Field(description="Score 0-100 for KPI quality and measurability")
    risk_management: float = Field(description="Score 0-100 for risk identification and mitigation")
    stakeholder_engagement: float = Field(description="Score 0-100 for stakeholder analysis")
    national_alignment: float = Field(description="Score 0-100 for Vision 2030 alignment")
    change_readiness: float = Field(description="Score 0-100 for change management preparedness")


class PlanStrength(BaseModel):
    area: str
    description: str


class CriticalGap(BaseModel):
    area: str
    issue: str
    recommendation: str
    priority: Literal["critical", "high", "medium", "low"]


class SectionAnalysis(BaseModel):
    section: str
    score: float
    status: Literal["excellent", "good", "needs_improvement", "missing"]
    findings: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class SmartKPIAnalysis(BaseModel):
    total_kpis: int
    smart_compliant: int
    issues: list[str] = Field(default_factory=list)


class StrategicRecommendation(BaseModel):
    title: str
    description: str
    impact: Priority
    effort: Priority


class PlanAnalysis(BaseModel):
    """Artifact produced by the Plan Analysis Agent."""
    executive_summary: ExecutiveSummary
    scores: PlanScores
    strengths: list[PlanStrength] = Field(description="Top 3-5 plan strengths")
    critical_gaps: list[CriticalGap] = Field(description="Critical gaps that need addressing")
    section_analysis: list[SectionAnalysis] = Field(description="Detailed analysis per section")
    smart_kpi_analysis: SmartKPIAnalysis
    quick_wins: list[str] = Field(description="3-5 quick improvements that can be made immediately")
    strategic_recommendations: list[StrategicRecommendation]


class PlanAnalysisRequest(BaseModel):
    strategic_plan_id: str | None = None
    plan_data: dict[str, Any] = Field(default_factory=dict, description="Wizard data of the strategic plan")
    language: Literal["en", "ar"] = "en"


# Citizen ideas

class IdeaInput(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: str = Field(min_length=1, max_length=5000)
    municipality_name: str | None = None
    language: Literal["en", "ar"] = "en"


class IdeaAnalysis(BaseModel):
    """Artifact produced by the Idea Analysis Agent."""
    title_en: str
    title_ar: str = ""
    description_en: str
    description_ar: str = ""
    category: str = Field(description="One of the citizen idea categories")
    tags_en: list[str] = Field(default_factory=list, description="3-6 short topic tags")
    impact_score: int = Field(ge=0, le=100, description="Expected public impact 0-100")
    feasibility_score: int = Field(ge=0, le=100, description="Implementation feasibility 0-100")
    ai_summary_en: str = Field(description="Two sentence summary for reviewers")


# File extraction

class ExtractionInput(BaseModel):
    """What the extractor hands to the model: either decoded text or a data URL for vision input."""
    file_name: str = "file"
    text: str | None = None
    data_url: str | None = None
    json_schema: dict[str, Any] | None = None


class ExtractionResult(BaseModel):
    """Tabular data extracted from an uploaded file; schema-driven extractions keep their own keys."""
    model_config = ConfigDict(extra="allow")

    headers: list[str] = Field(default_factory=list, description="Column names")
    rows: list[dict[str, Any]] = Field(default_factory=list, description="One object per row keyed by the headers")
