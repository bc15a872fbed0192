"""
Municipal Innovation Index (MII) calculation.

Each municipality is scored on six dimensions from the data it already has
on the platform (challenges, pilots, partnerships, case studies and its
profile). Dimension scores are weighted into an overall 0-100 score which is
stored per assessment year and ranked against the other municipalities.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from sqlmodel import Session, col, select

from app.models import (
    CaseStudy,
    Challenge,
    MIIResult,
    Municipality,
    Partnership,
    Pilot,
    get_datetime_utc,
)

logger = logging.getLogger(__name__)

DIMENSION_WEIGHTS: dict[str, float] = {
    "LEADERSHIP": 0.20,
    "STRATEGY": 0.15,
    "CULTURE": 0.15,
    "PARTNERSHIPS": 0.15,
    "CAPABILITIES": 0.15,
    "IMPACT": 0.20,
}

STRENGTH_LABELS: dict[str, str] = {
    "LEADERSHIP": "Strong leadership and governance",
    "STRATEGY": "Clear innovation strategy",
    "CULTURE": "Vibrant innovation culture",
    "PARTNERSHIPS": "Active partnership ecosystem",
    "CAPABILITIES": "Strong execution capabilities",
    "IMPACT": "High impact outcomes",
}

IMPROVEMENT_LABELS: dict[str, str] = {
    "LEADERSHIP": "Strengthen leadership engagement",
    "STRATEGY": "Develop clearer innovation strategy",
    "CULTURE": "Foster innovation culture",
    "PARTNERSHIPS": "Build more partnerships",
    "CAPABILITIES": "Improve execution capabilities",
    "IMPACT": "Focus on pilot completion and impact",
}

DEFAULT_POPULATION = 100000
TREND_THRESHOLD = 2


class NoMunicipalitiesFound(LookupError):
    pass


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class MunicipalityActivity:
    """Raw inputs for one municipality's assessment."""

    population: int | None = None
    website: str | None = None
    contact_person: str | None = None
    contact_email: str | None = None
    strategic_plan_id: Any = None
    challenges: list[Challenge] = field(default_factory=list)
    pilots: list[Pilot] = field(default_factory=list)
    partnerships: list[Partnership] = field(default_factory=list)
    published_case_studies: int = 0


def _weighted(indicators: dict[str, float], weights: list[float]) -> int:
    return round_half_up(sum(v * w for v, w in zip(indicators.values(), weights)))


def score_dimensions(activity: MunicipalityActivity) -> dict[str, dict[str, Any]]:
    challenges = activity.challenges
    pilots = activity.pilots
    challenges_count = len(challenges)
    pilots_count = len(pilots)
    completed = [p for p in pilots if p.stage == "completed"]
    active_pilots = len([p for p in pilots if p.stage in ("active", "monitoring")])
    completed_with_success = [p for p in completed if p.success_probability]
    if completed_with_success:
        avg_success = sum(p.success_probability or 0 for p in completed_with_success) / len(
            completed_with_success
        )
    else:
        avg_success = 50
    partnerships_count = len(activity.partnerships)
    population = activity.population or DEFAULT_POPULATION

    scores: dict[str, dict[str, Any]] = {}

    profile_complete = len(
        [
            v
            for v in (
                activity.contact_person,
                activity.contact_email,
                activity.website,
                activity.strategic_plan_id,
            )
            if v
        ]
    )
    leadership = {
        "profile_completeness": min(100, profile_complete / 4 * 100),
        "active_engagement": min(100, challenges_count * 10 + pilots_count * 15),
        "strategic_alignment": 80 if activity.strategic_plan_id else 30,
    }
    scores["LEADERSHIP"] = {"score": _weighted(leadership, [0.3, 0.4, 0.3]), "indicators": leadership}

    with_strategy = len([c for c in challenges if c.strategic_goal])
    conversion_rate = pilots_count / challenges_count * 100 if challenges_count else 0
    strategy = {
        "strategic_planning": 85 if activity.strategic_plan_id else 40,
        "challenge_to_pilot_conversion": min(100, conversion_rate * 2),
        "strategic_alignment": with_strategy / challenges_count * 100 if challenges_count else 50,
    }
    scores["STRATEGY"] = {"score": _weighted(strategy, [0.4, 0.35, 0.25]), "indicators": strategy}

    pilots_per_capita = pilots_count / population * 100000
    stages = len({p.stage for p in pilots})
    with_lessons = len([p for p in pilots if p.lessons_learned])
    culture = {
        "experimentation_rate": min(100, pilots_per_capita * 20),
        "risk_tolerance": min(100, stages * 20),
        "learning_mindset": with_lessons / pilots_count * 100 if pilots_count else 50,
    }
    scores["CULTURE"] = {"score": _weighted(culture, [0.4, 0.3, 0.3]), "indicators": culture}

    partnership_types = len({p.partnership_type for p in activity.partnerships})
    partnerships = {
        "partnership_count": min(100, partnerships_count * 15),
        "partnership_diversity": min(100, partnership_types * 25),
        "collaboration_score": 70 if partnerships_count else 30,
    }
    scores["PARTNERSHIPS"] = {
        "score": _weighted(partnerships, [0.4, 0.3, 0.3]),
        "indicators": partnerships,
    }

    capabilities = {
        "digital_infrastructure": 75 if activity.website else 40,
        "execution_capacity": min(100, active_pilots * 25),
        "challenge_management": min(100, challenges_count * 12),
    }
    scores["CAPABILITIES"] = {
        "score": _weighted(capabilities, [0.3, 0.4, 0.3]),
        "indicators": capabilities,
    }

    impact = {
        "completed_pilots": min(100, len(completed) * 20),
        "success_rate": min(100, avg_success or 50),
        "knowledge_sharing": min(100, activity.published_case_studies * 25),
    }
    scores["IMPACT"] = {"score": _weighted(impact, [0.4, 0.35, 0.25]), "indicators": impact}

    return scores


def overall_score(dimension_scores: dict[str, dict[str, Any]]) -> int:
    return round_half_up(
        sum(
            dimension_scores.get(dim, {}).get("score", 0) * weight
            for dim, weight in DIMENSION_WEIGHTS.items()
        )
    )


def strengths_and_improvements(
    dimension_scores: dict[str, dict[str, Any]],
) -> tuple[list[str], list[str]]:
    # sorted() is stable, so ties keep the dimension order
    ranked = sorted(dimension_scores.items(), key=lambda item: -item[1]["score"])
    strengths = [STRENGTH_LABELS[dim] for dim, _ in ranked[:2]]
    improvements = [IMPROVEMENT_LABELS[dim] for dim, _ in ranked[-2:]]
    return strengths, improvements


def determine_trend(score: int, previous_score: int | None) -> str:
    previous = previous_score or 0
    if score > previous + TREND_THRESHOLD:
        return "up"
    if score < previous - TREND_THRESHOLD:
        return "down"
    return "stable"


def load_activity(session: Session, municipality: Municipality) -> MunicipalityActivity:
    challenges = session.exec(
        select(Challenge).where(
            Challenge.municipality_id == municipality.id,
            Challenge.is_deleted == False,  # noqa: E712
        )
    ).all()
    pilots = session.exec(
        select(Pilot).where(
            Pilot.municipality_id == municipality.id,
            Pilot.is_deleted == False,  # noqa: E712
        )
    ).all()
    partnerships = session.exec(
        select(Partnership).where(
            Partnership.municipality_id == municipality.id,
            Partnership.status == "active",
            Partnership.is_deleted == False,  # noqa: E712
        )
    ).all()
    case_studies = session.exec(
        select(CaseStudy).where(
            CaseStudy.municipality_id == municipality.id,
            CaseStudy.is_published == True,  # noqa: E712
            CaseStudy.is_deleted == False,  # noqa: E712
        )
    ).all()
    return MunicipalityActivity(
        population=municipality.population,
        website=municipality.website,
        contact_person=municipality.contact_person,
        contact_email=municipality.contact_email,
        strategic_plan_id=municipality.strategic_plan_id,
        challenges=list(challenges),
        pilots=list(pilots),
        partnerships=list(partnerships),
        published_case_studies=len(case_studies),
    )


def _previous_score(session: Session, municipality_id: uuid.UUID, year: int) -> int | None:
    previous = session.exec(
        select(MIIResult)
        .where(
            MIIResult.municipality_id == municipality_id,
            MIIResult.is_published == True,  # noqa: E712
            MIIResult.assessment_year < year,
        )
        .order_by(col(MIIResult.assessment_year).desc())
    ).first()
    return previous.overall_score if previous else None


def _save_result(
    session: Session,
    municipality: Municipality,
    year: int,
    calculation: dict[str, Any],
) -> MIIResult:
    today = date.today()
    existing = session.exec(
        select(MIIResult).where(
            MIIResult.municipality_id == municipality.id,
            MIIResult.assessment_year == year,
        )
    ).first()
    if existing:
        existing.overall_score = calculation["overall_score"]
        existing.dimension_scores = calculation["dimension_scores"]
        existing.strengths = calculation["strengths"]
        existing.improvement_areas = calculation["improvement_areas"]
        existing.trend = calculation["trend"]
        existing.assessment_date = today
        existing.is_published = True
        existing.updated_at = get_datetime_utc()
        result = existing
    else:
        result = MIIResult(
            municipality_id=municipality.id,
            assessment_year=year,
            overall_score=calculation["overall_score"],
            dimension_scores=calculation["dimension_scores"],
            strengths=calculation["strengths"],
            improvement_areas=calculation["improvement_areas"],
            trend=calculation["trend"],
            rank=1,
            previous_rank=municipality.mii_rank,
            assessment_date=today,
            is_published=True,
        )
    session.add(result)
    session.commit()
    session.refresh(result)
    return result


def update_ranks(session: Session, year: int) -> None:
    results = session.exec(
        select(MIIResult)
        .where(
            MIIResult.assessment_year == year,
            MIIResult.is_published == True,  # noqa: E712
        )
        .order_by(col(MIIResult.overall_score).desc())
    ).all()
    for index, result in enumerate(results):
        rank = index + 1
        result.rank = rank
        session.add(result)
        municipality = session.get(Municipality, result.municipality_id)
        if municipality is not None:
            municipality.mii_score = result.overall_score
            municipality.mii_rank = rank
            session.add(municipality)
    session.commit()


def calculate_mii(
    session: Session,
    municipality_id: uuid.UUID | None = None,
    calculate_all: bool = False,
    year: int | None = None,
) -> dict[str, Any]:
    year = year or date.today().year
    logger.info("Starting MII calculation for %s", municipality_id or "ALL")

    statement = select(Municipality).where(Municipality.is_deleted == False)  # noqa: E712
    if municipality_id and not calculate_all:
        statement = statement.where(Municipality.id == municipality_id)
    municipalities = session.exec(statement).all()
    if not municipalities:
        raise NoMunicipalitiesFound("No municipalities found")

    results = []
    for municipality in municipalities:
        activity = load_activity(session, municipality)
        dimension_scores = score_dimensions(activity)
        score = overall_score(dimension_scores)
        strengths, improvements = strengths_and_improvements(dimension_scores)
        trend = determine_trend(score, _previous_score(session, municipality.id, year))
        calculation = {
            "overall_score": score,
            "dimension_scores": dimension_scores,
            "strengths": strengths,
            "improvement_areas": improvements,
            "trend": trend,
        }
        logger.info("MII for %s: score=%s trend=%s", municipality.name_en, score, trend)
        _save_result(session, municipality, year, calculation)
        results.append(
            {
                "municipality_id": str(municipality.id),
                "municipality_name": municipality.name_en,
                **calculation,
            }
        )

    if calculate_all or len(results) > 1:
        logger.info("Updating MII ranks for %s", year)
        update_ranks(session, year)

    logger.info("MII calculation completed for %s municipalities", len(results))
    return {
        "success": True,
        "message": f"Calculated MII for {len(results)} municipalities",
        "results": results,
    }
