import pytest
from sqlmodel import Session, select

from app.mii import (
    MunicipalityActivity,
    NoMunicipalitiesFound,
    calculate_mii,
    determine_trend,
    round_half_up,
    score_dimensions,
    strengths_and_improvements,
)
from app.models import Challenge, MIIResult, Municipality, Pilot


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(2.49) == 2


def test_empty_activity_scores():
    scores = score_dimensions(MunicipalityActivity())

    assert scores["LEADERSHIP"]["score"] == 9
    assert scores["CULTURE"]["score"] == 15
    assert scores["PARTNERSHIPS"]["score"] == 9
    assert scores["CAPABILITIES"]["score"] == 12
    assert scores["LEADERSHIP"]["indicators"]["strategic_alignment"] == 30
    assert scores["STRATEGY"]["indicators"]["strategic_planning"] == 40


def test_empty_activity_strengths_and_improvements():
    strengths, improvements = strengths_and_improvements(score_dimensions(MunicipalityActivity()))

    assert strengths == ["Clear innovation strategy", "High impact outcomes"]
    # LEADERSHIP and PARTNERSHIPS tie at the bottom and keep dimension order
    assert improvements == ["Strengthen leadership engagement", "Build more partnerships"]


def test_pilots_raise_engagement_and_capabilities():
    pilots = [Pilot(title_en=f"Pilot {i}", stage="active") for i in range(4)]
    scores = score_dimensions(MunicipalityActivity(pilots=pilots))

    assert scores["LEADERSHIP"]["indicators"]["active_engagement"] == 60
    assert scores["CAPABILITIES"]["indicators"]["execution_capacity"] == 100


def test_trend():
    assert determine_trend(50, None) == "up"
    assert determine_trend(50, 49) == "stable"
    assert determine_trend(50, 52) == "stable"
    assert determine_trend(50, 53) == "down"
    assert determine_trend(0, None) == "stable"


def test_calculate_mii_without_municipalities(session: Session):
    with pytest.raises(NoMunicipalitiesFound):
        calculate_mii(session)


def test_calculate_mii_ranks_all_municipalities(session: Session):
    busy = Municipality(name_en="Busy", website="https://busy.example", contact_person="Ali")
    quiet = Municipality(name_en="Quiet")
    session.add(busy)
    session.add(quiet)
    session.commit()
    for i in range(3):
        session.add(Challenge(title_en=f"Challenge {i}", municipality_id=busy.id, strategic_goal="g"))
        session.add(Pilot(title_en=f"Pilot {i}", municipality_id=busy.id, stage="active"))
    session.commit()

    result = calculate_mii(session, calculate_all=True, year=2025)

    assert result["success"] is True
    assert result["message"] == "Calculated MII for 2 municipalities"
    rows = session.exec(
        select(MIIResult).where(MIIResult.assessment_year == 2025).order_by(MIIResult.rank)
    ).all()
    assert [r.municipality_id for r in rows] == [busy.id, quiet.id]
    assert [r.rank for r in rows] == [1, 2]
    assert rows[0].overall_score > rows[1].overall_score

    session.refresh(busy)
    assert busy.mii_rank == 1
    assert busy.mii_score == rows[0].overall_score


def test_recalculation_updates_existing_result(session: Session):
    municipality = Municipality(name_en="Abha")
    session.add(municipality)
    session.commit()

    calculate_mii(session, municipality_id=municipality.id, year=2025)
    calculate_mii(session, municipality_id=municipality.id, year=2025)

    rows = session.exec(
        select(MIIResult).where(MIIResult.municipality_id == municipality.id)
    ).all()
    assert len(rows) == 1


def test_trend_compares_against_previous_year(session: Session):
    municipality = Municipality(name_en="Tabuk")
    session.add(municipality)
    session.add(
        MIIResult(municipality_id=municipality.id, assessment_year=2024, overall_score=90)
    )
    session.commit()

    result = calculate_mii(session, municipality_id=municipality.id, year=2025)

    assert result["results"][0]["trend"] == "down"
