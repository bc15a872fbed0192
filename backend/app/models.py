import uuid
from datetime import date, datetime, timezone
from typing import Any

from pydantic import EmailStr
from sqlalchemy import JSON, Date, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


def get_datetime_utc() -> datetime:
    return datetime.now(timezone.utc)


# Shared properties
class UserBase(SQLModel):
    email: EmailStr = Field(unique=True, index=True, max_length=255)
    is_active: bool = True
    is_superuser: bool = False
    full_name: str | None = Field(default=None, max_length=255)
    municipality_id: uuid.UUID | None = Field(default=None, foreign_key="municipality.id")
    organization_id: uuid.UUID | None = Field(default=None)


# Properties to receive via API on creation
class UserCreate(UserBase):
    password: str = Field(min_length=8, max_length=128)


class UserRegister(SQLModel):
    email: EmailStr = Field(max_length=255)
    password: str = Field(min_length=8, max_length=128)
    full_name: str | None = Field(default=None, max_length=255)


# Properties to receive via API on update, all are optional
class UserUpdate(UserBase):
    email: EmailStr | None = Field(default=None, max_length=255)  # type: ignore
    password: str | None = Field(default=None, min_length=8, max_length=128)


class UserUpdateMe(SQLModel):
    full_name: str | None = Field(default=None, max_length=255)
    email: EmailStr | None = Field(default=None, max_length=255)


# Database model, database table inferred from class name
class User(UserBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    hashed_password: str
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


# Properties to return via API, id is always required
class UserPublic(UserBase):
    id: uuid.UUID
    created_at: datetime | None = None


class UsersPublic(SQLModel):
    data: list[UserPublic]
    count: int


# Generic message
class Message(SQLModel):
    message: str


# JSON payload containing access token
class Token(SQLModel):
    access_token: str
    token_type: str = "bearer"


# Contents of JWT token
class TokenPayload(SQLModel):
    sub: str | None = None


# Municipalities

class MunicipalityBase(SQLModel):
    name_en: str = Field(min_length=1, max_length=255)
    name_ar: str | None = Field(default=None, max_length=255)
    region: str | None = Field(default=None, max_length=255)
    population: int | None = Field(default=None, ge=0)
    website: str | None = Field(default=None, max_length=500)
    contact_person: str | None = Field(default=None, max_length=255)
    contact_email: str | None = Field(default=None, max_length=255)
    strategic_plan_id: uuid.UUID | None = None
    approved_email_domains: list[str] = Field(default_factory=list, sa_type=JSON)
    is_active: bool = True


class MunicipalityCreate(MunicipalityBase):
    pass


class MunicipalityUpdate(SQLModel):
    name_en: str | None = Field(default=None, min_length=1, max_length=255)
    name_ar: str | None = None
    region: str | None = None
    population: int | None = Field(default=None, ge=0)
    website: str | None = None
    contact_person: str | None = None
    contact_email: str | None = None
    strategic_plan_id: uuid.UUID | None = None
    approved_email_domains: list[str] | None = None
    is_active: bool | None = None


class Municipality(MunicipalityBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    mii_score: float | None = None
    mii_rank: int | None = None
    is_deleted: bool = False
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class MunicipalityPublic(MunicipalityBase):
    id: uuid.UUID
    mii_score: float | None = None
    mii_rank: int | None = None


class MunicipalitiesPublic(SQLModel):
    data: list[MunicipalityPublic]
    count: int


# Challenges

class ChallengeBase(SQLModel):
    code: str | None = Field(default=None, max_length=50)
    title_en: str = Field(min_length=1, max_length=500)
    title_ar: str | None = Field(default=None, max_length=500)
    description_en: str | None = None
    description_ar: str | None = None
    problem_statement_en: str | None = None
    category: str | None = Field(default=None, max_length=100)
    challenge_type: str | None = Field(default=None, max_length=100)
    priority: str = Field(default="tier_2", max_length=20)  # tier_1, tier_2, tier_3
    strategic_goal: str | None = None
    sector: str | None = Field(default=None, max_length=100)
    budget_estimate: float | None = Field(default=None, ge=0)
    municipality_id: uuid.UUID | None = Field(default=None, foreign_key="municipality.id")
    is_published: bool = False


class ChallengeCreate(ChallengeBase):
    submit_for_approval: bool = False


class ChallengeUpdate(SQLModel):
    title_en: str | None = Field(default=None, min_length=1, max_length=500)
    title_ar: str | None = None
    description_en: str | None = None
    description_ar: str | None = None
    problem_statement_en: str | None = None
    category: str | None = None
    challenge_type: str | None = None
    priority: str | None = None
    status: str | None = None
    strategic_goal: str | None = None
    sector: str | None = None
    budget_estimate: float | None = Field(default=None, ge=0)
    is_published: bool | None = None


class Challenge(ChallengeBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    status: str = Field(default="draft", max_length=50)
    escalation_level: int = 0
    created_by: str | None = Field(default=None, max_length=255)
    is_deleted: bool = False
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class ChallengePublic(ChallengeBase):
    id: uuid.UUID
    status: str
    escalation_level: int = 0
    created_by: str | None = None
    created_at: datetime | None = None


class ChallengesPublic(SQLModel):
    data: list[ChallengePublic]
    count: int


# Pilots

class PilotBase(SQLModel):
    code: str | None = Field(default=None, max_length=50)
    title_en: str = Field(min_length=1, max_length=500)
    title_ar: str | None = Field(default=None, max_length=500)
    description_en: str | None = None
    challenge_id: uuid.UUID | None = Field(default=None, foreign_key="challenge.id")
    municipality_id: uuid.UUID | None = Field(default=None, foreign_key="municipality.id")
    sector: str | None = Field(default=None, max_length=100)
    success_probability: float | None = Field(default=None, ge=0, le=100)
    lessons_learned: str | None = None
    budget: float | None = Field(default=None, ge=0)
    is_published: bool = False


class PilotCreate(PilotBase):
    pass


class PilotUpdate(SQLModel):
    title_en: str | None = Field(default=None, min_length=1, max_length=500)
    title_ar: str | None = None
    description_en: str | None = None
    sector: str | None = None
    success_probability: float | None = Field(default=None, ge=0, le=100)
    lessons_learned: str | None = None
    budget: float | None = Field(default=None, ge=0)
    is_published: bool | None = None


class PilotStageUpdate(SQLModel):
    stage: str
    notes: str | None = None


class Pilot(PilotBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    stage: str = Field(default="design", max_length=50)
    created_by: str | None = Field(default=None, max_length=255)
    is_deleted: bool = False
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class PilotPublic(PilotBase):
    id: uuid.UUID
    stage: str
    created_by: str | None = None
    created_at: datetime | None = None


class PilotsPublic(SQLModel):
    data: list[PilotPublic]
    count: int


# Programs

class ProgramBase(SQLModel):
    code: str | None = Field(default=None, max_length=50)
    name_en: str = Field(min_length=1, max_length=500)
    name_ar: str | None = Field(default=None, max_length=500)
    description_en: str | None = None
    program_type: str | None = Field(default=None, max_length=100)
    municipality_id: uuid.UUID | None = Field(default=None, foreign_key="municipality.id")
    budget: float | None = Field(default=None, ge=0)
    start_date: date | None = Field(default=None, sa_type=Date)
    end_date: date | None = Field(default=None, sa_type=Date)
    is_published: bool = False


class ProgramCreate(ProgramBase):
    submit_for_approval: bool = False


class ProgramUpdate(SQLModel):
    name_en: str | None = Field(default=None, min_length=1, max_length=500)
    name_ar: str | None = None
    description_en: str | None = None
    program_type: str | None = None
    budget: float | None = Field(default=None, ge=0)
    status: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    is_published: bool | None = None


class Program(ProgramBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    status: str = Field(default="draft", max_length=50)
    created_by: str | None = Field(default=None, max_length=255)
    is_deleted: bool = False
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class ProgramPublic(ProgramBase):
    id: uuid.UUID
    status: str
    created_by: str | None = None
    created_at: datetime | None = None


class ProgramsPublic(SQLModel):
    data: list[ProgramPublic]
    count: int


# Partnerships

class PartnershipBase(SQLModel):
    name_en: str = Field(min_length=1, max_length=500)
    name_ar: str | None = Field(default=None, max_length=500)
    partnership_type: str | None = Field(default=None, max_length=100)
    status: str = Field(default="active", max_length=50)
    parties: list[dict[str, Any]] = Field(default_factory=list, sa_type=JSON)
    scope_en: str | None = None
    municipality_id: uuid.UUID | None = Field(default=None, foreign_key="municipality.id")
    start_date: date | None = Field(default=None, sa_type=Date)
    end_date: date | None = Field(default=None, sa_type=Date)
    is_published: bool = False


class PartnershipCreate(PartnershipBase):
    pass


class PartnershipUpdate(SQLModel):
    name_en: str | None = Field(default=None, min_length=1, max_length=500)
    name_ar: str | None = None
    partnership_type: str | None = None
    status: str | None = None
    parties: list[dict[str, Any]] | None = None
    scope_en: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    is_published: bool | None = None


class Partnership(PartnershipBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_by: str | None = Field(default=None, max_length=255)
    is_deleted: bool = False
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class PartnershipPublic(PartnershipBase):
    id: uuid.UUID
    created_by: str | None = None
    created_at: datetime | None = None


class PartnershipsPublic(SQLModel):
    data: list[PartnershipPublic]
    count: int


# Publications (case studies)

class CaseStudyBase(SQLModel):
    title_en: str = Field(min_length=1, max_length=500)
    title_ar: str | None = Field(default=None, max_length=500)
    description_en: str | None = None
    results_achieved: str | None = None
    lessons_learned: str | None = None
    entity_type: str | None = Field(default=None, max_length=50)
    entity_id: uuid.UUID | None = None
    municipality_id: uuid.UUID | None = Field(default=None, foreign_key="municipality.id")
    tags: list[str] = Field(default_factory=list, sa_type=JSON)
    is_featured: bool = False
    is_published: bool = False


class CaseStudyCreate(CaseStudyBase):
    pass


class CaseStudyUpdate(SQLModel):
    title_en: str | None = Field(default=None, min_length=1, max_length=500)
    title_ar: str | None = None
    description_en: str | None = None
    results_achieved: str | None = None
    lessons_learned: str | None = None
    tags: list[str] | None = None
    is_featured: bool | None = None
    is_published: bool | None = None


class CaseStudy(CaseStudyBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_by: str | None = Field(default=None, max_length=255)
    is_deleted: bool = False
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class CaseStudyPublic(CaseStudyBase):
    id: uuid.UUID
    created_by: str | None = None
    created_at: datetime | None = None


class CaseStudiesPublic(SQLModel):
    data: list[CaseStudyPublic]
    count: int


# Strategic plans

class StrategicPlanBase(SQLModel):
    name_en: str = Field(min_length=1, max_length=500)
    name_ar: str | None = Field(default=None, max_length=500)
    description_en: str | None = None
    vision_en: str | None = None
    vision_ar: str | None = None
    mission_en: str | None = None
    mission_ar: str | None = None
    start_year: int | None = None
    end_year: int | None = None
    status: str = Field(default="draft", max_length=50)
    municipality_id: uuid.UUID | None = Field(default=None, foreign_key="municipality.id")
    objectives: list[dict[str, Any]] = Field(default_factory=list, sa_type=JSON)
    kpis: list[dict[str, Any]] = Field(default_factory=list, sa_type=JSON)
    is_published: bool = False


class StrategicPlanCreate(StrategicPlanBase):
    pass


class StrategicPlanUpdate(SQLModel):
    name_en: str | None = Field(default=None, min_length=1, max_length=500)
    name_ar: str | None = None
    description_en: str | None = None
    vision_en: str | None = None
    vision_ar: str | None = None
    mission_en: str | None = None
    mission_ar: str | None = None
    start_year: int | None = None
    end_year: int | None = None
    status: str | None = None
    objectives: list[dict[str, Any]] | None = None
    kpis: list[dict[str, Any]] | None = None
    swot: dict[str, Any] | None = None
    scenarios: dict[str, Any] | None = None
    is_published: bool | None = None


class StrategicPlan(StrategicPlanBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    swot: dict[str, Any] | None = Field(default=None, sa_type=JSON)
    scenarios: dict[str, Any] | None = Field(default=None, sa_type=JSON)
    analysis: dict[str, Any] | None = Field(default=None, sa_type=JSON)
    created_by: str | None = Field(default=None, max_length=255)
    is_deleted: bool = False
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class StrategicPlanPublic(StrategicPlanBase):
    id: uuid.UUID
    swot: dict[str, Any] | None = None
    scenarios: dict[str, Any] | None = None
    analysis: dict[str, Any] | None = None
    created_by: str | None = None
    created_at: datetime | None = None


class StrategicPlansPublic(SQLModel):
    data: list[StrategicPlanPublic]
    count: int


# Citizen ideas

class CitizenIdeaBase(SQLModel):
    title: str = Field(min_length=1, max_length=500)
    description: str | None = None
    category: str = Field(default="other", max_length=100)
    tags: list[str] = Field(default_factory=list, sa_type=JSON)
    municipality_id: uuid.UUID | None = Field(default=None, foreign_key="municipality.id")


class CitizenIdeaCreate(CitizenIdeaBase):
    submitter_email: EmailStr | None = None
    ai_summary: str | None = None
    impact_score: int | None = Field(default=None, ge=0, le=100)
    feasibility_score: int | None = Field(default=None, ge=0, le=100)


class CitizenIdea(CitizenIdeaBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    status: str = Field(default="submitted", max_length=50)
    user_id: uuid.UUID | None = Field(default=None, foreign_key="user.id")
    submitter_email: str | None = Field(default=None, max_length=255)
    ai_summary: str | None = None
    impact_score: int | None = None
    feasibility_score: int | None = None
    votes_count: int = 0
    converted_challenge_id: uuid.UUID | None = None
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class CitizenIdeaPublic(CitizenIdeaBase):
    id: uuid.UUID
    status: str
    votes_count: int
    ai_summary: str | None = None
    impact_score: int | None = None
    feasibility_score: int | None = None
    converted_challenge_id: uuid.UUID | None = None
    created_at: datetime | None = None


class CitizenVote(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("idea_id", "user_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    idea_id: uuid.UUID = Field(foreign_key="citizenidea.id", nullable=False, ondelete="CASCADE")
    user_id: uuid.UUID = Field(foreign_key="user.id", nullable=False, ondelete="CASCADE")
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


# Notifications and audit trail

class Notification(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID | None = Field(default=None, foreign_key="user.id", index=True)
    user_email: str | None = Field(default=None, max_length=255, index=True)
    type: str = Field(max_length=100)
    title: str | None = Field(default=None, max_length=500)
    message: str | None = None
    entity_type: str | None = Field(default=None, max_length=50)
    entity_id: str | None = Field(default=None, max_length=100)
    details: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    is_read: bool = False
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class NotificationPublic(SQLModel):
    id: uuid.UUID
    type: str
    title: str | None = None
    message: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    details: dict[str, Any] = {}
    is_read: bool
    created_at: datetime | None = None


class NotificationsPublic(SQLModel):
    data: list[NotificationPublic]
    count: int
    unread: int


class AuditLog(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    action: str = Field(max_length=50)
    entity_type: str = Field(max_length=50, index=True)
    entity_id: str | None = Field(default=None, max_length=100, index=True)
    user_email: str | None = Field(default=None, max_length=255)
    old_values: dict[str, Any] | None = Field(default=None, sa_type=JSON)
    new_values: dict[str, Any] | None = Field(default=None, sa_type=JSON)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


# Approval workflow

class ApprovalRequest(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    entity_type: str = Field(max_length=50, index=True)
    entity_id: uuid.UUID = Field(index=True)
    request_type: str = Field(max_length=100)
    gate_name: str = Field(max_length=100)
    requester_email: str | None = Field(default=None, max_length=255)
    approver_email: str | None = Field(default=None, max_length=255)
    approval_status: str = Field(default="pending", max_length=50)
    priority: str | None = Field(default=None, max_length=20)
    sla_due_date: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))  # type: ignore
    escalation_level: int = 0
    rejection_reason: str | None = None
    details: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    approved_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))  # type: ignore
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class ApprovalRequestPublic(SQLModel):
    id: uuid.UUID
    entity_type: str
    entity_id: uuid.UUID
    request_type: str
    gate_name: str
    requester_email: str | None = None
    approver_email: str | None = None
    approval_status: str
    priority: str | None = None
    sla_due_date: datetime | None = None
    escalation_level: int = 0
    rejection_reason: str | None = None
    is_overdue: bool = False


class ApprovalDecision(SQLModel):
    approved: bool
    reason: str | None = None


# Roles and access control

class Role(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(max_length=255)
    code: str = Field(unique=True, index=True, max_length=100)
    description: str | None = None
    is_active: bool = True


class UserRole(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID | None = Field(default=None, index=True)
    user_email: str | None = Field(default=None, max_length=255, index=True)
    role: str = Field(max_length=100)
    role_id: uuid.UUID | None = Field(default=None, foreign_key="role.id")
    organization_id: uuid.UUID | None = None
    municipality_id: uuid.UUID | None = None
    is_active: bool = True
    assigned_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    revoked_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))  # type: ignore
    last_activity: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))  # type: ignore


class RoleRequestCreate(SQLModel):
    requested_role: str = Field(min_length=1, max_length=100)
    justification: str | None = None
    municipality_id: uuid.UUID | None = None
    organization_id: uuid.UUID | None = None
    language: str = "en"


class RoleRequest(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID | None = Field(default=None, foreign_key="user.id")
    user_email: str = Field(max_length=255)
    requested_role: str = Field(max_length=100)
    justification: str | None = None
    municipality_id: uuid.UUID | None = None
    organization_id: uuid.UUID | None = None
    status: str = Field(default="pending", max_length=50)
    reviewed_by: str | None = Field(default=None, max_length=255)
    reviewed_date: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))  # type: ignore
    rejection_reason: str | None = None
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class AutoApprovalRule(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    persona_type: str = Field(max_length=100, index=True)
    rule_type: str = Field(max_length=50)  # always, never, email_domain, organization, institution
    rule_value: str | None = Field(default=None, max_length=255)
    municipality_id: uuid.UUID | None = None
    organization_id: uuid.UUID | None = None
    role_to_assign: str = Field(max_length=100)
    priority: int = 0
    is_active: bool = True


class DelegationRule(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    delegator_email: str = Field(max_length=255)
    delegate_email: str = Field(max_length=255, index=True)
    permission_types: list[str] = Field(default_factory=list, sa_type=JSON)
    start_date: datetime = Field(sa_type=DateTime(timezone=True))  # type: ignore
    end_date: datetime = Field(sa_type=DateTime(timezone=True))  # type: ignore
    is_active: bool = False
    approval_status: str = Field(default="pending", max_length=50)
    approved_by: str | None = Field(default=None, max_length=255)
    approval_date: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))  # type: ignore
    reason: str | None = None
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class RBACRequest(SQLModel):
    action: str
    payload: dict[str, Any] = {}


# Municipal Innovation Index

class MIIResult(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("municipality_id", "assessment_year"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    municipality_id: uuid.UUID = Field(foreign_key="municipality.id", nullable=False, ondelete="CASCADE")
    assessment_year: int
    overall_score: int
    dimension_scores: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    strengths: list[str] = Field(default_factory=list, sa_type=JSON)
    improvement_areas: list[str] = Field(default_factory=list, sa_type=JSON)
    trend: str = Field(default="stable", max_length=20)
    rank: int | None = None
    previous_rank: int | None = None
    assessment_date: date | None = Field(default=None, sa_type=Date)
    is_published: bool = True
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class MIICalculateRequest(SQLModel):
    municipality_id: uuid.UUID | None = None
    calculate_all: bool = False


# AI response cache and rate limiting

class AIResponseCache(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    cache_key: str = Field(unique=True, index=True, max_length=64)
    endpoint: str = Field(max_length=100)
    model: str | None = Field(default=None, max_length=255)
    response: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    hit_count: int = 0
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    expires_at: datetime = Field(sa_type=DateTime(timezone=True))  # type: ignore


class AIRateLimit(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("key", "window_bucket"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    key: str = Field(max_length=255, index=True)
    window_bucket: int
    request_count: int = 0


# File extraction payload
class FileExtractionRequest(SQLModel):
    file_url: str | None = None
    file_content: str | None = None  # base64, optionally as a data URL
    file_name: str | None = None
    file_type: str | None = None
    json_schema: dict[str, Any] | None = None
