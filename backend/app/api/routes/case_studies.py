import uuid
from typing import Any

from fastapi import APIRouter

from app import audit, crud
from app.api.deps import CurrentVisibility, SessionDep, VisibilityDep
from app.api.helpers import (
    get_editable_or_403,
    get_visible_or_404,
    list_visible,
    municipality_defaults,
)
from app.models import (
    Message,
    CaseStudy,
    CaseStudyCreate,
    CaseStudyPublic,
    CaseStudiesPublic,
    CaseStudyUpdate,
)

router = APIRouter(prefix="/case-studies", tags=["case-studies"])


@router.get("/", response_model=CaseStudiesPublic)
def read_case_studies(session: SessionDep, ctx: VisibilityDep, skip: int = 0, limit: int = 100) -> Any:
    rows, count = list_visible(session, CaseStudy, ctx, skip=skip, limit=limit)
    return CaseStudiesPublic(data=rows, count=count)


@router.get("/{id}", response_model=CaseStudyPublic)
def read_case_study(session: SessionDep, ctx: VisibilityDep, id: uuid.UUID) -> Any:
    return get_visible_or_404(session, CaseStudy, id, ctx, "Case study")


@router.post("/", response_model=CaseStudyPublic)
def create_case_study(*, session: SessionDep, ctx: CurrentVisibility, case_study_in: CaseStudyCreate) -> Any:
    case_study = crud.create_entity(
        session=session,
        model=CaseStudy,
        obj_in=case_study_in,
        created_by=ctx.user_email,
        extra=municipality_defaults(ctx, case_study_in),
    )
    audit.log_crud_operation(session, audit.CREATE, "case_study", case_study.id, ctx.user_email, new_values=case_study)
    return case_study


@router.patch("/{id}", response_model=CaseStudyPublic)
def update_case_study(
    *, session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID, case_study_in: CaseStudyUpdate
) -> Any:
    case_study = get_editable_or_403(session, CaseStudy, id, ctx, "Case study")
    old_values = audit.snapshot(case_study)
    case_study = crud.update_entity(session=session, db_obj=case_study, obj_in=case_study_in)
    audit.log_crud_operation(
        session, audit.UPDATE, "case_study", id, ctx.user_email, old_values=old_values, new_values=case_study
    )
    return case_study


@router.delete("/{id}")
def delete_case_study(session: SessionDep, ctx: CurrentVisibility, id: uuid.UUID) -> Message:
    case_study = get_editable_or_403(session, CaseStudy, id, ctx, "Case study")
    crud.soft_delete_entity(session=session, db_obj=case_study)
    audit.log_crud_operation(session, audit.DELETE, "case_study", id, ctx.user_email)
    return Message(message="Case study deleted successfully")
