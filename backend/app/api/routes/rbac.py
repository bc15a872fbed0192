from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from sqlmodel import col, select

from app import rbac
from app.api.deps import CurrentUser, CurrentVisibility, SessionDep
from app.models import RBACRequest, RoleRequest, RoleRequestCreate
from app.visibility import VisibilityScope

router = APIRouter(tags=["rbac"])

# Actions any signed-in user may run about themselves
SELF_SERVICE_ACTIONS = {"role.get_user_roles", "role.check_auto_approve", "permission.validate"}


@router.post("/rbac")
def rbac_action(session: SessionDep, ctx: CurrentVisibility, body: RBACRequest) -> Any:
    """Single entry point for role, permission, delegation and audit actions."""
    payload = dict(body.payload)
    if ctx.scope != VisibilityScope.NATIONAL:
        if body.action not in SELF_SERVICE_ACTIONS:
            raise HTTPException(status_code=403, detail="Not enough permissions")
        payload["user_email"] = ctx.user_email
        payload["user_id"] = str(ctx.user_id)

    try:
        return rbac.dispatch(session, body.action, payload)
    except rbac.UnknownAction as e:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": str(e), "available_actions": e.available_actions},
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/role-requests", response_model=RoleRequest)
def create_role_request(
    session: SessionDep, current_user: CurrentUser, request_in: RoleRequestCreate
) -> Any:
    pending = session.exec(
        select(RoleRequest).where(
            RoleRequest.user_email == current_user.email,
            RoleRequest.requested_role == request_in.requested_role,
            RoleRequest.status == "pending",
        )
    ).first()
    if pending:
        raise HTTPException(status_code=400, detail="A request for this role is already pending")
    return rbac.submit_role_request(session, current_user, request_in)


@router.get("/role-requests/mine", response_model=list[RoleRequest])
def read_my_role_requests(session: SessionDep, current_user: CurrentUser) -> Any:
    statement = (
        select(RoleRequest)
        .where(RoleRequest.user_email == current_user.email)
        .order_by(col(RoleRequest.created_at).desc())
    )
    return session.exec(statement).all()
