import uuid

from sqlmodel import Session, select

from app.models import Challenge, Municipality, User, UserRole
from app.tests.conftest import make_user
from app.visibility import (
    VisibilityContext,
    VisibilityScope,
    anonymous_context,
    apply_visibility,
    can_edit,
    is_visible,
    resolve_visibility,
)


def _titles(session: Session, ctx: VisibilityContext) -> set[str]:
    rows = session.exec(apply_visibility(select(Challenge), Challenge, ctx)).all()
    return {row.title_en for row in rows}


def _seed(session: Session, mine: Municipality, other: Municipality) -> None:
    session.add(Challenge(title_en="own draft", municipality_id=mine.id))
    session.add(Challenge(title_en="foreign draft", municipality_id=other.id))
    session.add(Challenge(title_en="foreign published", municipality_id=other.id, is_published=True))
    session.add(Challenge(title_en="my idea", municipality_id=other.id, created_by="citizen@example.com"))
    session.add(
        Challenge(title_en="deleted", municipality_id=mine.id, is_published=True, is_deleted=True)
    )
    session.commit()


def test_resolve_anonymous(session: Session):
    first = resolve_visibility(session, None)
    assert first.scope == VisibilityScope.GLOBAL
    assert not first.is_authenticated

    # Each request gets its own context; nothing leaks between them.
    first.roles.append("admin")
    assert resolve_visibility(session, None).roles == []


def test_resolve_superuser_is_national(session: Session, superuser: User):
    assert resolve_visibility(session, superuser).scope == VisibilityScope.NATIONAL


def test_resolve_deputyship_role_is_national(session: Session):
    user = make_user(session, "deputy@momrah.gov.sa")
    session.add(UserRole(user_email=user.email, role="deputyship_staff"))
    session.commit()

    ctx = resolve_visibility(session, user)

    assert ctx.scope == VisibilityScope.NATIONAL
    assert ctx.roles == ["deputyship_staff"]


def test_resolve_municipal(session: Session, staff_user: User, municipality: Municipality):
    ctx = resolve_visibility(session, staff_user)

    assert ctx.scope == VisibilityScope.MUNICIPAL
    assert ctx.municipality_id == municipality.id


def test_municipal_role_without_municipality_falls_back_to_global(session: Session):
    user = make_user(session, "orphan@example.com")
    session.add(UserRole(user_id=user.id, role="municipality_staff"))
    session.commit()

    assert resolve_visibility(session, user).scope == VisibilityScope.GLOBAL


def test_revoked_roles_are_ignored(session: Session):
    user = make_user(session, "former@example.com")
    session.add(UserRole(user_id=user.id, role="admin", is_active=False))
    session.commit()

    assert resolve_visibility(session, user).scope == VisibilityScope.GLOBAL


def test_apply_visibility_by_scope(
    session: Session, municipality: Municipality, other_municipality: Municipality
):
    _seed(session, municipality, other_municipality)

    national = VisibilityContext(scope=VisibilityScope.NATIONAL, user_id=uuid.uuid4())
    municipal = VisibilityContext(
        scope=VisibilityScope.MUNICIPAL,
        user_id=uuid.uuid4(),
        user_email="staff@riyadh.gov.sa",
        municipality_id=municipality.id,
    )
    citizen = VisibilityContext(
        scope=VisibilityScope.GLOBAL, user_id=uuid.uuid4(), user_email="citizen@example.com"
    )

    assert _titles(session, national) == {"own draft", "foreign draft", "foreign published", "my idea"}
    assert _titles(session, municipal) == {"own draft", "foreign published"}
    assert _titles(session, citizen) == {"foreign published", "my idea"}
    assert _titles(session, anonymous_context()) == {"foreign published"}


def test_municipality_directory_is_public(session: Session, municipality: Municipality):
    rows = session.exec(apply_visibility(select(Municipality), Municipality, anonymous_context())).all()
    assert [row.id for row in rows] == [municipality.id]


def test_is_visible_matches_query_rules(municipality: Municipality):
    draft = Challenge(title_en="draft", municipality_id=municipality.id)
    municipal = VisibilityContext(
        scope=VisibilityScope.MUNICIPAL, user_id=uuid.uuid4(), municipality_id=municipality.id
    )

    assert is_visible(municipal, draft)
    assert not is_visible(anonymous_context(), draft)
    draft.is_published = True
    assert is_visible(anonymous_context(), draft)
    draft.is_deleted = True
    assert not is_visible(municipal, draft)


def test_can_edit(municipality: Municipality, other_municipality: Municipality):
    row = Challenge(title_en="x", municipality_id=municipality.id, created_by="c@example.com")
    own_staff = VisibilityContext(
        scope=VisibilityScope.MUNICIPAL, user_id=uuid.uuid4(), municipality_id=municipality.id
    )
    other_staff = VisibilityContext(
        scope=VisibilityScope.MUNICIPAL, user_id=uuid.uuid4(), municipality_id=other_municipality.id
    )
    creator = VisibilityContext(
        scope=VisibilityScope.GLOBAL, user_id=uuid.uuid4(), user_email="c@example.com"
    )

    assert can_edit(own_staff, row)
    assert not can_edit(other_staff, row)
    assert can_edit(creator, row)
    assert not can_edit(anonymous_context(), row)
