import logging

from sqlmodel import Session, SQLModel, create_engine, select

from app import crud
from app.core.config import settings
from app.models import Role, User, UserCreate

logger = logging.getLogger(__name__)

engine = create_engine(str(settings.SQLALCHEMY_DATABASE_URI))

# Role catalogue seeded on first start; codes match the UserRole.role values.
DEFAULT_ROLES: dict[str, str] = {
    "admin": "Administrator",
    "municipality_admin": "Municipality Admin",
    "municipality_staff": "Municipality Staff",
    "municipality_coordinator": "Municipality Coordinator",
    "deputyship_admin": "Deputyship Director",
    "deputyship_staff": "Deputyship Staff",
    "provider": "Solution Provider",
    "researcher": "Researcher",
    "expert": "Expert Evaluator",
    "citizen": "Citizen",
    "viewer": "Explorer",
}


# make sure all SQLModel models are imported (app.models) before initializing DB
# otherwise, SQLModel might fail to initialize relationships properly


def init_db(session: Session) -> None:
    # Tables should be created with migrations in deployed environments.
    # For local runs we create them directly.
    if settings.ENVIRONMENT == "local":
        SQLModel.metadata.create_all(engine)

    for code, name in DEFAULT_ROLES.items():
        existing = session.exec(select(Role).where(Role.code == code)).first()
        if not existing:
            session.add(Role(code=code, name=name))
    session.commit()

    user = session.exec(
        select(User).where(User.email == settings.FIRST_SUPERUSER)
    ).first()
    if not user:
        logger.info("Creating first superuser %s", settings.FIRST_SUPERUSER)
        user_in = UserCreate(
            email=settings.FIRST_SUPERUSER,
            password=settings.FIRST_SUPERUSER_PASSWORD,
            is_superuser=True,
        )
        user = crud.create_user(session=session, user_create=user_in)
