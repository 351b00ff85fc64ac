from sqlmodel import Session, SQLModel, create_engine

from courier_dispatch.core.config import settings

connect_args = {}
if settings.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.SQLALCHEMY_DATABASE_URI,
    echo=settings.SQLALCHEMY_ECHO,
    connect_args=connect_args,
)


def init_db(session: Session) -> None:
    # Tables are created from the SQLModel metadata; models must be imported first
    from courier_dispatch import models  # noqa: F401

    SQLModel.metadata.create_all(session.get_bind())
