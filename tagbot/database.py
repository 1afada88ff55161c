from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine, text

import tagbot.models  # noqa: F401  registers tables on SQLModel.metadata


def build_engine(database_url: str, echo: bool = False) -> Engine:
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)
    return create_engine(database_url, echo=echo)


def create_db_and_tables(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)


def ping(engine: Engine) -> bool:
    with Session(engine) as session:
        session.execute(text("SELECT 1"))
    return True
