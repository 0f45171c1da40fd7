"""Engine and session factory for the catalog database."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from clearance.core.config import get_settings


def make_engine(database_url: str = None, echo: bool = None):
    settings = get_settings()
    url = database_url or settings.database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(
        url,
        echo=settings.database_echo if echo is None else echo,
        connect_args=connect_args,
    )


def make_session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
