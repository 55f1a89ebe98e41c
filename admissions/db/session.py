from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker

from admissions.core.config import settings


def build_engine(database_url: str, **kwargs) -> Engine:
    connect_args = kwargs.pop("connect_args", {})
    backend = make_url(database_url).get_backend_name()
    if backend.startswith("postgresql"):
        connect_args["options"] = "-c timezone=utc"
    elif backend == "sqlite":
        connect_args.setdefault("check_same_thread", False)
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args, **kwargs)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
