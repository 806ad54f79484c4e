# storefront/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.utils.settings import DATABASE_URL


def make_engine(url: str = DATABASE_URL):
    if url in ("sqlite://", "sqlite:///:memory:"):
        # in-memory sqlite lives on a single connection shared between threads
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


engine = make_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
Base = declarative_base()


def init_db(bind=None):
    # models have to be registered in Base.metadata before create_all
    import storefront.data.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
