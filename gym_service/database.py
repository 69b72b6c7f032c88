from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from gym_service.config import DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_or_rollback(db):
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
