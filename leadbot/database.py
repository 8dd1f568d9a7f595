"""
Database configuration and session management.
Uses SQLAlchemy; SQLite by default, PostgreSQL in production.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from leadbot.config import config

# Create database engine
# For development: SQLite (file-based)
# For production: PostgreSQL
if config.DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        config.DATABASE_URL,
        connect_args={"check_same_thread": False}  # SQLite specific
    )
else:
    # PostgreSQL
    engine = create_engine(
        config.DATABASE_URL,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=5,
        max_overflow=10,
        echo=config.DEBUG  # Log SQL queries in debug mode
    )

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all models
Base = declarative_base()


def init_db(bind=None):
    """
    Initialize database - create all tables.
    Called on application startup when the database lead sink is enabled.
    """
    # Register models on Base.metadata
    from leadbot import db_models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
