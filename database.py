from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from urllib.parse import quote_plus
from datetime import date
from models import Base
from config.settings import settings
import logging

logger = logging.getLogger("app")

# Check if full database URL is provided (e.g., from Render, Heroku)
DATABASE_URL = settings.DATABASE_URL

if not DATABASE_URL:
    # No full URL provided, construct from individual components
    if not settings.DB_PASSWORD:
        raise ValueError(
            "Either SQLALCHEMY_DATABASE_URL/DATABASE_URL or DB_PASSWORD must be set. "
            "Please configure database connection in your .env file. "
            "See config/settings.py ENV_TEMPLATE for a template."
        )

    # URL-encode the password to handle special characters
    password = quote_plus(settings.DB_PASSWORD)

    # Construct the DATABASE_URL
    DATABASE_URL = (
        f"postgresql://{settings.DB_USER}:{password}@{settings.DB_HOST}:"
        f"{settings.DB_PORT}/{settings.DB_NAME}"
    )


def make_engine(url: str):
    """Create an engine; SQLite needs cross-thread access under the test client."""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    """
    Dependency to get a DB session for each request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_today() -> date:
    """
    Dependency providing the caller's local "today".

    Routes never read the clock themselves; tests override this dependency
    to pin the date.
    """
    return date.today()

def create_tables():
    """
    Create all tables defined by models that inherit from Base.
    """
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created or already exist.")
    except Exception as e:
        logger.error(f"Error creating database tables: {e}")
        raise
