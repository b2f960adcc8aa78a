"""
Database session management
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from forgeops.core.config import settings
from forgeops.logging_config import get_logger

logger = get_logger(__name__)

connection_string = settings.database_url

# Log connection target (without credentials)
logger.info(f"Database connection: {connection_string.rsplit('@', 1)[-1]}")

engine_kwargs = {"echo": False, "pool_pre_ping": True}
if connection_string.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs["pool_recycle"] = 3600  # Recycle connections after 1 hour

engine = create_engine(connection_string, **engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Dependency for getting database session

    Usage in FastAPI endpoints:
        @router.get("/{order_id}")
        def get_order(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
