from contextlib import contextmanager
from typing import Optional
from sqlalchemy.orm import Session
from timegate.core.database import SessionLocal
from timegate.core.logging_config import get_logger

logger = get_logger("db_transaction")


@contextmanager
def db_transaction(db: Optional[Session] = None):
    """Commit on success, roll back and re-raise on error. Opens its own session when none is given."""
    if db is None:
        db = SessionLocal()
        should_close = True
    else:
        should_close = False
    try:
        yield db
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Transaction rolled back: {str(e)}", exc_info=True)
        raise
    finally:
        if should_close:
            db.close()
