from contextlib import contextmanager
import logging
from models import db

logger = logging.getLogger(__name__)


@contextmanager
def transactional(message="DB transaction failed"):
    """Commit the block as its own unit; roll back and re-raise on error.

    Checkout steps each use a separate block, so a failing step never undoes
    the rows an earlier step already committed.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error({"event": "db_rollback", "reason": message, "error": str(e)})
        raise
