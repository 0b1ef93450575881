import structlog
from sqlalchemy.orm import Session

from ..auth.security import delete_expired_refresh_tokens
from .audit import delete_expired


logger = structlog.get_logger(__name__)


def purge_expired(db: Session) -> dict:
    """Erase audit entries past their retention and expired refresh tokens."""
    result = {
        "audit_logs": delete_expired(db),
        "refresh_tokens": delete_expired_refresh_tokens(db),
    }
    logger.info("purge_expired", **result)
    return result
