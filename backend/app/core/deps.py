import logging
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from .database import get_db
from .security import verify_token
from ..models.user import User

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _unauthorised(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> User:
    """
    Resolve the roster user named by the bearer token.

    Tokens are issued by the identity service; the ``sub`` claim is the
    user's id in this service's ``user`` table.
    """
    user_id = verify_token(credentials.credentials)
    if user_id is None:
        raise _unauthorised("Could not validate credentials")

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        raise _unauthorised("Invalid user ID format")

    user = db.get(User, user_uuid)
    if user is None:
        logger.warning(f"Token for unknown user {user_uuid}")
        raise _unauthorised("User not found")

    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Reject users who have been deactivated in the roster."""
    if not current_user.is_active:
        logger.info(f"Rejected inactive user {current_user.username}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user"
        )
    return current_user
