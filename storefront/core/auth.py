# storefront/core/auth.py
import logging
import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from storefront.core.config import get_settings
from storefront.database import get_session
from storefront.models.user import User

logger = logging.getLogger(__name__)

settings = get_settings()

# The 401 for a missing header is raised in get_current_user so every auth
# failure carries the same WWW-Authenticate challenge.
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def read_token_identity(token: str) -> tuple[uuid.UUID, str]:
    """
    Verify a bearer JWT and return the (user id, email) it asserts.

    The signature and `exp` are checked against JWT_SECRET/JWT_ALG; the
    audience is not. `sub` must be a UUID and `email` must be present.

    Raises:
        HTTPException(401): bad signature, expired, or missing claims.
    """
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise _unauthorized("Invalid or expired token")

    sub = claims.get("sub")
    email = claims.get("email")
    if not sub or not email:
        raise _unauthorized("Token missing sub/email")

    try:
        return uuid.UUID(sub), email
    except ValueError:
        raise _unauthorized("Invalid sub in token")


def _lookup_user(session: Session, user_id: uuid.UUID) -> User | None:
    return session.exec(select(User).where(User.id == user_id)).first()


def provision_user(session: Session, user_id: uuid.UUID, email: str) -> User:
    """
    Return the local account for a verified identity, creating it on first use.

    Two first requests for the same identity may both try the insert; the
    loser hits the primary key, rolls back and reads the winner's row.
    New accounts get role "user" and a name taken from the email local part.
    """
    user = _lookup_user(session, user_id)
    if user is not None:
        return user

    user = User(
        id=user_id,
        email=email,
        name=email.split("@", 1)[0],
        role="user",
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        user = _lookup_user(session, user_id)
        if user is None:
            # Constraint hit on something other than our id (e.g. email taken)
            raise _unauthorized("Account conflict for this token")
        logger.info("auth.provision_race user=%s", user_id)
        return user

    session.refresh(user)
    logger.info("auth.provisioned user=%s", user_id)
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    """Authenticated account behind the bearer token; 401 without one."""
    if credentials is None:
        raise _unauthorized("Authentication required")
    user_id, email = read_token_identity(credentials.credentials)
    return provision_user(session, user_id, email)


def require_user(user: User = Depends(get_current_user)) -> User:
    """
    Customer-only routes (cart, checkout, order history).

    Raises:
        HTTPException(403): the account is not a customer (e.g. admin).
    """
    if user.role != "user":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Customer access required",
        )
    return user
