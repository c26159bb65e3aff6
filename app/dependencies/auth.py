from typing import Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from app.database.connection import get_db
from app.core.security import decode_access_token
from app.enums.user_roles import UserRole
from app.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

_CREDENTIALS_ERROR = {
    "status_code": status.HTTP_401_UNAUTHORIZED,
    "headers": {"WWW-Authenticate": "Bearer"},
}


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def role_of(user: User) -> Optional[UserRole]:
    """Stored role string as a UserRole; None for roles this service does not know."""
    try:
        return UserRole(user.role)
    except ValueError:
        return None


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    token_data = decode_access_token(token)
    if not token_data.username:
        raise HTTPException(detail="Could not validate credentials", **_CREDENTIALS_ERROR)

    user = get_user_by_username(db, token_data.username)
    if not user:
        raise HTTPException(detail="User not found", **_CREDENTIALS_ERROR)
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return user


def require_role(*roles: UserRole) -> Callable[..., User]:
    """Dependency that lets through only users holding one of `roles`."""

    def _check(user: User = Depends(get_current_user)) -> User:
        if role_of(user) not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{' or '.join(r.value.capitalize() for r in roles)} privileges required",
            )
        return user

    return _check


# Catalog, offer and coupon management.
require_admin = require_role(UserRole.admin)
