from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.orm import Session
from app.config.database import get_db
from app.models.user import User
from app.utils.exceptions import ForbiddenError


def get_current_user(
    x_user_id: Optional[int] = Header(None, description="ID of the acting user"),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Resolve the acting user; None when the caller is anonymous."""
    if x_user_id is None:
        return None
    user = db.query(User).filter(User.id == x_user_id).first()
    if not user or not user.is_active:
        raise ForbiddenError("Unknown or inactive user")
    return user
