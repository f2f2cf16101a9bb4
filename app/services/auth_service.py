# app/services/auth_service.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.user import User


class AuthService:
    """Service for verifying bearer tokens and resolving the calling user"""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def create_access_token(self, user_id: int, expires_delta: Optional[timedelta] = None) -> str:
        """
        Issue a signed token whose subject is the user id.
        """
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=7))
        payload = {"sub": str(user_id), "exp": expire}
        return jwt.encode(payload, self.settings.JWT_SECRET, algorithm=self.settings.JWT_ALGORITHM)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify a JWT token with the configured secret and return its payload.
        """
        try:
            payload = jwt.decode(
                token,
                self.settings.JWT_SECRET,
                algorithms=[self.settings.JWT_ALGORITHM],
            )
        except jwt.PyJWTError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token"
            )

        if not payload.get("sub"):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token: missing subject"
            )
        return payload

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        """
        Retrieve an active User record by ID.
        """
        return self.db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
