import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clinic_scheduler.core import config
from clinic_scheduler.core.errors import Forbidden
from clinic_scheduler.database import get_db
from clinic_scheduler.models.user import ROLE_DOCTOR, ROLE_PATIENT, User

security = HTTPBearer()


def decode_access_token(token: str) -> dict:
    """Verify a bearer token issued by the identity provider and return its claims."""
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        options={"require": ["exp", "sub"]},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_doctor(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != ROLE_DOCTOR:
        raise Forbidden("Access denied. Doctors only.")
    return current_user


def require_patient(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != ROLE_PATIENT:
        raise Forbidden("Access denied. Only patients can book appointments.")
    return current_user
