# app/dependencies.py

"""
Зависимости для использования в endpoints
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.models import User
from app.utils.database import get_db
from app.utils.security import decode_token
from typing import Optional

security = HTTPBearer(auto_error=False)


def _credentials_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_id_from_payload(payload: Optional[dict]) -> Optional[int]:
    if payload is None or payload.get("token_type") != "access":
        return None

    user_id = payload.get("sub")
    if user_id is None:
        return None

    try:
        return int(user_id)
    except (TypeError, ValueError):
        return None


async def get_current_user(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        db: Session = Depends(get_db)
) -> User:
    """
    Получаем текущего авторизованного пользователя

    Извлекаем Bearer токен из заголовка Authorization, декодируем токен,
    из токена берем user_id, ищем пользователя в БД и возвращаем объект User
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Если токен невалиден, истек или без sub
    user_id = _user_id_from_payload(decode_token(credentials.credentials))
    if user_id is None:
        raise _credentials_error()

    # Ищем пользователя в БД
    user = db.query(User).filter(User.id == user_id).first()

    if user is None:
        raise _credentials_error()

    return user

async def get_current_user_optional(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Необязательный текущий пользователь.

    Если токена нет или он невалиден - возвращаем None,
    иначе - объект User.
    """
    if credentials is None:
        return None

    user_id = _user_id_from_payload(decode_token(credentials.credentials))
    if user_id is None:
        return None

    return db.query(User).filter(User.id == user_id).first()


async def get_current_user_id(
        current_user: Optional[User] = Depends(get_current_user_optional),
) -> Optional[int]:
    """id текущего пользователя или None для анонима"""
    return current_user.id if current_user else None
