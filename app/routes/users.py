# app/routes/users.py

"""
API enpoints для работы с текущим пользователем.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status

from app.schemas import UserResponse
from app.models import User
from app.dependencies import get_current_user_optional

router = APIRouter(
    prefix="/api/v1/users",
    tags=["users"],
)

@router.get("/me", response_model=Optional[UserResponse], status_code=status.HTTP_200_OK)
async def get_me(
        current_user: Optional[User] = Depends(get_current_user_optional),
):
    """
    Возвращает данные текущего пользователя:
    id, username, email, created_at

    Для анонима - null, фронт сам решает, что показывать.
    """
    return current_user
