"""User directory HTTP endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..dependencies import get_user_repository
from ..exceptions import DuplicateError
from ..models import UserRole
from ..repository import UserRepository
from ..schemas import UserCreate, UserResponse
from ..services import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    repository: UserRepository = Depends(get_user_repository),
) -> UserResponse:
    try:
        user = await UserService(repository).create_user(payload)
    except DuplicateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return UserResponse.model_validate(user)


@router.get("", response_model=list[UserResponse])
async def list_users(
    role: UserRole | None = None,
    repository: UserRepository = Depends(get_user_repository),
) -> list[UserResponse]:
    users = await repository.list_users(role=role.value if role is not None else None)
    return [UserResponse.model_validate(user) for user in users]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, repository: UserRepository = Depends(get_user_repository)) -> UserResponse:
    user = await repository.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserResponse.model_validate(user)
