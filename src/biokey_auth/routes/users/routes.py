"""
User management routes, restricted to administrators.

Every handler depends on `require_admin`; a missing or invalid token yields
401 and a non-admin token 403.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from biokey_auth.managers.logging_manager import get_logger
from biokey_auth.routes.auth.dependencies import require_admin
from biokey_auth.routes.auth.models import UserInDB, UserOut
from biokey_auth.routes.auth.services.users.service import UserService
from biokey_auth.routes.users.dependencies import get_user_service
from biokey_auth.routes.users.models import UserCreateRequest, UserUpdateRequest
from biokey_auth.utils.logging_utils import log_performance

logger = get_logger(prefix="[User Routes]")

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED, summary="Create a user")
@log_performance("create_user_endpoint")
async def create_user(
    payload: UserCreateRequest,
    admin: UserInDB = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    user = await service.create_user(payload.email, payload.password, payload.role, actor_id=admin.id)
    return UserOut.from_user(user)


@router.get("", response_model=List[UserOut], summary="List users")
async def list_users(_: UserInDB = Depends(require_admin), service: UserService = Depends(get_user_service)):
    return [UserOut.from_user(user) for user in await service.list_users()]


@router.get("/{user_id}", response_model=UserOut, summary="Get a user")
async def get_user(
    user_id: str, _: UserInDB = Depends(require_admin), service: UserService = Depends(get_user_service)
):
    return UserOut.from_user(await service.get_user(user_id))


@router.patch(
    "/{user_id}",
    response_model=UserOut,
    summary="Update a user",
    description="""
    Change the email, password or role of a user. Omitted fields are left
    unchanged; at least one must be given.
    """,
)
@log_performance("update_user_endpoint")
async def update_user(
    user_id: str,
    payload: UserUpdateRequest,
    admin: UserInDB = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    user = await service.update_user(
        user_id,
        email=payload.email,
        password=payload.password,
        role=payload.role,
        actor_id=admin.id,
    )
    return UserOut.from_user(user)


@router.delete("/{user_id}", response_model=UserOut, summary="Remove a user")
async def remove_user(
    user_id: str, admin: UserInDB = Depends(require_admin), service: UserService = Depends(get_user_service)
):
    logger.info("Admin %s removing user %s", admin.id, user_id)
    return UserOut.from_user(await service.remove_user(user_id, actor_id=admin.id))
