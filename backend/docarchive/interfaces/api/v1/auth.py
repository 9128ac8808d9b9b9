"""Authentication and user administration endpoints."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from ....modules.common.schemas import ApiResponse, Page
from ....modules.user.schemas import (
    AuthResult,
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    UserRead,
    UserRoleUpdate,
    UserStatusUpdate,
)
from ....modules.user.services import AuthService
from ..dependencies import AdminUser, BearerToken, CurrentUser, DbSession, get_auth_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/login",
    summary="Log In",
    description="""
    Exchanges an email and password for a session token.

    The token is sent as `Authorization: Bearer <token>` on later requests
    and expires after `JWT_EXPIRE_HOURS`.
    """,
    responses={
        200: {"description": "Logged in; user and token returned"},
        401: {"description": "Invalid credentials or deactivated account"},
        422: {"description": "Malformed email or missing password"},
    },
)
async def login(
    credentials: LoginRequest,
    db: DbSession,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AuthResult]:
    result = await auth_service.login(credentials, db)
    return ApiResponse(data=result, message="Login successful")


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register Account",
    description="""
    Creates a USER account and logs it in.

    - **email**: Unique login email
    - **password**: At least 8 characters with an upper-case letter, a lower-case letter and a digit
    - **name**: Optional display name
    """,
    responses={
        201: {"description": "Account created; user and token returned"},
        409: {"description": "Email already registered"},
        422: {"description": "Malformed email or weak password"},
    },
)
async def register(
    data: RegisterRequest,
    db: DbSession,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[AuthResult]:
    result = await auth_service.register(data, db)
    return ApiResponse(data=result, message="Registration successful")


@router.post(
    "/logout",
    summary="Log Out",
    description="Revokes the presented token. Logging out twice is not an error.",
    responses={
        200: {"description": "Token revoked"},
        401: {"description": "Missing or malformed token"},
    },
)
async def logout(
    token: BearerToken,
    db: DbSession,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    await auth_service.logout(token, db)
    return ApiResponse(data=None, message="Logged out")


@router.get(
    "/verify",
    summary="Verify Token",
    description="Returns the user behind a valid, unrevoked token.",
    responses={
        200: {"description": "Token is valid"},
        401: {"description": "Token missing, malformed, expired or revoked"},
    },
)
async def verify(user: CurrentUser) -> ApiResponse[UserRead]:
    return ApiResponse(data=user)


@router.get(
    "/profile",
    summary="Get Profile",
    responses={
        200: {"description": "The caller's profile"},
        401: {"description": "Not authenticated"},
    },
)
async def get_profile(
    user: CurrentUser,
    db: DbSession,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[UserRead]:
    return ApiResponse(data=await auth_service.get_profile(user.id, db))


@router.put(
    "/profile",
    summary="Update Profile",
    description="Changes the caller's display name and/or email.",
    responses={
        200: {"description": "Profile updated"},
        401: {"description": "Not authenticated"},
        409: {"description": "Email already in use"},
    },
)
async def update_profile(
    data: ProfileUpdate,
    user: CurrentUser,
    db: DbSession,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[UserRead]:
    result = await auth_service.update_profile(user.id, data, db)
    return ApiResponse(data=result, message="Profile updated")


@router.put(
    "/change-password",
    summary="Change Password",
    description="""
    Replaces the caller's password.

    - **currentPassword**: Must match the stored password
    - **newPassword**: Must satisfy the password policy
    """,
    responses={
        200: {"description": "Password changed"},
        401: {"description": "Not authenticated or current password incorrect"},
        422: {"description": "New password breaks the policy"},
    },
)
async def change_password(
    data: ChangePasswordRequest,
    user: CurrentUser,
    db: DbSession,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[None]:
    await auth_service.change_password(user.id, data.current_password, data.new_password, db)
    return ApiResponse(data=None, message="Password changed")


@router.get(
    "/users",
    summary="List Users",
    description="""
    Lists accounts, newest first. Administrators only.

    - **page**: Page number (1-indexed)
    - **limit**: Users per page (1-100)
    - **search**: Optional substring of email or name
    """,
    responses={
        200: {"description": "One page of users"},
        401: {"description": "Not authenticated"},
        403: {"description": "Not an administrator"},
    },
)
async def list_users(
    admin: AdminUser,
    db: DbSession,
    page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
    limit: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 10,
    search: Annotated[Optional[str], Query(max_length=100, description="Email or name substring")] = None,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[Page[UserRead]]:
    return ApiResponse(data=await auth_service.list_users(admin, db, page, limit, search))


@router.put(
    "/users/{user_id}/status",
    summary="Activate or Deactivate User",
    description="Deactivated users cannot log in and their tokens stop verifying. Administrators only.",
    responses={
        200: {"description": "Status updated"},
        403: {"description": "Not an administrator"},
        404: {"description": "User not found"},
    },
)
async def update_user_status(
    user_id: int,
    data: UserStatusUpdate,
    admin: AdminUser,
    db: DbSession,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[UserRead]:
    result = await auth_service.update_user_status(admin, user_id, data.is_active, db)
    return ApiResponse(data=result, message="User status updated")


@router.put(
    "/users/{user_id}/role",
    summary="Change User Role",
    responses={
        200: {"description": "Role updated"},
        403: {"description": "Not an administrator"},
        404: {"description": "User not found"},
    },
)
async def update_user_role(
    user_id: int,
    data: UserRoleUpdate,
    admin: AdminUser,
    db: DbSession,
    auth_service: AuthService = Depends(get_auth_service),
) -> ApiResponse[UserRead]:
    result = await auth_service.update_user_role(admin, user_id, data.role, db)
    return ApiResponse(data=result, message="User role updated")
