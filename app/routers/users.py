from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.deps import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    get_current_user,
    get_optional_user,
    get_session_controller,
    get_app_settings,
)
from app.core.responses import api_response
from app.core.security import TokenPair
from app.db.session import get_db
from app.models.user import User
from app.schemas.user import ChangePasswordIn, LoginIn, RefreshIn, UpdateAccountIn, UserOut
from app.services.channels import get_channel_profile, get_watch_history
from app.services.sessions import SessionController

router = APIRouter(prefix="/api/v1/users", tags=["users"])


def _cookie_options(settings: Settings) -> dict:
    common = dict(
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
        path="/",
    )
    if settings.COOKIE_DOMAIN:
        common["domain"] = settings.COOKIE_DOMAIN
    return common


def _set_auth_cookies(resp: Response, pair: TokenPair, settings: Settings):
    common = _cookie_options(settings)
    resp.set_cookie(
        key=ACCESS_COOKIE,
        value=pair.access_token,
        max_age=settings.ACCESS_TTL_MIN * 60,
        **common,
    )
    resp.set_cookie(
        key=REFRESH_COOKIE,
        value=pair.refresh_token,
        max_age=settings.REFRESH_TTL_DAYS * 24 * 3600,
        **common,
    )


def _clear_auth_cookies(resp: Response, settings: Settings):
    common = _cookie_options(settings)
    resp.delete_cookie(ACCESS_COOKIE, **common)
    resp.delete_cookie(REFRESH_COOKIE, **common)


@router.post("/register", status_code=201)
def register(
    full_name: str | None = Form(None, alias="fullName"),
    email: str | None = Form(None),
    user_name: str | None = Form(None, alias="userName"),
    password: str | None = Form(None),
    avatar: UploadFile | None = File(None),
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    sessions: SessionController = Depends(get_session_controller),
):
    user = sessions.register(
        full_name=full_name,
        email=email,
        user_name=user_name,
        password=password,
        avatar=avatar,
        cover_image=cover_image,
    )
    return api_response(UserOut.dump(user), "User registered successfully", 201)


@router.post("/login")
def login(
    payload: LoginIn,
    response: Response,
    sessions: SessionController = Depends(get_session_controller),
    settings: Settings = Depends(get_app_settings),
):
    user, pair = sessions.login(
        password=payload.password, email=payload.email, user_name=payload.user_name
    )
    _set_auth_cookies(response, pair, settings)
    return api_response(
        {
            "user": UserOut.dump(user),
            "accessToken": pair.access_token,
            "refreshToken": pair.refresh_token,
        },
        "User logged in successfully",
    )


@router.post("/logout")
def logout(
    response: Response,
    user: User = Depends(get_current_user),
    sessions: SessionController = Depends(get_session_controller),
    settings: Settings = Depends(get_app_settings),
):
    sessions.logout(str(user.id))
    _clear_auth_cookies(response, settings)
    return api_response({}, "User logged out successfully")


@router.post("/refresh-token")
def refresh_token(
    request: Request,
    response: Response,
    payload: RefreshIn | None = None,
    sessions: SessionController = Depends(get_session_controller),
    settings: Settings = Depends(get_app_settings),
):
    incoming = request.cookies.get(REFRESH_COOKIE) or (
        payload.refresh_token if payload else None
    )
    pair = sessions.refresh(incoming)
    _set_auth_cookies(response, pair, settings)
    return api_response(
        {"accessToken": pair.access_token, "refreshToken": pair.refresh_token},
        "Access token refreshed",
    )


@router.post("/change-password")
def change_password(
    payload: ChangePasswordIn,
    response: Response,
    user: User = Depends(get_current_user),
    sessions: SessionController = Depends(get_session_controller),
    settings: Settings = Depends(get_app_settings),
):
    sessions.change_password(str(user.id), payload.old_password, payload.new_password)
    # stored refresh token is gone; make the client log in again
    _clear_auth_cookies(response, settings)
    return api_response({}, "Password changed successfully")


@router.get("/current-user")
def current_user(user: User = Depends(get_current_user)):
    return api_response(UserOut.dump(user), "Current user fetched successfully")


@router.patch("/update-account")
def update_account(
    payload: UpdateAccountIn,
    user: User = Depends(get_current_user),
    sessions: SessionController = Depends(get_session_controller),
):
    updated = sessions.update_account(str(user.id), payload.full_name, payload.email)
    return api_response(UserOut.dump(updated), "Account details updated successfully")


@router.patch("/update-avatar")
def update_avatar(
    avatar: UploadFile | None = File(None),
    user: User = Depends(get_current_user),
    sessions: SessionController = Depends(get_session_controller),
):
    updated = sessions.update_avatar(str(user.id), avatar)
    return api_response(UserOut.dump(updated), "Avatar updated successfully")


@router.patch("/update-cover-image")
def update_cover_image(
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    user: User = Depends(get_current_user),
    sessions: SessionController = Depends(get_session_controller),
):
    updated = sessions.update_cover_image(str(user.id), cover_image)
    return api_response(UserOut.dump(updated), "Cover image updated successfully")


@router.get("/channel/{user_name}")
def channel_profile(
    user_name: str,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    profile = get_channel_profile(db, user_name, str(viewer.id) if viewer else None)
    return api_response(profile, "User channel fetched successfully")


@router.get("/watch-history")
def watch_history(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return api_response(
        get_watch_history(db, str(user.id)), "Watch history fetched successfully"
    )
