from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

from ...config.settings import AuthSettings
from ...models import AuthResult, Envelope, LoginRequest, Message, Principal, SignupRequest
from ..deps import AuthServiceDep, CredentialsDep, CurrentPrincipal, SettingsDep

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_session_cookie(response: Response, settings: AuthSettings, result: AuthResult) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=result.session.token,
        max_age=settings.session_ttl_s,
        path="/",
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
    )


def _client_info(request: Request) -> dict[str, str | None]:
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


@router.post("/signup", status_code=status.HTTP_201_CREATED, response_model=Envelope[AuthResult])
async def signup(
    body: SignupRequest,
    request: Request,
    response: Response,
    service: AuthServiceDep,
    settings: SettingsDep,
) -> Envelope[AuthResult]:
    result = await service.asignup(body, **_client_info(request))
    _set_session_cookie(response, settings.auth, result)
    return Envelope(message="Account created", data=result)


@router.post("/login", response_model=Envelope[AuthResult])
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    service: AuthServiceDep,
    settings: SettingsDep,
) -> Envelope[AuthResult]:
    result = await service.alogin(body, **_client_info(request))
    _set_session_cookie(response, settings.auth, result)
    return Envelope(message="Logged in", data=result)


@router.post("/logout", response_model=Message)
async def logout(
    response: Response,
    credentials: CredentialsDep,
    service: AuthServiceDep,
    settings: SettingsDep,
) -> Message:
    await service.alogout(credentials.token)
    response.delete_cookie(settings.auth.cookie_name, path="/")
    return Message(message="Logged out")


@router.get("/me", response_model=Envelope[Principal])
async def me(principal: CurrentPrincipal) -> Envelope[Principal]:
    return Envelope(data=principal)
