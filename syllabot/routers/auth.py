from fastapi import APIRouter, Depends, Form, Query, Response
from fastapi.responses import RedirectResponse
from syllabot.core.config import settings
from syllabot.models.schemas import AuthResult, Credentials, CurrentUser, GoogleSignIn
from syllabot.routers.users import SESSION_COOKIE, get_current_user, get_optional_user
from syllabot.services import auth_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])
page_router = APIRouter(tags=["Auth"])


def _with_cookie(response: Response, result: AuthResult) -> AuthResult:
    response.set_cookie(
        SESSION_COOKIE,
        result.access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=settings.ENV != "development",
    )
    return result


@router.post("/google", response_model=AuthResult)
def google_auth(payload: GoogleSignIn, response: Response, redirect: str | None = Query(None)):
    uid, email = auth_service.verify_federated_token(payload.token)
    return _with_cookie(response, auth_service.issue_session(uid, email, redirect))


@router.post("/login", response_model=AuthResult)
async def login(
    response: Response,
    username: str = Form(""),
    password: str = Form(""),
    redirect: str | None = Query(None),
):
    # OAuth2 password-form field names; blanks fall through to the banner message
    uid, email = await auth_service.sign_in_with_password(username, password)
    return _with_cookie(response, auth_service.issue_session(uid, email, redirect))


@router.post("/register", response_model=AuthResult)
async def register(payload: Credentials, response: Response, redirect: str | None = Query(None)):
    uid, email = await auth_service.sign_up(payload.email, payload.password)
    return _with_cookie(response, auth_service.issue_session(uid, email, redirect))


@page_router.get("/auth")
def auth_page(redirect: str | None = Query(None), user: CurrentUser | None = Depends(get_optional_user)):
    target = auth_service.safe_redirect(redirect)
    # Already signed in: go straight to the page that sent us here
    if user is not None:
        return RedirectResponse(target, status_code=303)
    return {"redirect": target}


@router.post("/logout")
def logout(response: Response, current_user: CurrentUser = Depends(get_current_user)):
    """Revoke Firebase refresh tokens and clear the session cookie.

    Session JWTs are stateless: a bearer token already handed out stays valid
    until it expires (ACCESS_TOKEN_EXPIRE_MINUTES).
    """
    auth_service.sign_out(current_user.uid)
    response.delete_cookie(SESSION_COOKIE)
    return {"message": "Signed out"}
