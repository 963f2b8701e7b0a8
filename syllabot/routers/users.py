# syllabot/routers/users.py
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from syllabot.core.config import settings
from syllabot.core.security import decode_token
from syllabot.models.schemas import CurrentUser

router = APIRouter(prefix="/api/users", tags=["Users"])

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)

SESSION_COOKIE = "session"


class LoginRequired(Exception):
    """Raised by page routes; handled by redirecting to the auth page."""

    def __init__(self, original_url: str):
        self.original_url = original_url

    @property
    def location(self) -> str:
        return f"/auth?redirect={quote(self.original_url, safe='')}"


def _user_from_token(token: str | None) -> CurrentUser | None:
    if not token:
        return None
    try:
        payload = decode_token(token)  # {"sub": email, "uid": ..., "exp": ...}
    except Exception:
        return None
    email = payload.get("sub")
    uid = payload.get("uid")
    if not email or not uid:
        return None
    return CurrentUser(uid=uid, email=email.lower(), is_admin=uid in settings.ADMIN_UIDS)


def get_optional_user(request: Request, token: str | None = Depends(oauth2_scheme)) -> CurrentUser | None:
    return _user_from_token(token or request.cookies.get(SESSION_COOKIE))


def get_current_user(user: CurrentUser | None = Depends(get_optional_user)) -> CurrentUser:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_page_user(request: Request, user: CurrentUser | None = Depends(get_optional_user)) -> CurrentUser:
    if user is None:
        original = request.url.path
        if request.url.query:
            original += "?" + request.url.query
        raise LoginRequired(original)
    return user


@router.get("/me", response_model=CurrentUser)
def read_me(current_user: CurrentUser = Depends(get_current_user)):
    return current_user
