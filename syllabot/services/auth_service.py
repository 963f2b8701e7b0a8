import logging
from urllib.parse import urlsplit

import httpx
from fastapi import HTTPException, status
from firebase_admin import auth as firebase_auth

from syllabot.core.config import settings
from syllabot.core.security import create_access_token
from syllabot.db.firestore import init_firebase
from syllabot.models.schemas import AuthResult

logger = logging.getLogger("syllabot.auth")
logger.setLevel(logging.INFO)

IDENTITY_TOOLKIT = "https://identitytoolkit.googleapis.com/v1/accounts"

# Identity Toolkit error codes -> banner text
_MESSAGES = {
    "EMAIL_NOT_FOUND": "No account exists for that email.",
    "INVALID_PASSWORD": "Incorrect email or password.",
    "INVALID_LOGIN_CREDENTIALS": "Incorrect email or password.",
    "USER_DISABLED": "This account has been disabled.",
    "EMAIL_EXISTS": "An account with that email already exists.",
    "INVALID_EMAIL": "That email address is not valid.",
    "WEAK_PASSWORD": "Password should be at least 6 characters.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Please try again later.",
}


def safe_redirect(target: str | None) -> str:
    """Only same-site relative paths are followed after sign-in."""
    if not target:
        return settings.DEFAULT_REDIRECT
    parts = urlsplit(target)
    if parts.scheme or parts.netloc or not target.startswith("/") or target.startswith("//"):
        return settings.DEFAULT_REDIRECT
    return target


def issue_session(uid: str, email: str, redirect: str | None) -> AuthResult:
    return AuthResult(
        access_token=create_access_token(sub=email, uid=uid),
        email=email,
        uid=uid,
        redirect=safe_redirect(redirect),
    )


def _error_message(resp: httpx.Response) -> str:
    try:
        code = resp.json()["error"]["message"]
    except Exception:
        return "Authentication failed."
    # e.g. "WEAK_PASSWORD : Password should be at least 6 characters"
    key = code.split(":", 1)[0].strip()
    return _MESSAGES.get(key, code)


async def _password_call(endpoint: str, email: str, password: str) -> dict:
    if not email or not password:
        raise HTTPException(status_code=400, detail="Please enter email and password.")
    url = f"{IDENTITY_TOOLKIT}:{endpoint}"
    payload = {"email": email, "password": password, "returnSecureToken": True}
    try:
        async with httpx.AsyncClient(timeout=15) as client:
            resp = await client.post(url, params={"key": settings.FIREBASE_WEB_API_KEY}, json=payload)
    except httpx.HTTPError as e:
        logger.warning("identity toolkit unreachable: %s", e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Sign-in is unavailable right now.")
    if resp.status_code != 200:
        code = status.HTTP_400_BAD_REQUEST if endpoint == "signUp" else status.HTTP_401_UNAUTHORIZED
        raise HTTPException(status_code=code, detail=_error_message(resp))
    return resp.json()


async def sign_in_with_password(email: str, password: str) -> tuple[str, str]:
    data = await _password_call("signInWithPassword", email, password)
    return data["localId"], data.get("email", email)


async def sign_up(email: str, password: str) -> tuple[str, str]:
    data = await _password_call("signUp", email, password)
    logger.info("created account for %s", data.get("email", email))
    return data["localId"], data.get("email", email)


def verify_federated_token(token: str) -> tuple[str, str]:
    init_firebase()
    try:
        decoded = firebase_auth.verify_id_token(token)
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid token")
    email = decoded.get("email")
    if not email:
        raise HTTPException(status_code=400, detail="Invalid token (no email)")
    return decoded["uid"], email


def sign_out(uid: str) -> None:
    init_firebase()
    try:
        firebase_auth.revoke_refresh_tokens(uid)
    except firebase_auth.UserNotFoundError:
        logger.info("sign-out for unknown uid %s", uid)
