import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from syllabot.core.config import settings
from syllabot.routers import auth, chat, landing, management, users
from syllabot.routers.users import LoginRequired
from syllabot.services.chat_service import ChatSessionStore

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

if not settings.SECRET_KEY:
    raise RuntimeError("SECRET_KEY is required")

app = FastAPI(title="Syllabot API")
app.state.chats = ChatSessionStore(max_size=settings.MAX_CHAT_SESSIONS)

origins = [str(o).rstrip("/") for o in settings.CORS_ORIGINS] or [
    "http://localhost:3000",
    "http://localhost:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse(exc.location, status_code=303)


app.include_router(auth.router)
app.include_router(auth.page_router)
app.include_router(users.router)
app.include_router(landing.router)
app.include_router(management.router)
app.include_router(management.page_router)
app.include_router(chat.router)
app.include_router(chat.page_router)


@app.get("/health")
def health():
    return {"status": "ok"}
