from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from ecoscore.db.base import get_db
from ecoscore.core.config import settings
from ecoscore.core.logging import setup_logging
from ecoscore.routers import entries as entries_router
from ecoscore.routers import achievements as achievements_router
from ecoscore.routers import users as users_router
from ecoscore.routers import leaderboard as leaderboard_router
from ecoscore.routers import challenges as challenges_router
from ecoscore.routers import quiz as quiz_router
from ecoscore.routers import social as social_router
from ecoscore.core.errors import (
    EcoScoreException,
    ecoscore_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

setup_logging(settings.LOG_LEVEL)

app = FastAPI(
    title="EcoScore API",
    description=(
        "**Sustainability scoring and achievement engine**\n\n"
        "Stores one journal entry per user and day, keeps lifetime and weekly "
        "point ledgers consistent across revisions, tracks day streaks and "
        "awards achievements exactly once.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(EcoScoreException, ecoscore_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(entries_router.router)
app.include_router(achievements_router.router)
app.include_router(users_router.router)
app.include_router(leaderboard_router.router)
app.include_router(challenges_router.router)
app.include_router(quiz_router.router)
app.include_router(social_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
