# chivoice/main.py
from __future__ import annotations

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .db import db_ok, ensure_schema, get_db_dsn
from .deps import error_response, get_repository
from .errors import ChiVoiceError
from .schemas import HealthOutput
from .settings import settings

BUILD = settings.BUILD_TAG

app = FastAPI(title="chivoice-backend", version=BUILD)

# CORS origins: env-based + hardcoded defaults
ALLOWED_ORIGINS = [o.strip() for o in (settings.ALLOWED_ORIGINS or "").split(",") if o.strip()] or [
    "http://localhost:5173",
    "http://localhost:8080",
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup():
    if not get_db_dsn():
        print("[startup] No database DSN configured, schema init skipped")
        return

    # schema + seed languages (warning only, no crash)
    try:
        ensure_schema()
        from .languages import seed_languages
        inserted = seed_languages(get_repository())
        print(f"[startup] Schema ready, {inserted} seed languages inserted")
    except Exception as e:
        print(f"[startup] Schema init failed (not fatal): {e}")


# Routers (REGISTER AT IMPORT TIME, not in startup)
from .tasks_api import router as tasks_router
from .recordings_api import router as recordings_router
from .languages_api import router as languages_router
from .account import router as account_router

app.include_router(tasks_router)
app.include_router(recordings_router)
app.include_router(languages_router)
app.include_router(account_router)


@app.get("/stats/public")
def public_stats(repo=Depends(get_repository)):
    try:
        stats = repo.public_stats()
    except ChiVoiceError as e:
        return error_response(e)
    return {"ok": True, **stats.model_dump()}


@app.get("/healthz", response_model=HealthOutput)
def healthz():
    # included routers are not always flattened into app.router.routes
    routes = {r.path for r in app.router.routes if isinstance(getattr(r, "path", None), str)}
    routes.update(app.openapi().get("paths", {}).keys())
    routes = sorted(routes)
    return HealthOutput(db=db_ok(), build=BUILD, routes=routes)
