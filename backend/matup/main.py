import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from matup.database import init_db
from matup.routes import (
    fixtures,
    league_schedule,
    league_standings,
    league_teams,
    leagues,
    sessions,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

APP_NAME = "MatUp League API"

app = FastAPI(title=APP_NAME)

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(leagues.router, prefix="/api", tags=["leagues"])
app.include_router(league_teams.router, prefix="/api", tags=["teams"])
app.include_router(league_schedule.router, prefix="/api", tags=["schedule"])
app.include_router(fixtures.router, prefix="/api", tags=["fixtures"])
app.include_router(sessions.router, prefix="/api", tags=["sessions"])
app.include_router(league_standings.router, prefix="/api", tags=["standings"])


@app.on_event("startup")
def on_startup():
    init_db()  # Imports models and creates missing tables

    route_count = sum(1 for r in app.routes if getattr(r, "path", None))
    logger.info("%s started with %d routes", APP_NAME, route_count)


@app.get("/api/health")
def health_check():
    return {"app_name": APP_NAME, "status": "healthy"}
