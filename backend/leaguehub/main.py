import logging
import os
import subprocess
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leaguehub.config import CORS_ORIGINS, LOG_LEVEL
from leaguehub.database import init_db
from leaguehub.errors import ConflictError, IntegrityViolation, LeagueHubError, NotFoundError, ValidationFailure
from leaguehub.routes import matches, realtime, teams, tournaments

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="League Hub API")


# Get build info
def get_build_info():
    """Get git commit hash or build timestamp"""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            cwd=os.path.dirname(os.path.dirname(__file__)),
            capture_output=True,
            text=True,
            timeout=2,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (OSError, subprocess.SubprocessError):
        pass

    # Fallback to build timestamp
    return datetime.now().strftime("%Y%m%d-%H%M%S")


BUILD_HASH = get_build_info()

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Domain error -> HTTP mapping
# ============================================================================


def _error_response(exc: LeagueHubError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error_response(exc)


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    return _error_response(exc)


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "retryable": True},
    )


@app.exception_handler(IntegrityViolation)
async def integrity_violation_handler(request: Request, exc: IntegrityViolation):
    logger.error("Integrity violation on %s %s: %s", request.method, request.url.path, exc.message)
    return _error_response(exc)


# Include routers
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])
app.include_router(teams.router, prefix="/api", tags=["teams"])
app.include_router(matches.router, prefix="/api", tags=["matches"])
app.include_router(realtime.router, tags=["realtime"])


@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("League Hub API started (build %s)", BUILD_HASH)


@app.get("/api/health")
def health_check():
    """Diagnostic endpoint to verify which code is running"""
    return {"app_name": "League Hub API", "build_hash": BUILD_HASH, "status": "healthy"}
