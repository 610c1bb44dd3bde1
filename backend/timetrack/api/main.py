from fastapi import FastAPI, Request, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException
import os
from http import HTTPStatus
import logging

from ..auth.token_store import InMemoryRevokedTokenStore
from ..database.connection import DatabaseManager, SessionLocal
from ..services.errors import AppError, ValidationError
from .routes import auth, notifications, organizations, projects, timesheets

# Configure logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"

# Initialize FastAPI app with metadata
app = FastAPI(
    title="Multitenant Timesheet API",
    description="Weekly timesheets with a submit/approve/reject workflow, organization membership and in-app notifications.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Authentication",
            "description": "Current user and token revocation"
        },
        {
            "name": "Organizations",
            "description": "Organization administration and membership"
        },
        {
            "name": "Projects",
            "description": "Project catalogue per organization"
        },
        {
            "name": "Timesheets",
            "description": "Weekly timesheets and the approval workflow"
        },
        {
            "name": "Timesheet Entries",
            "description": "Work entries within a timesheet"
        },
        {
            "name": "Notifications",
            "description": "In-app notifications and approval reminders"
        }
    ]
)

# Revoked tokens are shared by every request handled by this process
app.state.token_store = InMemoryRevokedTokenStore()

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("ALLOWED_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def problem_response(request: Request, status_code: int, title: str, detail: str,
                     code: str, errors=None, headers=None) -> JSONResponse:
    """Build an RFC 7807 problem details response."""
    content = {
        "type": f"https://httpstatuses.com/{status_code}",
        "title": title,
        "status": status_code,
        "detail": detail,
        "instance": request.url.path,
        "code": code,
    }
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, media_type=PROBLEM_JSON, headers=headers)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Map service errors to problem details."""
    errors = exc.errors if isinstance(exc, ValidationError) else None
    if exc.status_code >= 500:
        logger.error("Service error on %s: %s", request.url.path, exc.message)
    return problem_response(request, exc.status_code, exc.title, exc.message, exc.code, errors)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render framework HTTP errors (401 from auth, 404 for unknown routes) as problem details."""
    code = "unauthorized" if exc.status_code == status.HTTP_401_UNAUTHORIZED else "http_error"
    return problem_response(
        request, exc.status_code, _status_title(exc.status_code), str(exc.detail), code,
        headers=getattr(exc, "headers", None)
    )


def _status_title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize database and perform startup tasks."""
    logger.info("Starting up Multitenant Timesheet API...")

    try:
        DatabaseManager.init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    """Perform cleanup tasks on shutdown."""
    logger.info("Shutting down Multitenant Timesheet API...")


# Health check endpoint
@app.get("/", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns basic API status and version information.
    """
    return {
        "message": "Multitenant Timesheet API is healthy",
        "version": "1.0.0",
        "status": "operational"
    }


@app.get("/health", tags=["Health"])
def detailed_health_check():
    """
    Detailed health check endpoint.

    Returns health status including database connectivity.
    """
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1")).scalar()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unhealthy - database connection failed"
        )
    finally:
        db.close()

    return {
        "status": "healthy",
        "version": "1.0.0",
        "database": "connected"
    }


# Include routers
app.include_router(auth.router, prefix="/api/v1")
app.include_router(organizations.router, prefix="/api/v1")
app.include_router(projects.router, prefix="/api/v1")
app.include_router(timesheets.router, prefix="/api/v1")
app.include_router(notifications.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "timetrack.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
