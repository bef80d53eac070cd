import time

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from intake.config import settings
from intake.middleware.rate_limiter import apply_rate_limiting, rate_limited
from intake.models.database import create_database_engine, create_tables, get_session_maker
from intake.models.intake import ApplicationPayload, ApplicationRecord, HealthResponse
from intake.services.backend_client import APPLICATIONS_PATH
from intake.services.database_service import DatabaseService
from intake.utils.logger import configure_logging, get_logger, log_api_request

# Configure structured logging
configure_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = get_logger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Draft storage backend for resumable guided intake forms",
    version=settings.app_version,
    debug=settings.debug,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Apply rate limiting
limiter = apply_rate_limiting(app)

# Database setup
engine = create_database_engine()
SessionLocal = get_session_maker(engine)


def get_database_session() -> Session:
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_database_service(db: Session = Depends(get_database_session)) -> DatabaseService:
    """Dependency to get a database service bound to the request session"""
    return DatabaseService(db)


@app.on_event("startup")
async def startup_event():
    """Startup event handler"""
    logger.info(
        "Application starting", app_name=settings.app_name, debug=settings.debug
    )

    # Create database tables
    try:
        create_tables(engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error("Failed to create database tables", error=str(e))
        raise


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(status="ok")


def _storage_failure(api_logger, start_time: float, error: Exception) -> HTTPException:
    duration_ms = (time.time() - start_time) * 1000
    api_logger.error(
        "Draft storage failed",
        error=str(error),
        duration_ms=duration_ms,
        status_code=500,
    )
    return HTTPException(status_code=500, detail="Unable to store the application")


@app.get(APPLICATIONS_PATH + "/{application_id}", response_model=ApplicationRecord)
@rate_limited(limiter)
async def read_application(
    request: Request,
    application_id: str,
    db_service: DatabaseService = Depends(get_database_service),
):
    """Return the stored draft for this identity."""
    start_time = time.time()
    api_logger = log_api_request(
        method="GET",
        path=f"{APPLICATIONS_PATH}/{application_id}",
        user_agent=request.headers.get("user-agent", ""),
    )

    try:
        application = db_service.get_application(application_id)
    except SQLAlchemyError as e:
        raise _storage_failure(api_logger, start_time, e) from e

    if application is None:
        api_logger.info("Application not found", status_code=404)
        raise HTTPException(status_code=404, detail="Application not found")
    return application.to_record()


@app.post(APPLICATIONS_PATH, response_model=ApplicationRecord)
@rate_limited(limiter)
async def create_application(
    request: Request,
    payload: ApplicationPayload,
    db_service: DatabaseService = Depends(get_database_service),
):
    """
    Create a draft application.

    An unfinished application with the same email is updated and returned
    instead, so a returning applicant keeps a single draft.
    """
    start_time = time.time()
    api_logger = log_api_request(
        method="POST",
        path=APPLICATIONS_PATH,
        user_agent=request.headers.get("user-agent", ""),
    )

    try:
        application = db_service.save_application(payload)
    except SQLAlchemyError as e:
        raise _storage_failure(api_logger, start_time, e) from e

    api_logger.info(
        "Application saved",
        application_id=application.id,
        duration_ms=(time.time() - start_time) * 1000,
    )
    return application.to_record()


@app.patch(APPLICATIONS_PATH + "/{application_id}", response_model=ApplicationRecord)
@rate_limited(limiter)
async def update_application(
    request: Request,
    application_id: str,
    payload: ApplicationPayload,
    db_service: DatabaseService = Depends(get_database_service),
):
    """Merge the sent fields into an existing draft."""
    start_time = time.time()
    api_logger = log_api_request(
        method="PATCH",
        path=f"{APPLICATIONS_PATH}/{application_id}",
        user_agent=request.headers.get("user-agent", ""),
    )

    try:
        application = db_service.update_application(application_id, payload)
    except SQLAlchemyError as e:
        raise _storage_failure(api_logger, start_time, e) from e

    if application is None:
        api_logger.info("Application not found", status_code=404)
        raise HTTPException(status_code=404, detail="Application not found")

    api_logger.info(
        "Application updated",
        application_id=application_id,
        duration_ms=(time.time() - start_time) * 1000,
    )
    return application.to_record()


@app.get("/")
async def root():
    """Root endpoint with basic information"""
    return {
        "message": f"Welcome to the {settings.app_name} API",
        "endpoints": {
            "applications": APPLICATIONS_PATH,
            "health": "/health",
            "docs": "/docs",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
