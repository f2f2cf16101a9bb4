# app/main.py
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from app.api.v1.router import api_router
from app.config import get_settings
from app.database import engine, Base, init_models
from app.exceptions import ConstraintViolation, NotFound, QueryFailed, ServiceError, ValidationFailure

# Get settings
settings = get_settings()

# Setup logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Create tables in the database
init_models()
Base.metadata.create_all(bind=engine)

# Initialize app
app = FastAPI(
    title="StormNeighbor API",
    description="API for neighborhood posts, direct messages and weather alerts",
    version="0.1.0"
)

# CORS middleware for the mobile client
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix=settings.API_PREFIX)


ERROR_STATUS = {
    ValidationFailure: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    ConstraintViolation: status.HTTP_409_CONFLICT,
    QueryFailed: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@app.get("/")
async def root():
    """Health check and welcome message"""
    return {
        "message": "StormNeighbor API Server is running",
        "status": "online",
        "environment": settings.ENVIRONMENT,
        "version": "0.1.0"
    }


# Error handler for service layer exceptions
@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": exc.message}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=not settings.is_production)
