"""
Face Registry API

Register a face under a name, then recognize it from another image.

Endpoints:
- POST /register - Store a name with the embedding of a face image
- POST /recognize - Find the registered identity closest to a face image
- GET /records - List registered identities
- GET /health - Model and database status
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.exceptions import HTTPException as StarletteHTTPException

from face_registry.config import (
    API_TITLE,
    API_DESCRIPTION,
    API_VERSION,
    FACE_RECOGNITION_MODEL,
    FACE_DETECTOR_BACKEND,
    HOST,
    PORT,
    LOG_LEVEL
)
from face_registry.database import build_engine, build_session_maker, init_db, close_db
from face_registry.errors import FaceRegistryError, StorageError
from face_registry.face_service import DeepFaceExtractor
from face_registry.repository import IdentityRecordRepository
from face_registry.schemas import (
    ErrorResponse,
    HealthResponse,
    IdentityList,
    MessageResponse,
    RecognizeRequest,
    RegisterRequest
)
from face_registry.service import FaceRegistryService

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting Face Registry API...")
    logger.info(f"Model: {FACE_RECOGNITION_MODEL}")
    logger.info(f"Detector: {FACE_DETECTOR_BACKEND}")

    if app.state.engine is None:
        app.state.engine = build_engine()
    await init_db(app.state.engine)

    if app.state.service is None:
        app.state.service = FaceRegistryService(
            extractor=DeepFaceExtractor(),
            session_maker=build_session_maker(app.state.engine)
        )
    # Requests are only served once the model is in memory
    await app.state.service.startup()
    logger.info(f"Ready (threshold: {app.state.service.threshold})")
    yield

    # Shutdown
    await close_db(app.state.engine)
    logger.info("Shutting down Face Registry API...")


def get_service(request: Request) -> FaceRegistryService:
    return request.app.state.service


def create_app(
    service: Optional[FaceRegistryService] = None,
    engine: Optional[AsyncEngine] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        service: Preconfigured service; built from configuration when omitted
        engine: Engine for the record store; built from DATABASE_URL when omitted
    """
    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        lifespan=lifespan
    )
    app.state.service = service
    app.state.engine = engine

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========================================================================
    # Register
    # ========================================================================
    @app.post(
        "/register",
        status_code=201,
        response_model=MessageResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Missing fields, bad image or no face"},
            500: {"model": ErrorResponse, "description": "Internal error"}
        },
        summary="Register a face under a name"
    )
    async def register(
        body: RegisterRequest,
        service: FaceRegistryService = Depends(get_service)
    ):
        """Store `name` with the embedding of the face found in `image`."""
        record = await service.enroll(body.name, body.image)
        return MessageResponse(message=f"Face registered for {record.name}")

    # ========================================================================
    # Recognize
    # ========================================================================
    @app.post(
        "/recognize",
        response_model=MessageResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Missing image, bad image or no face"},
            404: {"model": ErrorResponse, "description": "No registered identity is close enough"},
            500: {"model": ErrorResponse, "description": "Internal error"}
        },
        summary="Recognize a face"
    )
    async def recognize(
        body: RecognizeRequest,
        service: FaceRegistryService = Depends(get_service)
    ):
        """Return the name of the closest registered face within the threshold."""
        match = await service.recognize(body.image)
        return MessageResponse(message=f"Recognized: {match.name}")

    # ========================================================================
    # Utility endpoints
    # ========================================================================
    @app.get("/records", response_model=IdentityList, summary="List registered identities")
    async def list_records(
        skip: int = Query(0, ge=0, description="Number of records to skip"),
        limit: int = Query(100, ge=1, le=1000, description="Maximum number of records to return"),
        service: FaceRegistryService = Depends(get_service)
    ):
        async with service.session_maker() as session:
            total_count = await IdentityRecordRepository.count(session)
            records = await IdentityRecordRepository.list_records(session, skip=skip, limit=limit)
        return IdentityList(total_count=total_count, records=records)

    @app.get("/health", response_model=HealthResponse)
    async def health_check(service: FaceRegistryService = Depends(get_service)):
        """Health check endpoint."""
        try:
            async with service.session_maker() as session:
                db_count = await IdentityRecordRepository.count(session)
            db_status = "healthy"
        except StorageError as e:
            logger.error(f"Database health check failed: {e}")
            db_count = 0
            db_status = "unhealthy"

        healthy = db_status == "healthy" and service.ready
        return HealthResponse(
            status="healthy" if healthy else "degraded",
            model_loaded=service.ready,
            database_status=db_status,
            total_records=db_count
        )

    # Exception handlers
    @app.exception_handler(FaceRegistryError)
    async def face_registry_exception_handler(request, exc):
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": type(exc).__name__, "message": exc.message}
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request, exc):
        """Malformed bodies are client errors like any other missing field."""
        return JSONResponse(
            status_code=400,
            content={"error": "ValidationError", "message": "Malformed request body"}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request, exc):
        """Custom HTTP exception handler."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "HTTPException", "message": str(exc.detail)}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        """General exception handler."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "InternalServerError", "message": "An unexpected error occurred"}
        )

    return app


app = create_app()


def run():
    import uvicorn
    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    run()
