from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
import logging
import time
import uuid
from datetime import datetime
from typing import Optional

from src.models.request_models import TripCreateRequest, FetchUrlRequest
from src.models.response_models import (
    CreateTripResponse,
    FetchUrlResponse,
    RegenerateTripResponse,
    TripDebugRecord,
    TripListResponse,
    TripRecord,
)
from src.services.ai_provider import AIConfigurationError
from src.services.content_summarizer import ContentSummarizer
from src.services.geocoding_service import LocationResolver, build_location_resolver
from src.services.trip_analyzer import TripAnalyzer
from src.services.trip_service import TripService
from src.services.url_fetcher import UrlContentFetcher
from src.utils.config import get_settings, validate_settings
from src.utils.database import DatabaseManager
from src.utils.formatters import ResponseFormatter
from src.utils.validators import TripInputValidator

# Configure logging
logging.basicConfig(
    level=getattr(logging, get_settings().LOG_LEVEL.upper(), logging.INFO),
    format=get_settings().LOG_FORMAT
)
logger = logging.getLogger(__name__)

# Global services (initialized on startup)
db_manager: DatabaseManager = None
location_resolver: LocationResolver = None
trip_analyzer: TripAnalyzer = None
content_summarizer: ContentSummarizer = None
url_fetcher: UrlContentFetcher = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize services on startup and release them on shutdown"""
    global db_manager, location_resolver, trip_analyzer, content_summarizer, url_fetcher

    settings = get_settings()

    # Missing AI credentials are reported here and fail the first generation request
    validate_settings()

    logger.info("Initializing services...")
    db_manager = DatabaseManager()
    location_resolver = build_location_resolver(settings)
    trip_analyzer = TripAnalyzer(settings=settings)
    content_summarizer = ContentSummarizer(settings=settings)
    url_fetcher = UrlContentFetcher(settings)
    logger.info("All services initialized successfully")

    yield

    if db_manager is not None:
        db_manager.close()


# Initialize FastAPI app
app = FastAPI(
    title="AwesomeSOS API",
    description="Turn adventure trip descriptions into shareable safety plans",
    version=get_settings().API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    """Log each request with an id and timing"""
    request_id = str(uuid.uuid4())
    start_time = time.time()

    response = await call_next(request)

    processing_time = (time.time() - start_time) * 1000
    logger.info(
        f"Request {request_id} {request.method} {request.url.path} -> {response.status_code} ({processing_time:.2f}ms)",
        extra={
            'request_id': request_id,
            'status_code': response.status_code,
            'processing_time_ms': processing_time
        }
    )
    return response


# Dependencies
def get_database() -> DatabaseManager:
    if db_manager is None:
        raise HTTPException(status_code=503, detail="Database not available")
    return db_manager


def get_trip_service(db: DatabaseManager = Depends(get_database)) -> TripService:
    if trip_analyzer is None or location_resolver is None:
        raise HTTPException(status_code=503, detail="Trip service not available")
    return TripService(db, trip_analyzer, location_resolver)


def get_url_fetcher() -> UrlContentFetcher:
    if url_fetcher is None:
        raise HTTPException(status_code=503, detail="URL fetcher not available")
    return url_fetcher


def get_summarizer() -> ContentSummarizer:
    if content_summarizer is None:
        raise HTTPException(status_code=503, detail="Summarizer not available")
    return content_summarizer


# =============================================================================
# TRIP ENDPOINTS
# =============================================================================

@app.post("/api/v1/trips", response_model=CreateTripResponse, status_code=201)
async def create_trip(request: TripCreateRequest, service: TripService = Depends(get_trip_service)):
    """Analyze a trip description and store it behind a share id"""
    validation = TripInputValidator.validate_trip_description(request.trip_description)
    if not validation['valid']:
        raise HTTPException(status_code=400, detail=validation['errors'][0])

    try:
        trip = await service.create_trip(request)
        return CreateTripResponse(share_id=trip.share_id, trip=trip)

    except AIConfigurationError as e:
        logger.error(f"[trips] AI provider misconfigured: {str(e)}")
        raise HTTPException(status_code=500, detail=f"AI provider is not configured: {str(e)}")
    except SQLAlchemyError as e:
        logger.error(f"[trips] Error saving trip: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create trip")


@app.get("/api/v1/trips", response_model=TripListResponse)
async def list_trips(
    limit: int = Query(20),
    offset: int = Query(0),
    sort_by: Optional[str] = Query("created_at", alias="sortBy"),
    sort_order: Optional[str] = Query("desc", alias="sortOrder"),
    db: DatabaseManager = Depends(get_database)
):
    """Paginated trip list for the browse page"""
    limit = max(1, min(limit, get_settings().TRIPS_MAX_PAGE_SIZE))
    offset = max(0, offset)

    try:
        trips, total = await db.list_trips(limit=limit, offset=offset, sort_by=sort_by, sort_order=sort_order)
    except SQLAlchemyError as e:
        logger.error(f"[trips] Error listing trips: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch trips")

    return TripListResponse(
        trips=[ResponseFormatter.format_trip_summary(t) for t in trips],
        total_count=total,
        has_more=offset + limit < total
    )


@app.get("/api/v1/trips/{share_id}", response_model=TripRecord)
async def get_trip(share_id: str, db: DatabaseManager = Depends(get_database)):
    """Shared trip view; counts one view per read"""
    try:
        trip = await db.get_trip_by_share_id(share_id)
    except SQLAlchemyError as e:
        logger.error(f"[trips] Error retrieving trip {share_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to load trip")

    if trip is None:
        raise HTTPException(status_code=404, detail="Trip not found")
    return trip


@app.get("/api/v1/trips/{share_id}/debug", response_model=TripDebugRecord)
async def get_trip_debug(share_id: str, db: DatabaseManager = Depends(get_database)):
    """Full record including the AI response log; does not count a view"""
    try:
        trip = await db.get_trip_debug(share_id)
    except SQLAlchemyError as e:
        logger.error(f"[trips] Error retrieving debug view for {share_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to load trip")

    if trip is None:
        raise HTTPException(status_code=404, detail="Trip not found")
    return trip


@app.post("/api/v1/trips/{share_id}/regenerate", response_model=RegenerateTripResponse)
async def regenerate_trip(share_id: str, service: TripService = Depends(get_trip_service)):
    """Re-run analysis and geocoding for a stored trip"""
    try:
        trip = await service.regenerate_trip(share_id)
    except (AIConfigurationError, SQLAlchemyError) as e:
        logger.error(f"[trips] Error regenerating trip {share_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to regenerate trip information")

    if trip is None:
        raise HTTPException(status_code=404, detail="Trip not found")
    return RegenerateTripResponse(trip=trip)


# =============================================================================
# URL IMPORT
# =============================================================================

@app.post("/api/v1/fetch-url", response_model=FetchUrlResponse, response_model_exclude_none=True)
async def fetch_url(
    request: FetchUrlRequest,
    fetcher: UrlContentFetcher = Depends(get_url_fetcher),
    summarizer: ContentSummarizer = Depends(get_summarizer)
):
    """Fetch a trip page and summarize it into a description plus a detailed extract"""
    url = (request.url or "").strip()
    if not url:
        raise HTTPException(status_code=400, detail="URL is required")
    if not TripInputValidator.is_valid_url(url):
        raise HTTPException(status_code=400, detail="Invalid URL format")

    try:
        summarizer.ensure_configured()

        result = await fetcher.fetch(url)
        if result.error:
            raise HTTPException(status_code=result.status_code, detail=result.error)

        processed = await summarizer.summarize(result.content, title=result.title, url=result.url)

        # Final safety check: never hand a bare URL back as the description
        content = ResponseFormatter.ensure_readable(processed.summary, title=result.title, url=result.url)
        if content != processed.summary:
            logger.error("[fetch-url] Blocking URL from being returned as content")

        return FetchUrlResponse(
            content=content,
            optimized_content=processed.optimized_content,
            title=result.title,
            url=result.url,
            error=processed.error
        )

    except HTTPException:
        raise
    except AIConfigurationError as e:
        logger.error(f"[fetch-url] AI provider misconfigured: {str(e)}")
        raise HTTPException(status_code=500, detail=f"AI provider is not configured: {str(e)}")
    except Exception as e:
        logger.error(f"[fetch-url] Unexpected error: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch URL content")


# =============================================================================
# SERVICE ENDPOINTS
# =============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    services = {
        "database": db_manager is not None,
        "trip_analyzer": trip_analyzer is not None,
        "location_resolver": location_resolver is not None,
        "summarizer": content_summarizer is not None,
        "url_fetcher": url_fetcher is not None
    }
    database_ok = await db_manager.check_connection() if db_manager is not None else False
    healthy = all(services.values()) and database_ok

    payload = {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "services": services,
        "database_reachable": database_ok,
        "ai_provider": get_settings().AI_PROVIDER,
        "version": get_settings().API_VERSION
    }
    return JSONResponse(status_code=200 if healthy else 503, content=payload)


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "AwesomeSOS API",
        "version": get_settings().API_VERSION,
        "description": "Describe an adventure, get a shareable safety plan",
        "docs": "/docs",
        "health": "/health"
    }


# ============================================================================
# Error Handlers
# ============================================================================
@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """Handle HTTP exceptions"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "timestamp": datetime.utcnow().isoformat(),
            "path": str(request.url)
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """Handle general exceptions"""
    logger.error(f"Unhandled exception: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "timestamp": datetime.utcnow().isoformat(),
            "path": str(request.url)
        }
    )
