from fastapi import FastAPI

from app.config import Settings, init_settings
from app.routers.v1.auth import router as auth_router
from app.routers.v1.history import router as history_router
from app.routers.v1.scan import router as scan_router
from app.services.auth import AuthService
from app.services.camera import CameraSource
from app.services.gemini import GeminiService
from app.services.history import HistoryStore
from app.services.image import ImageService
from app.services.orchestrator import ScanOrchestrator, SessionRegistry
from app.services.redis_manager import RedisManager
from app.services.weather import WeatherService


def build_session_factory(settings: Settings, analysis_client: GeminiService, image_service: ImageService,
                          history_store: HistoryStore, weather_service: WeatherService):
    def factory(identity, subject_kind, language, latitude=None, longitude=None) -> ScanOrchestrator:
        return ScanOrchestrator(
            identity=identity,
            subject_kind=subject_kind,
            language=language,
            analysis_client=analysis_client,
            image_service=image_service,
            history_store=history_store,
            camera=CameraSource(settings.CAMERA_INDEX, settings.CAMERA_JPEG_QUALITY),
            weather_service=weather_service,
            latitude=latitude if latitude is not None else settings.DEFAULT_LATITUDE,
            longitude=longitude if longitude is not None else settings.DEFAULT_LONGITUDE,
            analysis_timeout=settings.ANALYSIS_TIMEOUT_SECONDS
        )
    return factory


def create_app(settings: Settings) -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json"
    )

    redis_manager = RedisManager(settings.REDIS_URL, namespace=settings.STORAGE_NAMESPACE)
    history_store = HistoryStore(redis_manager, limit=settings.HISTORY_LIMIT)
    image_service = ImageService(settings.THUMBNAIL_MAX_SIZE, settings.THUMBNAIL_QUALITY)
    analysis_client = GeminiService(
        api_key=settings.GEMINI_API_KEY,
        model=settings.GEMINI_MODEL,
        timeout=settings.ANALYSIS_TIMEOUT_SECONDS
    )
    weather_service = WeatherService(settings.WEATHER_API_URL, settings.WEATHER_TIMEOUT_SECONDS)

    app.state.redis_manager = redis_manager
    app.state.history_store = history_store
    app.state.auth_service = AuthService(redis_manager, settings.JWT_SECRET, settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    app.state.session_registry = SessionRegistry(
        build_session_factory(settings, analysis_client, image_service, history_store, weather_service)
    )

    @app.on_event("startup")
    async def startup():
        await redis_manager.connect()

    @app.on_event("shutdown")
    async def shutdown():
        # Release any camera still held by an open session
        app.state.session_registry.close_all()
        await redis_manager.close()

    app.include_router(auth_router, prefix=settings.API_V1_STR, tags=["auth"])
    app.include_router(scan_router, prefix=settings.API_V1_STR, tags=["scan"])
    app.include_router(history_router, prefix=settings.API_V1_STR, tags=["history"])

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "redis": "ok" if redis_manager.redis else "unavailable"}

    return app


def get_app() -> FastAPI:
    """Entry point for `uvicorn app.app:get_app --factory`."""
    return create_app(init_settings())
