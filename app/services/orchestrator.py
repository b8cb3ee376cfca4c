import asyncio
import logging
from typing import Callable, Dict, Optional

from app.constants.languages import Language
from app.exceptions.scan import (
    AnalysisFailed,
    CameraUnavailable,
    InvalidTransition,
    ScanError,
    StorageUnavailable,
    ThumbnailFailed,
)
from app.schemas.history import HistoryItem
from app.schemas.scan import (
    AnalysisRequest,
    AnalysisResult,
    CapturedImage,
    Notice,
    ScanState,
    SessionView,
    SubjectKind,
    WeatherData,
)
from app.services.camera import CameraSource, capture_from_file
from app.services.gemini import GeminiService
from app.services.history import HistoryStore
from app.services.image import ImageService
from app.services.weather import WeatherService

logger = logging.getLogger(__name__)


class ScanOrchestrator:
    """
    Single-flight capture -> analyze -> save cycle for one user session.

    States: IDLE -> CAPTURING -> CAPTURED -> ANALYZING -> RESULT_SUCCESS | RESULT_FAILURE -> SAVED.
    Only one image/result pair is held at a time. Every abandon (new capture,
    discard, cancel) bumps `_cycle`; an await that resumes into a different
    cycle drops its outcome instead of applying it.

    CameraUnavailable, AnalysisFailed, ThumbnailFailed and StorageUnavailable are
    caught here and exposed as a dismissible `notice`. Nothing is retried
    automatically.
    """

    def __init__(self, identity: str, subject_kind: SubjectKind, language: Language,
                 analysis_client: GeminiService, image_service: ImageService,
                 history_store: HistoryStore, camera: CameraSource,
                 weather_service: Optional[WeatherService] = None,
                 latitude: Optional[float] = None, longitude: Optional[float] = None,
                 analysis_timeout: Optional[float] = None):
        self.identity = identity
        self.subject_kind = subject_kind
        self.language = language
        self.analysis_client = analysis_client
        self.image_service = image_service
        self.history_store = history_store
        self.camera = camera
        self.weather_service = weather_service
        self.latitude = latitude
        self.longitude = longitude
        self.analysis_timeout = analysis_timeout

        self.state = ScanState.IDLE
        self.notice: Optional[Notice] = None
        self._image: Optional[CapturedImage] = None
        self._request: Optional[AnalysisRequest] = None
        self._result: Optional[AnalysisResult] = None
        self._saved_item: Optional[HistoryItem] = None
        self._cycle = 0
        self._opening = False
        self._shooting = False
        self._saving = False
        self._weather_task: Optional[asyncio.Task] = None

    # --- weather ---

    def start_weather(self):
        """Kick off the background weather lookup. Must be called from a running loop."""
        if self.weather_service is None or self._weather_task is not None:
            return
        self._weather_task = asyncio.create_task(
            self.weather_service.get_current_weather(self.latitude, self.longitude)
        )

    @property
    def weather(self) -> Optional[WeatherData]:
        task = self._weather_task
        if task is None or not task.done() or task.cancelled() or task.exception() is not None:
            return None
        return task.result()

    # --- helpers ---

    def _require(self, action: str, *states: ScanState):
        if self.state not in states:
            raise InvalidTransition(action, self.state.value)

    def _notify(self, error: ScanError):
        code = error.error_code
        self.notice = Notice(code=code.code, name=code.name, message=code.message)
        logger.warning(f"[{self.identity}] {code.name}: {error}")

    def _release_camera(self):
        # An open or capture in flight settles the device itself when it returns
        if not self._shooting and not self._opening:
            self.camera.release()

    def _reset(self):
        self._cycle += 1
        self._release_camera()
        self._image = None
        self._request = None
        self._result = None
        self._saved_item = None
        self.state = ScanState.IDLE

    def _transition(self, state: ScanState):
        logger.info(f"[{self.identity}] {self.state.value} -> {state.value}")
        self.state = state

    # --- capture ---

    async def start_camera(self):
        if self.state == ScanState.CAPTURING or self._opening:
            raise InvalidTransition("start the camera", self.state.value)
        self._reset()
        self.notice = None
        self._transition(ScanState.CAPTURING)
        cycle = self._cycle

        self._opening = True
        try:
            try:
                await asyncio.to_thread(self.camera.open)
            finally:
                self._opening = False
        except CameraUnavailable as e:
            if cycle == self._cycle:
                self._reset()
                self._notify(e)
            return

        if cycle != self._cycle:
            # Abandoned while the device was opening
            self._release_camera()

    async def take_shot(self):
        self._require("take a photo", ScanState.CAPTURING)
        if self._opening:
            raise InvalidTransition("take a photo", "opening the camera")
        if self._shooting:
            raise InvalidTransition("take a photo", "already capturing a frame")
        cycle = self._cycle
        self._shooting = True
        try:
            try:
                image = await asyncio.to_thread(self.camera.capture)
            finally:
                self._shooting = False
        except CameraUnavailable as e:
            if cycle == self._cycle:
                self._reset()
                self._notify(e)
            return

        if cycle != self._cycle:
            return
        self._image = image
        self._transition(ScanState.CAPTURED)

    def cancel_capture(self):
        self._require("cancel the camera", ScanState.CAPTURING)
        self._reset()

    def choose_file(self, file_bytes: bytes, content_type: Optional[str] = None):
        image = capture_from_file(file_bytes, content_type)
        if image is None:
            return
        self._reset()
        self.notice = None
        self._image = image
        self._transition(ScanState.CAPTURED)

    def discard(self):
        if self.state == ScanState.IDLE:
            return
        logger.info(f"[{self.identity}] discarding {self.state.value}")
        self._reset()

    # --- analysis ---

    async def analyze(self):
        self._require("analyze", ScanState.CAPTURED)
        weather = self.weather
        self._request = AnalysisRequest(
            image_bytes=self._image.data,
            mime_type=self._image.mime_type,
            subject_kind=self.subject_kind,
            language=self.language,
            weather_context=weather.as_context() if weather else None
        )
        await self._run_analysis()

    async def retry(self):
        self._require("retry", ScanState.RESULT_FAILURE)
        await self._run_analysis()

    async def _run_analysis(self):
        request = self._request
        cycle = self._cycle
        self.notice = None
        self._transition(ScanState.ANALYZING)

        try:
            result = await self.analysis_client.analyze(request, timeout=self.analysis_timeout)
        except AnalysisFailed as e:
            if cycle != self._cycle:
                logger.info(f"[{self.identity}] dropping failure of a discarded analysis")
                return
            self._notify(e)
            self._transition(ScanState.RESULT_FAILURE)
            return

        if cycle != self._cycle:
            logger.info(f"[{self.identity}] dropping result of a discarded analysis")
            return
        self._result = result
        self._transition(ScanState.RESULT_SUCCESS)

    # --- persistence ---

    async def save(self) -> Optional[HistoryItem]:
        self._require("save", ScanState.RESULT_SUCCESS)
        if self._saving:
            raise InvalidTransition("save", "already saving")
        request, result, cycle = self._request, self._result, self._cycle
        self._saving = True
        self.notice = None
        try:
            thumbnail = await asyncio.to_thread(self.image_service.derive_thumbnail_b64, request.image_bytes)
            if cycle != self._cycle:
                return None
            item = await self.history_store.save(self.identity, self.subject_kind, thumbnail, result)
        except (ThumbnailFailed, StorageUnavailable) as e:
            # Result stays on screen so the user can retry the save
            if cycle == self._cycle:
                self._notify(e)
            return None
        finally:
            self._saving = False

        if cycle == self._cycle:
            self._saved_item = item
            self._transition(ScanState.SAVED)
        return item

    # --- presentation ---

    def dismiss_notice(self):
        self.notice = None

    def snapshot(self) -> SessionView:
        return SessionView(
            state=self.state,
            subject_kind=self.subject_kind,
            language=self.language,
            has_image=self._image is not None,
            weather=self.weather,
            result=self._result,
            saved_item_id=self._saved_item.id if self._saved_item else None,
            notice=self.notice
        )

    def close(self):
        self._reset()
        if self._weather_task is not None and not self._weather_task.done():
            self._weather_task.cancel()
        self._weather_task = None


class SessionRegistry:
    """At most one live orchestrator per identity, in process memory."""

    def __init__(self, factory: Callable[..., ScanOrchestrator]):
        self.factory = factory
        self._sessions: Dict[str, ScanOrchestrator] = {}

    def open(self, identity: str, subject_kind: SubjectKind, language: Language,
             latitude: Optional[float] = None, longitude: Optional[float] = None) -> ScanOrchestrator:
        self.close(identity)
        session = self.factory(
            identity=identity,
            subject_kind=subject_kind,
            language=language,
            latitude=latitude,
            longitude=longitude
        )
        session.start_weather()
        self._sessions[identity] = session
        logger.info(f"Opened {subject_kind.value} scan session for {identity}")
        return session

    def get(self, identity: str) -> Optional[ScanOrchestrator]:
        return self._sessions.get(identity)

    def close(self, identity: str):
        session = self._sessions.pop(identity, None)
        if session is not None:
            session.close()

    def close_all(self):
        for identity in list(self._sessions):
            self.close(identity)
