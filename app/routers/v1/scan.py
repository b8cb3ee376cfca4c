from fastapi import APIRouter, UploadFile, File, Depends
from contextlib import contextmanager
import logging

from app.dependencies import require_user, require_session, get_session_registry
from app.exceptions.base import EnumException, ScanErrorCode
from app.exceptions.scan import InvalidTransition
from app.schemas.auth import User
from app.schemas.scan import SessionView, StartSessionRequest
from app.services.orchestrator import ScanOrchestrator, SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scan")


@contextmanager
def transition_guard():
    try:
        yield
    except InvalidTransition as e:
        raise EnumException(409, ScanErrorCode.INVALID_TRANSITION,
                            err_kwargs={"action": e.action, "state": e.state})


@router.post("/session", response_model=SessionView)
async def start_session(
    body: StartSessionRequest,
    user: User = Depends(require_user),
    registry: SessionRegistry = Depends(get_session_registry)
):
    """
    Open a fresh scan session for the caller. Any previous session is torn down
    (camera released, held image dropped) and the weather lookup starts in the background.
    """
    session = registry.open(
        user.phone,
        subject_kind=body.subject_kind,
        language=body.language,
        latitude=body.latitude,
        longitude=body.longitude
    )
    return session.snapshot()


@router.get("/session", response_model=SessionView)
async def get_session(session: ScanOrchestrator = Depends(require_session)):
    return session.snapshot()


@router.post("/camera/start", response_model=SessionView)
async def start_camera(session: ScanOrchestrator = Depends(require_session)):
    with transition_guard():
        await session.start_camera()
    return session.snapshot()


@router.post("/camera/shot", response_model=SessionView)
async def take_shot(session: ScanOrchestrator = Depends(require_session)):
    with transition_guard():
        await session.take_shot()
    return session.snapshot()


@router.post("/camera/cancel", response_model=SessionView)
async def cancel_camera(session: ScanOrchestrator = Depends(require_session)):
    with transition_guard():
        session.cancel_capture()
    return session.snapshot()


@router.post("/file", response_model=SessionView)
async def upload_file(
    file: UploadFile = File(...),
    session: ScanOrchestrator = Depends(require_session)
):
    image_bytes = await file.read()
    session.choose_file(image_bytes, file.content_type)
    return session.snapshot()


@router.post("/analyze", response_model=SessionView)
async def analyze(session: ScanOrchestrator = Depends(require_session)):
    with transition_guard():
        await session.analyze()
    return session.snapshot()


@router.post("/retry", response_model=SessionView)
async def retry(session: ScanOrchestrator = Depends(require_session)):
    with transition_guard():
        await session.retry()
    return session.snapshot()


@router.post("/save", response_model=SessionView)
async def save(session: ScanOrchestrator = Depends(require_session)):
    with transition_guard():
        await session.save()
    return session.snapshot()


@router.post("/discard", response_model=SessionView)
async def discard(session: ScanOrchestrator = Depends(require_session)):
    session.discard()
    return session.snapshot()


@router.post("/notice/dismiss", response_model=SessionView)
async def dismiss_notice(session: ScanOrchestrator = Depends(require_session)):
    session.dismiss_notice()
    return session.snapshot()
