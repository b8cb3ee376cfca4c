"""
Error taxonomy of the capture-analyze-persist pipeline.
The four recoverable conditions are turned into user notices by the orchestrator.
"""
from app.exceptions.base import ScanErrorCode


class ScanError(Exception):
    """Base exception for pipeline errors"""
    error_code: ScanErrorCode = None


class CameraUnavailable(ScanError):
    """Camera permission denied, no device, or no frame could be read"""
    error_code = ScanErrorCode.CAMERA_UNAVAILABLE


class AnalysisFailed(ScanError):
    """Remote analysis errored, timed out, or returned a malformed response"""
    error_code = ScanErrorCode.ANALYSIS_FAILED


class ThumbnailFailed(ScanError):
    """Captured payload could not be decoded as an image"""
    error_code = ScanErrorCode.THUMBNAIL_FAILED


class StorageUnavailable(ScanError):
    """Persistence medium is unreachable or refused the write"""
    error_code = ScanErrorCode.STORAGE_UNAVAILABLE


class InvalidTransition(ScanError):
    """Action is not allowed in the current orchestrator state"""
    error_code = ScanErrorCode.INVALID_TRANSITION

    def __init__(self, action: str, state: str):
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} while the scan is {state}")
