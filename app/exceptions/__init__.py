# Custom exceptions package
from app.exceptions.base import (
    BaseErrorCode,
    ScanErrorCode,
    AuthErrorCode,
    EnumException
)
from app.exceptions.scan import (
    ScanError,
    CameraUnavailable,
    AnalysisFailed,
    ThumbnailFailed,
    StorageUnavailable,
    InvalidTransition
)

__all__ = [
    'BaseErrorCode',
    'ScanErrorCode',
    'AuthErrorCode',
    'EnumException',
    'ScanError',
    'CameraUnavailable',
    'AnalysisFailed',
    'ThumbnailFailed',
    'StorageUnavailable',
    'InvalidTransition'
]
