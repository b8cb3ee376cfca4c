from enum import Enum

from fastapi import HTTPException


class BaseErrorCode(Enum):
    def __init__(self, code: int, message: str):
        self._value_ = code
        self.message = message

    @property
    def code(self):
        return self.value

    def as_dict(self, extras=None, **kwargs):
        return {
            "code": self.code,
            "message": self.message.format(**kwargs),
            "name": self.name,
            "extras": extras
        }


class ScanErrorCode(BaseErrorCode):
    CAMERA_UNAVAILABLE = (2001, "Camera is not available. Please upload a photo instead.")
    ANALYSIS_FAILED = (2002, "Failed to analyze image. Please try again.")
    THUMBNAIL_FAILED = (2003, "Could not prepare the image for history. Please try saving again.")
    STORAGE_UNAVAILABLE = (2004, "History storage is unavailable. Your result is still shown.")
    INVALID_TRANSITION = (2005, "Cannot {action} while the scan is {state}")


class AuthErrorCode(BaseErrorCode):
    AUTH_REQUIRED = (3001, "Authentication required")
    INVALID_TOKEN = (3002, "Invalid or expired token")
    INVALID_CREDENTIALS = (3003, "Invalid credentials")
    USER_EXISTS = (3004, "User already exists")
    NO_SESSION = (3005, "No active scan session")


class EnumException(HTTPException):
    def __init__(self, status_code, error_enum: BaseErrorCode, headers=None, extras=None, err_kwargs=None):
        if err_kwargs is None:
            err_kwargs = {}
        super().__init__(status_code, detail=error_enum.as_dict(extras, **err_kwargs), headers=headers)


__all__ = [
    "BaseErrorCode",
    "ScanErrorCode",
    "AuthErrorCode",
    "EnumException",
]
