from __future__ import annotations

from typing import Tuple


class PassportStudioError(Exception):
    """
    Base class for every failure the pipeline reports to its caller.

    status:
        HTTP-like status signal a request layer can hand back to the client.
    user_message:
        Text that is safe to show to the end user.
    """
    status: int = 500
    default_message: str = "Failed to process image."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def user_message(self) -> str:
        return str(self)


class ValidationError(PassportStudioError):
    status = 400
    default_message = "Invalid request parameters."


class PayloadTooLargeError(ValidationError):
    status = 413
    default_message = "Please select an image smaller than 10MB."


class DecodeError(PassportStudioError):
    status = 400
    default_message = "The uploaded file is not a valid JPEG or PNG image."


class UnsupportedFormatError(PassportStudioError):
    status = 415
    default_message = "Invalid file type. Only JPEG and PNG are allowed."


class InfeasibleLayoutError(PassportStudioError):
    status = 422
    default_message = (
        "Passport photo is too large for the selected sheet size. "
        "Please choose a larger sheet or smaller passport size."
    )


class BackgroundRemovalError(PassportStudioError):
    status = 502
    default_message = "Failed to remove background. Please try again with a different image."


class PreviewCancelled(Exception):
    """Raised inside a preview render when a newer settings generation superseded it."""


def describe_error(exc: BaseException) -> Tuple[int, str]:
    """Map any exception to (status, user-facing message)."""
    if isinstance(exc, PassportStudioError):
        return exc.status, exc.user_message
    return PassportStudioError.status, PassportStudioError.default_message
