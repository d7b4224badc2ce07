"""Phone form error taxonomy and data service error classification.

Every failure ends up as one of these, carrying a single user-facing message.
The controller records the message in the form state and never re-raises.
"""

from ..config import settings
from ..integrations.data_service import PERMISSION_DENIED_CODE, DataServiceError, DataServiceUnavailable

DUPLICATE_CODE = "23505"
RATE_LIMITED_STATUS = 429


class PhoneFormError(Exception):
    """Base class for errors shown on the phone form."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail


class PhoneValidationError(PhoneFormError):
    """Phone is not exactly 10 digits; raised before any request is sent."""

    user_message = "The phone number must have exactly 10 digits."


class DuplicatePhoneError(PhoneFormError):
    user_message = "This phone number is already registered."


class PermissionDeniedError(PhoneFormError):
    """Rejected by the data service's row ownership policy."""

    user_message = "You are not allowed to change this phone number."


class CapacityError(PhoneFormError):
    user_message = "You have reached the maximum number of phone numbers."


class TransportError(PhoneFormError):
    user_message = "The phone service is unavailable. Please try again."


def _is_capacity_message(message: str) -> bool:
    return any(marker in message for marker in settings.capacity_markers_list)


def classify_error(exc: Exception) -> PhoneFormError:
    """Translate a data service failure into a form error.

    Typed codes and statuses are checked first; message substrings are the
    fallback for services that only report free text. A rejected token (401)
    is an identity problem, not an ownership one, and surfaces as a transport
    error so the caller can renew the session and retry.
    """
    if isinstance(exc, PhoneFormError):
        return exc
    if isinstance(exc, DataServiceUnavailable) or not isinstance(exc, DataServiceError):
        return TransportError(str(exc))

    message = (exc.message or "").lower()

    if exc.status_code == RATE_LIMITED_STATUS:
        return TransportError(exc.message)
    if exc.code == DUPLICATE_CODE or "duplicate" in message:
        return DuplicatePhoneError(exc.message)
    if _is_capacity_message(message):
        return CapacityError(exc.message)
    if (
        exc.code == PERMISSION_DENIED_CODE
        or exc.status_code == 403
        or "row-level security" in message
        or "permission denied" in message
    ):
        return PermissionDeniedError(exc.message)
    return TransportError(exc.message)
