"""Storage utility functions."""
import mimetypes

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from core.logging_config import get_logger
from .exceptions import BackendUnavailableError

logger = get_logger(__name__)


def guess_content_type(filename: str) -> str:
    """Guess content type from filename."""
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or "application/octet-stream"


def _log_retry(retry_state) -> None:
    logger.warning(
        "Retrying storage operation",
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception()),
    )


def with_retry(
    max_attempts: int = 3,
    wait_multiplier: float = 1,
    wait_max: float = 10
):
    """Decorator for callers that want to retry backend outages.

    Only BackendUnavailableError is retried; integrity and authorization
    failures propagate on the first attempt.
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=wait_multiplier, max=wait_max),
        retry=retry_if_exception_type(BackendUnavailableError),
        before_sleep=_log_retry,
        reraise=True
    )
