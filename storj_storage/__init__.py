"""Storage service entry point and lifecycle management."""
from typing import Optional

from core.config import settings
from core.logging_config import get_logger
from .base import StorageService
from .config import ServiceType, StorageConfig
from .exceptions import ConfigurationError
from .factory import configure_service, create_service, load_config, register_service

logger = get_logger(__name__)

# Global storage service instance
_storage_service: Optional[StorageService] = None


def get_storage_config(name: Optional[str] = None) -> StorageConfig:
    """Get the configuration of a named service from settings.

    Args:
        name: Profile name; defaults to settings.default_storage_service

    Returns:
        Storage configuration instance
    """
    name = (name or settings.default_storage_service).lower()
    profile = settings.storage_services.get(name)
    if profile is None:
        raise ConfigurationError(
            f"Missing configuration for the '{name}' storage service. "
            f"Configurations available for {sorted(settings.storage_services)}"
        )
    return load_config(profile)


async def init_storage_service(name: Optional[str] = None) -> StorageService:
    """Initialize the process-wide storage service.

    Creates and configures the service named in settings.
    """
    global _storage_service

    if _storage_service is not None:
        logger.warning("Storage service already initialized", name=_storage_service.name)
        return _storage_service

    name = (name or settings.default_storage_service).lower()
    config = get_storage_config(name)
    _storage_service = await create_service(name, config)

    logger.info(
        "Storage service initialized",
        name=name,
        bucket=config.bucket,
        public=config.public
    )
    return _storage_service


def get_storage_service() -> StorageService:
    """Get the process-wide storage service.

    Raises:
        RuntimeError: If storage not initialized
    """
    if _storage_service is None:
        raise RuntimeError(
            "Storage service not initialized. "
            "Call init_storage_service() during startup."
        )
    return _storage_service


async def shutdown_storage_service() -> None:
    """Drop the process-wide storage service."""
    global _storage_service

    if _storage_service is None:
        return

    client = getattr(_storage_service, "client", None)
    try:
        close = getattr(client, "close", None)
        if close is not None:
            close()
    finally:
        logger.info("Storage service shutdown", name=_storage_service.name)
        _storage_service = None


# Export public interface
__all__ = [
    # Lifecycle
    "init_storage_service",
    "get_storage_service",
    "shutdown_storage_service",

    # Configuration
    "get_storage_config",
    "StorageConfig",
    "ServiceType",
    "configure_service",
    "create_service",
    "register_service",

    # Base types
    "StorageService",
    "StorjService",

    # Models
    "Disposition",
    "ObjectMetadata",
    "StoredObject",
    "UploadResult",
    "PresignedRequest",

    # Exceptions
    "StorageError",
    "NotFoundError",
    "IntegrityError",
    "PermissionDeniedError",
    "AuthorizationExpiredError",
    "AuthorizationViolationError",
    "BackendUnavailableError",
    "ConfigurationError",
    "ValidationError",
    "InvalidMetadataError",

    # Utils
    "compute_checksum",
    "content_disposition",
    "guess_content_type",
    "with_retry",
]

# Import models and exceptions for easier access
from .models import (
    Disposition,
    ObjectMetadata,
    StoredObject,
    UploadResult,
    PresignedRequest
)
from .exceptions import (
    StorageError,
    NotFoundError,
    IntegrityError,
    PermissionDeniedError,
    AuthorizationExpiredError,
    AuthorizationViolationError,
    BackendUnavailableError,
    ValidationError,
    InvalidMetadataError
)
from .checksum import compute_checksum
from .metadata import content_disposition
from .providers.storj import StorjService
from .utils import (
    guess_content_type,
    with_retry
)
