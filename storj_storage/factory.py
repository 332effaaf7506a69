"""Storage service factory with registry pattern."""
from typing import Any, Awaitable, Callable, Mapping, Union
import importlib

from pydantic import ValidationError as PydanticValidationError

from core.logging_config import get_logger
from .base import StorageService
from .config import ServiceType, StorageConfig
from .exceptions import ConfigurationError

logger = get_logger(__name__)

# Service builder type
ServiceBuilder = Callable[[str, StorageConfig], Awaitable[StorageService]]

# Global registry for storage services
_service_registry: dict[str, ServiceBuilder] = {}

_BUILTIN_SERVICES = [
    (ServiceType.STORJ, "storj_storage.providers.storj", "build_storj_service"),
]


def register_service(
    service_type: Union[ServiceType, str],
    builder: ServiceBuilder
) -> None:
    """Register a storage service builder.

    Args:
        service_type: Type of storage service
        builder: Async function to build service instance
    """
    key = getattr(service_type, "value", service_type)
    _service_registry[key] = builder
    logger.info("Registered storage service", service=key)


def unregister_service(service_type: Union[ServiceType, str]) -> None:
    _service_registry.pop(getattr(service_type, "value", service_type), None)


def _auto_register_services() -> None:
    """Auto-register built-in storage services."""
    for service_type, module_path, builder_name in _BUILTIN_SERVICES:
        if service_type.value in _service_registry:
            continue
        module = importlib.import_module(module_path)
        register_service(service_type, getattr(module, builder_name))


def load_config(profile: Union[StorageConfig, Mapping[str, Any]]) -> StorageConfig:
    """Validate a configuration profile into a StorageConfig."""
    if isinstance(profile, StorageConfig):
        return profile
    try:
        return StorageConfig(**dict(profile))
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid storage configuration: {e}") from e


async def create_service(name: str, config: StorageConfig) -> StorageService:
    """Create storage service instance based on config.

    Raises:
        ConfigurationError: If service type not registered or creation fails
    """
    if config.service not in _service_registry:
        _auto_register_services()

        if config.service not in _service_registry:
            raise ConfigurationError(
                f"Storage service '{config.service}' not registered. "
                f"Available: {list(_service_registry.keys())}"
            )

    builder = _service_registry[config.service]

    try:
        service = await builder(name, config)
    except ConfigurationError:
        logger.error("Failed to create storage service", name=name, service=config.service)
        raise
    except Exception as e:
        logger.error(
            "Failed to create storage service",
            name=name,
            service=config.service,
            error=str(e)
        )
        raise ConfigurationError(
            f"Failed to create storage service '{name}': {e}"
        ) from e

    logger.info(
        "Created storage service",
        name=name,
        service=config.service,
        bucket=config.bucket
    )
    return service


async def configure_service(
    name: str,
    configurations: Mapping[str, Any]
) -> StorageService:
    """Build the service configured under name.

    Args:
        name: Profile name, e.g. "storj" or "storj_public"
        configurations: Mapping of profile name to profile settings

    Raises:
        ConfigurationError: If no profile has that name
    """
    profile = configurations.get(name)
    if profile is None:
        profile = configurations.get(str(name).lower())
    if profile is None:
        raise ConfigurationError(
            f"Missing configuration for the '{name}' storage service. "
            f"Configurations available for {sorted(configurations)}"
        )
    return await create_service(name, load_config(profile))
