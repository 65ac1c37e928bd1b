"""Infrastructure provider accessors package."""

from .persistence_provider import (  # noqa: F401
    get_profile_store,
    get_role_repository,
    get_usage_counter_store,
    reset_persistence,
)
from .security_provider import (  # noqa: F401
    get_security_event_log,
    reset_security_event_log,
)
from .service_provider import (  # noqa: F401
    get_admission_controller,
    get_permission_checker,
    get_upload_security_validator,
    get_upload_service,
    get_usage_limit_guard,
    get_usage_service,
    reset_services,
)
from .storage_provider import (  # noqa: F401
    get_document_storage,
    reset_document_storage,
)


async def reset_all_providers() -> None:
    """Reset every provider singleton."""
    await reset_services()
    await reset_persistence()
    await reset_document_storage()
    await reset_security_event_log()


__all__ = [
    "get_profile_store",
    "get_role_repository",
    "get_usage_counter_store",
    "reset_persistence",
    "get_security_event_log",
    "reset_security_event_log",
    "get_admission_controller",
    "get_permission_checker",
    "get_upload_security_validator",
    "get_upload_service",
    "get_usage_limit_guard",
    "get_usage_service",
    "reset_services",
    "get_document_storage",
    "reset_document_storage",
    "reset_all_providers",
]
