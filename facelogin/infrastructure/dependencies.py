"""FastAPI dependency providers."""
from typing import AsyncGenerator

from fastapi import Depends

from facelogin.core.container import ServiceContainer, container
from facelogin.core.exceptions import ServiceNotInitializedError
from facelogin.services.login import LoginService


async def get_container() -> ServiceContainer:
    """Dependency provider for the global ServiceContainer instance."""
    if not container.login_service:
        # Attempt to initialize if not already done (e.g., during testing)
        try:
            await container.initialize()
        except Exception as e:
            raise ServiceNotInitializedError(f"Service container could not be initialized: {e}")
    return container


async def get_login_service(
    container: ServiceContainer = Depends(get_container)
) -> AsyncGenerator[LoginService, None]:
    """Provide the login service.

    Yields:
        LoginService: The process-wide login service

    Raises:
        ServiceNotInitializedError: If the service is not initialized
    """
    if container.login_service is None:
        raise ServiceNotInitializedError("Login service not initialized")
    yield container.login_service
