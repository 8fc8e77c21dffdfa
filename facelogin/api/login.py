"""Face login API endpoints."""
from fastapi import APIRouter, Depends, HTTPException

from facelogin.api.models.login import LoginStatusResponse
from facelogin.core.exceptions import LoginInProgressError
from facelogin.core.logging import get_logger
from facelogin.infrastructure.dependencies import get_login_service
from facelogin.services.login import LoginService

logger = get_logger(__name__)
router = APIRouter(
    responses={
        500: {"description": "Internal server error"}
    }
)


@router.post(
    "/start",
    response_model=LoginStatusResponse,
    status_code=202,
    summary="Start a login attempt",
    description="Loads models, starts the camera, enrolls the roster and begins looking for a known face.",
    responses={
        409: {
            "description": "A login attempt is already in progress",
            "content": {
                "application/json": {
                    "example": {"detail": "A login attempt is already in progress"}
                }
            },
        },
    },
)
async def start_login(
    service: LoginService = Depends(get_login_service)
) -> LoginStatusResponse:
    """Start a new login attempt in the background.

    Args:
        service: Login service provided by dependency injection

    Returns:
        LoginStatusResponse describing the new attempt

    Raises:
        HTTPException: If an attempt is already active
    """
    try:
        await service.start()
    except LoginInProgressError as e:
        logger.warning("Login attempt rejected", error=str(e))
        raise HTTPException(status_code=409, detail=str(e))
    return LoginStatusResponse.from_service(service)


@router.get(
    "/status",
    response_model=LoginStatusResponse,
    summary="Get login status",
    description="Returns the current phase, the recognized identity once locked, and the status history.",
)
async def get_login_status(
    service: LoginService = Depends(get_login_service)
) -> LoginStatusResponse:
    """Report the current login attempt's status."""
    return LoginStatusResponse.from_service(service)


@router.post(
    "/stop",
    response_model=LoginStatusResponse,
    summary="Stop the login attempt",
    description="Stops the current attempt, during bootstrap or while probing. Has no effect once a face is recognized.",
)
async def stop_login(
    service: LoginService = Depends(get_login_service)
) -> LoginStatusResponse:
    """Stop the current attempt and release the camera."""
    await service.stop()
    return LoginStatusResponse.from_service(service)
