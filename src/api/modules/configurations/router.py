from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from api.common.errors import ConflictError
from api.deps.configurations import get_configurations_service_dep
from api.modules.configurations.schemas import ConfigurationCreateRequest, ConfigurationResponse
from api.modules.configurations.service import ConfigurationsService

router = APIRouter(prefix="/configurations", tags=["configurations"])
CONFIGURATIONS_SERVICE_DEP = Depends(get_configurations_service_dep)

_CONFIGURATION_EXAMPLE = {
    "id": "7d1f0c52-3a4b-4c5d-9e6f-7a8b9c0d1e2f",
    "version_name": "v2",
    "k_policy": "linear_decay",
    "k_factor": None,
    "base_k_factor": 20.0,
    "new_player_k_bonus": 48.0,
    "new_player_bonus_period": 10,
    "starting_elo": 1000.0,
    "description": "New-player bonus decaying linearly over 10 games.",
    "is_active": False,
    "created_by": "admin",
    "created_at": "2026-03-01T00:00:00",
}


@router.get(
    "",
    response_model=list[ConfigurationResponse],
    summary="List Rating Configurations",
    description="Lists every rating configuration version, oldest first.",
)
async def list_configurations(
    configurations_service: ConfigurationsService = CONFIGURATIONS_SERVICE_DEP,
) -> list[ConfigurationResponse]:
    configs = await configurations_service.list_configurations()
    return [ConfigurationResponse.model_validate(config) for config in configs]


@router.post(
    "",
    response_model=ConfigurationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Rating Configuration",
    description=(
        "Registers a new rating configuration version. "
        "K-factor parameters are validated against the chosen policy."
    ),
    responses={
        201: {
            "description": "Configuration created.",
            "content": {"application/json": {"example": _CONFIGURATION_EXAMPLE}},
        },
        400: {
            "description": "Invalid parameters or duplicate version name.",
            "content": {
                "application/json": {
                    "example": {"detail": "Configuration version 'v2' already exists."}
                }
            },
        },
    },
)
async def post_configuration(
    request: ConfigurationCreateRequest,
    configurations_service: ConfigurationsService = CONFIGURATIONS_SERVICE_DEP,
) -> ConfigurationResponse:
    try:
        config = await configurations_service.create_configuration(request)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return ConfigurationResponse.model_validate(config)


@router.get(
    "/active",
    response_model=ConfigurationResponse,
    summary="Get Active Rating Configuration",
    responses={
        200: {
            "description": "Active configuration returned.",
            "content": {"application/json": {"example": _CONFIGURATION_EXAMPLE}},
        },
        404: {
            "description": "No configuration is active.",
            "content": {
                "application/json": {"example": {"detail": "No active rating configuration."}}
            },
        },
    },
)
async def get_active_configuration(
    configurations_service: ConfigurationsService = CONFIGURATIONS_SERVICE_DEP,
) -> ConfigurationResponse:
    config = await configurations_service.get_active_configuration()
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active rating configuration.",
        )
    return ConfigurationResponse.model_validate(config)


@router.get(
    "/{version_name}",
    response_model=ConfigurationResponse,
    summary="Get Rating Configuration",
)
async def get_configuration(
    version_name: str,
    configurations_service: ConfigurationsService = CONFIGURATIONS_SERVICE_DEP,
) -> ConfigurationResponse:
    try:
        config = await configurations_service.get_configuration(version_name)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return ConfigurationResponse.model_validate(config)


@router.post(
    "/{version_name}/activate",
    response_model=ConfigurationResponse,
    summary="Activate Rating Configuration",
    description=(
        "Makes this version the one tagged onto newly submitted games. "
        "Existing games keep the version they were played under."
    ),
    responses={
        404: {
            "description": "Unknown version.",
            "content": {
                "application/json": {
                    "example": {"detail": "Rating configuration not found: v9"}
                }
            },
        },
        409: {
            "description": "Version already active.",
            "content": {
                "application/json": {
                    "example": {"detail": "Rating configuration 'v1' is already active."}
                }
            },
        },
    },
)
async def activate_configuration(
    version_name: str,
    configurations_service: ConfigurationsService = CONFIGURATIONS_SERVICE_DEP,
) -> ConfigurationResponse:
    try:
        config = await configurations_service.activate_configuration(version_name)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return ConfigurationResponse.model_validate(config)


@router.delete(
    "/{version_name}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete Rating Configuration",
    description="Deletes a configuration that is neither active nor referenced by any game.",
)
async def delete_configuration(
    version_name: str,
    configurations_service: ConfigurationsService = CONFIGURATIONS_SERVICE_DEP,
) -> Response:
    try:
        await configurations_service.delete_configuration(version_name)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
