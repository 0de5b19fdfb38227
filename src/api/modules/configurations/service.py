from __future__ import annotations

import logging

from api.common.errors import ConflictError
from api.db.models import EloConfiguration
from api.modules.configurations.repository import ConfigurationsRepository
from api.modules.configurations.schemas import ConfigurationCreateRequest
from elo.policy import RatingPolicy

logger = logging.getLogger(__name__)


class ConfigurationsService:
    """Registry of named rating configurations.

    Configurations are append-only: the only field that ever changes after
    creation is ``is_active``, and activation is a single transaction that
    clears the previous flag and sets the new one.
    """

    def __init__(self, repository: ConfigurationsRepository) -> None:
        self.repository = repository

    async def list_configurations(self) -> list[EloConfiguration]:
        return await self.repository.list_all()

    async def get_configuration(self, version_name: str) -> EloConfiguration:
        config = await self.repository.get_by_version(version_name)
        if config is None:
            raise LookupError(f"Rating configuration not found: {version_name}")
        return config

    async def get_active_configuration(self) -> EloConfiguration | None:
        return await self.repository.get_active()

    async def create_configuration(self, payload: ConfigurationCreateRequest) -> EloConfiguration:
        version_name = payload.version_name.strip()
        if not version_name:
            raise ValueError("version_name cannot be blank.")
        policy = RatingPolicy.from_fields(payload.model_dump())
        if await self.repository.get_by_version(version_name) is not None:
            raise ValueError(f"Rating configuration '{version_name}' already exists.")

        config = EloConfiguration(
            version_name=version_name,
            k_policy=policy.kind,
            k_factor=policy.k_factor,
            base_k_factor=policy.base_k_factor,
            new_player_k_bonus=policy.new_player_k_bonus,
            new_player_bonus_period=policy.new_player_bonus_period,
            starting_elo=payload.starting_elo,
            description=payload.description,
            created_by=payload.created_by,
        )
        if payload.activate:
            await self.repository.deactivate_all()
            config.is_active = True
        await self.repository.add(config)
        await self.repository.commit()
        logger.info(
            "configuration_created",
            extra={"version_name": version_name, "is_active": config.is_active},
        )
        return await self.repository.refresh(config)

    async def activate_configuration(self, version_name: str) -> EloConfiguration:
        config = await self.get_configuration(version_name)
        if config.is_active:
            raise ConflictError(f"Rating configuration '{version_name}' is already active.")
        await self.repository.deactivate_all()
        config.is_active = True
        await self.repository.add(config)
        await self.repository.commit()
        logger.info("configuration_activated", extra={"version_name": version_name})
        return await self.repository.refresh(config)

    async def delete_configuration(self, version_name: str) -> None:
        config = await self.get_configuration(version_name)
        if config.is_active:
            raise ValueError("Cannot delete the active rating configuration.")
        if await self.repository.count_games_tagged(version_name) > 0:
            raise ValueError(
                f"Rating configuration '{version_name}' is referenced by recorded games."
            )
        await self.repository.delete(config)
        await self.repository.commit()
        logger.info("configuration_deleted", extra={"version_name": version_name})
