from __future__ import annotations

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from api.db.models import EloConfiguration, Game


class ConfigurationsRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_version(self, version_name: str) -> EloConfiguration | None:
        stmt = select(EloConfiguration).where(EloConfiguration.version_name == version_name)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_active(self) -> EloConfiguration | None:
        stmt = select(EloConfiguration).where(col(EloConfiguration.is_active))
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_all(self) -> list[EloConfiguration]:
        stmt = select(EloConfiguration).order_by(col(EloConfiguration.created_at))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_games_tagged(self, version_name: str) -> int:
        stmt = select(func.count()).select_from(Game).where(Game.elo_version == version_name)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def add(self, config: EloConfiguration) -> EloConfiguration:
        self.session.add(config)
        await self.session.flush()
        return config

    async def deactivate_all(self) -> None:
        await self.session.execute(
            update(EloConfiguration)
            .where(col(EloConfiguration.is_active))
            .values(is_active=False)
        )

    async def delete(self, config: EloConfiguration) -> None:
        await self.session.delete(config)
        await self.session.flush()

    async def commit(self) -> None:
        await self.session.commit()

    async def refresh(self, config: EloConfiguration) -> EloConfiguration:
        await self.session.refresh(config)
        return config
