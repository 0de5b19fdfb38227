from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.config.settings import Settings, get_settings
from api.db.session import get_session
from api.modules.players.repository import PlayersRepository
from api.modules.players.service import PlayersService

SESSION_DEP = Depends(get_session)
SETTINGS_DEP = Depends(get_settings)


def get_players_service_dep(
    session: AsyncSession = SESSION_DEP,
    settings: Settings = SETTINGS_DEP,
) -> PlayersService:
    return PlayersService(repository=PlayersRepository(session=session), settings=settings)
