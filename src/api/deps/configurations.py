from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.db.session import get_session
from api.modules.configurations.repository import ConfigurationsRepository
from api.modules.configurations.service import ConfigurationsService

SESSION_DEP = Depends(get_session)


def get_configurations_service_dep(
    session: AsyncSession = SESSION_DEP,
) -> ConfigurationsService:
    return ConfigurationsService(repository=ConfigurationsRepository(session=session))
