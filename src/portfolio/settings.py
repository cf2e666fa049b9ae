import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings as app_settings
from src.db.models import User
from src.portfolio.errors import DataUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserSettings:
    base_currency: str
    rules: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    def overrides_for(self, rule_key: str) -> Mapping[str, Any]:
        raw = self.rules.get(rule_key)
        return raw if isinstance(raw, Mapping) else {}


def user_settings_from(user: User) -> UserSettings:
    base = (user.base_currency or app_settings.default_base_currency).upper()
    rules = user.rule_settings if isinstance(user.rule_settings, dict) else {}
    return UserSettings(base_currency=base, rules=rules)


async def load_user_settings(session: AsyncSession, user_id: int) -> UserSettings:
    try:
        result = await session.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
    except SQLAlchemyError as e:
        raise DataUnavailableError(f"Cannot load settings for user {user_id}: {e}") from e
    if user is None:
        raise DataUnavailableError(f"Unknown user {user_id}")
    return user_settings_from(user)
