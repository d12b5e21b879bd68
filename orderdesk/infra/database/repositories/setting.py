"""Setting repository (JSON values)."""
from __future__ import annotations

import json
from typing import Any, Dict, Optional

from sqlalchemy import select

from orderdesk.infra.database.models.setting import Setting
from orderdesk.infra.database.repositories.base import BaseRepository


class SettingRepository(BaseRepository[Setting]):
    model = Setting

    async def get_value(self, key: str) -> Optional[Any]:
        stmt = select(Setting.value).where(Setting.key == key)
        raw = (await self.session.execute(stmt)).scalar_one_or_none()
        return json.loads(raw) if raw is not None else None

    async def set_value(self, key: str, value: Any, description: Optional[str] = None) -> Setting:
        defaults: Dict[str, Any] = {"value": json.dumps(value, ensure_ascii=False)}
        if description is not None:
            defaults["description"] = description
        setting, _ = await self.upsert({"key": key}, defaults)
        return setting

    async def values_with_prefix(self, prefix: str) -> Dict[str, Any]:
        stmt = select(Setting).where(Setting.key.like(f"{prefix}%")).order_by(Setting.key)
        result = await self.session.execute(stmt)
        return {s.key: json.loads(s.value) for s in result.scalars().all()}

    async def delete_key(self, key: str) -> bool:
        stmt = select(Setting).where(Setting.key == key)
        setting = (await self.session.execute(stmt)).scalar_one_or_none()
        if setting is None:
            return False
        await self.session.delete(setting)
        await self.session.flush()
        return True
