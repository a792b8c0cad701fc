import aiosqlite
from fastapi import Depends, Header

from flashstudy.config import settings
from flashstudy.db.sqlite import get_db, get_setting
from flashstudy.services.llm_service import OllamaClient


async def get_owner_id(x_owner_id: str | None = Header(default=None)) -> str:
    return x_owner_id or settings.default_owner_id


async def get_ai_enabled(db: aiosqlite.Connection = Depends(get_db)) -> bool:
    if not settings.ai_enabled:
        return False
    return (await get_setting(db, "ai_enabled")) != "false"


async def get_llm(db: aiosqlite.Connection = Depends(get_db)) -> OllamaClient:
    model = (await get_setting(db, "llm_model")) or settings.llm_model
    return OllamaClient.from_settings(model)
