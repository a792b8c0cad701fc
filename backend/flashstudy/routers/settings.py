import aiosqlite
from fastapi import APIRouter, Depends, HTTPException

from flashstudy.db.sqlite import get_all_settings, get_db, set_setting
from flashstudy.deps import get_ai_enabled, get_llm
from flashstudy.models.settings import LLMStatus, SettingUpdate
from flashstudy.services.llm_service import OllamaClient

router = APIRouter()

EDITABLE_SETTINGS = {"ai_enabled", "llm_model"}


@router.get("/")
async def list_settings(db: aiosqlite.Connection = Depends(get_db)):
    return await get_all_settings(db)


@router.put("/")
async def update_setting(body: SettingUpdate, db: aiosqlite.Connection = Depends(get_db)):
    if body.key not in EDITABLE_SETTINGS:
        raise HTTPException(status_code=422, detail=f"Unknown setting: {body.key}")
    value = body.value.strip()
    if body.key == "ai_enabled":
        if value.lower() not in ("true", "false"):
            raise HTTPException(status_code=422, detail="ai_enabled must be true or false")
        value = value.lower()
    await set_setting(db, body.key, value)
    return {"key": body.key, "value": value}


@router.get("/llm-status", response_model=LLMStatus)
async def llm_status(
    llm: OllamaClient = Depends(get_llm),
    ai_enabled: bool = Depends(get_ai_enabled),
):
    available = await llm.is_available() if ai_enabled else False
    return LLMStatus(ai_enabled=ai_enabled, model=llm.model, available=available)
