from pydantic import BaseModel


class SettingUpdate(BaseModel):
    key: str
    value: str


class LLMStatus(BaseModel):
    ai_enabled: bool
    model: str
    available: bool
