from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".flashstudy" / "data"
    sqlite_filename: str = "flashstudy.db"
    ollama_url: str = "http://localhost:11434"
    llm_model: str = "llama3.2:3b"
    llm_timeout: float = 120.0
    ai_enabled: bool = True
    default_owner_id: str = "local"
    max_sessions_per_owner: int = 20   # per session kind; oldest evicted first

    model_config = {"env_prefix": "FLASHSTUDY_"}


settings = Settings()
