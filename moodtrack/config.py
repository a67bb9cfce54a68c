import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"


class Settings(BaseModel):
    openai_api_key: Optional[str] = None
    openai_url: str = OPENAI_CHAT_URL
    openai_model: str = "gpt-3.5-turbo"
    ai_temperature: float = 0.7
    ai_max_tokens: int = 100
    ai_timeout: float = 15.0

    # "file", "mongo" or "memory"
    storage_backend: str = "file"
    data_dir: Path = Path("data")
    mongo_uri: Optional[str] = None
    db_name: str = "moodtrack"

    insight_window_days: int = 7
    min_entries_for_insight: int = 3

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_url=os.getenv("OPENAI_URL", OPENAI_CHAT_URL),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-3.5-turbo"),
            ai_temperature=float(os.getenv("AI_TEMPERATURE", 0.7)),
            ai_max_tokens=int(os.getenv("AI_MAX_TOKENS", 100)),
            ai_timeout=float(os.getenv("AI_TIMEOUT", 15)),
            storage_backend=os.getenv("STORAGE_BACKEND", "file").lower(),
            data_dir=Path(os.getenv("DATA_DIR", "data")).expanduser(),
            mongo_uri=os.getenv("MONGO_URI") or None,
            db_name=os.getenv("DB_NAME", "moodtrack"),
            insight_window_days=int(os.getenv("INSIGHT_WINDOW_DAYS", 7)),
            min_entries_for_insight=int(os.getenv("MIN_ENTRIES_FOR_INSIGHT", 3)),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
