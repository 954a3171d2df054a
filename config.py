import os
from functools import lru_cache
from pathlib import Path
from typing import Optional


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        insights_enabled: bool,
        llm_api_key: Optional[str],
        llm_base_url: Optional[str],
        insight_model: str,
        chat_model: str,
        chat_temperature: float,
        insight_transaction_limit: int,
        agent_max_steps: int,
        llm_timeout_secs: float,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.insights_enabled = insights_enabled
        self.llm_api_key = llm_api_key
        self.llm_base_url = llm_base_url
        self.insight_model = insight_model
        self.chat_model = chat_model
        self.chat_temperature = chat_temperature
        self.insight_transaction_limit = insight_transaction_limit
        self.agent_max_steps = agent_max_steps
        self.llm_timeout_secs = llm_timeout_secs


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("PENNYWISE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def resolve_api_key() -> Optional[str]:
    """
    Resolve the provider key from, in order:
    - OPENAI_API_KEY env var
    - the mounted secret file (PENNYWISE_OPENAI_API_KEY_FILE)
    """
    key = os.getenv("OPENAI_API_KEY")
    if key and key.strip():
        return key.strip()
    path = Path(
        os.getenv("PENNYWISE_OPENAI_API_KEY_FILE", "/run/secrets/openai_api_key")
    )
    if path.is_file():
        secret = path.read_text(encoding="utf-8").strip()
        if secret:
            return secret
    return None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "pennywise.db"
    database_url = os.getenv("PENNYWISE_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("PENNYWISE_TIMEZONE", "UTC")
    insights_enabled = _env_flag("PENNYWISE_INSIGHTS_ENABLED", "true")
    llm_base_url = os.getenv("OPENAI_BASE_URL") or None
    insight_model = os.getenv("PENNYWISE_INSIGHT_MODEL", "gpt-4.1-mini")
    chat_model = os.getenv("PENNYWISE_CHAT_MODEL", "gpt-4.1")
    chat_temperature = float(os.getenv("PENNYWISE_CHAT_TEMPERATURE", "1.0"))
    insight_transaction_limit = int(
        os.getenv("PENNYWISE_INSIGHT_TRANSACTION_LIMIT", "0")
    )
    agent_max_steps = int(os.getenv("PENNYWISE_AGENT_MAX_STEPS", "5"))
    llm_timeout_secs = float(os.getenv("PENNYWISE_LLM_TIMEOUT_SECS", "60"))
    return Settings(
        database_url=database_url,
        timezone=timezone,
        insights_enabled=insights_enabled,
        llm_api_key=resolve_api_key(),
        llm_base_url=llm_base_url,
        insight_model=insight_model,
        chat_model=chat_model,
        chat_temperature=chat_temperature,
        insight_transaction_limit=insight_transaction_limit,
        agent_max_steps=agent_max_steps,
        llm_timeout_secs=llm_timeout_secs,
    )
