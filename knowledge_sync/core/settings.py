from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from env vars and local env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: str = Field(default="local", alias="APP_ENV")
    log_level: str | None = Field(default=None, alias="LOG_LEVEL")

    knowledge_api_base_url: str = Field(default="https://api.elevenlabs.io/v1", alias="KNOWLEDGE_API_BASE_URL")
    knowledge_api_key: str | None = Field(default=None, alias="KNOWLEDGE_API_KEY")
    knowledge_agent_id: str | None = Field(default=None, alias="KNOWLEDGE_AGENT_ID")
    knowledge_api_timeout_seconds: float = Field(default=30.0, alias="KNOWLEDGE_API_TIMEOUT_SECONDS", gt=0)

    retry_max_attempts: int = Field(default=3, alias="RETRY_MAX_ATTEMPTS", ge=1)
    retry_initial_delay_seconds: float = Field(default=1.0, alias="RETRY_INITIAL_DELAY_SECONDS", ge=0)

    index_poll_max_attempts: int = Field(default=20, alias="INDEX_POLL_MAX_ATTEMPTS", ge=1)
    index_poll_interval_seconds: float = Field(default=3.0, alias="INDEX_POLL_INTERVAL_SECONDS", ge=0)
    indexing_policy: Literal["lenient", "strict"] = Field(default="lenient", alias="INDEXING_POLICY")

    embedding_model: str = Field(default="e5_mistral_7b_instruct", alias="EMBEDDING_MODEL")
    max_documents_length: int = Field(default=10000, alias="MAX_DOCUMENTS_LENGTH", ge=1)
    serialize_agent_writes: bool = Field(default=False, alias="SERIALIZE_AGENT_WRITES")

    orphan_ledger_redis_url: str | None = Field(default=None, alias="ORPHAN_LEDGER_REDIS_URL")
    orphan_ledger_key_prefix: str = Field(default="knowledge-sync:orphans", alias="ORPHAN_LEDGER_KEY_PREFIX")
    reconcile_delete_unlinkable: bool = Field(default=False, alias="RECONCILE_DELETE_UNLINKABLE")

    @property
    def enable_swagger(self) -> bool:
        return self.app_env.lower() == "local"

    @property
    def strict_indexing(self) -> bool:
        return self.indexing_policy == "strict"

    @property
    def effective_log_level(self) -> str:
        if self.log_level:
            return self.log_level.upper()
        return "DEBUG" if self.app_env.lower() == "local" else "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
