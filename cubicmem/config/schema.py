"""Configuration schema using Pydantic."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MemoryConfig(BaseModel):
    """Memory system configuration."""
    short_term_max_words: int = Field(default=2000, ge=0, description="Word budget of the short-term cache")
    default_importance: float = Field(default=0.5, ge=0.0, le=1.0, description="Importance used when callers omit one")
    db_path: str = Field(default=":memory:", description="SQLite database file, or :memory:")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: str | None = Field(default=None, description="Optional rotating log file")


class Config(BaseSettings):
    """Root configuration for cubicmem."""
    model_config = SettingsConfigDict(
        env_prefix="CUBICMEM_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
