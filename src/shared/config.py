"""Configuration management for the Jarvis chat agent.

Supports a YAML configuration file with environment variable overrides.
Settings are loaded once and cached.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """Language-model provider configuration."""
    provider: str = Field(default="gemini", description="LLM provider: gemini, openai, mock")
    model: str = Field(default="gemini-2.0-flash", description="Model identifier")
    api_key: Optional[str] = Field(default=None, description="API key")
    api_base: Optional[str] = Field(default=None, description="API base URL (openai only)")
    temperature: float = Field(default=0.7, ge=0, le=2)
    max_tokens: int = Field(default=2048, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        extra="ignore"
    )


class ConnectorSettings(BaseSettings):
    """Connector-execution service configuration."""
    base_url: str = Field(default="http://localhost:8001")
    api_key: Optional[str] = Field(default=None, description="Connector service secret")
    system_prompt_path: str = Field(default="/system-prompt")
    execute_path: str = Field(default="/execute")
    connectors: list[str] = Field(default_factory=lambda: ["*"])
    timeout: float = Field(default=30.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="CONNECTOR_",
        env_file=".env",
        extra="ignore"
    )


class ChatSettings(BaseSettings):
    """Hosting app and chat shell configuration."""
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    apology_message: str = Field(
        default="Sorry, I encountered an error processing your request."
    )

    model_config = SettingsConfigDict(
        env_prefix="CHAT_",
        env_file=".env",
        extra="ignore"
    )


class Settings(BaseSettings):
    """Main application settings."""
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    llm: LLMSettings = Field(default_factory=LLMSettings)
    connector: ConnectorSettings = Field(default_factory=ConnectorSettings)
    chat: ChatSettings = Field(default_factory=ChatSettings)

    model_config = SettingsConfigDict(
        env_prefix="JARVIS_",
        env_file=".env",
        extra="ignore"
    )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """
        Load settings from a YAML file, falling back to defaults.

        Each section is built through its own settings class so that
        environment variables (the API keys in particular) still apply to
        keys the file leaves out.
        """
        data = load_yaml_config(path)
        sections = {
            "llm": LLMSettings,
            "connector": ConnectorSettings,
            "chat": ChatSettings,
        }
        for key, section_class in sections.items():
            if key in data:
                data[key] = section_class(**(data[key] or {}))
        return cls(**data)


def load_yaml_config(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file."""
    path = Path(path)
    if not path.exists():
        return {}

    with open(path) as f:
        return yaml.safe_load(f) or {}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    config_path = os.environ.get("JARVIS_CONFIG_PATH", "config/settings.yaml")
    return Settings.from_yaml(config_path)
