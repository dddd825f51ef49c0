"""Configuration management for flare-ai."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from flare_ai.providers import Provider

DEFAULT_HOME = Path.home() / ".flare-ai"
DATABASE_FILE = "ai_usage.sqlite"

DEFAULT_MODEL_ASSOCIATIONS: dict[str, str] = {
    # OpenAI
    "OpenAI_GPT4.1": "openai/gpt-4.1",
    "OpenAI_GPT4.1-mini": "openai/gpt-4.1-mini",
    "OpenAI_GPT4.1-nano": "openai/gpt-4.1-nano",
    "OpenAI_GPT4": "openai/gpt-4",
    "OpenAI_GPT4-turbo": "openai/gpt-4-turbo",
    "OpenAI_GPT4o": "openai/gpt-4o",
    "OpenAI_GPT4o-mini": "openai/gpt-4o-mini",
    "OpenAI_o3": "openai/o3",
    "OpenAI_o4-mini": "openai/o4-mini",
    "OpenAI_o1": "openai/o1",
    "OpenAI_o3-mini": "openai/o3-mini",
    # Anthropic
    "Anthropic_Claude_Haiku": "anthropic/claude-3-haiku",
    "Anthropic_Claude_Sonnet": "anthropic/claude-3-sonnet",
    "Anthropic_Claude_Sonnet_3.7": "anthropic/claude-3.7-sonnet",
    "Anthropic_Claude_Opus": "anthropic/claude-3-opus",
    "Anthropic_Claude_4_Sonnet": "anthropic/claude-sonnet-4",
    "Anthropic_Claude_4_Opus": "anthropic/claude-opus-4",
    # Perplexity
    "Perplexity_Sonar": "perplexity/sonar",
    "Perplexity_Sonar_Pro": "perplexity/sonar-pro",
    "Perplexity_Sonar_Reasoning": "perplexity/sonar-reasoning",
    "Perplexity_Sonar_Reasoning_Pro": "perplexity/sonar-reasoning-pro",
    # Meta
    "Llama4_Scout": "meta-llama/llama-4-scout",
    "Llama3.3_70B": "meta-llama/llama-3.3-70b-instruct",
    "Llama3.1_8B": "meta-llama/llama-3.1-8b-instruct",
    "Llama3.1_405B": "meta-llama/llama-3.1-405b-instruct",
    # Mistral
    "Mistral_Nemo": "mistralai/mistral-nemo",
    "Mistral_Large": "mistralai/mistral-large",
    "Mistral_Medium": "mistralai/mistral-medium-3",
    "Mistral_Small": "mistralai/mistral-small",
    "Mistral_Codestral": "mistralai/codestral-2501",
    # DeepSeek
    "DeepSeek_R1_Distill_Llama_3.3_70B": "deepseek/deepseek-r1-distill-llama-70b",
    "DeepSeek_R1": "deepseek/deepseek-r1",
    "DeepSeek_V3": "deepseek/deepseek-chat",
    # Google
    "Google_Gemini_2.5_Pro": "google/gemini-2.5-pro",
    "Google_Gemini_2.5_Flash": "google/gemini-2.5-flash",
    "Google_Gemini_2.0_Flash": "google/gemini-2.0-flash-001",
    # xAI
    "xAI_Grok_3": "x-ai/grok-3",
    "xAI_Grok_3_Mini": "x-ai/grok-3-mini",
    "xAI_Grok_2": "x-ai/grok-2-1212",
}


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="FLARE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Provider configuration
    enabled: bool = Field(default=False, description="Whether AI features are enabled")
    provider: Provider = Field(default=Provider.OPENROUTER, description="Chat-completions provider")
    base_url: str | None = Field(default=None, description="Optional API base URL (Ollama only)")
    api_key: str | None = Field(default=None, description="API key override; the keyring is used when unset")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Default sampling temperature")
    model_associations: dict[str, str] = Field(
        default_factory=dict, validate_default=True, description="Model key to model id"
    )
    request_timeout_seconds: float | None = Field(
        default=None, description="Read timeout for provider streams; unset waits indefinitely"
    )

    # Tool use
    tools_enabled: bool = Field(default=False, description="Allow the model to call built-in tools")
    allowed_directories: list[str] = Field(default_factory=list, description="Roots the file tools may touch")
    auto_approve_safe_tools: bool = Field(default=True, description="Run safe tools without confirmation")
    auto_approve_all_tools: bool = Field(default=False, description="Run every tool without confirmation")

    # Runtime
    home: Path = Field(default=DEFAULT_HOME, description="Directory for the usage database")
    log_level: str = Field(default="INFO", description="Log level")

    @field_validator("model_associations", mode="after")
    @classmethod
    def _merge_default_associations(cls, value: dict[str, str]) -> dict[str, str]:
        merged = dict(value)
        for key, default_model in DEFAULT_MODEL_ASSOCIATIONS.items():
            if not merged.get(key):
                merged[key] = default_model
        return merged

    def resolve_home(self) -> Path:
        home = self.home.expanduser()
        home.mkdir(parents=True, exist_ok=True)
        return home

    @property
    def database_path(self) -> Path:
        return self.resolve_home() / DATABASE_FILE


def load_settings(**overrides: Any) -> Settings:
    """Load settings from the environment and `.env`, applying explicit overrides."""
    return Settings(**overrides)
