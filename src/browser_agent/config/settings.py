"""
Settings - Pydantic models for type-safe configuration.

This module defines all configuration settings as Pydantic models,
providing validation, type hints, and automatic environment variable loading.

Example:
    >>> from browser_agent.config import Settings, load_config
    >>> settings = load_config()  # Loads from env, yaml, and defaults
    >>> print(settings.agent.max_total_steps)
    20
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseModel):
    """
    LLM provider settings.
    
    Attributes:
        provider: LLM provider to use
        model: Model name/identifier
        api_key: API key (loaded from environment if not set)
        base_url: Custom API endpoint URL
        temperature: Sampling temperature
        max_tokens: Maximum tokens in response
        timeout: Request timeout in seconds
    """
    provider: Literal["openai"] = "openai"
    model: Optional[str] = None
    api_key: Optional[SecretStr] = None
    base_url: Optional[str] = None
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, ge=1, le=128000)
    timeout: int = Field(default=60, ge=5, le=300)
    
    # Transient failures on non-streaming calls
    retry_attempts: int = Field(default=3, ge=1, le=10)


class AgentSettings(BaseModel):
    """
    Agent behavior settings.
    
    Attributes:
        max_simple_attempts: Turns allowed for a task classified as simple
        max_total_steps: Global ceiling on executed steps for multi-step tasks
        steps_per_plan: Steps requested from the planner per planning cycle
        enable_validation: Ask the validator after each exhausted plan segment
        raise_on_exhaustion: Raise StrategyExhaustedError instead of returning
            an exhausted result
        verbose: Enable verbose logging
    """
    max_simple_attempts: int = Field(default=3, ge=1, le=10)
    max_total_steps: int = Field(default=20, ge=1, le=100)
    steps_per_plan: int = Field(default=3, ge=1, le=5)
    enable_validation: bool = True
    raise_on_exhaustion: bool = False
    verbose: bool = False


class ContextSettings(BaseModel):
    """
    Conversation context budget.
    
    Attributes:
        max_tokens: Maximum estimated tokens kept in the context store
        tokens_per_entry: Fixed overhead charged for every entry
        chars_per_token: Characters per token for the length approximation
    """
    max_tokens: int = Field(default=8192, ge=256, le=2_000_000)
    tokens_per_entry: int = Field(default=3, ge=0, le=100)
    chars_per_token: int = Field(default=4, ge=1, le=16)


class LoggingSettings(BaseModel):
    """
    Logging configuration.
    
    Attributes:
        level: Log level
        format: Log format string
        file: Log file path (None for console only)
        json_format: Use JSON format for logs
    """
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None
    json_format: bool = False


class Settings(BaseSettings):
    """
    Root settings container - single source of truth for all configuration.
    
    Settings are loaded in this priority order (highest to lowest):
    1. Explicit values passed to constructor
    2. Environment variables (prefixed with BROWSER_AGENT__)
    3. Config file (YAML)
    4. Default values
    
    Example:
        >>> settings = Settings()  # Load from env vars
        >>> settings = Settings(agent=AgentSettings(max_total_steps=10))  # Override
    """
    
    model_config = SettingsConfigDict(
        env_prefix="BROWSER_AGENT__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
    
    llm: LLMSettings = Field(default_factory=LLMSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    context: ContextSettings = Field(default_factory=ContextSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    
    debug: bool = False
    
    def merge_with(self, overrides: dict) -> "Settings":
        """
        Create a new Settings instance with overrides applied.
        
        Args:
            overrides: Dictionary of values to override
            
        Returns:
            New Settings instance with overrides applied
        """
        current = self.model_dump()
        
        def deep_merge(base: dict, updates: dict) -> dict:
            for key, value in updates.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    deep_merge(base[key], value)
                else:
                    base[key] = value
            return base
        
        merged = deep_merge(current, overrides)
        return Settings(**merged)
