"""
Configuration module - Centralized settings management.

Usage:
    from browser_agent.config import get_settings, load_config
    
    # Get global settings (loaded once)
    settings = get_settings()
    
    # Or load fresh settings with overrides
    settings = load_config(agent={"max_total_steps": 10})

Environment Variables:
    BROWSER_AGENT__LLM__MODEL=gpt-4o
    BROWSER_AGENT__LLM__BASE_URL=https://api.openai.com
    BROWSER_AGENT__AGENT__MAX_TOTAL_STEPS=20
    BROWSER_AGENT__CONTEXT__MAX_TOKENS=16384
    OPENAI_API_KEY=sk-...
"""

from browser_agent.config.settings import (
    Settings,
    LLMSettings,
    AgentSettings,
    ContextSettings,
    LoggingSettings,
)
from browser_agent.config.loader import ConfigLoader, load_config

_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the process-wide settings instance, loading it on first use.
    
    Call reset_settings() to reload.
    """
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (forces reload on next get_settings())."""
    global _settings
    _settings = None


__all__ = [
    "Settings",
    "LLMSettings",
    "AgentSettings",
    "ContextSettings",
    "LoggingSettings",
    "ConfigLoader",
    "load_config",
    "get_settings",
    "reset_settings",
]
