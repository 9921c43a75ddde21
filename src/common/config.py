"""
Configuration loader for the culture-connect service.

Loads all settings from environment variables (.env file).
Validates required settings and provides type-safe access.
"""

import os
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _split_csv(value: str) -> List[str]:
    """Split a comma-separated env value, dropping blanks."""
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    """
    Centralized configuration for all service components.

    All values loaded from environment variables - NO SECRETS IN CODE.
    """

    # ===== Qloo (taste graph) =====
    QLOO_API_KEY: str = os.getenv("QLOO_API_KEY", "")
    QLOO_BASE_URL: str = os.getenv("QLOO_BASE_URL", "https://hackathon.api.qloo.com")
    # Fixed ceiling for every outbound HTTP call (Qloo, Notion, Slack)
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

    # ===== LLM (OpenRouter) =====
    OPENROUTER_API_KEY: str = os.getenv("OPENROUTER_API_KEY", "")
    OPENROUTER_BASE_URL: str = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
    # Short insights and introductions
    INSIGHT_MODEL: str = os.getenv("INSIGHT_MODEL", "meta-llama/llama-3.1-8b-instruct")
    # Housing answers and WKT conversion
    RESPONSE_MODEL: str = os.getenv("RESPONSE_MODEL", "google/gemini-2.5-flash")
    LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))

    # Temperature settings
    CREATIVE_TEMPERATURE: float = 0.8  # Introductions, housing answers
    INSIGHT_TEMPERATURE: float = 0.7  # One-line insights, chat
    ANALYTICAL_TEMPERATURE: float = 0.1  # Location -> WKT conversion

    # ===== Employee directory (Notion) =====
    NOTION_API_KEY: str = os.getenv("NOTION_API_KEY", "")
    NOTION_DATABASE_ID: str = os.getenv("NOTION_DATABASE_ID", "")

    # ===== Messaging (Slack) =====
    SLACK_BOT_TOKEN: str = os.getenv("SLACK_BOT_TOKEN", "")
    SLACK_TEAM_ID: str = os.getenv("SLACK_TEAM_ID", "")

    # ===== State store =====
    # Empty REDIS_URL falls back to the in-process store (single worker only)
    REDIS_URL: str = os.getenv("REDIS_URL", "")
    CONVERSATION_STATE_TTL_SECONDS: int = int(os.getenv("CONVERSATION_STATE_TTL_SECONDS", "600"))
    CONVERSATION_HISTORY_TTL_SECONDS: int = int(
        os.getenv("CONVERSATION_HISTORY_TTL_SECONDS", str(48 * 60 * 60))
    )
    CONVERSATION_HISTORY_MAX_MESSAGES: int = int(os.getenv("CONVERSATION_HISTORY_MAX_MESSAGES", "20"))

    # ===== Introductions / dispatch =====
    INTRODUCTION_TOP_N: int = int(os.getenv("INTRODUCTION_TOP_N", "3"))
    DISPATCH_ASSIGNED_IDENTITIES: List[str] = _split_csv(os.getenv("DISPATCH_ASSIGNED_IDENTITIES", ""))
    DISPATCH_DEFAULT_CHANNEL: Optional[str] = os.getenv("DISPATCH_DEFAULT_CHANNEL") or None

    # ===== HTTP API =====
    CORS_ORIGINS: List[str] = _split_csv(os.getenv("CORS_ORIGINS", "http://localhost:3000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "simple")
    DEBUG_MODE: bool = os.getenv("DEBUG_MODE", "false").lower() == "true"

    @classmethod
    def validate(cls) -> None:
        """
        Validate that all required configuration is present.
        Raises ValueError if critical settings are missing.
        """
        required_settings = {
            "QLOO_API_KEY": cls.QLOO_API_KEY,
            "OPENROUTER_API_KEY": cls.OPENROUTER_API_KEY,
            "SLACK_BOT_TOKEN": cls.SLACK_BOT_TOKEN,
        }

        missing = [name for name, value in required_settings.items() if not value]

        if missing:
            raise ValueError(
                f"Missing required configuration: {', '.join(missing)}. "
                f"Please check your .env file."
            )

        if cls.NOTION_DATABASE_ID and not cls.NOTION_API_KEY:
            raise ValueError(
                "NOTION_DATABASE_ID is set but NOTION_API_KEY is missing."
            )

        if cls.CONVERSATION_STATE_TTL_SECONDS <= 0:
            raise ValueError("CONVERSATION_STATE_TTL_SECONDS must be positive.")

    @classmethod
    def directory_enabled(cls) -> bool:
        """Whether employee profiles can be enriched from Notion."""
        return bool(cls.NOTION_API_KEY and cls.NOTION_DATABASE_ID)

    @classmethod
    def summary(cls) -> str:
        """Return a summary of the current configuration (safe for logging)."""
        return f"""
Configuration Summary:
  Qloo: {'✓ Configured' if cls.QLOO_API_KEY else '✗ Missing'} ({cls.QLOO_BASE_URL})
  OpenRouter: {'✓ Configured' if cls.OPENROUTER_API_KEY else '✗ Missing'}
  Insight Model: {cls.INSIGHT_MODEL}
  Response Model: {cls.RESPONSE_MODEL}
  Notion Directory: {'✓ Enabled' if cls.directory_enabled() else '✗ Disabled'}
  Slack: {'✓ Configured' if cls.SLACK_BOT_TOKEN else '✗ Missing'}
  State Store: {'Redis' if cls.REDIS_URL else 'In-memory'}
  State TTL: {cls.CONVERSATION_STATE_TTL_SECONDS}s
  Assigned Identities: {len(cls.DISPATCH_ASSIGNED_IDENTITIES)}
  Default Channel: {cls.DISPATCH_DEFAULT_CHANNEL or '✗ None'}
        """.strip()
