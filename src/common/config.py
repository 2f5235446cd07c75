"""
Configuration module for the ledger format classifier.

This module centralizes the loading and validation of all configuration
parameters from environment variables. It provides a single `Settings`
class that acts as a container for all configurable values, ensuring
that they are defined in one place and can be easily imported and used
throughout the application.
"""

import os
from typing import Literal

import openai

DEFAULT_OPENAI_MODELS = ["gpt-5-mini", "o4-mini"]
DEFAULT_OLLAMA_MODELS = ["gemma3:27b", "gemma3:12b"]


class Settings:
    """
    A container for all configuration settings, loaded from environment variables.

    Unlike most settings, ``OPENAI_API_KEY`` is optional: without it the
    fallback classifier is reported as not configured and only heuristic
    decisions are available.
    """

    # --- LLM Provider Configuration ---
    LLM_PROVIDER: Literal["openai", "ollama"]
    OLLAMA_BASE_URL: str | None
    OPENAI_API_KEY: str | None

    # --- Model Selection ---
    AI_MODELS: list[str]

    # --- Fallback call budget ---
    MAX_RETRIES: int
    MAX_RETRY_BACKOFF_SECONDS: int
    REQUEST_TIMEOUT: int
    CLASSIFY_MAX_TOKENS: int
    CLASSIFY_SAMPLE_ROWS: int

    # --- Response cache ---
    CACHE_SWEEP_INTERVAL: int

    # --- Logging ---
    LOG_LEVEL: str
    LOG_FORMAT: Literal["console", "json"]

    def __init__(self):
        """
        Loads settings from environment variables and performs validation.
        """
        # --- LLM Provider Configuration ---
        self.LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")
        if self.LLM_PROVIDER not in ("openai", "ollama"):
            raise ValueError("LLM_PROVIDER must be 'openai' or 'ollama'")

        # --- Model Selection ---
        if self.LLM_PROVIDER == "ollama":
            self.OLLAMA_BASE_URL = os.getenv(
                "OLLAMA_BASE_URL", "http://localhost:11434/v1/"
            )
            self.OPENAI_API_KEY = None  # Not used for Ollama
            default_models = DEFAULT_OLLAMA_MODELS
        else:  # openai
            self.OLLAMA_BASE_URL = None
            self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY") or None
            default_models = DEFAULT_OPENAI_MODELS

        self.AI_MODELS = self._get_list_env("AI_MODELS", default_models)
        if not self.AI_MODELS:
            raise ValueError("AI_MODELS must name at least one model")

        # --- Fallback call budget ---
        self.MAX_RETRIES = self._get_int_env("MAX_RETRIES", 3, minimum=1)
        self.MAX_RETRY_BACKOFF_SECONDS = self._get_int_env(
            "MAX_RETRY_BACKOFF_SECONDS", 30, minimum=1
        )
        self.REQUEST_TIMEOUT = self._get_int_env("REQUEST_TIMEOUT", 60, minimum=1)
        self.CLASSIFY_MAX_TOKENS = self._get_int_env(
            "CLASSIFY_MAX_TOKENS", 1000, minimum=0
        )
        self.CLASSIFY_SAMPLE_ROWS = self._get_int_env(
            "CLASSIFY_SAMPLE_ROWS", 3, minimum=0
        )

        # --- Response cache ---
        self.CACHE_SWEEP_INTERVAL = self._get_int_env(
            "CACHE_SWEEP_INTERVAL", 3600, minimum=1
        )

        # --- Logging ---
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOG_FORMAT = os.getenv("LOG_FORMAT", "console").lower()
        if self.LOG_FORMAT not in ("console", "json"):
            raise ValueError("LOG_FORMAT must be 'console' or 'json'")

    @property
    def FALLBACK_CONFIGURED(self) -> bool:
        """True when the completion service can be called at all."""
        if self.LLM_PROVIDER == "ollama":
            return bool(self.OLLAMA_BASE_URL)
        return bool(self.OPENAI_API_KEY)

    def _get_int_env(self, var_name: str, default: int, *, minimum: int) -> int:
        """
        Gets an integer environment variable, enforcing a lower bound.
        """
        raw = os.getenv(var_name)
        if raw is None or not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError:
            raise ValueError(
                f"Environment variable '{var_name}' must be an integer, got {raw!r}."
            ) from None
        if value < minimum:
            raise ValueError(f"{var_name} must be >= {minimum}")
        return value

    def _get_list_env(self, var_name: str, default: list[str]) -> list[str]:
        """
        Gets a comma-separated list environment variable.
        """
        raw = os.getenv(var_name)
        if raw is None:
            return list(default)
        return [item.strip() for item in raw.split(",") if item.strip()]


def setup_libraries(settings: Settings) -> None:
    """
    Configures third-party libraries based on the application settings.
    """
    if settings.LLM_PROVIDER == "ollama":
        openai.base_url = settings.OLLAMA_BASE_URL
        openai.api_key = "dummy"
    elif settings.OPENAI_API_KEY:
        openai.api_key = settings.OPENAI_API_KEY
