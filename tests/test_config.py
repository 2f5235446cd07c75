import os

import pytest

from common.config import Settings, setup_libraries


def test_settings_default_values(mocker):
    """
    Test that the Settings class loads default values correctly when only
    the API key is set.
    """
    mocker.patch.dict(os.environ, {"OPENAI_API_KEY": "test_api_key"}, clear=True)

    settings = Settings()

    assert settings.LLM_PROVIDER == "openai"
    assert settings.AI_MODELS == ["gpt-5-mini", "o4-mini"]
    assert settings.MAX_RETRIES == 3
    assert settings.MAX_RETRY_BACKOFF_SECONDS == 30
    assert settings.CLASSIFY_MAX_TOKENS == 1000
    assert settings.CLASSIFY_SAMPLE_ROWS == 3
    assert settings.CACHE_SWEEP_INTERVAL == 3600
    assert settings.LOG_LEVEL == "INFO"
    assert settings.LOG_FORMAT == "console"
    assert settings.FALLBACK_CONFIGURED is True


def test_settings_from_environment_variables(mocker):
    """
    Test that the Settings class correctly loads values from environment variables.
    """
    mocker.patch.dict(
        os.environ,
        {
            "OPENAI_API_KEY": "env_api_key",
            "AI_MODELS": " model-a , model-b ,",
            "MAX_RETRIES": "5",
            "CACHE_SWEEP_INTERVAL": "60",
            "CLASSIFY_MAX_TOKENS": "0",
            "LOG_FORMAT": "JSON",
            "LOG_LEVEL": "debug",
        },
        clear=True,
    )

    settings = Settings()

    assert settings.OPENAI_API_KEY == "env_api_key"
    assert settings.AI_MODELS == ["model-a", "model-b"]
    assert settings.MAX_RETRIES == 5
    assert settings.CACHE_SWEEP_INTERVAL == 60
    assert settings.CLASSIFY_MAX_TOKENS == 0
    assert settings.LOG_FORMAT == "json"
    assert settings.LOG_LEVEL == "DEBUG"


def test_missing_api_key_leaves_fallback_unconfigured(mocker):
    mocker.patch.dict(os.environ, {}, clear=True)

    settings = Settings()

    assert settings.OPENAI_API_KEY is None
    assert settings.FALLBACK_CONFIGURED is False


@pytest.mark.parametrize(
    ("env", "message"),
    [
        ({"LLM_PROVIDER": "invalid_provider"}, "LLM_PROVIDER must be 'openai' or 'ollama'"),
        ({"MAX_RETRIES": "0"}, "MAX_RETRIES must be >= 1"),
        ({"MAX_RETRIES": "many"}, "must be an integer"),
        ({"AI_MODELS": " , "}, "AI_MODELS must name at least one model"),
        ({"LOG_FORMAT": "xml"}, "LOG_FORMAT must be 'console' or 'json'"),
    ],
)
def test_invalid_settings_raise_value_error(mocker, env, message):
    mocker.patch.dict(os.environ, env, clear=True)

    with pytest.raises(ValueError, match=message):
        Settings()


def test_ollama_configuration(mocker):
    """
    Test that the settings for the Ollama provider are configured correctly.
    """
    mocker.patch.dict(os.environ, {"LLM_PROVIDER": "ollama"}, clear=True)
    mocker.patch("openai.base_url", None)
    mocker.patch("openai.api_key", None)

    settings = Settings()
    setup_libraries(settings)  # This should configure the openai client

    import openai

    assert settings.LLM_PROVIDER == "ollama"
    assert settings.AI_MODELS == ["gemma3:27b", "gemma3:12b"]
    assert settings.FALLBACK_CONFIGURED is True
    assert openai.base_url == "http://localhost:11434/v1/"
    assert openai.api_key == "dummy"
