# llmpal/config_utils.py
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError

from llmpal.data_models import LlmpalConfig, ModelConfig
from llmpal.errors import ApiKeyMissingError, ConfigError

CONFIG_FILE_NAME = ".llmpal.json"
DIAGNOSTIC_DIR_NAME = ".llmpal"
API_KEY_ENV_VAR = "OPENROUTER_API_KEY"

# Used when no model is configured at all
DEFAULT_MODEL = "moonshotai/kimi-k2"
DEFAULT_PROMPT_COST = 0.60
DEFAULT_COMPLETION_COST = 2.50

# Define module-level constants for limits
MAX_FILE_SIZE_BYTES = 5_000_000  # 5MB


def home_dir() -> Optional[Path]:
    home = os.getenv("HOME")
    return Path(home) if home else None


def _read_config_file(config_path: Path, console_obj=None) -> Dict[str, Any]:
    """Reads one .llmpal.json; a missing or unparseable file counts as empty."""
    if not config_path.is_file():
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            loaded = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        if console_obj:
            console_obj.print(f"[yellow]Warning: Could not load or parse {config_path}: {e}. Ignoring it.[/yellow]")
        return {}
    if not isinstance(loaded, dict):
        if console_obj:
            console_obj.print(f"[yellow]Warning: {config_path} does not contain a JSON object. Ignoring it.[/yellow]")
        return {}
    return loaded


def load_configuration(console_obj=None, cwd: Optional[Path] = None, home: Optional[Path] = None) -> LlmpalConfig:
    """
    Loads .env into environment variables, then merges configuration with the following precedence:
    1. ./.llmpal.json (local project file)
    2. ~/.llmpal.json (global file)
    3. Built-in defaults
    Local fields replace global fields of the same name; arrays are replaced, not merged.
    """
    load_dotenv()

    cwd = cwd or Path.cwd()
    home = home if home is not None else home_dir()

    merged: Dict[str, Any] = {}
    if home is not None:
        merged.update(_read_config_file(home / CONFIG_FILE_NAME, console_obj))
    local_path = cwd / CONFIG_FILE_NAME
    if home is None or local_path.resolve() != (home / CONFIG_FILE_NAME).resolve():
        merged.update(_read_config_file(local_path, console_obj))

    try:
        return LlmpalConfig.model_validate(merged)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid {CONFIG_FILE_NAME} configuration: {e}") from e


def default_model_config(code: str = DEFAULT_MODEL) -> ModelConfig:
    return ModelConfig(
        code=code,
        model=DEFAULT_MODEL,
        prompt_cost=DEFAULT_PROMPT_COST,
        completion_cost=DEFAULT_COMPLETION_COST,
    )


def resolve_model_config(config: LlmpalConfig, requested_code: Optional[str] = None, console_obj=None) -> ModelConfig:
    """
    Selects the active model:
    1. The configured model whose code matches -m
    2. The first configured model
    3. The built-in default model
    """
    selected_code = requested_code or (config.models[0].code if config.models else DEFAULT_MODEL)
    for model_cfg in config.models:
        if model_cfg.code == selected_code:
            return model_cfg

    if requested_code and console_obj:
        console_obj.print(f"[yellow]Warning: Model '{requested_code}' is not configured in {CONFIG_FILE_NAME}. Using default model {DEFAULT_MODEL}.[/yellow]")
    return default_model_config(selected_code)


def resolve_env_token(token: str) -> Optional[str]:
    """Resolves '$VAR' references from the environment; plain values are returned unchanged."""
    if token.startswith("$"):
        return os.getenv(token[1:])
    return token


def resolve_api_key(model_config: ModelConfig) -> str:
    if model_config.api_key_ref:
        api_key = resolve_env_token(model_config.api_key_ref)
        if api_key:
            return api_key
        raise ApiKeyMissingError(
            f"API key for model '{model_config.code}' references {model_config.api_key_ref}, which is not set"
        )
    api_key = os.getenv(API_KEY_ENV_VAR)
    if not api_key:
        raise ApiKeyMissingError(f"Missing {API_KEY_ENV_VAR} env variable")
    return api_key
