import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "model": "anthropic",  # provider: "anthropic" or "openai"
    "anthropic_ai_model": "claude-3-7-sonnet-20250219",
    "openai_ai_model": "gpt-4o",
    "app_name": "UbiquityOS",
    "max_diff_chars": 60000,
    "exclude": [],  # fnmatch patterns or directory names left out of the diff (e.g. "dist/", "*.lock")
}

SUPPORTED_PROVIDERS = ("anthropic", "openai")


def load_config(config_path: str = ".precheck.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .precheck.yml in the current directory
      3. CLI overrides (including the workflow ``settings`` input)
    """
    config = {**DEFAULT_CONFIG, "exclude": list(DEFAULT_CONFIG["exclude"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"{config_path} must contain a mapping, got {type(file_config).__name__}")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if config["model"] not in SUPPORTED_PROVIDERS:
        raise ValueError(f"Unknown model provider: {config['model']!r}. Choose 'anthropic' or 'openai'.")

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    if os.environ.get("UBIQUITY_OS_APP_NAME"):
        config["app_name"] = os.environ["UBIQUITY_OS_APP_NAME"]

    return config


def settings_to_overrides(settings: dict) -> dict:
    """Map camelCase workflow settings (e.g. ``anthropicAiModel``) onto config keys."""
    overrides = {}
    for key, value in settings.items():
        snake = "".join(f"_{c.lower()}" if c.isupper() else c for c in key).lstrip("_")
        overrides[snake] = value
    return overrides
