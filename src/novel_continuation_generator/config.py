"""Configuration loader and LLM config builder.

Reads project settings from a YAML config file with ``${ENV_VAR}`` interpolation.
Nothing else reads the environment: the loaded ``ProjectConfig`` (including
``network_enabled``) is passed explicitly to every component that needs it.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .models import AzureConfig, ProjectConfig

load_dotenv()

# ---------------------------------------------------------------------------
# YAML loading with ${ENV_VAR} interpolation
# ---------------------------------------------------------------------------

_ENV_RE = re.compile(r"\$\{([^}]+)\}")


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${ENV_VAR}`` references in strings."""
    if isinstance(value, str):
        return _ENV_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(v) for v in value]
    return value


def apply_azure_fallbacks(config: ProjectConfig) -> ProjectConfig:
    """Fill empty azure credentials from environment variables and normalise endpoint."""
    if not config.azure.api_key:
        config.azure.api_key = os.getenv("AZURE_OPENAI_API_KEY", "")
    if not config.azure.api_version:
        config.azure.api_version = os.getenv("AZURE_OPENAI_API_VERSION", "")
    if not config.azure.endpoint:
        config.azure.endpoint = os.getenv("AZURE_OPENAI_ENDPOINT", "")
    config.azure.endpoint = config.azure.endpoint.rstrip("/")
    return config


def load_config(config_path: str | Path) -> ProjectConfig:
    """Load a ``ProjectConfig`` from a YAML file."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    config = ProjectConfig.model_validate(_resolve_env_vars(raw))
    return apply_azure_fallbacks(config)


# ---------------------------------------------------------------------------
# LLM config builder
# ---------------------------------------------------------------------------

def _is_azure_openai_endpoint(endpoint: str) -> bool:
    lower = endpoint.lower()
    return "openai.azure.com" in lower or "cognitiveservices.azure.com" in lower


def _build_single_entry(model: str, azure: AzureConfig) -> dict[str, Any]:
    """Build one AG2 ``config_list`` entry.

    Azure OpenAI endpoints use deployment-based routing; any other endpoint is
    treated as OpenAI-compatible via ``base_url``.
    """
    entry: dict[str, Any] = {"model": model, "api_key": azure.api_key}
    endpoint = azure.endpoint
    if endpoint and _is_azure_openai_endpoint(endpoint):
        entry.update({
            "api_type": "azure",
            "azure_endpoint": endpoint,
            "api_version": azure.api_version,
            "azure_deployment": model,
        })
    elif endpoint:
        entry["base_url"] = endpoint
    return entry


def build_role_llm_config(role: str, config: ProjectConfig) -> dict[str, Any]:
    """Return an AG2-compatible ``llm_config`` dict for the given *role*.

    Role mapping:
    - ``compressor`` → models.compressor (or default)
    - ``analyst`` → models.analyst (or default)
    - ``outliner`` / ``breakdown`` → models.outliner (or default)
    - ``writer`` → models.writer (or default)
    """
    models = config.models
    role_map: dict[str, str | None] = {
        "compressor": models.compressor,
        "analyst": models.analyst,
        "outliner": models.outliner,
        "breakdown": models.outliner,
        "writer": models.writer,
    }
    chosen = role_map.get(role.lower()) or models.default
    return {
        "config_list": [_build_single_entry(chosen, config.azure)],
        "timeout": config.timeout,
        "seed": config.seed,
    }
