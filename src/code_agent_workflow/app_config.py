from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from code_agent_workflow.logging_config import DEFAULT_LOG_FILE


@dataclass
class RuntimeEnv:
    provider_api_key: str
    provider_env_var: str
    e2b_api_key: str | None
    redis_url: str | None


@dataclass
class AppConfig:
    provider_name: str
    model: str
    temperature: float
    max_tokens: int
    post_process_model: str
    max_iterations: int
    max_tool_result_chars: int
    database_path: str
    sandbox_provider: str
    sandbox_template: str
    sandbox_root: str
    sandbox_timeout_ms: int
    sandbox_port: int
    publisher: str
    step_attempts: int
    log_level: str
    log_file: str | None


def load_json_config(path: str | Path | None = None) -> dict:
    config_path = Path(path) if path else Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _positive_int(config: dict, key: str, default: int) -> int:
    value = int(config.get(key, default))
    if value <= 0:
        raise ValueError(f"{key} must be a positive integer, got {value}")
    return value


def parse_app_config(config: dict) -> AppConfig:
    return AppConfig(
        provider_name=str(config.get("Provider", "openai")).strip().lower(),
        model=config.get("Model", "gpt-4.1"),
        temperature=float(config.get("Temperature", 0.1)),
        max_tokens=_positive_int(config, "MaxTokens", 8192),
        post_process_model=config.get("PostProcessModel", "gpt-4o"),
        max_iterations=_positive_int(config, "MaxIterations", 15),
        max_tool_result_chars=_positive_int(config, "MaxToolResultChars", 40_000),
        database_path=str(config.get("DatabasePath", ".code_agent/app.db")),
        sandbox_provider=str(config.get("SandboxProvider", "local")).strip().lower(),
        sandbox_template=str(config.get("SandboxTemplate", "vibe-ai-app-nextjs-v3")),
        sandbox_root=str(config.get("SandboxRoot", ".code_agent/sandboxes")),
        sandbox_timeout_ms=_positive_int(config, "SandboxTimeoutMs", 30 * 60 * 1000),
        sandbox_port=_positive_int(config, "SandboxPort", 3000),
        publisher=str(config.get("Publisher", "store")).strip().lower(),
        step_attempts=_positive_int(config, "StepAttempts", 3),
        log_level=config.get("LogLevel", "INFO"),
        log_file=config.get("LogFile", DEFAULT_LOG_FILE),
    )


def resolve_runtime_env(provider_name: str) -> RuntimeEnv:
    if provider_name == "anthropic":
        provider_api_key = os.environ.get("ANTHROPIC_API_KEY", "")
        provider_env_var = "ANTHROPIC_API_KEY"
    else:
        provider_api_key = os.environ.get("OPENAI_API_KEY", "")
        provider_env_var = "OPENAI_API_KEY"

    return RuntimeEnv(
        provider_api_key=provider_api_key,
        provider_env_var=provider_env_var,
        e2b_api_key=os.environ.get("E2B_API_KEY"),
        redis_url=os.environ.get("REDIS_URL"),
    )
