"""
Configuration for the BizScout crawl engine.

A single frozen pydantic model describes every tunable of the engine; values
come from a YAML/JSON file and are then overlaid with environment variables
(API keys, runtime mode and the retrieval toggles).
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

RuntimeMode = Literal["test", "development", "production"]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

DEFAULT_INCLUDES = (
    "**/about*",
    "**/services*",
    "**/contact*",
    "**/team*",
    "**/products*",
    "**/solutions*",
    "**/company*",
)
DEFAULT_EXCLUDES = (
    "**/blog*",
    "**/news*",
    "**/events*",
    "**/careers*",
    "**/privacy*",
    "**/terms*",
    "**/cookie*",
    "**/legal*",
)


class CrawlerConfig(BaseModel):
    """Settings for one engine instance."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    runtime_mode: RuntimeMode = Field("development", description="test / development / production.")
    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1, description="Browser User-Agent header.")

    fetch_timeout: float = Field(10.0, gt=0, description="Direct HTTP fetch timeout (seconds).")
    browser_timeout: float = Field(30.0, gt=0, description="Headless browser navigation timeout.")
    managed_timeout: float = Field(60.0, gt=0, description="Managed crawl API request timeout.")
    llm_timeout: float = Field(30.0, gt=0, description="Model provider request timeout.")

    min_request_interval: float = Field(7.0, ge=0, description="Minimum gap between managed API calls.")
    poll_interval: float = Field(3.0, ge=0, description="Delay between job status polls.")
    poll_max_attempts: int = Field(20, ge=1, description="Job status polls before timing out.")

    cache_ttl: float = Field(24 * 60 * 60, gt=0, description="Result cache TTL (seconds).")
    cache_max_size: int = Field(100, ge=1, description="Maximum cached results.")

    max_depth: int = Field(2, ge=0, description="Managed crawl traversal depth.")
    page_limit: int = Field(8, ge=1, description="Managed crawl page limit.")
    include_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_INCLUDES))
    exclude_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDES))

    firecrawl_api_key: Optional[str] = Field(None, description="Managed crawl API key.")
    firecrawl_base_url: HttpUrl = Field("https://api.firecrawl.dev", description="Managed crawl API root.")
    openrouter_api_key: Optional[str] = Field(None, description="Model provider API key.")
    openrouter_base_url: HttpUrl = Field("https://openrouter.ai/api/v1", description="Model provider root.")
    llm_model: str = Field("openai/gpt-4o-mini", min_length=1, description="Model used for enrichment.")

    force_headless: bool = Field(False, description="Enable the headless browser even in production.")
    mock_managed_api: Optional[bool] = Field(None, description="Answer managed API calls from fixtures.")

    prompt_char_limit: int = Field(4000, ge=200, description="Page text characters sent to the model.")
    min_content_chars: int = Field(100, ge=0, description="Visible text below this is not usable content.")

    @field_validator("firecrawl_base_url", "openrouter_base_url", mode="before")
    def _strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @property
    def use_mock_managed_api(self) -> bool:
        if self.mock_managed_api is not None:
            return self.mock_managed_api
        return not self.firecrawl_api_key and self.runtime_mode != "production"

    @property
    def headless_enabled(self) -> bool:
        return self.force_headless or self.runtime_mode != "production"

    @property
    def fixtures_enabled(self) -> bool:
        return self.runtime_mode != "production"

    def public_dict(self) -> Dict[str, Any]:
        """Serializable view with secrets masked."""
        data = self.model_dump(mode="json")
        for key in ("firecrawl_api_key", "openrouter_api_key"):
            if data.get(key):
                data[key] = "***"
        return data


_DEFAULT_CFG = Path("configs/default.yaml")

_TRUTHY = ("1", "true", "yes", "y", "on")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def read_config_file(path: Union[str, Path]) -> dict[str, Any]:
    """Read a YAML or JSON file into a plain mapping."""
    path_obj = Path(path).expanduser().resolve()
    if not path_obj.is_file():
        raise FileNotFoundError(f"Config file not found: {path_obj}")

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _read_yaml(path_obj)
    if suffix == ".json":
        return _read_json(path_obj)
    raise ValueError(f"Unsupported config format: {suffix}")


def _env_bool(env: Mapping[str, str], name: str) -> Optional[bool]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip().lower() in _TRUTHY


def env_overrides(env: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """Collect settings supplied through environment variables."""
    env = os.environ if env is None else env
    data: dict[str, Any] = {}

    mode = env.get("BIZSCOUT_MODE")
    if mode:
        data["runtime_mode"] = mode.strip().lower()
    for name, key in (
        ("FIRECRAWL_API_KEY", "firecrawl_api_key"),
        ("OPENROUTER_API_KEY", "openrouter_api_key"),
        ("BIZSCOUT_LLM_MODEL", "llm_model"),
    ):
        value = env.get(name)
        if value:
            data[key] = value.strip()

    force = _env_bool(env, "BIZSCOUT_FORCE_HEADLESS")
    if force is not None:
        data["force_headless"] = force
    mock = _env_bool(env, "USE_MOCK_FIRECRAWL")
    if mock is not None:
        data["mock_managed_api"] = mock
    return data


def load_config(
    path: Union[str, Path, None] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
) -> CrawlerConfig:
    """
    Read YAML or JSON and return a validated CrawlerConfig.

    ``path=None`` uses ``configs/default.yaml`` when it exists and plain
    defaults otherwise. Environment variables override file values.
    """
    if path is None:
        data = read_config_file(_DEFAULT_CFG) if _DEFAULT_CFG.is_file() else {}
    else:
        data = read_config_file(path)

    data.update(env_overrides(env))
    return CrawlerConfig(**data)


__all__ = [
    "CrawlerConfig",
    "RuntimeMode",
    "DEFAULT_USER_AGENT",
    "load_config",
    "read_config_file",
    "env_overrides",
]
