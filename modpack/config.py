"""Project file models and plugin settings.

The project file (`build.json` by default) describes the module being built:
its coordinates, the `vertx` block that ends up in `mod.json`, source set
outputs and local jar dependencies. Plugin settings are read from the
environment.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, Field, ValidationError, field_validator

from .identifiers import InvalidModuleIdentifier, parse_includes

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("java", "groovy", "scala")
DEFAULT_PROJECT_FILE = "build.json"
DEFAULT_INSTALL_TIMEOUT = 600.0
DEFAULT_INSTALL_WORKERS = 4


class ProjectConfigError(Exception):
    """Raised when a project file cannot be read or does not validate."""


class PlatformSettings(BaseModel):
    version: str = "2.1"
    lang: str = "java"

    @property
    def language(self) -> str:
        """The language plugin to apply; unknown languages fall back to java."""
        return self.lang if self.lang in SUPPORTED_LANGUAGES else "java"


class Developer(BaseModel):
    id: str | None = None
    name: str | None = None
    email: str | None = None


class License(BaseModel):
    name: str
    url: str | None = None
    distribution: str | None = None


class ModuleInfo(BaseModel):
    description: str | None = None
    homepage: str | None = None
    keywords: List[str] = Field(default_factory=list)
    developers: List[Developer] = Field(default_factory=list)
    licenses: List[License] = Field(default_factory=list)

    @field_validator("keywords", mode="before")
    @classmethod
    def _split_keywords(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [k.strip() for k in v.split(",") if k.strip()]
        return v


class PlatformConfig(BaseModel):
    """The `vertx` block of a project file."""

    platform: PlatformSettings = Field(default_factory=PlatformSettings)
    config: Dict[str, Any] = Field(default_factory=dict)
    info: ModuleInfo = Field(default_factory=ModuleInfo)

    @field_validator("config")
    @classmethod
    def _check_includes(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        try:
            parse_includes(v.get("includes"))
        except InvalidModuleIdentifier as e:
            raise ValueError(str(e)) from e
        return v

    @property
    def includes(self):
        return parse_includes(self.config.get("includes"))


class ProjectSpec(BaseModel):
    group: str
    name: str
    version: str
    vertx: PlatformConfig = Field(default_factory=PlatformConfig)
    # source set name -> compiled output directory, relative to the project root
    source_sets: Dict[str, str] = Field(
        default_factory=lambda: {"main": "build/classes/main", "test": "build/classes/test"}
    )
    # configuration name -> list of jar paths relative to the project root
    dependencies: Dict[str, List[str]] = Field(default_factory=dict)


def load_project_spec(path: str | os.PathLike) -> ProjectSpec:
    p = Path(path)
    try:
        with open(p, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except OSError as e:
        raise ProjectConfigError(f"unable to read project file {p}") from e
    except json.JSONDecodeError as e:
        raise ProjectConfigError(f"project file {p} is not valid JSON: {e}") from e
    try:
        spec = ProjectSpec.model_validate(raw)
    except ValidationError as e:
        raise ProjectConfigError(f"invalid project file {p}:\n{e}") from e
    logger.debug("Loaded project file %s", p)
    return spec


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, kind, default):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return kind(raw.strip())
    except ValueError:
        raise ProjectConfigError(f"{name} must be a number, got {raw!r}") from None


class PluginSettings(BaseModel):
    repository: str | None = None
    repository_url: str | None = None
    fail_on_install_error: bool = False
    install_timeout: float | None = DEFAULT_INSTALL_TIMEOUT
    install_workers: int = DEFAULT_INSTALL_WORKERS

    @classmethod
    def from_env(cls) -> "PluginSettings":
        """Build settings from `MODPACK_*` environment variables.

        A timeout of `0` disables the wait limit.
        """
        timeout = _env_number("MODPACK_INSTALL_TIMEOUT", float, DEFAULT_INSTALL_TIMEOUT)
        workers = _env_number("MODPACK_INSTALL_WORKERS", int, DEFAULT_INSTALL_WORKERS)
        if workers < 1:
            raise ProjectConfigError(f"MODPACK_INSTALL_WORKERS must be at least 1, got {workers}")
        return cls(
            repository=os.getenv("MODPACK_REPOSITORY") or None,
            repository_url=os.getenv("MODPACK_REPOSITORY_URL") or None,
            fail_on_install_error=_env_flag("MODPACK_FAIL_ON_INSTALL_ERROR"),
            install_timeout=timeout if timeout > 0 else None,
            install_workers=workers,
        )
