"""backend-studio configuration.

Two families of models live here:

* ``ConfigModel`` / ``BootstrapConfig`` describe the project being generated.
  They are immutable Pydantic v2 models built from raw prompt answers through
  :func:`validate_config` and :func:`validate_bootstrap`, which translate
  Pydantic failures into :class:`~backend_studio.errors.ValidationError`.
* ``StudioSettings`` holds the tool's own tunables (commands, timeouts,
  non-interactive switches) and can be read from environment variables.
"""

from __future__ import annotations

import os
import re
import sys
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Framework(str, Enum):
    """Supported backend frameworks."""

    EXPRESS = "express"
    FLASK = "flask"

    @property
    def display_name(self) -> str:
        return {"express": "Express.js (Node.js)", "flask": "Flask (Python)"}[self.value]


class LanguageMode(str, Enum):
    """Source language for Express projects."""

    TYPED = "typed"
    UNTYPED = "untyped"


class DatabaseChoice(str, Enum):
    """Database backend wired into the generated project."""

    NONE = "none"
    MONGODB = "mongodb"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"

    @property
    def is_networked_sql(self) -> bool:
        """PostgreSQL and MySQL need host/port/user/password credentials."""
        return self in (DatabaseChoice.POSTGRESQL, DatabaseChoice.MYSQL)

    @property
    def uses_sql(self) -> bool:
        return self.is_networked_sql or self is DatabaseChoice.SQLITE

    @property
    def display_name(self) -> str:
        return {
            "none": "no database",
            "mongodb": "MongoDB",
            "postgresql": "PostgreSQL",
            "mysql": "MySQL",
            "sqlite": "SQLite",
        }[self.value]


class FeatureFlag(str, Enum):
    """Optional features toggled per project."""

    CORS = "cors"
    AUTO_RELOAD = "auto_reload"
    VENV = "venv"


DEFAULT_DB_PORTS: dict[DatabaseChoice, int] = {
    DatabaseChoice.POSTGRESQL: 5432,
    DatabaseChoice.MYSQL: 3306,
}

DEFAULT_PORTS: dict[Framework, int] = {
    Framework.EXPRESS: 3000,
    Framework.FLASK: 5000,
}

DEFAULT_MONGO_URI = "mongodb://localhost:27017/myapp"
DEFAULT_SQLITE_NAME = "mydb"

PROJECT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
MONGO_URI_PATTERN = re.compile(r"^mongodb(?:\+srv)?://\S+$")

# The backend-specific field each database requires. Every other backend
# field must stay empty.
_BACKEND_FIELDS: dict[DatabaseChoice, str] = {
    DatabaseChoice.MONGODB: "connection_uri",
    DatabaseChoice.POSTGRESQL: "credentials",
    DatabaseChoice.MYSQL: "credentials",
    DatabaseChoice.SQLITE: "database_name",
}


# ---------------------------------------------------------------------------
# Project configuration
# ---------------------------------------------------------------------------


def _check_project_name(value: str) -> str:
    name = value.strip()
    if not name:
        raise ValueError("project name cannot be empty")
    if not PROJECT_NAME_PATTERN.match(name):
        raise ValueError(
            "use letters, digits, '.', '_' or '-' and start with a letter or digit"
        )
    return name


def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("port must be a number")
    return value


class NetworkConfig(BaseModel):
    """Listening port of the generated server."""

    model_config = ConfigDict(frozen=True)

    port: int = Field(default=3000, ge=1, le=65535)

    @field_validator("port", mode="before")
    @classmethod
    def _not_bool(cls, value: Any) -> Any:
        return _reject_bool(value)


class Credentials(BaseModel):
    """Connection settings for a networked SQL database."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = "localhost"
    port: int = Field(default=5432, ge=1, le=65535)
    user: str = "user"
    password: str = "password"
    database_name: str = DEFAULT_SQLITE_NAME

    @field_validator("port", mode="before")
    @classmethod
    def _not_bool(cls, value: Any) -> Any:
        return _reject_bool(value)

    @field_validator("host", "user", "database_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("password")
    @classmethod
    def _password_not_blank(cls, value: str) -> str:
        # Surrounding whitespace may be part of the secret.
        if not value.strip():
            raise ValueError("must not be empty")
        return value


class ConfigModel(BaseModel):
    """Validated description of the project to generate.

    Instances are frozen: the generator, the manifest builder and the writer
    all read the same value and none of them can alter it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    project_name: str
    framework: Framework
    language_mode: LanguageMode | None = None
    database: DatabaseChoice = DatabaseChoice.NONE
    features: frozenset[FeatureFlag] = Field(default_factory=frozenset)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    credentials: Credentials | None = None
    connection_uri: str | None = None
    database_name: str | None = None

    @field_validator("project_name")
    @classmethod
    def _valid_name(cls, value: str) -> str:
        return _check_project_name(value)

    @field_validator("connection_uri")
    @classmethod
    def _valid_uri(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not MONGO_URI_PATTERN.match(value):
            raise ValueError(
                "expected mongodb://... or mongodb+srv://... connection string"
            )
        return value

    @field_validator("database_name")
    @classmethod
    def _valid_db_name(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("must not be empty")
        return value.strip() if value is not None else None

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        framework = _coerce_enum(Framework, data.get("framework"))
        if framework is Framework.FLASK:
            data["language_mode"] = None
        elif framework is Framework.EXPRESS and data.get("language_mode") is None:
            data["language_mode"] = LanguageMode.TYPED

        database = _coerce_enum(DatabaseChoice, data.get("database", DatabaseChoice.NONE))
        credentials = data.get("credentials")
        if database in DEFAULT_DB_PORTS and isinstance(credentials, Mapping):
            credentials = dict(credentials)
            if credentials.get("port") in (None, ""):
                credentials["port"] = DEFAULT_DB_PORTS[database]
            data["credentials"] = credentials
        return data

    @model_validator(mode="after")
    def _check_backend_fields(self) -> "ConfigModel":
        expected = _BACKEND_FIELDS.get(self.database)
        for name in ("credentials", "connection_uri", "database_name"):
            present = getattr(self, name) is not None
            if name == expected and not present:
                raise ValueError(f"{name} is required when database is {self.database.value}")
            if name != expected and present:
                raise ValueError(
                    f"{name} is not used when database is {self.database.value}"
                )
        return self

    # -- Convenience accessors ---------------------------------------------

    @property
    def port(self) -> int:
        return self.network.port

    @property
    def typed(self) -> bool:
        return self.language_mode is LanguageMode.TYPED

    def has(self, flag: FeatureFlag) -> bool:
        return flag in self.features


class BootstrapConfig(BaseModel):
    """Stage-1 configuration: only the project name and the framework."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    project_name: str
    framework: Framework

    @field_validator("project_name")
    @classmethod
    def _valid_name(cls, value: str) -> str:
        return _check_project_name(value)


# ---------------------------------------------------------------------------
# Validation entry points
# ---------------------------------------------------------------------------


def validate_config(
    answers: Mapping[str, Any],
    *,
    base_dir: str | Path | None = None,
) -> ConfigModel:
    """Build a ``ConfigModel`` from raw answer values.

    Args:
        answers: Flat prompt answers. ``port`` may be given at top level
            (``{"port": "3000"}``) or nested under ``network``; ``features``
            may be any iterable of flag names.
        base_dir: When given, the project directory ``base_dir/project_name``
            must not exist yet.

    Raises:
        ValidationError: With the offending field name and reason.
    """
    data = _normalise_answers(answers)
    try:
        config = ConfigModel.model_validate(data)
    except PydanticValidationError as exc:
        raise _translate(exc) from exc
    if base_dir is not None:
        _check_target_free(Path(base_dir), config.project_name)
    return config


def validate_bootstrap(
    answers: Mapping[str, Any],
    *,
    base_dir: str | Path | None = None,
) -> BootstrapConfig:
    """Build a ``BootstrapConfig`` and make sure its directory is free."""
    data = {
        "project_name": answers.get("project_name", ""),
        "framework": answers.get("framework"),
    }
    try:
        config = BootstrapConfig.model_validate(data)
    except PydanticValidationError as exc:
        raise _translate(exc) from exc
    if base_dir is not None:
        _check_target_free(Path(base_dir), config.project_name)
    return config


def _normalise_answers(answers: Mapping[str, Any]) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for key, value in answers.items():
        if isinstance(value, str) and key != "password":
            value = value.strip()
        if value == "" and key not in ("project_name", "port"):
            value = None
        data[key] = value

    if "port" in data:
        data["network"] = {"port": data.pop("port")}
    features = data.get("features")
    if features is not None and not isinstance(features, frozenset):
        data["features"] = frozenset(features)
    return {k: v for k, v in data.items() if v is not None}


def _translate(exc: PydanticValidationError) -> ValidationError:
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error["loc"]) or "database"
    reason = error["msg"]
    if reason.startswith("Value error, "):
        reason = reason[len("Value error, "):]
    return ValidationError(field, reason)


def _check_target_free(base_dir: Path, project_name: str) -> None:
    target = base_dir / project_name
    if target.exists():
        raise ValidationError(
            "project_name",
            f'directory "{project_name}" already exists; choose a different '
            f"name or delete the existing folder",
        )


def _coerce_enum(enum_cls: type[Enum], value: Any) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Tool settings
# ---------------------------------------------------------------------------


def _default_npm() -> str:
    return "npm.cmd" if sys.platform == "win32" else "npm"


def _default_python() -> str:
    # The interpreter running stage 1 already has backend_studio installed.
    return sys.executable or ("python" if sys.platform == "win32" else "python3")


class StudioSettings(BaseModel):
    """Tunables for backend-studio itself (not for the generated project)."""

    npm_command: str = Field(default_factory=_default_npm)
    python_command: str = Field(default_factory=_default_python)
    install_timeout: int = Field(
        default=600, ge=10, description="Per-command install timeout in seconds"
    )
    skip_install: bool = Field(
        default=False, description="Write files but do not run npm/pip"
    )
    no_input: bool = Field(
        default=False, description="Never prompt; use defaults or the answers file"
    )
    answers_file: Path | None = Field(
        default=None, description="JSON file with stage-2 answers"
    )
    scripts_dir: str = Field(default=".scripts")

    @classmethod
    def from_env(cls) -> "StudioSettings":
        """Build settings from environment variables.

        Recognised variables (all optional):
            BACKEND_STUDIO_NPM, BACKEND_STUDIO_PYTHON,
            BACKEND_STUDIO_INSTALL_TIMEOUT, BACKEND_STUDIO_SKIP_INSTALL,
            BACKEND_STUDIO_NO_INPUT, BACKEND_STUDIO_ANSWERS.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("BACKEND_STUDIO_NPM"):
            kwargs["npm_command"] = os.environ["BACKEND_STUDIO_NPM"]
        if os.environ.get("BACKEND_STUDIO_PYTHON"):
            kwargs["python_command"] = os.environ["BACKEND_STUDIO_PYTHON"]
        if os.environ.get("BACKEND_STUDIO_INSTALL_TIMEOUT"):
            kwargs["install_timeout"] = int(os.environ["BACKEND_STUDIO_INSTALL_TIMEOUT"])
        if os.environ.get("BACKEND_STUDIO_ANSWERS"):
            kwargs["answers_file"] = Path(os.environ["BACKEND_STUDIO_ANSWERS"])
        kwargs["skip_install"] = _env_flag("BACKEND_STUDIO_SKIP_INSTALL")
        kwargs["no_input"] = _env_flag("BACKEND_STUDIO_NO_INPUT")
        return cls(**kwargs)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")
