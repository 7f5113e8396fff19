"""File specifications and the per-project module layout.

A ``FileSpec`` is one generated file held in memory. Generators never touch
the filesystem; they return a ``FileBatch`` which the ``ProjectWriter``
materialises. ``Layout`` is the single place where file extensions, module
paths and import conventions are decided for a configuration, so every
generated import agrees with every generated path.
"""

from __future__ import annotations

import posixpath
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum, IntEnum

from ..config import ConfigModel, DatabaseChoice, Framework
from ..errors import GenerationError


class GenerationStage(IntEnum):
    """Which stage of the bootstrap owns a file."""

    BOOTSTRAP = 1
    FINAL = 2


class LogicalRole(str, Enum):
    """The fixed set of files a generated project can contain."""

    ENTRY_POINT = "entry_point"
    APP_WIRING = "app_wiring"
    DATA_ACCESS = "data_access"
    DOMAIN_MODEL = "domain_model"
    CONTROLLER = "controller"
    ROUTER = "router"
    ERROR_MIDDLEWARE = "error_middleware"
    ERROR_TYPES = "error_types"
    LOGGING_UTIL = "logging_util"
    TEST_SUITE = "test_suite"
    TEST_CONFIG = "test_config"
    BUILD_CONFIG = "build_config"
    ENV_FILE = "env_file"
    IGNORE_FILE = "ignore_file"
    README = "readme"
    MANIFEST = "manifest"
    REQUIREMENTS = "requirements"
    DEV_REQUIREMENTS = "dev_requirements"
    EDITOR_CONFIG = "editor_config"
    NODE_VERSION = "node_version"
    PACKAGE_INIT = "package_init"
    BOOTSTRAP_SCRIPT = "bootstrap_script"
    BOOTSTRAP_REQUIREMENTS = "bootstrap_requirements"


# Roles whose files are program source (and therefore carry the script extension).
SOURCE_ROLES: frozenset[LogicalRole] = frozenset({
    LogicalRole.ENTRY_POINT,
    LogicalRole.APP_WIRING,
    LogicalRole.DATA_ACCESS,
    LogicalRole.DOMAIN_MODEL,
    LogicalRole.CONTROLLER,
    LogicalRole.ROUTER,
    LogicalRole.ERROR_MIDDLEWARE,
    LogicalRole.ERROR_TYPES,
    LogicalRole.LOGGING_UTIL,
    LogicalRole.TEST_SUITE,
})

API_PREFIX = "/api/users"

DATA_MODULES: dict[DatabaseChoice, str] = {
    DatabaseChoice.NONE: "memory",
    DatabaseChoice.MONGODB: "mongo",
    DatabaseChoice.POSTGRESQL: "postgres",
    DatabaseChoice.MYSQL: "mysql",
    DatabaseChoice.SQLITE: "sqlite",
}

_SCRIPT_SUFFIXES = (".ts", ".js")


@dataclass(frozen=True)
class FileSpec:
    """One generated file: where it goes, what it holds and which stage owns it."""

    relative_path: str
    content: str
    generation_stage: GenerationStage
    role: LogicalRole
    executable: bool = False

    @property
    def suffix(self) -> str:
        return posixpath.splitext(self.relative_path)[1]


@dataclass(frozen=True)
class FileBatch:
    """An ordered, internally consistent set of ``FileSpec`` objects.

    Construction fails with ``GenerationError`` on duplicate paths or when
    JavaScript and TypeScript sources are mixed, so an inconsistent batch
    can never be handed to the writer.
    """

    files: tuple[FileSpec, ...]

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for spec in self.files:
            if spec.relative_path in seen:
                raise GenerationError(f"Duplicate generated path: {spec.relative_path}")
            seen.add(spec.relative_path)

        script_suffixes = {s.suffix for s in self.files if s.suffix in _SCRIPT_SUFFIXES}
        if len(script_suffixes) > 1:
            raise GenerationError(
                f"Mixed script extensions in one batch: {sorted(script_suffixes)}"
            )

    def __iter__(self) -> Iterator[FileSpec]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    def paths(self) -> list[str]:
        return [spec.relative_path for spec in self.files]

    def get(self, relative_path: str) -> FileSpec:
        for spec in self.files:
            if spec.relative_path == relative_path:
                return spec
        raise KeyError(relative_path)

    def by_role(self, role: LogicalRole) -> list[FileSpec]:
        return [spec for spec in self.files if spec.role is role]

    def for_stage(self, stage: GenerationStage) -> list[FileSpec]:
        return [spec for spec in self.files if spec.generation_stage is stage]


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Layout:
    """File paths and import conventions for one configuration.

    Attributes:
        framework: Target framework.
        ext: Script extension without the dot (``ts``, ``js`` or ``py``).
        import_suffix: Appended to every relative import (``.js`` for ES
            modules, empty for CommonJS output compiled from TypeScript).
        module_type: ``package.json`` ``type`` value (``module`` or ``commonjs``).
        data_module: Backend-specific name of the data-access module.
        paths: Relative path of each single-file role.
    """

    framework: Framework
    ext: str
    import_suffix: str
    module_type: str
    data_module: str
    paths: dict[LogicalRole, str] = field(default_factory=dict)

    @classmethod
    def for_config(cls, config: ConfigModel) -> "Layout":
        data_module = DATA_MODULES[config.database]
        if config.framework is Framework.EXPRESS:
            return cls._express(config, data_module)
        return cls._flask(data_module)

    @classmethod
    def _express(cls, config: ConfigModel, data_module: str) -> "Layout":
        ext = "ts" if config.typed else "js"
        paths = {
            LogicalRole.ENTRY_POINT: f"src/server.{ext}",
            LogicalRole.APP_WIRING: f"src/app.{ext}",
            LogicalRole.DATA_ACCESS: f"src/db/{data_module}.{ext}",
            LogicalRole.DOMAIN_MODEL: f"src/models/User.{ext}",
            LogicalRole.CONTROLLER: f"src/controllers/userController.{ext}",
            LogicalRole.ROUTER: f"src/routes/userRoutes.{ext}",
            LogicalRole.ERROR_MIDDLEWARE: f"src/middleware/errorHandler.{ext}",
            LogicalRole.ERROR_TYPES: f"src/utils/errors.{ext}",
            LogicalRole.LOGGING_UTIL: f"src/utils/logger.{ext}",
            LogicalRole.TEST_SUITE: f"tests/user.test.{ext}",
            LogicalRole.TEST_CONFIG: f"jest.config.{ext}",
            LogicalRole.BUILD_CONFIG: "tsconfig.json",
            LogicalRole.ENV_FILE: ".env",
            LogicalRole.IGNORE_FILE: ".gitignore",
            LogicalRole.README: "README.md",
            LogicalRole.MANIFEST: "package.json",
            LogicalRole.EDITOR_CONFIG: ".editorconfig",
            LogicalRole.NODE_VERSION: ".nvmrc",
        }
        return cls(
            framework=Framework.EXPRESS,
            ext=ext,
            import_suffix="" if config.typed else ".js",
            module_type="commonjs" if config.typed else "module",
            data_module=data_module,
            paths=paths,
        )

    @classmethod
    def _flask(cls, data_module: str) -> "Layout":
        paths = {
            LogicalRole.ENTRY_POINT: "run.py",
            LogicalRole.APP_WIRING: "app/__init__.py",
            LogicalRole.DATA_ACCESS: f"app/db/{data_module}.py",
            LogicalRole.DOMAIN_MODEL: "app/models/user.py",
            LogicalRole.CONTROLLER: "app/controllers/user_controller.py",
            LogicalRole.ROUTER: "app/routes/users.py",
            LogicalRole.ERROR_MIDDLEWARE: "app/middleware/errors.py",
            LogicalRole.ERROR_TYPES: "app/errors.py",
            LogicalRole.LOGGING_UTIL: "app/utils/helpers.py",
            LogicalRole.TEST_SUITE: "tests/test_app.py",
            LogicalRole.TEST_CONFIG: "pytest.ini",
            LogicalRole.ENV_FILE: ".env",
            LogicalRole.IGNORE_FILE: ".gitignore",
            LogicalRole.README: "README.md",
            LogicalRole.MANIFEST: "package.json",
            LogicalRole.REQUIREMENTS: "requirements.txt",
            LogicalRole.DEV_REQUIREMENTS: "requirements-dev.txt",
        }
        return cls(
            framework=Framework.FLASK,
            ext="py",
            import_suffix="",
            module_type="",
            data_module=data_module,
            paths=paths,
        )

    def path(self, role: LogicalRole) -> str:
        try:
            return self.paths[role]
        except KeyError:
            raise GenerationError(
                f"{self.framework.value} projects have no {role.value} file"
            ) from None

    def import_path(self, from_role: LogicalRole, to_role: LogicalRole) -> str:
        """Return the import specifier *from_role* uses to reach *to_role*.

        Express: a relative specifier such as ``../db/mongo.js``.
        Flask: an absolute dotted module such as ``app.db.mongo``.
        """
        target = self.path(to_role)
        if self.framework is Framework.FLASK:
            return python_module(target)

        source_dir = posixpath.dirname(self.path(from_role))
        stem = posixpath.splitext(target)[0]
        relative = posixpath.relpath(stem, source_dir or ".")
        if not relative.startswith("."):
            relative = f"./{relative}"
        return f"{relative}{self.import_suffix}"

    def package_dirs(self) -> list[str]:
        """Python package directories that need an ``__init__.py`` (Flask only)."""
        if self.framework is not Framework.FLASK:
            return []
        dirs: set[str] = set()
        for role, path in self.paths.items():
            if not path.endswith(".py") or role is LogicalRole.ENTRY_POINT:
                continue
            parent = posixpath.dirname(path)
            while parent:
                dirs.add(parent)
                parent = posixpath.dirname(parent)
        return sorted(d for d in dirs if f"{d}/__init__.py" not in self.paths.values())


def python_module(path: str) -> str:
    """``app/db/mongo.py`` -> ``app.db.mongo``; ``app/__init__.py`` -> ``app``."""
    stem = posixpath.splitext(path)[0]
    if stem.endswith("/__init__"):
        stem = stem[: -len("/__init__")]
    return stem.replace("/", ".")
