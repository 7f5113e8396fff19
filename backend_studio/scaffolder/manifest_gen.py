"""Dependency manifest and script table generation.

``ManifestBuilder`` produces two immutable values per project from the same
assembly routine: the bootstrap manifest written by stage 1 (whose only job
is to register the ``postinstall`` hook) and the final manifest written by
stage 2. Stage 2 overwrites the bootstrap file with the final one; nothing
is ever patched in place.

Dependency growth is monotonic: every optional axis only *adds* packages, so
switching a feature on can never drop a package the project already needed.
"""

from __future__ import annotations

import shlex
import sys
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .. import __version__
from ..config import (
    BootstrapConfig,
    ConfigModel,
    DatabaseChoice,
    FeatureFlag,
    Framework,
    StudioSettings,
)
from ..utils import dump_json

HOOK_SCRIPT = "postinstall"
MANIFEST_VERSION = "1.0.0"


class Ecosystem(str, Enum):
    """Package manager that resolves a dependency manifest."""

    NPM = "npm"
    PIP = "pip"


# ---------------------------------------------------------------------------
# Version tables
# ---------------------------------------------------------------------------

EXPRESS_RUNTIME: dict[str, str] = {
    "express": "^4.21.0",
    "dotenv": "^16.4.5",
    "winston": "^3.15.0",
}

EXPRESS_DEV: dict[str, str] = {
    "jest": "^29.7.0",
    "supertest": "^7.0.0",
}

EXPRESS_DATABASE: dict[DatabaseChoice, dict[str, str]] = {
    DatabaseChoice.NONE: {},
    DatabaseChoice.MONGODB: {"mongoose": "^8.8.0"},
    DatabaseChoice.POSTGRESQL: {"sequelize": "^6.37.5", "pg": "^8.11.5", "pg-hstore": "^2.3.4"},
    DatabaseChoice.MYSQL: {"sequelize": "^6.37.5", "mysql2": "^3.9.8"},
    DatabaseChoice.SQLITE: {"sequelize": "^6.37.5", "sqlite3": "^5.1.7"},
}

EXPRESS_TYPED_DEV: dict[str, str] = {
    "typescript": "^5.6.0",
    "tsx": "^4.19.0",
    "ts-node": "^10.9.2",
    "ts-jest": "^29.2.0",
    "@types/node": "^22.0.0",
    "@types/express": "^5.0.0",
    "@types/jest": "^29.5.14",
    "@types/supertest": "^6.0.2",
}

FLASK_RUNTIME: dict[str, str] = {
    "Flask": "==3.0.3",
    "python-dotenv": "==1.0.1",
    "Werkzeug": "==3.0.3",
}

FLASK_DEV: dict[str, str] = {
    "pytest": "==8.2.0",
}

FLASK_DATABASE: dict[DatabaseChoice, dict[str, str]] = {
    DatabaseChoice.NONE: {},
    DatabaseChoice.MONGODB: {"pymongo": "==4.6.3"},
    DatabaseChoice.POSTGRESQL: {
        "Flask-SQLAlchemy": "==3.1.1",
        "psycopg2-binary": "==2.9.9",
    },
    DatabaseChoice.MYSQL: {
        "Flask-SQLAlchemy": "==3.1.1",
        "PyMySQL": "==1.1.0",
    },
    DatabaseChoice.SQLITE: {
        "Flask-SQLAlchemy": "==3.1.1",
    },
}


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class DependencyManifest(BaseModel):
    """Package -> version constraint, split into runtime and development."""

    model_config = ConfigDict(frozen=True)

    ecosystem: Ecosystem
    runtime: dict[str, str] = Field(default_factory=dict)
    development: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _disjoint(self) -> "DependencyManifest":
        overlap = set(self.runtime) & set(self.development)
        if overlap:
            raise ValueError(f"packages listed as both runtime and dev: {sorted(overlap)}")
        return self

    def packages(self) -> set[str]:
        """Every package name across both partitions."""
        return set(self.runtime) | set(self.development)

    def requirements_txt(self, partition: str = "runtime") -> str:
        """Render one partition as a pip requirements file."""
        entries = self.runtime if partition == "runtime" else self.development
        return "".join(f"{name}{constraint}\n" for name, constraint in entries.items())


class ProjectManifest(BaseModel):
    """Project descriptor rendered to ``package.json``."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str = MANIFEST_VERSION
    description: str = ""
    private: bool = False
    main: str
    module_type: str | None = None
    scripts: dict[str, str]
    dependencies: DependencyManifest
    keywords: tuple[str, ...] = ()
    license: str | None = None
    engines: dict[str, str] = Field(default_factory=dict)

    @property
    def hook(self) -> str | None:
        """The install-lifecycle command, if this manifest registers one."""
        return self.scripts.get(HOOK_SCRIPT)

    def to_package_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "version": self.version}
        if self.description:
            data["description"] = self.description
        if self.private:
            data["private"] = True
        data["main"] = self.main
        if self.module_type:
            data["type"] = self.module_type
        data["scripts"] = dict(self.scripts)
        if self.keywords:
            data["keywords"] = list(self.keywords)
        if self.license:
            data["license"] = self.license
        if self.engines:
            data["engines"] = dict(self.engines)
        if self.dependencies.ecosystem is Ecosystem.NPM:
            data["dependencies"] = dict(self.dependencies.runtime)
            if self.dependencies.development:
                data["devDependencies"] = dict(self.dependencies.development)
        elif self.hook:
            # npm still needs an (empty) dependency table to run the hook.
            data["dependencies"] = {}
        return data

    def render(self) -> str:
        return dump_json(self.to_package_json())


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class ManifestBuilder:
    """Derives manifests and script tables from a configuration."""

    def __init__(self, settings: StudioSettings | None = None) -> None:
        self.settings = settings or StudioSettings()

    # -- Public API --------------------------------------------------------

    def final(self, config: ConfigModel) -> ProjectManifest:
        """The real project's manifest (stage 2)."""
        if config.framework is Framework.EXPRESS:
            return ProjectManifest(
                name=config.project_name,
                description="Express.js Backend API",
                main="dist/server.js" if config.typed else "src/server.js",
                module_type="commonjs" if config.typed else "module",
                scripts=self.scripts(config),
                dependencies=self.dependencies(config),
                keywords=(
                    "express",
                    "node",
                    "api",
                    "backend",
                    "typescript" if config.typed else "javascript",
                ),
                license="MIT",
                engines={"node": ">=18.0.0", "npm": ">=8.0.0"},
            )
        return ProjectManifest(
            name=config.project_name,
            description="Flask Python Backend API",
            main="run.py",
            scripts=self.scripts(config),
            dependencies=self.dependencies(config),
            keywords=("flask", "python", "api", "backend"),
            license="MIT",
        )

    def bootstrap(self, config: BootstrapConfig) -> ProjectManifest:
        """The stage-1 manifest: a start script, the hook, no project deps."""
        entry = "src/server.js" if config.framework is Framework.EXPRESS else "run.py"
        start = f"node {entry}" if config.framework is Framework.EXPRESS else "python run.py"
        return ProjectManifest(
            name=config.project_name,
            private=True,
            main=entry,
            scripts={"start": start, HOOK_SCRIPT: self.hook_command(config.framework)},
            dependencies=self.bootstrap_dependencies(),
        )

    def hook_command(self, framework: Framework) -> str:
        """Command npm runs after installing the bootstrap manifest.

        When the hook runs the interpreter that is running backend-studio now,
        the launcher is started directly. Any other interpreter first installs
        ``.scripts/requirements.txt``.
        """
        python = _shell_quote(self.settings.python_command)
        scripts_dir = self.settings.scripts_dir
        launch = f"{python} {scripts_dir}/{launcher_name(framework)}"
        if self.settings.python_command == sys.executable:
            return launch
        return f"{python} -m pip install -q -r {scripts_dir}/requirements.txt && {launch}"

    def bootstrap_dependencies(self) -> DependencyManifest:
        """What the stage-2 launcher itself needs to run."""
        return DependencyManifest(
            ecosystem=Ecosystem.PIP,
            runtime={"backend-studio": f">={__version__}"},
        )

    def dependencies(self, config: ConfigModel) -> DependencyManifest:
        if config.framework is Framework.EXPRESS:
            return self._express_dependencies(config)
        return self._flask_dependencies(config)

    def scripts(self, config: ConfigModel) -> dict[str, str]:
        if config.framework is Framework.EXPRESS:
            return self._express_scripts(config)
        return self._flask_scripts(config)

    # -- Express -----------------------------------------------------------

    def _express_dependencies(self, config: ConfigModel) -> DependencyManifest:
        runtime = dict(EXPRESS_RUNTIME)
        dev = dict(EXPRESS_DEV)

        if config.has(FeatureFlag.CORS):
            runtime["cors"] = "^2.8.5"
        runtime.update(EXPRESS_DATABASE[config.database])
        if config.has(FeatureFlag.AUTO_RELOAD):
            dev["nodemon"] = "^3.1.7"
        if config.typed:
            dev.update(EXPRESS_TYPED_DEV)
            if config.has(FeatureFlag.CORS):
                dev["@types/cors"] = "^2.8.17"

        return DependencyManifest(ecosystem=Ecosystem.NPM, runtime=runtime, development=dev)

    def _express_scripts(self, config: ConfigModel) -> dict[str, str]:
        if config.typed:
            start = "npm run build && node dist/server.js"
            test = "jest --forceExit --detectOpenHandles"
        else:
            start = "node src/server.js"
            test = (
                "node --experimental-vm-modules node_modules/jest/bin/jest.js"
                " --forceExit --detectOpenHandles"
            )

        scripts = {"start": start}
        if config.has(FeatureFlag.AUTO_RELOAD):
            scripts["dev"] = (
                "nodemon --watch src --ext ts --exec tsx src/server.ts"
                if config.typed
                else "nodemon src/server.js"
            )
        else:
            scripts["dev"] = start
        if config.typed:
            scripts["build"] = "tsc"
        scripts["test"] = test
        return scripts

    # -- Flask -------------------------------------------------------------

    def _flask_dependencies(self, config: ConfigModel) -> DependencyManifest:
        runtime = dict(FLASK_RUNTIME)
        if config.has(FeatureFlag.CORS):
            runtime["Flask-Cors"] = "==4.0.1"
        runtime.update(FLASK_DATABASE[config.database])
        return DependencyManifest(
            ecosystem=Ecosystem.PIP, runtime=runtime, development=dict(FLASK_DEV)
        )

    def _flask_scripts(self, config: ConfigModel) -> dict[str, str]:
        start = "python run.py"
        scripts = {"start": start}
        if config.has(FeatureFlag.AUTO_RELOAD):
            scripts["dev"] = f"flask --app app run --debug --port {config.port}"
        else:
            scripts["dev"] = start
        scripts["test"] = "python -m pytest"
        return scripts


def _shell_quote(command: str) -> str:
    if sys.platform == "win32":
        return f'"{command}"' if " " in command else command
    return shlex.quote(command)


def launcher_name(framework: Framework) -> str:
    """File name of the stage-2 launcher copied into the scripts directory."""
    return f"setup_{framework.value}.py"
