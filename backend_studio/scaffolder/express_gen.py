"""Express.js project builders.

One method per logical role. Each picks a template under
``templates/express/`` by database and language mode; TypeScript and
JavaScript variants share templates and differ only through the ``typed``
flag and the import specifiers computed by ``Layout``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from ..config import DatabaseChoice
from ..utils import dump_json
from .filespec import FileSpec, LogicalRole

if TYPE_CHECKING:
    from .generator import GenerationContext

NODE_VERSION = "18.0.0"

# Data-access and model template per database backend.
_DB_TEMPLATES: dict[DatabaseChoice, str] = {
    DatabaseChoice.NONE: "memory",
    DatabaseChoice.MONGODB: "mongo",
    DatabaseChoice.POSTGRESQL: "sequelize",
    DatabaseChoice.MYSQL: "sequelize",
    DatabaseChoice.SQLITE: "sequelize",
}

SEQUELIZE_DIALECTS: dict[DatabaseChoice, str] = {
    DatabaseChoice.POSTGRESQL: "postgres",
    DatabaseChoice.MYSQL: "mysql",
    DatabaseChoice.SQLITE: "sqlite",
}


class ExpressGenerator:
    """Builds the files of an Express REST API."""

    def builders(self) -> dict[LogicalRole, Callable[["GenerationContext"], list[FileSpec]]]:
        return {
            LogicalRole.MANIFEST: self.manifest,
            LogicalRole.BUILD_CONFIG: self.build_config,
            LogicalRole.TEST_CONFIG: self.test_config,
            LogicalRole.ENV_FILE: self.env_file,
            LogicalRole.IGNORE_FILE: self.ignore_file,
            LogicalRole.EDITOR_CONFIG: self.editor_config,
            LogicalRole.NODE_VERSION: self.node_version,
            LogicalRole.README: self.readme,
            LogicalRole.ENTRY_POINT: self.entry_point,
            LogicalRole.APP_WIRING: self.app_wiring,
            LogicalRole.ERROR_TYPES: self.error_types,
            LogicalRole.LOGGING_UTIL: self.logging_util,
            LogicalRole.DOMAIN_MODEL: self.domain_model,
            LogicalRole.DATA_ACCESS: self.data_access,
            LogicalRole.CONTROLLER: self.controller,
            LogicalRole.ROUTER: self.router,
            LogicalRole.ERROR_MIDDLEWARE: self.error_middleware,
            LogicalRole.TEST_SUITE: self.test_suite,
        }

    # -- Project files -----------------------------------------------------

    def manifest(self, ctx: "GenerationContext") -> list[FileSpec]:
        content = ctx.manifests.final(ctx.config).render()
        return [ctx.literal(LogicalRole.MANIFEST, content)]

    def build_config(self, ctx: "GenerationContext") -> list[FileSpec]:
        if not ctx.config.typed:
            return []
        return [ctx.literal(LogicalRole.BUILD_CONFIG, dump_json(tsconfig()))]

    def test_config(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.TEST_CONFIG, "express/jest.config.j2")]

    def env_file(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.ENV_FILE, "express/env.j2")]

    def ignore_file(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.IGNORE_FILE, "express/gitignore.j2")]

    def editor_config(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.EDITOR_CONFIG, "express/editorconfig.j2")]

    def node_version(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.literal(LogicalRole.NODE_VERSION, f"{NODE_VERSION}\n")]

    def readme(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.README, "express/README.md.j2")]

    # -- Source files ------------------------------------------------------

    def entry_point(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.ENTRY_POINT, "express/server.j2")]

    def app_wiring(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.APP_WIRING, "express/app.j2")]

    def error_types(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.ERROR_TYPES, "express/errors.j2")]

    def logging_util(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.LOGGING_UTIL, "express/logger.j2")]

    def domain_model(self, ctx: "GenerationContext") -> list[FileSpec]:
        variant = _DB_TEMPLATES[ctx.config.database]
        return [ctx.render(LogicalRole.DOMAIN_MODEL, f"express/models/{variant}.j2")]

    def data_access(self, ctx: "GenerationContext") -> list[FileSpec]:
        variant = _DB_TEMPLATES[ctx.config.database]
        # Sequelize backends share one template; the dialect picks the driver.
        dialect = SEQUELIZE_DIALECTS.get(ctx.config.database)
        return [
            ctx.render(
                LogicalRole.DATA_ACCESS,
                f"express/db/{variant}.j2",
                extra={"dialect": dialect},
            )
        ]

    def controller(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.CONTROLLER, "express/controller.j2")]

    def router(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.ROUTER, "express/routes.j2")]

    def error_middleware(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.ERROR_MIDDLEWARE, "express/errorHandler.j2")]

    def test_suite(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.TEST_SUITE, "express/user.test.j2")]


def tsconfig() -> dict:
    """``tsconfig.json`` for TypeScript projects compiled to CommonJS in ``dist/``."""
    return {
        "compilerOptions": {
            "target": "ES2020",
            "module": "commonjs",
            "moduleResolution": "node",
            "outDir": "./dist",
            "strict": True,
            "esModuleInterop": True,
            "skipLibCheck": True,
            "forceConsistentCasingInFileNames": True,
            "resolveJsonModule": True,
            "sourceMap": True,
            "types": ["node", "jest"],
        },
        "include": ["src/**/*"],
        "exclude": ["node_modules", "dist", "tests"],
    }
