"""Flask project builders.

Mirrors ``express_gen`` for the Python target: an application factory in
``app/``, a blueprint mounted under the users API prefix and one data-access
module per database backend exposing ``init_db``, ``list_users`` and
``create_user``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable
from urllib.parse import quote

from ..config import ConfigModel, DatabaseChoice
from .filespec import FileSpec, GenerationStage, LogicalRole

if TYPE_CHECKING:
    from .generator import GenerationContext

_DB_TEMPLATES: dict[DatabaseChoice, str] = {
    DatabaseChoice.NONE: "memory",
    DatabaseChoice.MONGODB: "mongo",
    DatabaseChoice.POSTGRESQL: "sqlalchemy",
    DatabaseChoice.MYSQL: "sqlalchemy",
    DatabaseChoice.SQLITE: "sqlalchemy",
}

_URL_SCHEMES: dict[DatabaseChoice, str] = {
    DatabaseChoice.POSTGRESQL: "postgresql",
    DatabaseChoice.MYSQL: "mysql+pymysql",
}


def database_url(config: ConfigModel, *, with_password: bool = True) -> str | None:
    """SQLAlchemy URL for the configured SQL backend, ``None`` otherwise."""
    if config.database is DatabaseChoice.SQLITE:
        return f"sqlite:///{config.database_name}.sqlite"
    if config.credentials is None or config.database not in _URL_SCHEMES:
        return None
    creds = config.credentials
    userinfo = quote(creds.user, safe="")
    if with_password:
        userinfo += ":" + quote(creds.password, safe="")
    return (
        f"{_URL_SCHEMES[config.database]}://{userinfo}@{creds.host}:{creds.port}"
        f"/{quote(creds.database_name, safe='')}"
    )


class FlaskGenerator:
    """Builds the files of a Flask REST API."""

    def builders(self) -> dict[LogicalRole, Callable[["GenerationContext"], list[FileSpec]]]:
        return {
            LogicalRole.MANIFEST: self.manifest,
            LogicalRole.REQUIREMENTS: self.requirements,
            LogicalRole.DEV_REQUIREMENTS: self.dev_requirements,
            LogicalRole.TEST_CONFIG: self.test_config,
            LogicalRole.ENV_FILE: self.env_file,
            LogicalRole.IGNORE_FILE: self.ignore_file,
            LogicalRole.README: self.readme,
            LogicalRole.PACKAGE_INIT: self.package_inits,
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
        # npm still reads package.json in Flask projects; it carries scripts only.
        content = ctx.manifests.final(ctx.config).render()
        return [ctx.literal(LogicalRole.MANIFEST, content)]

    def requirements(self, ctx: "GenerationContext") -> list[FileSpec]:
        deps = ctx.manifests.dependencies(ctx.config)
        return [ctx.literal(LogicalRole.REQUIREMENTS, deps.requirements_txt("runtime"))]

    def dev_requirements(self, ctx: "GenerationContext") -> list[FileSpec]:
        deps = ctx.manifests.dependencies(ctx.config)
        content = "-r requirements.txt\n" + deps.requirements_txt("development")
        return [ctx.literal(LogicalRole.DEV_REQUIREMENTS, content)]

    def test_config(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.TEST_CONFIG, "flask/pytest.ini.j2")]

    def env_file(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [
            ctx.render(
                LogicalRole.ENV_FILE,
                "flask/env.j2",
                extra={"database_url": database_url(ctx.config)},
            )
        ]

    def ignore_file(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.IGNORE_FILE, "flask/gitignore.j2")]

    def readme(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.README, "flask/README.md.j2")]

    def package_inits(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [
            FileSpec(
                relative_path=f"{package}/__init__.py",
                content="",
                generation_stage=GenerationStage.FINAL,
                role=LogicalRole.PACKAGE_INIT,
            )
            for package in ctx.layout.package_dirs()
        ]

    # -- Source files ------------------------------------------------------

    def entry_point(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.ENTRY_POINT, "flask/run.py.j2")]

    def app_wiring(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.APP_WIRING, "flask/app_init.py.j2")]

    def error_types(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.ERROR_TYPES, "flask/errors.py.j2")]

    def logging_util(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.LOGGING_UTIL, "flask/helpers.py.j2")]

    def domain_model(self, ctx: "GenerationContext") -> list[FileSpec]:
        variant = _DB_TEMPLATES[ctx.config.database]
        return [ctx.render(LogicalRole.DOMAIN_MODEL, f"flask/models/{variant}.py.j2")]

    def data_access(self, ctx: "GenerationContext") -> list[FileSpec]:
        variant = _DB_TEMPLATES[ctx.config.database]
        return [
            ctx.render(
                LogicalRole.DATA_ACCESS,
                f"flask/db/{variant}.py.j2",
                extra={"database_url": database_url(ctx.config, with_password=False)},
            )
        ]

    def controller(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.CONTROLLER, "flask/user_controller.py.j2")]

    def router(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.ROUTER, "flask/routes.py.j2")]

    def error_middleware(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.ERROR_MIDDLEWARE, "flask/error_handlers.py.j2")]

    def test_suite(self, ctx: "GenerationContext") -> list[FileSpec]:
        return [ctx.render(LogicalRole.TEST_SUITE, "flask/test_app.py.j2")]
