"""File batch generation.

``FileSpecGenerator`` turns a validated configuration into a ``FileBatch``
without touching the disk. Each logical role has one builder per framework,
registered in a dispatch table; builders choose their template from the
database and language mode and return zero or more ``FileSpec`` objects.
All of them share a single ``GenerationContext`` so extension and import
conventions are decided exactly once per batch.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from importlib import resources
from typing import Any

from ..config import BootstrapConfig, ConfigModel, FeatureFlag, Framework, StudioSettings
from ..errors import GenerationError
from .express_gen import ExpressGenerator
from .filespec import (
    API_PREFIX,
    SOURCE_ROLES,
    FileBatch,
    FileSpec,
    GenerationStage,
    Layout,
    LogicalRole,
)
from .flask_gen import FlaskGenerator
from .manifest_gen import ManifestBuilder, launcher_name
from .templates import TemplateRenderer

# Connection retry constants baked into generated data-access modules.
RETRY_ATTEMPTS = 5
RETRY_DELAY_MS = 5000

# Batch order. Writers process files in this order.
ROLE_ORDER: tuple[LogicalRole, ...] = (
    LogicalRole.MANIFEST,
    LogicalRole.REQUIREMENTS,
    LogicalRole.DEV_REQUIREMENTS,
    LogicalRole.BUILD_CONFIG,
    LogicalRole.TEST_CONFIG,
    LogicalRole.ENV_FILE,
    LogicalRole.IGNORE_FILE,
    LogicalRole.EDITOR_CONFIG,
    LogicalRole.NODE_VERSION,
    LogicalRole.README,
    LogicalRole.PACKAGE_INIT,
    LogicalRole.ENTRY_POINT,
    LogicalRole.APP_WIRING,
    LogicalRole.ERROR_TYPES,
    LogicalRole.LOGGING_UTIL,
    LogicalRole.DOMAIN_MODEL,
    LogicalRole.DATA_ACCESS,
    LogicalRole.CONTROLLER,
    LogicalRole.ROUTER,
    LogicalRole.ERROR_MIDDLEWARE,
    LogicalRole.TEST_SUITE,
)

Builder = Callable[["GenerationContext"], list[FileSpec]]


@dataclass(frozen=True)
class GenerationContext:
    """Everything a builder may read while producing files for one config."""

    config: ConfigModel
    layout: Layout
    manifests: ManifestBuilder
    renderer: TemplateRenderer
    base_vars: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        config: ConfigModel,
        manifests: ManifestBuilder,
        renderer: TemplateRenderer,
    ) -> "GenerationContext":
        layout = Layout.for_config(config)
        return cls(
            config=config,
            layout=layout,
            manifests=manifests,
            renderer=renderer,
            base_vars=_base_vars(config, layout),
        )

    def variables(self, role: LogicalRole) -> dict[str, Any]:
        """Template variables for *role*, including its import specifiers."""
        imports = {}
        if role in SOURCE_ROLES:
            imports = {
                target.value: self.layout.import_path(role, target)
                for target in SOURCE_ROLES
                if target in self.layout.paths and target is not LogicalRole.TEST_SUITE
            }
        return {**self.base_vars, "imports": imports}

    def render(
        self,
        role: LogicalRole,
        template: str,
        extra: dict[str, Any] | None = None,
    ) -> FileSpec:
        """Render *template* into the file that the layout assigns to *role*."""
        variables = self.variables(role)
        if extra:
            variables.update(extra)
        return FileSpec(
            relative_path=self.layout.path(role),
            content=self.renderer.render(template, variables),
            generation_stage=GenerationStage.FINAL,
            role=role,
        )

    def literal(self, role: LogicalRole, content: str, path: str | None = None) -> FileSpec:
        """Wrap pre-built *content* (JSON, requirements...) as a final-stage file."""
        return FileSpec(
            relative_path=path or self.layout.path(role),
            content=content,
            generation_stage=GenerationStage.FINAL,
            role=role,
        )


def _base_vars(config: ConfigModel, layout: Layout) -> dict[str, Any]:
    credentials = config.credentials.model_dump() if config.credentials else None
    return {
        "project_name": config.project_name,
        "framework": config.framework.value,
        "typed": config.typed,
        "ext": layout.ext,
        "port": config.port,
        "database": config.database.value,
        "database_label": config.database.display_name,
        "uses_sql": config.database.uses_sql,
        "connection_uri": config.connection_uri,
        "credentials": credentials,
        "database_name": config.database_name,
        "cors": config.has(FeatureFlag.CORS),
        "auto_reload": config.has(FeatureFlag.AUTO_RELOAD),
        "venv": config.has(FeatureFlag.VENV),
        "api_prefix": API_PREFIX,
        "retry_attempts": RETRY_ATTEMPTS,
        "retry_delay_ms": RETRY_DELAY_MS,
        "data_module": layout.data_module,
        "paths": {role.value: path for role, path in layout.paths.items()},
    }


class FileSpecGenerator:
    """Builds complete, internally consistent file batches.

    Usage::

        generator = FileSpecGenerator()
        batch = generator.generate(config)          # final project
        skeleton = generator.bootstrap(boot_config)  # stage-1 skeleton
    """

    def __init__(
        self,
        settings: StudioSettings | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.settings = settings or StudioSettings()
        self.renderer = renderer or TemplateRenderer()
        self.manifests = ManifestBuilder(self.settings)
        self.express_gen = ExpressGenerator()
        self.flask_gen = FlaskGenerator()
        self._builders = self._dispatch_table()

    # -- Public API --------------------------------------------------------

    def generate(self, config: ConfigModel) -> FileBatch:
        """Produce the final project's files for *config* as one batch."""
        context = GenerationContext.create(config, self.manifests, self.renderer)
        files: list[FileSpec] = []
        for role in ROLE_ORDER:
            builder = self._builders.get((role, config.framework))
            if builder is None:
                continue
            files.extend(builder(context))
        return FileBatch(tuple(files))

    def bootstrap(self, config: BootstrapConfig) -> FileBatch:
        """Produce the stage-1 skeleton: manifest, launcher and its requirements."""
        scripts_dir = self.settings.scripts_dir
        manifest = self.manifests.bootstrap(config)
        launcher = launcher_name(config.framework)
        files = (
            FileSpec(
                relative_path="package.json",
                content=manifest.render(),
                generation_stage=GenerationStage.BOOTSTRAP,
                role=LogicalRole.MANIFEST,
            ),
            FileSpec(
                relative_path=f"{scripts_dir}/{launcher}",
                content=read_launcher(config.framework),
                generation_stage=GenerationStage.BOOTSTRAP,
                role=LogicalRole.BOOTSTRAP_SCRIPT,
                executable=True,
            ),
            FileSpec(
                relative_path=f"{scripts_dir}/requirements.txt",
                content=self.manifests.bootstrap_dependencies().requirements_txt(),
                generation_stage=GenerationStage.BOOTSTRAP,
                role=LogicalRole.BOOTSTRAP_REQUIREMENTS,
            ),
        )
        return FileBatch(files)

    def supports(self, role: LogicalRole, framework: Framework) -> bool:
        return (role, framework) in self._builders

    # -- Internals ---------------------------------------------------------

    def _dispatch_table(self) -> dict[tuple[LogicalRole, Framework], Builder]:
        table: dict[tuple[LogicalRole, Framework], Builder] = {}
        for framework, gen in (
            (Framework.EXPRESS, self.express_gen),
            (Framework.FLASK, self.flask_gen),
        ):
            for role, builder in gen.builders().items():
                table[(role, framework)] = builder
        return table


def read_launcher(framework: Framework) -> str:
    """Source of the stage-2 launcher shipped inside this package."""
    resource = resources.files("backend_studio.bootstrap.setup").joinpath(
        launcher_name(framework)
    )
    try:
        return resource.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise GenerationError(
            f"Stage-2 launcher for {framework.value} is missing from the installation"
        ) from None
