"""backend-studio scaffolder -- turns a configuration into project files.

Generation is pure and happens in memory; writing is a separate step.

Quick usage::

    from backend_studio.config import validate_config
    from backend_studio.scaffolder import FileSpecGenerator, ProjectWriter

    config = validate_config({"project_name": "demo", "framework": "express"})
    batch = FileSpecGenerator().generate(config)
    await ProjectWriter("demo").write(batch)
"""

from backend_studio.scaffolder.filespec import FileBatch, FileSpec, GenerationStage, LogicalRole
from backend_studio.scaffolder.generator import FileSpecGenerator
from backend_studio.scaffolder.manifest_gen import ManifestBuilder
from backend_studio.scaffolder.writer import ProjectWriter

__all__ = [
    "FileBatch",
    "FileSpec",
    "FileSpecGenerator",
    "GenerationStage",
    "LogicalRole",
    "ManifestBuilder",
    "ProjectWriter",
]
