"""Jinja2 template rendering for project scaffolding.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``backend_studio/scaffolder/templates/`` directory and renders them with a
generation context. Rendering is pure: the renderer returns strings and the
``ProjectWriter`` decides when they reach the disk.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from ..errors import GenerationError


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates for project scaffolding.

    Templates are looked up relative to a template directory
    (``express/server.j2``, ``flask/app_init.py.j2``...). Undefined variables
    raise instead of rendering as empty strings, so a template can never
    silently drop an import path or a port.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        # Register custom filters
        self.env.filters["js_string"] = _js_string_filter
        self.env.filters["py_string"] = _py_string_filter
        self.env.filters["pascal_case"] = _pascal_case_filter

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"express/app.j2"``).
            context: Dictionary of variables available inside the template.

        Returns:
            The rendered template content as a string.

        Raises:
            GenerationError: On any Jinja2 template error.
        """
        try:
            return self.env.get_template(template_path).render(**context)
        except TemplateError as exc:
            raise GenerationError(f"Cannot render {template_path}: {exc}") from exc

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render an inline template string with the provided context."""
        try:
            return self.env.from_string(template_string).render(**context)
        except TemplateError as exc:
            raise GenerationError(f"Cannot render inline template: {exc}") from exc

    def list_templates(self, prefix: str = "") -> list[str]:
        """Return a sorted list of all ``.j2`` template paths under *prefix*.

        Paths are relative to the template root directory.
        """
        search_dir = self.template_dir / prefix if prefix else self.template_dir
        if not search_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.template_dir).as_posix()
            for p in search_dir.rglob("*.j2")
        )


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------


def _js_string_filter(value: Any) -> str:
    """Quote a value as a single-quoted JavaScript string literal."""
    text = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{text}'"


def _py_string_filter(value: Any) -> str:
    """Quote a value as a Python string literal."""
    return repr(str(value))


def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_.\s]+", value)
    return "".join(word.capitalize() for word in parts if word)
