"""Tests for the Jinja2 template renderer (backend_studio.scaffolder.templates)."""

from __future__ import annotations

from pathlib import Path

import pytest

from backend_studio.errors import GenerationError
from backend_studio.scaffolder.templates import (
    TemplateRenderer,
    _js_string_filter,
    _pascal_case_filter,
    _py_string_filter,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


class TestTemplateRenderer:
    def test_lists_bundled_templates(self, renderer: TemplateRenderer):
        express = renderer.list_templates("express")
        flask = renderer.list_templates("flask")
        assert "express/server.j2" in express
        assert "express/db/memory.j2" in express
        assert "flask/app_init.py.j2" in flask
        assert all(path.startswith("flask/") for path in flask)

    def test_list_unknown_prefix(self, renderer: TemplateRenderer):
        assert renderer.list_templates("django") == []

    def test_render_string(self, renderer: TemplateRenderer):
        assert renderer.render_string("port={{ port }}", {"port": 3000}) == "port=3000"

    def test_undefined_variable_raises(self, renderer: TemplateRenderer):
        with pytest.raises(GenerationError, match="missing"):
            renderer.render_string("{{ missing }}", {})

    def test_missing_template(self, renderer: TemplateRenderer):
        with pytest.raises(GenerationError, match="express/nope.j2"):
            renderer.render("express/nope.j2", {})

    def test_syntax_error_names_template(self, tmp_path: Path):
        (tmp_path / "bad.j2").write_text("/** @typedef {{ id: number }} */\n", encoding="utf-8")
        with pytest.raises(GenerationError, match="bad.j2"):
            TemplateRenderer(tmp_path).render("bad.j2", {})

    def test_every_bundled_template_compiles(self, renderer: TemplateRenderer):
        templates = renderer.list_templates()
        assert templates
        for path in templates:
            renderer.env.get_template(path)

    def test_no_html_escaping(self, renderer: TemplateRenderer):
        assert renderer.render_string("{{ v }}", {"v": "<a & b>"}) == "<a & b>"

    def test_file_templates_not_escaped(self, tmp_path: Path):
        (tmp_path / "t.j2").write_text("{{ v }}", encoding="utf-8")
        assert TemplateRenderer(tmp_path).render("t.j2", {"v": "a && b < c"}) == "a && b < c"

    def test_keeps_trailing_newline(self, tmp_path: Path):
        (tmp_path / "t.j2").write_text("port={{ port }}\n", encoding="utf-8")
        rendered = TemplateRenderer(tmp_path).render("t.j2", {"port": 1})
        assert rendered == "port=1\n"


class TestFilters:
    def test_js_string(self):
        assert _js_string_filter("it's") == "'it\\'s'"
        assert _js_string_filter("a\\b") == "'a\\\\b'"

    def test_py_string(self):
        assert _py_string_filter("demo") == "'demo'"
        assert _py_string_filter(None) == "'None'"

    def test_pascal_case(self):
        assert _pascal_case_filter("my-api_v2") == "MyApiV2"
        assert _pascal_case_filter("user") == "User"
