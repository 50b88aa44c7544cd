"""Unit tests for TemplateRenderer (ritual_grove.generator.template).

Covers:
- Rendering with the default [[ ]] / [% %] delimiters
- Case helpers as filters and functions
- Pass-through of {{ }} braces
- RenderError for syntax errors and unknown variables
- Lenient condition rendering
- Custom delimiters
"""

from __future__ import annotations

from pathlib import Path

import pytest

from ritual_grove.errors import RenderError
from ritual_grove.generator.template import TemplateRenderer

pytestmark = pytest.mark.unit


@pytest.fixture
def renderer() -> TemplateRenderer:
    return TemplateRenderer()


class TestRender:
    def test_simple_substitution(self, renderer):
        assert renderer.render("App: [[ app_name ]]", {"app_name": "my-app"}) == "App: my-app"

    def test_rendering_is_idempotent(self, renderer):
        variables = {"app_name": "my-app"}
        first = renderer.render("App: [[ app_name ]]", variables)
        second = renderer.render("App: [[ app_name ]]", variables)
        assert first == second == "App: my-app"

    def test_curly_braces_pass_through(self, renderer):
        text = "const x = {{ value }};\nname=[[ name ]]"
        assert renderer.render(text, {"name": "n"}) == "const x = {{ value }};\nname=n"

    def test_blocks(self, renderer):
        text = "[% if use_db %]\ndb: [[ db_type ]]\n[% endif %]\nend\n"
        assert renderer.render(text, {"use_db": True, "db_type": "postgres"}) == "db: postgres\nend\n"
        assert renderer.render(text, {"use_db": False, "db_type": "postgres"}) == "end\n"

    def test_loops(self, renderer):
        text = "[% for f in features %][[ f ]];[% endfor %]"
        assert renderer.render(text, {"features": ["auth", "api"]}) == "auth;api;"

    def test_comments_are_dropped(self, renderer):
        assert renderer.render("a[# note #]b", {}) == "ab"

    def test_trailing_newline_kept(self, renderer):
        assert renderer.render("x\n", {}) == "x\n"


class TestHelpers:
    @pytest.mark.parametrize(
        "template, expected",
        [
            ("[[ name | upper ]]", "MY-APP"),
            ("[[ name | lower ]]", "my-app"),
            ("[[ name | title ]]", "My-App"),
            ("[[ name | pascal ]]", "MyApp"),
            ("[[ name | camel ]]", "myApp"),
            ("[[ name | snake ]]", "my_app"),
            ("[[ name | kebab ]]", "my-app"),
            ("[[ snake(name) ]]", "my_app"),
            ("[[ pascal(name) ]]", "MyApp"),
        ],
    )
    def test_case_helpers(self, renderer, template, expected):
        assert renderer.render(template, {"name": "my-app"}) == expected

    def test_acronym_quirk_is_preserved(self, renderer):
        assert renderer.render("[[ snake(n) ]]", {"n": "HTTPServer"}) == "h_t_t_p_server"


class TestErrors:
    def test_missing_variable(self, renderer):
        with pytest.raises(RenderError, match="missing variable") as exc_info:
            renderer.render("Hello [[ nobody ]]", {}, name="greeting.tmpl")
        assert exc_info.value.template_name == "greeting.tmpl"

    def test_syntax_error(self, renderer):
        with pytest.raises(RenderError, match="syntax error") as exc_info:
            renderer.render("[% if x %]unterminated", {"x": True}, name="bad.tmpl")
        assert "bad.tmpl" in str(exc_info.value)

    def test_unknown_filter(self, renderer):
        with pytest.raises(RenderError):
            renderer.render("[[ x | shout ]]", {"x": "a"})


class TestRenderCondition:
    def test_unknown_variable_renders_empty(self, renderer):
        assert renderer.render_condition("[[ nobody ]]", {}) == ""
        assert renderer.render_condition("[% if nobody %]true[% else %]false[% endif %]", {}) == "false"

    def test_known_variables_render(self, renderer):
        assert renderer.render_condition("[[ use_db | lower ]]", {"use_db": True}) == "true"

    def test_strict_rendering_is_unaffected(self, renderer):
        renderer.render_condition("[[ nobody ]]", {})
        with pytest.raises(RenderError, match="missing variable"):
            renderer.render("[[ nobody ]]", {})

    def test_syntax_error_still_raises(self, renderer):
        with pytest.raises(RenderError, match="syntax error") as exc_info:
            renderer.render_condition("[% if x %]unterminated", {})
        assert exc_info.value.template_name == "condition"


class TestDelimiters:
    def test_custom_delimiters(self):
        renderer = TemplateRenderer("<<", ">>", "<%", "%>")
        assert renderer.render("<< a >> [[ b ]]", {"a": 1}) == "1 [[ b ]]"

    def test_has_markup(self, renderer):
        assert renderer.has_markup("config/[[ name ]].yaml")
        assert renderer.has_markup("[% if x %]y[% endif %]")
        assert not renderer.has_markup("use_db && db_type")


class TestRenderFile:
    def test_render_file(self, renderer, tmp_path: Path):
        path = tmp_path / "README.md.tmpl"
        path.write_text("# [[ title ]]\n", encoding="utf-8")
        assert renderer.render_file(path, {"title": "Blog"}) == "# Blog\n"

    def test_render_file_error_names_path(self, renderer, tmp_path: Path):
        path = tmp_path / "broken.tmpl"
        path.write_text("[[ missing ]]", encoding="utf-8")
        with pytest.raises(RenderError) as exc_info:
            renderer.render_file(path, {})
        assert exc_info.value.template_name == str(path)
