"""Tests for the high-level renderer."""

from htmlkit import BatchRenderer, CollectingReporter, HtmlKit, KitConfig, RenderResult
from htmlkit.errors import ExpressionError, TemplateNotFoundError


class TestDirectives:
    """Test directive rendering end to end."""

    def test_conditionals(self, render):
        page = "@if(n > 1)many@elseif(n == 1)one@else none@endif"
        assert render(page, n=2) == "many"
        assert render(page, n=1) == "one"
        assert render(page, n=0) == " none"

    def test_unless(self, render):
        assert render("@unless(admin)guest@endunless", admin=False) == "guest"

    def test_isset(self, render):
        page = "@isset(user.name)yes@endisset"
        assert render(page) == ""
        assert render(page, user={"name": None}) == ""
        assert render(page, user={"name": "Ada"}) == "yes"

    def test_empty(self, render):
        assert render("@empty(items)none@endempty", items=[]) == "none"
        assert render("@empty(items)none@endempty", items=[1]) == ""

    def test_switch(self, render):
        page = "@switch(role)@case('admin')A@break@case('user')U@break@default D@endswitch"
        assert render(page, role="user") == "U"
        assert render(page, role="admin") == "A"
        assert render(page, role="other") == " D"

    def test_loop_metadata(self, render):
        page = (
            "@foreach(items as item)"
            "{{ loop.index }}:{{ loop.iteration }}:{{ loop.remaining }}:"
            "{{ loop.first }}:{{ loop.last }}:{{ loop.odd }};"
            "@endforeach"
        )
        assert render(page, items=["a", "b", "c"]) == (
            "0:1:2:True:False:True;1:2:1:False:False:False;2:3:0:False:True:True;"
        )

    def test_nested_loop_parent(self, render):
        page = (
            "@foreach(groups as group)@foreach(group.members as member)"
            "{{ loop.parent.iteration }}.{{ loop.iteration }}/{{ loop.count }} "
            "@endforeach@endforeach"
        )
        groups = [{"members": ["a", "b"]}, {"members": ["c"]}]
        assert render(page, groups=groups) == "1.1/2 1.2/2 2.1/1 "

    def test_loop_depth(self, render):
        page = "@foreach(rows as r)@foreach(r as c){{ loop.depth }}@endforeach@endforeach"
        assert render(page, rows=[[1]]) == "2"

    def test_forelse(self, render):
        page = "@forelse(items as i){{ i }}@empty<em>none</em>@endforelse"
        assert render(page, items=[1, 2]) == "12"
        assert render(page, items=[]) == "<em>none</em>"
        assert render(page) == "<em>none</em>"

    def test_key_value_loop(self, render):
        page = "@foreach(prices as name => price){{ name }}={{ price }};@endforeach"
        assert render(page, prices={"a": 1, "b": 2}) == "a=1;b=2;"

    def test_mapping_loop_yields_values(self, render):
        assert render("@foreach(prices as p){{ p }}@endforeach", prices={"a": 1, "b": 2}) == "12"

    def test_of_loop(self, render):
        assert render("@foreach(let x of xs){{ x }}@endforeach", xs=[1, 2]) == "12"

    def test_json(self, render):
        assert render("@json(user)", user={"name": "John", "age": 30}) == (
            '{"name":"John","age":30}'
        )

    def test_class(self, render):
        page = "<a @class(['btn', 'active' => on])>"
        assert render(page, on=True) == '<a class="btn active">'
        assert render(page, on=False) == '<a class="btn">'

    def test_escaped_at(self, render):
        assert render("user@@example.com") == "user@example.com"

    def test_verbatim(self, render):
        assert render("@verbatim{{ x }} @if(y)@endverbatim", x=1) == "{{ x }} @if(y)"

    def test_comments(self, render):
        assert render("a{{-- @include('x.html') --}}b") == "ab"

    def test_interpolation(self, render):
        assert render("Hello {{ name }}!", name="World") == "Hello World!"

    def test_address_is_text(self, render):
        assert render("mail me@else.com") == "mail me@else.com"

    def test_unknown_directive_is_text(self, render):
        assert render("@media (min-width: 1px)") == "@media (min-width: 1px)"


class TestRenderFailures:
    """Test error reporting at the top level."""

    def test_runtime_error_returns_page_text(self, make_kit):
        kit = make_kit()
        result = kit.render("{{ 1 / x }}", data={"x": 0})

        assert result.text.startswith("<!-- [htmlkit] E5002 ")
        assert result.text.endswith(" -->{{ 1 / x }}")
        assert [error.code for error in result.diagnostics] == ["E5002"]
        assert not result.ok

    def test_runtime_error_keeps_authoring_syntax(self, make_kit):
        kit = make_kit({"p.html": "P"})
        page = "@include('p.html')@foreach(xs as x){{ x }}@endforeach{{ 1 / z }}"
        result = kit.render(page, data={"xs": [1], "z": 0})

        assert result.text.endswith(" -->P@foreach(xs as x){{ x }}@endforeach{{ 1 / z }}")
        assert "_hk_" not in result.text
        assert "{% raw %}" not in result.text
        assert result.diagnostics[0].code == "E5002"

    def test_syntax_error(self, make_kit):
        kit = make_kit()
        result = kit.render("{% if %}")
        assert isinstance(result.diagnostics[0], ExpressionError)
        assert result.diagnostics[0].code == "E5001"

    def test_diagnostics_go_to_reporter(self, make_kit):
        kit = make_kit()
        result = kit.render("@include('missing.html')")

        assert isinstance(kit.reporter.errors[0], TemplateNotFoundError)
        assert kit.reporter.errors == result.diagnostics


class TestHtmlKit:
    """Test HtmlKit configuration and entry points."""

    def test_render_result(self, make_kit):
        result = make_kit().render("@once('a')x@endonce", path="page.html")

        assert isinstance(result, RenderResult)
        assert result.path == "page.html"
        assert result.ok
        assert result.render_time >= 0
        assert result.metadata == {"once_keys": 1}

    def test_global_data_is_layered_under_page_data(self, make_kit):
        kit = make_kit(data={"site": "Acme", "title": "Global"})
        result = kit.render("{{ site }}/{{ title }}", data={"title": "Page"})
        assert result.text == "Acme/Page"

    def test_custom_delimiters(self, make_kit):
        kit = make_kit(interpolation={"start": "[[", "end": "]]"})
        result = kit.render("[[ name ]] {{ name }} @json(n)", data={"name": "A", "n": 1})
        assert result.text == "A {{ name }} 1"

    def test_custom_delimiters_in_partials(self, make_kit):
        kit = make_kit({"p.html": "<b>[[ v ]]</b>"}, interpolation={"start": "[[", "end": "]]"})
        result = kit.render('<include src="p.html" v="[[ 1 + 1 ]]" />')
        assert result.text == "<b>2</b>"

    def test_render_file(self, project, write_file):
        page = write_file(
            project,
            "page.html",
            "@extends('layouts/base.html')"
            "@section('title')Home@endsection"
            "@section('content')@include('header.html')@endsection",
        )
        kit = HtmlKit(KitConfig(root=project), reporter=CollectingReporter())

        result = kit.render_file(page, data={"title": "Welcome"})

        assert result.path == "page.html"
        assert result.text == (
            "<html><head><title>Home</title></head><body><h1>Welcome</h1></body></html>"
        )

    def test_transform_cache_is_used(self, make_kit):
        kit = make_kit()
        kit.render("@if(x)y@endif")
        kit.render("@if(x)y@endif")

        stats = kit.cache.get_stats()
        assert stats["hits"] >= 1

    def test_invalidate(self, make_kit):
        kit = make_kit()
        kit.render("@if(x)y@endif")
        assert kit.cache.size() > 0

        kit.invalidate()
        assert kit.cache.size() == 0

    def test_cache_disabled(self, make_kit):
        kit = make_kit(cache={"max_entries": 0})
        assert kit.render("@if(true)y@endif").text == "y"
        assert kit.cache.size() == 0

    def test_debug_from_environment(self, monkeypatch, make_kit):
        monkeypatch.setenv("HTMLKIT_DEBUG", "1")
        kit = make_kit()
        assert kit.config.debug is True
        assert kit.render("ok").text == "ok"


class TestBatchRenderer:
    """Test BatchRenderer class."""

    def test_render_pages_in_order(self, make_kit):
        kit = make_kit({"a.html": "A"})
        renderer = BatchRenderer(kit, max_workers=2)
        progress = []

        results = renderer.render_pages(
            {"one.html": "@include('a.html')1", "two.html": "2", "three.html": "3"},
            progress_callback=progress.append,
        )

        assert [result.text for result in results] == ["A1", "2", "3"]
        assert [result.path for result in results] == ["one.html", "two.html", "three.html"]
        assert sum(progress) == 3

    def test_failures_are_isolated(self, make_kit):
        """A cycle in one page never leaks diagnostics into another."""
        kit = make_kit({"a.html": "@include('a.html')"})
        renderer = BatchRenderer(kit)

        results = renderer.render_pages({"bad.html": "@include('a.html')", "good.html": "ok"})

        assert [error.code for error in results[0].diagnostics] == ["E1002"]
        assert results[1].diagnostics == []
        assert results[1].text == "ok"

    def test_render_files(self, project, write_file):
        first = write_file(project, "one.html", "@include('header.html')")
        second = write_file(project, "two.html", "plain")
        kit = HtmlKit(KitConfig(root=project), reporter=CollectingReporter())

        results = BatchRenderer(kit).render_files([first, second], data={"title": "T"})

        assert [result.text for result in results] == ["<h1>T</h1>", "plain"]
