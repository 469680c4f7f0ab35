"""Tests for the individual rewrite passes."""

from htmlkit.cache import fingerprint
from htmlkit.transform.passes import (
    class_expression,
    escape_markers,
    guard_verbatim,
    mapping_expression,
    parse_loop_header,
    restore_markers,
    restore_verbatim,
    rewrite_conditionals,
    rewrite_helpers,
    rewrite_include_directives,
    rewrite_loops,
    rewrite_stack_markers,
    rewrite_switch,
    strip_comments,
)


class TestConditionals:
    """Test conditional rewriting."""

    def test_if_else(self):
        assert rewrite_conditionals("@if(x)A@else B@endif") == (
            "{% if x %}A{% else %} B{% endif %}"
        )

    def test_elseif(self):
        result = rewrite_conditionals("@if(a)1@elseif(b)2@endif")
        assert result == "{% if a %}1{% elif b %}2{% endif %}"

    def test_unless(self):
        assert rewrite_conditionals("@unless(a)x@endunless") == (
            "{% if not (a) %}x{% endif %}"
        )

    def test_isset(self):
        assert rewrite_conditionals("@isset(u)y@endisset") == (
            "{% if (u) is defined and (u) is not none %}y{% endif %}"
        )

    def test_empty_with_argument(self):
        assert rewrite_conditionals("@empty(items)n@endempty") == (
            "{% if not (items) %}n{% endif %}"
        )

    def test_bare_empty_belongs_to_forelse(self):
        """A bare @empty is left for the loop pass."""
        text = "@forelse(xs as x)@empty z@endforelse"
        assert rewrite_conditionals(text) == text


class TestSwitch:
    """Test switch rewriting."""

    def test_switch_chain(self):
        result = rewrite_switch("@switch(s)@case(1)one@break@default other@endswitch")
        assert result == (
            "{% set _hk_switch_1 = (s) %}{% if false %}"
            "{% elif _hk_switch_1 == (1) %}one{% else %} other{% endif %}"
        )

    def test_nested_switches_use_distinct_subjects(self):
        result = rewrite_switch(
            "@switch(a)@case(1)@switch(b)@case(2)x@endswitch@endswitch"
        )
        assert "_hk_switch_1 == (1)" in result
        assert "_hk_switch_2 == (2)" in result

    def test_case_outside_switch_is_kept(self):
        assert rewrite_switch("@case(1)") == "@case(1)"


class TestLoops:
    """Test loop header parsing and rewriting."""

    def test_parse_as(self):
        header = parse_loop_header("items as item")
        assert header.collection == "items"
        assert header.target == "item"
        assert header.pairs is False

    def test_parse_key_value(self):
        header = parse_loop_header("users as key => user")
        assert header.collection == "users"
        assert header.target == "key, user"
        assert header.pairs is True

    def test_parse_of_and_in(self):
        assert parse_loop_header("let item of items").target == "item"
        assert parse_loop_header("let item of items").collection == "items"
        assert parse_loop_header("item in items").collection == "items"

    def test_parse_invalid(self):
        assert parse_loop_header("items") is None
        assert parse_loop_header("items as 1x") is None

    def test_foreach(self):
        result = rewrite_loops("@foreach(items as i)<li>{{i}}</li>@endforeach")
        assert result == (
            "{% for _hk_row_1 in _hk_iterate((items), none, 1, false) %}"
            "{% with loop = _hk_row_1.meta %}{% set i = _hk_row_1.value %}"
            "<li>{{i}}</li>{% endwith %}{% endfor %}"
        )

    def test_forelse(self):
        result = rewrite_loops("@forelse(xs as x)A@empty B@endforelse")
        assert result.endswith("A{% endwith %}{% else %} B{% endfor %}")

    def test_nested_loop_links_parent(self):
        result = rewrite_loops(
            "@foreach(rows as r)@foreach(r.cells as c)x@endforeach@endforeach"
        )
        assert "_hk_iterate((rows), none, 1, false)" in result
        assert "_hk_iterate((r.cells), loop, 2, false)" in result

    def test_invalid_header_is_left_alone(self):
        text = "@foreach(items)x@endforeach"
        assert rewrite_loops(text) == text


class TestExpressions:
    """Test mapping and class literal normalization."""

    def test_object_literal(self):
        assert mapping_expression("{title: 'Hello', 'a': b}") == (
            "{'title': 'Hello', 'a': b}"
        )

    def test_array_literal(self):
        assert mapping_expression("['title' => 'Hi', 'n' => 2]") == "{'title': 'Hi', 'n': 2}"

    def test_plain_expression(self):
        assert mapping_expression(" data ") == "data"
        assert mapping_expression("[1, 2]") == "[1, 2]"

    def test_class_expression(self):
        assert class_expression("['btn', 'on' => active]") == (
            "[('btn', true), ('on', (active))]"
        )


class TestHelpers:
    """Test @json and @class rewriting."""

    def test_json(self):
        assert rewrite_helpers("@json(x)") == "{{ _hk_json((x), false) }}"
        assert rewrite_helpers("@json(x, true)") == "{{ _hk_json((x), true) }}"

    def test_class(self):
        result = rewrite_helpers("<a @class(['btn', 'on' => active])>")
        assert result == "<a class=\"{{ _hk_class([('btn', true), ('on', (active))]) }}\">"

    def test_custom_delimiters(self):
        assert rewrite_helpers("@json(x)", "[[", "]]") == "[[ _hk_json((x), false) ]]"


class TestStackMarkers:
    """Test stack and once marker rewriting."""

    def test_push_and_stack(self):
        result = rewrite_stack_markers("@push('scripts')<script></script>@endpush@stack('scripts')")
        assert result == (
            "<!--hk:push:scripts--><script></script><!--hk:endpush:scripts-->"
            "<!--hk:stack:scripts-->"
        )

    def test_prepend(self):
        assert rewrite_stack_markers("@prepend('s')A@endprepend") == (
            "<!--hk:prepend:s-->A<!--hk:endprepend:s-->"
        )

    def test_stack_names_are_sanitized(self):
        assert rewrite_stack_markers("@stack('my scripts')") == "<!--hk:stack:my_scripts-->"

    def test_once_with_id(self):
        assert rewrite_stack_markers("@once('x')A@endonce") == (
            "<!--hk:once:x-->A<!--hk:endonce:x-->"
        )

    def test_once_keyed_by_content(self):
        result = rewrite_stack_markers("@once<b>x</b>@endonce")
        key = f"fp-{fingerprint('<b>x</b>')[:16]}"
        assert result == f"<!--hk:once:{key}--><b>x</b><!--hk:endonce:{key}-->"

    def test_non_literal_stack_name_is_kept(self):
        assert rewrite_stack_markers("@stack(name)") == "@stack(name)"


class TestIncludeDirectives:
    """Test include directive rewriting."""

    def test_include(self):
        assert rewrite_include_directives("@include('a.html')") == '<include src="a.html" />'

    def test_include_with_data(self):
        result = rewrite_include_directives("@include('card.html', ['title' => 'Hi'])")
        assert result == (
            '<include src="card.html" hk:with="{&#x27;title&#x27;: &#x27;Hi&#x27;}" />'
        )

    def test_include_if(self):
        assert rewrite_include_directives("@includeIf('a.html')") == (
            '<include src="a.html" hk:optional="true" />'
        )

    def test_include_when_and_unless(self):
        assert rewrite_include_directives("@includeWhen(show, 'a.html')") == (
            '<include src="a.html" hk:when="show" />'
        )
        assert rewrite_include_directives("@includeUnless(hide, 'a.html')") == (
            '<include src="a.html" hk:unless="hide" />'
        )

    def test_include_first(self):
        assert rewrite_include_directives("@includeFirst(['a.html', 'b.html'])") == (
            '<include src="a.html" hk:first="b.html" hk:optional="true" />'
        )

    def test_non_literal_target_is_kept(self):
        assert rewrite_include_directives("@include(name)") == "@include(name)"


class TestGuards:
    """Test comments, escapes and verbatim regions."""

    def test_strip_comments(self):
        assert strip_comments("a{{-- hidden\n@if(x) --}}b") == "ab"

    def test_escape_round_trip(self):
        escaped = escape_markers("user@@example.com")
        assert "@" not in escaped
        assert restore_markers(escaped) == "user{% raw %}@{% endraw %}example.com"

    def test_verbatim_region(self):
        guarded, regions = guard_verbatim("a@verbatim @if(x) @endverbatim b")
        assert "@if" not in guarded
        assert restore_verbatim(guarded, regions) == "a{% raw %} @if(x) {% endraw %} b"

    def test_raw_region_is_kept_as_is(self):
        text = "{% raw %}@json(x){% endraw %}"
        guarded, regions = guard_verbatim(text)
        assert restore_verbatim(guarded, regions) == text
