"""Rewrite passes turning ``@directives`` into engine syntax.

Each pass is a pure ``str -> str`` function. The order in which the
transformer applies them matters: comments go first, escapes and verbatim
regions are guarded before any directive is rewritten and restored last.
"""

import html
import itertools
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..cache import fingerprint
from .scanner import (
    IDENTIFIER,
    Directive,
    find_block_end,
    parse_string_list,
    parse_string_literal,
    replace_directives,
    split_arguments,
    split_top_level,
)

RAW_OPEN = "{% raw %}"
RAW_CLOSE = "{% endraw %}"

AT_SENTINEL = "\x00hk:at\x00"
_GUARD = "\x00hk:guard:{}\x00"
_GUARD_PATTERN = re.compile(r"\x00hk:guard:(\d+)\x00")

COMMENT_PATTERN = re.compile(r"\{\{--[\s\S]*?--\}\}")
PROTECTED_PATTERN = re.compile(
    r"\{%-?\s*raw\s*-?%\}[\s\S]*?\{%-?\s*endraw\s*-?%\}"
    r"|@verbatim\b(?P<verbatim>[\s\S]*?)@endverbatim\b"
)
MARKER_NAME = re.compile(r"[^\w.\-]")
LOOP_TARGET = re.compile(r"[A-Za-z_]\w*(\s*,\s*[A-Za-z_]\w*)*")

CONDITIONAL_DIRECTIVES = (
    "if",
    "elseif",
    "else",
    "endif",
    "unless",
    "endunless",
    "isset",
    "endisset",
    "empty",
    "endempty",
)
SWITCH_DIRECTIVES = ("switch", "case", "break", "default", "endswitch")
LOOP_DIRECTIVES = ("foreach", "endforeach", "forelse", "empty", "endforelse")
HELPER_DIRECTIVES = ("json", "class")
STACK_DIRECTIVES = ("push", "endpush", "prepend", "endprepend", "stack", "once", "endonce")
INCLUDE_DIRECTIVES = (
    "include",
    "includeIf",
    "includeWhen",
    "includeUnless",
    "includeFirst",
)


def _tag(body: str) -> str:
    return "{% " + body + " %}"


def protect(text: str) -> str:
    """Wrap text so the engine emits it literally."""
    return f"{RAW_OPEN}{text}{RAW_CLOSE}" if text else ""


def strip_comments(text: str) -> str:
    """Remove ``{{-- ... --}}`` comments."""
    return COMMENT_PATTERN.sub("", text)


def escape_markers(text: str) -> str:
    """Swap ``@@`` escapes for a sentinel no later pass matches."""
    return text.replace("@@", AT_SENTINEL)


def restore_markers(text: str) -> str:
    """Turn sentinels back into a literal ``@`` the engine will not touch."""
    return text.replace(AT_SENTINEL, protect("@"))


def guard_verbatim(text: str, wrap: bool = True) -> Tuple[str, List[str]]:
    """Move verbatim and raw regions out of reach of the rewrite passes.

    Args:
        text: Text to guard
        wrap: Whether verbatim content is restored wrapped for the engine
            or as plain text

    Returns:
        Text with each region replaced by a placeholder, and the final
        restored form of every region in placeholder order
    """
    regions: List[str] = []

    def stash(match: "re.Match[str]") -> str:
        verbatim = match.group("verbatim")
        if verbatim is not None and not wrap:
            region = verbatim.replace(AT_SENTINEL, "@@")
        elif verbatim is not None:
            region = protect(verbatim.replace(AT_SENTINEL, "@@"))
        else:
            region = match.group(0).replace(AT_SENTINEL, "@@")
        regions.append(region)
        return _GUARD.format(len(regions) - 1)

    return PROTECTED_PATTERN.sub(stash, text), regions


def restore_verbatim(text: str, regions: List[str]) -> str:
    """Put guarded regions back in place."""
    return _GUARD_PATTERN.sub(lambda match: regions[int(match.group(1))], text)


def protected_spans(text: str) -> List[Tuple[int, int]]:
    """Offsets of the raw and verbatim regions in text."""
    return [match.span() for match in PROTECTED_PATTERN.finditer(text)]


def rewrite_conditionals(text: str) -> str:
    """Rewrite if/elseif/else/unless/isset/empty blocks."""

    def handle(directive: Directive) -> Optional[str]:
        name = directive.name
        if name == "else":
            return _tag("else")
        if name in ("endif", "endunless", "endisset", "endempty"):
            return _tag("endif")
        if directive.args is None or not directive.args.strip():
            # Bare @empty belongs to @forelse
            return None

        expression = directive.args.strip()
        if name == "if":
            return _tag(f"if {expression}")
        if name == "elseif":
            return _tag(f"elif {expression}")
        if name == "unless":
            return _tag(f"if not ({expression})")
        if name == "isset":
            return _tag(f"if ({expression}) is defined and ({expression}) is not none")
        return _tag(f"if not ({expression})")

    return replace_directives(text, CONDITIONAL_DIRECTIVES, handle)


def rewrite_switch(text: str) -> str:
    """Rewrite switch blocks into an if/elif chain over a captured value."""
    counter = itertools.count(1)
    subjects: List[str] = []

    def handle(directive: Directive) -> Optional[str]:
        name = directive.name
        if name == "switch":
            if directive.args is None:
                return None
            subject = f"_hk_switch_{next(counter)}"
            subjects.append(subject)
            return _tag(f"set {subject} = ({directive.args.strip()})") + _tag("if false")
        if not subjects:
            return None
        if name == "case":
            if directive.args is None:
                return None
            return _tag(f"elif {subjects[-1]} == ({directive.args.strip()})")
        if name == "break":
            return ""
        if name == "default":
            return _tag("else")
        subjects.pop()
        return _tag("endif")

    return replace_directives(text, SWITCH_DIRECTIVES, handle)


@dataclass
class LoopHeader:
    """Parsed ``@foreach`` header."""

    collection: str
    target: str
    pairs: bool = False


@dataclass
class _LoopFrame:
    kind: str
    valid: bool
    emptied: bool = False


def parse_loop_header(args: str) -> Optional[LoopHeader]:
    """Parse ``items as item``, ``map as key => value``, ``item of items``
    and ``item in items`` headers.
    """
    expression = " ".join(args.split())
    pairs = False

    parts = split_top_level(expression, " as ")
    if len(parts) >= 2:
        collection = " as ".join(parts[:-1])
        target = parts[-1]
        key_value = split_top_level(target, "=>")
        if len(key_value) == 2:
            target = f"{key_value[0]}, {key_value[1]}"
            pairs = True
    else:
        for keyword in (" of ", " in "):
            parts = split_top_level(expression, keyword)
            if len(parts) >= 2:
                target = re.sub(r"^(let|const|var)\s+", "", parts[0])
                collection = keyword.join(parts[1:])
                break
        else:
            return None

    if not collection or not LOOP_TARGET.fullmatch(target):
        return None
    return LoopHeader(collection=collection, target=target, pairs=pairs)


def rewrite_loops(text: str) -> str:
    """Rewrite foreach/forelse blocks with loop metadata bound to ``loop``."""
    counter = itertools.count(1)
    frames: List[_LoopFrame] = []

    def handle(directive: Directive) -> Optional[str]:
        name = directive.name

        if name in ("foreach", "forelse"):
            header = parse_loop_header(directive.args) if directive.args else None
            enclosing = [frame for frame in frames if frame.valid]
            frames.append(_LoopFrame(kind=name, valid=header is not None))
            if header is None:
                return None

            row = f"_hk_row_{next(counter)}"
            parent = "loop" if enclosing else "none"
            depth = len(enclosing) + 1
            pairs = "true" if header.pairs else "false"
            return (
                _tag(
                    f"for {row} in _hk_iterate(({header.collection}), {parent}, "
                    f"{depth}, {pairs})"
                )
                + _tag(f"with loop = {row}.meta")
                + _tag(f"set {header.target} = {row}.value")
            )

        if name == "empty":
            if directive.args is not None:
                return None
            if not frames or frames[-1].kind != "forelse" or not frames[-1].valid:
                return None
            frames[-1].emptied = True
            return _tag("endwith") + _tag("else")

        if not frames:
            return None
        frame = frames.pop()
        if not frame.valid:
            return None
        if frame.emptied:
            return _tag("endfor")
        return _tag("endwith") + _tag("endfor")

    return replace_directives(text, LOOP_DIRECTIVES, handle)


def mapping_expression(expression: str) -> str:
    """Normalize ``['k' => v]`` and ``{k: v}`` literals into dict syntax."""
    value = expression.strip()

    if value.startswith("[") and value.endswith("]"):
        items = split_arguments(value[1:-1])
        pairs = [split_top_level(item, "=>") for item in items]
        if items and all(len(pair) == 2 for pair in pairs):
            return (
                "{"
                + ", ".join(f"{key}: {mapping_expression(val)}" for key, val in pairs)
                + "}"
            )
        return value

    if value.startswith("{") and value.endswith("}"):
        converted = []
        for item in split_arguments(value[1:-1]):
            parts = split_top_level(item, ":")
            if len(parts) < 2:
                converted.append(item)
                continue
            key = parts[0]
            if IDENTIFIER.fullmatch(key):
                key = repr(key)
            converted.append(f"{key}: {mapping_expression(':'.join(parts[1:]))}")
        return "{" + ", ".join(converted) + "}"

    return value


def class_expression(expression: str) -> str:
    """Normalize a ``@class`` argument into a helper-friendly literal."""
    value = expression.strip()
    if not (value.startswith("[") and value.endswith("]")):
        return mapping_expression(value)

    entries = []
    for item in split_arguments(value[1:-1]):
        pair = split_top_level(item, "=>")
        if len(pair) == 2:
            entries.append(f"({pair[0]}, ({pair[1]}))")
        else:
            entries.append(f"({item}, true)")
    return "[" + ", ".join(entries) + "]"


def rewrite_helpers(text: str, variable_start: str = "{{", variable_end: str = "}}") -> str:
    """Rewrite ``@json`` and ``@class`` into helper calls."""

    def handle(directive: Directive) -> Optional[str]:
        arguments = directive.arguments
        if not arguments:
            return None
        if directive.name == "json":
            pretty = arguments[1] if len(arguments) > 1 else "false"
            return f"{variable_start} _hk_json(({arguments[0]}), {pretty}) {variable_end}"
        expression = class_expression(directive.args or "")
        return f'class="{variable_start} _hk_class({expression}) {variable_end}"'

    return replace_directives(text, HELPER_DIRECTIVES, handle)


def _marker_name(expression: str) -> Optional[str]:
    name = parse_string_literal(expression)
    if name is None or not name:
        return None
    return MARKER_NAME.sub("_", name)


def rewrite_stack_markers(text: str) -> str:
    """Rewrite push/prepend/stack/once into markers for the content collector."""
    open_blocks: List[Tuple[str, str]] = []

    def close(kind: str) -> Optional[str]:
        for index in range(len(open_blocks) - 1, -1, -1):
            if open_blocks[index][0] == kind:
                _, name = open_blocks.pop(index)
                return f"<!--hk:end{kind}:{name}-->"
        return None

    def handle(directive: Directive) -> Optional[str]:
        name = directive.name
        arguments = directive.arguments

        if name in ("push", "prepend", "stack"):
            marker = _marker_name(arguments[0]) if arguments else None
            if marker is None:
                return None
            if name != "stack":
                open_blocks.append((name, marker))
            return f"<!--hk:{name}:{marker}-->"

        if name == "once":
            if arguments:
                key = _marker_name(arguments[0])
                if key is None:
                    return None
            else:
                closer = find_block_end(text, directive.end, "once", "endonce")
                if closer is None:
                    return None
                body = text[directive.end : closer.start]
                key = f"fp-{fingerprint(body)[:16]}"
            open_blocks.append(("once", key))
            return f"<!--hk:once:{key}-->"

        return close(name[len("end") :])

    return replace_directives(text, STACK_DIRECTIVES, handle)


def build_include_tag(src: str, attributes: Dict[str, str]) -> str:
    """Build a self-closing include tag with escaped attribute values."""
    rendered = [f'src="{html.escape(src, quote=True)}"']
    rendered.extend(
        f'{name}="{html.escape(value, quote=True)}"' for name, value in attributes.items()
    )
    return f"<include {' '.join(rendered)} />"


def rewrite_include_directives(text: str) -> str:
    """Rewrite the ``@include`` family into include tags."""

    def handle(directive: Directive) -> Optional[str]:
        arguments = directive.arguments
        attributes: Dict[str, str] = {}
        name = directive.name

        if name in ("include", "includeIf"):
            if not arguments:
                return None
            target = parse_string_literal(arguments[0])
            rest = arguments[1:]
            if name == "includeIf":
                attributes["hk:optional"] = "true"
        elif name in ("includeWhen", "includeUnless"):
            if len(arguments) < 2:
                return None
            attributes["hk:when" if name == "includeWhen" else "hk:unless"] = arguments[0]
            target = parse_string_literal(arguments[1])
            rest = arguments[2:]
        else:
            candidates = parse_string_list(arguments[0]) if arguments else None
            if not candidates:
                return None
            target = candidates[0]
            if len(candidates) > 1:
                attributes["hk:first"] = "|".join(candidates[1:])
            attributes["hk:optional"] = "true"
            rest = arguments[1:]

        if target is None:
            return None
        if rest:
            attributes["hk:with"] = mapping_expression(rest[0])
        return build_include_tag(target, attributes)

    return replace_directives(text, INCLUDE_DIRECTIVES, handle)
