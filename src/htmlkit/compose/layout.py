"""Layout inheritance: ``@extends``, ``@section`` and ``@yield``."""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from ..diagnostics import placeholder
from ..errors import CompositionError, MalformedDirectiveError
from ..transform.passes import strip_comments
from ..transform.scanner import (
    Block,
    Directive,
    find_block_end,
    iter_blocks,
    iter_directives,
    parse_string_literal,
    replace_directives,
)
from .context import RenderState
from .sources import TemplateSource

logger = logging.getLogger(__name__)

# Blocks a page keeps when its body is replaced by the layout's
CARRIED_BLOCKS = {"push": "endpush", "prepend": "endprepend", "once": "endonce"}


def _is_shorthand(directive: Directive) -> bool:
    return len(directive.arguments) >= 2


def _block_name(block: Block) -> Optional[str]:
    arguments = block.opener.arguments
    return parse_string_literal(arguments[0]) if arguments else None


def extract_sections(text: str) -> Tuple[Dict[str, str], str]:
    """Collect section declarations and strip them from the text.

    Block sections are trimmed. The one-line ``@section('name', 'value')``
    form takes a string literal value.

    Returns:
        Section map and the remaining text
    """
    sections: Dict[str, str] = {}
    pieces = []
    last = 0

    for block in iter_blocks(text, "section", "endsection", _is_shorthand):
        name = _block_name(block)
        if name is None:
            continue

        if block.closer is not None:
            sections[name] = (block.content or "").strip()
        elif _is_shorthand(block.opener):
            value = block.opener.arguments[1]
            literal = parse_string_literal(value)
            sections[name] = literal if literal is not None else value
        else:
            continue

        pieces.append(text[last : block.start])
        last = block.end

    pieces.append(text[last:])
    return sections, "".join(pieces)


def unwrap_sections(text: str) -> str:
    """Drop ``@extends`` and keep section bodies in place."""
    text = replace_directives(text, ("extends",), lambda directive: "")
    pieces = []
    last = 0

    for block in iter_blocks(text, "section", "endsection", _is_shorthand):
        if block.closer is not None:
            body = (block.content or "").strip()
        elif _is_shorthand(block.opener):
            value = block.opener.arguments[1]
            literal = parse_string_literal(value)
            body = literal if literal is not None else ""
        else:
            continue
        pieces.append(text[last : block.start])
        pieces.append(body)
        last = block.end

    pieces.append(text[last:])
    return "".join(pieces)


def collect_carried_blocks(text: str) -> List[str]:
    """Find top-level push, prepend and once blocks in document order."""
    blocks = []
    pos = 0

    while True:
        opener = next(iter_directives(text, CARRIED_BLOCKS, pos), None)
        if opener is None:
            return blocks
        closer = find_block_end(text, opener.end, opener.name, CARRIED_BLOCKS[opener.name])
        if closer is None:
            pos = opener.end
            continue
        blocks.append(text[opener.start : closer.end])
        pos = closer.end


class LayoutResolver:
    """Flatten a page and its chain of layouts into a single document."""

    def __init__(
        self,
        source: TemplateSource,
        variable_start: str = "{{",
        variable_end: str = "}}",
    ) -> None:
        """Initialize the resolver.

        Args:
            source: Where layouts are loaded from
            variable_start: Opening interpolation delimiter, used for
                non-literal yield defaults
            variable_end: Closing interpolation delimiter
        """
        self.source = source
        self.variable_start = variable_start
        self.variable_end = variable_end

    def resolve(self, text: str, path: str, state: RenderState) -> str:
        """Resolve layout inheritance for a page.

        Failures at any hop are reported and replaced by an inline
        diagnostic followed by that hop's own content.

        Args:
            text: Raw page text
            path: Logical path of the page
            state: Render state owning the layout stack

        Returns:
            Flattened text, still in authoring syntax
        """
        return self._resolve(strip_comments(text), path, {}, state)

    def _resolve(
        self,
        text: str,
        path: str,
        inherited: Mapping[str, str],
        state: RenderState,
    ) -> str:
        extends = next(iter_directives(text, ("extends",)), None)
        if extends is None:
            return text

        try:
            arguments = extends.arguments
            reference = parse_string_literal(arguments[0]) if arguments else None
            if reference is None:
                raise MalformedDirectiveError(
                    f"@extends expects a quoted layout path, got '{extends.args}'",
                    path=path,
                )

            layout_path = self.source.resolve(reference, scope="layout")
            with state.entering("layout", layout_path) as depth:
                layout_text = strip_comments(self.source.read(layout_path, scope="layout"))
                logger.debug(f"Extending {layout_path} from {path} (hop {depth})")

                body = text[: extends.start] + text[extends.end :]
                sections, remainder = extract_sections(body)
                carried = collect_carried_blocks(remainder)

                own_sections, _ = extract_sections(layout_text)
                merged = {**inherited, **sections}
                resolved = self._resolve(layout_text, layout_path, merged, state)
                _, resolved = extract_sections(resolved)

                output = self._substitute_yields(resolved, sections, inherited, own_sections)
                return "".join(carried) + output

        except CompositionError as error:
            error.path = error.path or path
            state.report(error)
            return state.stash(placeholder(error)) + unwrap_sections(text)

    def _substitute_yields(
        self,
        text: str,
        current: Mapping[str, str],
        inherited: Mapping[str, str],
        own: Mapping[str, str],
    ) -> str:
        def handle(directive: Directive) -> Optional[str]:
            arguments = directive.arguments
            name = parse_string_literal(arguments[0]) if arguments else None
            if name is None:
                return None

            for sections in (current, inherited, own):
                if name in sections:
                    return sections[name]

            if len(arguments) < 2:
                return ""
            default = parse_string_literal(arguments[1])
            if default is not None:
                return default
            return f"{self.variable_start} {arguments[1]} {self.variable_end}"

        return replace_directives(text, ("yield",), handle)
