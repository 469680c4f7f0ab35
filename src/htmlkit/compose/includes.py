"""Partial composition through ``<include>`` tags, with slots."""

import html
import logging
import re
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from ..diagnostics import placeholder, suggest
from ..errors import CompositionError, MalformedDirectiveError, TemplateNotFoundError
from ..templates.engine import TemplateEngine
from ..transform.passes import (
    AT_SENTINEL,
    escape_markers,
    guard_verbatim,
    protected_spans,
    restore_verbatim,
    rewrite_include_directives,
)
from ..transform.scanner import Directive, iter_blocks, parse_string_literal
from ..transform.transformer import DirectiveTransformer
from .context import RenderState, layered
from .sources import TemplateSource

logger = logging.getLogger(__name__)

TAG_BOUNDARY = re.compile(r"<include\b|</include\s*>", re.IGNORECASE)
ATTRIBUTE_PATTERN = re.compile(r"([A-Za-z_][\w:.\-]*)\s*=\s*([\"'])(.*?)\2", re.DOTALL)
RESERVED_PREFIX = "hk:"


@dataclass
class IncludeTag:
    """An include tag found in transformed text."""

    start: int
    end: int
    attributes: str
    body: Optional[str] = None


def _find_tag_end(text: str, start: int) -> int:
    quote = None
    for index in range(start, len(text)):
        char = text[index]
        if quote:
            if char == quote:
                quote = None
        elif char in "'\"":
            quote = char
        elif char == ">":
            return index
    return -1


def _is_self_closing(attributes: str) -> bool:
    return attributes.rstrip().endswith("/")


def _next_boundary(
    text: str, pos: int, spans: List[Tuple[int, int]]
) -> Optional["re.Match[str]"]:
    while True:
        match = TAG_BOUNDARY.search(text, pos)
        if match is None:
            return None
        span = next((s for s in spans if s[0] <= match.start() < s[1]), None)
        if span is None:
            return match
        pos = span[1]


def _find_close(
    text: str, start: int, spans: List[Tuple[int, int]]
) -> Optional[Tuple[int, int]]:
    depth = 0
    pos = start
    while True:
        match = _next_boundary(text, pos, spans)
        if match is None:
            return None
        if match.group(0).startswith("</"):
            if depth == 0:
                return match.start(), match.end()
            depth -= 1
            pos = match.end()
            continue
        tag_end = _find_tag_end(text, match.end())
        if tag_end == -1:
            return None
        if not _is_self_closing(text[match.end() : tag_end]):
            depth += 1
        pos = tag_end + 1


def iter_include_tags(text: str) -> Iterator[IncludeTag]:
    """Yield top-level include tags in document order.

    Block tags may contain further include tags; those are left in the body
    and expanded when the slot content is rendered. An opening tag without a
    matching close is treated as self-closing. Tags inside raw and verbatim
    regions are text.
    """
    spans = protected_spans(text)
    pos = 0
    while True:
        match = _next_boundary(text, pos, spans)
        if match is None:
            return
        if match.group(0).startswith("</"):
            pos = match.end()
            continue

        tag_end = _find_tag_end(text, match.end())
        if tag_end == -1:
            return
        attributes = text[match.end() : tag_end]

        if _is_self_closing(attributes):
            yield IncludeTag(match.start(), tag_end + 1, attributes.rstrip()[:-1])
            pos = tag_end + 1
            continue

        close = _find_close(text, tag_end + 1, spans)
        if close is None:
            yield IncludeTag(match.start(), tag_end + 1, attributes)
            pos = tag_end + 1
            continue

        yield IncludeTag(match.start(), close[1], attributes, text[tag_end + 1 : close[0]])
        pos = close[1]


def parse_attributes(text: str) -> Dict[str, str]:
    """Parse quoted ``name="value"`` attributes."""
    attributes = {}
    for name, _, value in ATTRIBUTE_PATTERN.findall(text):
        if name == "src" or name.startswith(RESERVED_PREFIX):
            value = html.unescape(value)
        attributes[name] = value
    return attributes


def _slot_is_inline(directive: Directive) -> bool:
    return len(directive.arguments) >= 2


def extract_slots(body: str) -> Dict[str, str]:
    """Collect ``@slot('name') ... @endslot`` definitions from a tag body."""
    slots = {}
    for block in iter_blocks(body, "slot", "endslot"):
        arguments = block.opener.arguments
        name = parse_string_literal(arguments[0]) if arguments else None
        if name is None or block.closer is None:
            continue
        slots[name] = (block.content or "").strip()
    return slots


def fill_slots(text: str, slots: Mapping[str, str]) -> str:
    """Substitute slot placeholders in a partial.

    ``@slot('name', 'default')`` and ``@slot('name') default @endslot`` take
    the caller's content when provided and their default otherwise.
    """
    pieces = []
    last = 0

    for block in iter_blocks(text, "slot", "endslot", _slot_is_inline):
        arguments = block.opener.arguments
        name = parse_string_literal(arguments[0]) if arguments else None
        if name is None:
            continue

        if block.closer is not None:
            default = block.content or ""
        elif len(arguments) > 1:
            literal = parse_string_literal(arguments[1])
            default = literal if literal is not None else ""
        else:
            default = ""

        pieces.append(text[last : block.start])
        pieces.append(slots.get(name, default))
        last = block.end

    pieces.append(text[last:])
    return "".join(pieces)


class IncludeResolver:
    """Recursively expand include tags into rendered partial output."""

    def __init__(
        self,
        source: TemplateSource,
        transformer: DirectiveTransformer,
        engine: TemplateEngine,
        global_data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            source: Where partials are loaded from
            transformer: Directive transformer applied to every body
            engine: Engine rendering partials and evaluating attributes
            global_data: Lowest-precedence data for every partial
        """
        self.source = source
        self.transformer = transformer
        self.engine = engine
        self.global_data: Dict[str, Any] = dict(global_data or {})
        self._expression = re.compile(
            r"^\s*"
            + re.escape(transformer.variable_start)
            + r"([\s\S]+?)"
            + re.escape(transformer.variable_end)
            + r"\s*$"
        )

    def resolve(
        self,
        text: str,
        context: Mapping[str, Any],
        path: str,
        state: RenderState,
    ) -> str:
        """Transform text and expand every include tag in it.

        Args:
            text: Template text in authoring syntax
            context: Data visible to ``text``
            path: Logical path of ``text``
            state: Render state owning the include stack

        Returns:
            Engine-syntax text with every include tag replaced by a token for
            its stashed output

        Raises:
            CycleError: If ``path`` is already being resolved
            DepthExceededError: If include nesting is too deep
        """
        with state.entering("include", path) as depth:
            transformed = self.transformer.transform(text)

            pieces = []
            outputs = []
            last = 0
            for tag in iter_include_tags(transformed):
                outputs.append(self._expand(tag, context, path, state))
                pieces.append(transformed[last : tag.start])
                pieces.append(outputs[-1])
                last = tag.end
            pieces.append(transformed[last:])

            if depth == 0:
                state.entry_outputs = outputs
            return "".join(pieces)

    def fallback(self, text: str, state: RenderState) -> str:
        """Rebuild a page in authoring syntax with its include output in place.

        Used when the page itself fails to render: include tags and
        directives of the entry page are matched to the output recorded by
        :meth:`resolve`, everything else is kept as written.

        Args:
            text: Page text in authoring syntax, after layout resolution
            state: Render state of the failed render

        Returns:
            Best-effort text with no engine syntax of its own
        """
        guarded, regions = guard_verbatim(escape_markers(text), wrap=False)
        guarded = rewrite_include_directives(guarded)
        outputs = iter(state.entry_outputs)

        pieces = []
        last = 0
        for tag in iter_include_tags(guarded):
            pieces.append(guarded[last : tag.start])
            pieces.append(next(outputs, ""))
            last = tag.end
        pieces.append(guarded[last:])

        rebuilt = restore_verbatim("".join(pieces), regions)
        return state.splice(rebuilt.replace(AT_SENTINEL, "@"))

    def _expand(
        self,
        tag: IncludeTag,
        context: Mapping[str, Any],
        path: str,
        state: RenderState,
    ) -> str:
        try:
            return self._render_tag(tag, context, path, state)
        except CompositionError as error:
            error.path = error.path or path
            state.report(error)
            return state.stash(placeholder(error))

    def _render_tag(
        self,
        tag: IncludeTag,
        context: Mapping[str, Any],
        path: str,
        state: RenderState,
    ) -> str:
        attributes = parse_attributes(tag.attributes)
        src = attributes.pop("src", "").strip()
        if not src:
            raise MalformedDirectiveError("Include tag without a src attribute", path=path)

        reserved = {
            name[len(RESERVED_PREFIX) :]: attributes.pop(name)
            for name in list(attributes)
            if name.startswith(RESERVED_PREFIX)
        }

        if "when" in reserved and not self.engine.evaluate(reserved["when"], context, path):
            return ""
        if "unless" in reserved and self.engine.evaluate(reserved["unless"], context, path):
            return ""

        candidates = [src] + [name for name in reserved.get("first", "").split("|") if name]
        target = self._locate(candidates, optional=reserved.get("optional") == "true")
        if target is None:
            logger.debug(f"Skipping optional include {src} from {path}")
            return ""

        locals_ = self._evaluate_attributes(attributes, context, path)
        if "with" in reserved:
            extra = self.engine.evaluate(reserved["with"], context, path)
            if isinstance(extra, MappingABC):
                locals_.update(extra)
            elif extra is not None:
                logger.warning(
                    f"Ignoring include data for {target} in {path}: expected a mapping"
                )

        callee_context = layered(self.global_data, context, locals_)
        slots = extract_slots(tag.body) if tag.body else {}
        content = fill_slots(self.source.read(target), slots)

        logger.debug(f"Including {target} from {path}")
        resolved = self.resolve(content, callee_context, target, state)
        rendered = self.engine.compile(resolved, target).render(callee_context)
        return state.stash(state.splice(rendered))

    def _locate(self, candidates: List[str], optional: bool) -> Optional[str]:
        for candidate in candidates:
            target = self.source.resolve(candidate, scope="include")
            if self.source.exists(target):
                return target

        if optional:
            return None

        missing = self.source.resolve(candidates[0], scope="include")
        raise TemplateNotFoundError(
            missing, suggestions=suggest(missing, self.source.list_templates())
        )

    def _evaluate_attributes(
        self, attributes: Mapping[str, str], context: Mapping[str, Any], path: str
    ) -> Dict[str, Any]:
        locals_: Dict[str, Any] = {}
        for name, value in attributes.items():
            match = self._expression.match(value)
            if match is None:
                locals_[name] = value
                continue
            try:
                locals_[name] = self.engine.evaluate(
                    match.group(1).strip(), context, path, undefined_to_none=False
                )
            except CompositionError as error:
                logger.warning(f"Keeping raw value for attribute '{name}' in {path}: {error}")
                locals_[name] = value
        return locals_
