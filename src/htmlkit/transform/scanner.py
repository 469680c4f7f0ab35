"""Directive scanning primitives.

Directives look like ``@name`` optionally followed by a parenthesized
argument list. Argument lists are matched with a bracket and quote aware
scanner so that nested calls, lists, mappings and string literals containing
parentheses are captured whole. ``@@`` is an escaped literal ``@`` and never
starts a directive.
"""

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional

# After a word character, a name followed by ".word" is an address, not a directive.
DIRECTIVE_PATTERN = re.compile(
    r"@@|(?<!\w)@([A-Za-z_]\w*)|@([A-Za-z_]\w*)(?!\w|\.\w)"
)
ARGUMENTS_START = re.compile(r"[ \t]*\(")
IDENTIFIER = re.compile(r"[A-Za-z_]\w*")

# Directives that never take arguments; a "(" after them belongs to the text.
BARE_DIRECTIVES = frozenset(
    {
        "else",
        "endif",
        "endunless",
        "endisset",
        "endempty",
        "break",
        "default",
        "endswitch",
        "endforeach",
        "endforelse",
        "endsection",
        "endslot",
        "endpush",
        "endprepend",
        "endonce",
        "verbatim",
        "endverbatim",
    }
)

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = frozenset(_OPENERS.values())
_QUOTES = "'\""


@dataclass(frozen=True)
class Directive:
    """A directive occurrence in a text."""

    name: str
    args: Optional[str]
    start: int
    end: int
    malformed: bool = False

    @property
    def arguments(self) -> List[str]:
        """Top-level comma separated arguments."""
        if self.args is None:
            return []
        return split_arguments(self.args)


@dataclass(frozen=True)
class Block:
    """An opening directive with its closing directive, if it has one."""

    opener: Directive
    closer: Optional[Directive]
    content: Optional[str]

    @property
    def start(self) -> int:
        return self.opener.start

    @property
    def end(self) -> int:
        return self.closer.end if self.closer else self.opener.end


def find_closing(text: str, open_index: int) -> int:
    """Find the bracket that closes the one at ``open_index``.

    Args:
        text: Text to scan
        open_index: Index of an opening bracket

    Returns:
        Index of the matching closing bracket, or -1 when unbalanced
    """
    expected: List[str] = []
    quote: Optional[str] = None
    i = open_index
    length = len(text)

    while i < length:
        char = text[i]
        if quote:
            if char == "\\":
                i += 2
                continue
            if char == quote:
                quote = None
        elif char in _QUOTES:
            quote = char
        elif char in _OPENERS:
            expected.append(_OPENERS[char])
        elif char in _CLOSERS:
            if not expected or expected[-1] != char:
                return -1
            expected.pop()
            if not expected:
                return i
        i += 1

    return -1


def iter_directives(
    text: str, names: Optional[Iterable[str]] = None, start: int = 0
) -> Iterator[Directive]:
    """Yield directives in document order.

    Directives not listed in ``names`` are still stepped over whole, so text
    inside their arguments is never reported as a directive.

    Args:
        text: Text to scan
        names: Directive names to report; all names when None
        start: Offset to start scanning from
    """
    wanted = set(names) if names is not None else None
    pos = start

    while True:
        match = DIRECTIVE_PATTERN.search(text, pos)
        if match is None:
            return

        name = match.group(1) or match.group(2)
        if name is None:
            pos = match.end()
            continue

        end = match.end()
        args = None
        malformed = False
        if name not in BARE_DIRECTIVES:
            opening = ARGUMENTS_START.match(text, end)
            if opening:
                close = find_closing(text, opening.end() - 1)
                if close == -1:
                    malformed = True
                else:
                    args = text[opening.end() : close]
                    end = close + 1

        if wanted is None or name in wanted:
            yield Directive(name, args, match.start(), end, malformed)
        pos = end


def replace_directives(
    text: str,
    names: Iterable[str],
    handler: Callable[[Directive], Optional[str]],
) -> str:
    """Replace directives with the handler's output.

    The handler is called in document order and may return None to leave a
    directive untouched.
    """
    pieces = []
    last = 0

    for directive in iter_directives(text, names):
        if directive.malformed:
            continue
        replacement = handler(directive)
        if replacement is None:
            continue
        pieces.append(text[last : directive.start])
        pieces.append(replacement)
        last = directive.end

    pieces.append(text[last:])
    return "".join(pieces)


def find_block_end(
    text: str, start: int, open_name: str, close_name: str
) -> Optional[Directive]:
    """Find the directive closing a block opened just before ``start``.

    Blocks of the same name may nest.
    """
    depth = 0
    for directive in iter_directives(text, (open_name, close_name), start):
        if directive.name == open_name:
            depth += 1
        elif depth == 0:
            return directive
        else:
            depth -= 1
    return None


def iter_blocks(
    text: str,
    open_name: str,
    close_name: str,
    is_inline: Callable[[Directive], bool] = lambda directive: False,
) -> Iterator[Block]:
    """Yield non-nesting blocks such as sections and slots.

    An opener is a block when the next directive of the same family is its
    closer. Otherwise, or when ``is_inline`` says so, it is yielded alone.
    """
    pos = 0

    while True:
        opener = next(iter_directives(text, (open_name,), pos), None)
        if opener is None:
            return
        if opener.malformed:
            pos = opener.end
            continue

        if is_inline(opener):
            yield Block(opener, None, None)
            pos = opener.end
            continue

        following = next(
            iter_directives(text, (open_name, close_name), opener.end), None
        )
        if following is not None and following.name == close_name:
            yield Block(opener, following, text[opener.end : following.start])
            pos = following.end
        else:
            yield Block(opener, None, None)
            pos = opener.end


def split_top_level(text: str, separator: str) -> List[str]:
    """Split on ``separator`` outside of brackets and string literals."""
    parts = []
    depth = 0
    quote: Optional[str] = None
    last = 0
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        if quote:
            if char == "\\":
                i += 2
                continue
            if char == quote:
                quote = None
        elif char in _QUOTES:
            quote = char
        elif char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth = max(depth - 1, 0)
        elif depth == 0 and text.startswith(separator, i):
            parts.append(text[last:i].strip())
            i += len(separator)
            last = i
            continue
        i += 1

    parts.append(text[last:].strip())
    return parts


def split_arguments(args: str) -> List[str]:
    """Split an argument list on top-level commas."""
    if not args.strip():
        return []
    return split_top_level(args, ",")


def parse_string_literal(expression: Optional[str]) -> Optional[str]:
    """Return the value of a single quoted string literal, else None."""
    if expression is None:
        return None

    value = expression.strip()
    if len(value) < 2 or value[0] not in _QUOTES or value[-1] != value[0]:
        return None

    quote = value[0]
    result = []
    i = 1
    while i < len(value) - 1:
        char = value[i]
        if char == "\\" and i + 1 < len(value) - 1:
            result.append(value[i + 1])
            i += 2
            continue
        if char == quote:
            return None
        result.append(char)
        i += 1

    return "".join(result)


def parse_string_list(expression: str) -> Optional[List[str]]:
    """Parse a list of string literals such as ``['a.html', 'b.html']``."""
    value = expression.strip()
    if not (value.startswith("[") and value.endswith("]")):
        single = parse_string_literal(value)
        return [single] if single is not None else None

    items = []
    for item in split_arguments(value[1:-1]):
        literal = parse_string_literal(item)
        if literal is None:
            return None
        items.append(literal)
    return items
