"""Post-render collection of ``@once`` blocks and ``@push``/``@prepend`` stacks."""

import logging
import re
from collections import defaultdict
from typing import Dict, List, Set, Tuple

logger = logging.getLogger(__name__)

ONCE_PATTERN = re.compile(
    r"<!--hk:once:(?P<key>[\w.\-]+)-->(?P<body>[\s\S]*?)<!--hk:endonce:(?P=key)-->"
)
FRAGMENT_MARKER = re.compile(
    r"<!--hk:(?P<end>end)?(?P<mode>push|prepend):(?P<name>[\w.\-]+)-->"
)
STACK_PATTERN = re.compile(r"<!--hk:stack:(?P<name>[\w.\-]+)-->")


class ContentCollector:
    """Apply once-deduplication and flush stacks in rendered output.

    Runs on the final rendered text, after every include has been inlined,
    so fragments from any layout level or partial are seen in document order.
    """

    def collect(self, text: str, once_seen: Set[str]) -> str:
        """Resolve once blocks, then stacks.

        Args:
            text: Rendered document
            once_seen: Keys already emitted during this render

        Returns:
            Final document
        """
        text = self.apply_once(text, once_seen)
        return self.flush_stacks(text)

    def apply_once(self, text: str, once_seen: Set[str]) -> str:
        """Keep the first occurrence of every once block and drop the rest."""

        def replace(match: "re.Match[str]") -> str:
            key = match.group("key")
            if key in once_seen:
                return ""
            once_seen.add(key)
            return match.group("body")

        # Nested once blocks surface on the next pass
        while True:
            text, count = ONCE_PATTERN.subn(replace, text)
            if count == 0:
                return text

    def flush_stacks(self, text: str) -> str:
        """Move pushed fragments to their stack markers.

        Every prepended fragment precedes every pushed fragment; within each
        group fragments keep document order. Stacks nobody pushed to render
        as nothing, and fragments for stacks that are never placed are dropped.
        """
        prepends: Dict[str, List[str]] = defaultdict(list)
        pushes: Dict[str, List[str]] = defaultdict(list)

        text = self._capture(text, prepends, pushes)

        def place(match: "re.Match[str]") -> str:
            name = match.group("name")
            return "".join(prepends.get(name, []) + pushes.get(name, []))

        if prepends or pushes:
            logger.debug(f"Flushing stacks: {sorted(set(prepends) | set(pushes))}")
        return STACK_PATTERN.sub(place, text)

    def _capture(
        self,
        text: str,
        prepends: Dict[str, List[str]],
        pushes: Dict[str, List[str]],
    ) -> str:
        """Cut fragments out of text, nested ones included.

        Fragments are filed in the order they open. A marker without its
        counterpart stays in the text.
        """
        buffers: List[List[str]] = [[]]
        # (mode, name, opening marker, index in the target list)
        frames: List[Tuple[str, str, str, int]] = []
        last = 0

        for match in FRAGMENT_MARKER.finditer(text):
            buffers[-1].append(text[last : match.start()])
            last = match.end()
            mode, name = match.group("mode"), match.group("name")
            target = prepends if mode == "prepend" else pushes

            if match.group("end") is None:
                target[name].append("")
                frames.append((mode, name, match.group(0), len(target[name]) - 1))
                buffers.append([])
            elif frames and frames[-1][:2] == (mode, name):
                _, _, _, index = frames.pop()
                target[name][index] = "".join(buffers.pop())
            else:
                buffers[-1].append(match.group(0))
        buffers[-1].append(text[last:])

        while frames:
            mode, name, opening, index = frames.pop()
            del (prepends if mode == "prepend" else pushes)[name][index]
            body = "".join(buffers.pop())
            buffers[-1].append(opening + body)

        return "".join(buffers[0])
