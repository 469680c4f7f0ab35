"""Loop metadata exposed as ``loop`` inside ``@foreach`` bodies."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional

from jinja2 import Undefined


@dataclass(frozen=True)
class LoopMetadata:
    """Position of the current iteration.

    ``index`` is zero-based, ``iteration`` is one-based and ``odd``/``even``
    follow the iteration, so the first item is odd. ``parent`` refers to the
    enclosing loop's metadata.
    """

    index: int
    iteration: int
    count: int
    remaining: int
    first: bool
    last: bool
    even: bool
    odd: bool
    depth: int
    parent: Optional["LoopMetadata"] = None

    @classmethod
    def at(
        cls,
        index: int,
        count: int,
        depth: int = 1,
        parent: Optional["LoopMetadata"] = None,
    ) -> "LoopMetadata":
        """Build metadata for the item at ``index`` of ``count`` items."""
        iteration = index + 1
        return cls(
            index=index,
            iteration=iteration,
            count=count,
            remaining=count - iteration,
            first=index == 0,
            last=iteration == count,
            even=iteration % 2 == 0,
            odd=iteration % 2 == 1,
            depth=depth,
            parent=parent,
        )


@dataclass(frozen=True)
class LoopRow:
    value: Any
    meta: LoopMetadata


def _materialize(collection: Any, pairs: bool) -> List[Any]:
    if collection is None or isinstance(collection, Undefined):
        return []
    if isinstance(collection, Mapping):
        return list(collection.items()) if pairs else list(collection.values())
    if pairs:
        return list(enumerate(collection))
    return list(collection)


def iterate(
    collection: Any,
    parent: Optional[LoopMetadata] = None,
    depth: int = 1,
    pairs: bool = False,
) -> Iterator[LoopRow]:
    """Iterate a collection, pairing every item with its loop metadata.

    Args:
        collection: Sequence or mapping to iterate; mappings yield their
            values unless ``pairs`` is set
        parent: Metadata of the enclosing loop
        depth: Nesting depth of this loop, starting at 1
        pairs: Yield ``(key, value)`` tuples, using positions as keys for
            sequences

    Yields:
        Rows carrying the item and its metadata
    """
    if isinstance(parent, Undefined):
        parent = None

    items = _materialize(collection, pairs)
    count = len(items)
    for index, value in enumerate(items):
        yield LoopRow(value, LoopMetadata.at(index, count, depth, parent))
