"""Where layouts and partials are loaded from."""

import posixpath
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Mapping, Union

from ..diagnostics import suggest
from ..errors import PathRejectedError, TemplateNotFoundError


class TemplateSource(ABC):
    """Resolve and read templates by logical path under a single root.

    Logical paths are normalized, ``/`` separated and relative to the root.
    Paths resolving outside of the root are rejected.
    """

    @abstractmethod
    def resolve(self, path: str, scope: str = "include") -> str:
        """Normalize a referenced path.

        Raises:
            PathRejectedError: If the path escapes the root
        """
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def read_text(self, path: str) -> str:
        pass

    @abstractmethod
    def list_templates(self) -> List[str]:
        """List every logical path available under the root."""
        pass

    def read(self, path: str, scope: str = "include") -> str:
        """Read a resolved template.

        Raises:
            TemplateNotFoundError: If it does not exist, with close matches
        """
        if not self.exists(path):
            raise TemplateNotFoundError(
                path, scope=scope, suggestions=suggest(path, self.list_templates())
            )
        return self.read_text(path)


class DirectorySource(TemplateSource):
    """Templates stored as files under a partials directory."""

    def __init__(self, root: Union[str, Path], encoding: str = "utf-8") -> None:
        self.root = Path(root)
        self.encoding = encoding

    def resolve(self, path: str, scope: str = "include") -> str:
        root = self.root.resolve()
        candidate = (root / path).resolve()
        try:
            relative = candidate.relative_to(root)
        except ValueError:
            raise PathRejectedError(path, str(self.root), scope=scope)
        return relative.as_posix()

    def exists(self, path: str) -> bool:
        return (self.root / path).is_file()

    def read_text(self, path: str) -> str:
        return (self.root / path).read_text(encoding=self.encoding)

    def list_templates(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            item.relative_to(self.root).as_posix()
            for item in self.root.rglob("*")
            if item.is_file()
        )


class MemorySource(TemplateSource):
    """Templates held in a mapping of logical path to text."""

    def __init__(self, templates: Mapping[str, str]) -> None:
        self.templates: Dict[str, str] = {
            posixpath.normpath(name): text for name, text in templates.items()
        }

    def resolve(self, path: str, scope: str = "include") -> str:
        normalized = posixpath.normpath(path.replace("\\", "/"))
        if normalized.startswith("/") or normalized == ".." or normalized.startswith("../"):
            raise PathRejectedError(path, "<memory>", scope=scope)
        return normalized

    def exists(self, path: str) -> bool:
        return path in self.templates

    def read_text(self, path: str) -> str:
        return self.templates[path]

    def list_templates(self) -> List[str]:
        return sorted(self.templates)
