"""
Exceptions raised while building the site.

Every error is fatal: the build stops before anything is written and the
message names the offending file and front-matter field.
"""

from pathlib import Path
from typing import Iterable, Optional, Union

PathLike = Union[str, Path]


class SiteError(Exception):
    """Base class for all build failures."""


class ParseError(SiteError):
    """Malformed front-matter or a missing required field."""

    def __init__(self, path: PathLike, field: Optional[str], message: str):
        self.path = Path(path)
        self.field = field
        self.message = message
        location = f"{self.path}"
        if field:
            location += f" [{field}]"
        super().__init__(f"{location}: {message}")


class BuildError(SiteError):
    """Duplicate output path or unresolved reference."""

    def __init__(self, message: str, paths: Iterable[PathLike] = ()):
        self.paths = tuple(Path(p) for p in paths)
        self.message = message
        if self.paths:
            message = f"{message} ({', '.join(str(p) for p in self.paths)})"
        super().__init__(message)


class TemplateNotFoundError(BuildError):
    """A layout name with no registered template."""

    def __init__(self, layout: str, path: Optional[PathLike] = None):
        self.layout = layout
        self.path = Path(path) if path is not None else None
        message = f"No template registered for layout '{layout}'"
        if self.path is not None:
            message = f"{self.path} [layout]: {message}"
        super().__init__(message)
