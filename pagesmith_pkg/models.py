"""
Data model shared by the loaders, the render stages and the writer.
"""

import posixpath
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Tuple


class ContentType(Enum):
    """Where a page's content currently is in the pipeline."""
    RAW = 'raw'
    TEMPLATED = 'templated'
    HTML = 'html'
    CSS = 'css'
    LAID_OUT = 'laid_out'
    SANITIZED = 'sanitized'


# Final suffix implied by a content type; types not listed keep their path's suffix
_TYPE_SUFFIX = {
    ContentType.HTML: '.html',
    ContentType.CSS: '.css',
    ContentType.SANITIZED: '.html',
}


def freeze(value):
    """Return a read-only deep copy of nested mappings and lists."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(freeze(item) for item in value)
    return value


@dataclass(frozen=True)
class Page:
    """
    A source file with frontmatter, on its way to the output tree.

    ``path`` is relative to the output root and always carries the extension
    of the current content, so a markdown page reads ``post.md`` until the
    markup stage turns it into ``post.html``.
    """
    path: str
    data: Dict[str, Any] = field(default_factory=dict)
    content: str = ''
    content_type: ContentType = ContentType.RAW
    source: str = ''

    @property
    def extension(self) -> str:
        """Current extension without the leading dot, lowercased."""
        return posixpath.splitext(self.path)[1].lstrip('.').lower()

    @property
    def output_path(self) -> str:
        suffix = _TYPE_SUFFIX.get(self.content_type)
        if suffix is None:
            return self.path
        return posixpath.splitext(self.path)[0] + suffix

    def with_extension(self, extension: str) -> str:
        """Return ``path`` with its extension replaced by ``extension``."""
        extension = extension.lstrip('.')
        return posixpath.splitext(self.path)[0] + '.' + extension

    def transform(self, content: str, content_type: ContentType, extension: str = None) -> 'Page':
        """New page with content, type and (optionally) extension changed together."""
        path = self.with_extension(extension) if extension else self.path
        return replace(self, path=path, content=content, content_type=content_type)

    def frozen(self) -> 'Page':
        return replace(self, data=freeze(self.data))


@dataclass(frozen=True)
class DataRecord:
    """One structured data file, loaded once per build."""
    name: str
    value: Any


@dataclass(frozen=True)
class Site:
    """
    Everything known about the site once every input has been loaded.

    Built exactly once per build, after the loading phase, and never updated
    with rendered output.
    """
    pages: Tuple[Page, ...] = ()
    files: Tuple[str, ...] = ()
    data: Dict[str, Any] = field(default_factory=dict)
    mount: str = '/'

    @classmethod
    def snapshot(cls, pages: Iterable[Page], files: Iterable[str],
                 records: Iterable[DataRecord], mount: str = '/') -> 'Site':
        return cls(
            pages=tuple(pages),
            files=tuple(files),
            data={record.name: record.value for record in records},
            mount=mount,
        )

    def view(self) -> 'Site':
        """Read-only deep copy handed to templates as ``site``."""
        return Site(
            pages=tuple(page.frozen() for page in self.pages),
            files=tuple(self.files),
            data=freeze(self.data),
            mount=self.mount,
        )
