"""
Load markdown content files and their YAML front-matter.
"""

import datetime
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml

from scholar_site.errors import ParseError

FRONT_MATTER_MARKER = '---'

# Front-matter keys understood by each built-in layout
LAYOUT_KEYS = {
    'project-detail': {'name', 'image', 'description', 'tags'},
    'blog-detail': {'name', 'image', 'tg_post_link', 'description', 'tags'},
    'research': {'title', 'permalink', 'fields_of_interest', 'publications'},
    'publication': {'authors', 'year', 'doi', 'venue', 'description', 'tags', 'image'},
}
COMMON_KEYS = {'layout', 'title', 'slug', 'permalink', 'date', 'draft'}
DESCRIBED_LAYOUTS = {'project-detail', 'blog-detail'}

# Keys promoted to ContentItem attributes; everything else lands in `fields`
_ITEM_KEYS = {'layout', 'title', 'image', 'description', 'tags',
              'slug', 'permalink', 'date', 'draft'}


@dataclass(frozen=True)
class ContentItem:
    """One markdown file with its parsed front-matter."""
    source: Path
    collection: str
    slug: str
    layout: str
    title: str
    body: str
    description: str = ''
    image: Optional[str] = None
    tags: Tuple[str, ...] = ()
    date: Optional[datetime.date] = None
    permalink: Optional[str] = None
    fields: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a collection-specific front-matter field."""
        return self.fields.get(key, default)


def split_front_matter(text: str, path: Union[str, Path] = '<string>') -> Tuple[Optional[Dict[str, Any]], str]:
    """
    Split a content file into its front-matter mapping and body.

    Args:
        text: Full file contents
        path: Source path, used in error messages

    Returns:
        Tuple of (metadata, body). metadata is None when the file has no
        front-matter block at all.
    """
    text = text.lstrip('\ufeff')
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != FRONT_MATTER_MARKER:
        return None, text

    for index in range(1, len(lines)):
        if lines[index].strip() == FRONT_MATTER_MARKER:
            block = ''.join(lines[1:index])
            body = ''.join(lines[index + 1:])
            break
    else:
        raise ParseError(path, None, f"front-matter block is not closed with '{FRONT_MATTER_MARKER}'")

    try:
        metadata = yaml.safe_load(block)
    except yaml.YAMLError as e:
        raise ParseError(path, None, f"malformed front-matter: {e}") from e

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise ParseError(path, None, "front-matter must be a mapping of keys to values")

    return metadata, body.lstrip('\n')


def _coerce_tags(value: Any, path: Path) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ParseError(path, 'tags', "expected a string or a list of strings")
    tags = []
    for tag in value:
        if not isinstance(tag, str) or not tag.strip():
            raise ParseError(path, 'tags', f"invalid tag {tag!r}")
        tag = tag.strip()
        if tag not in tags:
            tags.append(tag)
    return tuple(tags)


def _coerce_date(value: Any, path: Path) -> Optional[datetime.date]:
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.date.fromisoformat(str(value).strip())
    except ValueError as e:
        raise ParseError(path, 'date', f"invalid date {value!r}, expected YYYY-MM-DD") from e


def _check_publications(value: Any, path: Path) -> None:
    if not isinstance(value, dict):
        raise ParseError(path, 'publications', "expected a mapping from year to a list of entries")
    for year, entries in value.items():
        if not isinstance(entries, list):
            raise ParseError(path, 'publications', f"entries for {year} must be a list")
        for entry in entries:
            if not isinstance(entry, dict):
                raise ParseError(path, 'publications', f"entry {entry!r} under {year} must be a mapping")
            if not entry.get('name'):
                raise ParseError(path, 'publications', f"entry under {year} has no name")


def _optional_str(metadata: Dict[str, Any], key: str, path: Path) -> Optional[str]:
    value = metadata.get(key)
    if value is None:
        return None
    if not isinstance(value, (str, int, float)):
        raise ParseError(path, key, "expected a string")
    return str(value)


def read_content_file(path: Path) -> str:
    """Read a content file as UTF-8, reporting undecodable files as ParseError."""
    try:
        return path.read_text(encoding='utf-8')
    except UnicodeDecodeError as e:
        raise ParseError(path, None, f"not valid UTF-8: {e}") from e


def parse_content_item(path: Union[str, Path], collection: str, text: Optional[str] = None) -> ContentItem:
    """
    Parse a markdown file into a ContentItem.

    Args:
        path: Path to the markdown file
        collection: Name of the collection the file belongs to
        text: File contents (read from path when omitted)

    Returns:
        The parsed ContentItem

    Raises:
        ParseError: If the front-matter is malformed or has no layout
    """
    path = Path(path)
    if text is None:
        text = read_content_file(path)

    metadata, body = split_front_matter(text, path)
    if metadata is None:
        raise ParseError(path, 'layout', "missing front-matter block")

    layout = metadata.get('layout')
    if not isinstance(layout, str) or not layout.strip():
        raise ParseError(path, 'layout', "required field is missing")
    layout = layout.strip()

    slug = _optional_str(metadata, 'slug', path) or path.stem
    title = _optional_str(metadata, 'title', path) or _optional_str(metadata, 'name', path) or slug

    if 'publications' in metadata:
        _check_publications(metadata['publications'], path)

    fields = {key: value for key, value in metadata.items() if key not in _ITEM_KEYS}

    return ContentItem(
        source=path,
        collection=collection,
        slug=slug,
        layout=layout,
        title=title,
        body=body,
        description=_optional_str(metadata, 'description', path) or '',
        image=_optional_str(metadata, 'image', path),
        tags=_coerce_tags(metadata.get('tags'), path),
        date=_coerce_date(metadata.get('date'), path),
        permalink=_optional_str(metadata, 'permalink', path),
        fields=MappingProxyType(fields),
    )


def item_warnings(item: ContentItem, metadata_keys) -> List[str]:
    """Collect non-fatal observations about a parsed item."""
    warnings = []
    known = LAYOUT_KEYS.get(item.layout)
    if known is not None:
        unknown = sorted(set(metadata_keys) - known - COMMON_KEYS)
        if unknown:
            warnings.append(f"{item.source}: keys not used by layout '{item.layout}': {', '.join(unknown)}")
    if item.layout in DESCRIBED_LAYOUTS and not item.description:
        warnings.append(f"{item.source}: no description")
    return warnings


def load_markdown_files(input_folder: Union[str, Path], collection: str) -> Tuple[List[ContentItem], List[str]]:
    """
    Load every markdown file of a collection folder.

    Files are read in sorted filename order, which is the collection's
    source order.

    Args:
        input_folder: Folder containing the collection's markdown files
        collection: Collection name recorded on each item

    Returns:
        Tuple of (items, warnings)

    Raises:
        ParseError: On the first file with invalid front-matter
    """
    folder = Path(input_folder)
    items = []
    warnings = []
    if not folder.is_dir():
        return items, warnings

    for md_file in sorted(folder.glob('*.md')):
        text = read_content_file(md_file)
        metadata, _ = split_front_matter(text, md_file)
        if metadata and metadata.get('draft') is True:
            warnings.append(f"{md_file}: draft, skipped")
            continue
        item = parse_content_item(md_file, collection, text)
        items.append(item)
        warnings.extend(item_warnings(item, metadata.keys()))

    return items, warnings
