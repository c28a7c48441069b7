"""
Collections: named groups of content items sharing a layout family.
"""

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Union

from scholar_site.load import ContentItem

SORT_POLICIES = ('source', 'date')

# Used when config.toml declares no [collections] tables.
# The research page usually claims /research/ through its permalink, so the
# publication listing lives elsewhere.
DEFAULT_COLLECTIONS = {
    'projects': {'layout': 'project-detail', 'title': 'Projects'},
    'research': {'layout': 'research', 'title': 'Publications', 'listing_path': 'publications.html'},
    'blog': {'layout': 'blog-detail', 'title': 'Blog', 'sort': 'date'},
}


@dataclass
class Collection:
    name: str
    directory: Path
    layout: str
    title: str = ''
    listing_layout: str = 'listing.html'
    listing_path: Optional[str] = None
    listing: bool = True
    sort: str = 'source'
    items: List[ContentItem] = field(default_factory=list)

    @property
    def output_dir(self) -> str:
        return self.name

    def __len__(self) -> int:
        return len(self.items)


def collections_from_config(content_dir: Union[str, Path], config: Dict[str, Any]) -> List[Collection]:
    """
    Build the (still empty) Collection objects declared by the configuration.

    Args:
        content_dir: Root folder holding one sub-folder per collection
        config: Configuration dictionary

    Returns:
        Collections in declaration order

    Raises:
        ValueError: If a collection declares no layout or an unknown sort policy
    """
    content_dir = Path(content_dir)
    declared = config.get('collections') or DEFAULT_COLLECTIONS

    collections = []
    for name, options in declared.items():
        options = options or {}
        layout = options.get('layout')
        if not layout:
            raise ValueError(f"Collection '{name}' declares no layout")
        sort = options.get('sort', 'source')
        if sort not in SORT_POLICIES:
            raise ValueError(f"Collection '{name}': unknown sort policy '{sort}' (expected one of {', '.join(SORT_POLICIES)})")
        collections.append(Collection(
            name=name,
            directory=content_dir / options.get('directory', name),
            layout=layout,
            title=options.get('title', name.replace('-', ' ').replace('_', ' ').title()),
            listing_layout=options.get('listing_layout', 'listing.html'),
            listing_path=options.get('listing_path'),
            listing=bool(options.get('listing', True)),
            sort=sort,
        ))
    return collections


def item_output_path(item: ContentItem) -> str:
    """
    Output path of an item's page, relative to the output root.

    A declared permalink wins: a trailing slash (or an empty permalink)
    maps to index.html inside that folder, a permalink without extension
    gets `.html`. Otherwise the path is `<collection>/<slug>.html`.
    """
    if item.permalink is not None:
        return _permalink_path(item.permalink)
    return f"{item.collection}/{item.slug}.html"


def listing_output_path(collection: Collection) -> str:
    if collection.listing_path:
        return _permalink_path(collection.listing_path)
    return f"{collection.output_dir}/index.html"


def _permalink_path(permalink: str) -> str:
    path = permalink.strip().lstrip('/')
    if not path or path.endswith('/'):
        return path + 'index.html'
    if not PurePosixPath(path).suffix:
        return path + '.html'
    return path
