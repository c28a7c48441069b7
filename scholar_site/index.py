"""
Listing and tag index builders.

Everything here is a pure function of the items it is given: no page is
rendered and nothing is written.
"""

import datetime
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

from scholar_site.collection import Collection
from scholar_site.load import ContentItem

YearGroups = List[Tuple[Any, List[Any]]]


@dataclass
class Listing:
    collection: Collection
    items: List[ContentItem]
    # Publications grouped by year, empty for collections without any
    groups: YearGroups = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.items


@dataclass
class TagIndex:
    """Ordered mapping of tag name to the items carrying it."""
    entries: Dict[str, List[ContentItem]] = field(default_factory=dict)

    def tags(self) -> List[str]:
        return list(self.entries)

    def items_for(self, tag: str) -> List[ContentItem]:
        return self.entries.get(tag, [])

    def __contains__(self, tag: str) -> bool:
        return tag in self.entries

    def __len__(self) -> int:
        return len(self.entries)


def _year_key(year: Any):
    """Numeric years sort before anything else, newest first."""
    try:
        return (0, -int(year))
    except (TypeError, ValueError):
        return (1, 0)


def _year_value(year: str) -> Any:
    """The year as an int when int() accepts it, else the original string."""
    try:
        return int(year)
    except ValueError:
        return year


def group_by_year(entries: Iterable[Tuple[Any, Any]]) -> YearGroups:
    """
    Group (year, entry) pairs by year.

    Years come out newest first. Entries keep their insertion order within
    a year; non-numeric years follow the numeric ones in first-seen order.

    Args:
        entries: Iterable of (year, entry) pairs

    Returns:
        List of (year, [entries]) tuples
    """
    groups: Dict[Any, List[Any]] = {}
    for year, entry in entries:
        # 2021 and "2021" are the same year
        key = str(year).strip()
        groups.setdefault(key, []).append(entry)

    ordered = sorted(groups.items(), key=lambda pair: _year_key(pair[0]))
    return [(_year_value(year), group) for year, group in ordered]


def iter_publications(items: Iterable[ContentItem]):
    """
    Yield (year, publication) pairs from research items.

    A research item contributes every entry of its `publications` mapping;
    an item with a top-level `year` field contributes itself as one entry.
    """
    for item in items:
        publications = item.get('publications')
        if publications:
            for year, entries in publications.items():
                for entry in entries:
                    yield year, dict(entry, source=item)
        elif item.get('year') is not None:
            yield item.get('year'), {
                'name': item.title,
                'authors': item.get('authors'),
                'doi': item.get('doi'),
                'venue': item.get('venue'),
                'source': item,
            }


def publications_by_year(items: Iterable[ContentItem]) -> YearGroups:
    return group_by_year(iter_publications(items))


def order_items(collection: Collection) -> List[ContentItem]:
    """
    Order a collection's items according to its sort policy.

    `source` keeps filename order. `date` puts the newest items first and
    undated items last; ties keep filename order.
    """
    items = list(collection.items)
    if collection.sort == 'date':
        # sorted() is stable, so equal dates keep source order
        items = sorted(items, key=lambda item: (item.date is None, -(item.date or datetime.date.min).toordinal()))
    return items


def build_listing(collection: Collection) -> Listing:
    """
    Aggregate a collection into its listing.

    An empty collection gives an empty listing.
    """
    items = order_items(collection)
    return Listing(collection=collection, items=items, groups=publications_by_year(items))


def build_tag_index(items: Iterable[ContentItem]) -> TagIndex:
    """
    Build the tag to items relation once from all items.

    Tags are sorted by name, case-insensitively with the exact string as
    tie-break. Items under a tag keep the order they were given in.
    """
    entries: Dict[str, List[ContentItem]] = {}
    for item in items:
        for tag in item.tags:
            entries.setdefault(tag, []).append(item)
    ordered = {tag: entries[tag] for tag in sorted(entries, key=lambda tag: (tag.casefold(), tag))}
    return TagIndex(entries=ordered)


def tag_slug(tag: str) -> str:
    """Turn a tag into the file name of its index page."""
    return re.sub(r'[\W_]+', '-', tag.casefold()).strip('-')
