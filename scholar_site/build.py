#!/usr/bin/env python3
"""
Build script for the static academic site.
Loads content collections, renders every page and writes the output tree.
"""

import argparse
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Tuple
try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Python < 3.11

from scholar_site import __version__
from scholar_site.collection import (Collection, collections_from_config,
                                     item_output_path, listing_output_path)
from scholar_site.errors import BuildError, SiteError
from scholar_site.index import TagIndex, build_listing, build_tag_index, tag_slug
from scholar_site.load import ContentItem, load_markdown_files
from scholar_site.render import (LayoutRenderer, apply_base_url, create_environment,
                                 normalize_base_url)

HOME_LIMIT = 5


@dataclass(frozen=True)
class Page:
    """A rendered output file."""
    path: str
    html: str
    origin: str


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from TOML file.

    Args:
        config_path: Path to config.toml file

    Returns:
        Dictionary containing configuration
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'rb') as f:
        return tomllib.load(f)


def resolve_config(config_path: Path, skip_confirmation: bool = False) -> Dict[str, Any]:
    """
    Load config.toml, falling back to config.toml.template.

    Without skip_confirmation the user is asked before the template is used.

    Raises:
        FileNotFoundError: If neither file exists or the fallback is refused
    """
    try:
        return load_config(config_path)
    except FileNotFoundError:
        template_path = config_path.with_suffix('.toml.template')
        print(f"Configuration file not found: {config_path}")
        if not template_path.exists():
            raise

        if not skip_confirmation:
            print("<<< ⚠️  A custom configuration file is missing. (config.toml) ⚠️  >>>")
            print("You can use the template configuration file for a quick start (config.toml.template).")
            print("Would you like to use the template configuration file for now? (y/n)")
            answer = input()
            if answer != 'y':
                raise FileNotFoundError(f"Confirmation not given, no configuration loaded: {config_path}")

        print(f"Using template configuration file: {template_path}")
        return load_config(template_path)


def canonical_url(path: str, config: Dict[str, Any]) -> Optional[str]:
    """Absolute URL of an output path, when [site] url is configured."""
    site = config.get('site', {})
    site_url = site.get('url')
    if not site_url:
        return None
    base = site_url.rstrip('/') + normalize_base_url(site.get('base_url', '/') or '/')
    return apply_base_url(path, base)


def discover_collections(content_dir: Path, config: Dict[str, Any]) -> Tuple[List[Collection], List[str]]:
    """
    Discover and load all collections.

    Args:
        content_dir: Root content folder
        config: Configuration dictionary

    Returns:
        Tuple of (collections with their items, loading warnings)
    """
    print("📚 Loading collections...")
    collections = collections_from_config(content_dir, config)
    warnings = []
    for collection in collections:
        items, item_warnings = load_markdown_files(collection.directory, collection.name)
        collection.items = items
        warnings.extend(item_warnings)
        print(f"  ✓ {collection.name}: {len(items)} item(s)")
    return collections, warnings


def navigation(collections: List[Collection]) -> List[Dict[str, str]]:
    return [
        {'title': collection.title, 'path': listing_output_path(collection)}
        for collection in collections if collection.listing
    ]


def create_renderer(config: Dict[str, Any], collections: List[Collection],
                    user_templates_dir: Optional[Path] = None) -> LayoutRenderer:
    """Create the layout renderer shared by every page of a build."""
    base_url = config.get('site', {}).get('base_url', '/')
    env = create_environment(base_url, user_templates_dir)
    return LayoutRenderer(env, config=config, extra_layouts=config.get('layouts', {}),
                          nav=navigation(collections))


class PageSet:
    """Output pages keyed by path; a path can be claimed only once."""

    def __init__(self):
        self._pages: Dict[str, Page] = {}

    def add(self, page: Page) -> None:
        path = PurePosixPath(page.path)
        if path.is_absolute() or '..' in path.parts or not path.parts:
            raise BuildError(f"Output path '{page.path}' of {page.origin} is outside the output directory")
        key = str(path)
        existing = self._pages.get(key)
        if existing is not None:
            raise BuildError(
                f"Duplicate output path '{key}' claimed by {existing.origin} and {page.origin}",
                [p for p in (existing.origin, page.origin) if not p.startswith('<')],
            )
        self._pages[key] = page

    def __contains__(self, path: str) -> bool:
        return str(PurePosixPath(path)) in self._pages

    def __iter__(self):
        return iter(self._pages.values())

    def __len__(self) -> int:
        return len(self._pages)


def render_item_pages(collections: List[Collection], renderer: LayoutRenderer,
                      config: Dict[str, Any], pages: PageSet) -> None:
    print("📝 Rendering item pages...")
    for collection in collections:
        for item in collection.items:
            path = item_output_path(item)
            html = renderer.render(item, page_url=canonical_url(path, config), collection=collection)
            pages.add(Page(path, html, str(item.source)))
            print(f"  ✓ {path}")


def render_listing_pages(collections: List[Collection], renderer: LayoutRenderer,
                         config: Dict[str, Any], pages: PageSet) -> None:
    print("📋 Rendering listing pages...")
    for collection in collections:
        if not collection.listing:
            continue
        listing = build_listing(collection)
        path = listing_output_path(collection)
        html = renderer.render_page(
            collection.listing_layout,
            listing=listing,
            collection=collection,
            items=[(item, item_output_path(item)) for item in listing.items],
            groups=listing.groups,
            page_url=canonical_url(path, config),
        )
        pages.add(Page(path, html, f"<listing of collection '{collection.name}'>"))
        print(f"  ✓ {path}")


def render_tag_pages(tag_index: TagIndex, renderer: LayoutRenderer,
                     config: Dict[str, Any], pages: PageSet) -> None:
    print("🏷️  Rendering tag pages...")
    for tag in tag_index.tags():
        slug = tag_slug(tag)
        if not slug:
            sources = [item.source for item in tag_index.items_for(tag)]
            raise BuildError(f"Tag '{tag}' has no index page", sources)
        path = f"tags/{slug}.html"
        html = renderer.render_page(
            'tag.html',
            tag=tag,
            items=[(item, item_output_path(item)) for item in tag_index.items_for(tag)],
            page_url=canonical_url(path, config),
        )
        pages.add(Page(path, html, f"<tag '{tag}'>"))
    path = 'tags.html'
    html = renderer.render_page(
        'tags.html',
        tags=[(tag, len(tag_index.items_for(tag))) for tag in tag_index.tags()],
        page_url=canonical_url(path, config),
    )
    pages.add(Page(path, html, '<tag overview>'))
    print(f"  ✓ {len(tag_index)} tag page(s)")


def render_site_pages(collections: List[Collection], renderer: LayoutRenderer,
                      config: Dict[str, Any], pages: PageSet) -> None:
    """Render home, 404 and the sitemap."""
    print("📄 Rendering site pages...")
    sections = []
    for collection in collections:
        if not collection.listing:
            continue
        listing = build_listing(collection)
        sections.append({
            'collection': collection,
            'path': listing_output_path(collection),
            'items': [(item, item_output_path(item)) for item in listing.items[:HOME_LIMIT]],
        })

    for template_name in ('index.html', '404.html'):
        if template_name in pages:
            print(f"  ⚠ {template_name} is provided by content, skipped")
            continue
        html = renderer.render_page(template_name, sections=sections,
                                    page_url=canonical_url(template_name, config))
        pages.add(Page(template_name, html, f"<{template_name}>"))
        print(f"  ✓ {template_name}")

    urls = [canonical_url(page.path, config) or apply_base_url(page.path, renderer.env.globals['base_url'])
            for page in pages if page.path != '404.html']
    pages.add(Page('sitemap.xml', renderer.render_page('sitemap.xml', urls=urls), '<sitemap>'))
    print("  ✓ sitemap.xml")


def assemble_site(content_dir: Path, config: Dict[str, Any],
                  user_templates_dir: Optional[Path] = None) -> Tuple[List[Page], List[str]]:
    """
    Discover, render and validate every page of the site.

    Nothing is written here; a failure leaves the output tree untouched.

    Args:
        content_dir: Root content folder
        config: Configuration dictionary
        user_templates_dir: Optional folder with additional templates

    Returns:
        Tuple of (pages, warnings)

    Raises:
        ParseError: Malformed front-matter or missing layout
        TemplateNotFoundError: Unregistered layout
        BuildError: Duplicate output path or dangling tag link
    """
    collections, warnings = discover_collections(Path(content_dir), config)
    renderer = create_renderer(config, collections, user_templates_dir)

    all_items: List[ContentItem] = [item for collection in collections for item in collection.items]
    pages = PageSet()
    render_item_pages(collections, renderer, config, pages)
    render_listing_pages(collections, renderer, config, pages)
    render_tag_pages(build_tag_index(all_items), renderer, config, pages)
    render_site_pages(collections, renderer, config, pages)
    return list(pages), warnings


def write_site(pages: List[Page], output_dir: Path, clean: bool = False) -> None:
    """
    Write rendered pages to the output directory.

    Args:
        pages: Pages to write
        output_dir: Output root
        clean: Remove the previous output tree first
    """
    print("💾 Writing output...")
    output_dir = Path(output_dir)
    if clean and output_dir.is_dir():
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    for page in pages:
        output_file = output_dir / page.path
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(page.html, encoding='utf-8')
    print(f"  ✓ {len(pages)} file(s) written")


def build(
    input_folder: str = None,
    output_dir: str = None,
    config_path: str = None,
    base_url: str = None,
    skip_confirmation: bool = False,
    clean: bool = False,
    templates_dir: str = None,
) -> List[Page]:
    """
    Main build function: discover -> render -> write.

    Args:
        input_folder: Root content folder (default: content/ in the working directory)
        output_dir: Output directory for build (default: public/ in the working directory)
        config_path: Path to config.toml file (default: config.toml in the working directory)
        base_url: Base URL override (default: None, uses config file value)
        skip_confirmation: Skip confirmation prompts
        clean: Remove the previous output tree before writing
        templates_dir: Folder with additional templates (default: user_templates/ next to the content folder)

    Returns:
        The written pages
    """
    print(f"scholar-site version: {__version__}")
    project_root = Path.cwd()

    if input_folder is None:
        input_folder = str(project_root / 'content')
    if output_dir is None:
        output_dir = str(project_root / 'public')
    if config_path is None:
        config_path = str(project_root / 'config.toml')

    input_path = Path(input_folder)
    if templates_dir is None:
        templates_dir = str(input_path.parent / 'user_templates')

    config = resolve_config(Path(config_path), skip_confirmation)

    # Normalize base_url (use command-line override if provided, otherwise use config)
    if 'site' not in config:
        config['site'] = {}
    if base_url is None:
        base_url = config['site'].get('base_url', '/')
    config['site']['base_url'] = normalize_base_url(base_url) or '/'

    pages, warnings = assemble_site(input_path, config, Path(templates_dir))
    write_site(pages, Path(output_dir), clean)

    print("\n✅ Build complete!")
    print(f"📦 Output directory: {output_dir}")

    if warnings:
        print("\n============ Warnings processing content =============")
        for warning in warnings:
            print(f"\n  ⚠️ {warning}")

    return pages


def _run():
    """Main entrypoint for command-line interface"""
    parser = argparse.ArgumentParser(
        description='Build the static site from markdown content collections',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Full build with default settings
  python -m scholar_site.build

  # Build with custom input/output directories
  python -m scholar_site.build -i content/ -o build/public/

  # Deploy under a sub-folder, wiping the previous build
  python -m scholar_site.build --base-url /~me --clean
        """
    )

    parser.add_argument(
        '--input', '-i',
        type=str,
        default=None,
        help='Root content folder with one sub-folder per collection (default: ./content)'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        default=None,
        help='Output directory for build (default: ./public)'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default=None,
        help='Path to config.toml file (default: ./config.toml)'
    )

    parser.add_argument(
        '--base-url',
        type=str,
        default=None,
        help='Base URL for deployment (overrides config file value, e.g., "/subfolder")'
    )

    parser.add_argument(
        '--templates', '-t',
        type=str,
        default=None,
        help='Folder with additional templates (default: user_templates/ next to the content folder)'
    )

    parser.add_argument(
        '--skip-confirmation', '-s',
        action='store_true',
        help='Skip confirmation prompts'
    )

    parser.add_argument(
        '--clean',
        action='store_true',
        help='Remove the output directory before writing'
    )

    args = parser.parse_args()

    try:
        build(
            input_folder=args.input,
            output_dir=args.output,
            config_path=args.config,
            base_url=args.base_url,
            skip_confirmation=args.skip_confirmation,
            clean=args.clean,
            templates_dir=args.templates,
        )
    except (SiteError, FileNotFoundError, ValueError) as e:
        print(f"\n❌ {e}")
        print(" ❌ Build aborted.")
        sys.exit(1)


if __name__ == '__main__':
    _run()
