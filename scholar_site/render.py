"""
Layout renderer: binds content items to Jinja2 templates.
"""

from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Optional

import jinja2
import markdown

from scholar_site import __version__
from scholar_site.errors import TemplateNotFoundError
from scholar_site.index import publications_by_year, tag_slug
from scholar_site.load import ContentItem

TEMPLATES_DIR = Path(__file__).parent / 'src' / 'templates'

# Layout identifier -> template file. Extra layouts come from config [layouts].
LAYOUTS = MappingProxyType({
    'project-detail': 'project.html',
    'blog-detail': 'post.html',
    'research': 'research.html',
    'publication': 'publication.html',
})

MARKDOWN_EXTENSIONS = ['fenced_code', 'tables', 'footnotes', 'toc', 'sane_lists']


def normalize_base_url(base_url: str) -> str:
    """
    Normalize base_url to ensure consistent format.
    - Empty string stays empty
    - Paths without trailing slash get one added
    - Root path "/" stays as "/"

    Args:
        base_url: Base URL string from config

    Returns:
        Normalized base URL
    """
    if not base_url:
        return ""
    base_url = base_url.strip()
    if base_url.startswith(('http://', 'https://')):
        return base_url if base_url.endswith('/') else base_url + '/'
    if not base_url.startswith('/'):
        base_url = '/' + base_url
    if base_url != '/' and not base_url.endswith('/'):
        base_url = base_url + '/'
    return base_url


def apply_base_url(path: str, base_url: str) -> str:
    """
    Apply base_url to a path if base_url is set and path is not already a full URL.

    Args:
        path: Path to apply base_url to
        base_url: Base URL (normalized, ends with / or empty)

    Returns:
        Path with base_url prepended if applicable
    """
    if not base_url or path is None:
        return path

    # Don't modify full URLs (http/https)
    if path.startswith(('http://', 'https://', 'mailto:', '#')):
        return path

    # Remove leading slash from path if it exists (base_url already ends with /)
    path = path.lstrip('/')
    return base_url + path


def render_markdown(text: str) -> str:
    """Convert markdown text to HTML."""
    return markdown.markdown(text or '', extensions=MARKDOWN_EXTENSIONS, output_format='html')


def doi_url(doi: Optional[str]) -> Optional[str]:
    """Resolve a bare DOI to its doi.org link."""
    if not doi:
        return doi
    doi = str(doi).strip()
    if doi.startswith(('http://', 'https://')):
        return doi
    if doi.lower().startswith('doi:'):
        doi = doi[4:].strip()
    return f"https://doi.org/{doi}"


def format_authors(authors: Any) -> str:
    if not authors:
        return ''
    if isinstance(authors, (list, tuple)):
        return ', '.join(str(author) for author in authors)
    return str(authors)


def create_environment(base_url: str = '/', user_templates_dir: Optional[Path] = None,
                       templates_dir: Path = TEMPLATES_DIR) -> jinja2.Environment:
    """
    Set up the Jinja2 environment shared by every page of a build.

    Args:
        base_url: Base URL every site link is prefixed with
        user_templates_dir: Optional folder with additional templates
        templates_dir: Folder with the built-in templates

    Returns:
        Configured Jinja2 environment
    """
    # Root-relative links keep working from nested output folders
    base_url = normalize_base_url(base_url) or '/'

    # ChoiceLoader searches the built-in templates first, then user_templates
    loaders = [jinja2.FileSystemLoader(str(templates_dir))]
    if user_templates_dir is not None and Path(user_templates_dir).exists():
        loaders.append(jinja2.FileSystemLoader(str(user_templates_dir)))

    env = jinja2.Environment(
        loader=jinja2.ChoiceLoader(loaders),
        autoescape=jinja2.select_autoescape(['html', 'xml']),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )

    def url_filter(path: str) -> str:
        """Prepend base_url to a site path."""
        return apply_base_url(path, base_url)

    def tag_url_filter(tag: str) -> str:
        return url_filter(f"tags/{tag_slug(tag)}.html")

    env.filters['url'] = url_filter
    env.filters['markdown'] = render_markdown
    env.filters['doi_url'] = doi_url
    env.filters['authors'] = format_authors
    env.filters['tag_url'] = tag_url_filter
    env.filters['tag_slug'] = tag_slug
    env.globals['base_url'] = base_url
    return env


class LayoutRenderer:
    """
    Render content items and aggregate pages through a fixed layout registry.

    The registry is assembled once from LAYOUTS and the optional extra
    layouts; it is never changed while a build runs.
    """

    def __init__(self, env: jinja2.Environment, config: Optional[Dict[str, Any]] = None,
                 extra_layouts: Optional[Dict[str, str]] = None,
                 nav: Optional[List[Dict[str, str]]] = None):
        self.env = env
        self.config = dict(config or {})
        self.config.setdefault('site', {})
        layouts = dict(LAYOUTS)
        layouts.update(extra_layouts or {})
        self.layouts = MappingProxyType(layouts)
        self.nav = list(nav or [])

    def has_layout(self, layout: str) -> bool:
        return layout in self.layouts

    def template_for(self, layout: str, source: Optional[Path] = None) -> jinja2.Template:
        """
        Resolve the template registered for a layout.

        Raises:
            TemplateNotFoundError: If the layout is not registered or its
                template file does not exist
        """
        template_name = self.layouts.get(layout)
        if template_name is None:
            raise TemplateNotFoundError(layout, source)
        try:
            return self.env.get_template(template_name)
        except jinja2.TemplateNotFound as e:
            raise TemplateNotFoundError(layout, source) from e

    def _context(self, context: Dict[str, Any]) -> Dict[str, Any]:
        return dict(config=self.config, nav=self.nav, version=__version__, **context)

    def render(self, item: ContentItem, page_url: Optional[str] = None, **context) -> str:
        """
        Render one content item with its declared layout.

        Args:
            item: The content item
            page_url: Canonical URL of the page, if known
            **context: Extra template variables

        Returns:
            Rendered HTML markup
        """
        template = self.template_for(item.layout, item.source)
        publications = publications_by_year([item]) if item.get('publications') else []
        return template.render(**self._context(dict(
            item=item,
            title=item.title,
            image=item.image,
            description=item.description,
            tags=item.tags,
            body=render_markdown(item.body),
            fields=item.fields,
            publications=publications,
            page_url=page_url,
            **context,
        )))

    def render_page(self, template_name: str, **context) -> str:
        """Render an aggregate page (listing, tag index, home) by template name."""
        try:
            template = self.env.get_template(template_name)
        except jinja2.TemplateNotFound as e:
            raise TemplateNotFoundError(template_name) from e
        return template.render(**self._context(context))
