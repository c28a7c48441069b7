from pathlib import Path

import pytest

from scholar_site.errors import BuildError, TemplateNotFoundError
from scholar_site.load import parse_content_item
from scholar_site.render import (LayoutRenderer, apply_base_url, create_environment,
                                 doi_url, normalize_base_url, render_markdown)

PROJECT = (
    "---\n"
    "layout: project-detail\n"
    "name: Rover <Mk II>\n"
    "image: images/rover.jpg\n"
    "description: Path planning for a rover.\n"
    "tags: [Robotics, Software]\n"
    "---\n\n"
    "Uses a **particle filter**.\n"
)


def _renderer(base_url: str = "/", user_templates_dir=None, extra_layouts=None) -> LayoutRenderer:
    config = {"site": {"title": "Jane Doe", "author": "Jane Doe", "base_url": base_url}}
    env = create_environment(base_url, user_templates_dir)
    return LayoutRenderer(env, config=config, extra_layouts=extra_layouts)


def test_normalize_base_url() -> None:
    assert normalize_base_url("") == ""
    assert normalize_base_url("/") == "/"
    assert normalize_base_url("sub") == "/sub/"
    assert normalize_base_url(" /sub/ ") == "/sub/"
    assert normalize_base_url("https://example.org") == "https://example.org/"


def test_apply_base_url() -> None:
    assert apply_base_url("/images/a.png", "/sub/") == "/sub/images/a.png"
    assert apply_base_url("https://cdn.example.org/a.png", "/sub/") == "https://cdn.example.org/a.png"
    assert apply_base_url("a.html", "") == "a.html"


def test_doi_url() -> None:
    assert doi_url("10.1000/xyz") == "https://doi.org/10.1000/xyz"
    assert doi_url("doi:10.1000/xyz") == "https://doi.org/10.1000/xyz"
    assert doi_url("https://doi.org/10.1000/xyz") == "https://doi.org/10.1000/xyz"
    assert doi_url(None) is None


def test_render_markdown() -> None:
    assert render_markdown("Hello *world*") == "<p>Hello <em>world</em></p>"
    assert render_markdown("") == ""


def test_render_project_binds_slots() -> None:
    item = parse_content_item("content/projects/rover.md", "projects", PROJECT)
    html = _renderer().render(item)

    assert "<h1>Rover &lt;Mk II&gt;</h1>" in html
    assert 'src="/images/rover.jpg"' in html
    assert "Path planning for a rover." in html
    assert "<strong>particle filter</strong>" in html
    assert 'href="/tags/robotics.html"' in html
    assert 'href="/tags/software.html"' in html


def test_render_applies_base_url() -> None:
    item = parse_content_item("rover.md", "projects", PROJECT)
    html = _renderer("/sub").render(item)
    assert 'src="/sub/images/rover.jpg"' in html
    assert 'href="/sub/tags/robotics.html"' in html


def test_render_is_deterministic() -> None:
    item = parse_content_item("rover.md", "projects", PROJECT)
    renderer = _renderer()
    assert renderer.render(item) == renderer.render(item)
    assert _renderer().render(item) == renderer.render(item)


def test_render_blog_post_discussion_link() -> None:
    text = (
        "---\nlayout: blog-detail\nname: Async\ndate: 2024-03-02\n"
        "tg_post_link: https://t.me/example/42\n---\nBody\n"
    )
    html = _renderer().render(parse_content_item("async.md", "blog", text))
    assert 'href="https://t.me/example/42"' in html
    assert '<time datetime="2024-03-02">' in html


def test_render_research_publications_newest_first() -> None:
    text = (
        "---\n"
        "layout: research\n"
        "title: Research\n"
        "fields_of_interest: [Robotics, Estimation]\n"
        "publications:\n"
        "  2019:\n"
        "    - name: Old paper\n"
        "      authors: [A. One, B. Two]\n"
        "  2023:\n"
        "    - name: New paper\n"
        "      doi: 10.1000/new\n"
        "---\n"
    )
    html = _renderer().render(parse_content_item("research.md", "research", text))
    assert html.index("<h3>2023</h3>") < html.index("<h3>2019</h3>")
    assert 'href="https://doi.org/10.1000/new"' in html
    assert "A. One, B. Two" in html
    assert "<li>Estimation</li>" in html


def test_render_unknown_layout() -> None:
    item = parse_content_item("odd.md", "blog", "---\nlayout: no-such-layout\n---\n")
    with pytest.raises(TemplateNotFoundError) as excinfo:
        _renderer().render(item)
    assert excinfo.value.layout == "no-such-layout"
    assert "odd.md" in str(excinfo.value)
    assert isinstance(excinfo.value, BuildError)


def test_render_registered_layout_with_missing_template() -> None:
    item = parse_content_item("talk.md", "talks", "---\nlayout: talk\n---\n")
    renderer = _renderer(extra_layouts={"talk": "talk.html"})
    assert renderer.has_layout("talk")
    with pytest.raises(TemplateNotFoundError):
        renderer.render(item)


def test_render_extra_layout_from_user_templates(tmp_path: Path) -> None:
    (tmp_path / "talk.html").write_text(
        '{% extends "base.html" %}{% block content %}<p class="talk">{{ title }}</p>{% endblock %}',
        encoding="utf-8",
    )
    renderer = _renderer(user_templates_dir=tmp_path, extra_layouts={"talk": "talk.html"})
    item = parse_content_item("talk.md", "talks", "---\nlayout: talk\ntitle: Keynote\n---\n")
    assert '<p class="talk">Keynote</p>' in renderer.render(item)


def test_render_page_unknown_template() -> None:
    with pytest.raises(TemplateNotFoundError):
        _renderer().render_page("missing.html")
