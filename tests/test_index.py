import datetime as dt
from pathlib import Path

import pytest

from scholar_site.collection import (Collection, collections_from_config,
                                     item_output_path, listing_output_path)
from scholar_site.index import (build_listing, build_tag_index, group_by_year,
                                order_items, publications_by_year, tag_slug)
from scholar_site.load import parse_content_item


def _item(name: str, front: str, collection: str = "blog"):
    return parse_content_item(f"{name}.md", collection, f"---\n{front}---\n")


def test_group_by_year_descending_with_insertion_order() -> None:
    entries = [(2019, "a"), (2023, "b"), ("2019", "c"), (2021, "d"), (2023, "e")]
    assert group_by_year(entries) == [(2023, ["b", "e"]), (2021, ["d"]), (2019, ["a", "c"])]


def test_group_by_year_non_numeric_years_last() -> None:
    entries = [("in press", "x"), (2020, "y"), ("submitted", "z")]
    assert group_by_year(entries) == [(2020, ["y"]), ("in press", ["x"]), ("submitted", ["z"])]


def test_group_by_year_empty() -> None:
    assert group_by_year([]) == []


def test_publications_by_year_from_research_item() -> None:
    item = _item("research", (
        "layout: research\n"
        "publications:\n"
        "  2019:\n"
        "    - name: Old\n"
        "  2023:\n"
        "    - name: New one\n"
        "      doi: 10.1/a\n"
        "    - name: New two\n"
        "  2021:\n"
        "    - name: Middle\n"
    ), "research")
    groups = publications_by_year([item])
    assert [year for year, _ in groups] == [2023, 2021, 2019]
    assert [entry["name"] for entry in groups[0][1]] == ["New one", "New two"]
    assert groups[0][1][0]["doi"] == "10.1/a"
    assert groups[0][1][0]["source"] is item


def test_publications_by_year_from_year_field() -> None:
    first = _item("p1", "layout: publication\ntitle: First\nyear: 2020\n", "research")
    second = _item("p2", "layout: publication\ntitle: Second\nyear: 2022\n", "research")
    third = _item("p3", "layout: publication\ntitle: Third\nyear: 2020\n", "research")
    groups = publications_by_year([first, second, third])
    assert [(year, [e["name"] for e in entries]) for year, entries in groups] == [
        (2022, ["Second"]),
        (2020, ["First", "Third"]),
    ]


def test_order_items_by_date() -> None:
    collection = Collection(name="blog", directory=Path("blog"), layout="blog-detail", sort="date")
    collection.items = [
        _item("a", "layout: blog-detail\ndate: 2022-01-01\n"),
        _item("b", "layout: blog-detail\n"),
        _item("c", "layout: blog-detail\ndate: 2024-05-01\n"),
        _item("d", "layout: blog-detail\ndate: 2022-01-01\n"),
    ]
    assert [item.slug for item in order_items(collection)] == ["c", "a", "d", "b"]
    assert collection.items[0].date == dt.date(2022, 1, 1)


def test_order_items_source_policy_keeps_order() -> None:
    collection = Collection(name="projects", directory=Path("projects"), layout="project-detail")
    collection.items = [_item("z", "layout: project-detail\n"), _item("a", "layout: project-detail\n")]
    assert [item.slug for item in order_items(collection)] == ["z", "a"]


def test_build_listing_of_empty_collection() -> None:
    collection = Collection(name="blog", directory=Path("blog"), layout="blog-detail")
    listing = build_listing(collection)
    assert listing.is_empty
    assert listing.items == []
    assert listing.groups == []


def test_build_tag_index_membership_and_order() -> None:
    rover = _item("rover", "layout: project-detail\ntags: [Software, Robotics]\n", "projects")
    arm = _item("arm", "layout: project-detail\ntags: [robotics, Robotics]\n", "projects")
    essay = _item("essay", "layout: blog-detail\ntags: [async]\n")

    index = build_tag_index([rover, arm, essay])

    assert index.tags() == ["async", "Robotics", "robotics", "Software"]
    assert index.items_for("Robotics") == [rover, arm]
    assert index.items_for("Software") == [rover]
    assert "Robotics" in index and "Software" in index
    assert index.items_for("missing") == []


def test_tag_slug() -> None:
    assert tag_slug("Machine Learning") == "machine-learning"
    assert tag_slug("C++") == "c"
    assert tag_slug("  Robotics ") == "robotics"
    assert tag_slug("++") == ""


def test_item_output_path() -> None:
    assert item_output_path(_item("rover", "layout: project-detail\n", "projects")) == "projects/rover.html"
    assert item_output_path(_item("r", "layout: research\npermalink: /research/\n")) == "research/index.html"
    assert item_output_path(_item("r", "layout: research\npermalink: /about\n")) == "about.html"
    assert item_output_path(_item("r", "layout: research\npermalink: cv.html\n")) == "cv.html"
    assert item_output_path(_item("r", "layout: research\npermalink: /\n")) == "index.html"
    assert item_output_path(_item("r", "layout: blog-detail\nslug: renamed\n")) == "blog/renamed.html"


def test_collections_from_config_defaults() -> None:
    collections = collections_from_config(Path("content"), {})
    assert [c.name for c in collections] == ["projects", "research", "blog"]
    research = collections[1]
    assert research.directory == Path("content") / "research"
    assert listing_output_path(research) == "publications.html"
    assert listing_output_path(collections[0]) == "projects/index.html"
    assert collections[2].sort == "date"


def test_collections_from_config_declared() -> None:
    config = {"collections": {"talks": {"layout": "talk", "directory": "slides", "listing": False}}}
    (talks,) = collections_from_config(Path("content"), config)
    assert talks.directory == Path("content") / "slides"
    assert talks.title == "Talks"
    assert talks.listing is False


def test_collections_from_config_rejects_bad_declarations() -> None:
    with pytest.raises(ValueError, match="unknown sort policy"):
        collections_from_config(Path("content"), {"collections": {"blog": {"layout": "blog-detail", "sort": "title"}}})
    with pytest.raises(ValueError, match="declares no layout"):
        collections_from_config(Path("content"), {"collections": {"blog": {"title": "Blog"}}})


def test_group_by_year_digit_like_years_stay_strings() -> None:
    assert group_by_year([("2²", "x"), (2020, "y")]) == [(2020, ["y"]), ("2²", ["x"])]
