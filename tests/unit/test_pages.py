"""Tests for pages.py: detail/listing rendering and supplemental outputs."""

from __future__ import annotations

import dataclasses
import datetime as dt

import pytest

from folio.config import SiteConfig
from folio.errors import TemplateFieldMissing
from folio.index import CATEGORY, TAG, build_index
from folio.model import PostRecord
from folio.pages import (
    ListingView,
    Renderer,
    assign_label_paths,
    build_atom,
    build_rss,
    label_listing,
)
from folio.render import LISTING_FIELDS, POST_FIELDS, TemplateSet, load_templates


def _post(slug: str, day: str, **fields) -> PostRecord:
    return PostRecord(
        slug=slug,
        title=fields.pop("title", slug.replace("-", " ").title()),
        publish_date=dt.date.fromisoformat(day),
        body_html=fields.pop("body_html", "<p>Body</p>"),
        summary=fields.pop("summary", "Summary"),
        **fields,
    )


@pytest.fixture
def posts() -> list[PostRecord]:
    return [
        _post("first-post", "2024-12-05", category="Notes", tags=("a", "b"), pinned=True),
        _post("second-post", "2024-12-10", category="Work", tags=("b",), author="Lee"),
        _post("third-post", "2024-12-15", tags=("C++",)),
    ]


@pytest.fixture
def renderer(site_config: SiteConfig, posts: list[PostRecord]) -> Renderer:
    return Renderer(site_config, load_templates(None), build_index(posts))


# ------------------------------------------------------------------
# detail pages
# ------------------------------------------------------------------


def test_render_post_page(renderer: Renderer, posts: list[PostRecord]) -> None:
    page = renderer.render_post(posts[1])
    text = page.html.decode("utf-8")
    assert page.output_path == "posts/2024/12/10/second-post.html"
    assert "<title>Second Post | Test Site</title>" in text
    assert "<p>Body</p>" in text
    assert 'href="../../../../categories/work.html"' in text
    assert 'href="../../../../tags/b.html"' in text
    assert "Lee" in text
    assert "&copy; 2024 Test Site" in text


def test_render_post_uses_default_author(posts: list[PostRecord]) -> None:
    config = SiteConfig(author="Site Owner")
    renderer = Renderer(config, load_templates(None), build_index(posts))
    text = renderer.render_post(posts[0]).html.decode("utf-8")
    assert 'content="Site Owner"' in text


def test_render_post_escapes_title(site_config: SiteConfig) -> None:
    post = _post("tags", "2024-01-01", title="<script>")
    renderer = Renderer(site_config, load_templates(None), build_index([post]))
    text = renderer.render_post(post).html.decode("utf-8")
    assert "<script>" not in text
    assert "&lt;script&gt;" in text


def test_render_is_deterministic(site_config: SiteConfig, posts: list[PostRecord]) -> None:
    first = Renderer(site_config, load_templates(None), build_index(posts))
    second = Renderer(site_config, load_templates(None), build_index(list(reversed(posts))))
    for post in posts:
        assert first.render_post(post) == second.render_post(post)


def test_context_supplies_every_known_field(site_config: SiteConfig, posts: list[PostRecord]) -> None:
    post_template = " ".join(f"{{{{{field}}}}}" for field in sorted(POST_FIELDS))
    listing_template = " ".join(f"{{{{{field}}}}}" for field in sorted(LISTING_FIELDS))
    renderer = Renderer(site_config, TemplateSet(post=post_template, listing=listing_template), build_index(posts))
    assert b"{{" not in renderer.render_post(posts[0]).html
    for view in renderer.listing_views():
        assert b"{{" not in renderer.render_listing(view).html


def test_template_with_unknown_field_fails(site_config: SiteConfig, posts: list[PostRecord]) -> None:
    templates = TemplateSet(post="{{content}} {{reading_time}}", listing="{{posts}}")
    renderer = Renderer(site_config, templates, build_index(posts))
    with pytest.raises(TemplateFieldMissing) as excinfo:
        renderer.render_post(posts[0])
    assert excinfo.value.field == "reading_time"
    assert excinfo.value.template == "post.html"


def test_render_dispatches_on_input_type(renderer: Renderer, posts: list[PostRecord]) -> None:
    assert renderer.render(posts[0]).output_path == posts[0].output_path
    view = label_listing(TAG, "b", posts[:2], renderer.label_paths)
    assert renderer.render(view).output_path == "tags/b.html"


# ------------------------------------------------------------------
# listing pages
# ------------------------------------------------------------------


def test_listing_views_cover_root_categories_tags_and_404(renderer: Renderer) -> None:
    paths = [view.output_path for view in renderer.listing_views()]
    assert paths == [
        "index.html",
        "categories/notes.html",
        "categories/work.html",
        "tags/a.html",
        "tags/b.html",
        "tags/c.html",
        "404.html",
    ]


def test_root_listing_order_in_html(renderer: Renderer) -> None:
    text = renderer.render_listing(renderer.listing_views()[0]).html.decode("utf-8")
    positions = [text.index(f"{slug}.html") for slug in ("first-post", "third-post", "second-post")]
    assert positions == sorted(positions)
    assert "Pinned" in text


def test_label_listing_marks_active_filter(renderer: Renderer, posts: list[PostRecord]) -> None:
    view = label_listing(CATEGORY, "Notes", posts[:1], renderer.label_paths)
    text = renderer.render_listing(view).html.decode("utf-8")
    assert '<li class="is-active"><a href="../categories/notes.html">Notes</a>' in text
    assert 'data-filter-kind="category"' in text
    assert 'href="../posts/2024/12/05/first-post.html"' in text


def test_listing_view_root() -> None:
    assert ListingView(posts=(), output_path="index.html", heading="x").root == "."
    assert ListingView(posts=(), output_path="tags/a.html", heading="x").root == ".."


def test_assign_label_paths() -> None:
    index = build_index([_post("one", "2024-01-01", category="Open Source", tags=("C++",))])
    assert assign_label_paths(index) == {
        (CATEGORY, "Open Source"): "categories/open-source.html",
        (TAG, "C++"): "tags/c.html",
    }


def test_labels_differing_in_case_get_distinct_pages() -> None:
    index = build_index(
        [
            _post("one", "2024-01-01", tags=("python",)),
            _post("two", "2024-01-02", tags=("Python",)),
        ]
    )
    paths = assign_label_paths(index)
    assert paths[(TAG, "Python")] == "tags/python.html"
    assert paths[(TAG, "python")] == "tags/python-2.html"


def test_colliding_label_slugs_are_numbered_in_label_order() -> None:
    index = build_index([_post("one", "2024-01-01", tags=("c", "C++", "C#"))])
    paths = assign_label_paths(index)
    assert paths[(TAG, "c")] == "tags/c.html"
    assert paths[(TAG, "C#")] == "tags/c-2.html"
    assert paths[(TAG, "C++")] == "tags/c-3.html"


def test_same_label_as_category_and_tag_keeps_both_pages() -> None:
    index = build_index([_post("one", "2024-01-01", category="python", tags=("python",))])
    paths = assign_label_paths(index)
    assert paths[(CATEGORY, "python")] == "categories/python.html"
    assert paths[(TAG, "python")] == "tags/python.html"


def test_colliding_labels_link_to_their_own_pages(site_config: SiteConfig) -> None:
    posts = [_post("one", "2024-01-01", tags=("python",)), _post("two", "2024-01-02", tags=("Python",))]
    renderer = Renderer(site_config, load_templates(None), build_index(posts))
    text = renderer.render_post(posts[0]).html.decode("utf-8")
    assert 'href="../../../../tags/python-2.html"' in text
    assert [view.output_path for view in renderer.listing_views() if view.active_kind == TAG] == [
        "tags/python.html",
        "tags/python-2.html",
    ]


# ------------------------------------------------------------------
# feeds and extras
# ------------------------------------------------------------------


def test_render_extras_with_site_url(renderer: Renderer) -> None:
    paths = [page.output_path for page in renderer.render_extras()]
    assert paths == ["rss.xml", "atom.xml", "sitemap.xml", ".nojekyll"]


def test_render_extras_without_site_url(posts: list[PostRecord]) -> None:
    config = SiteConfig(custom_domain="", highlight_code=True)
    extras = Renderer(config, load_templates(None), build_index(posts)).render_extras()
    by_path = {page.output_path: page.html for page in extras}
    assert set(by_path) == {"css/pygments.css", ".nojekyll"}
    assert b".codehilite" in by_path["css/pygments.css"]


def test_custom_domain_implies_site_url(posts: list[PostRecord]) -> None:
    config = SiteConfig(custom_domain="blog.example.test")
    extras = Renderer(config, load_templates(None), build_index(posts)).render_extras()
    by_path = {page.output_path: page.html for page in extras}
    assert by_path["CNAME"] == b"blog.example.test\n"
    assert b"https://blog.example.test/posts/2024/12/15/third-post.html" in by_path["sitemap.xml"]


def test_rss_lists_newest_first_and_respects_limit(site_config: SiteConfig, posts: list[PostRecord]) -> None:
    config = dataclasses.replace(site_config, feed_limit=2)
    rss = build_rss(build_index(posts).posts, config)
    assert "third-post.html" in rss
    assert "second-post.html" in rss
    assert "first-post.html" not in rss
    assert rss.index("third-post.html") < rss.index("second-post.html")
    assert "<lastBuildDate>Sun, 15 Dec 2024 00:00:00 +0000</lastBuildDate>" in rss


def test_empty_site_skips_atom(site_config: SiteConfig) -> None:
    extras = Renderer(site_config, load_templates(None), build_index([])).render_extras()
    paths = [page.output_path for page in extras]
    assert "atom.xml" not in paths
    assert "rss.xml" in paths


def test_atom_without_entries_has_no_empty_updated(site_config: SiteConfig) -> None:
    atom = build_atom([], site_config)
    assert "<updated>" not in atom
    assert "<entry>" not in atom


def test_atom_updated_is_newest_post(site_config: SiteConfig, posts: list[PostRecord]) -> None:
    atom = build_atom(build_index(posts).posts, site_config)
    head = atom.split("<entry>")[0]
    assert "<updated>2024-12-15T00:00:00Z</updated>" in head
