from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Sequence

from pygments.formatters import HtmlFormatter

from .config import SiteConfig
from .content import slugify
from .index import CATEGORY, TAG, SiteIndex
from .model import POST_ROOT, PostRecord
from .render import LISTING_TEMPLATE, POST_TEMPLATE, RenderedPage, TemplateSet, render_template
from .utils import iso_date, join_url, rfc822_date

LABEL_DIRS = {CATEGORY: "categories", TAG: "tags"}
PYGMENTS_CSS = "css/pygments.css"
LabelPaths = dict[tuple[str, str], str]


@dataclass(frozen=True)
class ListingView:
    posts: tuple[PostRecord, ...]
    output_path: str
    heading: str
    intro: str = ""
    active_kind: str = ""
    active_label: str = ""

    @property
    def root(self) -> str:
        depth = self.output_path.count("/")
        return "/".join([".."] * depth) if depth else "."


def assign_label_paths(index: SiteIndex) -> LabelPaths:
    # Labels that slugify alike get -2, -3, ... in label order.
    paths: LabelPaths = {}
    for kind in (CATEGORY, TAG):
        used: set[str] = set()
        for label in index.buckets(kind):
            base = slugify(label)
            slug = base
            counter = 2
            while slug in used:
                slug = f"{base}-{counter}"
                counter += 1
            used.add(slug)
            paths[(kind, label)] = f"{LABEL_DIRS[kind]}/{slug}.html"
    return paths


def root_listing(index: SiteIndex) -> ListingView:
    return ListingView(
        posts=index.posts,
        output_path="index.html",
        heading="Latest posts",
        intro="Pinned posts first, then newest first.",
    )


def label_listing(kind: str, label: str, posts: Sequence[PostRecord], paths: LabelPaths) -> ListingView:
    noun = "category" if kind == CATEGORY else "tag"
    return ListingView(
        posts=tuple(posts),
        output_path=paths[(kind, label)],
        heading=label,
        intro=f"Posts filed under the {noun} {label}.",
        active_kind=kind,
        active_label=label,
    )


def not_found_listing() -> ListingView:
    return ListingView(
        posts=(),
        output_path="404.html",
        heading="404",
        intro="Page not found. Try heading back to the homepage.",
    )


def build_chips(kind: str, labels: Sequence[str], root: str, paths: LabelPaths) -> str:
    return " ".join(
        f'<a class="chip chip-{kind}" href="{root}/{paths[(kind, label)]}">{html.escape(label)}</a>'
        for label in labels
    )


def build_label_list(
    index: SiteIndex, kind: str, root: str, paths: LabelPaths, active_kind: str = "", active_label: str = ""
) -> str:
    items = []
    for label, count in index.label_counts(kind):
        active = ' class="is-active"' if kind == active_kind and label == active_label else ""
        items.append(
            f'<li{active}><a href="{root}/{paths[(kind, label)]}">{html.escape(label)}</a>'
            f'<span class="count">{count}</span></li>'
        )
    empty = "No categories yet." if kind == CATEGORY else "No tags yet."
    return "\n".join(items) if items else f"<li>{empty}</li>"


def build_sidebar(
    index: SiteIndex,
    config: SiteConfig,
    root: str,
    paths: LabelPaths,
    toc_html: str = "",
    active_kind: str = "",
    active_label: str = "",
) -> str:
    about_text = config.about_text or config.site_description
    panels = [
        '<div class="panel">'
        "<h3>About</h3>"
        f"<p>{html.escape(about_text)}</p>"
        "</div>"
    ]
    if toc_html and "<li" in toc_html:
        panels.append(
            '<div class="panel">'
            "<h3>Contents</h3>"
            f"{toc_html}"
            "</div>"
        )
    panels.append(
        '<div class="panel">'
        "<h3>Categories</h3>"
        f'<ul class="category-list">{build_label_list(index, CATEGORY, root, paths, active_kind, active_label)}</ul>'
        "</div>"
    )
    panels.append(
        '<div class="panel">'
        "<h3>Tags</h3>"
        f'<ul class="tag-list">{build_label_list(index, TAG, root, paths, active_kind, active_label)}</ul>'
        "</div>"
    )
    return "".join(panels)


def build_post_cards(posts: Sequence[PostRecord], root: str, paths: LabelPaths) -> str:
    cards = []
    for post in posts:
        title = html.escape(post.title)
        summary = html.escape(post.summary)
        url = f"{root}/{post.output_path}"
        pinned_html = '<span class="post-pinned">Pinned</span>' if post.pinned else ""
        category_links = build_chips(CATEGORY, [post.category] if post.category else [], root, paths)
        tag_links = build_chips(TAG, post.tags, root, paths)
        cards.append(
            f'<article class="post-card{" is-pinned" if post.pinned else ""}">'
            '<div class="post-meta"><div class="post-meta-left">'
            f"{pinned_html}"
            f'<span class="post-date">{post.date_label}</span>'
            f'<span class="post-words">{post.words} words</span>'
            "</div>"
            f'<div class="post-tags">{category_links} {tag_links}</div></div>'
            f'<h2 class="post-title"><a href="{url}">{title}</a></h2>'
            f'<p class="post-summary">{summary}</p>'
            f'<a class="post-more" href="{url}">Read more</a>'
            "</article>"
        )
    return "\n".join(cards)


def site_year(index: SiteIndex) -> str:
    if not index.posts:
        return ""
    return str(max(post.publish_date for post in index.posts).year)


def pygments_stylesheet() -> str:
    return HtmlFormatter(style="default").get_style_defs(".codehilite")


class Renderer:
    def __init__(self, config: SiteConfig, templates: TemplateSet, index: SiteIndex) -> None:
        self.config = config
        self.templates = templates
        self.index = index
        self.year = site_year(index)
        self.label_paths = assign_label_paths(index)

    def base_context(self, root: str, page_title: str) -> dict[str, str]:
        extra_head = ""
        if self.config.highlight_code:
            extra_head = f'<link rel="stylesheet" href="{root}/{PYGMENTS_CSS}" />'
        return {
            "title": html.escape(page_title),
            "root": root,
            "site_name": html.escape(self.config.site_name),
            "site_description": html.escape(self.config.site_description),
            "year": self.year,
            "extra_head": extra_head,
        }

    def render(self, item: PostRecord | ListingView) -> RenderedPage:
        if isinstance(item, PostRecord):
            return self.render_post(item)
        return self.render_listing(item)

    def render_post(self, post: PostRecord) -> RenderedPage:
        root = POST_ROOT
        context = self.base_context(root, f"{post.title} | {self.config.site_name}")
        author = post.author or self.config.author
        context.update(
            post_title=html.escape(post.title),
            date=post.date_label,
            author=html.escape(author),
            description=html.escape(post.description),
            words=str(post.words),
            category_links=build_chips(CATEGORY, [post.category] if post.category else [], root, self.label_paths),
            tag_links=build_chips(TAG, post.tags, root, self.label_paths),
            content=post.body_html,
            sidebar=build_sidebar(self.index, self.config, root, self.label_paths, post.toc_html),
        )
        html_doc = render_template(self.templates.post, POST_TEMPLATE, **context)
        return RenderedPage(post.output_path, html_doc.encode("utf-8"))

    def render_listing(self, view: ListingView) -> RenderedPage:
        root = view.root
        if view.active_label:
            page_title = f"{view.active_label} | {self.config.site_name}"
        else:
            page_title = f"{self.config.site_name} | {view.heading}"
        context = self.base_context(root, page_title)
        context.update(
            heading=html.escape(view.heading),
            intro=html.escape(view.intro),
            filter_kind=view.active_kind,
            filter_label=html.escape(view.active_label),
            post_count=str(len(view.posts)),
            posts=build_post_cards(view.posts, root, self.label_paths),
            sidebar=build_sidebar(
                self.index, self.config, root, self.label_paths, "", view.active_kind, view.active_label
            ),
        )
        html_doc = render_template(self.templates.listing, LISTING_TEMPLATE, **context)
        return RenderedPage(view.output_path, html_doc.encode("utf-8"))

    def listing_views(self) -> list[ListingView]:
        views = [root_listing(self.index)]
        for kind in (CATEGORY, TAG):
            for label, posts in self.index.buckets(kind).items():
                views.append(label_listing(kind, label, posts, self.label_paths))
        if self.config.enable_404:
            views.append(not_found_listing())
        return views

    def render_extras(self) -> list[RenderedPage]:
        config = self.config
        site_url = config.public_url
        outputs: dict[str, str] = {}
        if site_url and config.enable_rss:
            outputs["rss.xml"] = build_rss(self.index.posts, config)
        if site_url and config.enable_atom and self.index.posts:
            outputs["atom.xml"] = build_atom(self.index.posts, config)
        if site_url and config.enable_sitemap:
            outputs["sitemap.xml"] = build_sitemap(self.index, config, self.label_paths)
        if config.highlight_code:
            outputs[PYGMENTS_CSS] = pygments_stylesheet()
        if config.custom_domain.strip():
            outputs["CNAME"] = f"{config.custom_domain.strip()}\n"
        if config.write_nojekyll:
            outputs[".nojekyll"] = ""
        return [RenderedPage(path, text.encode("utf-8")) for path, text in outputs.items()]


def feed_posts(posts: Sequence[PostRecord], limit: int) -> list[PostRecord]:
    newest = sorted(posts, key=lambda post: (-post.publish_date.toordinal(), post.slug))
    return newest[: max(0, limit)]


def build_rss(posts: Sequence[PostRecord], config: SiteConfig) -> str:
    site_url = config.public_url
    items = []
    selected = feed_posts(posts, config.feed_limit)
    for post in selected:
        link = join_url(site_url, post.output_path)
        items.append(
            "\n".join(
                [
                    "<item>",
                    f"<title>{html.escape(post.title)}</title>",
                    f"<link>{link}</link>",
                    f"<guid>{link}</guid>",
                    f"<pubDate>{rfc822_date(post.publish_date)}</pubDate>",
                    f"<description>{html.escape(post.summary)}</description>",
                    "</item>",
                ]
            )
        )
    last_build = f"<lastBuildDate>{rfc822_date(selected[0].publish_date)}</lastBuildDate>" if selected else ""
    return "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0">',
            "<channel>",
            f"<title>{html.escape(config.site_name)}</title>",
            f"<link>{site_url}/</link>",
            f"<description>{html.escape(config.site_description)}</description>",
            last_build,
            "\n".join(items),
            "</channel>",
            "</rss>",
        ]
    )


def build_atom(posts: Sequence[PostRecord], config: SiteConfig) -> str:
    site_url = config.public_url
    selected = feed_posts(posts, config.feed_limit)
    updated = f"<updated>{iso_date(selected[0].publish_date)}</updated>" if selected else ""
    entries = []
    for post in selected:
        link = join_url(site_url, post.output_path)
        author = post.author or config.author
        author_xml = f"<author><name>{html.escape(author)}</name></author>" if author else ""
        entries.append(
            "\n".join(
                [
                    "<entry>",
                    f"<title>{html.escape(post.title)}</title>",
                    f'<link href="{link}" />',
                    f"<id>{link}</id>",
                    f"<updated>{iso_date(post.publish_date)}</updated>",
                    author_xml,
                    f"<summary>{html.escape(post.summary)}</summary>",
                    "</entry>",
                ]
            )
        )
    return "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<feed xmlns="http://www.w3.org/2005/Atom">',
            f"<title>{html.escape(config.site_name)}</title>",
            f"<id>{site_url}/</id>",
            updated,
            f'<link href="{site_url}/atom.xml" rel="self" />',
            f'<link href="{site_url}/" />',
            "\n".join(entries),
            "</feed>",
        ]
    )


def build_sitemap(index: SiteIndex, config: SiteConfig, paths: LabelPaths) -> str:
    site_url = config.public_url
    urls = [(site_url + "/", None)]
    for kind in (CATEGORY, TAG):
        for label in index.buckets(kind):
            urls.append((join_url(site_url, paths[(kind, label)]), None))
    for post in index.posts:
        urls.append((join_url(site_url, post.output_path), post.publish_date))
    items = []
    for url, lastmod in urls:
        lines = ["<url>", f"<loc>{url}</loc>"]
        if lastmod:
            lines.append(f"<lastmod>{lastmod.isoformat()}</lastmod>")
        lines.append("</url>")
        items.append("\n".join(lines))
    return "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
            "\n".join(items),
            "</urlset>",
        ]
    )
