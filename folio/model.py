from __future__ import annotations

import datetime as dt
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterable, Sequence

import markdown

from .config import SiteConfig
from .content import (
    SourceDocument,
    count_words,
    normalize_list_spacing,
    parse_front_matter,
    slugify,
)
from .errors import DuplicateSlug, InvalidDateFormat, InvalidFieldValue, MissingRequiredField
from .render import fix_relative_img_src, strip_tags

DATE_FMT = "%Y-%m-%d"
DATE_PREFIX_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[-_]+")
SUMMARY_LENGTH = 200
TRUE_VALUES = {"1", "true", "yes", "y", "on"}
FALSE_VALUES = {"0", "false", "no", "n", "off"}
# Detail pages live at posts/YYYY/MM/DD/<slug>.html
POST_ROOT = "../../../.."


@dataclass(frozen=True)
class PostRecord:
    slug: str
    title: str
    publish_date: dt.date
    category: str = ""
    tags: tuple[str, ...] = ()
    description: str = ""
    author: str = ""
    pinned: bool = False
    body_html: str = ""
    source: str = ""
    summary: str = ""
    words: int = 0
    toc_html: str = ""

    @property
    def output_path(self) -> str:
        day = self.publish_date
        return f"posts/{day:%Y}/{day:%m}/{day:%d}/{self.slug}.html"

    @property
    def date_label(self) -> str:
        return self.publish_date.strftime(DATE_FMT)


def derive_slug(path: str) -> str:
    stem = PurePosixPath(path.replace("\\", "/")).stem
    return slugify(DATE_PREFIX_RE.sub("", stem) or stem)


def parse_publish_date(value: str, path: str) -> dt.date:
    value = value.strip()
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return dt.datetime.fromisoformat(value).date()
    except ValueError:
        raise InvalidDateFormat(path, value) from None


def parse_flag(field: str, value: object, path: str) -> bool:
    text = str(value).strip().lower()
    if not text or text in FALSE_VALUES:
        return False
    if text in TRUE_VALUES:
        return True
    raise InvalidFieldValue(field, path, str(value))


def dedupe(items: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


def render_markdown(body: str, config: SiteConfig, root: str = POST_ROOT) -> tuple[str, str]:
    extensions = ["fenced_code", "tables", "toc"]
    extension_configs: dict[str, dict] = {"toc": {"toc_depth": config.toc_depth}}
    if config.highlight_code:
        extensions.append("codehilite")
        extension_configs["codehilite"] = {"guess_lang": False, "css_class": "codehilite"}
    md = markdown.Markdown(extensions=extensions, extension_configs=extension_configs)
    html_content = md.convert(normalize_list_spacing(body))
    toc_html = md.toc
    md.reset()
    return fix_relative_img_src(html_content, root), toc_html


def make_summary(description: str, html_content: str) -> str:
    if description:
        return description
    summary = strip_tags(html_content).strip().replace("\n", " ")
    return summary[:SUMMARY_LENGTH] + ("..." if len(summary) > SUMMARY_LENGTH else "")


def build_post(document: SourceDocument, config: SiteConfig) -> PostRecord:
    meta = parse_front_matter(document)
    path = document.path

    title = str(meta.get("title") or "").strip()
    if not title:
        raise MissingRequiredField("title", path)
    date_value = str(meta.get("date") or "").strip()
    if not date_value:
        raise MissingRequiredField("date", path)
    publish_date = parse_publish_date(date_value, path)
    pinned = parse_flag("pinned", meta.get("pinned", ""), path)

    body_html, toc_html = render_markdown(document.raw_body, config)
    description = str(meta.get("description") or "").strip()
    return PostRecord(
        slug=derive_slug(path),
        title=title,
        publish_date=publish_date,
        category=str(meta.get("category") or "").strip(),
        tags=dedupe(meta.get("tags") or []),
        description=description,
        author=str(meta.get("author") or "").strip(),
        pinned=pinned,
        body_html=body_html,
        source=path,
        summary=make_summary(description, body_html),
        words=count_words(strip_tags(body_html)),
        toc_html=toc_html,
    )


def check_unique_slugs(posts: Sequence[PostRecord]) -> None:
    seen: dict[str, str] = {}
    for post in posts:
        if post.slug in seen:
            raise DuplicateSlug(post.slug, (seen[post.slug], post.source))
        seen[post.slug] = post.source


def build_posts(
    documents: Sequence[SourceDocument], config: SiteConfig, workers: int = 1
) -> list[PostRecord]:
    def parse_post(document: SourceDocument) -> PostRecord:
        return build_post(document, config)

    parse_workers = min(workers, len(documents)) if documents else 1
    if parse_workers > 1:
        with ThreadPoolExecutor(max_workers=parse_workers) as executor:
            posts = list(executor.map(parse_post, documents))
    else:
        posts = [parse_post(document) for document in documents]
    check_unique_slugs(posts)
    return posts
