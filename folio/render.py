from __future__ import annotations

import re
from dataclasses import dataclass
from importlib import resources
from pathlib import Path

from .errors import TemplateFieldMissing

IMG_SRC_RE = re.compile(r'<img([^>]*?)src="([^"]+)"', re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]+>")
PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")
POST_TEMPLATE = "post.html"
LISTING_TEMPLATE = "listing.html"
BASE_FIELDS = frozenset({"title", "root", "site_name", "site_description", "year", "extra_head", "sidebar"})
POST_FIELDS = BASE_FIELDS | {
    "post_title",
    "date",
    "author",
    "description",
    "words",
    "category_links",
    "tag_links",
    "content",
}
LISTING_FIELDS = BASE_FIELDS | {"heading", "intro", "filter_kind", "filter_label", "post_count", "posts"}


@dataclass(frozen=True)
class RenderedPage:
    output_path: str
    html: bytes


@dataclass(frozen=True)
class TemplateSet:
    post: str
    listing: str


def fix_relative_img_src(html_text: str, root: str) -> str:
    def repl(match: re.Match) -> str:
        attrs = match.group(1)
        src = match.group(2)
        if src.startswith(("http://", "https://", "data:", "#", "/", "./", "../")):
            return match.group(0)
        src = src.lstrip("/")
        return f'<img{attrs}src="{root}/{src}"'

    return IMG_SRC_RE.sub(repl, html_text)


def strip_tags(html_text: str) -> str:
    return TAG_RE.sub("", html_text)


def template_fields(template: str) -> set[str]:
    return set(PLACEHOLDER_RE.findall(template))


def check_template(template: str, name: str, known: frozenset[str]) -> str:
    unknown = sorted(template_fields(template) - known)
    if unknown:
        raise TemplateFieldMissing(unknown[0], name)
    return template


def render_template(template: str, name: str, **context: str) -> str:
    # Single pass: substituted values are never scanned for placeholders again.
    def repl(match: re.Match) -> str:
        key = match.group(1)
        if key not in context:
            raise TemplateFieldMissing(key, name)
        return context[key]

    return PLACEHOLDER_RE.sub(repl, template)


def read_template(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def default_template(name: str) -> str:
    return resources.files("folio").joinpath("templates", name).read_text(encoding="utf-8")


def load_templates(templates_dir: Path | None = None) -> TemplateSet:
    def pick(name: str, known: frozenset[str]) -> str:
        if templates_dir is not None and (templates_dir / name).is_file():
            return check_template(read_template(templates_dir / name), name, known)
        return default_template(name)

    return TemplateSet(post=pick(POST_TEMPLATE, POST_FIELDS), listing=pick(LISTING_TEMPLATE, LISTING_FIELDS))
