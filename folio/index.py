from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .model import PostRecord

CATEGORY = "category"
TAG = "tag"


def listing_key(post: PostRecord) -> tuple[int, int, str]:
    # Pinned first, newest first, then slug ascending.
    return (0 if post.pinned else 1, -post.publish_date.toordinal(), post.slug)


def order_posts(posts: Iterable[PostRecord]) -> tuple[PostRecord, ...]:
    return tuple(sorted(posts, key=listing_key))


def label_order(label: str) -> tuple[str, str]:
    return (label.lower(), label)


@dataclass(frozen=True)
class SiteIndex:
    posts: tuple[PostRecord, ...] = ()
    categories: Mapping[str, tuple[PostRecord, ...]] = field(default_factory=dict)
    tags: Mapping[str, tuple[PostRecord, ...]] = field(default_factory=dict)

    def buckets(self, kind: str) -> Mapping[str, tuple[PostRecord, ...]]:
        if kind == CATEGORY:
            return self.categories
        if kind == TAG:
            return self.tags
        raise ValueError(f"unknown index kind: {kind}")

    def label_counts(self, kind: str) -> list[tuple[str, int]]:
        return [(label, len(posts)) for label, posts in self.buckets(kind).items()]


def build_index(posts: Iterable[PostRecord]) -> SiteIndex:
    ordered = order_posts(posts)
    category_map: dict[str, list[PostRecord]] = {}
    tag_map: dict[str, list[PostRecord]] = {}
    for post in ordered:
        if post.category:
            category_map.setdefault(post.category, []).append(post)
        for tag in post.tags:
            tag_map.setdefault(tag, []).append(post)

    def freeze(buckets: dict[str, list[PostRecord]]) -> dict[str, tuple[PostRecord, ...]]:
        return {label: order_posts(buckets[label]) for label in sorted(buckets, key=label_order)}

    return SiteIndex(posts=ordered, categories=freeze(category_map), tags=freeze(tag_map))
