"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from folio.config import SiteConfig


def render_post_source(title: str | None, date: str | None, body: str, fields: dict[str, str]) -> str:
    lines = ["---"]
    if title is not None:
        lines.append(f"title: {title}")
    if date is not None:
        lines.append(f"date: {date}")
    for key, value in fields.items():
        lines.append(f"{key}: {value}")
    lines.append("---")
    lines.append(body)
    return "\n".join(lines) + "\n"


@pytest.fixture
def make_post():
    """Build the text of a post source with frontmatter."""

    def factory(
        title: str | None = "A post", date: str | None = "2024-12-05", body: str = "Body text.", **fields: str
    ) -> str:
        return render_post_source(title, date, body, fields)

    return factory


@pytest.fixture
def site_config() -> SiteConfig:
    return SiteConfig(site_name="Test Site", site_url="https://example.test", build_workers=1)
