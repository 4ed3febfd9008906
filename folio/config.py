from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigError
from .utils import parse_bool, parse_int

FEED_LIMIT = 20


@dataclass(frozen=True)
class SiteConfig:
    posts: str = "posts"
    static: str = "static"
    templates: str = "templates"
    output: str = "dist"
    site_name: str = "Folio"
    site_description: str = "Notes, projects and writing."
    site_url: str = ""
    author: str = ""
    about_text: str = ""
    custom_domain: str = ""
    clean: bool = True
    feed_limit: int = FEED_LIMIT
    build_workers: int = 0
    toc_depth: str = "2-4"
    highlight_code: bool = False
    enable_rss: bool = True
    enable_atom: bool = True
    enable_sitemap: bool = True
    enable_404: bool = True
    write_nojekyll: bool = True

    @property
    def public_url(self) -> str:
        site_url = self.site_url.strip()
        if not site_url and self.custom_domain.strip():
            site_url = f"https://{self.custom_domain.strip()}"
        return site_url.rstrip("/")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SiteConfig:
        values: dict[str, Any] = {}
        for field in fields(cls):
            if data.get(field.name) is None:
                continue
            raw = data[field.name]
            if field.type == "bool":
                values[field.name] = parse_bool(raw)
            elif field.type == "int":
                values[field.name] = parse_int(raw, field.default)
            else:
                values[field.name] = str(raw)
        return cls(**values)


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc
        return data
    if suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"YAML config must be a mapping: {path}")
        return data
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"JSON config must be a mapping: {path}")
    return data
