from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Sequence

from .assembler import DirectoryOutput, DirectorySource, SiteBuilder
from .config import FEED_LIMIT, SiteConfig, load_config
from .errors import BuildError
from .utils import parse_bool, parse_int


def config_from_args(args: argparse.Namespace) -> SiteConfig:
    return SiteConfig.from_mapping(vars(args))


def build_site(config: SiteConfig, project_root: Path | None = None) -> int:
    project_root = project_root or Path.cwd()
    source = DirectorySource(Path(config.posts), Path(config.static))
    sink = DirectoryOutput(Path(config.output), project_root, clean=config.clean)
    result = SiteBuilder(config, source, sink).build()
    return len(result.pages)


def build_parser(argv: Sequence[str] | None = None) -> argparse.ArgumentParser:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument(
        "--config",
        default="site.toml",
        help="Path to site config file (TOML/YAML/JSON).",
    )
    pre_args, _ = pre_parser.parse_known_args(argv)
    config = load_config(Path(pre_args.config))

    def cfg_value(key: str, default: object) -> object:
        value = config.get(key)
        return default if value is None else value

    def cfg_str(key: str, default: str) -> str:
        value = cfg_value(key, default)
        return default if value is None else str(value)

    def cfg_bool(key: str, default: bool) -> bool:
        value = cfg_value(key, default)
        return parse_bool(value) if value is not None else default

    def cfg_int(key: str, default: int) -> int:
        value = cfg_value(key, default)
        return parse_int(value, default)

    defaults = SiteConfig()
    parser = argparse.ArgumentParser(prog="folio", description="Static portfolio and blog generator.")
    parser.add_argument("--config", default=pre_args.config, help="Path to site config file (TOML/YAML/JSON).")
    parser.add_argument("--posts", default=cfg_str("posts", defaults.posts), help="Directory containing Markdown posts.")
    parser.add_argument("--static", default=cfg_str("static", defaults.static), help="Directory containing static assets.")
    parser.add_argument(
        "--templates",
        default=cfg_str("templates", defaults.templates),
        help="Directory containing post.html and listing.html overrides.",
    )
    parser.add_argument("--output", default=cfg_str("output", defaults.output), help="Output directory for the site.")
    parser.add_argument("--site-name", default=cfg_str("site_name", defaults.site_name), help="Site title.")
    parser.add_argument(
        "--site-description",
        default=cfg_str("site_description", defaults.site_description),
        help="Site description.",
    )
    parser.add_argument(
        "--site-url",
        default=cfg_str("site_url", ""),
        help="Public site URL used for feeds and sitemap.",
    )
    parser.add_argument("--author", default=cfg_str("author", ""), help="Default author shown on posts.")
    parser.add_argument(
        "--about-text",
        default=cfg_str("about_text", ""),
        help="Text content for the sidebar About panel.",
    )
    parser.add_argument(
        "--custom-domain",
        default=cfg_str("custom_domain", ""),
        help="Custom domain to write into CNAME.",
    )
    parser.add_argument(
        "--clean",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("clean", True),
        help="Replace the output directory instead of writing over it.",
    )
    parser.add_argument(
        "--feed-limit",
        default=cfg_int("feed_limit", FEED_LIMIT),
        type=int,
        help="Maximum number of posts in RSS/Atom feeds.",
    )
    parser.add_argument(
        "--build-workers",
        default=cfg_int("build_workers", 0),
        type=int,
        help="Number of worker threads for parsing/rendering (0 = auto).",
    )
    parser.add_argument(
        "--toc-depth",
        default=cfg_str("toc_depth", defaults.toc_depth),
        help="Heading depth range for TOC (e.g. 2-4).",
    )
    parser.add_argument(
        "--highlight-code",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("highlight_code", False),
        help="Highlight fenced code blocks with Pygments.",
    )
    parser.add_argument(
        "--enable-rss",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_rss", True),
        help="Generate rss.xml.",
    )
    parser.add_argument(
        "--enable-atom",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_atom", True),
        help="Generate atom.xml.",
    )
    parser.add_argument(
        "--enable-sitemap",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_sitemap", True),
        help="Generate sitemap.xml.",
    )
    parser.add_argument(
        "--enable-404",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("enable_404", True),
        help="Generate 404.html.",
    )
    parser.add_argument(
        "--write-nojekyll",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("write_nojekyll", True),
        help="Write .nojekyll in the output directory.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    try:
        parser = build_parser(argv)
    except BuildError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    args = parser.parse_args(argv)
    config = config_from_args(args)
    start = time.perf_counter()
    try:
        page_count = build_site(config)
    except BuildError as exc:
        print(f"Build failed: {exc}", file=sys.stderr)
        return 1
    elapsed = time.perf_counter() - start
    print(f"Build completed in {elapsed:.2f}s.")
    print(f"Site generated in: {config.output} ({page_count} pages)")
    return 0
