from __future__ import annotations

import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Protocol, Sequence

from .config import SiteConfig
from .content import load_documents
from .errors import BuildError, ConfigError, MalformedDocument
from .index import SiteIndex, build_index
from .model import PostRecord, build_posts
from .pages import Renderer
from .render import RenderedPage, TemplateSet, load_templates
from .utils import resolve_workers


class ContentSource(Protocol):
    def list_sources(self) -> Sequence[tuple[str, str]]: ...

    def list_assets(self) -> Sequence[tuple[str, bytes]]: ...


class OutputSink(Protocol):
    def write_output(self, path: str, data: bytes) -> None: ...

    def commit(self) -> None: ...

    def discard(self) -> None: ...


def safe_relative(path: str) -> PurePosixPath:
    rel = PurePosixPath(path)
    if rel.is_absolute() or ".." in rel.parts or not rel.parts:
        raise BuildError(f"Refusing to write outside the output directory: {path}")
    return rel


def list_files(root: Path) -> list[Path]:
    if not root.exists():
        return []
    return sorted((path for path in root.rglob("*") if path.is_file()), key=lambda p: p.as_posix())


class DirectorySource:
    def __init__(self, posts_dir: Path, static_dir: Path | None = None) -> None:
        self.posts_dir = posts_dir
        self.static_dir = static_dir

    def list_sources(self) -> list[tuple[str, str]]:
        if not self.posts_dir.is_dir():
            raise ConfigError(f"Posts directory not found: {self.posts_dir}")
        sources = []
        for md_file in sorted(self.posts_dir.rglob("*.md"), key=lambda p: p.as_posix()):
            rel = md_file.relative_to(self.posts_dir).as_posix()
            try:
                text = md_file.read_text(encoding="utf-8")
            except UnicodeDecodeError as exc:
                raise MalformedDocument(rel, "not valid UTF-8") from exc
            sources.append((rel, text))
        return sources

    def list_assets(self) -> list[tuple[str, bytes]]:
        if self.static_dir is None:
            return []
        return [
            (item.relative_to(self.static_dir).as_posix(), item.read_bytes())
            for item in list_files(self.static_dir)
        ]


class DirectoryOutput:
    """Stages every write in a sibling directory and swaps it in on commit."""

    def __init__(self, output_dir: Path, project_root: Path, clean: bool = True) -> None:
        self.output_dir = output_dir
        self.project_root = project_root
        self.clean = clean
        self.staging: Path | None = None
        if clean and output_dir.exists():
            output_resolved = output_dir.resolve()
            root_resolved = project_root.resolve()
            if output_resolved == root_resolved:
                raise ConfigError("Refusing to clean project root.")
            if not output_resolved.is_relative_to(root_resolved):
                raise ConfigError("Refusing to clean output directory outside project root.")

    def staging_dir(self) -> Path:
        if self.staging is None:
            parent = self.output_dir.resolve().parent
            parent.mkdir(parents=True, exist_ok=True)
            self.staging = Path(tempfile.mkdtemp(prefix=f".{self.output_dir.name}-", dir=parent))
        return self.staging

    def write_output(self, path: str, data: bytes) -> None:
        target = self.staging_dir() / safe_relative(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def commit(self) -> None:
        staging = self.staging_dir()
        if self.clean:
            if self.output_dir.exists():
                shutil.rmtree(self.output_dir)
            staging.rename(self.output_dir)
        else:
            shutil.copytree(staging, self.output_dir, dirs_exist_ok=True)
            shutil.rmtree(staging)
        self.staging = None

    def discard(self) -> None:
        if self.staging is not None:
            shutil.rmtree(self.staging, ignore_errors=True)
            self.staging = None


class MemorySource:
    def __init__(
        self, sources: Sequence[tuple[str, str]], assets: Sequence[tuple[str, bytes]] = ()
    ) -> None:
        self.sources = list(sources)
        self.assets = list(assets)

    def list_sources(self) -> list[tuple[str, str]]:
        return list(self.sources)

    def list_assets(self) -> list[tuple[str, bytes]]:
        return list(self.assets)


class MemoryOutput:
    def __init__(self) -> None:
        self.pending: dict[str, bytes] = {}
        self.files: dict[str, bytes] = {}
        self.commits = 0

    def write_output(self, path: str, data: bytes) -> None:
        self.pending[safe_relative(path).as_posix()] = data

    def commit(self) -> None:
        self.files = dict(self.pending)
        self.pending = {}
        self.commits += 1

    def discard(self) -> None:
        self.pending = {}


class BuildStage(Enum):
    IDLE = "idle"
    LOADING = "loading"
    MODELING = "modeling"
    INDEXING = "indexing"
    RENDERING = "rendering"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class BuildResult:
    posts: tuple[PostRecord, ...]
    index: SiteIndex
    pages: tuple[RenderedPage, ...]
    assets: int


class SiteBuilder:
    def __init__(
        self,
        config: SiteConfig,
        source: ContentSource,
        sink: OutputSink,
        templates: TemplateSet | None = None,
    ) -> None:
        self.config = config
        self.source = source
        self.sink = sink
        self.templates = templates
        self.workers = resolve_workers(config.build_workers)
        self.stage = BuildStage.IDLE
        self.history = [BuildStage.IDLE]

    def advance(self, stage: BuildStage) -> None:
        self.stage = stage
        self.history.append(stage)

    def build(self) -> BuildResult:
        if self.stage is not BuildStage.IDLE:
            raise RuntimeError(f"SiteBuilder already ran (stage: {self.stage.value})")
        try:
            self.advance(BuildStage.LOADING)
            documents = load_documents(self.source.list_sources())
            self.advance(BuildStage.MODELING)
            posts = build_posts(documents, self.config, self.workers)
            self.advance(BuildStage.INDEXING)
            index = build_index(posts)
            self.advance(BuildStage.RENDERING)
            pages = self.render_pages(index)
            assets = sorted(self.source.list_assets())
            self.advance(BuildStage.WRITING)
            self.write(pages, assets)
        except Exception:
            self.advance(BuildStage.FAILED)
            self.sink.discard()
            raise
        self.advance(BuildStage.DONE)
        return BuildResult(posts=index.posts, index=index, pages=tuple(pages), assets=len(assets))

    def render_pages(self, index: SiteIndex) -> list[RenderedPage]:
        templates = self.templates or load_templates(Path(self.config.templates))
        renderer = Renderer(self.config, templates, index)
        items = [*index.posts, *renderer.listing_views()]
        render_workers = min(self.workers, len(items))
        if render_workers > 1:
            with ThreadPoolExecutor(max_workers=render_workers) as executor:
                pages = list(executor.map(renderer.render, items))
        else:
            pages = [renderer.render(item) for item in items]
        pages.extend(renderer.render_extras())
        return sorted(pages, key=lambda page: page.output_path)

    def write(self, pages: Sequence[RenderedPage], assets: Sequence[tuple[str, bytes]]) -> None:
        # Generated pages win over static files at the same path.
        for path, data in assets:
            self.sink.write_output(path, data)
        for page in pages:
            self.sink.write_output(page.output_path, page.html)
        self.sink.commit()
