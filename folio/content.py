from __future__ import annotations

import html as html_lib
import re
from dataclasses import dataclass
from typing import Iterable

from .errors import MalformedDocument

FRONT_MATTER_DELIMITER = "---"
LIST_KEYS = {"tags"}
LIST_MARKER_RE = re.compile(r"^(?P<indent>[ \t]*)(?:[-+*]|\d+[.)])\s+")
FENCE_RE = re.compile(r"^(?P<indent>[ \t]*)(`{3,}|~{3,})")
DOUBLE_QUOTE_RE = re.compile(r"^(?P<indent>[ \t]*)>>(?!>)(?P<rest>.*)$")
CJK_RE = re.compile(r"[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af]")
WORD_RE = re.compile(r"[A-Za-z0-9]+(?:'[A-Za-z0-9]+)?")


@dataclass(frozen=True)
class SourceDocument:
    path: str
    raw_frontmatter: str
    raw_body: str


def slugify(text: str) -> str:
    text = text.lower()
    text = re.sub(r"[^\w]+", "-", text, flags=re.UNICODE)
    text = text.strip("-_").replace("_", "-")
    return text or "post"


def unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def parse_list(value: str) -> list[str]:
    value = value.strip()
    if value.startswith("[") and value.endswith("]"):
        inner = value[1:-1]
        items = [unquote(item.strip()).strip() for item in inner.split(",")]
    else:
        items = [item.strip() for item in value.split(",")]
    return [item for item in items if item]


def split_source(path: str, text: str) -> SourceDocument:
    clean_text = text.lstrip("\ufeff")
    lines = clean_text.splitlines()
    if not lines or lines[0].strip() != FRONT_MATTER_DELIMITER:
        raise MalformedDocument(path, "missing opening frontmatter delimiter")

    end = None
    for i in range(1, len(lines)):
        if lines[i].strip() == FRONT_MATTER_DELIMITER:
            end = i
            break
    if end is None:
        raise MalformedDocument(path, "unterminated frontmatter block")

    return SourceDocument(
        path=path,
        raw_frontmatter="\n".join(lines[1:end]),
        raw_body="\n".join(lines[end + 1 :]),
    )


def load_documents(sources: Iterable[tuple[str, str]]) -> list[SourceDocument]:
    return [split_source(path, text) for path, text in sources]


def parse_front_matter(document: SourceDocument) -> dict[str, object]:
    meta: dict[str, object] = {}
    for line in document.raw_frontmatter.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if ":" not in line:
            raise MalformedDocument(document.path, f"frontmatter line without key: {line!r}")
        key, value = line.split(":", 1)
        key = key.strip().lower()
        if not key:
            raise MalformedDocument(document.path, f"frontmatter line without key: {line!r}")
        if key in meta:
            raise MalformedDocument(document.path, f"repeated frontmatter key '{key}'")
        value = value.strip()
        if key in LIST_KEYS:
            meta[key] = parse_list(value)
        else:
            meta[key] = unquote(value)
    return meta


def normalize_list_spacing(text: str) -> str:
    lines = text.splitlines()
    out: list[str] = []
    in_fence = False
    fence_marker = ""
    for line in lines:
        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(2)
            if not in_fence:
                in_fence = True
                fence_marker = marker
            elif marker == fence_marker:
                in_fence = False
                fence_marker = ""
            out.append(line)
            continue
        if in_fence:
            out.append(line)
            continue
        quote_match = DOUBLE_QUOTE_RE.match(line)
        if quote_match:
            rest = quote_match.group("rest").lstrip()
            if rest:
                line = f'{quote_match.group("indent")}> {rest}'
            else:
                line = f'{quote_match.group("indent")}>'
        list_match = LIST_MARKER_RE.match(line)
        if list_match:
            if not list_match.group("indent"):
                if out and out[-1].strip() and not LIST_MARKER_RE.match(out[-1]):
                    out.append("")
        out.append(line)
    return "\n".join(out)


def count_words(text: str) -> int:
    text = html_lib.unescape(text)
    cjk_count = len(CJK_RE.findall(text))
    text = CJK_RE.sub(" ", text)
    word_count = len(WORD_RE.findall(text))
    return cjk_count + word_count
