from __future__ import annotations

import datetime as dt
import os


def parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return False


def parse_int(value: object, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def resolve_workers(value: int) -> int:
    workers = value if value > 0 else (os.cpu_count() or 1)
    return max(1, min(workers, 32))


def join_url(base: str, path: str) -> str:
    base = base.rstrip("/")
    path = path.lstrip("/")
    if not path:
        return base
    return f"{base}/{path}"


def date_to_datetime(value: dt.date) -> dt.datetime:
    return dt.datetime(value.year, value.month, value.day, tzinfo=dt.timezone.utc)


def rfc822_date(value: dt.date) -> str:
    return date_to_datetime(value).strftime("%a, %d %b %Y %H:%M:%S %z")


def iso_date(value: dt.date) -> str:
    return date_to_datetime(value).strftime("%Y-%m-%dT%H:%M:%SZ")
