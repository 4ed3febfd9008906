from __future__ import annotations


class BuildError(Exception):
    """Base class for every error that aborts a site build."""


class ConfigError(BuildError):
    pass


class MalformedDocument(BuildError):
    def __init__(self, path: str, reason: str = "missing frontmatter block") -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: malformed document ({reason})")


class MissingRequiredField(BuildError):
    def __init__(self, field: str, path: str) -> None:
        self.field = field
        self.path = path
        super().__init__(f"{path}: missing required field '{field}'")


class InvalidFieldValue(BuildError):
    def __init__(self, field: str, path: str, value: str) -> None:
        self.field = field
        self.path = path
        self.value = value
        super().__init__(f"{path}: invalid value for '{field}': {value!r}")


class InvalidDateFormat(InvalidFieldValue):
    def __init__(self, path: str, value: str) -> None:
        super().__init__("date", path, value)


class DuplicateSlug(BuildError):
    def __init__(self, slug: str, paths: tuple[str, ...] = ()) -> None:
        self.slug = slug
        self.paths = tuple(paths)
        where = f" ({', '.join(self.paths)})" if self.paths else ""
        super().__init__(f"duplicate slug '{slug}'{where}")


class TemplateFieldMissing(BuildError):
    def __init__(self, field: str, template: str) -> None:
        self.field = field
        self.template = template
        super().__init__(f"template '{template}' references missing field '{field}'")
