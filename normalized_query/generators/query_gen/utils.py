"""Utility functions for normalized query generation."""
import posixpath
import re
from typing import List


def split_words(name: str) -> List[str]:
    """Split PascalCase, camelCase, kebab-case or dotted names into words."""
    s1 = re.sub('(.)([A-Z][a-z]+)', r'\1 \2', name)
    s2 = re.sub('([a-z0-9])([A-Z])', r'\1 \2', s1)
    return [word for word in re.split(r'[^A-Za-z0-9]+', s2) if word]


def to_camel_case(name: str) -> str:
    """Convert any casing to camelCase."""
    words = split_words(name)
    if not words:
        return ""
    return words[0].lower() + "".join(word.capitalize() for word in words[1:])


def to_constant_case(name: str) -> str:
    """Convert any casing to CONSTANT_CASE."""
    return "_".join(word.upper() for word in split_words(name))


def quote(value: str) -> str:
    """Render a single-quoted TypeScript string literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n")
    return f"'{escaped}'"


def indent(text: str, level: int = 1) -> str:
    """Indent every non-empty line by two spaces per level."""
    prefix = "  " * level
    return "\n".join(prefix + line if line else line for line in text.split("\n"))


def is_identifier(name: str) -> bool:
    return re.fullmatch(r'[A-Za-z_$][A-Za-z0-9_$]*', name) is not None


def property_key(name: str) -> str:
    """Render an object-literal key, quoting it when it is not an identifier."""
    return name if is_identifier(name) else quote(name)


def import_path_between(from_path: str, to_path: str) -> str:
    """Relative module specifier from one generated file to another."""
    from_dir = posixpath.dirname(posixpath.normpath(from_path))
    target = posixpath.normpath(to_path)
    target = re.sub(r'\.(tsx?|jsx?)$', '', target)
    relative = posixpath.relpath(target, from_dir or ".")
    if not relative.startswith("."):
        relative = "./" + relative
    return relative
