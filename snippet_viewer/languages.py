"""
Snippet key parsing and language detection.

A snippet key has the form ``name@path/to/file.ext``; everything after the
first ``@`` is the display name, and the lowercase extension of the display
name selects the language tag.
"""

from __future__ import annotations

from typing import Dict

from .models import SnippetInfo

DEFAULT_LANGUAGE = "javascript"

LANGUAGE_MAP: Dict[str, str] = {
    "ts": "typescript",
    "tsx": "tsx",
    "js": "javascript",
    "jsx": "jsx",
    "json": "json",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "py": "python",
    "rb": "ruby",
    "go": "go",
    "rs": "rust",
    "java": "java",
    "sh": "bash",
    "bash": "bash",
    "yml": "yaml",
    "yaml": "yaml",
    "md": "markdown",
    "sql": "sql",
    "c": "c",
    "h": "c",
    "cpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "hpp": "cpp",
    "ino": "arduino",
}


def display_name(key: str) -> str:
    """Return the filename segment of a snippet key."""
    _, sep, rest = key.partition("@")
    return rest if sep else key


def file_extension(name: str) -> str:
    """Return the lowercase extension of ``name``, or an empty string."""
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].lower()


def language_for_extension(extension: str) -> str:
    return LANGUAGE_MAP.get(extension.lower(), DEFAULT_LANGUAGE)


def resolve_snippet_key(key: str) -> SnippetInfo:
    """
    Derive the display name and language tag of a snippet key.

    Args:
        key: Snippet key such as ``counter@src/counter.ts``

    Returns:
        SnippetInfo with display name, language tag and extension
    """
    name = display_name(key)
    extension = file_extension(name)
    return SnippetInfo(
        display_name=name,
        language=language_for_extension(extension),
        extension=extension,
    )
