"""File name helpers for the converters."""

from __future__ import annotations

import os


def chop_extension(name: str, width: int) -> str:
    """Cut off an extension whose dot lies width-1 characters from the end."""
    index = len(name) + 1 - width
    if 0 < width < len(name) + 1 and index < len(name) and name[index] == ".":
        return name[:index]
    return name


def output_path(directory: str, basename: str, extension: str) -> str:
    """Join a directory, a base name and an extension with a '/' separator."""
    return f"{directory}/{basename}{extension}"


def is_dir(path) -> bool:
    """Tell whether path names an existing directory."""
    return os.path.isdir(path)


def has_extension(filename: str, ext: str) -> bool:
    """Tell whether filename ends in ext; the first character of ext matches anything."""
    return not ext or (len(filename) >= len(ext) and filename.endswith(ext[1:]))


def insert_before_last_dot(filename: str, text: str) -> str:
    """Insert '.text' before the last dot of filename (or append it when there is none)."""
    if not filename or not text:
        return filename
    head, dot, tail = filename.rpartition(".")
    if not dot:
        return f"{filename}.{text}"
    return f"{head}.{text}.{tail}"