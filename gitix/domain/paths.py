"""
Repository path rules for gitix.

Paths are slash-separated, relative to the repository root. Mutating
operations refuse anything that could escape the tree or address the
root itself.
"""

from typing import List, Tuple

from ..exit_codes import ValidationError


def has_unsafe_path_segments(path: str) -> bool:
    """True for parent traversal, hidden/relative prefixes or absolute paths."""
    return '..' in path or path.startswith('.') or path.startswith('/')


def has_invalid_name_chars(name: str) -> bool:
    """True if a single file/folder name contains a path separator."""
    return '/' in name or '\\' in name


def split_path(path: str) -> List[str]:
    """Split a path into its non-empty segments."""
    return [segment for segment in path.split('/') if segment]


def join_path(*parts: str) -> str:
    """Join path parts, skipping empty ones."""
    return '/'.join(p.strip('/') for p in parts if p and p.strip('/'))


def split_parent(path: str) -> Tuple[List[str], str]:
    """
    Split a path into (parent segments, leaf name).

    Raises:
        ValidationError: if the path has no segments
    """
    segments = split_path(path)
    if not segments:
        raise ValidationError("Invalid path provided.")
    return segments[:-1], segments[-1]


def is_same_or_descendant(path: str, ancestor: str) -> bool:
    """True if `path` is `ancestor` or lives somewhere below it."""
    path = join_path(path)
    ancestor = join_path(ancestor)
    return path == ancestor or path.startswith(f"{ancestor}/")


def validate_item_path(path: str, what: str = "path") -> str:
    """
    Validate a path that names an existing item to mutate.

    The path must be non-empty, must not be the root, and must not
    contain traversal segments.

    Returns:
        The path with surrounding slashes removed
    """
    if not isinstance(path, str) or not path.strip() or path.strip() == '/':
        raise ValidationError(f"Invalid or potentially unsafe {what}.")
    if has_unsafe_path_segments(path):
        raise ValidationError(f"Invalid or potentially unsafe {what}.")
    segments = split_path(path)
    if any(segment in ('.', '..') for segment in segments):
        raise ValidationError(f"Invalid or potentially unsafe {what}.")
    return '/'.join(segments)


def validate_directory_path(path: str, what: str = "directory") -> str:
    """
    Validate a directory an item is created in. The root ("" or "/") is allowed.
    """
    if path is None:
        return ''
    if not isinstance(path, str):
        raise ValidationError(f"Invalid {what}.")
    if path.strip() in ('', '/'):
        return ''
    return validate_item_path(path, what)


def validate_name(name: str, what: str = "name") -> str:
    """Validate a single path segment (new file, folder or rename target)."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"Invalid {what}.")
    if has_invalid_name_chars(name):
        raise ValidationError(f"Invalid {what}: cannot contain slashes.")
    if name in ('.', '..'):
        raise ValidationError(f"Invalid {what}.")
    return name
