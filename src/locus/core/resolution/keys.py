"""Resolution key derivation.

Keys are pure functions of ``(dir_hint, name, ext)`` so the same triple always
maps to the same cache slot, in every tier and across processes.
"""
from __future__ import annotations

import os

_SEPARATORS = str.maketrans({"/": os.sep, "\\": os.sep})


def normalize_separators(value: str) -> str:
    return value.translate(_SEPARATORS)


def make_key(dir_hint: str, name: str, ext: str) -> str:
    """Build the lookup key for ``name`` under ``dir_hint``.

    Separators in either part are normalized to ``os.sep`` and leading
    separators are stripped, so the key is always relative.

    Examples:
        >>> make_key("", "Foo", ".py")
        'Foo.py'
    """
    prefix = normalize_separators(dir_hint).strip(os.sep)
    stem = normalize_separators(name).lstrip(os.sep)
    return (prefix + os.sep + stem if prefix else stem) + ext


def module_relpath(fullname: str) -> str:
    """Translate a dotted module name into a relative path without extension."""
    return fullname.replace(".", os.sep)


__all__ = [
    "make_key",
    "module_relpath",
    "normalize_separators",
]
