"""
Type name helpers.

Remote documents carry lower camel / dotted type tags ("blogPost",
"sanity.imageAsset"). Local collections use prefixed PascalCase names
("SanityBlogPost", "SanityImageAsset").
"""

from __future__ import annotations

import re

_WORD_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|[0-9]+")


def get_type_name(type_tag: str) -> str:
    """Start-case a type tag and drop the separators.

    Example:
        >>> get_type_name("sanity.imageAsset")
        'SanityImageAsset'
    """
    return "".join(word[0].upper() + word[1:] for word in _WORD_RE.findall(type_tag))


def make_type_name(prefix: str, type_tag: str) -> str:
    """Prefix a type name, collapsing a doubled prefix.

    Example:
        >>> make_type_name("Sanity", "sanity.imageAsset")
        'SanityImageAsset'
    """
    name = f"{prefix}{get_type_name(type_tag)}"
    if prefix and name.startswith(prefix * 2):
        name = name[len(prefix):]
    return name
