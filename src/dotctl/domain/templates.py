"""Placeholder scanning and substitution for config templates.

Token syntax is ``{{NAME}}``: an identifier between double braces with no
inner whitespace, matched case-sensitively. Everything that is not a token
is copied through untouched, so rendering the same template with the same
values always yields the same bytes.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

TOKEN_PATTERN = re.compile(r"\{\{([A-Za-z_][A-Za-z0-9_]*)\}\}")

MASK = "****"


class MissingVariablesError(KeyError):
    """Raised by :func:`render` when values are missing for some tokens."""

    def __init__(self, names: Sequence[str]) -> None:
        self.names = sorted(set(names))
        super().__init__(", ".join(self.names))


def find_tokens(text: str) -> list[str]:
    """Return the sorted, de-duplicated variable names used in *text*.

    Examples:
        >>> find_tokens("user={{USER}} token={{GITHUB_TOKEN}} again={{USER}}")
        ['GITHUB_TOKEN', 'USER']
        >>> find_tokens("${HOME} {{ spaced }} {{lower_ok}}")
        ['lower_ok']
    """
    return sorted({m.group(1) for m in TOKEN_PATTERN.finditer(text)})


def render(text: str, values: Mapping[str, str], *, keep_missing: bool = False) -> str:
    """Substitute every token in a single pass.

    Values are inserted literally; a value that itself looks like a token
    is not expanded again.

    Raises:
        MissingVariablesError: if a token has no value and *keep_missing*
            is False. With *keep_missing* the token is left in place.
    """
    missing: list[str] = []

    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in values:
            return values[name]
        missing.append(name)
        return match.group(0)

    rendered = TOKEN_PATTERN.sub(_sub, text)
    if missing and not keep_missing:
        raise MissingVariablesError(missing)
    return rendered


def mask_values(text: str, values: Mapping[str, str]) -> str:
    """Replace every occurrence of a non-empty value with :data:`MASK`.

    Longer values are masked first so a value containing another is not
    partially revealed.
    """
    for value in sorted({v for v in values.values() if v}, key=len, reverse=True):
        text = text.replace(value, MASK)
    return text


def strip_template_suffix(name: str, suffixes: Sequence[str]) -> str | None:
    """Return *name* without its template suffix, or None if it has none.

    Examples:
        >>> strip_template_suffix(".gitconfig.template", [".template", ".tmpl"])
        '.gitconfig'
        >>> strip_template_suffix("config.toml", [".template"]) is None
        True
    """
    for suffix in suffixes:
        if name.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)]
    return None
