"""Brace expansion for permission patterns.

``expand_braces`` turns ``acme::sales::{create,delete}`` into
``["acme::sales::create", "acme::sales::delete"]`` before the strings are
parsed into latches. Groups nest and multiply out left to right::

    >>> expand_braces("a{b,c}d{e,f}")
    ['abde', 'abdf', 'acde', 'acdf']
    >>> expand_braces("x{1,2{a,b}}")
    ['x1', 'x2a', 'x2b']

A brace pair without a top-level comma (``{x}``) and unbalanced braces are
kept literally. A string without any group expands to itself.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable

Expander = Callable[[str], Iterable[str]]


def _find_group(pattern: str) -> tuple[int, int, list[str]] | None:
    """Locate the first expandable group.

    Returns ``(start, end, alternatives)`` where ``pattern[start]`` is the
    opening brace and ``pattern[end]`` its matching close.
    """
    start = pattern.find("{")
    while start != -1:
        depth = 0
        alternatives: list[str] = []
        segment_start = start + 1
        for index in range(start, len(pattern)):
            char = pattern[index]
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    if alternatives:
                        alternatives.append(pattern[segment_start:index])
                        return start, index, alternatives
                    break
            elif char == "," and depth == 1:
                alternatives.append(pattern[segment_start:index])
                segment_start = index + 1
        start = pattern.find("{", start + 1)
    return None


def expand_braces(pattern: str) -> list[str]:
    """Expand every brace group in ``pattern``.

    Parameters
    ----------
    pattern:
        String that may contain ``{a,b,...}`` groups.

    Returns
    -------
    list[str]
        Expanded strings in left-to-right product order.
    """
    group = _find_group(pattern)
    if group is None:
        return [pattern]

    start, end, alternatives = group
    prefix, suffix = pattern[:start], pattern[end + 1 :]
    results: list[str] = []
    for alternative in alternatives:
        results.extend(expand_braces(prefix + alternative + suffix))
    return results
