"""Context expressions and the running set of context labels."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from notes4l.errors import (
    ERR_BAD_CONTEXT_EXPRESSION,
    WARN_INADVISABLE_CONTEXT_EXPRESSION,
    N4LError,
    Reporter,
)

_OR_RUN = re.compile(r"[|,]+")
_AND_RUN = re.compile(r"&+")
_DOT_RUN = re.compile(r"\.+")


def trim_paren(s: str) -> str:
    """Remove one pair of parentheses that encloses the whole expression."""
    if not s:
        return s
    s = s.strip()
    if not s.startswith("("):
        return s

    level = 0
    trim = True
    last = len(s) - 1
    for c, ch in enumerate(s):
        if ch == "(":
            level += 1
            continue
        if level == 0 and c < last:
            trim = False
        if ch == ")":
            level -= 1
            if level == 0 and c == last:
                return s[1:-1] if trim else s
    return s


def clean_expression(s: str) -> str:
    """Normalise separators: ',' and '|' mean or, '&' and '.' mean and."""
    s = trim_paren(s)
    s = _OR_RUN.sub("|", s)
    s = _AND_RUN.sub(".", s)
    return _DOT_RUN.sub(".", s)


def paren(s: str, offset: int) -> tuple[str, int]:
    """Return the balanced parenthetic group starting at offset and the index after it."""
    level = 0
    for c in range(offset, len(s)):
        ch = s[c]
        if ch == "(":
            level += 1
            continue
        if ch == ")":
            level -= 1
            if level == 0:
                return s[offset:c + 1], c + 1
    return "bad expression", -1


def split_with_parens_intact(expr: str, split_ch: str) -> list[str]:
    """Split on split_ch, keeping parenthesised groups whole."""
    parts: list[str] = []
    token = ""
    c = 0
    while c < len(expr):
        ch = expr[c]
        if ch == split_ch:
            parts.append(token)
            token = ""
        elif ch == "(":
            group, after = paren(expr, c)
            if after < 0:
                raise N4LError(ERR_BAD_CONTEXT_EXPRESSION + ": " + expr)
            token += group
            c = after
            continue
        else:
            token += ch
        c += 1
    if token:
        parts.append(token)
    return parts


@dataclass
class ContextState:
    """The set of context labels currently in force."""

    items: set[str] = field(default_factory=set)
    reporter: Reporter | None = None

    def __contains__(self, label: object) -> bool:
        return label in self.items

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.items))

    def __len__(self) -> int:
        return len(self.items)

    def evaluate(self, expression: str, op: str) -> None:
        """Apply a context expression: '=' replaces, '+' adds, '-' removes."""
        if op not in ("=", "+", "-"):
            raise ValueError(f"unknown context operation {op!r}")
        parts = split_with_parens_intact(clean_expression(expression), "|")
        if "(" in expression and self.reporter is not None:
            self.reporter.warn(WARN_INADVISABLE_CONTEXT_EXPRESSION)
        if op == "=":
            self.items.clear()
            self.modify(parts, "+")
        else:
            self.modify(parts, op)

    def modify(self, fragments: Iterable[str], op: str) -> None:
        """Add fragments, or remove every label with a part containing one."""
        if op not in ("+", "-"):
            raise ValueError(f"unknown context operation {op!r}")
        for frag in (f.strip() for f in fragments):
            if not frag:
                continue
            if op == "+":
                self.items.add(frag)
            else:
                doomed = {
                    cand
                    for cand in self.items
                    if any(frag in part for part in split_with_parens_intact(cand, "."))
                }
                self.items.difference_update(doomed)

    def merged(self, extra: Iterable[str] | None) -> list[str]:
        """Sorted union of the current labels with extra ones."""
        return sorted(self.items.union(extra or ()))