"""Character-level scanning helpers for N4L source text."""

from __future__ import annotations

import unicodedata
from pathlib import Path

from notes4l.errors import (
    ERR_MISMATCH_QUOTE,
    ERR_NO_SUCH_FILE_FOUND,
    ERR_STRAY_PAREN,
    N4LError,
)

ALPHATEXT = "x"
NON_ASCII_LQUOTE = "\u201c"
NON_ASCII_RQUOTE = "\u201d"
WORD_MISTAKE_LEN = 3


def _line_at(src: str, pos: int) -> int:
    return src.count("\n", 0, pos) + 1


def _following(src: str, pos: int) -> str:
    return src[pos + 1] if pos + 1 < len(src) else ""


def is_whitespace(r: str, rn: str) -> bool:
    """True for space, a comment start '#', or the start of '//'."""
    return r.isspace() or r == "#" or (r == "/" and rn == "/")


def is_quote(r: str) -> bool:
    return r in ('"', "'", NON_ASCII_LQUOTE, NON_ASCII_RQUOTE)


def is_general_string(src: str, pos: int) -> bool:
    """Whether the character at pos may continue a plain text item."""
    ch = src[pos]
    if ch == ")":
        raise N4LError(ERR_STRAY_PAREN, line=_line_at(src, pos))
    if ch in ("(", "#", "\n"):
        return False
    if ch == "/" and _following(src, pos) == "/":
        return False
    return True


def last_special_char(src: str, pos: int, stop: str) -> bool:
    """True when the previous character closed a token delimited by stop."""
    ch = src[pos]
    if ch == "\n" and stop != '"':
        return True
    if ch == "@":
        return False
    return pos > 0 and src[pos - 1] == stop and ch != stop


def collect(src: str, pos: int, stop: str, cpy) -> bool:
    """Decide whether the character at pos belongs to the token in cpy."""
    if is_quote(stop):
        at_end = pos + 1 >= len(src) or is_whitespace(src[pos], src[pos + 1])
        return not (pos > 0 and src[pos - 1] == stop and at_end)

    if pos >= len(src) or src[pos] == "\n":
        return False

    if stop == ALPHATEXT:
        return is_general_string(src, pos)

    if stop != ":":
        return not last_special_char(src, pos, stop)

    # A cluster of colons counts as one delimiter however long it is.
    inner = cpy[:-1]
    groups = sum(
        (cur != ":" and prev == ":") + (cur != '"' and prev == '"')
        for prev, cur in zip(inner, inner[1:])
    )
    if groups > 1:
        return not last_special_char(src, pos, stop)
    return True


def read_to_last(src: str, pos: int, stop: str) -> tuple[str, int]:
    """Read a token starting at pos; return it stripped and the next position."""
    start = pos
    chars: list[str] = []
    while collect(src, pos, stop, chars) and pos < len(src):
        chars.append(src[pos])
        pos += 1

    if is_quote(stop) and not (pos > 0 and src[pos - 1] == stop):
        line = _line_at(src, start)
        raise N4LError(
            f"{ERR_MISMATCH_QUOTE} starting at line {line} (found token {''.join(chars)})",
            line=line,
        )
    return "".join(chars).strip(), pos


def is_back_reference(src: str, pos: int) -> bool:
    """A quote followed only by space up to '(', '#' or a newline refers back."""
    for ch in src[pos + 1:]:
        if ch in ("(", "\n", "#"):
            return True
        if not ch.isspace():
            return False
    return False


def all_caps(s: str) -> bool:
    """True for text long enough to matter that is written in capitals only."""
    if len(s.encode("utf-8")) <= WORD_MISTAKE_LEN:
        return False
    for ch in s:
        category = unicodedata.category(ch)
        if (category != "Lu" and category.startswith("L")) or category.startswith("N"):
            return False
    return True


def strip_paren(token: str) -> str:
    """Drop a leading marker and the parentheses around an arrow name."""
    token = token[1:].strip()
    if token.startswith("("):
        token = token[1:].strip()
    if token.endswith(")"):
        token = token[:-1]
    return token


def extract_context_expression(token: str) -> str:
    """Return the expression between the colons of a context marker."""
    for part in token.split(":")[1:]:
        if len(part.encode("utf-8")) > 1:
            return part.strip()
    return ""


def _clean_word(chars: list[str]) -> str:
    return "".join(chars).strip().strip('" ')


def extract_word(fulltext: str, offset: int) -> tuple[str, bool]:
    """Return the word after an annotation marker at offset.

    The flag is True when the word runs to the end of the text and is
    suspiciously short.
    """
    protected = False
    chars: list[str] = []
    for ch in fulltext[offset + 1:]:
        if ch == '"':
            protected = not protected
        if not protected and not ch.isalpha():
            return _clean_word(chars), False
        chars.append(ch)
    word = _clean_word(chars)
    return word, len(word.encode("utf-8")) <= WORD_MISTAKE_LEN


def read_source(path) -> str:
    """Read a UTF-8 file, turning typographic double quotes into plain ones."""
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise N4LError(ERR_NO_SUCH_FILE_FOUND + str(path)) from exc
    text = data.decode("utf-8", errors="replace")
    return text.replace(NON_ASCII_LQUOTE, '"').replace(NON_ASCII_RQUOTE, '"')