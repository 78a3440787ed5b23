"""Reader for the N4L arrow and annotation configuration."""

from __future__ import annotations

from dataclasses import dataclass, field

from notes4l.errors import (
    ERR_ANNOTATION_BAD,
    ERR_ANNOTATION_MISSING,
    ERR_ANNOTATION_REDEFINE,
    ERR_BAD_ABBRV,
    ERR_ILLEGAL_ANNOT_CHAR,
    ERR_ILLEGAL_CONFIGURATION,
    ERR_MISSING_EVENT,
    ERR_SIMILAR_NO_SIGN,
    N4LError,
    Reporter,
)
from notes4l.graph import Graph
from notes4l.textscan import ALPHATEXT, is_whitespace, read_to_last, strip_paren

ROLE_SECTION = 3
ROLE_BLANK_LINE = 7
HAVE_PLUS = 11
HAVE_MINUS = 22

_ARROW_SECTIONS = frozenset({"leadsto", "contains", "properties"})
_SETTLED_STATES = frozenset({ROLE_BLANK_LINE, ROLE_SECTION, HAVE_MINUS})


def get_config_token(src: str, pos: int) -> tuple[str, int]:
    """Read the next configuration token at pos; return it and the next position."""
    if pos >= len(src):
        return "", pos
    ch = src[pos]
    following = src[pos + 1] if pos + 1 < len(src) else ""
    if ch == "#" or (ch == "/" and following == "/"):
        return "", pos
    if ch == "(":
        return read_to_last(src, pos, ")")
    return read_to_last(src, pos, ALPHATEXT)


@dataclass
class ConfigReader:
    """Declares arrows and annotation markers in a graph from configuration text."""

    graph: Graph
    reporter: Reporter = field(default_factory=Reporter)
    annotations: dict[str, str] = field(default_factory=dict)
    section: str = ""
    state: int = ROLE_BLANK_LINE
    fwd_arrow: str = ""
    bwd_arrow: str = ""
    fwd_index: int = 0
    bwd_index: int = 0
    last_marker: str = ""

    def _fail(self, message: str) -> N4LError:
        return N4LError(message, file=self.reporter.current_file, line=self.reporter.line_num)

    def _end_line(self) -> None:
        if self.state not in _SETTLED_STATES:
            self.reporter.warn(ERR_MISSING_EVENT)
        self.reporter.line_num += 1
        self.state = ROLE_BLANK_LINE

    def _skip_whitespace(self, src: str, pos: int) -> int:
        while pos < len(src) and is_whitespace(src[pos], src[pos]):
            ch = src[pos]
            if ch == "\n":
                self._end_line()
            elif ch == "#" or (ch == "/" and src[pos + 1:pos + 2] == "/"):
                newline = src.find("\n", pos)
                pos = len(src) if newline < 0 else newline
                self._end_line()
            pos += 1
        return min(pos, len(src))

    def parse(self, src: str) -> None:
        """Read a whole configuration text."""
        pos = 0
        while pos < len(src):
            pos = self._skip_whitespace(src, pos)
            start = pos
            token, pos = get_config_token(src, pos)
            if pos == start and pos < len(src):
                # Nothing could be read here: step over the stray character.
                pos += 1
            self.classify(token)

    def classify(self, token: str) -> None:
        """Apply one configuration token to the reader's state."""
        if not token:
            return

        if token[0] == "-" and self.state == ROLE_BLANK_LINE:
            self.section = token[1:].strip()
            self.reporter.box("Configuration of", self.section)
            self.state = ROLE_SECTION
            return

        if self.section in _ARROW_SECTIONS:
            self._classify_arrow(token)
        elif self.section == "similarity":
            self._classify_similarity(token)
        elif self.section == "annotations":
            self._classify_annotation(token)
        else:
            raise self._fail(f"{ERR_ILLEGAL_CONFIGURATION} {self.section}")

    def _classify_arrow(self, token: str) -> None:
        lead = token[0]
        if lead == "+":
            self.fwd_arrow = token[1:].strip()
            self.state = HAVE_PLUS
            self.reporter.diag("fwd arrow in", self.section, token)
        elif lead == "-":
            self.bwd_arrow = token[1:].strip()
            self.state = HAVE_MINUS
            self.reporter.diag("bwd arrow in", self.section, token)
        elif lead == "(":
            alias = token[1:-1].strip()
            if self.state == HAVE_MINUS:
                self.graph.check_arrow(alias, self.bwd_arrow)
                self.bwd_index = self.graph.insert_arrow(
                    self.section, alias, self.bwd_arrow, "-"
                )
                self.graph.insert_inverse(self.fwd_index, self.bwd_index)
            elif self.state == HAVE_PLUS:
                self.graph.check_arrow(alias, self.fwd_arrow)
                self.fwd_index = self.graph.insert_arrow(
                    self.section, alias, self.fwd_arrow, "+"
                )
            else:
                raise self._fail(ERR_BAD_ABBRV)

    def _classify_similarity(self, token: str) -> None:
        lead = token[0]
        if lead == "(":
            alias = token[1:-1].strip()
            if self.state == HAVE_MINUS:
                index = self.graph.insert_arrow(self.section, alias, self.bwd_arrow, "both")
                self.graph.insert_inverse(index, index)
            else:
                self.reporter.pverbose(self.section, "abbreviation out of place")
        elif lead in "+-":
            raise self._fail(ERR_SIMILAR_NO_SIGN)
        else:
            similarity = token.strip()
            self.fwd_arrow = similarity
            self.bwd_arrow = similarity
            self.state = HAVE_MINUS

    def _classify_annotation(self, token: str) -> None:
        if token[0] == "(":
            if self.state != HAVE_PLUS:
                self.reporter.warn(ERR_ANNOTATION_MISSING)
            self.fwd_arrow = strip_paren(token)
            self.reporter.pverbose(
                "Annotation marker", self.last_marker, "defined as arrow:", self.fwd_arrow
            )
            previous = self.annotations.get(self.last_marker)
            if previous is not None and previous != self.fwd_arrow:
                raise self._fail(ERR_ANNOTATION_REDEFINE)
            self.annotations[self.last_marker] = self.fwd_arrow
            self.state = ROLE_BLANK_LINE
            return

        for ch in token:
            if ch.isalpha():
                self.reporter.warn(ERR_ANNOTATION_BAD)
        if token[0] in "+-":
            raise self._fail(ERR_ILLEGAL_ANNOT_CHAR)
        self.reporter.diag("Markup character defined in", self.section, token)
        self.state = HAVE_PLUS
        self.last_marker = token