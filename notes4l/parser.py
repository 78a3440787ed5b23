"""Parser for N4L note files: turns items, relations and contexts into a graph."""

from __future__ import annotations

import re

from notes4l.context import ContextState
from notes4l.errors import (
    ERR_ARROW_SELFLOOP,
    ERR_BAD_ALIAS_REFERENCE,
    ERR_BAD_LABEL_OR_REF,
    ERR_ILLEGAL_QUOTED_STRING_OR_REF,
    ERR_MISSING_EVENT,
    ERR_MISSING_ITEM_RELN,
    ERR_MISSING_ITEM_SOMEWHERE,
    ERR_MISSING_LINE_LABEL_IN_REFERENCE,
    ERR_MISSING_SECTION,
    ERR_NEGATIVE_WEIGHT,
    ERR_NO_SUCH_ALIAS,
    ERR_NON_WORD_WHITE,
    ERR_SHORT_WORD,
    ERR_TOO_MANY_WEIGHTS,
    WARN_CHAPTER_CLASS_MIXUP,
    WARN_NOTE_TO_SELF,
    N4LError,
    Reporter,
)
from notes4l.graph import SEQUENCE_MARKER, SEQUENCE_RELN, Graph, Link, Node, NodePtr, classify_string
from notes4l.textscan import (
    ALPHATEXT,
    all_caps,
    extract_context_expression,
    extract_word,
    is_back_reference,
    is_whitespace,
    read_to_last,
)

ROLE_EVENT = 1
ROLE_RELATION = 2
ROLE_SECTION = 3
ROLE_CONTEXT = 4
ROLE_CONTEXT_ADD = 5
ROLE_CONTEXT_SUBTRACT = 6
ROLE_BLANK_LINE = 7
ROLE_LINE_ALIAS = 8
ROLE_LOOKUP = 9
HAVE_MINUS = 22

_SETTLED_STATES = frozenset(
    {
        ROLE_EVENT,
        ROLE_LOOKUP,
        ROLE_BLANK_LINE,
        ROLE_SECTION,
        ROLE_CONTEXT,
        ROLE_CONTEXT_ADD,
        ROLE_CONTEXT_SUBTRACT,
        HAVE_MINUS,
    }
)

_THIS = "THIS"
_PREV = "PREV"
_UNKNOWN_SYMBOL = "UNKNOWN SYMBOL"
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _parse_weight(text: str) -> float | None:
    """A strictly written number, or None when the text is not one."""
    if not text or text != text.strip() or "_" in text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _first_word(text: str) -> str:
    words = text.split()
    return words[0] if words else ""


class N4LParser:
    """Reads N4L text into a graph, tracking lines, aliases and contexts."""

    def __init__(
        self,
        graph: Graph,
        annotations: dict[str, str] | None = None,
        reporter: Reporter | None = None,
    ) -> None:
        self.graph = graph
        self.annotations = dict(annotations or {})
        self.reporter = reporter if reporter is not None else Reporter()
        self.sequence_mode = False
        self.new_file(self.reporter.current_file)

    # Setup and reporting

    def new_file(self, filename: str) -> None:
        """Reset per-file state before reading filename."""
        self.reporter.current_file = filename
        self.reporter.line_num = 1
        self.reporter.box("Parsing new file", filename)
        self.state = ROLE_BLANK_LINE
        self.item_cache: dict[str, list[str]] = {}
        self.reln_cache: dict[str, list[Link]] = {}
        self.item_refs: list[NodePtr] = []
        self.item_counter = 1
        self.reln_counter = 0
        self.line_alias = ""
        self.last_in_sequence = ""
        self.section = ""
        self.context = ContextState(reporter=self.reporter)

    def _fail(self, message: str) -> N4LError:
        return N4LError(message, file=self.reporter.current_file, line=self.reporter.line_num)

    # Scanning

    def parse(self, src: str) -> None:
        """Read a whole N4L text."""
        pos = 0
        while pos < len(src):
            pos = self._skip_whitespace(src, pos)
            start = pos
            token, pos = self.get_token(src, pos)
            if pos == start and pos < len(src):
                pos += 1
            self.classify_token(token)
        if self._dangling():
            self.reporter.warn(ERR_MISSING_EVENT)

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

    def get_token(self, src: str, pos: int) -> tuple[str, int]:
        """Read the next token at pos; return it and the position after it."""
        if pos >= len(src):
            return "", pos
        ch = src[pos]
        following = src[pos + 1:pos + 2]

        if ch in "+-":
            return read_to_last(src, pos, ":" if following == ":" else ALPHATEXT)
        if ch == ":":
            return read_to_last(src, pos, ":")
        if ch == "(":
            return read_to_last(src, pos, ")")
        if ch in "\"'":
            if is_back_reference(src, pos):
                return '"', pos + 1
            if pos + 2 < len(src) and is_whitespace(src[pos + 1], src[pos + 2]):
                raise self._fail(ERR_ILLEGAL_QUOTED_STRING_OR_REF)
            token, pos = read_to_last(src, pos, ch)
            return token.split(ch)[1], pos
        if ch == "#" or (ch == "/" and following == "/"):
            return "", pos
        if ch == "@":
            return read_to_last(src, pos, " ")
        return read_to_last(src, pos, ALPHATEXT)

    # Line bookkeeping

    def _dangling(self) -> bool:
        return self.state not in _SETTLED_STATES

    def _end_line(self) -> None:
        if self._dangling():
            self.reporter.warn(ERR_MISSING_EVENT)
        self.reporter.line_num += 1
        if self.state != ROLE_BLANK_LINE:
            if self.item_cache.get(_THIS):
                self.item_cache[_PREV] = self.item_cache[_THIS]
            if self.reln_cache.get(_THIS):
                self.reln_cache[_PREV] = self.reln_cache[_THIS]
        self.item_cache[_THIS] = []
        self.reln_cache[_THIS] = []
        self.item_refs = []
        self.item_counter = 1
        self.reln_counter = 0
        self.line_alias = ""
        self.state = ROLE_BLANK_LINE

    # Token roles

    def classify_token(self, token: str) -> None:
        """Apply one token according to its leading character."""
        if not token:
            return
        lead = token[0]

        if lead == ":":
            self._context_token(token, "+", ROLE_CONTEXT)
        elif lead == "+":
            self._context_token(token, "+", ROLE_CONTEXT_ADD)
        elif lead == "-":
            if token[1:2] == ":":
                self._context_token(token, "-", ROLE_CONTEXT_SUBTRACT)
            else:
                self.state = ROLE_SECTION
                self._assess(token[1:].strip(), self.state)
        elif lead == "(":
            if self.state == ROLE_RELATION:
                raise self._fail(ERR_MISSING_ITEM_RELN)
            link = self.link_by_name(token)
            self.state = ROLE_RELATION
            self.reln_cache.setdefault(_THIS, []).append(link)
            self.reln_counter += 1
        elif lead == '"':
            result = self.lookup_alias(_PREV, self.item_counter)
            self.item_cache.setdefault(_THIS, []).append(result)
            self._store_alias(result)
            self._assess(result, self.state)
            self.state = ROLE_EVENT
            self.item_counter += 1
        elif lead == "@":
            self.state = ROLE_LINE_ALIAS
            token = token.strip()
            self.line_alias = token[1:]
            self._check_line_alias(token)
        elif lead == "$":
            self._check_line_alias(token)
            actual = self.resolve_alias(token)
            self.item_cache.setdefault(_THIS, []).append(actual)
            self.reporter.pverbose("fyi, line reference", token, "resolved to", actual)
            self._assess(actual, self.state)
            self.state = ROLE_LOOKUP
            self.item_counter += 1
        else:
            self.item_cache.setdefault(_THIS, []).append(token)
            self._store_alias(token)
            self._assess(token, self.state)
            self.state = ROLE_EVENT
            self.item_counter += 1

    def _context_token(self, token: str, mode: str, role: int) -> None:
        expression = extract_context_expression(token)
        self._check_sequence_mode(expression, mode)
        self.state = role
        self._assess(expression, role)

    def _assess(self, token: str, prior_state: int) -> None:
        if not token:
            return

        if prior_state == ROLE_RELATION:
            index = self.item_counter - 2
            if index < 0:
                raise self._fail(ERR_MISSING_ITEM_SOMEWHERE)
            try:
                last_item = self.item_cache[_THIS][index]
                last_reln = self.reln_cache[_THIS][self.reln_counter - 1]
                last_ptr = self.item_refs[index]
            except (KeyError, IndexError):
                raise self._fail(ERR_MISSING_ITEM_SOMEWHERE) from None
            this_ptr = self._handle_node(token)
            self._add_link(last_item, last_ptr, last_reln, token, this_ptr)
            self._check_section()
        elif prior_state == ROLE_CONTEXT:
            self.reporter.box("Reset context: ->", token)
            self.context.evaluate(token, "=")
            self._check_section()
        elif prior_state == ROLE_CONTEXT_ADD:
            self.reporter.pverbose("Add to context:", token)
            self.context.evaluate(token, "+")
            self._check_section()
        elif prior_state == ROLE_CONTEXT_SUBTRACT:
            self.reporter.pverbose("Remove from context:", token)
            self.context.evaluate(token, "-")
            self._check_section()
        elif prior_state == ROLE_SECTION:
            self.reporter.box("Set chapter/section: ->", token)
            self._check_chapter(token)
            self.section = token
        else:
            self._check_section()
            if all_caps(token):
                self.reporter.warn(f"{WARN_NOTE_TO_SELF} ({token})")
                return
            self._handle_node(token)
            self._link_up_story_sequence(token)

    def _check_line_alias(self, token: str) -> None:
        if token[0] == "@" and len(_first_word(token).encode("utf-8")) == 1:
            raise self._fail(ERR_BAD_LABEL_OR_REF + token)

    def _check_chapter(self, name: str) -> None:
        if name.startswith(":"):
            raise self._fail(WARN_CHAPTER_CLASS_MIXUP + name)
        self.sequence_mode = False

    def _check_section(self) -> None:
        if not self.section:
            raise self._fail(ERR_MISSING_SECTION)

    def _store_alias(self, name: str) -> None:
        if self.line_alias:
            self.reporter.pverbose(
                "-- Storing alias", self.item_cache.get(self.line_alias, []), name,
                "as", self.line_alias,
            )
            self.item_cache.setdefault(self.line_alias, []).append(name)

    def _check_sequence_mode(self, context: str, mode: str) -> None:
        if SEQUENCE_MARKER not in context:
            return
        if mode == "+":
            self.reporter.pverbose("\nStart sequence mode for items")
            self.sequence_mode = True
            self.last_in_sequence = ""
        elif mode == "-":
            self.reporter.pverbose("End sequence mode for items\n")
            self.sequence_mode = False

    # Arrows and aliases

    def link_by_name(self, token: str) -> Link:
        """Build a link from '(name, weight, context...)' or a bare arrow name."""
        name = token[1:-1] if token.startswith("(") else token
        name = name.strip()
        weight = 1.0
        weight_count = 0
        ctx: list[str] = []

        if "," in name:
            name, *notes = name.split(",")
            for note in notes:
                value = _parse_weight(note)
                if value is None:
                    ctx.append(note)
                    continue
                if weight < 0:
                    raise self._fail(ERR_NEGATIVE_WEIGHT + token)
                if weight_count > 1:
                    raise self._fail(ERR_TOO_MANY_WEIGHTS + token)
                weight = value
                weight_count += 1

        try:
            ptr = self.graph.arrow_ptr(name)
        except N4LError as exc:
            raise self._fail(exc.message) from None
        return Link(arr=ptr, wgt=weight, ctx=self.context.merged(ctx))

    def lookup_alias(self, alias: str, counter: int) -> str:
        """The counter-th item (from 1) stored under alias."""
        values = self.item_cache.get(alias)
        if values is None or counter > len(values) or counter < 1:
            raise self._fail(ERR_NO_SUCH_ALIAS)
        return values[counter - 1]

    def resolve_alias(self, token: str) -> str:
        """Resolve a '$label.n' reference to the item it names."""
        contig = _first_word(token)
        if len(contig.encode("utf-8")) == 1 or contig == "$$":
            return token
        parts = token[1:].split(".")
        if len(parts) < 2:
            raise self._fail(ERR_MISSING_LINE_LABEL_IN_REFERENCE)
        name = parts[0].strip()
        match = _LEADING_INT.match(parts[1])
        number = int(match.group(1)) if match else 0
        if number < 1:
            raise self._fail(ERR_BAD_ALIAS_REFERENCE)
        return self.lookup_alias(name, number)

    # Annotations

    def embedded_symbol(self, text: str, offset: int) -> tuple[int, str]:
        """Length and marker of an annotation marker at offset, or (0, 'UNKNOWN SYMBOL')."""
        for marker in sorted(self.annotations, key=len, reverse=True):
            match = True
            for i, mch in enumerate(marker):
                at = offset + i
                if at >= len(text):
                    break
                if mch != text[at]:
                    match = False
                    continue
                following = text[at + 1] if at + 1 < len(text) else ""
                if not following or following.isspace():
                    match = False
            if match:
                return len(marker), marker
        return 0, _UNKNOWN_SYMBOL

    def strip_annotations(self, text: str) -> str:
        """Text with annotation markers outside quotes removed."""
        protected = False
        kept: list[str] = []
        r = 0
        while r < len(text):
            if text[r] == '"':
                protected = not protected
            if not protected:
                skip, symbol = self.embedded_symbol(text, r)
                if skip > 0:
                    r += skip - 1
                    if text[r].isspace():
                        self.reporter.warn(ERR_NON_WORD_WHITE + symbol)
                    r += 1
                    continue
            kept.append(text[r])
            r += 1
        return "".join(kept)

    def _add_back_annotations(self, clean: str, clean_ptr: NodePtr, annotated: str) -> None:
        protected = False
        reminder = f"{clean[:30]}..."
        self.reporter.pverbose(f'\n        Checking annotations from "{reminder}"')
        r = 0
        while r < len(annotated):
            if annotated[r] == '"':
                protected = not protected
            elif not protected:
                skip, symbol = self.embedded_symbol(annotated, r)
                if skip > 0:
                    link = self.link_by_name(self.annotations[symbol])
                    word, suspicious = extract_word(annotated, r + skip - 1)
                    if suspicious:
                        self.reporter.warn(ERR_SHORT_WORD + word)
                    word_ptr, _ = self._add_node(word)
                    self._add_link(reminder, clean_ptr, link, word, word_ptr)
                    r += skip
                    continue
            r += 1

    # Graph construction

    def _add_node(self, text: str) -> tuple[NodePtr, str]:
        clean = self.strip_annotations(text)
        node = Node(
            text=clean,
            length=len(text.encode("utf-8")),
            chapter=self.section,
            size_class=classify_string(text),
        )
        return self.graph.add_node(node), clean

    def _handle_node(self, annotated: str) -> NodePtr:
        ptr, clean = self._add_node(annotated)
        self.reporter.pverbose("Event/item/node:", clean, "in chapter", self.section)
        self.item_refs.append(ptr)
        if len(clean) != len(annotated):
            self._add_back_annotations(clean, ptr, annotated)
        return ptr

    def _inverse_link(self, link: Link) -> Link:
        inverse = self.graph.inverse.get(link.arr, 0)
        return self.link_by_name(self.graph.arrows[inverse].short)

    def _add_link(self, frm: str, frm_ptr: NodePtr, link: Link, to: str, to_ptr: NodePtr) -> None:
        if frm == to:
            raise self._fail(ERR_ARROW_SELFLOOP)
        long_name = self.graph.arrows[link.arr].long
        if link.wgt != 1:
            self.reporter.pverbose(
                "... Relation:", frm, "--(", long_name, ",", link.wgt, ")->", to, link.ctx
            )
        else:
            self.reporter.pverbose("... Relation:", frm, "--", long_name, "->", to, link.ctx)
        self.graph.append_link(frm_ptr, link, to_ptr)
        self.graph.append_link(to_ptr, self._inverse_link(link), frm_ptr)

    def _link_up_story_sequence(self, this: str) -> None:
        if not self.sequence_mode or this == self.last_in_sequence:
            return
        if self.item_counter == 1 and self.last_in_sequence:
            self.reporter.pverbose(
                "* ... Sequence addition: ", self.last_in_sequence,
                "-(", SEQUENCE_RELN, ")->", this, "\n",
            )
            last_ptr, _ = self._add_node(self.last_in_sequence)
            this_ptr, _ = self._add_node(this)
            link = self.link_by_name(f"({SEQUENCE_RELN})")
            self.graph.append_link(last_ptr, link, this_ptr)
            self.graph.append_link(this_ptr, self._inverse_link(link), last_ptr)
        self.last_in_sequence = this