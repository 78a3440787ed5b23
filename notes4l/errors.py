"""Error type, message texts and console/diagnostic reporting for N4L."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

WARN_NOTE_TO_SELF = "WARNING: Found a note to self in the text"
WARN_INADVISABLE_CONTEXT_EXPRESSION = (
    "WARNING: Inadvisably complex/parenthetic context expression - simplify?"
)
WARN_DIFFERENT_CAPITALS = "WARNING: Another capitalization exists"
WARN_CHAPTER_CLASS_MIXUP = (
    "WARNING: possible space between class cancellation -:: <class> :: "
    "ambiguous chapter name, in: "
)

ERR_NO_SUCH_FILE_FOUND = "No file found in the name "
ERR_MISSING_EVENT = "Missing item? Dangling section, relation, or context"
ERR_MISSING_SECTION = "Declarations outside a section or chapter"
ERR_NO_SUCH_ALIAS = "No such alias or \" reference exists to fill in - aborting"
ERR_NO_SUCH_ARROW = "No such arrow has been declared in the configuration: "
ERR_MISSING_ITEM_SOMEWHERE = "Missing item somewhere"
ERR_MISSING_ITEM_RELN = "Missing item or double relation"
ERR_MISMATCH_QUOTE = "Apparent missing or mismatch in ', \" or ( )"
ERR_ILLEGAL_CONFIGURATION = "Error in configuration, no such section"
ERR_BAD_LABEL_OR_REF = "Badly formed label or reference (@label becomes $label.n) in "
ERR_ILLEGAL_QUOTED_STRING_OR_REF = (
    "WARNING: Something wrong, bad quoted string or mistaken back reference. "
    "Close any space after a quote..."
)
ERR_ANNOTATION_BAD = (
    "Annotation marker should be short mark of non-space, non-alphanumeric character "
)
ERR_BAD_ABBRV = "abbreviation out of place"
ERR_BAD_ALIAS_REFERENCE = "Alias references start from $name.1"
ERR_ANNOTATION_MISSING = "Missing non-alphnumeric annotation marker or stray relation"
ERR_ANNOTATION_REDEFINE = "Redefinition of annotation character"
ERR_SIMILAR_NO_SIGN = "Arrows for similarity do not have signs, they are directionless"
ERR_ARROW_SELFLOOP = "Arrow's origin points to itself"
ERR_NEGATIVE_WEIGHT = (
    "Arrow relation has a negative weight, which is disallowed. "
    "Use a NOT relation if you want to signify inhibition: "
)
ERR_TOO_MANY_WEIGHTS = "More than one weight value in the arrow relation "
ERR_STRAY_PAREN = "Stray ) in an event/item - illegal character"
ERR_MISSING_LINE_LABEL_IN_REFERENCE = (
    "Missing a line label in reference, should be in the form $label.n"
)
ERR_NON_WORD_WHITE = "Non word (whitespace) character after an annotation: "
ERR_SHORT_WORD = "Short word, probably a mistake: "
ERR_ARR_REDEFINITION = "Redefinition of arrow "
ERR_ILLEGAL_ANNOT_CHAR = "Cannot use +/- reserved tokens for annotation"
ERR_BAD_CONTEXT_EXPRESSION = "Unbalanced parentheses in context expression"

_RED = "\033[31;1;1m"
_END_RED = "\033[0m"
_GREEN = "\x1b[36m"
_END_GREEN = "\x1b[0m"
_RULE = "-" * 36


class N4LError(Exception):
    """A fatal problem in N4L input or configuration."""

    def __init__(self, message: str, file: str = "", line: int | None = None):
        self.message = message
        self.file = file
        self.line = line
        text = message
        if line is not None:
            text = f"{text} at line {line}"
        if file:
            text = f"{file}: {text}"
        super().__init__(text)


def _join(args) -> str:
    return " ".join(str(a) for a in args)


@dataclass
class Reporter:
    """Writes warnings, verbose traces and diagnostic logs for one parse run."""

    verbose_mode: bool = False
    diagnostic: bool = False
    current_file: str = ""
    line_num: int = 1
    diag_dir: str = "test_output"
    stream: TextIO | None = None
    warnings: list[str] = field(default_factory=list)

    def _out(self) -> TextIO:
        return self.stream if self.stream is not None else sys.stdout

    def _diag_path(self) -> Path:
        return Path(self.diag_dir) / f"{self.current_file}_test_log"

    def _append(self, text: str) -> None:
        path = self._diag_path()
        try:
            with open(path, "a", encoding="utf-8") as handle:
                handle.write(text.replace("\r", ""))
        except OSError as exc:
            print("Couldn't open for write/append to", path, exc, file=self._out())

    def warn(self, message: str) -> None:
        """Report a non-fatal problem at the current line."""
        self.warnings.append(message)
        out = self._out()
        out.write(f"\n{self.line_num}:{_RED}")
        out.write(
            _join(["N4L", self.current_file, message, "at line", self.line_num, _END_RED])
            + "\n"
        )
        self.diag("N4L", self.current_file, message, "at line", self.line_num)

    def verbose(self, *args) -> None:
        line = _join(args) + "\n"
        if self.diagnostic:
            self._append(line)
        if self.verbose_mode:
            self._out().write(line)

    def pverbose(self, *args) -> None:
        if self.verbose_mode:
            self._out().write(f"{self.line_num}:\t{_GREEN}{_join(args)}\n{_END_GREEN}")

    def box(self, *args) -> None:
        if self.verbose_mode:
            self._out().write(f"\n{_RULE}\n{_join(args)}\n{_RULE}\n\n")

    def diag(self, *args) -> None:
        if self.diagnostic:
            self._append(f"{self.line_num}:{_join(args)}\n")