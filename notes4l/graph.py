"""In-memory semantic graph: arrows, size-classed nodes and their links."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator

from notes4l.errors import (
    ERR_ARR_REDEFINITION,
    ERR_ILLEGAL_CONFIGURATION,
    ERR_NO_SUCH_ARROW,
    WARN_DIFFERENT_CAPITALS,
    N4LError,
    Reporter,
)

NEAR = 0
LEADSTO = 1
CONTAINS = 2
EXPRESS = 3

ST_ZERO = EXPRESS
ST_TOP = ST_ZERO + EXPRESS + 1

N1GRAM = 1
N2GRAM = 2
N3GRAM = 3
LT128 = 4
LT1024 = 5
GT1024 = 6

SIZE_CLASSES = (N1GRAM, N2GRAM, N3GRAM, LT128, LT1024, GT1024)
_NGRAM_CLASSES = (N1GRAM, N2GRAM, N3GRAM)

SEQUENCE_RELN = "then"
SEQUENCE_MARKER = "_sequence_"

_ST_NAMES = {NEAR: "Near", LEADSTO: "LeadsTo", CONTAINS: "Contains", EXPRESS: "Express"}

_SECTION_TYPES = {
    "leadsto": LEADSTO,
    "contains": CONTAINS,
    "properties": EXPRESS,
    "similarity": NEAR,
}

_STA_DESCRIPTIONS = {
    -EXPRESS: "-(expressed by)",
    -CONTAINS: "-(part of)",
    -LEADSTO: "-(arriving from)",
    NEAR: "(close to)",
    LEADSTO: "+(leading to)",
    CONTAINS: "+(containing)",
    EXPRESS: "+(expressing)",
}

_GREEN = "\x1b[36m"
_END_GREEN = "\x1b[0m"


@dataclass(frozen=True)
class NodePtr:
    """Address of a node: its size class and its index within that class."""

    size_class: int
    index: int


NO_NODE_PTR = NodePtr(0, -1)


@dataclass
class Link:
    """A typed, weighted arrow with context, pointing at a destination node."""

    arr: int
    wgt: float = 1.0
    ctx: list[str] = field(default_factory=list)
    dst: NodePtr = NO_NODE_PTR


@dataclass
class Arrow:
    """A declared arrow: its signed type index and its long and short names."""

    sta_index: int
    long: str
    short: str
    ptr: int


def classify_string(s: str) -> int:
    """Size class of a text: n-grams by word count, longer text by byte length."""
    spaces = min(s.count(" "), 3)
    if spaces == 0:
        return N1GRAM
    if spaces == 1:
        return N2GRAM
    if spaces == 2:
        return N3GRAM
    length = len(s.encode("utf-8"))
    if length < 128:
        return LT128
    if length < 1024:
        return LT1024
    return GT1024


@dataclass
class Node:
    """A text item together with its incidence lists, one per arrow type."""

    text: str
    length: int | None = None
    chapter: str = ""
    size_class: int | None = None
    nptr: NodePtr = NO_NODE_PTR
    incidence: list[list[Link]] = field(
        default_factory=lambda: [[] for _ in range(ST_TOP)]
    )

    def __post_init__(self) -> None:
        if self.length is None:
            self.length = len(self.text.encode("utf-8"))
        if self.size_class is None:
            self.size_class = classify_string(self.text)


def flat_st_index(index: int) -> int:
    """Unsigned arrow type for a signed type index."""
    return abs(index - ST_ZERO)


def st_type_name(sttype: int) -> str:
    """Name of an unsigned arrow type."""
    try:
        return _ST_NAMES[sttype]
    except KeyError:
        raise ValueError(f"no such arrow type {sttype}") from None


def describe_sta_index(index: int) -> str:
    """Human description of a signed arrow type index, highlighted for terminals."""
    text = _STA_DESCRIPTIONS.get(index - ST_ZERO, "unknown relation!")
    return _GREEN + text + _END_GREEN


def merge_contexts(one: Iterable[str] | None, two: Iterable[str] | None) -> list[str]:
    """Sorted union of two context lists."""
    return sorted(set(one or ()).union(two or ()))


def merge_links(links: list[Link], link: Link) -> list[Link]:
    """Add link to links idempotently, merging contexts of an existing match."""
    ctx = [c for c in link.ctx if c != SEQUENCE_MARKER]
    link.ctx = ctx
    for existing in links:
        if existing.arr == link.arr and existing.dst == link.dst:
            existing.ctx = merge_contexts(existing.ctx, ctx)
            return links
    links.append(link)
    return links


@dataclass
class Graph:
    """Arrow directory and size-classed node directory built while parsing."""

    reporter: Reporter | None = None
    arrows: list[Arrow] = field(default_factory=list)
    short_names: dict[str, int] = field(default_factory=dict)
    long_names: dict[str, int] = field(default_factory=dict)
    inverse: dict[int, int] = field(default_factory=dict)
    _lanes: dict[int, list[Node]] = field(
        default_factory=lambda: {c: [] for c in SIZE_CLASSES}, repr=False
    )
    _grams: dict[int, dict[str, int]] = field(
        default_factory=lambda: {c: {} for c in _NGRAM_CLASSES}, repr=False
    )

    def __len__(self) -> int:
        return sum(len(lane) for lane in self._lanes.values())

    # Arrows

    def insert_arrow(self, section: str, alias: str, name: str, direction: str) -> int:
        """Register an arrow under its short and long names; return its pointer."""
        if self.reporter is not None:
            self.reporter.pverbose(
                "In", section, "short name", alias, "for", name, ", direction", direction
            )
        if section not in _SECTION_TYPES:
            raise N4LError(f"{ERR_ILLEGAL_CONFIGURATION} {section}")
        sign = {"+": 1, "-": -1}.get(direction, 0)
        ptr = len(self.arrows)
        self.arrows.append(
            Arrow(
                sta_index=ST_ZERO + _SECTION_TYPES[section] * sign,
                long=name,
                short=alias,
                ptr=ptr,
            )
        )
        self.short_names[alias] = ptr
        self.long_names[name] = ptr
        return ptr

    def insert_inverse(self, fwd: int, bwd: int) -> None:
        """Record two arrows as each other's inverse."""
        self.inverse[fwd] = bwd
        self.inverse[bwd] = fwd

    def check_arrow(self, alias: str, name: str) -> None:
        """Raise if either name is already in use by an arrow."""
        if alias in self.short_names:
            prev = self.arrows[self.short_names[alias]]
            raise N4LError(
                f'{ERR_ARR_REDEFINITION}"{alias}" previous short name: {prev.short}'
            )
        if name in self.long_names:
            prev = self.arrows[self.long_names[name]]
            raise N4LError(
                f'{ERR_ARR_REDEFINITION}"{name}" previous long name: {prev.long}'
            )

    def arrow_ptr(self, name: str) -> int:
        """Look an arrow up by short name, then by long name."""
        if name in self.short_names:
            return self.short_names[name]
        if name in self.long_names:
            return self.long_names[name]
        raise N4LError(ERR_NO_SUCH_ARROW + name)

    def add_mandatory(self) -> None:
        """Declare the arrows every graph needs."""
        pairs = (
            ("leadsto", ("empty", "debug"), ("void", "unbug")),
            ("leadsto", (SEQUENCE_RELN, SEQUENCE_RELN), ("prev", "follows on from")),
            ("properties", ("url", "has URL"), ("isurl", "is a URL for")),
            ("properties", ("img", "has image"), ("isimg", "is an image for")),
        )
        for section, (fshort, flong), (bshort, blong) in pairs:
            fwd = self.insert_arrow(section, fshort, flong, "+")
            bwd = self.insert_arrow(section, bshort, blong, "-")
            self.insert_inverse(fwd, bwd)

    # Nodes

    def _lane(self, size_class: int) -> list[Node]:
        try:
            return self._lanes[size_class]
        except KeyError:
            raise ValueError(f"no such size class {size_class}") from None

    def find_existing(self, node: Node) -> int | None:
        """Index of a node with the same text, warning about other capitalisations."""
        lane = self._lane(node.size_class)
        if node.size_class in self._grams:
            grams = self._grams[node.size_class]
            found = grams.get(node.text)
            if found is not None:
                return found
            lowered = node.text.lower()
            alternative = any(key.lower() == lowered for key in grams)
        else:
            for index, other in enumerate(lane):
                if other.length == node.length and other.text == node.text:
                    return index
            lowered = node.text.lower()
            alternative = any(
                other.length == node.length and other.text.lower() == lowered
                for other in lane
            )
        if alternative and self.reporter is not None:
            self.reporter.warn(f"{WARN_DIFFERENT_CAPITALS} ({node.text})")
        return None

    def add_node(self, node: Node) -> NodePtr:
        """Store node unless its text is already present; return its pointer."""
        existing = self.find_existing(node)
        if existing is not None:
            return NodePtr(node.size_class, existing)
        lane = self._lane(node.size_class)
        ptr = NodePtr(node.size_class, len(lane))
        node.nptr = ptr
        lane.append(node)
        if node.size_class in self._grams:
            self._grams[node.size_class][node.text] = ptr.index
        return ptr

    def node(self, ptr: NodePtr) -> Node:
        """The node at ptr."""
        lane = self._lane(ptr.size_class)
        if ptr.index < 0:
            raise IndexError(f"invalid node pointer {ptr}")
        return lane[ptr.index]

    def node_text(self, ptr: NodePtr) -> str:
        return self.node(ptr).text

    def append_link(self, frm: NodePtr, link: Link, to: NodePtr) -> None:
        """Attach link from frm to to, idempotently."""
        stored = replace(link, dst=to, ctx=list(link.ctx))
        sta = self.arrows[link.arr].sta_index
        merge_links(self.node(frm).incidence[sta], stored)

    def nodes(self) -> Iterator[Node]:
        """All nodes, by size class and then in order of insertion."""
        for size_class in SIZE_CLASSES:
            yield from self._lanes[size_class]