"""Graph summaries, adjacency matrices and eigenvector centrality."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from notes4l.errors import N4LError
from notes4l.graph import (
    NEAR,
    ST_ZERO,
    Graph,
    Node,
    NodePtr,
    describe_sta_index,
    flat_st_index,
    st_type_name,
)

_SCREEN_WIDTH = 12
_EVC_ITERATIONS = 6
_EVC_TOLERANCE = 0.1
_EVC_SHOW_ABOVE = 0.1


def _ptr_key(ptr: NodePtr) -> tuple[int, int]:
    return (ptr.size_class, ptr.index)


def _fdiv(x: float, d: float) -> float:
    if d:
        return x / d
    if x == 0 or math.isnan(x):
        return math.nan
    return math.inf if x > 0 else -math.inf


def _go_float(x: float) -> str:
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "+Inf" if x > 0 else "-Inf"
    if x.is_integer() and abs(x) < 1e21:
        return str(int(x))
    return repr(x)


def validate_link_args(graph: Graph, spec: str) -> list[int]:
    """Turn a comma-separated list of short arrow names into arrow pointers.

    An empty spec or "all" means no filter. Directed arrows bring their
    inverse along.
    """
    names = spec.split(",")
    if spec in ("", "all"):
        return []
    search: list[int] = []
    for name in names:
        ptr = graph.short_names.get(name)
        if ptr is None:
            raise N4LError(f"There is no link abbreviation called {name}")
        arrow = graph.arrows[ptr]
        typ = flat_st_index(arrow.sta_index)
        print(" - including search pathway STtype", st_type_name(typ), "->", arrow.long)
        search.append(arrow.ptr)
        if typ != NEAR:
            inverse = graph.inverse.get(arrow.ptr)
            if inverse is not None:
                print("   including inverse meaning", graph.arrows[inverse].long)
                search.append(inverse)
    return search


def search_incident_row_class(
    node: Node,
    search_arrows: Sequence[int],
    weights: dict[tuple[NodePtr, NodePtr], float],
) -> set[NodePtr]:
    """Add the weights of node's outgoing links to weights; return the nodes involved."""
    involved: set[NodePtr] = set()
    for links in node.incidence[ST_ZERO:]:
        for link in links:
            matches = 1 if not search_arrows else list(search_arrows).count(link.arr)
            if not matches:
                continue
            involved.add(link.dst)
            key = (node.nptr, link.dst)
            weights[key] = weights.get(key, 0.0) + link.wgt * matches
    if involved:
        involved.add(node.nptr)
    return involved


def assemble_involved_nodes(
    graph: Graph, search_list: Sequence[int]
) -> tuple[list[NodePtr], dict[tuple[NodePtr, NodePtr], float]]:
    """Nodes touched by the selected arrows, in pointer order, with link weights."""
    weights: dict[tuple[NodePtr, NodePtr], float] = {}
    involved: set[NodePtr] = set()
    for node in graph.nodes():
        involved |= search_incident_row_class(node, search_list, weights)
    return sorted(involved, key=_ptr_key), weights


def create_adjacency_matrix(
    graph: Graph, spec: str
) -> tuple[list[NodePtr], list[list[float]], list[list[float]]]:
    """Directed and symmetrised adjacency sub-matrices for the arrows in spec."""
    search_list = validate_link_args(graph, spec)
    keys, weights = assemble_involved_nodes(graph, search_list)
    dim = len(keys)
    if graph.reporter is not None:
        for f, ptr in enumerate(keys):
            graph.reporter.verbose(
                "    - row/col key [", f, "/", dim, "]", graph.node_text(ptr)
            )
    directed = [[weights.get((row, col), 0.0) for col in keys] for row in keys]
    symmetric = [
        [weights.get((row, col), 0.0) + weights.get((col, row), 0.0) for col in keys]
        for row in keys
    ]
    return keys, directed, symmetric


def matrix_op_vector(m: Sequence[Sequence[float]], v: Sequence[float]) -> list[float]:
    """Product of matrix m with vector v."""
    return [sum(x * y for x, y in zip(row, v) if x != 0) for row in m]


def compare_vec(v1: Sequence[float], v2: Sequence[float]) -> float:
    """Largest absolute difference between two vectors, or -1 for empty ones."""
    return max((abs(a - b) for a, b in zip(v1, v2)), default=-1.0)


def normalize_vec(v: Iterable[float], div: float) -> list[float]:
    """Divide every element by div."""
    return [_fdiv(x, div) for x in v]


def compute_evc(adj: Sequence[Sequence[float]]) -> list[float]:
    """Eigenvector centrality by a few rounds of power iteration, scaled to max 1."""
    v = [1.0] * len(adj)
    last = v
    for _ in range(_EVC_ITERATIONS):
        v = matrix_op_vector(adj, last)
        if compare_vec(v, last) < _EVC_TOLERANCE:
            break
        last = v
    return normalize_vec(v, max([-1.0, *v]))


def format_matrix(
    name: str, labels: Sequence[str], matrix: Sequence[Sequence[float]]
) -> str:
    """Render a matrix with row labels, truncating wide rows."""
    rows = []
    for label, values in zip(labels, matrix):
        row = "%20.15s ..\r\t\t\t(" % label
        for col, value in enumerate(values):
            if col > _SCREEN_WIDTH:
                row += "\t..."
                break
            row += "  %4.1f" % value
        rows.append(row + ")")
    return f"\n {name} ...\n\n" + "\n".join(rows)


def format_nz_vector(name: str, labels: Sequence[str], vector: Sequence[float]) -> str:
    """Render labelled values above 0.1, highest first."""
    ranked = sorted(zip(labels, vector), key=lambda kv: kv[1], reverse=True)
    rows = [
        "ordered by EVC:  (%4.1f)  " % value + "%-80.79s" % label
        for label, value in ranked
        if value > _EVC_SHOW_ABOVE
    ]
    return f"\n {name} ...\n\n" + "\n".join(rows)


def _format_link(graph: Graph, link) -> str:
    arrow = graph.arrows[link.arr]
    ctx = "[" + " ".join(link.ctx) + "]"
    return " ".join(
        [
            "\t ... --(",
            arrow.long,
            ",",
            _go_float(float(link.wgt)),
            ")->",
            graph.node_text(link.dst),
            ctx,
            " \t . . .",
            describe_sta_index(arrow.sta_index),
        ]
    )


def summarize_graph(graph: Graph) -> str:
    """Listing of every node and link with incidence totals."""
    lines: list[str] = []
    count_nodes = 0
    count_links = [0, 0, 0, 0]
    for node in graph.nodes():
        count_nodes += 1
        lines.append(f"{node.nptr.index} \t {node.text}")
        for sta, links in enumerate(node.incidence):
            for link in links:
                count_links[flat_st_index(sta)] += 1
                lines.append(_format_link(graph, link))
        lines.append("")

    rule = "-" * 37
    lines += [rule, "Incidence summary of raw declarations", rule]
    lines.append(f"Total nodes {count_nodes}")
    for sttype, count in enumerate(count_links):
        lines.append(f"Total directed links of type {st_type_name(sttype)} {count}")
    total = sum(count_links)
    complete = count_nodes * (count_nodes - 1)
    sparseness = _fdiv(float(total), float(complete))
    lines.append(
        f"Total links {total} sparseness (fraction of completeness) {_go_float(sparseness)}"
    )
    return "\n".join(lines) + "\n"