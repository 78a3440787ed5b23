"""Command line entry point: read the configuration and N4L files, then report."""

from __future__ import annotations

import argparse
import sys

from notes4l.analysis import (
    compute_evc,
    create_adjacency_matrix,
    format_matrix,
    format_nz_vector,
    summarize_graph,
)
from notes4l.config import ConfigReader
from notes4l.errors import N4LError, Reporter
from notes4l.graph import Graph
from notes4l.parser import N4LParser
from notes4l.textscan import read_source

CONFIG_FILE = "N4Lconfig.in"
_NO_ADJACENCY = "none"


def build_arg_parser() -> argparse.ArgumentParser:
    """Argument parser for the N4L command."""
    parser = argparse.ArgumentParser(
        prog="N4L",
        usage="N4L [-v] [-u] [-s] [file].dat",
        description="Parse N4L notes into a semantic graph.",
    )
    parser.add_argument("-v", dest="verbose", action="store_true", help="verbose")
    parser.add_argument("-d", dest="diagnostic", action="store_true", help="diagnostic mode")
    parser.add_argument("-u", dest="upload", action="store_true", help="upload")
    parser.add_argument(
        "-s", dest="summarize", action="store_true", help="summary (node,links...)"
    )
    parser.add_argument(
        "-adj",
        "--adj",
        dest="adj",
        default=_NO_ADJACENCY,
        help="a quoted, comma-separated list of short link names",
    )
    parser.add_argument(
        "--config",
        dest="config",
        default=CONFIG_FILE,
        help="arrow and annotation configuration file",
    )
    parser.add_argument("files", nargs="+", metavar="file", help="N4L input files")
    return parser


def _run(args: argparse.Namespace, reporter: Reporter) -> None:
    graph = Graph(reporter=reporter)

    reporter.current_file = args.config
    reporter.line_num = 1
    reporter.box("Parsing new file", args.config)
    config_text = read_source(args.config)

    graph.add_mandatory()
    reader = ConfigReader(graph, reporter=reporter)
    reader.parse(config_text)

    parser = N4LParser(graph, annotations=reader.annotations, reporter=reporter)
    for filename in args.files:
        parser.new_file(filename)
        parser.parse(read_source(filename))

    out = reporter.stream if reporter.stream is not None else sys.stdout

    if args.summarize:
        reporter.box("SUMMARIZE GRAPH.....\n")
        out.write(summarize_graph(graph))

    if args.adj != _NO_ADJACENCY:
        keys, directed, undirected = create_adjacency_matrix(graph, args.adj)
        labels = [graph.node_text(ptr) for ptr in keys]
        reporter.verbose(format_matrix("directed adjacency sub-matrix", labels, directed))
        reporter.verbose(
            format_matrix("undirected adjacency sub-matrix", labels, undirected)
        )
        evc = compute_evc(undirected)
        reporter.verbose(
            format_nz_vector(
                "Eigenvector centrality (EVC) score for symmetrized graph", labels, evc
            )
        )


def main(argv=None) -> int:
    """Run the N4L command; return the process exit status."""
    args = build_arg_parser().parse_args(argv)
    reporter = Reporter(
        verbose_mode=args.verbose or args.diagnostic,
        diagnostic=args.diagnostic,
    )
    try:
        _run(args, reporter)
    except N4LError as exc:
        print(f"N4L {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())