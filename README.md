# notes4l

`notes4l` reads notes written in N4L. N4L is a small plain-text language for
writing down items and the relations between them. From the notes, the
package builds an in-memory graph of nodes and typed arrows. There are four
arrow types: "leads to", "contains", "expresses" and "near". The notes are
checked as they are read, and mistakes are reported with the file name and
line number. The package can also summarise the graph, build adjacency
matrices and compute eigenvector centrality.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Configuration

Arrow names are declared in a configuration file. By default this is
`N4Lconfig.in` in the current directory; `--config` names a different file.
The file is divided into sections, and each section starts with one of
`-leadsto`, `-contains`, `-properties`, `-similarity` or `-annotations`.

A directed arrow is declared as a forward and backward pair, each followed by
a short name in parentheses. A similarity arrow has no sign. An annotation
section links a marker character to an arrow name:

```
-leadsto

  + leads to (lt)   - comes from (cf)

-similarity

  looks like (ll)

-annotations

  %  (has URL)
```

The following arrow pairs are always defined:

- `then` / `prev`
- `empty` / `void`
- `url` / `isurl`
- `img` / `isimg`

These fatal errors stop the configuration with an error:

- redefining an arrow name or an annotation marker;
- giving a sign to a similarity arrow;
- using `+` or `-` as an annotation marker;
- naming an unknown section.

## Writing notes

```
-chapter one

 :: animals, farm ::

 @l1  lamb  (lt)  sheep
      "     (cf)  ewe

 $l1.1 (ll) kid
```

- `-name` starts a chapter. Items must appear inside a chapter.
- `:: ... ::` sets the context. `+:: ... ::` adds to it and `-:: ... ::`
  removes from it. `,` and `|` separate alternatives. `&` and `.` join
  labels.
- `(arrow)` relates the item before it to the item after it. The arrow may
  carry a weight and extra context labels, as in `(lt, 0.5, spring)`. Every
  link is stored together with its inverse link.
- `"` alone repeats the item at the same place on the previous line.
- `@label` names a line. `$label.n` refers to the n-th item of that line.
- `# ...` and `// ...` are comments.
- An annotation marker written right before a word, such as `%word`, links
  the item to that word through the marker's arrow. The marker is removed
  from the item's text.

If the context contains `_sequence_`, sequence mode is on. In sequence mode,
the first item of each line is linked with `then` to the item recorded
before it. Removing `_sequence_` from the context, or starting a new chapter,
ends sequence mode.

Some problems only produce warnings and do not stop parsing:

- text written all in capitals, which is treated as a note to self and not
  added to the graph;
- an item that also exists with different capitalisation;
- a line that ends after a relation.

## Command line

```
n4l [-v] [-d] [-s] [-adj LINKS] [--config FILE] notes.n4l [more.n4l ...]
```

- `-v` prints verbose progress.
- `-d` also appends diagnostic logs to `test_output/<file>_test_log`. The
  `test_output` directory must already exist.
- `-s` prints every node and its links, followed by incidence totals.
- `-adj` takes a comma-separated list of short arrow names, or `all`. For
  those arrows and their inverses, it builds the directed and symmetrised
  adjacency matrices and computes eigenvector centrality. The matrices and
  scores are printed only in verbose mode (`-v` or `-d`).

If an error stops parsing, the command prints it to standard error and exits
with status 1.

## Library use

```python
from notes4l.config import ConfigReader
from notes4l.errors import N4LError, Reporter
from notes4l.graph import Graph
from notes4l.parser import N4LParser
from notes4l.textscan import read_source

reporter = Reporter()
graph = Graph(reporter=reporter)
graph.add_mandatory()

reader = ConfigReader(graph, reporter=reporter)
reader.parse(read_source("N4Lconfig.in"))

parser = N4LParser(graph, annotations=reader.annotations, reporter=reporter)
parser.new_file("notes.n4l")
parser.parse(read_source("notes.n4l"))

for node in graph.nodes():
    print(node.text, node.chapter)
```

- Fatal problems raise `N4LError`. Warnings are printed and also collected
  in `reporter.warnings`.
- `notes4l.analysis` has functions that work on a graph:
  `summarize_graph`, `create_adjacency_matrix`, `compute_evc`,
  `format_matrix` and `format_nz_vector`.
- `notes4l.context.ContextState` holds the context labels in force.

## What it does not do

The graph lives only in memory for the length of a run. It is not saved to a
database or to a file. The `-u` option is accepted but does nothing.