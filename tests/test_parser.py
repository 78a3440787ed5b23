import io

import pytest

from notes4l.errors import (
    ERR_ARROW_SELFLOOP,
    ERR_BAD_ALIAS_REFERENCE,
    ERR_MISSING_EVENT,
    ERR_MISSING_ITEM_RELN,
    ERR_MISSING_ITEM_SOMEWHERE,
    ERR_MISSING_LINE_LABEL_IN_REFERENCE,
    ERR_MISSING_SECTION,
    ERR_NO_SUCH_ALIAS,
    WARN_NOTE_TO_SELF,
    N4LError,
    Reporter,
)
from notes4l.graph import Graph
from notes4l.parser import N4LParser


def make_parser(annotations=None):
    graph = Graph()
    graph.add_mandatory()
    parser = N4LParser(
        graph, annotations=annotations or {}, reporter=Reporter(stream=io.StringIO())
    )
    parser.new_file("notes.n4l")
    return parser


def links_of(parser, text, short):
    graph = parser.graph
    node = next(n for n in graph.nodes() if n.text == text)
    arrow = graph.arrows[graph.short_names[short]]
    return [link for link in node.incidence[arrow.sta_index] if link.arr == arrow.ptr]


def dst_texts(parser, links):
    return sorted(parser.graph.node_text(link.dst) for link in links)


def test_simple_relation_links_both_ways():
    parser = make_parser()
    parser.parse("- chapter\n\nalpha (then) beta\n")
    assert dst_texts(parser, links_of(parser, "alpha", "then")) == ["beta"]
    assert dst_texts(parser, links_of(parser, "beta", "prev")) == ["alpha"]
    assert parser.section == "chapter"
    assert len(parser.graph) == 2


def test_items_outside_section_fail():
    parser = make_parser()
    with pytest.raises(N4LError) as info:
        parser.parse("alpha\n")
    assert info.value.message == ERR_MISSING_SECTION


def test_back_reference_reuses_previous_line():
    parser = make_parser()
    parser.parse('- ch\nalpha (then) beta\n" (then) gamma\n')
    assert dst_texts(parser, links_of(parser, "alpha", "then")) == ["beta", "gamma"]


def test_line_alias_and_reference():
    parser = make_parser()
    parser.parse("- ch\n@one alpha (then) beta\n$one.2 (then) gamma\n")
    assert dst_texts(parser, links_of(parser, "beta", "then")) == ["gamma"]
    assert parser.resolve_alias("$one.1") == "alpha"
    assert parser.lookup_alias("one", 2) == "beta"


def test_resolve_alias_errors_and_passthrough():
    parser = make_parser()
    assert parser.resolve_alias("$") == "$"
    assert parser.resolve_alias("$$") == "$$"
    with pytest.raises(N4LError) as missing:
        parser.resolve_alias("$one")
    assert missing.value.message == ERR_MISSING_LINE_LABEL_IN_REFERENCE
    with pytest.raises(N4LError) as zero:
        parser.resolve_alias("$one.0")
    assert zero.value.message == ERR_BAD_ALIAS_REFERENCE
    with pytest.raises(N4LError) as unknown:
        parser.lookup_alias("nowhere", 1)
    assert unknown.value.message == ERR_NO_SUCH_ALIAS


def test_link_by_name_weights_and_context():
    parser = make_parser()
    plain = parser.link_by_name("(then)")
    assert plain.arr == parser.graph.short_names["then"]
    assert plain.wgt == 1.0
    weighted = parser.link_by_name("(then,0.5,urgent)")
    assert weighted.wgt == 0.5
    assert weighted.ctx == ["urgent"]
    by_long = parser.link_by_name("follows on from")
    assert by_long.arr == parser.graph.short_names["prev"]
    with pytest.raises(N4LError):
        parser.link_by_name("(nosuch)")


def test_context_applies_to_links():
    parser = make_parser()
    parser.parse("- ch\n:: work ::\nalpha (then) beta\n+:: extra ::\n")
    assert links_of(parser, "alpha", "then")[0].ctx == ["work"]
    assert list(parser.context) == ["extra", "work"]
    parser.parse("-:: work ::\n")
    assert list(parser.context) == ["extra"]


def test_sequence_mode_links_successive_lines():
    parser = make_parser()
    parser.parse("- ch\n:: _sequence_ ::\nfirst\nsecond\n")
    links = links_of(parser, "first", "then")
    assert dst_texts(parser, links) == ["second"]
    assert links[0].ctx == []
    assert dst_texts(parser, links_of(parser, "second", "prev")) == ["first"]


def test_annotations_create_linked_nodes():
    parser = make_parser({"%": "has URL"})
    parser.parse("- ch\nsee %website here\n")
    assert dst_texts(parser, links_of(parser, "see website here", "url")) == ["website"]
    assert dst_texts(parser, links_of(parser, "website", "isurl")) == ["see website here"]


def test_embedded_symbol_and_strip():
    parser = make_parser({"%": "has URL"})
    assert parser.embedded_symbol("a %b", 2) == (1, "%")
    assert parser.embedded_symbol("a %b", 0) == (0, "UNKNOWN SYMBOL")
    assert parser.embedded_symbol("% b", 0) == (0, "UNKNOWN SYMBOL")
    assert parser.strip_annotations("x %yz") == "x yz"
    assert parser.strip_annotations('"%a"') == '"%a"'


def test_self_loop_rejected():
    parser = make_parser()
    with pytest.raises(N4LError) as info:
        parser.parse("- ch\nalpha (then) alpha\n")
    assert info.value.message == ERR_ARROW_SELFLOOP


def test_double_relation_rejected():
    parser = make_parser()
    with pytest.raises(N4LError) as info:
        parser.parse("- ch\nalpha (then) (then) beta\n")
    assert info.value.message == ERR_MISSING_ITEM_RELN


def test_relation_without_leading_item():
    parser = make_parser()
    with pytest.raises(N4LError) as info:
        parser.parse("- ch\n(then) beta\n")
    assert info.value.message == ERR_MISSING_ITEM_SOMEWHERE


def test_dangling_relation_warns():
    parser = make_parser()
    parser.parse("- ch\nalpha (then)\n")
    assert ERR_MISSING_EVENT in parser.reporter.warnings


def test_all_caps_note_is_skipped():
    parser = make_parser()
    parser.parse("- ch\nTODO NOTE\n")
    assert len(parser.graph) == 0
    assert f"{WARN_NOTE_TO_SELF} (TODO NOTE)" in parser.reporter.warnings


def test_chapter_starting_with_colon_fails():
    parser = make_parser()
    with pytest.raises(N4LError):
        parser.parse("- :: x\n")


def test_bare_label_fails():
    parser = make_parser()
    with pytest.raises(N4LError):
        parser.parse("- ch\n@ alpha\n")


def test_get_token_forms():
    parser = make_parser()
    assert parser.get_token('"hello world" rest', 0) == ("hello world", 13)
    assert parser.get_token("(then) beta", 0) == ("(then)", 6)
    assert parser.get_token("@lab item", 0)[0] == "@lab"
    assert parser.get_token("", 0) == ("", 0)
    with pytest.raises(N4LError):
        parser.get_token('" a', 0)


def test_quoted_item_keeps_parentheses():
    parser = make_parser()
    parser.parse('- ch\n"quoted (text)" (then) beta\n')
    assert dst_texts(parser, links_of(parser, "quoted (text)", "then")) == ["beta"]


def test_new_file_resets_state():
    parser = make_parser()
    parser.parse("- ch\n:: work ::\nalpha\n")
    parser.new_file("other.n4l")
    assert parser.section == ""
    assert len(parser.context) == 0
    assert parser.reporter.line_num == 1
    assert parser.reporter.current_file == "other.n4l"
    assert len(parser.graph) == 1