import io

import pytest

from notes4l.config import ConfigReader, get_config_token
from notes4l.errors import (
    ERR_ANNOTATION_BAD,
    ERR_ANNOTATION_MISSING,
    ERR_ANNOTATION_REDEFINE,
    ERR_ARR_REDEFINITION,
    ERR_BAD_ABBRV,
    ERR_ILLEGAL_ANNOT_CHAR,
    ERR_ILLEGAL_CONFIGURATION,
    ERR_MISSING_EVENT,
    ERR_SIMILAR_NO_SIGN,
    N4LError,
    Reporter,
)
from notes4l.graph import LEADSTO, ST_ZERO, Graph


def _reader():
    reporter = Reporter(stream=io.StringIO())
    graph = Graph(reporter=reporter)
    return ConfigReader(graph=graph, reporter=reporter)


def test_get_config_token_reads_parenthesised_alias():
    assert get_config_token("(lt) rest", 0) == ("(lt)", 4)


def test_get_config_token_stops_before_paren():
    assert get_config_token("+ leads to (lt)", 0) == ("+ leads to", 11)


def test_get_config_token_comment_and_end():
    assert get_config_token("# c", 0) == ("", 0)
    assert get_config_token("x", 5) == ("", 5)


def test_leadsto_pair_declares_inverse_arrows():
    reader = _reader()
    reader.parse("- leadsto\n + leads to (lt) - comes from (cf)\n")
    graph = reader.graph
    fwd = graph.arrow_ptr("lt")
    bwd = graph.arrow_ptr("cf")
    assert graph.arrows[fwd].sta_index == ST_ZERO + LEADSTO
    assert graph.arrows[bwd].sta_index == ST_ZERO - LEADSTO
    assert graph.arrows[fwd].long == "leads to"
    assert graph.arrows[bwd].long == "comes from"
    assert graph.inverse[fwd] == bwd
    assert graph.inverse[bwd] == fwd
    assert reader.reporter.warnings == []


def test_similarity_arrow_is_its_own_inverse():
    reader = _reader()
    reader.parse("- similarity\n looks like (ll)\n")
    graph = reader.graph
    ptr = graph.arrow_ptr("ll")
    assert graph.arrows[ptr].sta_index == ST_ZERO
    assert graph.arrows[ptr].long == "looks like"
    assert graph.inverse[ptr] == ptr


def test_annotation_marker_is_recorded():
    reader = _reader()
    reader.parse("- annotations\n % (lt)\n")
    assert reader.annotations == {"%": "lt"}


def test_same_annotation_twice_is_allowed():
    reader = _reader()
    reader.parse("- annotations\n % (lt)\n % (lt)\n")
    assert reader.annotations == {"%": "lt"}


def test_annotation_redefinition_raises():
    reader = _reader()
    with pytest.raises(N4LError, match="Redefinition of annotation") as info:
        reader.parse("- annotations\n % (lt)\n % (cf)\n")
    assert info.value.message == ERR_ANNOTATION_REDEFINE


def test_comments_are_skipped_and_lines_counted():
    reader = _reader()
    reader.parse("# heading\n- leadsto\n// note\n + a b (ab) - b a (ba)\n")
    assert "ab" in reader.graph.short_names
    assert "ba" in reader.graph.short_names
    assert reader.reporter.line_num == 5


def test_unknown_section_raises_with_line():
    reader = _reader()
    with pytest.raises(N4LError) as info:
        reader.parse("- bogus\n + a (b)\n")
    assert info.value.message == f"{ERR_ILLEGAL_CONFIGURATION} bogus"
    assert info.value.line == 2


def test_abbreviation_without_arrow_raises():
    reader = _reader()
    with pytest.raises(N4LError) as info:
        reader.parse("- leadsto\n (x)\n")
    assert info.value.message == ERR_BAD_ABBRV


def test_similarity_with_sign_raises():
    reader = _reader()
    with pytest.raises(N4LError) as info:
        reader.parse("- similarity\n + near (n)\n")
    assert info.value.message == ERR_SIMILAR_NO_SIGN


def test_arrow_alias_redefinition_raises():
    reader = _reader()
    with pytest.raises(N4LError, match=ERR_ARR_REDEFINITION):
        reader.parse("- leadsto\n + a (x) - b (y)\n + c (x) - d (z)\n")


def test_plus_marker_in_annotations_raises():
    reader = _reader()
    with pytest.raises(N4LError) as info:
        reader.parse("- annotations\n + (lt)\n")
    assert info.value.message == ERR_ILLEGAL_ANNOT_CHAR


def test_letter_marker_warns_but_is_kept():
    reader = _reader()
    reader.parse("- annotations\n a (lt)\n")
    assert ERR_ANNOTATION_BAD in reader.reporter.warnings
    assert reader.annotations["a"] == "lt"


def test_annotation_without_marker_warns():
    reader = _reader()
    reader.parse("- annotations\n (lt)\n")
    assert ERR_ANNOTATION_MISSING in reader.reporter.warnings


def test_dangling_marker_warns_at_line_end():
    reader = _reader()
    reader.parse("- annotations\n %\n")
    assert ERR_MISSING_EVENT in reader.reporter.warnings