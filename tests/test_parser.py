import pytest

from csvfsm.models import ParserConfig, QuoteStatus, WarningCode
from csvfsm.parser import CsvParser, ParserState, iter_records, parse_text


def values(text, **options):
    config = ParserConfig(**options) if options else None
    return [r.values for r in parse_text(text, config)]


def test_plain_fields_split_like_str_split():
    text = "a,b,c\nd,e,f\r\ng,h,i"
    expected = [line.split(",") for line in text.replace("\r\n", "\n").split("\n")]
    assert values(text) == expected

def test_quoted_field_keeps_internal_comma():
    records = parse_text('a,"b,b",c')
    assert len(records) == 1
    assert records[0].values == ["a", "b,b", "c"]
    assert [f.quoting for f in records[0].fields] == [
        QuoteStatus.UNQUOTED,
        QuoteStatus.QUOTED,
        QuoteStatus.UNQUOTED,
    ]

def test_doubled_quote_is_unescaped():
    (record,) = parse_text('"a""b"')
    assert record.values == ['a"b']
    assert record.warnings == []
    assert record.fields[0].quoting is QuoteStatus.QUOTED

def test_unterminated_quote_at_end_of_input():
    (record,) = parse_text('"a""')
    field = record.fields[0]
    assert field.value == 'a"'
    assert field.warnings == [WarningCode.MISSING_CLOSING_QUOTE]
    assert field.quoting is QuoteStatus.UNTERMINATED
    assert field.is_quoted

def test_stray_quote_degrades_until_next_separator():
    (record,) = parse_text('"a"x,b')
    assert record.values == ['a"x', "b"]
    assert record.fields[0].warnings == [WarningCode.UNESCAPED_QUOTE]
    assert record.fields[0].quoting is QuoteStatus.UNTERMINATED
    assert record.fields[1].quoting is QuoteStatus.UNQUOTED
    assert [(w.code, w.field_index) for w in record.warnings] == [(WarningCode.UNESCAPED_QUOTE, 0)]

def test_degraded_field_ends_at_line_break():
    assert values('"a"x\nb') == [['a"x'], ["b"]]

def test_degraded_field_still_unescapes_doubled_quotes():
    (record,) = parse_text('"a"x""y,z')
    assert record.values == ['a"x"y', "z"]
    assert record.fields[0].warnings == [WarningCode.UNESCAPED_QUOTE]

def test_unescaped_quote_warned_once_per_field():
    (record,) = parse_text('"a"b"c,d')
    assert record.values == ['a"b"c', "d"]
    assert record.fields[0].warnings == [WarningCode.UNESCAPED_QUOTE]

def test_quoted_field_spans_line_breaks():
    records = parse_text('1,"line one\r\nline two"\r\n2,x\r\n')
    assert [r.values for r in records] == [["1", "line one\r\nline two"], ["2", "x"]]

def test_quote_inside_unquoted_field_is_literal():
    (record,) = parse_text('ab"c,d')
    assert record.values == ['ab"c', "d"]
    assert record.warnings == []

def test_empty_fields_are_kept():
    assert values(",a,,b,") == [["", "a", "", "b", ""]]

def test_trailing_field_separator_before_line_break():
    assert values("a,\nb") == [["a", ""], ["b"]]

def test_quoted_empty_field():
    (record,) = parse_text('""')
    assert record.values == [""]
    assert record.fields[0].quoting is QuoteStatus.QUOTED

def test_blank_lines_produce_no_records():
    assert values("a\n\n\r\n\rb\n") == [["a"], ["b"]]

def test_empty_input_produces_no_records():
    parser = CsvParser()
    assert parser.signal_end_of_input() == []
    assert list(parser.records()) == []

def test_crlf_is_one_line_break():
    assert values("a\r\nb\r\n") == [["a"], ["b"]]

def test_lone_cr_is_a_line_break():
    assert values("a\rb") == [["a"], ["b"]]

def test_cr_then_lf_across_feeds_is_one_line_break():
    parser = CsvParser()
    parser.feed("a\r")
    assert parser.ready == 0
    parser.feed("\nb")
    assert parser.ready == 1
    parser.signal_end_of_input()
    assert [r.values for r in parser.records()] == [["a"], ["b"]]

def test_no_record_without_end_of_input():
    parser = CsvParser()
    parser.feed("a,b")
    assert list(parser.records()) == []
    parser.signal_end_of_input()
    assert [r.values for r in parser.records()] == [["a", "b"]]

def test_end_of_input_without_pending_content_is_a_noop():
    parser = CsvParser()
    parser.feed("a\n")
    parser.signal_end_of_input()
    parser.signal_end_of_input()
    assert [r.values for r in parser.records()] == [["a"]]

def test_feed_returns_warnings_as_raised():
    parser = CsvParser()
    assert parser.feed('"a"') == []
    (warning,) = parser.feed("x")
    assert warning.code is WarningCode.UNESCAPED_QUOTE
    assert (warning.record_index, warning.field_index) == (0, 0)

    parser.feed(',b\n1,"open')
    (warning,) = parser.signal_end_of_input()
    assert warning.code is WarningCode.MISSING_CLOSING_QUOTE
    assert (warning.record_index, warning.field_index) == (1, 1)

def test_states_follow_the_automaton():
    parser = CsvParser()
    assert parser.state is ParserState.START_FIELD
    parser.feed('"')
    assert parser.state is ParserState.IN_QUOTED
    parser.feed('a"')
    assert parser.state is ParserState.QUOTE_IN_QUOTED
    parser.feed('"')
    assert parser.state is ParserState.IN_QUOTED
    parser.feed('",')
    assert parser.state is ParserState.START_FIELD
    parser.feed("b")
    assert parser.state is ParserState.IN_UNQUOTED

def test_record_indexes_count_from_reset():
    parser = CsvParser()
    records = list(parser.parse("a\nb\nc"))
    assert [r.index for r in records] == [0, 1, 2]

def test_reset_then_same_input_gives_same_output():
    parser = CsvParser()
    text = 'x,"y ""q"""\n"bad"z,w\n"open'
    parser.feed("half,")
    parser.reset()
    first = list(parser.parse(text))
    parser.reset()
    second = list(parser.parse(text))
    assert first == second
    assert [r.values for r in first] == [["x", 'y "q"'], ['bad"z', "w"], ["open"]]

def test_reset_keeps_configuration():
    parser = CsvParser(field_separators=[";"])
    parser.feed("a;b")
    parser.reset()
    assert parser.state is ParserState.START_FIELD
    assert [r.values for r in parser.parse("c;d")] == [["c", "d"]]

@pytest.mark.parametrize("size", [1, 2, 3, 5, 7, 64])
def test_chunk_boundaries_have_no_meaning(size):
    text = 'a,"b\r\nc",d\r\n"e""f"||g\r\n"h"i,j\r\n,\r\n"k'
    config = ParserConfig(field_separators=[",", "||"])
    chunks = [text[i:i + size] for i in range(0, len(text), size)]
    assert list(iter_records(chunks, config)) == parse_text(text, config)

def test_multi_character_field_separator():
    assert values("a||b||c", field_separators=["||"]) == [["a", "b", "c"]]

def test_partial_multi_character_separator_is_content():
    assert values("a|b||c|", field_separators=["||"]) == [["a|b", "c|"]]

def test_longest_separator_wins():
    config = ParserConfig(field_separators=[":", "::"])
    assert [r.values for r in parse_text("a::b:c", config)] == [["a", "b", "c"]]

def test_field_separator_prefix_of_line_separator():
    config = ParserConfig(field_separators=["\r"], line_separators=["\r\n"])
    assert [r.values for r in parse_text("a\rb\r\nc", config)] == [["a", "b"], ["c"]]

def test_custom_quote_character():
    config = ParserConfig(quote_char="'")
    (record,) = parse_text("'it''s',\"x\"", config)
    assert record.values == ["it's", '"x"']

def test_tab_separated():
    assert values("a\tb\n\tc", field_separators="\t") == [["a", "b"], ["", "c"]]

def test_feed_rejects_bytes():
    with pytest.raises(TypeError):
        CsvParser().feed(b"a,b")

def test_config_and_options_are_exclusive():
    with pytest.raises(TypeError):
        CsvParser(ParserConfig(), quote_char="'")

def test_parser_is_iterable():
    parser = CsvParser()
    parser.feed("a\nb\n")
    assert [r.values for r in parser] == [["a"], ["b"]]
    assert parser.ready == 0
