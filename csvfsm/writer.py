"""
Serialize records back to CSV text.

Fields are quoted only when they have to be: when they contain the quote
character or any character used by a configured separator. Quotes inside a
quoted field are doubled. Output read back with the same ParserConfig
yields the original values.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Union

from .models import ParserConfig, Record

RowLike = Union[Record, Sequence[str]]


def needs_quoting(value: str, config: ParserConfig) -> bool:
    if config.quote_char in value:
        return True
    special = config.separator_chars
    return any(ch in special for ch in value)


def format_field(value: str, config: ParserConfig) -> str:
    if not needs_quoting(value, config):
        return value
    quote = config.quote_char
    return quote + value.replace(quote, quote * 2) + quote


def _empty_needs_quoting(config: ParserConfig) -> bool:
    # an unquoted empty field leaves two separators side by side, which can
    # read back as one longer separator
    joiner = config.field_separators[0]
    return any(
        sep != joiner and joiner in sep
        for sep in config.field_separators + config.line_separators
    )


def _values(row: RowLike) -> Sequence[str]:
    if isinstance(row, Record):
        return row.values
    return row


def format_record(row: RowLike, config: Optional[ParserConfig] = None) -> str:
    """
    Return one CSV record without a line terminator.

    A record made of a single empty field is written as two quotes, since an
    empty line is read back as no record at all. Empty fields are also quoted
    when the field separator is part of a longer configured separator.
    """
    config = config or ParserConfig()
    values = list(_values(row))
    if not values:
        raise ValueError("cannot format a record with no fields")
    if values == [""]:
        return config.quote_char * 2
    quote_empty = _empty_needs_quoting(config)
    return config.field_separators[0].join(
        config.quote_char * 2 if v == "" and quote_empty else format_field(v, config)
        for v in values
    )


def write_records(
    rows: Iterable[RowLike],
    config: Optional[ParserConfig] = None,
    line_separator: Optional[str] = None,
) -> str:
    """Join formatted records, terminating each with line_separator (default: first configured)."""
    config = config or ParserConfig()
    if line_separator is None:
        line_separator = config.line_separators[0]
    elif line_separator not in config.line_separators:
        raise ValueError(f"line separator {line_separator!r} is not configured")
    return "".join(format_record(row, config) + line_separator for row in rows)
