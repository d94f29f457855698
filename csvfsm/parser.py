"""
Streaming CSV parser.

A four-state automaton fed one character (or one chunk) at a time:

- q0 START_FIELD: between fields, nothing accumulated for the next field
- q1 IN_QUOTED: inside a quoted field
- q2 IN_UNQUOTED: inside an unquoted field
- q3 QUOTE_IN_QUOTED: saw a quote inside a quoted field, either an escape
  or the closing quote depending on the next character

Malformed quoting never raises. It is reported as a warning on the field:
- W1: end of input reached inside a quoted field
- W2: a quote inside a quoted field was followed by an ordinary character.
  The field keeps accumulating (degraded mode) and ends at the next
  field or line separator.

Chunk boundaries mean nothing: characters that could start a longer
separator are held back until the match is decided.
"""

from __future__ import annotations

import logging
from collections import deque
from enum import Enum
from typing import Deque, Iterable, Iterator, List, NamedTuple, Optional, Tuple

from .models import FieldWarning, ParsedField, ParserConfig, QuoteStatus, Record, WarningCode

logger = logging.getLogger(__name__)


class ParserState(Enum):
    START_FIELD = "q0"
    IN_QUOTED = "q1"
    IN_UNQUOTED = "q2"
    QUOTE_IN_QUOTED = "q3"


class TokenKind(Enum):
    CHAR = "char"
    QUOTE = "quote"
    FIELD_SEP = "field_sep"
    LINE_SEP = "line_sep"
    EOF = "eof"


class Token(NamedTuple):
    kind: TokenKind
    text: str = ""


class CsvParser:
    """
    Incremental CSV parser.

    Example:
        parser = CsvParser(field_separators=[";"])
        parser.feed('a;"b;c"\\n1;')
        parser.feed("2")
        parser.signal_end_of_input()
        for record in parser.records():
            print(record.values)   # ['a', 'b;c'] then ['1', '2']

    Completed records are queued until pulled through records(). The parser
    keeps its state between feed() calls until reset().
    """

    def __init__(self, config: Optional[ParserConfig] = None, **options):
        if config is None:
            config = ParserConfig(**options)
        elif options:
            raise TypeError("pass either a ParserConfig or keyword options, not both")

        self.config = config
        self._quote = config.quote_char
        # field separators first: equal-length matches go to the first configured
        self._separators: List[Tuple[str, TokenKind]] = [
            (sep, TokenKind.FIELD_SEP) for sep in config.field_separators
        ] + [(sep, TokenKind.LINE_SEP) for sep in config.line_separators]
        self._completed: Deque[Record] = deque()
        self.reset()

    @property
    def state(self) -> ParserState:
        return self._state

    @property
    def ready(self) -> int:
        """Number of completed records not yet pulled."""
        return len(self._completed)

    def reset(self) -> None:
        """Drop all accumulated input and queued records; keep the configuration."""
        self._state = ParserState.START_FIELD
        self._pending = ""
        self._buffer: List[str] = []
        self._fields: List[ParsedField] = []
        self._field_quoted = False
        self._field_warnings: List[WarningCode] = []
        self._degraded = False
        self._raised: List[FieldWarning] = []
        self._record_count = 0
        self._completed.clear()
        logger.debug("parser reset")

    ## Input ##

    def feed(self, text: str) -> List[FieldWarning]:
        """
        Advance the automaton over every character of text.

        Returns the warnings raised while consuming it.
        """
        if not isinstance(text, str):
            raise TypeError(f"feed() expects str, got {type(text).__name__}")
        for char in text:
            self._pending += char
            self._drain(eof=False)
        return self._take_warnings()

    def signal_end_of_input(self) -> List[FieldWarning]:
        """
        Flush the pending field and record as if a line separator was read.

        Does nothing when no field was started. Returns the warnings raised.
        """
        self._drain(eof=True)
        self._step(Token(TokenKind.EOF))
        return self._take_warnings()

    ## Output ##

    def records(self) -> Iterator[Record]:
        while self._completed:
            yield self._completed.popleft()

    def __iter__(self) -> Iterator[Record]:
        return self.records()

    def parse(self, text: str) -> Iterator[Record]:
        """Lazily yield the records of text, ending the input afterwards."""
        for char in text:
            self.feed(char)
            yield from self.records()
        self.signal_end_of_input()
        yield from self.records()

    ## Tokenizing ##

    def _drain(self, eof: bool) -> None:
        while self._pending:
            token = self._next_token(eof)
            if token is None:
                return
            self._pending = self._pending[len(token.text):]
            self._step(token)

    def _next_token(self, eof: bool) -> Optional[Token]:
        pending = self._pending
        char = pending[0]
        if char == self._quote:
            return Token(TokenKind.QUOTE, char)
        if self._state is ParserState.IN_QUOTED and not self._degraded:
            return Token(TokenKind.CHAR, char)

        best: Optional[Token] = None
        for sep, kind in self._separators:
            if pending.startswith(sep):
                if best is None or len(sep) > len(best.text):
                    best = Token(kind, sep)
            elif not eof and len(sep) > len(pending) and sep.startswith(pending):
                return None  # a longer separator may still match
        return best or Token(TokenKind.CHAR, char)

    ## Transitions ##

    def _step(self, token: Token) -> None:
        kind = token.kind
        state = self._state

        if state is ParserState.START_FIELD:
            if kind is TokenKind.QUOTE:
                self._field_quoted = True
                self._state = ParserState.IN_QUOTED
            elif kind is TokenKind.CHAR:
                self._buffer.append(token.text)
                self._state = ParserState.IN_UNQUOTED
            elif kind is TokenKind.FIELD_SEP:
                self._save_field()
            elif self._fields:
                # line break or end of input right after a field separator
                self._save_field()
                self._save_record()
            # else: blank line or empty input

        elif state is ParserState.IN_QUOTED:
            if kind is TokenKind.QUOTE:
                self._state = ParserState.QUOTE_IN_QUOTED
            elif kind is TokenKind.CHAR:
                self._buffer.append(token.text)
            elif kind is TokenKind.EOF:
                if not self._degraded:
                    self._warn(WarningCode.MISSING_CLOSING_QUOTE)
                self._end_field(end_record=True)
            else:
                # separators only reach q1 in degraded mode
                self._end_field(end_record=kind is TokenKind.LINE_SEP)

        elif state is ParserState.IN_UNQUOTED:
            if kind is TokenKind.CHAR or kind is TokenKind.QUOTE:
                self._buffer.append(token.text)
            else:
                self._end_field(end_record=kind is not TokenKind.FIELD_SEP)

        elif state is ParserState.QUOTE_IN_QUOTED:
            if kind is TokenKind.QUOTE:
                self._buffer.append(self._quote)  # "" -> "
                self._state = ParserState.IN_QUOTED
            elif kind is TokenKind.CHAR:
                self._warn(WarningCode.UNESCAPED_QUOTE)
                self._degraded = True
                self._buffer.append(self._quote)
                self._buffer.append(token.text)
                self._state = ParserState.IN_QUOTED
            else:
                self._end_field(end_record=kind is not TokenKind.FIELD_SEP)

        else:
            raise RuntimeError(f"unhandled parser state: {state}")

    def _end_field(self, end_record: bool) -> None:
        self._save_field()
        if end_record:
            self._save_record()

    def _save_field(self) -> None:
        if not self._field_quoted:
            quoting = QuoteStatus.UNQUOTED
        elif self._field_warnings:
            quoting = QuoteStatus.UNTERMINATED
        else:
            quoting = QuoteStatus.QUOTED

        self._fields.append(
            ParsedField(
                value="".join(self._buffer),
                quoting=quoting,
                warnings=self._field_warnings,
            )
        )
        self._buffer = []
        self._field_quoted = False
        self._field_warnings = []
        self._degraded = False
        self._state = ParserState.START_FIELD

    def _save_record(self) -> None:
        record = Record(index=self._record_count, fields=self._fields)
        self._fields = []
        self._record_count += 1
        self._completed.append(record)
        logger.debug("record %d completed with %d fields", record.index, len(record.fields))

    def _warn(self, code: WarningCode) -> None:
        if code in self._field_warnings:
            return
        self._field_warnings.append(code)
        warning = FieldWarning(
            code=code,
            record_index=self._record_count,
            field_index=len(self._fields),
            message=code.message,
        )
        self._raised.append(warning)
        logger.warning(
            "record %d, field %d: %s (%s)",
            warning.record_index,
            warning.field_index,
            warning.message,
            code.value,
        )

    def _take_warnings(self) -> List[FieldWarning]:
        raised, self._raised = self._raised, []
        return raised


def iter_records(chunks: Iterable[str], config: Optional[ParserConfig] = None) -> Iterator[Record]:
    """Lazily parse an iterable of text chunks as one continuous input."""
    parser = CsvParser(config)
    for chunk in chunks:
        parser.feed(chunk)
        yield from parser.records()
    parser.signal_end_of_input()
    yield from parser.records()


def parse_text(text: str, config: Optional[ParserConfig] = None) -> List[Record]:
    return list(CsvParser(config).parse(text))
