from __future__ import annotations

from enum import Enum
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .rules import (
    DEFAULT_FIELD_SEPARATORS,
    DEFAULT_LINE_SEPARATORS,
    DEFAULT_QUOTE_CHAR,
    WARNING_MESSAGES,
)


class QuoteStatus(str, Enum):
    UNQUOTED = "unquoted"
    QUOTED = "quoted"
    UNTERMINATED = "unterminated"


class WarningCode(str, Enum):
    MISSING_CLOSING_QUOTE = "W1"
    UNESCAPED_QUOTE = "W2"

    @property
    def message(self) -> str:
        return WARNING_MESSAGES[self.value]


class ParserConfig(BaseModel):
    """
    Dialect for a CsvParser.

    Rules:
    - Separator sets must be non-empty and hold no empty strings.
    - Duplicates are dropped; configured order is kept (it breaks ties
      between equally long matches).
    - A string cannot be both a field and a line separator.
    - The quote character is a single character that no separator contains.
    """

    model_config = ConfigDict(frozen=True)

    field_separators: Tuple[str, ...] = DEFAULT_FIELD_SEPARATORS
    line_separators: Tuple[str, ...] = DEFAULT_LINE_SEPARATORS
    quote_char: str = DEFAULT_QUOTE_CHAR

    @field_validator("field_separators", "line_separators", mode="before")
    @classmethod
    def _wrap_single_separator(cls, value):
        if isinstance(value, str):
            return (value,)
        return value

    @field_validator("field_separators", "line_separators")
    @classmethod
    def _check_separators(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if not value:
            raise ValueError("at least one separator is required")
        if any(sep == "" for sep in value):
            raise ValueError("separators must not be empty strings")
        return tuple(dict.fromkeys(value))

    @field_validator("quote_char")
    @classmethod
    def _check_quote_char(cls, value: str) -> str:
        if len(value) != 1:
            raise ValueError("quote_char must be exactly one character")
        return value

    @model_validator(mode="after")
    def _check_overlaps(self) -> "ParserConfig":
        shared = set(self.field_separators) & set(self.line_separators)
        if shared:
            raise ValueError(f"separators used as both field and line separator: {sorted(shared)!r}")
        for sep in self.field_separators + self.line_separators:
            if self.quote_char in sep:
                raise ValueError(f"separator {sep!r} contains the quote character {self.quote_char!r}")
        return self

    @property
    def separator_chars(self) -> frozenset:
        return frozenset("".join(self.field_separators + self.line_separators))


class ParsedField(BaseModel):
    value: str = ""
    quoting: QuoteStatus = QuoteStatus.UNQUOTED
    warnings: List[WarningCode] = Field(default_factory=list)

    @property
    def is_quoted(self) -> bool:
        # a field opened with a quote stays quoted even when unterminated
        return self.quoting is not QuoteStatus.UNQUOTED


class FieldWarning(BaseModel):
    code: WarningCode
    record_index: int
    field_index: int
    message: str


class Record(BaseModel):
    index: int
    fields: List[ParsedField] = Field(default_factory=list)

    @property
    def values(self) -> List[str]:
        return [f.value for f in self.fields]

    @property
    def warnings(self) -> List[FieldWarning]:
        return [
            FieldWarning(
                code=code,
                record_index=self.index,
                field_index=i,
                message=code.message,
            )
            for i, f in enumerate(self.fields)
            for code in f.warnings
        ]


class ParseSummary(BaseModel):
    records: int = 0
    max_fields: int = 0
    warnings: int = 0
    quoted_fields: int = 0


class ParsedRecord(BaseModel):
    index: int
    values: List[str]
    quoting: List[QuoteStatus]
    warnings: List[FieldWarning] = Field(default_factory=list)


class ParseResponse(BaseModel):
    summary: ParseSummary
    records: List[ParsedRecord] = Field(default_factory=list)


class HealthResponse(BaseModel):
    ok: bool = True
