import codecs
import logging
from typing import List, Optional

from fastapi import FastAPI, UploadFile, File, HTTPException, Query
from pydantic import ValidationError

from .models import HealthResponse, ParsedRecord, ParseResponse, ParseSummary, ParserConfig
from .parser import CsvParser
from .rules import UPLOAD_CHUNK_SIZE

logger = logging.getLogger(__name__)

app = FastAPI(
    title="csv-fsm",
    description="Streaming RFC 4180 CSV parsing with per-field quoting warnings",
    version="0.1.0",
)


def _build_config(
    field_separator: Optional[List[str]],
    line_separator: Optional[List[str]],
    quote_char: Optional[str],
) -> ParserConfig:
    options = {}
    if field_separator:
        options["field_separators"] = field_separator
    if line_separator:
        options["line_separators"] = line_separator
    if quote_char is not None:
        options["quote_char"] = quote_char
    try:
        return ParserConfig(**options)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=f"Invalid parser options: {e.errors()[0]['msg']}")


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.post("/parse", response_model=ParseResponse)
async def parse_csv(
    file: UploadFile = File(...),
    field_separator: Optional[List[str]] = Query(default=None),
    line_separator: Optional[List[str]] = Query(default=None),
    quote_char: Optional[str] = Query(default=None),
):
    if not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=422, detail="Only CSV files are supported")

    parser = CsvParser(_build_config(field_separator, line_separator, quote_char))
    # utf-8-sig drops a leading BOM; chunks may split multi-byte characters
    decoder = codecs.getincrementaldecoder("utf-8-sig")(errors="strict")
    records: List[ParsedRecord] = []
    summary = ParseSummary()

    def collect():
        for record in parser.records():
            records.append(
                ParsedRecord(
                    index=record.index,
                    values=record.values,
                    quoting=[f.quoting for f in record.fields],
                    warnings=record.warnings,
                )
            )
            summary.records += 1
            summary.max_fields = max(summary.max_fields, len(record.fields))
            summary.warnings += len(record.warnings)
            summary.quoted_fields += sum(1 for f in record.fields if f.is_quoted)

    try:
        while True:
            chunk = await file.read(UPLOAD_CHUNK_SIZE)
            if not chunk:
                break
            parser.feed(decoder.decode(chunk))
            collect()
        parser.feed(decoder.decode(b"", final=True))
    except UnicodeDecodeError:
        raise HTTPException(status_code=422, detail="CSV content must be UTF-8 encoded")

    parser.signal_end_of_input()
    collect()

    logger.info(
        "parsed %s: %d records, %d warnings",
        file.filename,
        summary.records,
        summary.warnings,
    )
    return ParseResponse(summary=summary, records=records)
