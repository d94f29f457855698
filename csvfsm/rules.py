"""
Default dialect and warning rules.

This file keeps the parser's defaults and warning texts in one place.
"""

DEFAULT_FIELD_SEPARATORS = (",",)
# CRLF first: a CR followed by LF is one line break, never two
DEFAULT_LINE_SEPARATORS = ("\r\n", "\r", "\n")
DEFAULT_QUOTE_CHAR = '"'

WARNING_MESSAGES = {
    "W1": "quoted field is missing its closing quote",
    "W2": "quoted field contains a quote that is not properly escaped",
}

UPLOAD_CHUNK_SIZE = 64 * 1024
