"""Read and write the quote-delimited text used by the activity report."""

import logging
from typing import Any, List, Sequence, Tuple, TypedDict

logger = logging.getLogger(__name__)

QUOTE = '"'
SEPARATOR = ","
NEWLINE = "\n"
CARRIAGE_RETURN = "\r"

ReportRow = Tuple[str, ...]


class ParseWarning(TypedDict):
    """A malformed-input condition found while scanning."""
    kind: str
    line: int
    column: int
    message: str


def _warning(kind: str, line: int, column: int, message: str) -> ParseWarning:
    logger.error("Line %d, column %d: %s", line, column, message)
    return ParseWarning(kind=kind, line=line, column=column, message=message)


def parse_quoted_csv(content: str) -> Tuple[List[ReportRow], List[ParseWarning]]:
    """
    Parse text where every field is wrapped in double quotes.

    Quotes are the only field boundary: separators between fields are
    ignored, a newline outside quotes ends the row and carriage returns
    outside quotes are dropped. Nothing is raised for bad input; every
    problem is returned as a warning alongside whatever rows could be read.

    Parameters
    ----------
    content : str
        Raw report text

    Returns
    -------
    Tuple[List[ReportRow], List[ParseWarning]]
        Tuple containing:
        - Rows in input order, each a tuple of field values
        - Malformed-input warnings, empty when the text was well formed
    """
    rows: List[ReportRow] = []
    warnings: List[ParseWarning] = []
    cur_line: List[str] = []
    cur_entry: List[str] = []
    inside_quotes = False
    line_no = 1
    column = 0

    for char in content:
        column += 1
        if char == QUOTE:
            if inside_quotes:
                cur_line.append("".join(cur_entry))
                cur_entry = []
            inside_quotes = not inside_quotes
        elif inside_quotes:
            cur_entry.append(char)
            if char == NEWLINE:
                line_no += 1
                column = 0
        elif char == SEPARATOR or char == CARRIAGE_RETURN:
            continue
        elif char == NEWLINE:
            rows.append(tuple(cur_line))
            cur_line = []
            line_no += 1
            column = 0
        else:
            warnings.append(_warning(
                "unexpected-character",
                line_no,
                column,
                f"Unexpected text found: {char!r}"
            ))

    if inside_quotes:
        warnings.append(_warning(
            "unterminated-quote",
            line_no,
            column,
            f"Input ended inside a quoted field: {''.join(cur_entry)!r}"
        ))
    elif cur_line:
        warnings.append(_warning(
            "unterminated-row",
            line_no,
            column,
            f"Input ended without a final newline after row {cur_line!r}"
        ))
        rows.append(tuple(cur_line))

    logger.debug("Parsed %d rows with %d warnings", len(rows), len(warnings))
    return rows, warnings


def build_csv(spreadsheet: Sequence[Sequence[Any]]) -> str:
    """
    Build quote-wrapped CSV text out of a spreadsheet.

    Embedded double quotes are not escaped; cell values must not contain
    them.
    """
    csv_rows = []
    for row in spreadsheet:
        csv_rows.append(SEPARATOR.join(f"{QUOTE}{cell}{QUOTE}" for cell in row))
    return NEWLINE.join(csv_rows)
