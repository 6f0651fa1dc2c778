"""Tabular text documents and the loader that reads them from disk."""
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import structlog

from tablerag.errors import DocumentLoadError, DocumentNotFound

logger = structlog.get_logger()


@dataclass(frozen=True)
class Document:
    """A source document: its path tag, full text and line-level rows."""

    path: str
    raw_text: str
    rows: Tuple[str, ...]

    @classmethod
    def from_text(cls, path: str, raw_text: str) -> "Document":
        """Build a document, splitting rows on line boundaries."""
        return cls(path=path, raw_text=raw_text, rows=split_rows(raw_text))


def split_rows(raw_text: str) -> Tuple[str, ...]:
    """Split text into rows on LF or CRLF line endings only.

    Other Unicode line breaks (form feed, U+2028, ...) stay inside the row,
    and a final line terminator does not produce an empty trailing row.
    """
    pieces = raw_text.split("\n")
    last = pieces.pop()
    rows = [p[:-1] if p.endswith("\r") else p for p in pieces]
    if last:
        rows.append(last)
    return tuple(rows)


def load_document(path: Union[str, Path]) -> Document:
    """Read a document from disk.

    Args:
        path: File path of a CSV or other line-delimited text file

    Returns:
        Document with raw text and one row per line

    Raises:
        DocumentNotFound: If the path does not exist
        DocumentLoadError: If the file cannot be read or decoded
    """
    file_path = Path(path)

    if not file_path.exists():
        raise DocumentNotFound(f"Document not found: {file_path}")

    try:
        # newline="" keeps the text exactly as stored
        with open(file_path, "r", encoding="utf-8", newline="") as f:
            raw_text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error("document_read_failed", path=str(file_path), error=str(e))
        raise DocumentLoadError(f"Failed to read {file_path}: {e}") from e

    document = Document.from_text(str(file_path), raw_text)

    logger.debug("document_loaded", path=document.path, rows=len(document.rows))

    return document
