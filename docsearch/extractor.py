"""
Extractor - Plain text extraction from the supported file formats.

Format dispatch is a lookup table (file type -> extractor method), so a new
format is one table entry plus one method. Every extractor opens the file in
a `with` block, so handles are released on success and on failure alike.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict

import docx
from docx.table import Table
from pypdf import PdfReader

from .config import get_config, SearchConfig
from .errors import ExtractionError


logger = logging.getLogger(__name__)


class Extractor:
    """
    Text extractor for plain text, Word (.docx) and PDF files.

    Raises ExtractionError for malformed documents; callers decide how to
    recover (the pipeline indexes the file with empty content).
    """

    # Rich document formats: file type -> extractor method name
    DOCUMENT_EXTRACTORS: Dict[str, str] = {
        "docx": "_extract_docx",
        "pdf": "_extract_pdf",
    }

    def __init__(self, config: SearchConfig | None = None):
        self.config = config or get_config()
        self._executor: ThreadPoolExecutor | None = None

        self._dispatch: Dict[str, Callable[[Path], str]] = {
            file_type: self._extract_text for file_type in self.config.text_types
        }
        for file_type in self.config.document_types:
            method = self.DOCUMENT_EXTRACTORS.get(file_type)
            if method is None:
                raise ValueError(
                    f"No extractor for document type {file_type!r}; "
                    f"known types: {', '.join(sorted(self.DOCUMENT_EXTRACTORS))}"
                )
            self._dispatch[file_type] = getattr(self, method)

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.extractor_concurrency,
                thread_name_prefix="extractor"
            )
        return self._executor

    def supports(self, file_type: str) -> bool:
        return file_type.lower() in self._dispatch

    def extract(self, path: Path, file_type: str) -> str:
        """
        Extract the text of one file.

        Raises:
            ExtractionError: Unsupported type, unreadable or malformed file
        """
        extractor = self._dispatch.get(file_type.lower())
        if extractor is None:
            raise ExtractionError(path, file_type, "no extractor for this type")

        try:
            return extractor(path)
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(path, file_type, str(e) or type(e).__name__) from e

    async def extract_file(self, path: Path, file_type: str) -> str:
        """Extract text in the thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._get_executor(), self.extract, path, file_type
        )

    def _extract_text(self, path: Path) -> str:
        """Read raw bytes and decode as UTF-8, without newline translation."""
        with open(path, "rb") as f:
            return f.read().decode("utf-8", errors="replace")

    def _extract_docx(self, path: Path) -> str:
        """Concatenate paragraph and table text of a Word document in body order."""
        with open(path, "rb") as f:
            document = docx.Document(f)
            blocks = []
            for block in document.iter_inner_content():
                if isinstance(block, Table):
                    blocks.append(self._table_text(block))
                else:
                    blocks.append(block.text)
            return "\n".join(blocks)

    @staticmethod
    def _table_text(table: Table) -> str:
        """One line per row, cells separated by tabs; merged cells appear once."""
        rows = []
        for row in table.rows:
            seen = set()
            cells = []
            for cell in row.cells:
                if id(cell._tc) in seen:
                    continue
                seen.add(id(cell._tc))
                cells.append(cell.text)
            rows.append("\t".join(cells))
        return "\n".join(rows)

    def _extract_pdf(self, path: Path) -> str:
        """Concatenate page text of a PDF in page order."""
        with open(path, "rb") as f:
            reader = PdfReader(f)
            text_parts = []
            for number, page in enumerate(reader.pages, start=1):
                try:
                    text = page.extract_text()
                except Exception as e:
                    # A bad page shortens the result instead of losing the file
                    logger.warning(f"Skipping page {number} of {path}: {e}")
                    continue
                if text:
                    text_parts.append(text)
            return "\n".join(text_parts)

    def close(self):
        """Shutdown the thread pool."""
        if self._executor:
            self._executor.shutdown(wait=False)
            self._executor = None
