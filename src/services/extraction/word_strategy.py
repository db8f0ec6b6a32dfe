"""Extraction strategy for word-processor documents.

OOXML ``.docx`` files are zip packages; their paragraphs are read with
python-docx, which parses the XML inside the archive.  Anything else
declared as a word-processor type (legacy binary ``.doc``, HTML or XML
exports saved with a ``.doc`` name) goes through the best-effort path:
decode as text, strip markup tags, collapse whitespace.

The best-effort path is weak by nature; binary ``.doc`` files mostly come
out as noise.  It is kept so such uploads degrade instead of failing outright.
"""

from __future__ import annotations

import io
import zipfile

import structlog
from docx import Document as DocxDocument

from src.utils.errors import ExtractionError
from src.utils.text_normalizer import strip_markup

logger = structlog.get_logger(logger_name=__name__)


class WordDocumentStrategy:
    """Extracts text from .docx packages, falling back to tag stripping."""

    def extract(self, data: bytes) -> str:
        if zipfile.is_zipfile(io.BytesIO(data)):
            return self._extract_docx(data)
        return self._extract_best_effort(data)

    @staticmethod
    def _extract_docx(data: bytes) -> str:
        try:
            doc = DocxDocument(io.BytesIO(data))
        except Exception as exc:
            logger.error("docx_open_failed", error=str(exc))
            raise ExtractionError(message=f"Unable to read Word document: {exc}") from exc

        paragraphs = [para.text.strip() for para in doc.paragraphs if para.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    paragraphs.append(" ".join(cells))

        logger.debug("docx_text_extracted", paragraphs=len(paragraphs))
        return "\n".join(paragraphs)

    @staticmethod
    def _extract_best_effort(data: bytes) -> str:
        text = data.decode("utf-8", errors="replace")
        logger.info("word_best_effort_extraction", bytes=len(data))
        return strip_markup(text)
