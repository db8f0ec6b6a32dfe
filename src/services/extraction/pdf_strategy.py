"""Extraction strategy for PDF documents.

Opens the PDF from memory with PyMuPDF (fitz) and walks pages 1..N in
order.  Each page's words are joined with single spaces, pages are joined
with a newline, and the result is trimmed.  Scanned PDFs without a text
layer therefore yield an empty string, which the extractor reports as an
:class:`~src.utils.errors.ExtractionError`.
"""

from __future__ import annotations

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from src.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

# Index of the word text inside a get_text("words") tuple:
# (x0, y0, x1, y1, word, block_no, line_no, word_no)
_WORD_TEXT = 4


class PDFTextStrategy:
    """Extracts plain text from PDF bytes."""

    def extract(self, data: bytes) -> str:
        """Return the text of every page, one line per page.

        Raises
        ------
        ExtractionError
            If the bytes cannot be opened as a PDF.
        """
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            logger.error("pdf_open_failed", error=str(exc))
            raise ExtractionError(message=f"Unable to open PDF: {exc}") from exc

        page_texts: list[str] = []
        try:
            for page_num in range(len(doc)):
                words = doc[page_num].get_text("words")
                page_texts.append(" ".join(word[_WORD_TEXT] for word in words))
        finally:
            doc.close()

        text = "\n".join(page_texts).strip()
        logger.debug("pdf_text_extracted", pages=len(page_texts), chars=len(text))
        return text
