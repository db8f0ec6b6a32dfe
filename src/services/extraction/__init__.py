"""Text extraction from uploaded study documents.

One strategy per family of declared content types:

    - PDFTextStrategy        - application/pdf (PyMuPDF page walk)
    - PlainTextStrategy      - text/plain, text/markdown
    - WordDocumentStrategy   - application/msword and OOXML .docx

:class:`TextExtractor` validates uploads and dispatches to the strategy
registered for the declared type.
"""

from src.services.extraction.pdf_strategy import PDFTextStrategy
from src.services.extraction.plain_text_strategy import PlainTextStrategy
from src.services.extraction.text_extractor import TextExtractor
from src.services.extraction.word_strategy import WordDocumentStrategy

__all__ = [
    "PDFTextStrategy",
    "PlainTextStrategy",
    "TextExtractor",
    "WordDocumentStrategy",
]
