"""Text extraction facade: upload validation plus per-type strategy dispatch.

The extractor is synchronous (PyMuPDF and python-docx are blocking
libraries); the pipeline runs it through ``asyncio.to_thread``.
"""

from __future__ import annotations

from typing import Protocol

import structlog

from src.config.settings import Settings
from src.models.document import UploadedFile
from src.services.extraction.pdf_strategy import PDFTextStrategy
from src.services.extraction.plain_text_strategy import PlainTextStrategy
from src.services.extraction.word_strategy import WordDocumentStrategy
from src.utils.errors import ExtractionError, FileTooLargeError, UnsupportedFormatError


class ExtractionStrategy(Protocol):
    def extract(self, data: bytes) -> str: ...


class TextExtractor:
    """Turns an :class:`UploadedFile` into plain text.

    Parameters
    ----------
    settings:
        Supplies the supported content types and the upload size limit.
    strategies:
        Optional override of the content-type -> strategy table, mainly
        for tests.  Defaults cover every supported content type.
    """

    def __init__(
        self,
        settings: Settings,
        strategies: dict[str, ExtractionStrategy] | None = None,
    ) -> None:
        self._settings = settings
        self._logger = structlog.get_logger(logger_name=__name__)
        if strategies is None:
            pdf = PDFTextStrategy()
            plain = PlainTextStrategy()
            word = WordDocumentStrategy()
            strategies = {
                "application/pdf": pdf,
                "text/plain": plain,
                "text/markdown": plain,
                "application/msword": word,
                "application/vnd.openxmlformats-officedocument.wordprocessingml.document": word,
            }
        self._strategies = strategies

    def validate(self, file: UploadedFile) -> None:
        """Check the declared type and size of *file*.

        Raises
        ------
        UnsupportedFormatError
            If the declared content type is not supported.
        FileTooLargeError
            If the file exceeds ``settings.max_upload_bytes``.
        """
        if file.content_type not in self._settings.supported_content_types:
            raise UnsupportedFormatError(
                message=f"Unsupported file format: {file.content_type or 'unknown'}"
            )
        limit = self._settings.max_upload_bytes
        if file.file_size > limit:
            raise FileTooLargeError(
                message=(
                    f"File is too large ({file.file_size} bytes). "
                    f"Maximum size: {limit // (1024 * 1024)} MB"
                )
            )

    def extract(self, file: UploadedFile) -> str:
        """Extract the text of *file* using the strategy for its declared type.

        Raises
        ------
        UnsupportedFormatError
            If no strategy handles the declared content type.
        ExtractionError
            If the strategy fails or produces no text.
        """
        strategy = self._strategies.get(file.content_type)
        if strategy is None:
            raise UnsupportedFormatError(
                message=f"Unsupported file format: {file.content_type or 'unknown'}"
            )
        if file.data is None:
            raise ExtractionError(message=f"No content loaded for {file.filename}")

        text = strategy.extract(file.data)
        if not text:
            raise ExtractionError(message=f"No text could be extracted from {file.filename}")

        self._logger.info(
            "text_extracted",
            filename=file.filename,
            content_type=file.content_type,
            chars=len(text),
        )
        return text
