"""Integration tests for DocumentPipeline -- real extractor, chunker and merger.

Only the LLM provider and the inter-chunk sleep are mocked, so these tests
exercise the full extraction -> chunking -> generation -> merge path.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from structlog.testing import capture_logs

from src.config.settings import Settings
from src.models.document import UploadedFile
from src.models.pipeline import AggregatedResult, PipelinePhase, ProcessingOptions
from src.pipeline.cancellation import CancellationToken
from src.pipeline.orchestrator import DocumentPipeline
from src.pipeline.progress_tracker import ProgressTracker
from src.services.chunker import TextChunker
from src.services.extraction import TextExtractor
from src.services.generation_client import GenerationClient
from src.services.merger import MERGED_SUMMARY_TITLE, ResultMerger
from src.utils.errors import (
    DocumentTooShortError,
    ExtractionError,
    GenerationAPIError,
    GenerationSchemaError,
    NotConfiguredError,
    PipelineCancelledError,
    UnsupportedFormatError,
)

_OPERATIONS = ["analyze", "summarize", "make_flashcards", "make_quiz"]


def _build_pipeline(
    llm: MagicMock,
    settings: Settings,
    sleep: AsyncMock | None = None,
    progress_tracker: ProgressTracker | None = None,
) -> DocumentPipeline:
    return DocumentPipeline(
        extractor=TextExtractor(settings),
        chunker=TextChunker(),
        generation_client=GenerationClient(llm, settings, sleep=AsyncMock()),
        merger=ResultMerger(),
        settings=settings,
        sleep=sleep or AsyncMock(),
        progress_tracker=progress_tracker,
    )


def _text_upload(text: str, filename: str = "notes.txt") -> UploadedFile:
    return UploadedFile.from_bytes(text.encode("utf-8"), filename=filename, content_type="text/plain")


def _phases(result: AggregatedResult) -> list[PipelinePhase]:
    assert result.run is not None
    return [t.phase for t in result.run.history]


def _failure(logs: list[dict[str, Any]]) -> dict[str, Any]:
    (entry,) = [e for e in logs if e["event"] == "pipeline_failed"]
    return entry


# ======================================================================
# Scenario A: small file, single chunk
# ======================================================================


class TestSingleChunk:
    @pytest.mark.asyncio
    async def test_small_file_is_one_chunk(
        self,
        mock_llm: MagicMock,
        settings: Settings,
        text_factory: Callable[[int], str],
        called_operations: Callable[[MagicMock], list[str]],
    ) -> None:
        sleep = AsyncMock()
        pipeline = _build_pipeline(mock_llm, settings, sleep)

        result = await pipeline.process(_text_upload(text_factory(200)), ProcessingOptions())

        assert result.metadata.total_chunks == 1
        assert result.metadata.merged is False
        assert result.metadata.content_length == 200
        assert result.metadata.model == "gpt-4-turbo-preview"
        assert result.metadata.flashcard_count == 10
        assert result.summary.title == "Photosynthesis in brief"
        assert 0 < len(result.flashcards) <= 10
        assert 0 < len(result.quiz) <= 10
        assert result.source_text == text_factory(200)
        assert called_operations(mock_llm) == _OPERATIONS
        sleep.assert_not_awaited()
        assert _phases(result) == [
            PipelinePhase.EXTRACTING,
            PipelinePhase.GENERATING,
            PipelinePhase.DONE,
        ]

    @pytest.mark.asyncio
    async def test_text_exactly_at_budget_is_not_chunked(
        self,
        mock_llm: MagicMock,
        settings: Settings,
        text_factory: Callable[[int], str],
    ) -> None:
        pipeline = _build_pipeline(mock_llm, settings)

        result = await pipeline.process(_text_upload(text_factory(3000)))

        assert result.metadata.total_chunks == 1
        assert PipelinePhase.CHUNKING not in _phases(result)


# ======================================================================
# Scenario B: 9,500 characters with a 3,000 character budget
# ======================================================================


class TestMultiChunk:
    @pytest.mark.asyncio
    async def test_long_text_is_chunked_and_merged(
        self,
        mock_llm: MagicMock,
        settings: Settings,
        text_factory: Callable[[int], str],
        called_operations: Callable[[MagicMock], list[str]],
    ) -> None:
        text = text_factory(9500)
        expected_chunks = len(TextChunker().split(text, settings.chunk_size))
        sleep = AsyncMock()
        pipeline = _build_pipeline(mock_llm, settings, sleep)

        result = await pipeline.process(_text_upload(text))

        assert 3 <= expected_chunks <= 4
        assert result.metadata.total_chunks == expected_chunks
        assert result.metadata.merged is True
        assert result.metadata.content_length == 9500
        assert result.summary.title == MERGED_SUMMARY_TITLE
        assert len(result.flashcards) == 5 * expected_chunks
        assert len(result.quiz) == 5 * expected_chunks
        assert called_operations(mock_llm) == _OPERATIONS * expected_chunks
        assert sleep.await_count == expected_chunks - 1
        assert all(call.args == (1.0,) for call in sleep.await_args_list)
        assert result.run is not None
        assert result.run.chunks_completed == expected_chunks
        assert result.run.phase == PipelinePhase.DONE
        assert _phases(result) == [
            PipelinePhase.EXTRACTING,
            PipelinePhase.CHUNKING,
            PipelinePhase.GENERATING,
            PipelinePhase.MERGING,
            PipelinePhase.DONE,
        ]

    @pytest.mark.asyncio
    async def test_each_chunk_is_sent_once_in_order(
        self,
        mock_llm: MagicMock,
        settings: Settings,
        text_factory: Callable[[int], str],
    ) -> None:
        text = text_factory(9500)
        chunks = TextChunker().split(text, settings.chunk_size)

        await _build_pipeline(mock_llm, settings).process(_text_upload(text))

        analyzed = [
            call.kwargs["user_prompt"]
            for call in mock_llm.complete.await_args_list
            if call.kwargs["user_prompt"].startswith("Analyse")
        ]
        assert len(analyzed) == len(chunks)
        for prompt, chunk in zip(analyzed, chunks):
            assert chunk in prompt

    @pytest.mark.asyncio
    async def test_chunk_failure_aborts_run(
        self,
        llm_factory: Callable[..., MagicMock],
        settings: Settings,
        text_factory: Callable[[int], str],
    ) -> None:
        llm = llm_factory({"make_quiz": GenerationAPIError("quota exceeded")})
        sleep = AsyncMock()
        pipeline = _build_pipeline(llm, settings, sleep)

        with capture_logs() as logs, pytest.raises(GenerationAPIError, match="quota exceeded"):
            await pipeline.process(_text_upload(text_factory(9500)))

        failure = _failure(logs)
        assert failure["phase"] == "GENERATING"
        assert failure["phases"][-1] == "FAILED"
        assert "quota exceeded" in failure["error"]
        assert failure["chunks_completed"] == 0
        assert failure["stage"] == "generation"
        sleep.assert_not_awaited()


# ======================================================================
# Scenario C: no credential
# ======================================================================


class TestNotConfigured:
    @pytest.mark.asyncio
    async def test_missing_credential_fails_before_any_call(
        self,
        llm_factory: Callable[..., MagicMock],
        settings: Settings,
        sample_text: str,
    ) -> None:
        llm = llm_factory(available=False)
        pipeline = _build_pipeline(llm, settings)

        with capture_logs() as logs, pytest.raises(NotConfiguredError):
            await pipeline.process(_text_upload(sample_text))

        llm.complete.assert_not_awaited()
        assert _failure(logs)["phases"] == ["FAILED"]

    @pytest.mark.asyncio
    async def test_real_provider_without_key(self, settings: Settings, sample_text: str) -> None:
        from src.main import build_pipeline

        unconfigured = settings.model_copy(update={"openai_api_key": "", "anthropic_api_key": ""})
        pipeline = build_pipeline(unconfigured)

        with pytest.raises(NotConfiguredError) as exc_info:
            await pipeline.process(_text_upload(sample_text))
        assert exc_info.value.stage == "configuration"


# ======================================================================
# Scenario D: text too short
# ======================================================================


class TestTooShort:
    @pytest.mark.asyncio
    async def test_short_text_rejected_without_generation(
        self, mock_llm: MagicMock, settings: Settings
    ) -> None:
        pipeline = _build_pipeline(mock_llm, settings)

        with capture_logs() as logs, pytest.raises(DocumentTooShortError):
            await pipeline.process(_text_upload("Only thirty characters here!!"))

        mock_llm.complete.assert_not_awaited()
        assert _failure(logs)["phases"] == ["EXTRACTING", "FAILED"]

    @pytest.mark.asyncio
    async def test_whitespace_padding_does_not_count(
        self, mock_llm: MagicMock, settings: Settings
    ) -> None:
        padded = "Short text." + " " * 100 + "\n" * 20

        with pytest.raises(DocumentTooShortError):
            await _build_pipeline(mock_llm, settings).process(_text_upload(padded))

    @pytest.mark.asyncio
    async def test_empty_file_is_extraction_error(
        self, mock_llm: MagicMock, settings: Settings
    ) -> None:
        with pytest.raises(ExtractionError):
            await _build_pipeline(mock_llm, settings).process(_text_upload(""))
        mock_llm.complete.assert_not_awaited()


# ======================================================================
# Scenario E: malformed generation response
# ======================================================================


class TestMalformedResponse:
    @pytest.mark.asyncio
    async def test_bad_analysis_json_stops_pipeline(
        self,
        llm_factory: Callable[..., MagicMock],
        settings: Settings,
        sample_text: str,
        called_operations: Callable[[MagicMock], list[str]],
    ) -> None:
        llm = llm_factory({"analyze": "Sure! Here is the analysis you asked for."})
        pipeline = _build_pipeline(llm, settings)

        with capture_logs() as logs, pytest.raises(GenerationSchemaError):
            await pipeline.process(_text_upload(sample_text))

        assert called_operations(llm) == ["analyze"]
        assert _failure(logs)["phases"][-1] == "FAILED"


# ======================================================================
# Validation, cancellation and progress
# ======================================================================


class TestValidationAndCancellation:
    @pytest.mark.asyncio
    async def test_unsupported_type_rejected_first(
        self, mock_llm: MagicMock, settings: Settings
    ) -> None:
        upload = UploadedFile.from_bytes(b"\x89PNG....", filename="x.png", content_type="image/png")

        with pytest.raises(UnsupportedFormatError):
            await _build_pipeline(mock_llm, settings).process(upload)
        mock_llm.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_before_start(
        self, mock_llm: MagicMock, settings: Settings, sample_text: str
    ) -> None:
        token = CancellationToken()
        token.cancel("user left")

        with pytest.raises(PipelineCancelledError, match="user left"):
            await _build_pipeline(mock_llm, settings).process(
                _text_upload(sample_text), cancel_token=token
            )
        mock_llm.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_between_chunks(
        self,
        mock_llm: MagicMock,
        settings: Settings,
        text_factory: Callable[[int], str],
        called_operations: Callable[[MagicMock], list[str]],
    ) -> None:
        token = CancellationToken()
        # Cancelled during the pause, so the next check is before chunk 2 analysis.
        sleep = AsyncMock(side_effect=lambda _seconds: token.cancel("user left"))
        pipeline = _build_pipeline(mock_llm, settings, sleep)

        with capture_logs() as logs, pytest.raises(PipelineCancelledError, match="before analysis"):
            await pipeline.process(_text_upload(text_factory(9500)), cancel_token=token)

        assert called_operations(mock_llm) == _OPERATIONS
        failure = _failure(logs)
        assert failure["chunks_completed"] == 1
        assert failure["phases"][-1] == "FAILED"

    @pytest.mark.asyncio
    async def test_progress_reported_to_tracker(
        self,
        mock_llm: MagicMock,
        settings: Settings,
        text_factory: Callable[[int], str],
    ) -> None:
        tracker = ProgressTracker()
        pipeline = _build_pipeline(mock_llm, settings, progress_tracker=tracker)

        result = await pipeline.process(_text_upload(text_factory(9500)), run_id="run-42")

        assert result.run is not None
        assert result.run.run_id == "run-42"
        status = tracker.get_status("run-42")
        assert status["phase"] == "DONE"
        assert status["progress"] == 100.0


# ======================================================================
# Shared pipeline instance
# ======================================================================


class TestConcurrentRuns:
    @pytest.mark.asyncio
    async def test_overlapping_runs_keep_their_own_state(
        self,
        mock_llm: MagicMock,
        settings: Settings,
        text_factory: Callable[[int], str],
    ) -> None:
        async def _yielding_sleep(_seconds: float) -> None:
            await asyncio.sleep(0)

        pipeline = DocumentPipeline(
            extractor=TextExtractor(settings),
            chunker=TextChunker(),
            generation_client=GenerationClient(mock_llm, settings, sleep=AsyncMock()),
            merger=ResultMerger(),
            settings=settings,
            sleep=_yielding_sleep,
        )
        small = text_factory(200)
        large = text_factory(9500)

        first, second = await asyncio.gather(
            pipeline.process(_text_upload(small, filename="a.txt")),
            pipeline.process(_text_upload(large, filename="b.txt")),
        )

        assert first.run is not None and second.run is not None
        assert first.run.run_id != second.run.run_id
        assert (first.run.filename, second.run.filename) == ("a.txt", "b.txt")
        assert first.source_text == small
        assert second.source_text == large
        assert _phases(first) == [
            PipelinePhase.EXTRACTING,
            PipelinePhase.GENERATING,
            PipelinePhase.DONE,
        ]
        assert _phases(second)[-2:] == [PipelinePhase.MERGING, PipelinePhase.DONE]
        assert second.run.chunks_completed == second.metadata.total_chunks

    @pytest.mark.asyncio
    async def test_identical_uploads_in_parallel(
        self, mock_llm: MagicMock, settings: Settings, text_factory: Callable[[int], str]
    ) -> None:
        pipeline = _build_pipeline(mock_llm, settings)
        text = text_factory(200)

        results = await asyncio.gather(
            pipeline.process(_text_upload(text)),
            pipeline.process(_text_upload(text)),
        )

        assert all(r.run is not None and r.run.phase == PipelinePhase.DONE for r in results)
        assert len({r.run.run_id for r in results if r.run is not None}) == 2


class TestNoSentences:
    @pytest.mark.asyncio
    async def test_punctuation_only_text_is_too_short(
        self, mock_llm: MagicMock, settings: Settings
    ) -> None:
        pipeline = _build_pipeline(mock_llm, settings)

        with capture_logs() as logs, pytest.raises(DocumentTooShortError) as exc_info:
            await pipeline.process(_text_upload("." * 3500))

        assert exc_info.value.stage == "extraction"
        mock_llm.complete.assert_not_awaited()
        assert _failure(logs)["phases"] == ["EXTRACTING", "CHUNKING", "FAILED"]
