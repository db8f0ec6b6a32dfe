"""Orchestrator for the document-to-study-material pipeline.

Runs one uploaded document through extraction, optional chunking, the four
generation steps per chunk and, for multi-chunk documents, the merger::

    IDLE -> EXTRACTING -> GENERATING ----------------> DONE
                       -> CHUNKING -> GENERATING -> MERGING -> DONE

Every phase change goes through :meth:`PipelineRun.advance`, which rejects
illegal transitions.  The run snapshot is local to each :meth:`process`
call, so one pipeline instance can serve concurrent uploads; the final
snapshot is attached to the result as ``result.run``.  Any failure moves
the run to FAILED, logs it, and re-raises the original exception unchanged.

Chunks are processed strictly one after another with a fixed pause between
them to stay under provider rate limits.  The pause uses an injectable
``sleep`` so tests can count pauses without waiting.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from src.config.settings import Settings
from src.models.document import UploadedFile
from src.models.pipeline import (
    AggregatedResult,
    ChunkResult,
    PipelinePhase,
    PipelineRun,
    ProcessingOptions,
)
from src.pipeline.cancellation import CancellationToken
from src.pipeline.progress_tracker import ProgressTracker
from src.services.chunker import TextChunker
from src.services.extraction import TextExtractor
from src.services.generation_client import GenerationClient
from src.services.merger import ResultMerger
from src.utils.errors import DocumentTooShortError
from src.utils.logging import get_logger

# Share of the progress bar given to generation; the rest covers
# extraction (before) and merging (after).
_GENERATION_START = 10.0
_GENERATION_SPAN = 80.0


class DocumentPipeline:
    """Turns one uploaded file into an :class:`AggregatedResult`.

    All collaborators are injected; the pipeline never builds its own and
    holds no per-run state.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        chunker: TextChunker,
        generation_client: GenerationClient,
        merger: ResultMerger,
        settings: Settings,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        progress_tracker: ProgressTracker | None = None,
    ) -> None:
        self._extractor = extractor
        self._chunker = chunker
        self._generation = generation_client
        self._merger = merger
        self._chunk_size = settings.chunk_size
        self._chunk_pause = settings.chunk_pause_seconds
        self._min_text_length = settings.min_text_length
        self._sleep = sleep
        self._progress_tracker = progress_tracker
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def process(
        self,
        file: UploadedFile,
        options: ProcessingOptions | None = None,
        cancel_token: CancellationToken | None = None,
        run_id: str | None = None,
    ) -> AggregatedResult:
        """Process *file* and return its aggregated study material.

        *run_id* names the run in logs and progress updates; a fresh id is
        generated when omitted.

        Raises
        ------
        UnsupportedFormatError, FileTooLargeError
            If the upload fails validation.
        NotConfiguredError
            If no generation credential is configured.
        ExtractionError, DocumentTooShortError
            If no usable text could be extracted.
        GenerationAPIError, GenerationSchemaError
            If any generation step fails.
        PipelineCancelledError
            If *cancel_token* was cancelled.
        """
        options = options or ProcessingOptions()
        token = cancel_token or CancellationToken()
        if run_id is None:
            run = PipelineRun(filename=file.filename)
        else:
            run = PipelineRun(run_id=run_id, filename=file.filename)

        self._logger.info(
            "pipeline_started",
            run_id=run.run_id,
            filename=file.filename,
            content_type=file.content_type,
            file_size=file.file_size,
        )
        try:
            self._extractor.validate(file)
            self._generation.ensure_configured()

            token.raise_if_cancelled("extraction")
            run = await self._advance(run, PipelinePhase.EXTRACTING, 0.0, "Extracting text")
            text = await asyncio.to_thread(self._extractor.extract, file)
            if len(text.strip()) < self._min_text_length:
                raise DocumentTooShortError(
                    message=(
                        f"Document is too short or empty ({len(text.strip())} characters, "
                        f"minimum {self._min_text_length})"
                    )
                )

            if len(text) <= self._chunk_size:
                chunks = [text]
            else:
                run = await self._advance(run, PipelinePhase.CHUNKING, 5.0, "Splitting document")
                chunks = self._chunker.split(text, self._chunk_size)
                if not chunks:
                    raise DocumentTooShortError(
                        message="Document contains no sentences to study"
                    )
            run = run.model_copy(update={"total_chunks": len(chunks)})

            run = await self._advance(
                run,
                PipelinePhase.GENERATING,
                _GENERATION_START,
                f"Generating study material for {len(chunks)} chunk(s)",
            )
            results: list[ChunkResult] = []
            for index, chunk in enumerate(chunks):
                if index > 0:
                    token.raise_if_cancelled(f"chunk {index + 1}")
                    await self._sleep(self._chunk_pause)

                results.append(await self._generate_chunk(index, chunk, options, token))

                run = run.model_copy(update={"chunks_completed": index + 1})
                self._logger.info(
                    "chunk_processed",
                    run_id=run.run_id,
                    chunk=index + 1,
                    total_chunks=len(chunks),
                )
                await self._report(
                    run,
                    PipelinePhase.GENERATING,
                    _GENERATION_START + _GENERATION_SPAN * (index + 1) / len(chunks),
                    f"Chunk {index + 1}/{len(chunks)} done",
                )

            if len(results) > 1:
                run = await self._advance(run, PipelinePhase.MERGING, 95.0, "Merging chunk results")
            merged = self._merger.merge(results, self._generation.resolve_model(options.model))
            run = await self._advance(run, PipelinePhase.DONE, 100.0, "Processing complete")
        except Exception as exc:
            await self._fail(run, exc)
            raise

        result = merged.model_copy(
            update={
                "metadata": merged.metadata.model_copy(
                    update={
                        "content_length": len(text),
                        "flashcard_count": options.flashcard_count,
                        "quiz_count": options.quiz_count,
                    }
                ),
                "source_text": text,
                "run": run,
            }
        )
        self._logger.info(
            "pipeline_complete",
            run_id=run.run_id,
            total_chunks=result.metadata.total_chunks,
            merged=result.metadata.merged,
            flashcards=len(result.flashcards),
            quiz=len(result.quiz),
        )
        return result

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def _generate_chunk(
        self,
        index: int,
        text: str,
        options: ProcessingOptions,
        token: CancellationToken,
    ) -> ChunkResult:
        """Run analyze -> summarize -> flashcards -> quiz for one chunk."""
        model = options.model

        token.raise_if_cancelled("analysis")
        analysis = await self._generation.analyze(text, model=model)

        token.raise_if_cancelled("summary")
        summary = await self._generation.summarize(analysis, model=model)

        token.raise_if_cancelled("flashcards")
        flashcards = await self._generation.make_flashcards(
            analysis, count=options.flashcard_count, model=model
        )

        token.raise_if_cancelled("quiz")
        quiz = await self._generation.make_quiz(analysis, count=options.quiz_count, model=model)

        return ChunkResult(
            chunk_index=index,
            content_length=len(text),
            analysis=analysis,
            summary=summary,
            flashcards=flashcards,
            quiz=quiz,
        )

    # ------------------------------------------------------------------
    # State and progress
    # ------------------------------------------------------------------

    async def _advance(
        self, run: PipelineRun, phase: PipelinePhase, progress: float, message: str
    ) -> PipelineRun:
        run = run.advance(phase, detail=message)
        await self._report(run, phase, progress, message)
        return run

    async def _fail(self, run: PipelineRun, exc: Exception) -> None:
        if run.is_terminal:
            return
        failed = run.advance(PipelinePhase.FAILED, detail=str(exc))
        self._logger.error(
            "pipeline_failed",
            run_id=run.run_id,
            phase=run.phase.value,
            phases=[t.phase.value for t in failed.history],
            chunks_completed=run.chunks_completed,
            total_chunks=run.total_chunks,
            stage=getattr(exc, "stage", "processing"),
            error_type=type(exc).__name__,
            error=str(exc),
        )
        await self._report(failed, PipelinePhase.FAILED, 0.0, str(exc))

    async def _report(
        self, run: PipelineRun, phase: PipelinePhase, progress: float, message: str
    ) -> None:
        if self._progress_tracker is None:
            return
        await self._progress_tracker.update(run.run_id, phase, progress, message)
