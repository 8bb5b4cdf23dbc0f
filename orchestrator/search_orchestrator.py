"""
SearchOrchestrator - runs one question through the whole answering pipeline.

cache lookup -> intent analysis -> fan-out search -> extraction -> ranking
-> (thin-document enhancement) -> answer synthesis -> cache write
"""

import asyncio
import concurrent.futures
from dataclasses import replace
from typing import Callable

from api.search_client import SearchIndexClient
from api.verification import reset_request_token, set_request_token
from models.search_types import DocumentContent, SearchResult, SearchStep, StepName
from orchestrator.answer_synthesizer import AnswerSynthesizer
from orchestrator.cancellation import (
    CancellationController,
    CancellationToken,
    RunState,
    SessionRegistry,
)
from orchestrator.content_extractor import ContentExtractor
from orchestrator.errors import InvalidStateTransition, NoDocumentsError, SearchCancelledError
from orchestrator.intent_analyzer import QueryIntentAnalyzer
from orchestrator.relevance_ranker import RelevanceRanker
from orchestrator.response_cache import ResponseCache
from orchestrator.search_fanout import SearchFanOut
from tools.page_fetcher import PageFetcher
from utils.logger import bind_run, get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[SearchStep], None]


class SearchOrchestrator:
    """
    Coordinates the pipeline for one caller.

    Collaborators are injected; process-wide singletons (cache, session
    registry) come from orchestrator.factory. Each ``perform_search`` call is
    one run with its own CancellationController.
    """

    def __init__(
        self,
        analyzer: QueryIntentAnalyzer,
        fanout: SearchFanOut,
        extractor: ContentExtractor,
        ranker: RelevanceRanker,
        synthesizer: AnswerSynthesizer,
        *,
        cache: ResponseCache | None = None,
        session_registry: SessionRegistry | None = None,
        page_fetcher: PageFetcher | None = None,
        on_progress: ProgressCallback | None = None,
        enable_caching: bool = True,
        cache_ttl_s: float = 3600,
        max_search_queries: int = 5,
        enable_enhancement: bool = True,
    ):
        self.analyzer = analyzer
        self.fanout = fanout
        self.extractor = extractor
        self.ranker = ranker
        self.synthesizer = synthesizer
        self.cache = cache
        self.session_registry = session_registry
        self.page_fetcher = page_fetcher
        self.on_progress = on_progress
        self.enable_caching = enable_caching and cache is not None
        self.cache_ttl_s = cache_ttl_s
        self.max_search_queries = max(1, max_search_queries)
        self.enable_enhancement = enable_enhancement
        self._current: CancellationController | None = None

    def _progress(self, step: StepName, message: str, progress: float, **details) -> None:
        search_step = SearchStep(step=step, message=message, progress=progress, details=details or None)
        logger.debug(
            f"Search step: {step.value} - {message}",
            extra={"extra_fields": {"step": step.value, "progress": search_step.progress}},
        )
        if self.on_progress is None:
            return
        try:
            self.on_progress(search_step)
        except Exception as e:
            logger.warning(
                f"Progress callback failed: {e}",
                extra={"extra_fields": {"step": step.value, "error_type": type(e).__name__}},
            )

    def _from_cache(self, query: str, run_id: str) -> SearchResult | None:
        if not self.enable_caching:
            return None
        entry = self.cache.get_cached(query, self.cache_ttl_s)
        if entry is None or not isinstance(entry.response, SearchResult):
            return None
        return replace(entry.response, from_cache=True, run_id=run_id)

    async def perform_search(
        self,
        query: str,
        search_client: SearchIndexClient,
        index: str,
        session_id: str | None = None,
        verification_token: str | None = None,
    ) -> SearchResult:
        """
        Answer a question from the documentation index.

        Args:
            query: User question
            search_client: Index client used for the fan-out
            index: Index name
            session_id: Logical search session; a newer run cancels the older one
            verification_token: End-user verification token forwarded to the
                backend for this run only

        Returns:
            SearchResult (``from_cache`` set when served from the cache)

        Raises:
            ValueError: If the query is blank
            SearchCancelledError: If the run was cancelled or superseded
            NoDocumentsError: If no usable documents were found
            SynthesisError: If answer generation failed
        """
        query = (query or "").strip()
        if not query:
            raise ValueError("Query must not be empty")

        controller = CancellationController()
        token = controller.token
        self._current = controller
        if session_id and self.session_registry is not None:
            self.session_registry.begin(session_id, controller)

        run_log = bind_run(logger, run_id=controller.run_id, session_id=session_id, index=index)
        run_log.info(f'Search started: "{query}"')

        token_marker = set_request_token(verification_token)
        try:
            controller.start()

            cached = self._from_cache(query, controller.run_id)
            if cached is not None:
                self._progress(StepName.COMPLETE, "Answer served from cache", 100, fromCache=True)
                controller.complete()
                return cached

            self._progress(StepName.ANALYZING, "Analyzing your question...", 10)
            intent = await self.analyzer.analyze(query, self.max_search_queries, token)

            self._progress(
                StepName.SEARCHING,
                f"Searching with {len(intent.search_queries)} queries...",
                30,
                queries=list(intent.search_queries),
            )
            hits = await self.fanout.search(list(intent.search_queries), search_client, index, token)
            self._progress(StepName.SEARCHING, f"Found {len(hits)} results", 60, hits=len(hits))

            self._progress(StepName.RETRIEVING, "Reading the documentation...", 70)
            documents = self.extractor.extract_all(hits)
            if not documents:
                raise NoDocumentsError(
                    "No relevant documentation found for this question",
                    details={"hits": len(hits), "queries": list(intent.search_queries)},
                )
            ranked = self.ranker.rank(documents, query)
            ranked = await self._enhance(ranked, token)

            self._progress(StepName.SYNTHESIZING, "Generating answer...", 80, documents=len(ranked))
            synthesis = await self.synthesizer.synthesize(query, ranked, token)

            token.raise_if_cancelled()
            try:
                controller.complete()
            except InvalidStateTransition:
                raise SearchCancelledError(token.reason, details={"run_id": controller.run_id})

            result = SearchResult(
                answer=synthesis.answer,
                documents=tuple(ranked),
                validation=synthesis.validation,
                query_intent=intent,
                query_analysis_meta=synthesis.query_analysis_meta,
                run_id=controller.run_id,
            )
            if self.enable_caching:
                self.cache.set(query, result, query_analysis=intent, documents=ranked)

            self._progress(StepName.COMPLETE, "Complete", 100)
            run_log.info("Search completed", extra={"extra_fields": {"documents": len(ranked)}})
            return result
        except SearchCancelledError:
            controller.cancel(token.reason)
            run_log.info("Search cancelled", extra={"extra_fields": {"reason": token.reason}})
            raise
        except Exception as e:
            if controller.state == RunState.RUNNING:
                controller.fail()
            run_log.error(f"Search failed: {e}", extra={"extra_fields": {"error_type": type(e).__name__}})
            raise
        finally:
            reset_request_token(token_marker)
            if session_id and self.session_registry is not None:
                self.session_registry.end(session_id, controller)

    async def _enhance(
        self, ranked: list[DocumentContent], token: CancellationToken
    ) -> list[DocumentContent]:
        if not (self.enable_enhancement and self.page_fetcher is not None):
            return ranked
        limit = self.synthesizer.max_documents
        head = await self.extractor.enhance(ranked[:limit], self.page_fetcher, token)
        return head + ranked[limit:]

    def cancel(self, reason: str = "Cancelled by caller") -> bool:
        """Cancel the most recent run. Returns False when it already finished."""
        if self._current is None:
            return False
        return self._current.cancel(reason)

    @property
    def current_state(self) -> RunState | None:
        return self._current.state if self._current is not None else None

    def perform_search_sync(
        self,
        query: str,
        search_client: SearchIndexClient,
        index: str,
        session_id: str | None = None,
        verification_token: str | None = None,
    ) -> SearchResult:
        """
        Synchronous wrapper for perform_search.

        Handles the case where an event loop is already running by
        executing in a separate thread with its own loop.
        """
        run = self.perform_search(query, search_client, index, session_id, verification_token)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(run)

        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(asyncio.run, run)
            return future.result()
