"""
AnswerSynthesizer - the one hard-failing remote step.

Sends the top documents and the question to an answer provider. Unlike intent
analysis this never degrades: every failure becomes SynthesisError.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from api.backend_client import GENERATE_ANSWER_ENDPOINT, BackendClient
from api.base_client import BaseCompletionClient
from models.search_types import AnswerValidation, DocumentContent, SynthesisResult
from orchestrator.answer_validator import AnswerValidator
from orchestrator.cancellation import CancellationToken
from orchestrator.errors import OrchestratorError, SearchCancelledError, SynthesisError
from utils.logger import get_logger
from utils.prompts import create_system_prompt, create_user_prompt

logger = get_logger(__name__)

MAX_DOCUMENTS_LIMIT = 10


class AnswerProvider(ABC):
    """Remote answer generator."""

    @abstractmethod
    async def generate(self, query: str, documents: list[DocumentContent]) -> dict[str, Any]:
        """
        Generate an answer.

        Returns:
            {"answer": str, "validation": dict | None, "queryAnalysis": dict | None}
        """


class BackendAnswerProvider(AnswerProvider):
    def __init__(self, backend: BackendClient, *, system_context: str = "", timeout_s: float = 60.0):
        self.backend = backend
        self.system_context = system_context
        self.timeout_s = timeout_s

    async def generate(self, query: str, documents: list[DocumentContent]) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "query": query,
            "documents": [document.to_dict() for document in documents[:MAX_DOCUMENTS_LIMIT]],
        }
        if self.system_context:
            payload["systemContext"] = self.system_context
        return await self.backend.post(
            GENERATE_ANSWER_ENDPOINT, payload, action="generate_answer", timeout_s=self.timeout_s
        )


class OpenAIAnswerProvider(AnswerProvider):
    """Builds the prompts locally and calls a chat-completions client."""

    def __init__(
        self,
        client: BaseCompletionClient,
        *,
        site_name: str = "this documentation",
        system_context: str = "",
        timeout_s: float = 60.0,
        max_tokens: int = 2000,
    ):
        self.client = client
        self.site_name = site_name
        self.system_context = system_context
        self.timeout_s = timeout_s
        self.max_tokens = max_tokens

    async def generate(self, query: str, documents: list[DocumentContent]) -> dict[str, Any]:
        text = await self.client.complete(
            create_system_prompt(self.site_name, self.system_context),
            create_user_prompt(query, documents),
            temperature=0.3,
            max_tokens=self.max_tokens,
            timeout_s=self.timeout_s,
        )
        return {"answer": text}


class AnswerSynthesizer:
    def __init__(
        self,
        provider: AnswerProvider,
        max_documents: int = 5,
        validator: AnswerValidator | None = None,
        *,
        timeout_s: float = 60.0,
    ):
        self.provider = provider
        self.max_documents = min(MAX_DOCUMENTS_LIMIT, max(1, max_documents))
        self.timeout_s = timeout_s
        self.validator = validator or AnswerValidator()

    async def synthesize(
        self,
        query: str,
        documents: list[DocumentContent],
        token: CancellationToken | None = None,
    ) -> SynthesisResult:
        """
        Generate an answer from the highest-ranked documents.

        Args:
            query: Original user question
            documents: Ranked documents; only the first ``max_documents`` are sent
            token: Run cancellation token

        Returns:
            SynthesisResult with the answer and validation

        Raises:
            SynthesisError: On any provider failure or a blank answer
            SearchCancelledError: If the run was cancelled
        """
        top = list(documents[: self.max_documents])

        async def _call():
            return await asyncio.wait_for(self.provider.generate(query, top), timeout=self.timeout_s)

        try:
            if token is not None:
                payload = await token.guard(_call, "synthesize")
            else:
                payload = await _call()
        except SearchCancelledError:
            raise
        except OrchestratorError as e:
            logger.error(
                f"Answer generation failed: {e.message}",
                extra={"extra_fields": {"code": e.code, "documents": len(top)}},
            )
            raise SynthesisError(
                f"Failed to generate an answer: {e.message}", details={"cause": e.code}
            ) from e
        except asyncio.TimeoutError as e:
            logger.error(
                f"Answer generation timed out after {self.timeout_s}s",
                extra={"extra_fields": {"documents": len(top)}},
            )
            raise SynthesisError(
                f"Failed to generate an answer: timed out after {self.timeout_s}s",
                details={"cause": "timeout"},
            ) from e
        except Exception as e:
            logger.error(
                f"Answer generation failed: {e}",
                extra={"extra_fields": {"error_type": type(e).__name__, "documents": len(top)}},
                exc_info=True,
            )
            raise SynthesisError(
                f"Failed to generate an answer: {e}", details={"cause": type(e).__name__}
            ) from e

        answer = payload.get("answer") if isinstance(payload, dict) else None
        if not isinstance(answer, str) or not answer.strip():
            raise SynthesisError("The answer service returned an empty answer")

        raw_validation = payload.get("validation")
        if isinstance(raw_validation, dict):
            validation = AnswerValidation.from_payload(raw_validation)
        else:
            validation = self.validator.validate(answer, top)

        query_analysis = payload.get("queryAnalysis")
        logger.info(
            "Answer generated",
            extra={
                "extra_fields": {
                    "documents": len(top),
                    "answer_chars": len(answer),
                    "confidence": validation.confidence,
                    "is_not_found": validation.is_not_found,
                }
            },
        )
        return SynthesisResult(
            answer=answer,
            validation=validation,
            query_analysis_meta=query_analysis if isinstance(query_analysis, dict) else None,
        )
