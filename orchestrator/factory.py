"""Factory for building the search orchestrator from environment configuration."""

from api.backend_client import BackendClient
from api.openai_client import OpenAIClient
from api.search_client import AlgoliaSearchClient
from api.verification import TokenFetcher, VerificationTokenProvider
from config.config import Config, SynthesisProvider
from config.ranking import RankingWeights
from orchestrator.answer_synthesizer import (
    AnswerProvider,
    AnswerSynthesizer,
    BackendAnswerProvider,
    OpenAIAnswerProvider,
)
from orchestrator.cancellation import SessionRegistry
from orchestrator.content_extractor import ContentExtractor
from orchestrator.intent_analyzer import (
    BackendKeywordProvider,
    KeywordProvider,
    OpenAIKeywordProvider,
    QueryIntentAnalyzer,
)
from orchestrator.relevance_ranker import RelevanceRanker
from orchestrator.response_cache import ResponseCache
from orchestrator.search_fanout import SearchFanOut
from orchestrator.search_orchestrator import ProgressCallback, SearchOrchestrator
from tools.page_fetcher import HttpPageFetcher
from utils.logger import get_logger

logger = get_logger(__name__)

# Process-shared singletons
_cache_instance: ResponseCache | None = None
_session_registry: SessionRegistry | None = None
_verification_provider: VerificationTokenProvider | None = None


def get_response_cache(config: Config | None = None) -> ResponseCache:
    global _cache_instance
    if _cache_instance is None:
        config = config or Config()
        _cache_instance = ResponseCache(max_size=config.CACHE_MAX_SIZE)
    return _cache_instance


def get_session_registry() -> SessionRegistry:
    global _session_registry
    if _session_registry is None:
        _session_registry = SessionRegistry()
    return _session_registry


def get_verification_provider(
    config: Config | None = None, fetcher: TokenFetcher | None = None
) -> VerificationTokenProvider:
    global _verification_provider
    if _verification_provider is None:
        config = config or Config()
        _verification_provider = VerificationTokenProvider(
            config.RECAPTCHA_SITE_KEY, fetcher, timeout_s=config.VERIFICATION_TIMEOUT_S
        )
    return _verification_provider


def reset_singletons() -> None:
    """Drop the process-wide cache, registry and verification state."""
    global _cache_instance, _session_registry, _verification_provider
    _cache_instance = None
    _session_registry = None
    _verification_provider = None


def create_search_client_from_env(config: Config | None = None) -> AlgoliaSearchClient:
    """
    Create the Algolia search client.

    Raises:
        ValueError: If ALGOLIA_APP_ID or ALGOLIA_API_KEY is not set
    """
    config = config or Config()
    return AlgoliaSearchClient(
        config.ALGOLIA_APP_ID or "",
        config.ALGOLIA_API_KEY or "",
        timeout_s=config.SEARCH_TIMEOUT_S,
    )


def _create_providers(
    config: Config, token_fetcher: TokenFetcher | None
) -> tuple[KeywordProvider | None, AnswerProvider]:
    if config.SYNTHESIS_PROVIDER == SynthesisProvider.OPENAI.value:
        client = OpenAIClient(api_key=config.OPENAI_API_KEY, model_name=config.DEFAULT_MODEL)
        return (
            OpenAIKeywordProvider(
                client, system_context=config.SYSTEM_CONTEXT, timeout_s=config.KEYWORDS_TIMEOUT_S
            ),
            OpenAIAnswerProvider(
                client,
                site_name=config.SITE_NAME,
                system_context=config.SYSTEM_CONTEXT,
                timeout_s=config.ANSWER_TIMEOUT_S,
            ),
        )

    backend = BackendClient(
        config.BACKEND_URL,
        verification=get_verification_provider(config, token_fetcher),
    )
    return (
        BackendKeywordProvider(
            backend, system_context=config.SYSTEM_CONTEXT, timeout_s=config.KEYWORDS_TIMEOUT_S
        ),
        BackendAnswerProvider(
            backend, system_context=config.SYSTEM_CONTEXT, timeout_s=config.ANSWER_TIMEOUT_S
        ),
    )


def create_orchestrator_from_env(
    config: Config | None = None,
    *,
    on_progress: ProgressCallback | None = None,
    token_fetcher: TokenFetcher | None = None,
) -> SearchOrchestrator:
    """
    Create a SearchOrchestrator wired to the configured providers.

    Environment variables: see config.config.Config. The response cache and
    session registry are process-wide singletons shared by every orchestrator
    built here.

    Raises:
        ValueError: If the configuration is invalid for the selected provider
    """
    config = config or Config()
    problems = config.validate()
    if problems:
        raise ValueError("; ".join(problems))

    keyword_provider, answer_provider = _create_providers(config, token_fetcher)

    page_fetcher = None
    if config.ENABLE_CONTENT_ENHANCEMENT:
        page_fetcher = HttpPageFetcher(timeout_s=config.PAGE_FETCH_TIMEOUT_S)

    logger.info(
        f"Search orchestrator configured: {config.get_provider_info()}",
        extra={
            "extra_fields": {
                "caching": config.ENABLE_CACHING,
                "query_expansion": config.ENABLE_QUERY_EXPANSION,
                "content_enhancement": config.ENABLE_CONTENT_ENHANCEMENT,
            }
        },
    )

    return SearchOrchestrator(
        analyzer=QueryIntentAnalyzer(
            keyword_provider,
            max_variants=config.MAX_SEARCH_QUERIES,
            timeout_s=config.KEYWORDS_TIMEOUT_S,
            skip_stop_words=config.FALLBACK_SKIP_STOP_WORDS,
        ),
        fanout=SearchFanOut(
            config.HITS_PER_PAGE,
            timeout_s=config.SEARCH_TIMEOUT_S,
            enable_expansion=config.ENABLE_QUERY_EXPANSION,
        ),
        extractor=ContentExtractor(max_content_chars=config.MAX_CONTENT_CHARS),
        ranker=RelevanceRanker(RankingWeights.from_env()),
        synthesizer=AnswerSynthesizer(
            answer_provider,
            max_documents=config.MAX_DOCUMENTS,
            timeout_s=config.ANSWER_TIMEOUT_S,
        ),
        cache=get_response_cache(config),
        session_registry=get_session_registry(),
        page_fetcher=page_fetcher,
        on_progress=on_progress,
        enable_caching=config.ENABLE_CACHING,
        cache_ttl_s=config.CACHE_TTL_SECONDS,
        max_search_queries=config.MAX_SEARCH_QUERIES,
        enable_enhancement=config.ENABLE_CONTENT_ENHANCEMENT,
    )
