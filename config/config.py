import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv


class SynthesisProvider(Enum):
    """Where keyword extraction and answer generation are performed."""
    BACKEND = "backend"
    OPENAI = "openai"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


class Config:
    """Configuration management for the answering orchestrator."""

    def __init__(self, load_env_file: bool = True):
        """Initialize configuration with environment variables."""
        # Load environment variables from .env file if it exists
        env_path = Path(__file__).parent.parent / '.env'
        if load_env_file and env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # Backend (keyword + answer endpoints)
        self.BACKEND_URL = os.getenv('DOCANSWER_BACKEND_URL', '').rstrip('/')
        self.SYSTEM_CONTEXT = os.getenv('SYSTEM_CONTEXT', '')
        self.SITE_NAME = os.getenv('SITE_NAME', 'this documentation')
        self.RECAPTCHA_SITE_KEY = os.getenv('RECAPTCHA_SITE_KEY') or None

        # Provider selection
        self.SYNTHESIS_PROVIDER = os.getenv('SYNTHESIS_PROVIDER', SynthesisProvider.BACKEND.value).lower()
        self.OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
        self.DEFAULT_MODEL = os.getenv('DEFAULT_MODEL', 'gpt-4o-mini')

        # Search index
        self.ALGOLIA_APP_ID = os.getenv('ALGOLIA_APP_ID')
        self.ALGOLIA_API_KEY = os.getenv('ALGOLIA_API_KEY')
        self.ALGOLIA_INDEX_NAME = os.getenv('ALGOLIA_INDEX_NAME')

        # Pipeline tuning
        self.MAX_SEARCH_QUERIES = max(1, _env_int('MAX_SEARCH_QUERIES', 5))
        self.HITS_PER_PAGE = min(10, max(5, _env_int('HITS_PER_PAGE', 5)))
        self.MAX_DOCUMENTS = min(10, max(1, _env_int('MAX_DOCUMENTS', 5)))
        self.MAX_CONTENT_CHARS = max(200, _env_int('MAX_CONTENT_CHARS', 2000))
        self.ENABLE_QUERY_EXPANSION = _env_bool('ENABLE_QUERY_EXPANSION', False)
        self.ENABLE_CONTENT_ENHANCEMENT = _env_bool('ENABLE_CONTENT_ENHANCEMENT', True)
        self.FALLBACK_SKIP_STOP_WORDS = _env_bool('FALLBACK_SKIP_STOP_WORDS', False)

        # Cache
        self.ENABLE_CACHING = _env_bool('ENABLE_CACHING', True)
        self.CACHE_TTL_SECONDS = max(1, _env_int('CACHE_TTL_SECONDS', 3600))
        self.CACHE_MAX_SIZE = max(1, _env_int('CACHE_MAX_SIZE', 100))

        # Timeouts (seconds)
        self.VERIFICATION_TIMEOUT_S = _env_float('VERIFICATION_TIMEOUT_S', 5.0)
        self.KEYWORDS_TIMEOUT_S = _env_float('KEYWORDS_TIMEOUT_S', 10.0)
        self.SEARCH_TIMEOUT_S = _env_float('SEARCH_TIMEOUT_S', 10.0)
        self.PAGE_FETCH_TIMEOUT_S = _env_float('PAGE_FETCH_TIMEOUT_S', 8.0)
        self.ANSWER_TIMEOUT_S = _env_float('ANSWER_TIMEOUT_S', 60.0)

    def validate(self) -> list[str]:
        """
        Validate that the configuration is usable for the selected provider.

        Returns:
            list[str]: Human-readable problems; empty when the configuration is valid
        """
        problems = []
        if self.SYNTHESIS_PROVIDER == SynthesisProvider.BACKEND.value:
            if not self.BACKEND_URL:
                problems.append("DOCANSWER_BACKEND_URL is not set.")
        elif self.SYNTHESIS_PROVIDER == SynthesisProvider.OPENAI.value:
            if not self.OPENAI_API_KEY:
                problems.append("OPENAI_API_KEY is not set.")
        else:
            problems.append(
                f"Unknown SYNTHESIS_PROVIDER '{self.SYNTHESIS_PROVIDER}'. "
                f"Must be one of: {', '.join(e.value for e in SynthesisProvider)}"
            )
        return problems

    def get_provider_info(self) -> str:
        """
        Describe where answers are generated.

        Returns:
            str: Formatted string with provider information
        """
        if self.SYNTHESIS_PROVIDER == SynthesisProvider.OPENAI.value:
            return f"OpenAI ({self.DEFAULT_MODEL})"
        if self.SYNTHESIS_PROVIDER == SynthesisProvider.BACKEND.value:
            return f"Backend ({self.BACKEND_URL or 'unset'})"
        return "Unknown"
