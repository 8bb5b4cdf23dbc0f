from abc import ABC, abstractmethod

from orchestrator.errors import RemoteCallError


class BaseCompletionClient(ABC):
    """
    Abstract base class for chat-completion clients.
    Keyword extraction and answer generation talk to a model only through this interface.
    """

    @abstractmethod
    def __init__(self, api_key: str, **kwargs):
        """
        Initialize the client.

        Args:
            api_key: API key for the completion service
            **kwargs: Additional provider-specific parameters
        """
        self.api_key = api_key
        self.model_name = kwargs.get('model_name')

    @property
    def provider_name(self) -> str:
        return type(self).__name__.replace("Client", "").lower()

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        timeout_s: float | None = None,
    ) -> str:
        """
        Get a completion from the model.

        Returns:
            The generated text

        Raises:
            RemoteCallError: On any provider failure, timeout, or empty completion
        """

    def _normalize_error(self, exc: Exception) -> RemoteCallError:
        """Map a provider exception onto RemoteCallError codes."""
        name = type(exc).__name__.lower()
        message = str(exc) or type(exc).__name__
        status_code = getattr(exc, "status_code", None)

        if "timeout" in name:
            code = "timeout"
        elif "ratelimit" in name or status_code == 429:
            code = "rate_limit"
        elif "authentication" in name or status_code in (401, 403):
            code = "auth"
        elif "badrequest" in name or status_code == 400:
            code = "bad_request"
        else:
            code = "provider_error"

        return RemoteCallError(
            f"{self.provider_name} completion failed: {message}",
            code=code,
            status_code=status_code,
            details={"provider": self.provider_name, "error_type": type(exc).__name__},
        )
