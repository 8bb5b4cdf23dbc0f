import openai

from orchestrator.errors import RemoteCallError
from utils.logger import get_logger

from .base_client import BaseCompletionClient

logger = get_logger(__name__)


class OpenAIClient(BaseCompletionClient):
    """
    Async client for the OpenAI chat-completions API.
    Used when keywords and answers are generated directly instead of through the backend.
    """

    def __init__(self, api_key: str, model_name: str = "gpt-4o-mini", client=None, **kwargs):
        """
        Initialize the OpenAI client.

        Args:
            api_key: The OpenAI API key
            model_name: The name of the model to use (default: gpt-4o-mini)
            client: Optional pre-built openai.AsyncOpenAI instance (tests inject fakes here)
            **kwargs: Additional keyword arguments
        """
        super().__init__(api_key, model_name=model_name, **kwargs)
        self.client = client or openai.AsyncOpenAI(api_key=api_key)
        self.model_name = model_name

    @property
    def provider_name(self) -> str:
        return "openai"

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
        Get a completion from the OpenAI API.

        Args:
            system_prompt: System message
            user_prompt: User message
            temperature: Controls randomness (0.0 to 2.0)
            max_tokens: Maximum number of tokens to generate
            timeout_s: Per-request timeout in seconds

        Returns:
            The generated text

        Raises:
            RemoteCallError: On provider failure or an empty completion
        """
        request_kwargs = {}
        if timeout_s is not None:
            request_kwargs["timeout"] = timeout_s

        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
                **request_kwargs,
            )
        except Exception as e:
            error = self._normalize_error(e)
            logger.error(
                f"OpenAI completion failed: {e}",
                extra={
                    "extra_fields": {
                        "model": self.model_name,
                        "error_code": error.code,
                        "error_type": type(e).__name__,
                    }
                },
            )
            raise error from e

        text = ""
        if response.choices:
            text = (response.choices[0].message.content or "").strip()
        if not text:
            raise RemoteCallError(
                "OpenAI returned an empty completion",
                code="provider_error",
                details={"model": self.model_name},
            )
        return text
