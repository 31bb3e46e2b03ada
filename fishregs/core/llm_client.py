import asyncio
from typing import Any, Dict, List, Optional, Union

import httpx
from google import genai
from google.genai import types
from httpx import HTTPStatusError, TimeoutException

from fishregs.core.exceptions import APIClientError, APITimeoutError, ConfigurationError
from fishregs.utils.logging import get_logger

LOGGER = get_logger(__name__)

Contents = Union[str, List[Union[str, Dict[str, Any]]]]


class BaseLLMClient:
    """HTTP transport for completion APIs.

    Handles retries with exponential backoff, timeouts and error logging.
    Client errors (4xx) are not retried except for rate limiting (429).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 3,
        retry_delay: int = 2,
        auth_headers: Optional[Dict[str, str]] = None,
    ):
        """Initialize the transport.

        Args:
            api_key: API key for authentication
            base_url: Full URL of the completion endpoint
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts
            retry_delay: Base delay for exponential backoff
            auth_headers: Replaces the default bearer Authorization header
        """
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.auth_headers = auth_headers or {"Authorization": f"Bearer {api_key}"}
        self.logger = LOGGER

    async def call_api(
        self,
        endpoint: str = "",
        method: str = "POST",
        payload: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """Call the API with retry logic.

        Args:
            endpoint: API endpoint (appended to base_url)
            method: HTTP method (POST, GET, etc.)
            payload: JSON payload
            headers: Additional headers

        Returns:
            Parsed JSON response

        Raises:
            APIClientError: If the API call fails after retries
            APITimeoutError: If the API call times out after retries
        """
        url = f"{self.base_url}{endpoint}" if endpoint else self.base_url
        request_headers = {**self.auth_headers, "Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)

        self.logger.debug(f"Calling LLM API: {url}", extra={"method": method, "timeout": self.timeout})

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(self.max_retries):
                try:
                    if method.upper() == "GET":
                        response = await client.get(url, headers=request_headers, params=payload)
                    else:
                        response = await client.post(url, headers=request_headers, json=payload)
                    response.raise_for_status()
                    return self._parse_body(response, url)

                except HTTPStatusError as e:
                    await self._handle_http_error(e, attempt, url)

                except TimeoutException as e:
                    await self._handle_timeout_error(e, attempt, url)

                except httpx.HTTPError as e:
                    await self._handle_generic_error(e, attempt, url)

        raise APIClientError(f"Failed to call API {url} after {self.max_retries} attempts")

    def _parse_body(self, response: httpx.Response, url: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            self.logger.warning(
                "API returned a non-JSON body",
                extra={"url": url, "status_code": response.status_code, "body": response.text[:500]}
            )
            raise APIClientError(f"Invalid JSON response from {url}", original_error=e)

    async def _handle_http_error(self, error: HTTPStatusError, attempt: int, url: str):
        status_code = error.response.status_code
        error_body = error.response.text

        self.logger.warning(
            f"API HTTP error (Attempt {attempt + 1}/{self.max_retries})",
            extra={"url": url, "status_code": status_code, "error_body": error_body[:500]}
        )

        if 400 <= status_code < 500 and status_code != 429:
            raise APIClientError(f"API Client Error {status_code}: {error_body}", original_error=error)

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt, error.response)
        else:
            raise APIClientError(f"API HTTP Error {status_code} after retries", original_error=error)

    async def _handle_timeout_error(self, error: TimeoutException, attempt: int, url: str):
        self.logger.warning(f"API Timeout (Attempt {attempt + 1}/{self.max_retries})", extra={"url": url})

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APITimeoutError(f"API Timeout after {self.max_retries} attempts", original_error=error)

    async def _handle_generic_error(self, error: Exception, attempt: int, url: str):
        self.logger.warning(
            f"API Generic Error (Attempt {attempt + 1}/{self.max_retries})",
            extra={"url": url, "error": str(error)}
        )

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APIClientError(f"API Error: {str(error)}", original_error=error)

    async def _wait_before_retry(self, attempt: int, response: Optional[httpx.Response] = None):
        """Exponential backoff, honoring a numeric Retry-After header when present."""
        wait_time = self.retry_delay * (2 ** attempt)
        if response is not None:
            retry_after = response.headers.get("retry-after", "")
            if retry_after.isdigit():
                wait_time = max(wait_time, int(retry_after))
        await asyncio.sleep(wait_time)


def _flatten_contents(contents: Contents) -> str:
    if isinstance(contents, str):
        return contents
    text = ""
    for part in contents:
        if isinstance(part, str):
            text += part
        elif isinstance(part, dict) and "text" in part:
            text += part["text"]
    return text


class OpenRouterClient:
    """Client for OpenAI-compatible chat completion endpoints (OpenRouter by default)."""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        base_url: str = "https://openrouter.ai/api/v1/chat/completions",
        timeout: int = 60,
        max_retries: int = 5,
        auth_headers: Optional[Dict[str, str]] = None,
    ):
        """Initialize the client.

        Args:
            api_key: API key
            model: Model name sent in the request body (omitted when None)
            base_url: Chat completions URL
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts
            auth_headers: Custom authentication headers
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.client = BaseLLMClient(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            auth_headers=auth_headers,
        )
        LOGGER.info(f"Initialized {self.__class__.__name__} with model {self.model}")

    def _build_payload(
        self,
        contents: Contents,
        system_instruction: Optional[str],
        generation_config: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": _flatten_contents(contents)})

        payload: Dict[str, Any] = {"messages": messages, "temperature": 0.0}
        if self.model:
            payload["model"] = self.model

        config = generation_config or {}
        if "temperature" in config:
            payload["temperature"] = config["temperature"]
        if "max_output_tokens" in config:
            payload["max_tokens"] = config["max_output_tokens"]
        if config.get("response_mime_type") == "application/json":
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def generate_content(
        self,
        contents: Contents,
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate a single text completion.

        Args:
            contents: User message (string or list of parts)
            system_instruction: Optional system instruction
            generation_config: Optional generation config (temperature, max_output_tokens,
                response_mime_type)

        Returns:
            Completion text, empty when the model returned nothing

        Raises:
            APIClientError: If generation fails
        """
        payload = self._build_payload(contents, system_instruction, generation_config)
        response = await self.client.call_api(method="POST", payload=payload)

        choices = response.get("choices") if isinstance(response, dict) else None
        if not choices:
            LOGGER.error("Unexpected completion response format", extra={"response": str(response)[:500]})
            raise APIClientError("Invalid response format from completion API")

        content = (choices[0].get("message") or {}).get("content") or ""
        if not content:
            LOGGER.warning("Empty completion response")
        return content


class AzureOpenAIClient(OpenRouterClient):
    """Azure OpenAI chat completions addressed by deployment name."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        deployment: str,
        api_version: str = "2024-06-01",
        timeout: int = 60,
        max_retries: int = 5,
    ):
        self.deployment = deployment
        url = (
            f"{endpoint.rstrip('/')}/openai/deployments/{deployment}"
            f"/chat/completions?api-version={api_version}"
        )
        super().__init__(
            api_key=api_key,
            model=None,
            base_url=url,
            timeout=timeout,
            max_retries=max_retries,
            auth_headers={"api-key": api_key},
        )


class GeminiClient:
    """Wrapper for Google Gemini API client."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        max_retries: int = 3,
    ):
        self.api_key = api_key
        self.model = model
        self.max_retries = max_retries
        self.client = genai.Client(api_key=self.api_key)
        LOGGER.info(f"Initialized Gemini client with model {self.model}")

    async def generate_content(
        self,
        contents: Contents,
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate content using the Gemini async API.

        Raises:
            APIClientError: If generation fails after retries
        """
        config = types.GenerateContentConfig(temperature=0.0)
        generation_config = generation_config or {}
        if "temperature" in generation_config:
            config.temperature = generation_config["temperature"]
        if "max_output_tokens" in generation_config:
            config.max_output_tokens = generation_config["max_output_tokens"]
        if "response_mime_type" in generation_config:
            config.response_mime_type = generation_config["response_mime_type"]
        if system_instruction:
            config.system_instruction = system_instruction

        for attempt in range(self.max_retries):
            try:
                response = await self.client.aio.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=config,
                )
                if not response.text:
                    LOGGER.warning("Empty response from Gemini")
                    return ""
                return response.text

            except Exception as e:
                LOGGER.warning(f"Gemini API error (Attempt {attempt + 1}/{self.max_retries}): {e}")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(2 ** attempt)
                else:
                    LOGGER.error(f"Gemini generation failed after retries: {e}", exc_info=True)
                    raise APIClientError(f"Gemini generation failed: {e}", original_error=e)

        raise APIClientError("Gemini generation failed")


def create_llm_client(llm_settings) -> Union[OpenRouterClient, GeminiClient]:
    """Build the completion client selected by ``LLM_PROVIDER``.

    Args:
        llm_settings: ``LLMSettings`` instance

    Raises:
        ConfigurationError: If the provider is unknown or missing credentials
    """
    provider = llm_settings.provider.lower()

    if provider == "openrouter":
        if not llm_settings.openrouter_api_key:
            raise ConfigurationError("OPENROUTER_API_KEY is required for provider 'openrouter'")
        return OpenRouterClient(
            api_key=llm_settings.openrouter_api_key,
            model=llm_settings.openrouter_model,
            base_url=llm_settings.openrouter_api_url,
            timeout=llm_settings.timeout,
            max_retries=llm_settings.max_retries,
        )

    if provider == "azure_openai":
        if not llm_settings.azure_openai_endpoint or not llm_settings.azure_openai_api_key:
            raise ConfigurationError("AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY are required")
        return AzureOpenAIClient(
            endpoint=llm_settings.azure_openai_endpoint,
            api_key=llm_settings.azure_openai_api_key,
            deployment=llm_settings.azure_openai_deployment,
            api_version=llm_settings.azure_openai_api_version,
            timeout=llm_settings.timeout,
            max_retries=llm_settings.max_retries,
        )

    if provider == "gemini":
        if not llm_settings.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY is required for provider 'gemini'")
        return GeminiClient(
            api_key=llm_settings.gemini_api_key,
            model=llm_settings.gemini_model,
            max_retries=llm_settings.max_retries,
        )

    raise ConfigurationError(f"Unsupported LLM provider: {llm_settings.provider}")
