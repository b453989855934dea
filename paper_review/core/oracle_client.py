"""Analysis Oracle boundary.

The Oracle accepts structured text plus a task description and returns
structured JSON, or fails. Every caller in this package has a local
fallback for the failure case.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx
from httpx import HTTPStatusError, TimeoutException

from paper_review.core.config import OracleSettings, settings
from paper_review.core.exceptions import APIClientError, APITimeoutError, OracleResponseError
from paper_review.utils.json_parser import parse_json_safely
from paper_review.utils.logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert academic reviewer. Answer the task using only the supplied content. "
    "Respond with a single valid JSON object and nothing else."
)


class BaseLLMClient:
    """Base client for chat-completion HTTP calls.

    Handles retries with exponential backoff, timeout management and error
    logging.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 3,
        retry_delay: float = 2
    ):
        """Initialize the client.

        Args:
            api_key: API key for bearer authentication
            base_url: Endpoint URL
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts
            retry_delay: Base delay for exponential backoff
        """
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.logger = LOGGER

    async def call_api(self, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """POST ``payload`` with retry logic.

        Raises:
            APIClientError: If the call fails after retries or on a 4xx response
            APITimeoutError: If every attempt times out
        """
        url = self.base_url
        request_headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if headers:
            request_headers.update(headers)

        self.logger.debug(f"Calling Oracle API: {url}", extra={"timeout": self.timeout})

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(self.max_retries):
                try:
                    response = await client.post(url, headers=request_headers, json=payload)
                    response.raise_for_status()
                    return response.json()

                except HTTPStatusError as e:
                    await self._handle_http_error(e, attempt, url)

                except TimeoutException as e:
                    await self._handle_timeout_error(e, attempt, url)

                except (httpx.HTTPError, json.JSONDecodeError) as e:
                    await self._handle_generic_error(e, attempt, url)

        raise APIClientError(f"Failed to call API {url} after {self.max_retries} attempts")

    async def _handle_http_error(self, error: HTTPStatusError, attempt: int, url: str):
        """Handle HTTP status errors."""
        status_code = error.response.status_code
        error_body = error.response.text

        self.logger.warning(
            f"API HTTP error (Attempt {attempt + 1}/{self.max_retries})",
            extra={"url": url, "status_code": status_code, "error_body": error_body[:500]}
        )

        # Client errors are final unless rate limited
        if 400 <= status_code < 500 and status_code != 429:
            raise APIClientError(f"API Client Error {status_code}: {error_body}", original_error=error)

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APIClientError(f"API HTTP Error {status_code} after retries", original_error=error)

    async def _handle_timeout_error(self, error: TimeoutException, attempt: int, url: str):
        """Handle timeout errors."""
        self.logger.warning(f"API Timeout (Attempt {attempt + 1}/{self.max_retries})", extra={"url": url})

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APITimeoutError(f"API Timeout after {self.max_retries} attempts", original_error=error)

    async def _handle_generic_error(self, error: Exception, attempt: int, url: str):
        """Handle transport and decoding errors."""
        self.logger.warning(
            f"API Generic Error (Attempt {attempt + 1}/{self.max_retries})",
            extra={"url": url, "error": str(error)}
        )

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APIClientError(f"API Error: {str(error)}", original_error=error)

    async def _wait_before_retry(self, attempt: int):
        """Exponential backoff wait."""
        await asyncio.sleep(self.retry_delay * (2 ** attempt))


class AnalysisOracle(ABC):
    """Turns structured text plus a task description into a JSON object."""

    @abstractmethod
    async def request_json(
        self,
        task: str,
        content: Dict[str, Any],
        system_prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Ask the Oracle to perform ``task`` on ``content``.

        Raises:
            APIClientError: On transport failure or unusable output
        """


class OpenRouterOracle(BaseLLMClient, AnalysisOracle):
    """Oracle backed by an OpenRouter-compatible chat completions endpoint."""

    def __init__(self, config: Optional[OracleSettings] = None):
        config = config or settings.oracle
        super().__init__(
            api_key=config.api_key,
            base_url=config.api_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
        )
        self.model = config.model
        self.temperature = config.temperature
        LOGGER.info(f"Initialized Oracle client with model {self.model}")

    def build_payload(self, task: str, content: Dict[str, Any], system_prompt: Optional[str] = None) -> Dict[str, Any]:
        user_message = f"TASK:\n{task}\n\nINPUT:\n{json.dumps(content, ensure_ascii=False, default=str)}"
        return {
            "model": self.model,
            "temperature": self.temperature,
            "messages": [
                {"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": user_message},
            ],
        }

    async def request_json(
        self,
        task: str,
        content: Dict[str, Any],
        system_prompt: Optional[str] = None,
    ) -> Dict[str, Any]:
        response = await self.call_api(self.build_payload(task, content, system_prompt))

        choices = response.get("choices") or []
        if not choices:
            LOGGER.error("Unexpected Oracle response format", extra={"keys": list(response)})
            raise OracleResponseError("Invalid response format from Oracle")

        text = (choices[0].get("message") or {}).get("content") or ""
        if not text.strip():
            raise OracleResponseError("Empty response from Oracle")

        parsed = parse_json_safely(text)
        if not isinstance(parsed, dict):
            raise OracleResponseError("Oracle response is not a JSON object")
        return parsed


def build_oracle(config: Optional[OracleSettings] = None) -> Optional[AnalysisOracle]:
    """Configured Oracle, or None when disabled or no API key is set."""
    config = config or settings.oracle
    if not config.enabled or not config.api_key:
        LOGGER.info("Analysis Oracle disabled, deterministic fallbacks will be used")
        return None
    return OpenRouterOracle(config)
