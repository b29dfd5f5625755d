"""
Client for the external code execution service (OneCompiler-compatible API).
"""
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.exceptions import ExternalServiceError
from app.core.progress.daily_attempt import ExecutionResult, SourceFile

logger = logging.getLogger(__name__)


class ExecutionClient:
    """Runs source code against a single stdin through the execution API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        api_host: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.EXECUTION_API_URL
        self.api_key = api_key if api_key is not None else settings.EXECUTION_API_KEY
        self.api_host = api_host or settings.EXECUTION_API_HOST
        self.timeout = timeout or settings.EXECUTION_TIMEOUT_SECONDS
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "X-RapidAPI-Host": self.api_host,
            "X-RapidAPI-Key": self.api_key,
            "Content-Type": "application/json",
        }

    async def run(self, language: str, stdin: str, source_file: SourceFile) -> ExecutionResult:
        """
        Execute ``source_file`` once.

        Args:
            language: Execution service language name (e.g. "python")
            stdin: Standard input for the run
            source_file: File name and content

        Returns:
            ExecutionResult with stdout, stderr and exception

        Raises:
            ExternalServiceError: On timeout, connection/HTTP failure or an
                unparseable response
        """
        payload: Dict[str, Any] = {
            "language": language,
            "stdin": stdin,
            "files": [{"name": source_file.name, "content": source_file.content}],
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.base_url, json=payload, headers=self._headers())
                response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error(f"Execution service timed out after {self.timeout}s: {e}")
            raise ExternalServiceError("Code execution service timed out.", kind="timeout")
        except httpx.HTTPStatusError as e:
            logger.error(f"Execution service returned {e.response.status_code}: {e.response.text[:200]}")
            raise ExternalServiceError("Error connecting to code execution service.", kind="unreachable")
        except httpx.HTTPError as e:
            logger.error(f"Execution service request failed: {e}")
            raise ExternalServiceError("Error connecting to code execution service.", kind="unreachable")

        try:
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError("response body is not an object")
            return ExecutionResult.model_validate(data)
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Malformed execution service response: {e}")
            raise ExternalServiceError(
                "Code execution service returned a malformed response.", kind="malformed-response"
            )
