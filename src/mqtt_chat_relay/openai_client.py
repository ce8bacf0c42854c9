"""OpenAI-compatible chat-completion client for the MQTT chat relay."""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

from . import __version__
from .config import OpenAIConfig
from .conversation import ConversationMessage
from .errors import (
    CompletionTransportError,
    EmptyChoiceError,
    NoContentError,
)


class OpenAIClient:
    """Client for interacting with OpenAI-compatible APIs."""

    def __init__(self, config: OpenAIConfig) -> None:
        """Initialize OpenAI-compatible client with configuration."""
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "OpenAIClient":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(
        self, exc_type: type, exc_val: Exception, exc_tb: object
    ) -> None:
        """Async context manager exit."""
        await self.disconnect()

    async def connect(self) -> None:
        """Initialize HTTP session for API requests."""
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"mqtt-chat-relay/{__version__}",
        }

        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        timeout = aiohttp.ClientTimeout(total=self.config.timeout)
        self.session = aiohttp.ClientSession(
            headers=headers,
            timeout=timeout,
            connector=aiohttp.TCPConnector(limit=1),
        )

        self.logger.info(
            f"OpenAI client initialized for {self.config.api_url}"
        )

    async def disconnect(self) -> None:
        """Close HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.info("OpenAI client session closed")

    def _url(self, path: str) -> str:
        return f"{self.config.api_url.rstrip('/')}/{path}"

    def build_payload(
        self, history: Sequence[ConversationMessage]
    ) -> Dict[str, Any]:
        """Build a chat-completions request body for ``history``."""
        messages: List[Dict[str, str]] = []
        if self.config.system_prompt:
            messages.append(
                {"role": "system", "content": self.config.system_prompt}
            )
        messages.extend(message.to_api() for message in history)

        payload: Dict[str, Any] = {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature,
            "stream": False,
        }
        if self.config.max_tokens is not None:
            payload["max_tokens"] = self.config.max_tokens
        return payload

    async def complete(self, history: Sequence[ConversationMessage]) -> str:
        """Send ``history`` to the completion endpoint and return the reply.

        Makes exactly one request. Raises ``EmptyChoiceError`` when no choice
        comes back, ``NoContentError`` when the first choice has no text and
        ``CompletionTransportError`` for anything that goes wrong on the wire.
        """
        if not self.session:
            raise CompletionTransportError(
                "OpenAI client not connected. Call connect() first."
            )

        payload = self.build_payload(history)
        url = self._url("chat/completions")
        self.logger.debug(f"Making chat request to: {url}")
        self.logger.debug(f"Request payload: {json.dumps(payload, indent=2)}")

        try:
            async with self.session.post(url, json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise CompletionTransportError(
                        f"OpenAI chat API request failed with status "
                        f"{response.status}: {error_text}",
                        status=response.status,
                    )
                data = await response.json()

        except aiohttp.ClientError as e:
            raise CompletionTransportError(
                f"Failed to reach OpenAI API: {e}"
            )
        except asyncio.TimeoutError:
            raise CompletionTransportError(
                f"OpenAI API request timed out after {self.config.timeout}s"
            )
        except json.JSONDecodeError as e:
            raise CompletionTransportError(
                f"Invalid JSON response from OpenAI API: {e}"
            )

        return self._extract_reply(data)

    def _extract_reply(self, data: Any) -> str:
        """Pull the first choice's text out of a decoded response."""
        if not isinstance(data, dict):
            raise CompletionTransportError(
                f"Unexpected response body from OpenAI API: {data!r}"
            )

        choices = data.get("choices")
        if choices is None or choices == []:
            raise EmptyChoiceError("No choices in OpenAI API response")
        if not isinstance(choices, list):
            raise CompletionTransportError(
                f"Unexpected response body from OpenAI API: choices is {choices!r}"
            )

        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise CompletionTransportError(
                f"Unexpected response body from OpenAI API: choice is {first!r}"
            )

        content = message.get("content")
        if not isinstance(content, str):
            raise NoContentError(
                "First choice in OpenAI API response has no text content"
            )

        self.logger.info(
            f"Generated chat response for model {self.config.model}"
        )
        self.logger.debug(f"Response: {content}")
        return content

    async def health_check(self) -> bool:
        """Check if OpenAI-compatible API is available and responsive."""
        if not self.session:
            await self.connect()

        try:
            url = self._url("models")
            self.logger.debug(f"Health check URL: {url}")

            async with self.session.get(url) as response:
                self.logger.debug(f"Health check status: {response.status}")

                if response.status == 200:
                    try:
                        data = await response.json()
                    except (json.JSONDecodeError, aiohttp.ContentTypeError):
                        # A 200 without a model list still means reachable
                        return True

                    models = (
                        data.get("data", []) if isinstance(data, dict) else []
                    )
                    model_names = [
                        model.get("id")
                        for model in models
                        if isinstance(model, dict) and model.get("id")
                    ]
                    self.logger.info(
                        f"OpenAI API is healthy. Available models: {len(model_names)} found"
                    )

                    if model_names and self.config.model not in model_names:
                        self.logger.warning(
                            f"Configured model '{self.config.model}' not found "
                            f"in available models. Will attempt to use anyway."
                        )
                    return True
                elif response.status == 401:
                    self.logger.error(
                        "API authentication failed. Check your API key."
                    )
                    return False
                elif response.status == 403:
                    self.logger.error(
                        "API access forbidden. Check your API key permissions."
                    )
                    return False
                else:
                    error_text = await response.text()
                    self.logger.error(
                        f"OpenAI health check failed with status {response.status}: {error_text}"
                    )
                    return False

        except aiohttp.ClientError as e:
            self.logger.error(f"OpenAI health check network error: {e}")
            return False
        except asyncio.TimeoutError:
            self.logger.error("OpenAI health check timed out")
            return False
