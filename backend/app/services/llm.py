"""
Thin chat wrapper (LlmChat, UserMessage) over the official google-generativeai SDK,
plus timeout and transient-error retry helpers for AI calls.
"""

import asyncio
import inspect
from typing import Optional

import google.generativeai as genai

from app.config import logger

TRANSIENT_ERROR_MARKERS = ("502", "503", "bad gateway", "rate limit", "429", "unavailable")
# Provider-side timeouts surface as errors, never as retries.
TIMEOUT_ERROR_MARKERS = ("504", "deadline", "timed out", "timeout")


class UserMessage:
    """A single text message."""

    def __init__(self, text: str = ""):
        self.text = text

    def to_genai_parts(self) -> list:
        return [self.text] if self.text else []


class LlmChat:
    """
    Chat session with a chaining API:
        chat = LlmChat(api_key=..., session_id=..., system_message=...)
            .with_model("gemini", "gemini-2.5-flash")
            .with_params(temperature=0.1, response_mime_type="application/json")

    send_message() is async and returns a plain string.
    """

    def __init__(self, api_key: str = "", session_id: str = "", system_message: str = ""):
        self._api_key = api_key
        self._session_id = session_id
        self._system_message = system_message
        self._provider = "gemini"
        self._model_name = "gemini-2.5-flash"
        self._temperature = None
        self._response_mime_type = None
        self._chat = None  # lazily created

    @property
    def model_name(self) -> str:
        return self._model_name

    def with_model(self, provider: str, model_name: str) -> "LlmChat":
        self._provider = provider
        self._model_name = model_name
        return self

    def with_params(self, temperature: float = None, response_mime_type: Optional[str] = None, **kwargs) -> "LlmChat":
        if temperature is not None:
            self._temperature = temperature
        if response_mime_type is not None:
            self._response_mime_type = response_mime_type
        return self

    def _ensure_chat(self):
        """Lazily create the underlying genai chat session."""
        if self._chat is None:
            if self._api_key:
                genai.configure(api_key=self._api_key)

            gen_config = {}
            if self._temperature is not None:
                gen_config["temperature"] = self._temperature
            if self._response_mime_type:
                gen_config["response_mime_type"] = self._response_mime_type

            model = genai.GenerativeModel(
                model_name=self._model_name,
                system_instruction=self._system_message if self._system_message else None,
                generation_config=gen_config if gen_config else None,
            )
            self._chat = model.start_chat(history=[])

    async def send_message(self, message: UserMessage) -> str:
        """
        Send a message and return the response text as a plain string.

        The genai SDK call is synchronous, so it runs in the default executor.
        """
        self._ensure_chat()
        parts = message.to_genai_parts()

        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None, lambda: self._chat.send_message(parts)
        )

        return response.text


async def ai_call_with_timeout(chat_model, message, timeout_seconds=60, operation_name="AI call"):
    """
    Wrapper for AI calls with timeout protection.
    Raises TimeoutError instead of hanging on a stalled provider.
    """
    async def make_api_call():
        send_message = chat_model.send_message
        if inspect.iscoroutinefunction(send_message):
            return await send_message(message)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: send_message(message))

    try:
        return await asyncio.wait_for(make_api_call(), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.error(f"⏱️ TIMEOUT after {timeout_seconds}s: {operation_name}")
        raise TimeoutError(f"{operation_name} exceeded {timeout_seconds}s timeout")


def is_timeout_error(error: Exception) -> bool:
    error_str = str(error).lower()
    return any(marker in error_str for marker in TIMEOUT_ERROR_MARKERS)


def is_transient_error(error: Exception) -> bool:
    error_str = str(error).lower()
    if is_timeout_error(error):
        return False
    return any(marker in error_str for marker in TRANSIENT_ERROR_MARKERS)


async def send_with_retry(chat_model, message, timeout_seconds=60, operation_name="AI call",
                          max_retries=3, retry_delay=5):
    """
    Send with exponential backoff on transient provider errors (502/503/rate limit).

    Timeouts, including provider 504 and deadline errors, are not retried.
    """
    for attempt in range(max_retries):
        try:
            logger.info(f"{operation_name} attempt {attempt + 1}/{max_retries}")
            return await ai_call_with_timeout(
                chat_model,
                message,
                timeout_seconds=timeout_seconds,
                operation_name=operation_name,
            )
        except TimeoutError:
            raise
        except Exception as e:
            if attempt < max_retries - 1 and is_transient_error(e):
                wait_time = retry_delay * (2 ** attempt)
                logger.warning(f"{operation_name} failed ({e}); retrying in {wait_time} seconds...")
                await asyncio.sleep(wait_time)
                continue
            raise
