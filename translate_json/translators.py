"""
Translator implementations.

A translator receives one decoded JSON string value plus the position it was
found at, and returns the translated string. The position is informational
only. Implementations must leave blank values unchanged and must let
``asyncio.CancelledError`` propagate so that cancelling a run is prompt.
"""
import asyncio
import logging
import random
import re
import uuid
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable

import tiktoken
from aiolimiter import AsyncLimiter
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    OpenAIError,
    RateLimitError,
)
from openai.types.chat import (
    ChatCompletionSystemMessageParam,
    ChatCompletionUserMessageParam
)

from translate_json.errors import ConfigurationError, TranslationError

logger = logging.getLogger(__name__)

TRANSLATOR_OPENAI = "openai"
TRANSLATOR_IDENTITY = "identity"
TRANSLATOR_DRY = "dry"

# Placeholders such as {0}, {name}, %s, %1$d and HTML-like tags
PLACEHOLDER_PATTERN = re.compile(r'(<[^<>]+>)|({[^{}]+})|(%(?:\d+\$)?-?\d*(?:\.\d+)?[sdifx])')

# Codes not listed here are passed to the model verbatim.
LANGUAGE_NAMES = {
    "en": "English",
    "de": "German",
    "es": "Spanish",
    "fr": "French",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "pt": "Portuguese",
    "ru": "Russian",
    "zh": "Chinese",
}


@runtime_checkable
class Translator(Protocol):
    async def translate(self, line: int, offset: int, length: int, value: str) -> str:
        ...


class IdentityTranslator:
    """Returns every value unchanged. Useful for dry runs."""

    async def translate(self, line: int, offset: int, length: int, value: str) -> str:
        return value


def language_code_to_name(language: str) -> str:
    """
    Convert a language code to a language name for the prompt.

    Args:
        language (str): The language code (e.g., "de") or a name.

    Returns:
        str: The language name if known, else ``language`` itself.
    """
    return LANGUAGE_NAMES.get(language.lower(), language)


def extract_placeholders(text: str) -> Tuple[str, Dict[str, str]]:
    """
    Extract and replace placeholders in the text with unique tokens.

    Args:
        text (str): The text to process.

    Returns:
        Tuple[str, Dict[str, str]]: The processed text and placeholder mapping.
    """
    if not isinstance(text, str):
        raise ValueError("Input text must be a string.")

    placeholder_mapping = {}

    def replace_placeholder(match):
        placeholder_token = f"__PH_{uuid.uuid4().hex}__"
        placeholder_mapping[placeholder_token] = match.group(0)
        return placeholder_token

    processed_text = PLACEHOLDER_PATTERN.sub(replace_placeholder, text)
    return processed_text, placeholder_mapping


def restore_placeholders(text: str, placeholder_mapping: Dict[str, str]) -> str:
    for token, placeholder in placeholder_mapping.items():
        text = text.replace(token, placeholder)
    return text


def clean_translated_text(translated_text: str, original_text: str) -> str:
    """
    Remove leading/trailing quotes or brackets the model added around the
    translation when the original text did not have them.
    """
    if translated_text.startswith('"') and translated_text.endswith('"') and len(translated_text) >= 2 and not (
            original_text.startswith('"') and original_text.endswith('"')):
        translated_text = translated_text[1:-1]
    if translated_text.startswith('[') and translated_text.endswith(']') and not (
            original_text.startswith('[') and original_text.endswith(']')):
        translated_text = translated_text[1:-1]
    return translated_text


def count_tokens(text: str, model_name: str = 'gpt-4o-mini') -> int:
    """Count the number of tokens in ``text`` for ``model_name``.

    ``tiktoken.encoding_for_model`` may try to download model data, which is
    not always possible (e.g. in CI). It falls back to ``gpt2``, and as a
    last resort to a whitespace split.
    """
    try:
        encoding = tiktoken.encoding_for_model(model_name)
    except Exception:
        try:
            encoding = tiktoken.get_encoding("gpt2")
        except Exception:
            return len(text.split())

    try:
        return len(encoding.encode(text))
    except Exception:
        return len(text.split())


def retry_delay(attempt: int, base_delay: float, api_exc: Optional[Exception] = None) -> float:
    """
    Compute the delay before retry ``attempt`` (1-based).

    A ``Retry-After`` header on the API error wins, in seconds or with an
    ``ms`` suffix. Otherwise exponential backoff with jitter is used.
    """
    headers = getattr(getattr(api_exc, "response", None), "headers", None) or getattr(api_exc, "headers", None)
    if headers:
        retry_after_header = headers.get("Retry-After") or headers.get("retry-after")
        if retry_after_header:
            try:
                if retry_after_header.endswith("ms"):
                    return float(retry_after_header[:-2]) / 1000
                return float(retry_after_header)
            except ValueError:
                logger.warning("Failed to parse Retry-After header %r. Falling back to exponential backoff.",
                               retry_after_header)
    return base_delay * (2 ** (attempt - 1)) + random.uniform(0, 1)


SYSTEM_PROMPT = """
You are an expert translator specializing in software localization. Translate the text you are given into {language}.

**Instructions**:
- **Do not translate or modify placeholder tokens**: Any text enclosed within double underscores `__` (e.g., `__PH_abc123__`) should remain exactly as is.
- **Preserve formatting**: Keep leading/trailing whitespace, line breaks and special characters.
- **Do not add** any additional characters or punctuation (e.g., no square brackets, quotation marks, etc.).
- **Provide only** the translated text. If the text is already in {language}, return it unchanged.

The text is a value taken from a JSON file such as a user interface or dashboard definition. Keep translations brief and consistent with typical software terminology.
"""


class OpenAITranslator:
    """
    Translate values with the OpenAI chat completions API.

    Calls are bounded by a semaphore and a per-minute rate limiter, and
    transient API errors are retried with backoff. When the retries are
    exhausted a :class:`TranslationError` is raised.
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI],
        language: str,
        model_name: str = "gpt-4o-mini",
        max_concurrent_api_calls: int = 1,
        requests_per_minute: float = 60,
        max_retries: int = 5,
        base_delay: float = 1.0,
        timeout: float = 60.0,
    ):
        self.client = client
        self.language = language
        self.language_name = language_code_to_name(language)
        self.model_name = model_name
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.timeout = timeout
        self.semaphore = asyncio.Semaphore(max_concurrent_api_calls)
        self.rate_limiter = AsyncLimiter(requests_per_minute, 60)

    def _max_tokens(self, text: str) -> int:
        # Translations rarely exceed a few times the source length in tokens.
        return max(64, count_tokens(text, self.model_name) * 4)

    async def translate(self, line: int, offset: int, length: int, value: str) -> str:
        if not value.strip():
            return value

        if self.client is None:
            raise TranslationError("openai: requires api key", line)

        processed_text, placeholder_mapping = extract_placeholders(value)

        for attempt in range(1, self.max_retries + 1):
            try:
                async with self.semaphore, self.rate_limiter:
                    response = await self.client.chat.completions.create(
                        model=self.model_name,
                        messages=[
                            ChatCompletionSystemMessageParam(
                                role="system", content=SYSTEM_PROMPT.format(language=self.language_name)),
                            ChatCompletionUserMessageParam(role="user", content=processed_text),
                        ],
                        temperature=0.3,
                        max_tokens=self._max_tokens(processed_text),
                        timeout=self.timeout,
                    )
            except (RateLimitError, APITimeoutError, APIConnectionError, APIStatusError) as api_exc:
                logger.error("API error occurred on line %d: %s - %s", line, api_exc.__class__.__name__, api_exc)
                if attempt >= self.max_retries:
                    raise TranslationError(
                        f"openai: failed after {self.max_retries} attempts: {api_exc}", line) from api_exc
                delay = retry_delay(attempt, self.base_delay, api_exc)
                logger.info("Retrying request to /chat/completions in %.2f seconds (Attempt %d/%d)",
                            delay, attempt, self.max_retries)
                await asyncio.sleep(delay)
                continue
            except OpenAIError as api_exc:
                raise TranslationError(f"openai: {api_exc}", line) from api_exc

            content = response.choices[0].message.content
            if content is None:
                raise TranslationError("openai: empty response", line)

            translated_text = restore_placeholders(content.strip(), placeholder_mapping)
            translated_text = clean_translated_text(translated_text, value)
            logger.debug("Translated value on line %d (offset %d, length %d).", line, offset, length)
            return translated_text

        raise TranslationError("openai: no attempts made", line)


def build_translator(app_config) -> Translator:
    """
    Create the translator selected by ``app_config.translator``.

    Raises:
        ConfigurationError: For an unknown translator, or ``openai`` without
        an API key.
    """
    name = app_config.translator.lower()
    if name in (TRANSLATOR_IDENTITY, TRANSLATOR_DRY):
        logger.info("Using the identity translator, values will not be changed.")
        return IdentityTranslator()

    if name == TRANSLATOR_OPENAI:
        if not app_config.openai_api_key:
            raise ConfigurationError(f"empty or missing openai api key (required for \"{TRANSLATOR_OPENAI}\" translator)")
        return OpenAITranslator(
            client=AsyncOpenAI(api_key=app_config.openai_api_key),
            language=app_config.language,
            model_name=app_config.model_name,
            max_concurrent_api_calls=app_config.max_concurrent_api_calls,
            requests_per_minute=app_config.requests_per_minute,
            max_retries=app_config.max_retries,
        )

    raise ConfigurationError(f"invalid translator: {app_config.translator}")
