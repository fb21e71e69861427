"""Freed translation service."""
import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Union

import requests

from ..config import AdapterConfig
from ..errors import InvalidResponseError, ServiceUnavailableError, UnsupportedLanguageError
from ..languages import LanguageCodec
from ..retry import RetryingExecutor
from ..transport import CookieAffinityStore, TransportClient
from .base import GlossaryWords, TranslateEngine

logger = logging.getLogger(__name__)


class FreedService:
    """Freed HTTP API implementation.

    One instance owns one connection pool and one cookie store for its
    whole lifetime; both are shared by every concurrent call.
    """

    NAME = "Freed"
    ENGINES = (TranslateEngine(code="freed", name=NAME),)

    def __init__(self, config: Union[AdapterConfig, Mapping[str, Any]]):
        """Initialize Freed service.

        Args:
            config: AdapterConfig, or a raw configuration map to validate

        Raises:
            ConfigurationError: If a required field is absent or mistyped
        """
        if not isinstance(config, AdapterConfig):
            config = AdapterConfig.from_mapping(config)
        self.config = config

        self.codec = LanguageCodec()
        self.cookie_store = CookieAffinityStore()
        self.transport = TransportClient(
            cookie_store=self.cookie_store,
            pool_size=config.concurrent,
        )
        self.executor = RetryingExecutor(
            retry_count=config.retry_count,
            retry_delay=config.retry_delay,
        )
        self._headers = config.headers()

        logger.info("FreedService init success, supportedEngines: %s", list(self.ENGINES))

    def name(self) -> str:
        """Return service name."""
        return self.NAME

    def supported_engines(self) -> List[TranslateEngine]:
        return list(self.ENGINES)

    def is_supported(self, source_lang: str, target_lang: str) -> bool:
        return self.codec.is_supported(source_lang) and self.codec.is_supported(target_lang)

    def is_target_supported(self, target_lang: str) -> bool:
        return self.codec.is_supported(target_lang)

    def build_payload(
        self,
        inputs: List[str],
        target_code: str,
        source_code: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Build the JSON request body.

        ``source_lang`` is omitted when no source code is given, which lets
        the service detect the language itself.
        """
        payload: Dict[str, Any] = {
            "text": list(inputs),
            "target_lang": target_code,
            "language_model": self.config.language_model,
            "usage_type": self.config.usage_type,
        }
        if source_code:
            payload["source_lang"] = source_code
        return payload

    def translate_batch(
        self,
        target_lang: str,
        inputs: List[str],
        source_lang: Optional[str] = None,
        is_source_auto: bool = False,
        glossary_words: Optional[GlossaryWords] = None,
        glossary_ignore_case: bool = False,
        request_id: Optional[str] = None,
    ) -> List[str]:
        """Translate a batch of text segments.

        Glossary arguments are accepted for interface uniformity; the Freed
        API has no glossary support.

        Returns:
            List of translated strings in the same order as input

        Raises:
            UnsupportedLanguageError: Target or non-auto source is not supported
            ServiceUnavailableError: Non-2xx status or empty body
            InvalidResponseError: Body does not hold a translations list
            requests.RequestException: Transport failure after all retries
        """
        if not inputs:
            return []

        try:
            logger.debug(
                "Freed translate start, requestId:%s, target:%s, inputs:%s",
                request_id, target_lang, inputs,
            )
            begin = time.monotonic()

            target_code = self.codec.resolve(target_lang)
            if target_code is None:
                raise UnsupportedLanguageError(target_lang, "target")

            source_code = None
            if not is_source_auto:
                source_code = self.codec.resolve(source_lang)
                if source_code is None:
                    raise UnsupportedLanguageError(source_lang, "source")

            payload = self.build_payload(inputs, target_code, source_code)

            outputs = self.executor.execute(
                lambda: self._execute_once(payload, inputs, target_lang),
                on_retry=lambda attempt, exc: logger.debug(
                    "Freed request failed (%s), retry %d/%d, requestId:%s",
                    exc, attempt, self.executor.retry_count, request_id,
                ),
            )

            elapsed_ms = int((time.monotonic() - begin) * 1000)
            logger.info(
                "Freed translate end, time:%dms, results:%s, inputs:%s, target:%s",
                elapsed_ms, outputs, inputs, target_lang,
            )
            return outputs
        except Exception as e:
            logger.warning(
                "Freed translation failure, requestId:%s, inputs:%s, target:%s, error:%s",
                request_id, inputs, target_lang, e,
                exc_info=True,
            )
            raise

    def _execute_once(self, payload: Dict[str, Any], inputs: List[str], target_lang: str) -> List[str]:
        response = self.transport.post_json(self.config.url, payload, self._headers)
        with response:
            return self.parse_response(response, inputs, target_lang)

    def parse_response(
        self,
        response: requests.Response,
        inputs: List[str],
        target_lang: str,
    ) -> List[str]:
        """Validate a response and extract translations in order.

        A translation object without ``text`` yields an empty string.

        Raises:
            ServiceUnavailableError: Non-2xx status or empty body
            InvalidResponseError: Body is not ``{"translations": [{...}, ...]}``
        """
        if not 200 <= response.status_code < 300 or not response.content:
            logger.error(
                "Freed translation return code invalid, inputs:%s, target:%s, code:%s",
                inputs, target_lang, response.status_code,
            )
            raise ServiceUnavailableError(response.status_code)

        body = response.text
        try:
            data = response.json()
        except ValueError as e:
            logger.error(
                "Freed translation return invalid, inputs:%s, target:%s, result:%s",
                inputs, target_lang, body,
            )
            raise InvalidResponseError("Freed translation return invalid", body) from e

        translations = data.get("translations") if isinstance(data, dict) else None
        if not isinstance(translations, list) or not all(isinstance(t, dict) for t in translations):
            logger.error(
                "Freed translation return invalid, inputs:%s, target:%s, result:%s",
                inputs, target_lang, body,
            )
            raise InvalidResponseError("Freed translation return invalid", body)

        outputs = [
            "" if item.get("text") is None else str(item["text"])
            for item in translations
        ]

        if self.config.strict_length and len(outputs) != len(inputs):
            logger.error(
                "Freed translation count mismatch, inputs:%s, target:%s, result:%s",
                inputs, target_lang, body,
            )
            raise InvalidResponseError(
                f"Freed returned {len(outputs)} translations for {len(inputs)} texts", body
            )

        return outputs

    def close(self) -> None:
        """Close the pooled HTTP session."""
        self.transport.close()

    def __enter__(self) -> "FreedService":
        return self

    def __exit__(self, *args) -> None:
        self.close()
