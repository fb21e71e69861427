"""Capability protocol implemented by every translation adapter."""
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple, runtime_checkable


@dataclass(frozen=True)
class TranslateEngine:
    """An engine an adapter can serve, as exposed to the dispatcher."""

    code: str
    name: str


GlossaryWords = Sequence[Tuple[str, str]]


@runtime_checkable
class TranslationAdapter(Protocol):
    """Protocol for translation backend adapters.

    The dispatcher picks an adapter through the registry by engine code
    and only talks to it through these methods.
    """

    def name(self) -> str:
        """Return adapter name."""
        ...

    def supported_engines(self) -> List[TranslateEngine]:
        """Return the engines this adapter serves."""
        ...

    def is_supported(self, source_lang: str, target_lang: str) -> bool:
        """Whether the language pair can be translated, without a network call."""
        ...

    def is_target_supported(self, target_lang: str) -> bool:
        """Whether the target language can be translated, without a network call."""
        ...

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

        Args:
            target_lang: Target language tag (e.g. 'ja', 'zh_CN')
            inputs: Texts to translate
            source_lang: Source language tag, ignored when auto-detecting
            is_source_auto: True if the user chose automatic detection
            glossary_words: (source, target) term pairs, if the backend uses them
            glossary_ignore_case: Match glossary terms case-insensitively
            request_id: Caller's request identifier for log correlation

        Returns:
            List of translated strings in the same order as input
        """
        ...

    def close(self) -> None:
        """Release pooled resources."""
        ...
