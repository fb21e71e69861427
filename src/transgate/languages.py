"""Language-code negotiation between gateway tags and provider codes."""
from typing import Dict, Iterable, Mapping, Optional, Tuple


# Canonical codes exactly as the provider accepts them.
SUPPORTED_LANGUAGE_CODES: Tuple[str, ...] = (
    'ace', 'af', 'am', 'an', 'ar', 'as', 'ay', 'az', 'ba', 'be', 'bg', 'bho', 'bn', 'br',
    'bs', 'ca', 'ceb', 'ckb', 'cs', 'cy', 'da', 'de', 'el', 'en-GB', 'en-US', 'eo',
    'es', 'es-419', 'et', 'eu', 'fa', 'fi', 'fr', 'ga', 'gl', 'gn', 'gom', 'gu', 'ha',
    'he', 'hi', 'hr', 'ht', 'hu', 'hy', 'id', 'ig', 'is', 'it', 'ja', 'jv', 'ka', 'kk',
    'kmr', 'ko', 'ky', 'la', 'lb', 'lmo', 'ln', 'lt', 'lv', 'mai', 'mg', 'mi', 'mk',
    'ml', 'mn', 'mr', 'ms', 'mt', 'my', 'nb', 'ne', 'nl', 'oc', 'om', 'pa', 'pag', 'pam',
    'pl', 'prs', 'ps', 'pt-BR', 'pt-PT', 'qu', 'ro', 'ru', 'sa', 'scn', 'si', 'sk',
    'sl', 'sq', 'sr', 'st', 'su', 'sv', 'sw', 'ta', 'te', 'tg', 'th', 'tk', 'tl', 'tn',
    'tr', 'ts', 'tt', 'uk', 'ur', 'uz', 'vi', 'wo', 'xh', 'yi', 'yue', 'zh-Hans',
    'zh-Hant', 'zu',
)

# Checked before the canonical index.
LANGUAGE_OVERRIDES: Dict[str, Optional[str]] = {
    'auto': None,
    'zh': 'zh-Hans',
    'zh-cn': 'zh-Hans',
    'zh-hans': 'zh-Hans',
    'zh-tw': 'zh-Hant',
    'zh-hant': 'zh-Hant',
    'en': 'en-US',
    'pt': 'pt-PT',
}


def normalize_lang_code(language: str) -> str:
    """Trim, turn underscores into hyphens and lower-case a tag."""
    return language.strip().replace('_', '-').lower()


def base_language(language: str) -> str:
    """Return the primary subtag of a tag ('pt_BR' -> 'pt')."""
    return normalize_lang_code(language).split('-', 1)[0]


class LanguageCodec:
    """Resolve arbitrary language tags to the provider's canonical codes.

    Resolution order:
      1. blank tags are unsupported
      2. fixed overrides (``auto`` and the generic zh/en/pt forms)
      3. exact canonical match, ignoring case and ``_``/``-``
      4. canonical match on the primary subtag only

    ``resolve`` returns ``None`` for anything it cannot map. Callers model
    auto-detection as "no source code", so ``auto`` also yields ``None``.
    """

    def __init__(
        self,
        codes: Iterable[str] = SUPPORTED_LANGUAGE_CODES,
        overrides: Mapping[str, Optional[str]] = LANGUAGE_OVERRIDES,
    ):
        self._codes: Tuple[str, ...] = tuple(codes)
        self._index: Dict[str, str] = {}
        for code in self._codes:
            key = normalize_lang_code(code)
            if key in self._index:
                raise ValueError(f"Duplicate language code: {code}")
            self._index[key] = code

        self._overrides: Dict[str, Optional[str]] = {}
        for alias, canonical in overrides.items():
            if canonical is not None and canonical not in self._codes:
                raise ValueError(f"Override {alias!r} maps to unknown code {canonical!r}")
            self._overrides[normalize_lang_code(alias)] = canonical

    @property
    def codes(self) -> Tuple[str, ...]:
        """Supported canonical codes, in provider order."""
        return self._codes

    def aliases(self) -> Dict[str, Optional[str]]:
        """Return the alias table: normalized tag -> canonical code."""
        table: Dict[str, Optional[str]] = dict(self._index)
        table.update(self._overrides)
        return table

    def resolve(self, language: Optional[str]) -> Optional[str]:
        """Map a language tag to a canonical code.

        Args:
            language: Gateway language tag (e.g. 'zh_CN', 'en', 'fr-CA')

        Returns:
            Canonical provider code, or None if unsupported
        """
        if language is None or not language.strip():
            return None

        normalized = normalize_lang_code(language)
        if normalized in self._overrides:
            return self._overrides[normalized]

        canonical = self._index.get(normalized)
        if canonical is not None:
            return canonical

        return self._index.get(base_language(normalized))

    def is_supported(self, language: Optional[str]) -> bool:
        return self.resolve(language) is not None
