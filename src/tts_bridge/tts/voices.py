"""
Voices and the Voice Catalog.

A Voice pairs one backend speaker with one language. Every voice has a
technical name built only from [A-Za-z0-9_], so it can be used as a file
name prefix in the cache and as a stable identifier:

    technify("en_US_p225_Ana Florence")  ->  "en_US_p225_AnaFlorence"

The VoiceCatalog is an immutable snapshot of all voices known at one
point in time. A VoiceCatalogHolder owns the current snapshot and swaps
it atomically, so readers never see a half-built catalog.

Sentinels:
    DEFAULT_VOICE_ID / DEFAULT_LANGUAGE_ID mark "let the backend decide";
    backends send them as empty values. When a backend lists no voices at
    all, the catalog contains a single default voice built from them.
"""
from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

DEFAULT_VOICE_ID = "-default-"
DEFAULT_LANGUAGE_ID = "undefined"
UNDEFINED_LOCALE = "Undefined"
DEFAULT_VOICE_LABEL = "Default Voice"
VOICE_UID_PREFIX = "coquitts:"

_NON_TECHNICAL = re.compile(r"[^a-zA-Z0-9_]")


def technify(value: str) -> str:
    """Map "-" to "_", then drop every character outside [A-Za-z0-9_]."""
    return _NON_TECHNICAL.sub("", value.replace("-", "_"))


def normalize_locale(tag: str) -> str:
    """Canonical form of a language tag: "en_us" -> "en-US"."""
    parts = tag.strip().replace("_", "-").split("-")
    if len(parts) == 1:
        return parts[0].lower() if parts[0] != UNDEFINED_LOCALE else parts[0]
    return "-".join([parts[0].lower(), parts[1].upper(), *parts[2:]])


def locale_country(locale: str) -> str:
    """Region part of a locale ("en-US" -> "US", "en" -> "")."""
    parts = locale.replace("_", "-").split("-")
    return parts[1].upper() if len(parts) > 1 else ""


def make_technical_name(language_id: str, locale: str, speaker_id: str, label: str) -> str:
    return technify(f"{language_id}_{locale_country(locale)}_{speaker_id}_{label}")


@dataclass(frozen=True)
class Speaker:
    """A speaker as listed by a backend."""
    label: str
    speaker_id: str


@dataclass(frozen=True)
class Voice:
    """
    One selectable synthesis voice.

    Attributes:
        locale: Locale tag the voice is offered for ("en", "en-US").
        label: Human-readable speaker name.
        language_id: Language id sent to the backend.
        speaker_id: Speaker id sent to the backend.
        technical_name: Derived identifier, see make_technical_name().
    """
    locale: str
    label: str
    language_id: str
    speaker_id: str
    technical_name: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "technical_name",
            make_technical_name(self.language_id, self.locale, self.speaker_id, self.label),
        )

    @property
    def uid(self) -> str:
        return VOICE_UID_PREFIX + self.technical_name

    @property
    def display_label(self) -> str:
        return f"{self.label} - {self.technical_name}"

    def to_dict(self) -> Dict[str, str]:
        return {
            "uid": self.uid,
            "locale": self.locale,
            "label": self.display_label,
            "language_id": self.language_id,
            "speaker_id": self.speaker_id,
            "technical_name": self.technical_name,
        }


def default_voice() -> Voice:
    """Voice that lets the backend pick speaker and language."""
    return Voice(
        locale=UNDEFINED_LOCALE,
        label=DEFAULT_VOICE_LABEL,
        language_id=DEFAULT_LANGUAGE_ID,
        speaker_id=DEFAULT_VOICE_ID,
    )


def build_voices(speakers: Iterable[Speaker], languages: Iterable[str]) -> List[Voice]:
    """
    Cross every speaker with every language.

    A backend that lists no languages (single-language model) gets its
    speakers under the undefined locale and default language id.
    """
    langs = [lang for lang in languages if lang]
    voices: List[Voice] = []
    for speaker in speakers:
        if not langs:
            voices.append(Voice(UNDEFINED_LOCALE, speaker.label, DEFAULT_LANGUAGE_ID, speaker.speaker_id))
            continue
        for lang in langs:
            voices.append(Voice(normalize_locale(lang), speaker.label, lang, speaker.speaker_id))
    return voices


class VoiceCatalog:
    """
    Immutable snapshot of known voices, grouped by locale.

    Usage:
        catalog = VoiceCatalog.from_voices(voices)
        catalog.for_locale("en-US")
        catalog.find("en__p225_AnaFlorence")
    """

    def __init__(self, by_locale: Dict[str, Tuple[Voice, ...]]):
        self._by_locale = dict(by_locale)
        self._by_name: Dict[str, Voice] = {}
        for group in self._by_locale.values():
            for v in group:
                self._by_name.setdefault(v.technical_name, v)

    @classmethod
    def from_voices(cls, voices: Iterable[Voice]) -> "VoiceCatalog":
        grouped: Dict[str, List[Voice]] = {}
        for v in voices:
            grouped.setdefault(v.locale, []).append(v)
        return cls({loc: tuple(vs) for loc, vs in grouped.items()})

    @classmethod
    def empty(cls) -> "VoiceCatalog":
        return cls({})

    def __len__(self) -> int:
        return len(self._by_name)

    def is_empty(self) -> bool:
        return not self._by_name

    def voices(self) -> List[Voice]:
        return list(self._by_name.values())

    def locales(self) -> List[str]:
        return sorted(self._by_locale)

    def for_locale(self, locale: str) -> List[Voice]:
        """
        Voices offered for ``locale``.

        An exact tag match wins; otherwise a region-specific request
        ("en-GB") falls back to the bare language ("en").
        """
        tag = normalize_locale(locale)
        if tag in self._by_locale:
            return list(self._by_locale[tag])
        language = tag.split("-", 1)[0]
        return list(self._by_locale.get(language, ()))

    def find(self, technical_name: str) -> Optional[Voice]:
        return self._by_name.get(technical_name)


class VoiceCatalogHolder:
    """Owns the current VoiceCatalog and replaces it atomically."""

    def __init__(self, catalog: Optional[VoiceCatalog] = None):
        self._lock = threading.Lock()
        self._catalog = catalog or VoiceCatalog.empty()

    def get(self) -> VoiceCatalog:
        with self._lock:
            return self._catalog

    def replace(self, catalog: VoiceCatalog) -> None:
        with self._lock:
            self._catalog = catalog

    def clear(self) -> None:
        self.replace(VoiceCatalog.empty())
