"""
Tests for voices and the voice catalog.

Tests cover:
- Technical names and locale normalization
- Default voice
- Speaker x language expansion
- Catalog lookup by locale and technical name
- Atomic catalog replacement
"""
from __future__ import annotations

from tts_bridge.tts.voices import (
    DEFAULT_LANGUAGE_ID,
    DEFAULT_VOICE_ID,
    UNDEFINED_LOCALE,
    Speaker,
    Voice,
    VoiceCatalog,
    VoiceCatalogHolder,
    build_voices,
    default_voice,
    locale_country,
    normalize_locale,
    technify,
)


class TestNames:

    def test_technify(self):
        assert technify("en_US_p225_Ana Florence") == "en_US_p225_AnaFlorence"
        assert technify("fr-fr") == "fr_fr"
        assert technify("a.b/c (Custom)") == "abcCustom"

    def test_normalize_locale(self):
        assert normalize_locale("en_us") == "en-US"
        assert normalize_locale("EN") == "en"
        assert normalize_locale("fr-fr") == "fr-FR"
        assert normalize_locale(UNDEFINED_LOCALE) == UNDEFINED_LOCALE

    def test_locale_country(self):
        assert locale_country("en-US") == "US"
        assert locale_country("en") == ""

    def test_voice_technical_name(self):
        v = Voice(locale="en-US", label="Ana Florence", language_id="en", speaker_id="p225")
        assert v.technical_name == "en_US_p225_AnaFlorence"
        assert v.uid == "coquitts:en_US_p225_AnaFlorence"
        assert v.display_label == "Ana Florence - en_US_p225_AnaFlorence"

    def test_to_dict(self):
        v = Voice(locale="en", label="p225", language_id="en", speaker_id="p225")
        d = v.to_dict()
        assert d["uid"] == "coquitts:en__p225_p225"
        assert d["locale"] == "en"

    def test_default_voice(self):
        v = default_voice()
        assert v.speaker_id == DEFAULT_VOICE_ID
        assert v.language_id == DEFAULT_LANGUAGE_ID
        assert v.locale == UNDEFINED_LOCALE
        assert v.technical_name == "undefined___default__DefaultVoice"


class TestBuildVoices:

    def test_cross_product(self):
        voices = build_voices([Speaker("p225", "p225"), Speaker("p226", "p226")], ["en", "fr-fr"])
        assert len(voices) == 4
        assert {v.locale for v in voices} == {"en", "fr-FR"}
        fr = [v for v in voices if v.locale == "fr-FR"][0]
        assert fr.language_id == "fr-fr"
        assert fr.technical_name == "fr_FR_p225_p225"

    def test_no_languages(self):
        voices = build_voices([Speaker("p225", "p225")], [])
        assert len(voices) == 1
        assert voices[0].locale == UNDEFINED_LOCALE
        assert voices[0].language_id == DEFAULT_LANGUAGE_ID

    def test_no_speakers(self):
        assert build_voices([], ["en"]) == []


class TestCatalog:

    def _catalog(self):
        return VoiceCatalog.from_voices(
            build_voices([Speaker("Ana", "ana")], ["en", "en-US", "de"])
        )

    def test_len_and_locales(self):
        catalog = self._catalog()
        assert len(catalog) == 3
        assert catalog.locales() == ["de", "en", "en-US"]

    def test_exact_locale(self):
        voices = self._catalog().for_locale("en_us")
        assert [v.locale for v in voices] == ["en-US"]

    def test_language_fallback(self):
        voices = self._catalog().for_locale("en-GB")
        assert [v.locale for v in voices] == ["en"]

    def test_unknown_locale(self):
        assert self._catalog().for_locale("ja") == []

    def test_find(self):
        catalog = self._catalog()
        assert catalog.find("de__ana_Ana").locale == "de"
        assert catalog.find("missing") is None

    def test_empty(self):
        assert VoiceCatalog.empty().is_empty()


class TestHolder:

    def test_replace_and_clear(self):
        holder = VoiceCatalogHolder()
        assert holder.get().is_empty()
        catalog = VoiceCatalog.from_voices([default_voice()])
        holder.replace(catalog)
        assert holder.get() is catalog
        holder.clear()
        assert holder.get().is_empty()
