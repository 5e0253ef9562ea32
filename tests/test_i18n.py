"""Tests for the injected language context."""

from survey_studio.i18n import LanguageContext


def test_translate_with_params() -> None:
    i18n = LanguageContext("en")

    assert i18n.translate("batchResult", succeeded=4, total=5) == "4 of 5 questions updated"


def test_switching_language() -> None:
    i18n = LanguageContext("en")
    i18n.set_language("it-IT")

    assert i18n.language == "it"
    assert i18n.t("batchResult", succeeded=1, total=2) == "1 di 2 domande aggiornate"


def test_unknown_language_and_key_fall_back() -> None:
    i18n = LanguageContext("xx")

    assert i18n.language == "en"
    assert i18n.translate("noSuchKey") == "noSuchKey"
