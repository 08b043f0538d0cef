from eventhub.i18n import TRANSLATIONS, Translator, get_translation, normalize_language


def test_every_english_key_has_an_arabic_translation():
    assert set(TRANSLATIONS["en"]) == set(TRANSLATIONS["ar"])


def test_lookup_falls_back_to_english_then_key():
    assert get_translation("ar", "validation.required") == TRANSLATIONS["ar"]["validation.required"]
    assert get_translation("fr", "validation.required") == TRANSLATIONS["en"]["validation.required"]
    assert get_translation("en", "no.such.key") == "no.such.key"


def test_normalize_language():
    assert normalize_language("ar-SA,ar;q=0.9,en;q=0.8") == "ar"
    assert normalize_language("en-US") == "en"
    assert normalize_language("") == "en"
    assert normalize_language("de") == "en"


def test_translator_direction():
    translator = Translator("en")
    assert translator.direction == "ltr"

    translator.set_language("ar")
    assert translator.is_rtl
    assert translator.direction == "rtl"
    assert translator.t("role.organizer") == TRANSLATIONS["ar"]["role.organizer"]
