from types import SimpleNamespace

from i18n import TranslationDictionary, normalize_language


def row(key, ar, en):
    return SimpleNamespace(key=key, arabic_text=ar, english_text=en)


def test_falls_back_to_english_then_key():
    d = TranslationDictionary({"en": {"only.en": "English only"}, "ar": {}})
    assert d.translate("ar", "only.en") == "English only"
    assert d.translate("ar", "missing.key") == "missing.key"


def test_reload_overrides_defaults_and_replaces_previous_rows():
    d = TranslationDictionary({"en": {"a.b": "default"}, "ar": {"a.b": "افتراضي"}})
    assert d.reload([row("a.b", "جديد", "new"), row("c", "ج", "c")]) == 2
    assert d.translate("en", "a.b") == "new"
    assert d.translate("ar", "a.b") == "جديد"
    assert d.loaded_at is not None

    d.reload([])
    assert d.translate("en", "a.b") == "default"
    assert d.translate("en", "c") == "c"


def test_format_arguments_and_bad_placeholders():
    d = TranslationDictionary({"en": {"greet": "Hi {name}", "broken": "Hi {name"}, "ar": {}})
    assert d.translate("en", "greet", name="Sara") == "Hi Sara"
    assert d.translate("en", "broken", name="Sara") == "Hi {name"


def test_nested_folds_dot_paths():
    d = TranslationDictionary({"en": {"events.days": "days", "events.hours": "hours", "app.name": "X"}, "ar": {}})
    assert d.nested("en") == {"app": {"name": "X"}, "events": {"days": "days", "hours": "hours"}}


def test_normalize_language():
    assert normalize_language("EN") == "en"
    assert normalize_language("fr") == "ar"
    assert normalize_language(None, "en") == "en"


def test_builtin_catalogues_cover_the_same_keys():
    d = TranslationDictionary()
    assert set(d.catalog("en")) == set(d.catalog("ar"))
