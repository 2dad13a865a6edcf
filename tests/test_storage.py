from datetime import datetime

import storage


def test_module_imports_cleanly():
    assert isinstance(storage.events, storage.EventStore)
    assert isinstance(storage.translations, storage.TranslationStore)


def make_user(email):
    return storage.users.create("Someone", email, "x")


def test_events_are_scoped_to_their_owner(app):
    with app.app_context():
        owner = make_user("owner@example.com")
        stranger = make_user("stranger@example.com")
        created = storage.events.create_many(owner.id, [
            {"title": "Eid", "event_date": datetime(2030, 4, 1)},
            {"title": "Exams", "event_date": datetime(2031, 6, 1)},
        ])

        assert [e.title for e in storage.events.list_for_owner(owner.id)] == ["Exams", "Eid"]
        assert storage.events.list_for_owner(stranger.id) == []
        assert storage.events.get(created[0].id, stranger.id) is None
        assert storage.events.update(created[0].id, stranger.id, {"title": "Mine"}) is None
        assert storage.events.delete(created[0].id, stranger.id) is False
        assert storage.events.get(created[0].id, owner.id).title == "Eid"


def test_event_defaults_are_applied_by_the_model(app):
    with app.app_context():
        owner = make_user("owner@example.com")
        e = storage.events.create(owner.id, {"title": "Trip", "event_date": datetime(2031, 1, 1)})
        assert (e.event_type, e.calculation_type, e.repeat_option) == ("countdown", "days-left", "none")


def test_translations_are_listed_by_namespace_then_key(app):
    with app.app_context():
        storage.translations.create("b.key", {"namespace": "menu", "arabic_text": "ب", "english_text": "b"})
        storage.translations.create("a.key", {"namespace": "menu", "arabic_text": "أ", "english_text": "a"})
        storage.translations.create("z.key", {"namespace": "common", "arabic_text": "ز", "english_text": "z"})
        assert [row.key for row in storage.translations.list_all()] == ["z.key", "a.key", "b.key"]


def test_registration_does_not_create_a_profile(app):
    with app.app_context():
        u = make_user("new@example.com")
        assert storage.profiles.get(u.id) is None
        assert storage.roles.get(u.id).role == "user"
