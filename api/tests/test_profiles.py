import logging

from roommatch.profiles import Cleanliness, Preferences, SleepSchedule, Smoking, make_profile, parse_preferences


def test_parse_json_document_normalises_values():
    prefs = parse_preferences('{"budget": "12000", "cleanliness": " High ", "smoking": "NO", "sleep": "Late", "interests": ["Gym", "", "gym", "books"]}')
    assert prefs.budget == 12000
    assert prefs.cleanliness is Cleanliness.HIGH
    assert prefs.smoking is Smoking.NO
    assert prefs.sleep is SleepSchedule.LATE
    assert prefs.interests == frozenset({"gym", "books"})


def test_missing_fields_stay_absent():
    prefs = parse_preferences({"budget": 9000})
    assert prefs.budget == 9000
    assert prefs.cleanliness is None
    assert prefs.interests is None
    assert not prefs.is_empty


def test_empty_inputs_give_empty_preferences():
    for raw in (None, "", "   ", "null", {}):
        assert parse_preferences(raw).is_empty


def test_unknown_keys_are_ignored():
    prefs = parse_preferences({"budget": 8000, "pets": "cat"})
    assert prefs.budget == 8000


def test_unreadable_documents_give_empty_preferences(caplog):
    caplog.set_level(logging.WARNING)
    for raw in ("{not json", "[1, 2, 3]", "42"):
        assert parse_preferences(raw) == Preferences()
    assert caplog.text.count("[PROFILES]") == 3


def test_bad_field_only_blanks_that_field(caplog):
    caplog.set_level(logging.WARNING)
    cases = [
        ({"budget": -5, "sleep": "early"}, "budget"),
        ({"budget": "lots", "sleep": "early"}, "budget"),
        ({"cleanliness": "spotless", "sleep": "early"}, "cleanliness"),
        ({"interests": "books", "sleep": "early"}, "interests"),
    ]
    for raw, field_name in cases:
        prefs = parse_preferences(raw)
        assert getattr(prefs, field_name) is None
        assert prefs.sleep is SleepSchedule.EARLY
    assert caplog.text.count("[PROFILES]") == len(cases)


def test_several_bad_fields_keep_the_good_ones():
    prefs = parse_preferences('{"budget": "lots", "smoking": "sometimes", "cleanliness": "high", "interests": ["Art"]}')
    assert prefs.budget is None
    assert prefs.smoking is None
    assert prefs.cleanliness is Cleanliness.HIGH
    assert prefs.interests == frozenset({"art"})


def test_as_document_round_trips_through_parser():
    prefs = parse_preferences({"budget": 10000, "sleep": "early", "interests": ["b", "a"]})
    doc = prefs.as_document()
    assert doc == {"budget": 10000, "sleep": "early", "interests": ["a", "b"]}
    assert parse_preferences(doc) == prefs


def test_make_profile_defaults():
    profile = make_profile(42, {"smoking": "yes"}, display_name="Kemi")
    assert profile.user_id == "42"
    assert profile.is_active is True
    assert profile.role == "student"
    assert profile.preferences.smoking is Smoking.YES
