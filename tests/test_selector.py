# Translation selector tests
# Dependent files: projection/selector.py

from projection.selector import select_translation


def test_exact_match():
    records = [{"locale": "en", "title": "Hello"}, {"locale": "ar", "title": "مرحبا"}]
    assert select_translation(records, "ar")["title"] == "مرحبا"


def test_no_match_returns_none():
    assert select_translation([{"locale": "en", "title": "Hello"}], "ar") is None


def test_empty_and_missing_sequences():
    assert select_translation([], "en") is None
    assert select_translation(None, "en") is None


def test_first_in_order_wins():
    records = [
        {"id": 1, "locale": "en", "title": "First"},
        {"id": 2, "locale": "en", "title": "Second"},
    ]
    assert select_translation(records, "en")["id"] == 1


def test_match_is_exact_not_prefix():
    records = [{"locale": "en-US", "title": "US"}, {"locale": "EN", "title": "Upper"}]
    assert select_translation(records, "en") is None


def test_returns_record_itself():
    record = {"locale": "en", "title": "Hello"}
    assert select_translation([record], "en") is record
