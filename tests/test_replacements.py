import json

import pytest

from microblog_ranking.replacements import (
    DEFAULT_REPLACEMENTS_PATH,
    RegexReplacement,
    ReplacementTable,
)


@pytest.fixture
def table():
    return ReplacementTable.from_json(DEFAULT_REPLACEMENTS_PATH)


@pytest.mark.parametrize(
    "token,expected",
    [
        ("plz", "please"),
        ("PLZZZ", "please"),
        ("wym", "what do you mean"),
        ("gr8", "great"),
        ("Govt", "government"),
        ("beach", "beach"),
        # whole-token matches only
        ("plzhelp", "plzhelp"),
        ("your", "your"),
    ],
)
def test_default_table(table, token, expected):
    assert table.replace(token) == expected


def test_first_matching_rule_wins():
    table = ReplacementTable(
        [RegexReplacement("(?i)u", "you"), RegexReplacement("(?i)u+", "youuu")]
    )
    assert table.apply(["u", "uuu", "sun"]) == ["you", "youuu", "sun"]


def test_empty_table_is_identity():
    assert ReplacementTable().apply(["plz", "gr8"]) == ["plz", "gr8"]


def write_json(tmp_path, content):
    path = tmp_path / "replacements.json"
    path.write_text(content if isinstance(content, str) else json.dumps(content), encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        {"regex": "plz", "replacement": "please"},
        [{"regex": "plz"}],
        ["plz"],
        [{"regex": "pl(z", "replacement": "please"}],
    ],
)
def test_malformed_table(tmp_path, content):
    with pytest.raises(ValueError):
        ReplacementTable.from_json(write_json(tmp_path, content))


def test_missing_table(tmp_path):
    with pytest.raises(FileNotFoundError):
        ReplacementTable.from_json(tmp_path / "missing.json")


def test_custom_table(tmp_path):
    path = write_json(tmp_path, [{"regex": "(?i)bday", "replacement": "birthday"}])
    table = ReplacementTable.from_json(path)
    assert len(table) == 1
    assert table.replace("BDAY") == "birthday"
