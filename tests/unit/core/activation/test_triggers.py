import pytest

from lorebook.core.activation.triggers import evaluate_trigger, keyword_matches
from lorebook.core.rules.domain.rule import RuleLogic

TEXT = "The dragon circles the tower"


@pytest.mark.parametrize(
    "logic,keywords,expected",
    [
        (RuleLogic.ANY, ["dragon", "elf"], True),
        (RuleLogic.ANY, ["elf", "orc"], False),
        (RuleLogic.ALL, ["dragon", "tower"], True),
        (RuleLogic.ALL, ["dragon", "elf"], False),
        (RuleLogic.NOT_ALL, ["dragon", "elf"], True),
        (RuleLogic.NOT_ALL, ["dragon", "tower"], False),
        (RuleLogic.NOT_ANY, ["elf", "orc"], True),
        (RuleLogic.NOT_ANY, ["dragon", "orc"], False),
    ],
)
def test_logic_truth_table(logic, keywords, expected):
    assert evaluate_trigger(keywords, logic, TEXT).matched is expected


@pytest.mark.parametrize(
    "logic,expected",
    [
        (RuleLogic.ANY, False),
        (RuleLogic.ALL, True),
        (RuleLogic.NOT_ALL, False),
        (RuleLogic.NOT_ANY, True),
    ],
)
def test_empty_keyword_set(logic, expected):
    assert evaluate_trigger([], logic, TEXT).matched is expected


def test_plain_int_logic_accepted():
    assert evaluate_trigger(["dragon"], 3, TEXT).matched is True


def test_matched_keywords_and_reason():
    result = evaluate_trigger(["dragon", "elf", "tower"], RuleLogic.ANY, TEXT)

    assert result.matched_keywords == ["dragon", "tower"]
    assert result.reason == "ANY: matched 2/3 keywords"


def test_case_insensitive_by_default():
    assert keyword_matches("DRAGON", TEXT)
    assert not keyword_matches("DRAGON", TEXT, case_sensitive=True)
    assert keyword_matches("dragon", TEXT, case_sensitive=True)


def test_substring_vs_whole_word():
    assert keyword_matches("drag", TEXT)
    assert not keyword_matches("drag", TEXT, match_whole_words=True)
    assert keyword_matches("dragon", TEXT, match_whole_words=True)


def test_whole_word_phrase_and_punctuation():
    text = "Hail, old king! The sword-bearer waits."
    assert keyword_matches("old king", text, match_whole_words=True)
    assert keyword_matches("sword", text, match_whole_words=True)
    assert not keyword_matches("bear", text, match_whole_words=True)


def test_regex_characters_are_literal():
    assert keyword_matches("c++", "I write c++ daily", match_whole_words=True)
    assert not keyword_matches("a.c", "abc")


def test_vietnamese_text():
    text = "Người chơi bước vào khu rừng cấm"
    assert keyword_matches("RỪNG", text)
    assert keyword_matches("cấm", text, match_whole_words=True)
    assert not keyword_matches("cấ", text, match_whole_words=True)


def test_composed_and_decomposed_forms_match():
    decomposed = "c\u0061\u0302\u0301m"  # base letters plus combining marks
    assert keyword_matches("cấm", f"khu rừng {decomposed}")


def test_blank_keyword_never_matches():
    assert not keyword_matches("", TEXT)
    assert not keyword_matches("   ", TEXT)
    assert not keyword_matches("dragon", "")
