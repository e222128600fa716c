from __future__ import annotations

from translit_pipeline.selector import MIN_TEXT_LAYER_CHARS, MinCharsPolicy, needs_ocr, stripped_length


def test_threshold_boundary():
    assert needs_ocr("ಕ" * 14) is True
    assert needs_ocr("ಕ" * 20) is False
    assert needs_ocr("x" * MIN_TEXT_LAYER_CHARS) is False
    assert needs_ocr("x" * (MIN_TEXT_LAYER_CHARS - 1)) is True


def test_whitespace_is_not_counted():
    text = " 1 2 3\n\n4 5 6\t7 8 9 10 "
    assert stripped_length(text) == 11
    assert needs_ocr(text) is True
    assert needs_ocr("") is True


def test_decision_is_pure():
    policy = MinCharsPolicy(5)
    samples = ["abcd", "abcde", " a b c d e ", ""]
    first = [policy(s) for s in samples]
    second = [policy(s) for s in reversed(samples)][::-1]
    assert first == second == [True, False, False, True]


def test_policy_threshold_is_overridable():
    assert MinCharsPolicy(1)("x") is False
    assert MinCharsPolicy(100)("x" * 99) is True
