"""
Testing hard-mode hint accumulation and checks.
"""

from wordduel.engine import evaluate
from wordduel.hard_mode import (
    HardModeHints, HardModeValidator, MissingLetterViolation, PositionViolation,
    check, ordinal, record_result,
)


def _record(hints, guess, target):
    return record_result(hints, guess, evaluate(guess, target))


def test_empty_hints_allow_anything():
    assert check(HardModeHints(), "jumpy") is None


def test_record_result_pins_correct_and_tracks_present():
    hints = _record(HardModeHints(), "trace", "crane")
    assert dict(hints.correct) == {1: "r", 2: "a", 4: "e"}
    assert hints.present == frozenset({"c"})


def test_record_result_returns_new_value():
    before = HardModeHints()
    after = _record(before, "trace", "crane")
    assert dict(before.correct) == {}
    assert before.present == frozenset()
    assert after is not before


def test_correct_supersedes_present():
    hints = _record(HardModeHints(), "trace", "crane")
    assert "c" in hints.present
    hints = _record(hints, "crate", "crane")
    assert hints.correct[0] == "c"
    assert "c" not in hints.present


def test_present_not_added_when_letter_already_pinned():
    # 'e' is pinned at index 4 first, then shows up as present elsewhere
    hints = _record(HardModeHints(), "slate", "eerie")
    assert dict(hints.correct) == {4: "e"}
    hints = record_result(hints, "eerie", ["correct", "present", "absent", "absent", "correct"])
    assert hints.correct[0] == "e"
    assert "e" not in hints.present


def test_position_violation_reported_first():
    hints = _record(HardModeHints(), "trace", "crane")
    violation = check(hints, "cigar")
    assert violation == PositionViolation(1, "r")
    assert violation.describe() == "2nd letter must be R"


def test_missing_letter_violation():
    hints = HardModeHints(present=frozenset({"c"}))
    violation = check(hints, "slate")
    assert violation == MissingLetterViolation("c")
    assert violation.describe() == "Guess must contain C"


def test_check_does_not_mutate():
    validator = HardModeValidator()
    validator.record_result("trace", evaluate("trace", "crane"))
    snapshot = validator.hints
    validator.check("jumpy")
    validator.check("crane")
    assert validator.hints == snapshot


def test_validator_accepts_guess_that_reuses_hints():
    validator = HardModeValidator()
    validator.record_result("trace", evaluate("trace", "crane"))
    assert validator.check("crane") is None
    assert validator.check("crate") is None
    validator.reset()
    assert validator.hints == HardModeHints()


def test_ordinal():
    assert [ordinal(n) for n in (1, 2, 3, 4, 5, 11, 12, 13, 21, 22)] == [
        "1st", "2nd", "3rd", "4th", "5th", "11th", "12th", "13th", "21st", "22nd",
    ]
