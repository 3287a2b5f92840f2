"""Answer evaluation tests."""

import math

import pytest

from physlab.classroom import evaluate, option_labels, parse_numeric_answer
from physlab.errors import InvalidInput
from physlab.schemas import Question


def numerical(target, tolerance=None):
    return Question(type="numerical", correct_value=target, tolerance_percent=tolerance)


def choice(correct="B", options=("x", "y", "z")):
    return Question(type="multiple_choice", options=list(options), correct_answer=correct)


class TestNumericParsing:

    @pytest.mark.parametrize("text,expected", [
        ("42", 42.0),
        ("-3.5", -3.5),
        ("3,5", 3.5),
        ("1/2", 0.5),
        ("2^3", 8.0),
        ("3*10**2", 300.0),
        ("(1+2)*3", 9.0),
        ("2e3", 2000.0),
        (" 7 ", 7.0),
    ])
    def test_valid_expressions(self, text, expected):
        assert parse_numeric_answer(text) == pytest.approx(expected)

    def test_pi_constant(self):
        assert parse_numeric_answer("2*pi") == pytest.approx(2 * math.pi)

    def test_plain_numbers(self):
        assert parse_numeric_answer(5) == 5.0
        assert parse_numeric_answer(2.5) == 2.5

    @pytest.mark.parametrize("text", [
        "", "   ", None, "abc", "1/0", "2 +", "__import__('os')",
        "10**1000", "inf", "nan", "(-8)**0.5", "[1]",
    ])
    def test_invalid_expressions(self, text):
        with pytest.raises(InvalidInput):
            parse_numeric_answer(text)

    def test_non_finite_number(self):
        with pytest.raises(InvalidInput):
            parse_numeric_answer(float("inf"))

    def test_long_expression_rejected(self):
        with pytest.raises(InvalidInput):
            parse_numeric_answer("+".join(["1"] * 5000))

    def test_deeply_nested_expression_rejected(self):
        with pytest.raises(InvalidInput):
            parse_numeric_answer("(" * 3000 + "1" + ")" * 3000)

    def test_expression_at_length_limit(self):
        assert parse_numeric_answer("+".join(["1"] * 100)) == 100.0

    def test_bool_rejected(self):
        with pytest.raises(InvalidInput):
            parse_numeric_answer(True)


class TestNumericalEvaluation:

    @pytest.mark.parametrize("candidate,correct", [
        ("104", True),
        ("106", False),
        ("95", True),
        ("94", False),
        ("105", True),   # boundary counts as correct
        ("100", True),
    ])
    def test_tolerance_scenario(self, candidate, correct):
        assert evaluate(numerical(100, 5), candidate) is correct

    def test_tolerance_relative_to_target(self):
        # 10% of the target 10 is 1, regardless of the candidate's size
        q = numerical(10, 10)
        assert evaluate(q, "11")
        assert not evaluate(q, "11.5")

    def test_negative_target(self):
        q = numerical(-50, 10)
        assert evaluate(q, "-45")
        assert evaluate(q, "-55")
        assert not evaluate(q, "-44")

    def test_zero_target_requires_exact_answer(self):
        q = numerical(0, 50)
        assert evaluate(q, "0")
        assert not evaluate(q, "0.0001")

    def test_missing_tolerance_is_exact(self):
        q = numerical(3)
        assert evaluate(q, "3")
        assert not evaluate(q, "3.01")

    def test_expression_answer(self):
        assert evaluate(numerical(0.5, 0), "1/2")

    def test_unparseable_answer(self):
        with pytest.raises(InvalidInput):
            evaluate(numerical(1, 5), "one")


class TestChoiceEvaluation:

    def test_correct_label(self):
        assert evaluate(choice("B"), "B")

    def test_wrong_label(self):
        assert not evaluate(choice("B"), "A")

    def test_stored_label_normalized(self):
        assert evaluate(choice(" c "), "C")

    def test_candidate_not_normalized(self):
        assert not evaluate(choice("B"), "b")

    def test_empty_choice(self):
        with pytest.raises(InvalidInput):
            evaluate(choice("B"), "")
        with pytest.raises(InvalidInput):
            evaluate(choice("B"), None)

    def test_option_labels(self):
        assert option_labels(choice(options=("x", "y", "z"))) == ["A", "B", "C"]
