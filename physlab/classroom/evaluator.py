"""
Answer evaluation - decide whether a candidate answer is correct.

Provides:
- Numerical answers within a percentage tolerance of the target
- Multiple choice answers by option label
- Parsing of simple arithmetic answers ("1/2", "2^3", "3,5")
"""

import ast
import math
import operator

from physlab.errors import InvalidInput
from physlab.schemas import OPTION_LABELS, Question, QuestionType


_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_CONSTANTS = {
    "pi": math.pi,
    "e": math.e,
}

MAX_EXPRESSION_LENGTH = 200


def _eval_node(node: ast.AST) -> float:
    if isinstance(node, ast.Expression):
        return _eval_node(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) \
            and not isinstance(node.value, bool):
        return float(node.value)
    if isinstance(node, ast.Name) and node.id in _CONSTANTS:
        return _CONSTANTS[node.id]
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        return _BINARY_OPS[type(node.op)](_eval_node(node.left), _eval_node(node.right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))
    raise ValueError(f"Unsupported expression element: {type(node).__name__}")


def parse_numeric_answer(text) -> float:
    """
    Parse a numerical answer.

    Accepts plain numbers and simple arithmetic with + - * / ^ ** and
    parentheses. Both "," and "." are accepted as decimal separators.

    Raises:
        InvalidInput: If the answer is empty, malformed or not finite
    """
    if isinstance(text, bool):
        raise InvalidInput("Please enter a valid mathematical expression")
    if isinstance(text, (int, float)):
        value = float(text)
    else:
        expression = (text or "").strip().replace(",", ".").replace("^", "**")
        if not expression:
            raise InvalidInput("Please enter a valid mathematical expression")
        if len(expression) > MAX_EXPRESSION_LENGTH:
            raise InvalidInput(f"Answers are limited to {MAX_EXPRESSION_LENGTH} characters")
        try:
            value = _eval_node(ast.parse(expression, mode="eval"))
        except (SyntaxError, ValueError, TypeError, ZeroDivisionError, OverflowError,
                RecursionError, MemoryError) as e:
            raise InvalidInput("Please enter a valid mathematical expression") from e

    if isinstance(value, complex) or not math.isfinite(value):
        raise InvalidInput("Please enter a finite number")
    return value


def option_labels(question: Question) -> list[str]:
    """Labels for a multiple choice question's options, in option order."""
    return list(OPTION_LABELS[:len(question.options or [])])


def is_within_tolerance(value: float, target: float, tolerance_percent: float) -> bool:
    """Tolerance is a fraction of the target, so a zero target needs an exact answer."""
    margin = abs(target * (tolerance_percent / 100))
    return abs(value - target) <= margin


def evaluate(question: Question, candidate) -> bool:
    """
    Decide whether a candidate answer is correct.

    Args:
        question: Question holding the correctness data
        candidate: Raw answer (expression string or number for numerical
            questions, option label for multiple choice)

    Returns:
        True if correct

    Raises:
        InvalidInput: If the candidate cannot be interpreted
    """
    if question.type == QuestionType.NUMERICAL:
        value = parse_numeric_answer(candidate)
        return is_within_tolerance(value, question.correct_value, question.tolerance)

    if not isinstance(candidate, str) or not candidate.strip():
        raise InvalidInput("Please select an option")
    return candidate == (question.correct_answer or "").strip().upper()
