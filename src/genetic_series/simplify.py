"""
Term-rewriting simplifier for expression trees.

simplify() applies algebraic identities and exact integer constant folding
bottom-up, and repeats whole passes until the canonical string stops changing
or config.max_iterations passes have run. The iteration cap is a safety valve,
not a proof of termination: a tree may come back only partially normalized.

simplify_numeric() additionally replaces every maximal subtree that does not
depend on the bound variable by a single constant, evaluated at arbitrary
precision and rounded to the nearest integer when not integral. The rounding
loses information by construction since constants are integers only.

Both functions are total: any rewrite whose preconditions fail is skipped and
the subtree is returned unchanged. Input trees are never modified.
"""

import logging
from math import isqrt
from typing import Optional

from .config import EngineConfig, DEFAULT_CONFIG
from .evaluator import evaluate
from .nodes import (ExprNode, Var, Const, Unary, Binary, UnaryOp, BinaryOp, INT64_MIN, INT64_MAX,
                    canonical, contains_var, in_int64_range)
from .parser import EvaluationError

__all__ = [
    "simplify",
    "simplify_numeric",
    "fold_constant_subtrees",
    "fold_constants",
]

logger = logging.getLogger(__name__)

# Largest factorial argument whose value fits in 64 bits
MAX_FACTORIAL_ARG = 20
MAX_POWER_EXPONENT = 20


def simplify(node: ExprNode, config: EngineConfig = DEFAULT_CONFIG) -> ExprNode:
    """Rewrite node towards a fixed point of the identity and folding rules"""
    current_key = canonical(node)
    for _ in range(config.max_iterations):
        rewritten = _simplify(node, 0, config.max_depth)
        rewritten_key = canonical(rewritten)
        if rewritten_key == current_key:
            return rewritten
        node, current_key = rewritten, rewritten_key
    logger.debug("No fixed point after %d passes: %s", config.max_iterations, current_key)
    return node


def simplify_numeric(node: ExprNode, prec: Optional[int] = None,
                     config: EngineConfig = DEFAULT_CONFIG) -> ExprNode:
    """simplify, fold variable-free subtrees numerically, then simplify again"""
    node = simplify(node, config)
    node = fold_constant_subtrees(node, prec, config)
    return simplify(node, config)


def fold_constants(op: BinaryOp, a: int, b: int) -> Optional[int]:
    """Exact integer result of `a op b`, or None when it must not be folded"""
    if op is BinaryOp.ADD:
        result = a + b
    elif op is BinaryOp.SUB:
        result = a - b
    elif op is BinaryOp.MUL:
        result = a * b
    elif op is BinaryOp.DIV:
        if b == 0 or a % b != 0:
            return None
        result = a // b
    elif op is BinaryOp.POW:
        if b < 0 or b > MAX_POWER_EXPONENT:
            return None
        result = 1
        for _ in range(b):
            result *= a
    else:
        return None
    return result if in_int64_range(result) else None


def _factorial(value: int, step: int) -> int:
    result = 1
    for i in range(value, 1, -step):
        result *= i
    return result


def _fold_unary(op: UnaryOp, value: int) -> Optional[int]:
    if op is UnaryOp.NEG:
        return -value if value != INT64_MIN else None
    if op is UnaryOp.FACTORIAL:
        return _factorial(value, 1) if 0 <= value <= MAX_FACTORIAL_ARG else None
    if op is UnaryOp.DOUBLE_FACTORIAL:
        return _factorial(value, 2) if 0 <= value <= MAX_FACTORIAL_ARG else None
    if op is UnaryOp.ALT_SIGN:
        if value < 0:
            return None
        return 1 if value % 2 == 0 else -1
    if op is UnaryOp.ABS:
        return abs(value) if value != INT64_MIN else None
    if op is UnaryOp.SQRT:
        if value < 0:
            return None
        root = isqrt(value)
        return root if root * root == value else None
    return None


def _is_const(node: ExprNode, value: Optional[int] = None) -> bool:
    return isinstance(node, Const) and (value is None or node.value == value)


def _rebuild_unary(node: Unary, child: ExprNode) -> ExprNode:
    return node if child is node.child else Unary(node.op, child)


def _rebuild_binary(node: Binary, left: ExprNode, right: ExprNode) -> ExprNode:
    if left is node.left and right is node.right:
        return node
    return Binary(node.op, left, right)


def _simplify(node: ExprNode, depth: int, max_depth: int) -> ExprNode:
    if depth > max_depth:
        return node
    if isinstance(node, (Var, Const)):
        return node
    if isinstance(node, Unary):
        return _simplify_unary(node, depth, max_depth)
    if isinstance(node, Binary):
        return _simplify_binary(node, depth, max_depth)
    return node


def _simplify_unary(node: Unary, depth: int, max_depth: int) -> ExprNode:
    child = _simplify(node.child, depth + 1, max_depth)

    # -(-x) = x
    if node.op is UnaryOp.NEG and isinstance(child, Unary) and child.op is UnaryOp.NEG:
        return child.child

    if isinstance(child, Const):
        folded = _fold_unary(node.op, child.value)
        if folded is not None:
            return Const(folded)

    return _rebuild_unary(node, child)


def _simplify_binary(node: Binary, depth: int, max_depth: int) -> ExprNode:
    left = _simplify(node.left, depth + 1, max_depth)
    right = _simplify(node.right, depth + 1, max_depth)
    op = node.op

    if isinstance(left, Const) and isinstance(right, Const):
        folded = fold_constants(op, left.value, right.value)
        if folded is not None:
            return Const(folded)

    if op is BinaryOp.ADD:
        if _is_const(right, 0):
            return left
        if _is_const(left, 0):
            return right
        # x + (-k) = x - k
        if _is_const(right) and INT64_MIN < right.value < 0:
            return _simplify(Binary(BinaryOp.SUB, left, Const(-right.value)), depth + 1, max_depth)
        # x + (-y) = x - y
        if isinstance(right, Unary) and right.op is UnaryOp.NEG:
            return _simplify(Binary(BinaryOp.SUB, left, right.child), depth + 1, max_depth)

    elif op is BinaryOp.SUB:
        if _is_const(right, 0):
            return left
        if _is_const(left, 0):
            return _simplify(Unary(UnaryOp.NEG, right), depth + 1, max_depth)
        # x - (-k) = x + k
        if _is_const(right) and INT64_MIN < right.value < 0:
            return _simplify(Binary(BinaryOp.ADD, left, Const(-right.value)), depth + 1, max_depth)
        # x - (-y) = x + y
        if isinstance(right, Unary) and right.op is UnaryOp.NEG:
            return _simplify(Binary(BinaryOp.ADD, left, right.child), depth + 1, max_depth)
        if canonical(left) == canonical(right):
            return Const(0)

    elif op is BinaryOp.MUL:
        if _is_const(right, 0) or _is_const(left, 0):
            return Const(0)
        if _is_const(right, 1):
            return left
        if _is_const(left, 1):
            return right
        if _is_const(right, -1):
            return _simplify(Unary(UnaryOp.NEG, left), depth + 1, max_depth)
        if _is_const(left, -1):
            return _simplify(Unary(UnaryOp.NEG, right), depth + 1, max_depth)

    elif op is BinaryOp.DIV:
        if _is_const(right, 1):
            return left
        if _is_const(left, 0):
            return Const(0)
        # denominators are assumed non-zero
        if canonical(left) == canonical(right):
            return Const(1)

    elif op is BinaryOp.POW:
        if _is_const(right, 0):
            return Const(1)
        if _is_const(right, 1):
            return left
        if _is_const(left, 0):
            return Const(0)
        if _is_const(left, 1):
            return Const(1)

    return _rebuild_binary(node, left, right)


# ===== Numeric folding =====
def fold_constant_subtrees(node: ExprNode, prec: Optional[int] = None,
                           config: EngineConfig = DEFAULT_CONFIG) -> ExprNode:
    """Replace each maximal variable-free subtree by its (rounded) integer value"""
    return _fold(node, prec or config.precision, config, 0)


def _fold(node: ExprNode, prec: int, config: EngineConfig, depth: int) -> ExprNode:
    if depth > config.max_depth or isinstance(node, (Var, Const)):
        return node

    if not contains_var(node, config.max_depth):
        folded = _numeric_value(node, prec, config)
        return node if folded is None else Const(folded)

    if isinstance(node, Unary):
        return _rebuild_unary(node, _fold(node.child, prec, config, depth + 1))
    if isinstance(node, Binary):
        return _rebuild_binary(node,
                               _fold(node.left, prec, config, depth + 1),
                               _fold(node.right, prec, config, depth + 1))
    return node


def _numeric_value(node: ExprNode, prec: int, config: EngineConfig) -> Optional[int]:
    try:
        value = evaluate(node, 0, prec, config)
    except EvaluationError as e:
        logger.debug("Not folding %s: %s", canonical(node), e)
        return None

    # the range test comes first so int() never materializes a huge integer
    if not (INT64_MIN <= value <= INT64_MAX):
        logger.debug("Not folding %s: value %s outside the 64-bit range", canonical(node), value)
        return None
    if value == int(value):
        return int(value)

    # round half away from zero
    rounded = int(value + 0.5) if value >= 0 else int(value - 0.5)
    if rounded == 0:
        # a manufactured zero would invite later divisions by zero
        logger.debug("Not folding %s: rounds to zero", canonical(node))
        return None
    if rounded in (INT64_MIN, INT64_MAX):
        logger.debug("Not folding %s: rounds to the edge of the 64-bit range", canonical(node))
        return None
    return rounded
