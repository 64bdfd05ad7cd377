"""
Evaluator module computing expression trees numerically at arbitrary precision.

Operations whose result would exceed 2**config.max_magnitude in absolute
value (huge powers, factorials, Fibonacci numbers and binomials) are refused
before mpmath is asked to compute them, since mpmath would otherwise spend
unbounded time or memory on them.
"""

import logging
import threading
from typing import Any, Optional

from mpmath import MPContext

from .config import EngineConfig, DEFAULT_CONFIG
from .nodes import ExprNode, Var, Const, Unary, Binary, UnaryOp, BinaryOp, contains_var
from .parser import EvaluationError

__all__ = [
    "evaluate",
    "evaluate_term",
    "partial_sum",
    "contains_var",
]

logger = logging.getLogger(__name__)

# One mpmath context per thread and precision; contexts adjust their own
# precision internally, so they are never shared between threads.
_local = threading.local()

# Contexts kept per thread; the oldest is dropped beyond this
MAX_CACHED_CONTEXTS = 8


def _context(prec: int) -> MPContext:
    contexts = getattr(_local, "contexts", None)
    if contexts is None:
        contexts = _local.contexts = {}
    ctx = contexts.get(prec)
    if ctx is None:
        if len(contexts) >= MAX_CACHED_CONTEXTS:
            del contexts[next(iter(contexts))]
        ctx = MPContext()
        ctx.prec = prec
        contexts[prec] = ctx
    return ctx


def evaluate(node: ExprNode, value: Any, prec: Optional[int] = None,
             config: EngineConfig = DEFAULT_CONFIG):
    """Evaluate node with the bound variable set to value.

    Returns an mpmath mpf computed with prec bits (config.precision by
    default) and raises EvaluationError on any domain violation.
    """
    ctx = _context(prec or config.precision)
    n = ctx.mpf(value)
    try:
        return _evaluate(ctx, node, n, config.max_magnitude)
    except RecursionError as e:
        raise EvaluationError("Expression nested too deeply to evaluate", node, value, e) from None
    except MemoryError as e:
        raise EvaluationError("Out of memory while evaluating", node, value, e) from None
    except (ValueError, ZeroDivisionError, OverflowError) as e:
        raise EvaluationError(f"Numeric failure: {e}", node, value, e) from e


def evaluate_term(candidate, n: int, prec: Optional[int] = None,
                  config: EngineConfig = DEFAULT_CONFIG):
    """numerator(n) / denominator(n) for a Candidate"""
    numerator = evaluate(candidate.numerator, n, prec, config)
    denominator = evaluate(candidate.denominator, n, prec, config)
    if denominator == 0:
        raise EvaluationError(f"Denominator vanishes at n={n}", candidate.denominator, n)
    return numerator / denominator


def partial_sum(candidate, terms: int, prec: Optional[int] = None,
                config: EngineConfig = DEFAULT_CONFIG):
    """Sum the first `terms` terms of the series starting at candidate.start.

    No convergence test is made; the caller decides what the partial sum means.
    """
    if terms < 0:
        raise ValueError("terms must be non-negative")
    ctx = _context(prec or config.precision)
    total = ctx.mpf(0)
    for n in range(candidate.start, candidate.start + terms):
        total += evaluate_term(candidate, n, prec, config)
    logger.debug("Partial sum over %d terms from n=%d: %s", terms, candidate.start, total)
    return total


def _is_integer(ctx: MPContext, x) -> bool:
    return ctx.isint(x)


def _is_even(x) -> bool:
    if x == 0:
        return True
    # mpmath keeps the mantissa odd, so an integer is even iff it was shifted left
    man, exp = x.man_exp
    return exp > 0 or man % 2 == 0


def _finite(ctx: MPContext, node: ExprNode, n, result):
    if isinstance(result, ctx.mpc):
        raise EvaluationError("Result is complex", node, n)
    if ctx.isinf(result) or ctx.isnan(result):
        raise EvaluationError("Result is not finite", node, n)
    return result


# ===== Magnitude guards =====
def _gamma_bits(ctx: MPContext, x):
    """Rough bit size of Gamma(x): |x| * log2|x|"""
    x = abs(x)
    if x <= 2:
        return 0
    return x * ctx.mag(x)


def _check_magnitude(ctx: MPContext, node: ExprNode, n, bits, limit: int) -> None:
    if bits > limit:
        raise EvaluationError(f"Result too large to evaluate (about 2^{ctx.nstr(bits, 5)})", node, n)


def _evaluate(ctx: MPContext, node: ExprNode, n, limit: int):
    if isinstance(node, Var):
        return n
    if isinstance(node, Const):
        return ctx.mpf(node.value)
    if isinstance(node, Unary):
        x = _evaluate(ctx, node.child, n, limit)
        return _finite(ctx, node, n, _apply_unary(ctx, node, x, n, limit))
    if isinstance(node, Binary):
        a = _evaluate(ctx, node.left, n, limit)
        b = _evaluate(ctx, node.right, n, limit)
        return _finite(ctx, node, n, _apply_binary(ctx, node, a, b, n, limit))
    raise TypeError(f"Not an expression node: {node!r}")


def _apply_unary(ctx: MPContext, node: Unary, x, n, limit: int):
    op = node.op
    if op is UnaryOp.NEG:
        return -x
    if op in (UnaryOp.FACTORIAL, UnaryOp.DOUBLE_FACTORIAL):
        if not _is_integer(ctx, x) or x < 0:
            raise EvaluationError(f"Factorial of {x} is undefined", node, n)
        _check_magnitude(ctx, node, n, _gamma_bits(ctx, x), limit)
        return ctx.factorial(x) if op is UnaryOp.FACTORIAL else ctx.fac2(x)
    if op is UnaryOp.ALT_SIGN:
        if not _is_integer(ctx, x):
            raise EvaluationError(f"(-1)^{x} is not real", node, n)
        return ctx.mpf(1) if _is_even(x) else ctx.mpf(-1)
    if op is UnaryOp.FIBONACCI:
        if not _is_integer(ctx, x):
            raise EvaluationError(f"Fibonacci index {x} is not an integer", node, n)
        # F(x) has about 0.69 * |x| bits
        _check_magnitude(ctx, node, n, abs(x), limit)
        return ctx.fib(x)
    if op in (UnaryOp.SIN, UnaryOp.COS):
        # Beyond the working precision the argument carries no phase information
        if x != 0 and ctx.mag(x) > ctx.prec:
            raise EvaluationError(f"Argument {x} too large for trigonometric evaluation", node, n)
        return ctx.sin(x) if op is UnaryOp.SIN else ctx.cos(x)
    if op is UnaryOp.LN:
        if x <= 0:
            raise EvaluationError(f"Logarithm of non-positive value {x}", node, n)
        return ctx.ln(x)
    if op is UnaryOp.FLOOR:
        return ctx.floor(x)
    if op is UnaryOp.CEIL:
        return ctx.ceil(x)
    if op is UnaryOp.ABS:
        return abs(x)
    if op is UnaryOp.SQRT:
        if x < 0:
            raise EvaluationError(f"Square root of negative value {x}", node, n)
        return ctx.sqrt(x)
    raise ValueError(f"Unhandled unary operator {op!r}")


def _power(ctx: MPContext, node: Binary, a, b, n, limit: int):
    if a == 0:
        if b < 0:
            raise EvaluationError("Zero raised to a negative power", node, n)
        return ctx.mpf(1) if b == 0 else ctx.mpf(0)
    if a < 0 and not _is_integer(ctx, b):
        raise EvaluationError(f"Negative base {a} with non-integer exponent {b}", node, n)
    # +-1 are handled here because mpmath converts the exponent to a Python int
    if a == 1:
        return ctx.mpf(1)
    if a == -1:
        return ctx.mpf(1) if _is_even(b) else ctx.mpf(-1)
    _check_magnitude(ctx, node, n, abs(b) * abs(ctx.log(abs(a), 2)), limit)
    return ctx.power(a, b)


def _apply_binary(ctx: MPContext, node: Binary, a, b, n, limit: int):
    op = node.op
    if op is BinaryOp.ADD:
        return a + b
    if op is BinaryOp.SUB:
        return a - b
    if op is BinaryOp.MUL:
        return a * b
    if op is BinaryOp.DIV:
        if b == 0:
            raise EvaluationError("Division by zero", node, n)
        return a / b
    if op is BinaryOp.POW:
        return _power(ctx, node, a, b, n, limit)
    if op is BinaryOp.BINOMIAL:
        if not (_is_integer(ctx, a) and _is_integer(ctx, b)):
            raise EvaluationError(f"Binomial of non-integers ({a}, {b})", node, n)
        # computed as Gamma(a+1) / (Gamma(b+1) * Gamma(a-b+1))
        bits = max(_gamma_bits(ctx, a + 1), _gamma_bits(ctx, b + 1), _gamma_bits(ctx, a - b + 1))
        _check_magnitude(ctx, node, n, bits, limit)
        return ctx.binomial(a, b)
    raise ValueError(f"Unhandled binary operator {op!r}")
