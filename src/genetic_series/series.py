"""
Candidate series and the outer "series form" parser.

A Candidate denotes sum_{n=start}^{infty} numerator(n) / denominator(n).
Supported input forms:

    \\sum_{n=0}^{\\infty} \\frac{NUM}{DEN}
    \\sum_{n=0}^{\\infty} EXPR
    \\frac{A}{B} \\sum_{n=0}^{\\infty} \\frac{NUM}{DEN}       (outer coefficient)
    COEFF \\sum_{n=0}^{\\infty} \\frac{C}{D} \\frac{E}{F}     (several fractions)

The summation letter may be any single letter; it is rewritten to the
canonical variable before the body is parsed.
"""

import logging
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Tuple

from .config import EngineConfig, DEFAULT_CONFIG
from .evaluator import evaluate_term
from .nodes import ExprNode, Const, Binary, BinaryOp, VAR_NAME, canonical, node_count, iter_consts, \
    node_at, replace_at, in_int64_range
from .parser import Cursor, LatexSyntaxError, parse_latex, parse_expression, parse_integer
from .parser_rules import sum_pattern, sum_variable_pattern, sum_upper_pattern, command_pattern
from .render import to_latex
from .simplify import simplify_numeric

__all__ = [
    "Candidate",
    "ConstHandle",
    "parse_candidate_latex",
    "split_fraction",
    "maybe_mul",
]

logger = logging.getLogger(__name__)

SIDES = ("numerator", "denominator")


class ConstHandle(NamedTuple):
    """Address of a Const leaf inside a Candidate"""
    side: str
    path: Tuple[int, ...]


@dataclass
class Candidate:
    """Numerator/denominator trees plus the first index of the series.

    The trees themselves are immutable. Const leaves are changed only through
    set_const(), which rebuilds the affected tree and reassigns the field.
    """
    numerator: ExprNode
    denominator: ExprNode
    start: int = 0

    def __post_init__(self):
        if isinstance(self.start, bool) or not isinstance(self.start, int) or not in_int64_range(self.start):
            raise ValueError(f"start must be a 64-bit integer, got {self.start!r}")

    def clone(self) -> "Candidate":
        # sharing the trees is safe because nodes never change
        return Candidate(self.numerator, self.denominator, self.start)

    def latex(self) -> str:
        return (rf"\sum_{{{VAR_NAME}={self.start}}}^{{\infty}} "
                rf"\frac{{{to_latex(self.numerator)}}}{{{to_latex(self.denominator)}}}")

    def canonical(self) -> str:
        return f"sum[{VAR_NAME}={self.start}] ({canonical(self.numerator)}) / ({canonical(self.denominator)})"

    def __str__(self) -> str:
        return self.canonical()

    def complexity(self) -> int:
        return node_count(self.numerator) + node_count(self.denominator)

    def term(self, n: int, prec: Optional[int] = None, config: EngineConfig = DEFAULT_CONFIG):
        return evaluate_term(self, n, prec, config)

    def simplified(self, prec: Optional[int] = None, config: EngineConfig = DEFAULT_CONFIG) -> "Candidate":
        """Copy with both trees run through simplify_numeric()"""
        return Candidate(simplify_numeric(self.numerator, prec, config),
                         simplify_numeric(self.denominator, prec, config),
                         self.start)

    # ===== Const leaf handles =====
    def const_handles(self, side: Optional[str] = None) -> List[ConstHandle]:
        sides = SIDES if side is None else (_check_side(side),)
        return [ConstHandle(s, path) for s in sides for path, _ in iter_consts(getattr(self, s))]

    def get_const(self, handle: ConstHandle) -> int:
        leaf = node_at(getattr(self, _check_side(handle.side)), handle.path)
        if not isinstance(leaf, Const):
            raise ValueError(f"Handle {handle!r} does not address a constant")
        return leaf.value

    def set_const(self, handle: ConstHandle, value: int) -> None:
        self.get_const(handle)
        tree = getattr(self, handle.side)
        setattr(self, handle.side, replace_at(tree, handle.path, Const(value)))


def _check_side(side: str) -> str:
    if side not in SIDES:
        raise ValueError(f"side must be one of {SIDES}, got {side!r}")
    return side


# ===== Fraction splitting =====
def _is_one(node: ExprNode) -> bool:
    return isinstance(node, Const) and node.value == 1


def maybe_mul(a: ExprNode, b: ExprNode) -> ExprNode:
    """a * b, dropping a literal factor of 1"""
    if _is_one(a):
        return b
    if _is_one(b):
        return a
    return Binary(BinaryOp.MUL, a, b)


def split_fraction(node: ExprNode) -> Tuple[ExprNode, ExprNode]:
    """Decompose node into (numerator, denominator).

    Div(a, b) -> (a, b); Mul(a, b) -> (a_num * b_num, a_den * b_den);
    anything else -> (node, 1).
    """
    if isinstance(node, Binary):
        if node.op is BinaryOp.DIV:
            return node.left, node.right
        if node.op is BinaryOp.MUL:
            left_num, left_den = split_fraction(node.left)
            right_num, right_den = split_fraction(node.right)
            return maybe_mul(left_num, right_num), maybe_mul(left_den, right_den)
    return node, Const(1)


# ===== Main Parsing Functions =====
def parse_candidate_latex(latex_string: str) -> Candidate:
    """Parse `[COEFF] \\sum_{VAR=START}^{\\infty} BODY` into a Candidate"""
    # collapse runs of whitespace, newlines included
    text = " ".join(latex_string.split())

    m = sum_pattern.search(text)
    if not m:
        raise LatexSyntaxError(r"Expected \sum_{VAR=START}^{\infty}", text, 0)
    sum_index = m.start()

    header = sum_variable_pattern.match(text, sum_index)
    if not header:
        raise LatexSyntaxError(r"Expected \sum_{VAR=", text, sum_index)
    letter = header.group(1)

    start, cur = parse_integer(Cursor(text, header.end()))
    upper = cur.skip_spaces().match(sum_upper_pattern)
    if not upper:
        raise cur.skip_spaces().error(r"Expected }^{\infty}")
    body_index = upper.end()

    if letter != VAR_NAME:
        text = _substitute_variable(text, body_index, letter)

    coefficient = None
    prefix = text[:sum_index].strip()
    if prefix:
        coefficient = split_fraction(parse_latex(prefix))

    cur = Cursor(text, body_index).skip_spaces()
    if cur.at_end:
        raise cur.error(r"Expected series body after \sum")
    body, cur = parse_expression(cur)
    cur = cur.skip_spaces()
    if not cur.at_end:
        raise cur.error("Unexpected trailing input")

    numerator, denominator = split_fraction(body)
    if coefficient is not None:
        numerator = maybe_mul(coefficient[0], numerator)
        denominator = maybe_mul(coefficient[1], denominator)
    return Candidate(numerator, denominator, start)


def _substitute_variable(text: str, body_index: int, letter: str) -> str:
    """Rewrite every occurrence of letter after the \\sum header to the canonical variable.

    This is plain text substitution: a letter that also appears inside a
    command name (\\sin for i, \\cos for s, ...) is rewritten too.
    """
    body = text[body_index:]
    clashes = sorted({cmd for cmd in command_pattern.findall(body) if letter in cmd})
    if clashes:
        logger.warning("Summation letter %r also occurs in %s; substitution will rewrite them",
                       letter, ", ".join(clashes))
    return text[:body_index] + body.replace(letter, VAR_NAME)
