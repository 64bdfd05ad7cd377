"""
Conversion of expression trees and candidates to SymPy.

Used for reporting (pretty printing, LaTeX through SymPy's printer) and for
cross-checking numeric results against an independent implementation.
"""

from typing import Optional

import sympy as sp

from .nodes import ExprNode, Var, Const, Unary, Binary, UnaryOp, BinaryOp, VAR_NAME

__all__ = [
    "index_symbol",
    "to_sympy",
    "candidate_to_sympy",
]

_UNARY_FUNCTIONS = {
    UnaryOp.FACTORIAL: sp.factorial,
    UnaryOp.DOUBLE_FACTORIAL: sp.factorial2,
    UnaryOp.FIBONACCI: sp.fibonacci,
    UnaryOp.SIN: sp.sin,
    UnaryOp.COS: sp.cos,
    UnaryOp.LN: sp.log,
    UnaryOp.FLOOR: sp.floor,
    UnaryOp.CEIL: sp.ceiling,
    UnaryOp.ABS: sp.Abs,
}


def index_symbol() -> sp.Symbol:
    return sp.Symbol(VAR_NAME, integer=True)


def to_sympy(node: ExprNode, symbol: Optional[sp.Symbol] = None) -> sp.Expr:
    """Translate node without letting SymPy evaluate the structure away"""
    if symbol is None:
        symbol = index_symbol()
    if isinstance(node, Var):
        return symbol
    if isinstance(node, Const):
        return sp.Integer(node.value)
    if isinstance(node, Unary):
        child = to_sympy(node.child, symbol)
        if node.op is UnaryOp.NEG:
            return sp.Mul(sp.Integer(-1), child, evaluate=False)
        if node.op is UnaryOp.ALT_SIGN:
            return sp.Pow(sp.Integer(-1), child, evaluate=False)
        if node.op is UnaryOp.SQRT:
            return sp.Pow(child, sp.Rational(1, 2), evaluate=False)
        return _UNARY_FUNCTIONS[node.op](child, evaluate=False)
    if isinstance(node, Binary):
        left = to_sympy(node.left, symbol)
        right = to_sympy(node.right, symbol)
        if node.op is BinaryOp.ADD:
            return sp.Add(left, right, evaluate=False)
        if node.op is BinaryOp.SUB:
            return sp.Add(left, sp.Mul(sp.Integer(-1), right, evaluate=False), evaluate=False)
        if node.op is BinaryOp.MUL:
            return sp.Mul(left, right, evaluate=False)
        if node.op is BinaryOp.DIV:
            return sp.Mul(left, sp.Pow(right, sp.Integer(-1), evaluate=False), evaluate=False)
        if node.op is BinaryOp.POW:
            return sp.Pow(left, right, evaluate=False)
        if node.op is BinaryOp.BINOMIAL:
            return sp.binomial(left, right, evaluate=False)
    raise TypeError(f"Not an expression node: {node!r}")


def candidate_to_sympy(candidate) -> sp.Sum:
    """Unevaluated Sum(numerator/denominator, (n, start, oo))"""
    symbol = index_symbol()
    term = sp.Mul(to_sympy(candidate.numerator, symbol),
                  sp.Pow(to_sympy(candidate.denominator, symbol), sp.Integer(-1), evaluate=False),
                  evaluate=False)
    return sp.Sum(term, (symbol, sp.Integer(candidate.start), sp.oo))
