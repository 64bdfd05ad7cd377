"""
LaTeX rendering of expression trees.

The output is meant both for display and for feeding back into
parse_latex(): parse_latex(to_latex(tree)) == tree for every tree the engine
can build. Parentheses are inserted wherever the parser's precedence would
otherwise regroup the operands.

Like canonical(), rendering walks the tree with an explicit stack so that
arbitrarily deep trees never hit the interpreter's recursion limit.
"""

from typing import List

from .nodes import ExprNode, Var, Const, Unary, Binary, UnaryOp, BinaryOp, VAR_NAME

__all__ = [
    "to_latex",
]

_FUNCTION_COMMANDS = {
    UnaryOp.SIN: r"\sin",
    UnaryOp.COS: r"\cos",
    UnaryOp.LN: r"\ln",
}

# Operators whose LaTeX is self-delimiting and can carry a postfix operator as-is
_CLOSED_UNARY = {
    UnaryOp.SQRT, UnaryOp.SIN, UnaryOp.COS, UnaryOp.LN,
    UnaryOp.FLOOR, UnaryOp.CEIL, UnaryOp.ABS, UnaryOp.FIBONACCI,
}
_CLOSED_BINARY = {BinaryOp.DIV, BinaryOp.BINOMIAL}


def to_latex(node: ExprNode) -> str:
    # post-order walk; rendered children wait on `done` until their parent is built
    done: List[str] = []
    stack = [(node, False)]
    while stack:
        current, expanded = stack.pop()
        children = current.children
        if children and not expanded:
            stack.append((current, True))
            stack.extend((child, False) for child in reversed(children))
            continue
        texts = done[len(done) - len(children):]
        del done[len(done) - len(children):]
        done.append(_render(current, texts))
    return done[0]


def _render(node: ExprNode, texts: List[str]) -> str:
    if isinstance(node, Var):
        return VAR_NAME
    if isinstance(node, Const):
        return str(node.value)
    if isinstance(node, Unary):
        return _unary_latex(node, texts[0])
    if isinstance(node, Binary):
        return _binary_latex(node, texts[0], texts[1])
    raise TypeError(f"Not an expression node: {node!r}")


def _is_additive(node: ExprNode) -> bool:
    return isinstance(node, Binary) and node.op in (BinaryOp.ADD, BinaryOp.SUB)


def _is_closed(node: ExprNode) -> bool:
    if isinstance(node, Var):
        return True
    if isinstance(node, Const):
        return node.value >= 0
    if isinstance(node, Unary):
        return node.op in _CLOSED_UNARY
    return node.op in _CLOSED_BINARY


def _postfix_base(node: ExprNode, text: str) -> str:
    return text if _is_closed(node) else f"({text})"


def _unary_latex(node: Unary, inner: str) -> str:
    op = node.op
    if op is UnaryOp.NEG:
        child = node.child
        if (isinstance(child, Binary) and child.op in (BinaryOp.ADD, BinaryOp.SUB, BinaryOp.MUL)) \
                or inner[:1] == "-" or inner[:1].isdigit():
            # -(5) stays a negation; -5 would read back as a literal
            return f"-({inner})"
        return f"-{inner}"
    if op is UnaryOp.FACTORIAL:
        return _postfix_base(node.child, inner) + "!"
    if op is UnaryOp.DOUBLE_FACTORIAL:
        return _postfix_base(node.child, inner) + "!!"
    if op is UnaryOp.ALT_SIGN:
        return f"(-1)^{{{inner}}}"
    if op is UnaryOp.FIBONACCI:
        return f"F_{{{inner}}}"
    if op in _FUNCTION_COMMANDS:
        return f"{_FUNCTION_COMMANDS[op]}{{({inner})}}"
    if op is UnaryOp.FLOOR:
        return rf"\lfloor {inner} \rfloor"
    if op is UnaryOp.CEIL:
        return rf"\lceil {inner} \rceil"
    if op is UnaryOp.ABS:
        return f"|{inner}|"
    if op is UnaryOp.SQRT:
        return rf"\sqrt{{{inner}}}"
    raise ValueError(f"Unhandled unary operator {op!r}")


def _binary_latex(node: Binary, left_text: str, right_text: str) -> str:
    op = node.op
    left, right = node.left, node.right
    if op is BinaryOp.DIV:
        return rf"\frac{{{left_text}}}{{{right_text}}}"
    if op is BinaryOp.BINOMIAL:
        return rf"\binom{{{left_text}}}{{{right_text}}}"
    if op is BinaryOp.POW:
        if isinstance(left, Const) and left.value == -1:
            # (-1)^{...} is reserved for the alternating sign
            base = "{-1}"
        else:
            base = _postfix_base(left, left_text)
        return f"{base}^{{{right_text}}}"

    if op is BinaryOp.MUL:
        if _is_additive(left):
            left_text = f"({left_text})"
        if _is_additive(right) or (isinstance(right, Binary) and right.op is BinaryOp.MUL):
            right_text = f"({right_text})"
        return rf"{left_text} \cdot {right_text}"
    if op in (BinaryOp.ADD, BinaryOp.SUB):
        if _is_additive(right):
            right_text = f"({right_text})"
        return f"{left_text} {op.value} {right_text}"
    raise ValueError(f"Unhandled binary operator {op!r}")
