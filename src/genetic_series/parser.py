import argparse
from typing import NamedTuple, Optional, Tuple, Any

import regex as re

from .nodes import ExprNode, Var, Const, Unary, Binary, UnaryOp, BinaryOp, VAR_NAME, in_int64_range
from .parser_rules import (spacing_pattern, integer_pattern, two_argument_commands, braced_functions,
                           named_functions, delimited_functions, alt_sign_pattern, fibonacci_pattern,
                           multiplication_pattern, command_pattern, implicit_multiplication_pattern,
                           SNIPPET_LENGTH)


class ExpressionError(Exception):
    """Base class for all expression engine errors"""
    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        return self.message

class LatexSyntaxError(ExpressionError):
    """Raised when LaTeX input does not match the expression grammar.

    `position` is the character index into `text`; `offset` is the same
    location as a byte offset into the UTF-8 encoded text, which is what the
    message reports.
    """
    def __init__(self, message: str, text: str, position: int,
                 original_error: Optional[Exception] = None):
        snippet = text[position:position + SNIPPET_LENGTH]
        if len(text) - position > SNIPPET_LENGTH:
            snippet += "..."
        offset = len(text[:position].encode("utf-8"))
        super().__init__(f"{message} at byte {offset}: {snippet!r}", original_error)
        self.reason = message
        self.text = text
        self.position = position
        self.offset = offset
        self.snippet = snippet

class EvaluationError(ExpressionError):
    """Raised when a tree cannot be evaluated numerically"""
    def __init__(self, message: str, node: Optional[ExprNode] = None, value: Any = None,
                 original_error: Optional[Exception] = None):
        super().__init__(message, original_error)
        self.node = node
        self.value = value

# ===== Data Structures =====
class Cursor(NamedTuple):
    """Immutable read position into the source text"""
    text: str
    pos: int = 0

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.text[index] if index < len(self.text) else ""

    def startswith(self, prefix: str) -> bool:
        return self.text.startswith(prefix, self.pos)

    def match(self, pattern: re.Pattern):
        return pattern.match(self.text, self.pos)

    def advance(self, count: int) -> "Cursor":
        return Cursor(self.text, self.pos + count)

    def moved_to(self, pos: int) -> "Cursor":
        return Cursor(self.text, pos)

    def skip_spaces(self) -> "Cursor":
        m = spacing_pattern.match(self.text, self.pos)
        return Cursor(self.text, m.end()) if m else self

    def error(self, message: str, original_error: Optional[Exception] = None) -> LatexSyntaxError:
        return LatexSyntaxError(message, self.text, self.pos, original_error)

Parsed = Tuple[ExprNode, Cursor]

def _is_digit(ch: str) -> bool:
    return len(ch) == 1 and "0" <= ch <= "9"

# ===== Main Parsing Functions =====
def parse_latex(latex_string: str) -> ExprNode:
    """Parse a complete LaTeX expression; the whole input must be consumed"""
    node, cur = parse_expression(Cursor(latex_string))
    cur = cur.skip_spaces()
    if not cur.at_end:
        raise cur.error("Unexpected trailing input")
    return node

def parse_expression(cur: Cursor) -> Parsed:
    """Parse one expression starting at cur, stopping at the first token it cannot use"""
    try:
        return _parse_additive(cur)
    except RecursionError as e:
        raise cur.error("Expression nested too deeply", e) from None

def expect(cur: Cursor, token: str) -> Cursor:
    """Consume a literal token after optional spacing"""
    cur = cur.skip_spaces()
    if not cur.startswith(token):
        raise cur.error(f"Expected {token!r}")
    return cur.advance(len(token))

def parse_integer(cur: Cursor) -> Tuple[int, Cursor]:
    """Parse a signed decimal literal that fits in 64 bits"""
    cur = cur.skip_spaces()
    m = cur.match(integer_pattern)
    if not m:
        raise cur.error("Expected integer")
    value = int(m.group())
    if not in_int64_range(value):
        raise cur.error(f"Invalid integer {m.group()!r} (out of 64-bit range)")
    return value, cur.moved_to(m.end())

def _parse_additive(cur: Cursor) -> Parsed:
    node, cur = _parse_multiplicative(cur)
    while True:
        cur = cur.skip_spaces()
        if cur.peek() == "+":
            op = BinaryOp.ADD
        elif cur.peek() == "-":
            op = BinaryOp.SUB
        else:
            return node, cur
        right, cur = _parse_multiplicative(cur.advance(1))
        node = Binary(op, node, right)

def _parse_multiplicative(cur: Cursor) -> Parsed:
    node, cur = _parse_unary(cur)
    while True:
        cur = cur.skip_spaces()
        m = cur.match(multiplication_pattern)
        if m:
            cur = cur.moved_to(m.end())
        elif not cur.match(implicit_multiplication_pattern):
            return node, cur
        right, cur = _parse_unary(cur)
        node = Binary(BinaryOp.MUL, node, right)

def _parse_unary(cur: Cursor) -> Parsed:
    cur = cur.skip_spaces()
    if cur.peek() == "-" and not _is_digit(cur.peek(1)):
        child, cur = _parse_unary(cur.advance(1))
        return Unary(UnaryOp.NEG, child), cur
    # "-<digits>" is a negative literal and is left to the primary parser
    return _parse_postfix(cur)

def _parse_postfix(cur: Cursor) -> Parsed:
    node, cur = _parse_primary(cur)
    while True:
        look = cur.skip_spaces()
        if look.startswith("!!"):
            node, cur = Unary(UnaryOp.DOUBLE_FACTORIAL, node), look.advance(2)
        elif look.peek() == "!":
            node, cur = Unary(UnaryOp.FACTORIAL, node), look.advance(1)
        elif look.peek() == "^":
            exponent, cur = _parse_exponent(look.advance(1))
            node = Binary(BinaryOp.POW, node, exponent)
        else:
            return node, cur

def _parse_exponent(cur: Cursor) -> Parsed:
    """Either a braced full expression or a single bare primary (^2, ^n)"""
    cur = cur.skip_spaces()
    if cur.peek() == "{":
        return _parse_group(cur, "{", "}")
    return _parse_primary(cur)

def _parse_group(cur: Cursor, opening: str, closing: str) -> Parsed:
    cur = expect(cur, opening)
    node, cur = parse_expression(cur)
    return node, expect(cur, closing)

def _parse_function_argument(cur: Cursor) -> Parsed:
    """Accept {(expr)}, (expr) and {expr}; the first is a brace group around a paren group"""
    cur = cur.skip_spaces()
    if cur.peek() == "{":
        return _parse_group(cur, "{", "}")
    if cur.peek() == "(":
        return _parse_group(cur, "(", ")")
    raise cur.error("Expected function argument")

def _parse_command(cur: Cursor, name: str) -> Parsed:
    after = cur.advance(len(name))
    if name in two_argument_commands:
        left, after = _parse_group(after, "{", "}")
        right, after = _parse_group(after, "{", "}")
        return Binary(two_argument_commands[name], left, right), after
    if name in braced_functions:
        child, after = _parse_group(after, "{", "}")
        return Unary(braced_functions[name], child), after
    if name in named_functions:
        child, after = _parse_function_argument(after)
        return Unary(named_functions[name], child), after
    if name in delimited_functions:
        closing, op = delimited_functions[name]
        child, after = parse_expression(after)
        return Unary(op, child), expect(after, closing)
    raise cur.error(f"Unknown command {name!r}")

def _parse_primary(cur: Cursor) -> Parsed:
    cur = cur.skip_spaces()
    if cur.at_end:
        raise cur.error("Unexpected end of input")

    # \frac, \binom, \sqrt, \sin, \cos, \ln, \lfloor, \lceil
    m = cur.match(command_pattern)
    if m:
        return _parse_command(cur, m.group())

    if cur.peek() == "|":
        child, after = parse_expression(cur.advance(1))
        return Unary(UnaryOp.ABS, child), expect(after, "|")

    # (-1)^ must win over plain parenthesis grouping
    m = cur.match(alt_sign_pattern)
    if m:
        child, after = _parse_exponent(cur.moved_to(m.end()))
        return Unary(UnaryOp.ALT_SIGN, child), after

    # F_{ must win over brace grouping
    m = cur.match(fibonacci_pattern)
    if m:
        child, after = parse_expression(cur.moved_to(m.end()))
        return Unary(UnaryOp.FIBONACCI, child), expect(after, "}")

    if cur.peek() == "{":
        return _parse_group(cur, "{", "}")
    if cur.peek() == "(":
        return _parse_group(cur, "(", ")")

    if cur.peek() == VAR_NAME:
        return Var(), cur.advance(1)

    if _is_digit(cur.peek()) or (cur.peek() == "-" and _is_digit(cur.peek(1))):
        value, after = parse_integer(cur)
        return Const(value), after

    raise cur.error("Unexpected token")

# ===== Main Entry Point =====
if __name__ == "__main__":
    from .render import to_latex
    from .simplify import simplify

    parser = argparse.ArgumentParser(description='Parse a LaTeX series term')
    parser.add_argument('expression', type=str, help='LaTeX expression to parse')
    args = parser.parse_args()

    try:
        tree = parse_latex(args.expression)
    except LatexSyntaxError as e:
        print(f"Error: {e}")
        exit(1)
    else:
        print(f"Canonical: {tree}")
        print(f"LaTeX: {to_latex(tree)}")
        print(f"Simplified: {simplify(tree)}")
