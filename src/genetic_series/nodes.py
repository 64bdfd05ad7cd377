"""
Expression tree model for series terms.

A tree is built from four immutable variants: the bound variable ``Var``, an
exact 64-bit integer ``Const``, ``Unary`` and ``Binary`` operator nodes.
Nodes are never mutated after construction; transformations build new trees
and may share untouched subtrees by reference.

Two trees are considered equal when their canonical strings are equal. This
is the only equality notion used by the engine (``x - x``, ``x / x`` and the
simplifier's fixed-point test all rely on it).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Tuple

__all__ = [
    "INT64_MIN",
    "INT64_MAX",
    "VAR_NAME",
    "UnaryOp",
    "BinaryOp",
    "ExprNode",
    "Var",
    "Const",
    "Unary",
    "Binary",
    "canonical",
    "structurally_equal",
    "node_count",
    "tree_depth",
    "contains_var",
    "iter_consts",
    "node_at",
    "replace_at",
    "in_int64_range",
]

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

# Letter used for the bound index variable in both renderings.
VAR_NAME = "n"

Path = Tuple[int, ...]


def in_int64_range(value: int) -> bool:
    return INT64_MIN <= value <= INT64_MAX


class UnaryOp(Enum):
    NEG = "neg"
    FACTORIAL = "fact"
    DOUBLE_FACTORIAL = "dfact"
    ALT_SIGN = "altsign"
    FIBONACCI = "fib"
    SIN = "sin"
    COS = "cos"
    LN = "ln"
    FLOOR = "floor"
    CEIL = "ceil"
    ABS = "abs"
    SQRT = "sqrt"


class BinaryOp(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    POW = "^"
    BINOMIAL = "binom"


class ExprNode:
    """Base class of the four node variants"""
    __slots__ = ()

    @property
    def children(self) -> Tuple["ExprNode", ...]:
        return ()

    def __eq__(self, other):
        if not isinstance(other, ExprNode):
            return NotImplemented
        return self is other or canonical(self) == canonical(other)

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash(canonical(self))

    def __str__(self) -> str:
        return canonical(self)


@dataclass(frozen=True, eq=False)
class Var(ExprNode):
    """The bound index variable"""


@dataclass(frozen=True, eq=False)
class Const(ExprNode):
    """Exact signed 64-bit integer literal"""
    value: int

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError(f"Const requires an int, got {self.value!r}")
        if not in_int64_range(self.value):
            raise ValueError(f"Const value {self.value} outside the signed 64-bit range")


@dataclass(frozen=True, eq=False)
class Unary(ExprNode):
    op: UnaryOp
    child: ExprNode

    def __post_init__(self):
        if not isinstance(self.op, UnaryOp):
            raise TypeError(f"Unary requires a UnaryOp, got {self.op!r}")
        if not isinstance(self.child, ExprNode):
            raise TypeError(f"Unary child must be an ExprNode, got {self.child!r}")

    @property
    def children(self) -> Tuple[ExprNode, ...]:
        return (self.child,)


@dataclass(frozen=True, eq=False)
class Binary(ExprNode):
    op: BinaryOp
    left: ExprNode
    right: ExprNode

    def __post_init__(self):
        if not isinstance(self.op, BinaryOp):
            raise TypeError(f"Binary requires a BinaryOp, got {self.op!r}")
        if not isinstance(self.left, ExprNode) or not isinstance(self.right, ExprNode):
            raise TypeError("Binary operands must be ExprNode instances")

    @property
    def children(self) -> Tuple[ExprNode, ...]:
        return (self.left, self.right)


def _with_children(node: ExprNode, children: Tuple[ExprNode, ...]) -> ExprNode:
    if isinstance(node, Unary):
        return Unary(node.op, children[0])
    if isinstance(node, Binary):
        return Binary(node.op, children[0], children[1])
    return node


# ===== Queries =====
def canonical(node: ExprNode) -> str:
    """Deterministic, fully parenthesized text used as the equality key.

    Walks with an explicit stack so arbitrarily deep trees never hit the
    interpreter's recursion limit.
    """
    out: List[str] = []
    stack: list = [node]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            out.append(item)
        elif isinstance(item, Var):
            out.append(VAR_NAME)
        elif isinstance(item, Const):
            out.append(str(item.value))
        elif isinstance(item, Unary):
            out.append(item.op.value + "(")
            stack.append(")")
            stack.append(item.child)
        elif isinstance(item, Binary):
            if item.op is BinaryOp.BINOMIAL:
                out.append("binom(")
                stack.extend((")", item.right, ", ", item.left))
            else:
                out.append("(")
                stack.extend((")", item.right, f" {item.op.value} ", item.left))
        else:
            raise TypeError(f"Not an expression node: {item!r}")
    return "".join(out)


def structurally_equal(a: ExprNode, b: ExprNode) -> bool:
    return canonical(a) == canonical(b)


def node_count(node: ExprNode) -> int:
    count = 0
    stack = [node]
    while stack:
        current = stack.pop()
        count += 1
        stack.extend(current.children)
    return count


def tree_depth(node: ExprNode) -> int:
    """Number of nodes on the longest root-to-leaf path"""
    deepest = 0
    stack = [(node, 1)]
    while stack:
        current, depth = stack.pop()
        deepest = max(deepest, depth)
        for child in current.children:
            stack.append((child, depth + 1))
    return deepest


def contains_var(node: ExprNode, max_depth: int = 100) -> bool:
    """Whether the bound variable occurs in the tree.

    Returns True once the walk goes deeper than max_depth, so callers treat
    degenerate trees as variable-dependent and leave them alone.
    """
    stack = [(node, 0)]
    while stack:
        current, depth = stack.pop()
        if depth > max_depth:
            return True
        if isinstance(current, Var):
            return True
        for child in current.children:
            stack.append((child, depth + 1))
    return False


def iter_consts(node: ExprNode) -> Iterator[Tuple[Path, Const]]:
    """Yield (path, leaf) for every Const leaf in pre-order.

    A path is the tuple of child indices leading from the root to the leaf.
    """
    stack: List[Tuple[ExprNode, Path]] = [(node, ())]
    while stack:
        current, path = stack.pop()
        if isinstance(current, Const):
            yield path, current
            continue
        children = current.children
        for index in range(len(children) - 1, -1, -1):
            stack.append((children[index], path + (index,)))


def node_at(node: ExprNode, path: Path) -> ExprNode:
    current = node
    for index in path:
        children = current.children
        if index >= len(children):
            raise IndexError(f"Path {path!r} does not address a node")
        current = children[index]
    return current


def replace_at(node: ExprNode, path: Path, replacement: ExprNode) -> ExprNode:
    """Return a copy of node with the subtree at path swapped for replacement.

    Only the nodes along the path are rebuilt; siblings are shared.
    """
    spine = [node]
    for index in path:
        children = spine[-1].children
        if index >= len(children):
            raise IndexError(f"Path {path!r} does not address a node")
        spine.append(children[index])

    rebuilt = replacement
    for parent, index in zip(reversed(spine[:-1]), reversed(path)):
        children = list(parent.children)
        children[index] = rebuilt
        rebuilt = _with_children(parent, tuple(children))
    return rebuilt
