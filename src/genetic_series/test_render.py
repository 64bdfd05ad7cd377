#!/usr/bin/env python3

import unittest

from .nodes import Var, Const, Unary, Binary, UnaryOp, BinaryOp, INT64_MIN, INT64_MAX, canonical
from .parser import parse_latex
from .render import to_latex
from .series import Candidate


n = Var()


def U(op, child):
    return Unary(op, child)


def B(op, left, right):
    return Binary(op, left, right)


def sample_trees():
    """Trees covering every variant, signs and the awkward nestings"""
    leaves = [n, Const(0), Const(3), Const(-5), Const(-1), Const(INT64_MIN), Const(INT64_MAX)]
    trees = list(leaves)
    for op in UnaryOp:
        for leaf in (n, Const(2), Const(-3)):
            trees.append(U(op, leaf))
    for op in BinaryOp:
        for left, right in ((n, Const(2)), (Const(-1), n), (Const(-4), Const(-7))):
            trees.append(B(op, left, right))
    add = B(BinaryOp.ADD, n, Const(1))
    sub = B(BinaryOp.SUB, n, Const(1))
    mul = B(BinaryOp.MUL, Const(2), n)
    trees += [
        U(UnaryOp.NEG, U(UnaryOp.NEG, n)),
        U(UnaryOp.NEG, Const(5)),
        U(UnaryOp.NEG, add),
        U(UnaryOp.NEG, mul),
        U(UnaryOp.NEG, B(BinaryOp.POW, n, Const(2))),
        U(UnaryOp.FACTORIAL, U(UnaryOp.FACTORIAL, n)),
        U(UnaryOp.FACTORIAL, U(UnaryOp.NEG, n)),
        U(UnaryOp.DOUBLE_FACTORIAL, add),
        U(UnaryOp.FACTORIAL, U(UnaryOp.ALT_SIGN, n)),
        U(UnaryOp.ABS, U(UnaryOp.ABS, n)),
        U(UnaryOp.ABS, B(BinaryOp.SUB, n, U(UnaryOp.ABS, n))),
        U(UnaryOp.ALT_SIGN, add),
        U(UnaryOp.SIN, U(UnaryOp.COS, mul)),
        U(UnaryOp.FLOOR, B(BinaryOp.DIV, n, Const(2))),
        B(BinaryOp.POW, U(UnaryOp.ALT_SIGN, n), Const(2)),
        B(BinaryOp.POW, U(UnaryOp.NEG, n), Const(2)),
        B(BinaryOp.POW, add, B(BinaryOp.POW, n, Const(2))),
        B(BinaryOp.POW, B(BinaryOp.POW, n, Const(2)), Const(3)),
        B(BinaryOp.POW, U(UnaryOp.FACTORIAL, n), Const(2)),
        B(BinaryOp.MUL, add, sub),
        B(BinaryOp.MUL, n, mul),
        B(BinaryOp.MUL, mul, n),
        B(BinaryOp.MUL, n, U(UnaryOp.NEG, n)),
        B(BinaryOp.MUL, U(UnaryOp.NEG, n), n),
        B(BinaryOp.MUL, n, B(BinaryOp.DIV, Const(1), n)),
        B(BinaryOp.SUB, n, add),
        B(BinaryOp.SUB, n, U(UnaryOp.NEG, n)),
        B(BinaryOp.SUB, sub, Const(-5)),
        B(BinaryOp.ADD, Const(-3), add),
        B(BinaryOp.ADD, mul, U(UnaryOp.NEG, Const(4))),
        B(BinaryOp.DIV, add, B(BinaryOp.BINOMIAL, B(BinaryOp.MUL, Const(2), n), n)),
        B(BinaryOp.MUL, U(UnaryOp.FIBONACCI, n), U(UnaryOp.SQRT, add)),
    ]
    return trees


class TestToLatex(unittest.TestCase):
    def test_forms(self):
        self.assertEqual(to_latex(B(BinaryOp.MUL, Const(2), n)), r"2 \cdot n")
        self.assertEqual(to_latex(B(BinaryOp.DIV, Const(1), U(UnaryOp.FACTORIAL, n))), r"\frac{1}{n!}")
        self.assertEqual(to_latex(U(UnaryOp.SIN, n)), r"\sin{(n)}")
        self.assertEqual(to_latex(U(UnaryOp.ALT_SIGN, n)), r"(-1)^{n}")
        self.assertEqual(to_latex(B(BinaryOp.POW, Const(-1), n)), r"{-1}^{n}")
        self.assertEqual(to_latex(U(UnaryOp.NEG, Const(5))), "-(5)")
        self.assertEqual(to_latex(U(UnaryOp.FACTORIAL, B(BinaryOp.MUL, Const(2), n))), r"(2 \cdot n)!")
        self.assertEqual(to_latex(U(UnaryOp.FLOOR, n)), r"\lfloor n \rfloor")

    def test_round_trip(self):
        for tree in sample_trees():
            with self.subTest(tree=canonical(tree)):
                self.assertEqual(canonical(parse_latex(to_latex(tree))), canonical(tree))

    def test_round_trip_nested(self):
        node = n
        for i in range(30):
            op = (UnaryOp.NEG, UnaryOp.FACTORIAL, UnaryOp.ABS)[i % 3]
            node = B(BinaryOp.SUB, U(op, node), Const(i))
        self.assertEqual(parse_latex(to_latex(node)), node)

    def test_deep_tree(self):
        node = n
        for _ in range(5000):
            node = U(UnaryOp.NEG, node)
        self.assertTrue(to_latex(node).endswith("n" + ")" * 4999))

        node = n
        for _ in range(5000):
            node = B(BinaryOp.SUB, Const(1), node)
        text = to_latex(node)
        self.assertTrue(text.startswith("1 - (1 - ("))
        self.assertTrue(text.endswith("1 - n" + ")" * 4999))

    def test_deep_candidate(self):
        node = n
        for _ in range(5000):
            node = B(BinaryOp.ADD, node, Const(1))
        text = Candidate(node, Const(1)).latex()
        self.assertTrue(text.startswith(r"\sum_{n=0}^{\infty} \frac{n + 1 + 1"))
        self.assertEqual(text.count("+ 1"), 5000)


if __name__ == '__main__':
    unittest.main()
