#!/usr/bin/env python3

import math
import threading
import unittest
from unittest import mock

from .nodes import Var, Const, Unary, Binary, UnaryOp, BinaryOp
from .parser import parse_latex, EvaluationError
from .config import DEFAULT_CONFIG
from . import evaluator as evaluator_module
from .evaluator import evaluate, evaluate_term, partial_sum
from .series import Candidate


n = Var()


class TestEvaluate(unittest.TestCase):
    def test_arithmetic(self):
        self.assertEqual(evaluate(parse_latex("n^2 + 1"), 3), 10)
        self.assertEqual(evaluate(parse_latex(r"\frac{n}{4}"), 2), 0.5)
        self.assertEqual(evaluate(parse_latex("2^{-2}"), 0), 0.25)
        self.assertEqual(evaluate(parse_latex("(-2)^{3}"), 0), -8)

    def test_integer_functions(self):
        self.assertEqual(evaluate(parse_latex("n!"), 5), 120)
        self.assertAlmostEqual(float(evaluate(parse_latex("n!!"), 7)), 105)
        self.assertAlmostEqual(float(evaluate(parse_latex("F_{n}"), 10)), 55)
        self.assertAlmostEqual(float(evaluate(parse_latex(r"\binom{n}{2}"), 5)), 10)
        self.assertEqual(evaluate(parse_latex("(-1)^{n}"), 3), -1)
        self.assertEqual(evaluate(parse_latex("(-1)^{n}"), 4), 1)
        self.assertEqual(evaluate(parse_latex("(-1)^{n}"), 0), 1)

    def test_real_functions(self):
        self.assertEqual(evaluate(parse_latex(r"\lfloor \frac{n}{2} \rfloor"), 7), 3)
        self.assertEqual(evaluate(parse_latex(r"\lceil \frac{n}{2} \rceil"), 7), 4)
        self.assertEqual(evaluate(parse_latex("|n - 10|"), 3), 7)
        self.assertAlmostEqual(float(evaluate(parse_latex(r"\sin{(n)}"), 1)), math.sin(1))
        self.assertAlmostEqual(float(evaluate(parse_latex(r"\cos{(n)}"), 1)), math.cos(1))
        self.assertAlmostEqual(float(evaluate(parse_latex(r"\ln{(n)}"), 10)), math.log(10))
        self.assertEqual(evaluate(parse_latex(r"\sqrt{n}"), 49), 7)

    def test_precision(self):
        root = evaluate(Unary(UnaryOp.SQRT, Const(2)), 0, prec=256)
        self.assertLess(abs(root * root - 2), 2.0 ** -250)
        coarse = evaluate(Unary(UnaryOp.SQRT, Const(2)), 0, prec=24)
        self.assertNotEqual(float(coarse), float(root))

    def test_domain_errors(self):
        cases = [
            (r"\frac{1}{n}", 0),
            (r"\sqrt{n}", -1),
            (r"\ln{(n)}", 0),
            (r"\ln{(n)}", -3),
            ("n!", -1),
            ("n!", 2.5),
            ("n!!", -2),
            ("(-1)^{n}", 0.5),
            ("F_{n}", 1.5),
            (r"\binom{n}{2}", 0.5),
            ("n^{-1}", 0),
            (r"(-8)^{\frac{1}{n}}", 3),
            (r"\sin{(10^{100})}", 0),
        ]
        for text, value in cases:
            with self.subTest(text=text, value=value):
                with self.assertRaises(EvaluationError):
                    evaluate(parse_latex(text), value)

    def test_error_details(self):
        tree = parse_latex(r"n + \frac{1}{n - 2}")
        with self.assertRaises(EvaluationError) as cm:
            evaluate(tree, 2)
        self.assertEqual(cm.exception.value, 2)
        self.assertEqual(cm.exception.node, tree.right)

    def test_deep_tree(self):
        node = n
        for _ in range(5000):
            node = Unary(UnaryOp.NEG, node)
        with self.assertRaises(EvaluationError):
            evaluate(node, 1)

    def test_cached_contexts_bounded(self):
        for prec in range(40, 40 + 3 * evaluator_module.MAX_CACHED_CONTEXTS):
            evaluate(Const(1), 0, prec=prec)
        self.assertLessEqual(len(evaluator_module._local.contexts), evaluator_module.MAX_CACHED_CONTEXTS)
        self.assertEqual(evaluate(Unary(UnaryOp.SQRT, Const(4)), 0, prec=40), 2)

    def test_threads(self):
        results = {}

        def work(prec):
            results[prec] = evaluate(Unary(UnaryOp.SQRT, Const(2)), 0, prec=prec)

        threads = [threading.Thread(target=work, args=(prec,)) for prec in (64, 128, 256)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(sorted(results), [64, 128, 256])
        self.assertLess(abs(results[256] * results[256] - 2), 2.0 ** -250)


class TestHugeValues(unittest.TestCase):
    def test_refused_before_computing(self):
        cases = [
            "3^{2^{2^{21}}}",
            r"\binom{F_{9223372036854775807}}{5}",
            "F_{2^{10^{18}}}",
            "(10^{18})!",
            "(10^{18})!!",
            r"\binom{10^{12}}{10^{11}}",
            "2^{-2^{30}}",
            r"\frac{1}{2}^{10^{9}}",
        ]
        for text in cases:
            with self.subTest(text=text):
                with self.assertRaises(EvaluationError) as cm:
                    evaluate(parse_latex(text), 0)
                self.assertIn("too large", str(cm.exception))

    def test_unit_bases(self):
        self.assertEqual(evaluate(parse_latex("1^{10^{18}}"), 0), 1)
        self.assertEqual(evaluate(parse_latex("{-1}^{10^{18}}"), 0), 1)
        self.assertEqual(evaluate(parse_latex("{-1}^{10^{18}+1}"), 0), -1)
        self.assertEqual(evaluate(parse_latex("0^{10^{18}}"), 0), 0)
        self.assertEqual(evaluate(parse_latex("0^{0}"), 0), 1)

    def test_large_but_allowed(self):
        self.assertEqual(evaluate(parse_latex("2^{2^{21}}"), 0), evaluator_module.MPContext().mpf(2) ** (2 ** 21))
        self.assertGreater(evaluate(parse_latex("n!"), 4096), 0)
        self.assertGreater(evaluate(parse_latex(r"\binom{2n}{n}"), 4096), 0)

    def test_configured_limit(self):
        config = DEFAULT_CONFIG.replace(max_magnitude=64)
        self.assertEqual(evaluate(parse_latex("2^{n}"), 10, config=config), 1024)
        with self.assertRaises(EvaluationError):
            evaluate(parse_latex("2^{n}"), 100, config=config)
        with self.assertRaises(EvaluationError):
            evaluate(parse_latex("n!"), 30, config=config)

    def test_memory_error_wrapped(self):
        with mock.patch.object(evaluator_module, "_apply_unary", side_effect=MemoryError):
            with self.assertRaises(EvaluationError) as cm:
                evaluate(parse_latex("n!"), 3)
        self.assertIsInstance(cm.exception.original_error, MemoryError)


class TestSeriesEvaluation(unittest.TestCase):
    def test_term(self):
        candidate = Candidate(Const(1), Unary(UnaryOp.FACTORIAL, n))
        self.assertAlmostEqual(float(evaluate_term(candidate, 3)), 1 / 6)

    def test_vanishing_denominator(self):
        candidate = Candidate(Const(1), Binary(BinaryOp.SUB, n, Const(1)))
        with self.assertRaises(EvaluationError):
            evaluate_term(candidate, 1)

    def test_partial_sum(self):
        candidate = Candidate(Const(1), Unary(UnaryOp.FACTORIAL, n))
        self.assertAlmostEqual(float(partial_sum(candidate, 30)), math.e, places=14)
        self.assertEqual(partial_sum(candidate, 0), 0)
        with self.assertRaises(ValueError):
            partial_sum(candidate, -1)

    def test_partial_sum_start(self):
        # sum_{n=1}^{N} 1/(n(n+1)) = 1 - 1/(N+1)
        candidate = Candidate(Const(1), parse_latex("n(n+1)"), start=1)
        self.assertAlmostEqual(float(partial_sum(candidate, 99)), 1 - 1 / 100)


if __name__ == '__main__':
    unittest.main()
