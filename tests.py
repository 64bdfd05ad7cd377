#!/usr/bin/env python3

import unittest
import sys

import os.path as op

SRC = op.join(op.dirname(op.realpath(__file__)), "src")
sys.path.insert(0, SRC)


def run_tests():
    failfast = '-f' in sys.argv or '--failfast' in sys.argv
    buffering = '-b' in sys.argv or '--buffer' in sys.argv
    suite = unittest.TestLoader().discover(op.join(SRC, "genetic_series"), pattern="test_*.py",
                                           top_level_dir=SRC)
    result = unittest.TextTestRunner(verbosity=2, failfast=failfast, buffer=buffering).run(suite)
    return len(result.failures) + len(result.errors)


if __name__ == '__main__':
    sys.exit(1 if run_tests() else 0)
