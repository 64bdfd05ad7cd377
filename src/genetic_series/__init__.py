# This file marks src as a Python package 

from .nodes import Var, Const, Unary, Binary, UnaryOp, BinaryOp, canonical
from .parser import parse_latex, ExpressionError, LatexSyntaxError, EvaluationError
from .render import to_latex
from .evaluator import evaluate, evaluate_term, partial_sum
from .simplify import simplify, simplify_numeric
from .series import Candidate, parse_candidate_latex
from .config import EngineConfig, DEFAULT_CONFIG, load_config
