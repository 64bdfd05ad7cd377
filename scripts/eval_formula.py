import argparse
import logging
import sys

from mpmath import MPContext

from genetic_series import parse_candidate_latex, partial_sum, EngineConfig, ExpressionError
from genetic_series.symbolic import candidate_to_sympy

logger = logging.getLogger(__name__)

DEFAULT_TERMS = 4096
DEFAULT_PRECISION = 512


def read_formula(args):
    """Formula text from --formula, or the stripped contents of --file."""
    if args.formula:
        return args.formula
    if args.file:
        try:
            with open(args.file, 'r', encoding='utf-8') as f:
                return f.read().strip()
        except OSError as e:
            print(f"Error reading {args.file}: {e}", file=sys.stderr)
            sys.exit(1)
    return ""


def report_error(ctx, total, target_text):
    """Print the absolute error and the number of correct decimal digits."""
    try:
        target = ctx.mpf(target_text)
    except ValueError:
        print(f"Invalid target value: {target_text}", file=sys.stderr)
        sys.exit(1)
    print(f"Target:         {ctx.nstr(target, 50)}")

    diff = abs(total - target)
    print(f"Error:          {ctx.nstr(diff, 16, min_fixed=1, max_fixed=0)}")
    if target != 0:
        relative = diff / abs(target)
        if relative > 0:
            print(f"Correct digits: {float(-ctx.log10(relative)):.1f}")
        else:
            print("Correct digits: exact at this precision")


def main():
    parser = argparse.ArgumentParser(description='Evaluate a LaTeX series formula')
    parser.add_argument('--formula', type=str, default='', help='LaTeX formula to evaluate')
    parser.add_argument('--file', type=str, default='', help='File containing a LaTeX formula')
    parser.add_argument('--terms', type=int, default=DEFAULT_TERMS, help='Number of terms to sum')
    parser.add_argument('--precision', type=int, default=DEFAULT_PRECISION, help='Precision in bits')
    parser.add_argument('--target-value', type=str, default='', help='Target value as a decimal string')
    parser.add_argument('--simplify', action='store_true', help='Simplify the candidate before summing')
    parser.add_argument('--sympy', action='store_true', help='Also print the SymPy form of the series')
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    formula = read_formula(args)
    if not formula:
        parser.print_usage(sys.stderr)
        sys.exit(1)

    try:
        config = EngineConfig(precision=args.precision)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        candidate = parse_candidate_latex(formula)
    except ExpressionError as e:
        print(f"Parse error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Parsed:         {candidate}")
    print(f"LaTeX:          {candidate.latex()}")
    if args.simplify:
        candidate = candidate.simplified(config=config)
        print(f"Simplified:     {candidate}")
    if args.sympy:
        print(f"SymPy:          {candidate_to_sympy(candidate)}")

    logger.info("Summing %d terms at %d-bit precision", args.terms, args.precision)
    try:
        total = partial_sum(candidate, args.terms, config=config)
    except (ExpressionError, ValueError) as e:
        print(f"Evaluation failed: {e}", file=sys.stderr)
        sys.exit(1)

    ctx = MPContext()
    ctx.prec = args.precision
    print(f"Terms computed: {args.terms}")
    print(f"Partial sum:    {ctx.nstr(total, 50)}")

    if args.target_value:
        report_error(ctx, ctx.mpf(total), args.target_value)


if __name__ == "__main__":
    main()
