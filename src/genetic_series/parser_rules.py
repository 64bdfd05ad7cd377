import regex as re

from .nodes import UnaryOp, BinaryOp, VAR_NAME

# LaTeX spacing commands and plain whitespace, insignificant between tokens
spacing_pattern = re.compile(r"(?:\s+|\\[,;!: ]|\\qquad(?![A-Za-z])|\\quad(?![A-Za-z]))+")

# Signed decimal literal; the sign is only part of the literal when a digit follows
integer_pattern = re.compile(r"-?[0-9]+")

# \frac{A}{B}, \binom{A}{B}
two_argument_commands = {
    r"\frac": BinaryOp.DIV,
    r"\binom": BinaryOp.BINOMIAL,
}

# \sqrt{A}
braced_functions = {
    r"\sqrt": UnaryOp.SQRT,
}

# Named functions taking {(A)}, (A) or {A}
named_functions = {
    r"\sin": UnaryOp.SIN,
    r"\cos": UnaryOp.COS,
    r"\ln": UnaryOp.LN,
}

# Bracket pairs: opening command -> (closing command, operator)
delimited_functions = {
    r"\lfloor": (r"\rfloor", UnaryOp.FLOOR),
    r"\lceil": (r"\rceil", UnaryOp.CEIL),
}

# (-1)^ prefix for the alternating sign; checked before parenthesis grouping
alt_sign_pattern = re.compile(r"\(\s*-\s*1\s*\)\s*\^")

# F_{A}
fibonacci_pattern = re.compile(r"F_\s*\{")

multiplication_pattern = re.compile(r"\\cdot(?![A-Za-z])|\\times(?![A-Za-z])")

# Command names must not run into further letters (\sin vs \sinh)
command_pattern = re.compile(r"\\[A-Za-z]+")

# Anything that may begin a primary triggers implicit multiplication
implicit_multiplication_pattern = re.compile(
    r"[0-9(\{]|" + VAR_NAME + r"|F_|"
    + r"|".join(re.escape(cmd) + r"(?![A-Za-z])" for cmd in
                list(two_argument_commands) + list(braced_functions)
                + list(named_functions) + list(delimited_functions))
)

# \sum_{k=<start>}^{\infty}
sum_pattern = re.compile(r"\\sum_\{")
sum_variable_pattern = re.compile(r"\\sum_\{\s*([A-Za-z])\s*=")
sum_upper_pattern = re.compile(r"\}\s*\^\s*(?:\{\s*\\infty\s*\}|\\infty(?![A-Za-z]))")

SNIPPET_LENGTH = 20
