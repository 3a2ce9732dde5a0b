"""Lark grammar for the arithmetic side of a comparison formula.

Both sides of a formula reduce to this grammar once variables are
replaced by their values:
- Arithmetic: +, -, *, /
- Unary sign: -x, +x
- Grouping: ( ... )
- Literals: decimal numbers with optional exponent

Anything else (names, strings, function calls, comparisons) is a
syntax error, so the evaluator can never run arbitrary code.
"""

ARITHMETIC_GRAMMAR = r"""
    ?start: additive

    ?additive: multiplicative
        | additive "+" multiplicative -> add
        | additive "-" multiplicative -> sub

    ?multiplicative: unary
        | multiplicative "*" unary -> mul
        | multiplicative "/" unary -> div

    ?unary: atom
        | "-" unary -> neg
        | "+" unary -> pos

    ?atom: NUMBER -> number
        | "(" additive ")"

    // Negative sign is handled by the unary rule
    NUMBER: /(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?/

    %import common.WS
    %ignore WS
"""
