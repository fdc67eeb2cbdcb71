"""Sandboxed arithmetic formulas over column values.

A formula such as ``Price * Quantity`` or ``log(`Unit Price`) + 1`` is parsed
with :mod:`ast` and every node is checked against a whitelist. Accepted trees
are turned into plain Python closures; nothing built from the formula text is
ever passed to ``eval`` or ``exec``.
"""

# Standard library
import ast
import math
import operator
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

# Local imports
from datarefine.core.validation import FormulaError

# -----------------------------
# Whitelists
# -----------------------------

Evaluator = Callable[[Sequence[float]], float]

BINARY_OPERATORS: dict[type[ast.operator], Callable[[float, float], float]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

UNARY_OPERATORS: dict[type[ast.unaryop], Callable[[float], float]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

COMPARISON_OPERATORS: dict[type[ast.cmpop], Callable[[float, float], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}


def _round(value: float, digits: float = 0) -> float:
    return round(value, int(digits))


# name -> (callable, min args, max args); None means variadic
FUNCTIONS: dict[str, tuple[Callable[..., float], int, int | None]] = {
    "abs": (abs, 1, 1),
    "min": (min, 2, None),
    "max": (max, 2, None),
    "round": (_round, 1, 2),
    "sqrt": (math.sqrt, 1, 1),
    "log": (math.log, 1, 2),
    "log10": (math.log10, 1, 1),
    "log2": (math.log2, 1, 1),
    "exp": (math.exp, 1, 1),
    "floor": (math.floor, 1, 1),
    "ceil": (math.ceil, 1, 1),
    "sin": (math.sin, 1, 1),
    "cos": (math.cos, 1, 1),
    "tan": (math.tan, 1, 1),
    "pow": (math.pow, 2, 2),
}

CONSTANTS: dict[str, float] = {"pi": math.pi, "e": math.e}

_BACKTICK = re.compile(r"`([^`]+)`")

# -----------------------------
# Compiled formula
# -----------------------------


@dataclass(frozen=True)
class CompiledFormula:
    """A validated formula; call it with one number per referenced column."""

    source: str
    columns: tuple[str, ...]
    _evaluate: Evaluator

    def __call__(self, *args: float) -> float:
        return float(self._evaluate(args))


def compile_formula(formula: str, columns: Iterable[str]) -> CompiledFormula:
    """Compile formula text against the available column names.

    Column names that are valid identifiers are referenced bare; any other
    name is wrapped in backticks.

    Args:
        formula: Formula text
        columns: Column names the formula may reference

    Returns:
        CompiledFormula whose positional arguments follow ``columns`` order
        of first reference

    Raises:
        FormulaError: On syntax errors, disallowed constructs or unknown names
    """
    if not formula or not formula.strip():
        msg = "Formula cannot be empty"
        raise FormulaError(msg)

    available: set[str] = set(columns)
    aliases: dict[str, str] = {}

    def substitute(match: re.Match[str]) -> str:
        name: str = match.group(1)
        if name not in available:
            msg = f"Unknown column `{name}` in formula"
            raise FormulaError(msg)
        alias: str = f"_col_{len(aliases)}"
        while alias in available:
            alias = f"_{alias}"
        aliases[alias] = name
        return alias

    text: str = _BACKTICK.sub(substitute, formula.strip())

    try:
        tree: ast.Expression = ast.parse(text, mode="eval")
    except SyntaxError as e:
        msg = f"Invalid formula syntax: {e.msg}"
        raise FormulaError(msg) from e

    builder = _ClosureBuilder(available, aliases)
    evaluate: Evaluator = builder.build(tree.body)
    return CompiledFormula(
        source=formula, columns=tuple(builder.referenced), _evaluate=evaluate
    )


# -----------------------------
# AST to closures
# -----------------------------


class _ClosureBuilder:
    """Walks a whitelisted AST and returns a closure over the argument tuple."""

    def __init__(self, available: set[str], aliases: dict[str, str]) -> None:
        self.available = available
        self.aliases = aliases
        self.referenced: list[str] = []

    def build(self, node: ast.expr) -> Evaluator:
        if isinstance(node, ast.Constant):
            return self._constant(node)
        if isinstance(node, ast.Name):
            return self._name(node)
        if isinstance(node, ast.BinOp):
            return self._binary(node)
        if isinstance(node, ast.UnaryOp):
            return self._unary(node)
        if isinstance(node, ast.Compare):
            return self._compare(node)
        if isinstance(node, ast.IfExp):
            return self._conditional(node)
        if isinstance(node, ast.Call):
            return self._call(node)
        msg = f"Unsupported expression in formula: {type(node).__name__}"
        raise FormulaError(msg)

    def _constant(self, node: ast.Constant) -> Evaluator:
        value = node.value
        if isinstance(value, bool) or not isinstance(value, int | float):
            msg = f"Only numeric literals are allowed, got {value!r}"
            raise FormulaError(msg)
        number = float(value)
        return lambda args: number

    def _name(self, node: ast.Name) -> Evaluator:
        column: str | None = self.aliases.get(node.id)
        if column is None and node.id in self.available:
            column = node.id
        if column is not None:
            if column not in self.referenced:
                self.referenced.append(column)
            index: int = self.referenced.index(column)
            return lambda args: args[index]
        if node.id in CONSTANTS:
            constant: float = CONSTANTS[node.id]
            return lambda args: constant
        msg = f"Unknown identifier '{node.id}' in formula"
        raise FormulaError(msg)

    def _binary(self, node: ast.BinOp) -> Evaluator:
        op = BINARY_OPERATORS.get(type(node.op))
        if op is None:
            msg = f"Operator {type(node.op).__name__} is not allowed"
            raise FormulaError(msg)
        left, right = self.build(node.left), self.build(node.right)
        return lambda args: op(left(args), right(args))

    def _unary(self, node: ast.UnaryOp) -> Evaluator:
        op = UNARY_OPERATORS.get(type(node.op))
        if op is None:
            msg = f"Operator {type(node.op).__name__} is not allowed"
            raise FormulaError(msg)
        operand = self.build(node.operand)
        return lambda args: op(operand(args))

    def _compare(self, node: ast.Compare) -> Evaluator:
        ops: list[Callable[[float, float], bool]] = []
        for cmp in node.ops:
            op = COMPARISON_OPERATORS.get(type(cmp))
            if op is None:
                msg = f"Comparison {type(cmp).__name__} is not allowed"
                raise FormulaError(msg)
            ops.append(op)
        operands: list[Evaluator] = [self.build(node.left)]
        operands.extend(self.build(c) for c in node.comparators)

        def evaluate(args: Sequence[float]) -> float:
            values = [operand(args) for operand in operands]
            holds = all(op(values[i], values[i + 1]) for i, op in enumerate(ops))
            return 1.0 if holds else 0.0

        return evaluate

    def _conditional(self, node: ast.IfExp) -> Evaluator:
        test, body, orelse = (
            self.build(node.test),
            self.build(node.body),
            self.build(node.orelse),
        )
        return lambda args: body(args) if test(args) else orelse(args)

    def _call(self, node: ast.Call) -> Evaluator:
        if not isinstance(node.func, ast.Name) or node.func.id not in FUNCTIONS:
            name = node.func.id if isinstance(node.func, ast.Name) else "?"
            msg = f"Function '{name}' is not allowed in formulas"
            raise FormulaError(msg)
        if node.keywords or any(isinstance(a, ast.Starred) for a in node.args):
            msg = f"Function '{node.func.id}' only takes plain positional arguments"
            raise FormulaError(msg)

        func, min_args, max_args = FUNCTIONS[node.func.id]
        count: int = len(node.args)
        if count < min_args or (max_args is not None and count > max_args):
            msg = f"Function '{node.func.id}' called with {count} argument(s)"
            raise FormulaError(msg)

        arguments: list[Evaluator] = [self.build(a) for a in node.args]
        return lambda args: func(*(argument(args) for argument in arguments))
