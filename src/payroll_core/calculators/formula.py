"""Formula evaluation over interdependent salary components.

Formulas are parsed into a restricted AST and walked with Decimal arithmetic.
Allowed:
  - numeric literals
  - names (component codes, CTC)
  - + - * / and unary + -
  - parentheses
  - min(...), max(...)

Anything else (attribute access, subscripts, other calls, comparisons,
lambdas) is rejected before evaluation. Nothing is passed to eval().
"""

from __future__ import annotations

import ast
import operator
from decimal import Decimal, DivisionByZero, InvalidOperation
from typing import Callable, Mapping

from payroll_core.errors import ResolutionError

ALLOWED_FUNCTIONS: dict[str, Callable[..., Decimal]] = {"min": min, "max": max}

_BINARY_OPS: dict[type, Callable[[Decimal, Decimal], Decimal]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
}

_UNARY_OPS: dict[type, Callable[[Decimal], Decimal]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


class FormulaError(ResolutionError):
    """A component formula could not be evaluated."""

    code = "FORMULA_ERROR"

    def __init__(self, component_code: str, message: str):
        self.component_code = component_code
        super().__init__(message)


class UnknownVariableError(FormulaError):
    """Formula references a name that is neither a component nor context."""

    code = "UNKNOWN_VARIABLE"

    def __init__(self, component_code: str, variable: str):
        self.variable = variable
        super().__init__(
            component_code,
            f"{component_code}: unknown variable {variable!r}",
        )


class MalformedFormulaError(FormulaError):
    """Formula does not parse, uses a disallowed construct, or divides by zero."""

    code = "MALFORMED_FORMULA"

    def __init__(self, component_code: str, formula: str, reason: str):
        self.formula = formula
        self.reason = reason
        super().__init__(
            component_code,
            f"{component_code}: invalid formula {formula!r} ({reason})",
        )


class CyclicDependencyError(FormulaError):
    """Formula depends on itself, directly or transitively."""

    code = "CYCLIC_DEPENDENCY"

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(
            cycle[0],
            f"{cycle[0]}: cyclic dependency {' -> '.join(cycle)}",
        )


class FormulaEvaluator:
    """Evaluates a table of named formulas against a variable context.

    Resolution is depth-first over an explicit stack, so long dependency
    chains do not hit the interpreter recursion limit. Resolved values are
    memoised so every code is evaluated at most once per evaluator. The codes
    currently being resolved form a path; meeting one of them again is a
    cycle.
    """

    def __init__(
        self,
        formulas: Mapping[str, str],
        context: Mapping[str, Decimal] | None = None,
    ):
        self.formulas = dict(formulas)
        self.memo: dict[str, Decimal] = dict(context or {})
        self._parsed: dict[str, ast.expr] = {}
        self._sources: dict[str, str] = {}

    def evaluate(self, code: str) -> Decimal:
        """Evaluate a single code, resolving its dependencies first."""
        if code not in self.memo and code not in self.formulas:
            raise UnknownVariableError(code, code)
        return self._resolve(code)

    def evaluate_all(self) -> dict[str, Decimal]:
        """Evaluate every code in table order."""
        return {code: self.evaluate(code) for code in self.formulas}

    def dependencies(self, code: str) -> set[str]:
        """Names referenced directly by a code's formula."""
        return set(self._referenced_names(code))

    # === Internals ===

    def _resolve(self, code: str) -> Decimal:
        memo = self.memo
        if code in memo:
            return memo[code]

        path: list[str] = []
        stack: list[tuple[str, bool]] = [(code, False)]
        while stack:
            current, expanded = stack.pop()
            if expanded:
                path.pop()
                memo[current] = self._evaluate_formula(current)
                continue
            if current in memo:
                continue
            if current in path:
                raise CyclicDependencyError(path[path.index(current):] + [current])

            path.append(current)
            stack.append((current, True))
            for name in reversed(self._referenced_names(current)):
                if name in memo:
                    continue
                if name not in self.formulas:
                    raise UnknownVariableError(current, name)
                stack.append((name, False))

        return memo[code]

    def _referenced_names(self, code: str) -> list[str]:
        """Names in a formula, first occurrence order, without function names."""
        nodes = [
            node
            for node in ast.walk(self._parse(code))
            if isinstance(node, ast.Name) and node.id not in ALLOWED_FUNCTIONS
        ]
        nodes.sort(key=lambda node: (node.lineno, node.col_offset))
        return list(dict.fromkeys(node.id for node in nodes))

    def _evaluate_formula(self, code: str) -> Decimal:
        try:
            return self._eval_node(self._parse(code), code)
        except RecursionError as e:
            raise MalformedFormulaError(
                code, self._sources[code], "formula nested too deeply"
            ) from e

    def _parse(self, code: str) -> ast.expr:
        if code in self._parsed:
            return self._parsed[code]

        formula = str(self.formulas[code]).strip()
        try:
            tree = ast.parse(formula, mode="eval")
            self._check_node(tree.body, code, formula)
        except SyntaxError as e:
            raise MalformedFormulaError(code, formula, f"syntax error: {e.msg}") from e
        except RecursionError as e:
            raise MalformedFormulaError(code, formula, "formula nested too deeply") from e

        self._sources[code] = formula
        self._parsed[code] = tree.body
        return tree.body

    def _check_node(self, node: ast.AST, code: str, formula: str) -> None:
        """Reject constructs outside the arithmetic grammar."""
        if isinstance(node, ast.BinOp):
            if type(node.op) not in _BINARY_OPS:
                raise MalformedFormulaError(
                    code, formula, f"operator {type(node.op).__name__} not allowed"
                )
            self._check_node(node.left, code, formula)
            self._check_node(node.right, code, formula)

        elif isinstance(node, ast.UnaryOp):
            if type(node.op) not in _UNARY_OPS:
                raise MalformedFormulaError(
                    code, formula, f"operator {type(node.op).__name__} not allowed"
                )
            self._check_node(node.operand, code, formula)

        elif isinstance(node, ast.Call):
            if not (isinstance(node.func, ast.Name) and node.func.id in ALLOWED_FUNCTIONS):
                raise MalformedFormulaError(code, formula, "only min() and max() may be called")
            if node.keywords or not node.args:
                raise MalformedFormulaError(
                    code, formula, f"{node.func.id}() takes positional arguments only"
                )
            for arg in node.args:
                self._check_node(arg, code, formula)

        elif isinstance(node, ast.Constant):
            if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
                raise MalformedFormulaError(
                    code, formula, f"literal {node.value!r} is not a number"
                )

        elif isinstance(node, ast.Name):
            if node.id in ALLOWED_FUNCTIONS:
                raise MalformedFormulaError(code, formula, f"{node.id} must be called")

        else:
            raise MalformedFormulaError(
                code, formula, f"{type(node).__name__} not allowed"
            )

    def _eval_node(self, node: ast.expr, code: str) -> Decimal:
        if isinstance(node, ast.Constant):
            return self._literal(node, code)

        if isinstance(node, ast.Name):
            if node.id not in self.memo:
                raise UnknownVariableError(code, node.id)
            return self.memo[node.id]

        if isinstance(node, ast.UnaryOp):
            operand = self._eval_node(node.operand, code)
            return _UNARY_OPS[type(node.op)](operand)

        if isinstance(node, ast.BinOp):
            left = self._eval_node(node.left, code)
            right = self._eval_node(node.right, code)
            try:
                return _BINARY_OPS[type(node.op)](left, right)
            except (DivisionByZero, InvalidOperation, ZeroDivisionError) as e:
                raise MalformedFormulaError(code, self._sources[code], "division by zero") from e

        if isinstance(node, ast.Call):
            args = [self._eval_node(arg, code) for arg in node.args]
            return ALLOWED_FUNCTIONS[node.func.id](*args)  # type: ignore[union-attr]

        raise MalformedFormulaError(code, self._sources[code], "unsupported node")

    def _literal(self, node: ast.Constant, code: str) -> Decimal:
        """Read a number literal from the formula text, digit for digit."""
        segment = ast.get_source_segment(self._sources[code], node)
        try:
            return Decimal(segment)
        except (InvalidOperation, TypeError):
            # hex, octal and binary literals
            return Decimal(repr(node.value))


def evaluate_formulas(
    formulas: Mapping[str, str], context: Mapping[str, Decimal]
) -> dict[str, Decimal]:
    """Evaluate every formula in a table against a context."""
    return FormulaEvaluator(formulas, context).evaluate_all()
