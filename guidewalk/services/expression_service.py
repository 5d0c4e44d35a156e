"""
Condition expressions: tokenizer, recursive-descent parser and AST evaluator.

Conditions are authored strings such as ``bp >= 180 && has_symptoms === true``.
They are parsed into a small AST and evaluated against a closed mapping of
input values. Nothing outside that mapping is reachable: there is no attribute
access, no function call and no general-purpose evaluator underneath.

Supported grammar (lowest precedence first):

    or          := and ( "||" and )*
    and         := equality ( "&&" equality )*
    equality    := relational ( ("===" | "!==" | "==" | "!=") relational )*
    relational  := additive ( (">" | ">=" | "<" | "<=") additive )*
    additive    := multiplicative ( ("+" | "-") multiplicative )*
    multiplicative := unary ( ("*" | "/" | "%") unary )*
    unary       := ("!" | "-" | "+") unary | primary
    primary     := NUMBER | STRING | true | false | null | IDENT | "(" or ")"

evaluate_condition() never raises: failures are logged and read as False.
"""

import logging
import math
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, Optional, Union

from guidewalk.utils.exceptions import (
    ConditionEvaluationError,
    ConditionSyntaxError,
    ConditionTypeError,
    UnresolvedIdentifierError,
)

logger = logging.getLogger(__name__)

KEYWORDS = {"true": True, "false": False, "null": None}

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Operator nodes per expression; bounds AST depth for the recursive evaluator
MAX_OPERATORS = 500

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?)
  | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
  | (?P<name>[A-Za-z_$][A-Za-z0-9_$]*)
  | (?P<op>===|!==|==|!=|>=|<=|&&|\|\||[<>!()+\-*/%])
    """,
    re.VERBOSE,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0"}

Value = Union[bool, int, float, str, None]


# -----------------------------------------------------------------------------
# Tokens
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Token:
    kind: str  # number, string, name, op, eof
    value: Any
    pos: int


def _unescape(body: str) -> str:
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


def tokenize(expression: str) -> list[Token]:
    """Split an expression into tokens. Raises ConditionSyntaxError on an unexpected character."""
    tokens: list[Token] = []
    pos = 0
    while pos < len(expression):
        m = _TOKEN_RE.match(expression, pos)
        if not m:
            raise ConditionSyntaxError(
                f"Unexpected character {expression[pos]!r} at position {pos}",
                expression=expression,
                details={"position": pos},
            )
        kind = m.lastgroup
        text = m.group()
        if kind == "number":
            try:
                value: Any = float(text) if any(c in text for c in ".eE") else int(text)
            except ValueError:
                raise ConditionSyntaxError(
                    f"Number literal at position {pos} is too long",
                    expression=expression,
                    details={"position": pos},
                ) from None
            tokens.append(Token("number", value, pos))
        elif kind == "string":
            tokens.append(Token("string", _unescape(text[1:-1]), pos))
        elif kind in ("name", "op"):
            tokens.append(Token(kind, text, pos))
        pos = m.end()
    tokens.append(Token("eof", None, pos))
    return tokens


# -----------------------------------------------------------------------------
# AST
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Literal:
    value: Value


@dataclass(frozen=True)
class Name:
    name: str


@dataclass(frozen=True)
class Unary:
    op: str
    operand: "Expr"


@dataclass(frozen=True)
class Binary:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Logical:
    op: str  # && or ||
    left: "Expr"
    right: "Expr"


Expr = Union[Literal, Name, Unary, Binary, Logical]


# -----------------------------------------------------------------------------
# Parser
# -----------------------------------------------------------------------------


class _Parser:
    """Recursive-descent parser over a token list."""

    _EQUALITY = ("===", "!==", "==", "!=")
    _RELATIONAL = (">", ">=", "<", "<=")
    _ADDITIVE = ("+", "-")
    _MULTIPLICATIVE = ("*", "/", "%")
    _UNARY = ("!", "-", "+")

    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = tokenize(expression)
        self.index = 0
        self.operators = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _error(self, message: str) -> ConditionSyntaxError:
        return ConditionSyntaxError(
            f"{message} at position {self.current.pos}",
            expression=self.expression,
            details={"position": self.current.pos},
        )

    def _count_operator(self) -> None:
        self.operators += 1
        if self.operators > MAX_OPERATORS:
            raise self._error(f"Expression has more than {MAX_OPERATORS} operators")

    def _match(self, ops: tuple[str, ...]) -> Optional[str]:
        tok = self.current
        if tok.kind == "op" and tok.value in ops:
            self.index += 1
            return tok.value
        return None

    def parse(self) -> Expr:
        if self.current.kind == "eof":
            raise self._error("Empty expression")
        node = self._or()
        if self.current.kind != "eof":
            raise self._error(f"Unexpected token {self.current.value!r}")
        return node

    def _or(self) -> Expr:
        node = self._and()
        while self._match(("||",)):
            self._count_operator()
            node = Logical("||", node, self._and())
        return node

    def _and(self) -> Expr:
        node = self._binary_level("equality")
        while self._match(("&&",)):
            self._count_operator()
            node = Logical("&&", node, self._binary_level("equality"))
        return node

    def _binary_level(self, level: str) -> Expr:
        ops, next_level = {
            "equality": (self._EQUALITY, "relational"),
            "relational": (self._RELATIONAL, "additive"),
            "additive": (self._ADDITIVE, "multiplicative"),
            "multiplicative": (self._MULTIPLICATIVE, None),
        }[level]
        operand = (lambda: self._binary_level(next_level)) if next_level else self._unary
        node = operand()
        while True:
            op = self._match(ops)
            if op is None:
                return node
            self._count_operator()
            node = Binary(op, node, operand())

    def _unary(self) -> Expr:
        op = self._match(self._UNARY)
        if op:
            self._count_operator()
            return Unary(op, self._unary())
        return self._primary()

    def _primary(self) -> Expr:
        tok = self.current
        if tok.kind in ("number", "string"):
            self.index += 1
            return Literal(tok.value)
        if tok.kind == "name":
            self.index += 1
            if tok.value in KEYWORDS:
                return Literal(KEYWORDS[tok.value])
            return Name(tok.value)
        if self._match(("(",)):
            node = self._or()
            if not self._match((")",)):
                raise self._error("Expected ')'")
            return node
        if tok.kind == "eof":
            raise self._error("Unexpected end of expression")
        raise self._error(f"Unexpected token {tok.value!r}")


@lru_cache(maxsize=1024)
def parse_expression(expression: str) -> Expr:
    """Parse an expression into an AST. Results are cached per expression string."""
    if not isinstance(expression, str):
        raise ConditionSyntaxError("Expression must be a string", expression=repr(expression))
    try:
        return _Parser(expression).parse()
    except RecursionError:
        raise ConditionSyntaxError("Expression is nested too deeply", expression=expression) from None


def referenced_identifiers(expression: str) -> list[str]:
    """Identifiers used by an expression, in first-use order."""
    seen: list[str] = []

    def walk(node: Expr) -> None:
        if isinstance(node, Name):
            if node.name not in seen:
                seen.append(node.name)
        elif isinstance(node, Unary):
            walk(node.operand)
        elif isinstance(node, (Binary, Logical)):
            walk(node.left)
            walk(node.right)

    tree = parse_expression(expression)
    try:
        walk(tree)
    except RecursionError:
        raise ConditionSyntaxError("Expression is nested too deeply", expression=expression) from None
    return seen


# -----------------------------------------------------------------------------
# Evaluation
# -----------------------------------------------------------------------------


def _kind(value: Value) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return type(value).__name__


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def truthy(value: Value) -> bool:
    """false, 0, NaN, empty string and null are falsy."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if _is_number(value):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def _numeric_string(value: str) -> Optional[float]:
    if not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _equal(left: Value, right: Value, strict: bool) -> bool:
    lk, rk = _kind(left), _kind(right)
    if lk == rk:
        return left == right
    if not strict and {lk, rk} == {"number", "string"}:
        number, text = (left, right) if lk == "number" else (right, left)
        parsed = _numeric_string(text)
        return parsed is not None and parsed == number
    return False


class _Evaluator:
    def __init__(self, expression: str, inputs: Mapping[str, Any]):
        self.expression = expression
        self.inputs = inputs

    def _type_error(self, op: str, *values: Value) -> ConditionTypeError:
        kinds = ", ".join(_kind(v) for v in values)
        return ConditionTypeError(
            f"Operator '{op}' not supported for {kinds}",
            expression=self.expression,
            details={"operator": op, "operand_types": [_kind(v) for v in values]},
        )

    def eval(self, node: Expr) -> Value:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Name):
            return self._lookup(node.name)
        if isinstance(node, Logical):
            left = self.eval(node.left)
            if node.op == "&&":
                return self.eval(node.right) if truthy(left) else left
            return left if truthy(left) else self.eval(node.right)
        if isinstance(node, Unary):
            return self._unary(node.op, self.eval(node.operand))
        if isinstance(node, Binary):
            return self._binary(node.op, self.eval(node.left), self.eval(node.right))
        raise ConditionEvaluationError(f"Unknown expression node {node!r}", expression=self.expression)

    def _lookup(self, name: str) -> Value:
        value = self.inputs.get(name)
        if value is None or value == "":
            raise UnresolvedIdentifierError(name, expression=self.expression)
        if _kind(value) not in ("boolean", "number", "string"):
            raise ConditionTypeError(
                f"Input '{name}' has unsupported type {type(value).__name__}",
                expression=self.expression,
                details={"identifier": name},
            )
        return value

    def _unary(self, op: str, value: Value) -> Value:
        if op == "!":
            return not truthy(value)
        if not _is_number(value):
            raise self._type_error(op, value)
        return -value if op == "-" else value

    def _binary(self, op: str, left: Value, right: Value) -> Value:
        if op in ("===", "!=="):
            return _equal(left, right, strict=True) == (op == "===")
        if op in ("==", "!="):
            return _equal(left, right, strict=False) == (op == "==")
        if op in (">", ">=", "<", "<="):
            if not ((_is_number(left) and _is_number(right)) or (isinstance(left, str) and isinstance(right, str))):
                raise self._type_error(op, left, right)
            if op == ">":
                return left > right
            if op == ">=":
                return left >= right
            if op == "<":
                return left < right
            return left <= right
        if op == "+" and isinstance(left, str) and isinstance(right, str):
            return left + right
        if not (_is_number(left) and _is_number(right)):
            raise self._type_error(op, left, right)
        if op in ("/", "%") and right == 0:
            raise ConditionEvaluationError(
                f"Division by zero in '{op}'", expression=self.expression, details={"operator": op}
            )
        try:
            return self._arithmetic(op, left, right)
        except ArithmeticError as e:
            raise ConditionEvaluationError(
                f"Arithmetic error in '{op}': {e}", expression=self.expression, details={"operator": op}
            ) from e

    @staticmethod
    def _arithmetic(op: str, left: Union[int, float], right: Union[int, float]) -> Union[int, float]:
        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if op == "/":
            return left / right
        remainder = math.fmod(left, right)
        return int(remainder) if isinstance(left, int) and isinstance(right, int) else remainder


def evaluate_expression(expression: str, inputs: Mapping[str, Any]) -> bool:
    """
    Evaluate an expression against input values and return its truthiness.

    Raises ConditionEvaluationError (or a subclass) on syntax errors,
    unresolved identifiers and type mismatches.
    """
    tree = parse_expression(expression)
    try:
        return truthy(_Evaluator(expression, inputs).eval(tree))
    except RecursionError:
        raise ConditionEvaluationError("Expression is nested too deeply to evaluate", expression=expression) from None


def evaluate_condition(expression: str, inputs: Mapping[str, Any]) -> bool:
    """Evaluate a guideline condition; any failure is logged and read as False."""
    try:
        return evaluate_expression(expression, inputs)
    except ConditionEvaluationError as e:
        logger.warning(
            "Condition evaluated as false (%s): %r: %s",
            e.details.get("reason"),
            expression,
            e.message,
        )
        return False
