# flowengine/expressions.py
"""
Condition expressions for logic nodes.

A deliberately small language: literals, bound variables, ``.length`` and a
handful of string methods, arithmetic, comparisons and boolean connectives.
Both the JavaScript spellings the editor has always produced
(``&&``, ``||``, ``!``, ``===``, ``input.includes("x")``) and their Python
counterparts (``and``, ``or``, ``not``, ``in``) are accepted.

Expressions are tokenized and parsed here into a tiny tree and then walked
against a dict of variables; nothing is ever handed to ``eval``.

Example::

    >>> evaluate("input.length > 3 && !input.includes('spam')", {"input": "hello"})
    True
"""
import logging
import operator
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import FlowError

logger = logging.getLogger(__name__)

MAX_EXPRESSION_LENGTH = 1000
MAX_DEPTH = 50


class ExpressionError(FlowError):
    """The expression could not be parsed or evaluated."""


class ExpressionSyntaxError(ExpressionError):
    pass


class ExpressionEvaluationError(ExpressionError):
    pass


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>\d+\.\d*|\.\d+|\d+)
  | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
  | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<op>===|!==|==|!=|<=|>=|&&|\|\||[-+*/%<>!().,\[\]])
    """,
    re.VERBOSE,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"'}

Token = Tuple[str, Any, int]


def tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if not m:
            raise ExpressionSyntaxError(f"Unexpected character {text[pos]!r} at position {pos}")
        kind = m.lastgroup
        value = m.group(kind)
        if kind == "number":
            tokens.append(("number", float(value) if "." in value else int(value), pos))
        elif kind == "string":
            tokens.append(("string", _unescape(value[1:-1]), pos))
        elif kind in ("name", "op"):
            tokens.append((kind, value, pos))
        pos = m.end()
    tokens.append(("end", None, pos))
    return tokens


def _unescape(body: str) -> str:
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


# ---------------------------------------------------------------------------
# Tree
# ---------------------------------------------------------------------------

class Node:
    def eval(self, env: Dict[str, Any]) -> Any:
        raise NotImplementedError


class Literal(Node):
    def __init__(self, value: Any):
        self.value = value

    def eval(self, env):
        return self.value


class Name(Node):
    def __init__(self, name: str):
        self.name = name

    def eval(self, env):
        if self.name not in env:
            raise ExpressionEvaluationError(f"Unknown name '{self.name}'")
        return env[self.name]


class Unary(Node):
    def __init__(self, op: str, operand: Node):
        self.op = op
        self.operand = operand

    def eval(self, env):
        value = self.operand.eval(env)
        if self.op in ("!", "not"):
            return not value
        number = _to_number(value)
        return -number if self.op == "-" else number


class BoolOp(Node):
    def __init__(self, op: str, left: Node, right: Node):
        self.op = op
        self.left = left
        self.right = right

    def eval(self, env):
        left = self.left.eval(env)
        if self.op == "and":
            return self.right.eval(env) if left else left
        return left if left else self.right.eval(env)


class BinOp(Node):
    def __init__(self, op: str, left: Node, right: Node):
        self.op = op
        self.left = left
        self.right = right

    def eval(self, env):
        left = self.left.eval(env)
        right = self.right.eval(env)
        if self.op == "+" and (isinstance(left, str) or isinstance(right, str)):
            return _to_text(left) + _to_text(right)
        try:
            return _ARITHMETIC[self.op](_to_number(left), _to_number(right))
        except ZeroDivisionError:
            raise ExpressionEvaluationError("Division by zero")
        except OverflowError:
            raise ExpressionEvaluationError("Number out of range")


class Compare(Node):
    def __init__(self, first: Node, rest: List[Tuple[str, Node]]):
        self.first = first
        self.rest = rest

    def eval(self, env):
        left = self.first.eval(env)
        for op, node in self.rest:
            right = node.eval(env)
            if not _compare(op, left, right):
                return False
            left = right
        return True


class Attribute(Node):
    def __init__(self, target: Node, name: str):
        self.target = target
        self.name = name

    def eval(self, env):
        value = self.target.eval(env)
        if self.name == "length":
            try:
                return len(value)
            except TypeError:
                raise ExpressionEvaluationError(f"Value of type {type(value).__name__} has no length")
        raise ExpressionEvaluationError(f"Attribute '{self.name}' is not allowed")


class MethodCall(Node):
    def __init__(self, target: Node, name: str, args: List[Node]):
        self.target = target
        self.name = name
        self.args = args

    def eval(self, env):
        method = _METHODS.get(self.name)
        if method is None:
            raise ExpressionEvaluationError(f"Method '{self.name}' is not allowed")
        fn, arity = method
        if len(self.args) != arity:
            raise ExpressionEvaluationError(f"Method '{self.name}' takes {arity} argument(s)")
        value = self.target.eval(env)
        if not isinstance(value, str):
            raise ExpressionEvaluationError(f"Method '{self.name}' needs a string")
        return fn(value, *[a.eval(env) for a in self.args])


class Index(Node):
    def __init__(self, target: Node, index: Node):
        self.target = target
        self.index = index

    def eval(self, env):
        value = self.target.eval(env)
        key = self.index.eval(env)
        try:
            if isinstance(value, (str, list, tuple)):
                return value[int(_to_number(key))]
            return value[key]
        except (IndexError, KeyError, TypeError, ValueError, OverflowError) as e:
            raise ExpressionEvaluationError(f"Bad index {key!r}: {e}")


_ARITHMETIC: Dict[str, Callable[[Any, Any], Any]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "%": operator.mod,
}

_METHODS: Dict[str, Tuple[Callable[..., Any], int]] = {
    "includes": (lambda s, x: _to_text(x) in s, 1),
    "contains": (lambda s, x: _to_text(x) in s, 1),
    "startsWith": (lambda s, x: s.startswith(_to_text(x)), 1),
    "startswith": (lambda s, x: s.startswith(_to_text(x)), 1),
    "endsWith": (lambda s, x: s.endswith(_to_text(x)), 1),
    "endswith": (lambda s, x: s.endswith(_to_text(x)), 1),
    "toLowerCase": (str.lower, 0),
    "lower": (str.lower, 0),
    "toUpperCase": (str.upper, 0),
    "upper": (str.upper, 0),
    "trim": (str.strip, 0),
    "strip": (str.strip, 0),
}

_KEYWORD_LITERALS = {
    "true": True,
    "True": True,
    "false": False,
    "False": False,
    "null": None,
    "None": None,
    "undefined": None,
}

_COMPARE_OPS = ("==", "!=", "===", "!==", "<", "<=", ">", ">=")


def _to_text(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_number(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ExpressionEvaluationError(f"Cannot use {value!r} as a number")
        return int(number) if number.is_integer() else number
    raise ExpressionEvaluationError(f"Cannot use {type(value).__name__} as a number")


def _loose_equal(left: Any, right: Any) -> bool:
    if isinstance(left, str) and isinstance(right, (int, float)) and not isinstance(right, bool):
        try:
            return _to_number(left) == right
        except ExpressionEvaluationError:
            return False
    if isinstance(right, str) and isinstance(left, (int, float)) and not isinstance(left, bool):
        return _loose_equal(right, left)
    return left == right


def _compare(op: str, left: Any, right: Any) -> bool:
    if op in ("==", "==="):
        return _loose_equal(left, right)
    if op in ("!=", "!=="):
        return not _loose_equal(left, right)
    if op == "in":
        return _contains(right, left)
    if op == "not in":
        return not _contains(right, left)
    if not (isinstance(left, str) and isinstance(right, str)):
        left, right = _to_number(left), _to_number(right)
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    return left >= right


def _contains(container: Any, item: Any) -> bool:
    if isinstance(container, str):
        return _to_text(item) in container
    try:
        return item in container
    except TypeError:
        raise ExpressionEvaluationError(f"Cannot search in {type(container).__name__}")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class _Parser:
    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0
        self.depth = 0

    def peek(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def at(self, kind: str, *values: str) -> bool:
        tkind, tvalue, _ = self.peek()
        return tkind == kind and (not values or tvalue in values)

    def expect(self, kind: str, value: Optional[str] = None) -> Token:
        token = self.advance()
        if token[0] != kind or (value is not None and token[1] != value):
            wanted = value or kind
            raise ExpressionSyntaxError(f"Expected {wanted!r} at position {token[2]}")
        return token

    def parse(self) -> Node:
        node = self.expression()
        if not self.at("end"):
            raise ExpressionSyntaxError(f"Unexpected {self.peek()[1]!r} at position {self.peek()[2]}")
        return node

    def expression(self) -> Node:
        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise ExpressionSyntaxError("Expression is nested too deeply")
        try:
            return self.or_expr()
        finally:
            self.depth -= 1

    def or_expr(self) -> Node:
        node = self.and_expr()
        while self.at("op", "||") or self.at("name", "or"):
            self.advance()
            node = BoolOp("or", node, self.and_expr())
        return node

    def and_expr(self) -> Node:
        node = self.not_expr()
        while self.at("op", "&&") or self.at("name", "and"):
            self.advance()
            node = BoolOp("and", node, self.not_expr())
        return node

    def not_expr(self) -> Node:
        if self.at("op", "!") or self.at("name", "not"):
            op = self.advance()[1]
            self.depth += 1
            if self.depth > MAX_DEPTH:
                raise ExpressionSyntaxError("Expression is nested too deeply")
            try:
                return Unary(op, self.not_expr())
            finally:
                self.depth -= 1
        return self.comparison()

    def comparison(self) -> Node:
        first = self.additive()
        rest: List[Tuple[str, Node]] = []
        while True:
            if self.at("op", *_COMPARE_OPS):
                op = self.advance()[1]
            elif self.at("name", "in"):
                self.advance()
                op = "in"
            elif self.at("name", "not") and self.tokens[self.pos + 1][:2] == ("name", "in"):
                self.pos += 2
                op = "not in"
            else:
                break
            rest.append((op, self.additive()))
        return Compare(first, rest) if rest else first

    def additive(self) -> Node:
        node = self.multiplicative()
        while self.at("op", "+", "-"):
            op = self.advance()[1]
            node = BinOp(op, node, self.multiplicative())
        return node

    def multiplicative(self) -> Node:
        node = self.unary()
        while self.at("op", "*", "/", "%"):
            op = self.advance()[1]
            node = BinOp(op, node, self.unary())
        return node

    def unary(self) -> Node:
        if self.at("op", "-", "+"):
            op = self.advance()[1]
            self.depth += 1
            if self.depth > MAX_DEPTH:
                raise ExpressionSyntaxError("Expression is nested too deeply")
            try:
                return Unary(op, self.unary())
            finally:
                self.depth -= 1
        return self.postfix()

    def postfix(self) -> Node:
        node = self.primary()
        while True:
            if self.at("op", "."):
                self.advance()
                name = self.expect("name")[1]
                if self.at("op", "("):
                    node = MethodCall(node, name, self.arguments())
                else:
                    node = Attribute(node, name)
            elif self.at("op", "["):
                self.advance()
                index = self.expression()
                self.expect("op", "]")
                node = Index(node, index)
            else:
                return node

    def arguments(self) -> List[Node]:
        self.expect("op", "(")
        args: List[Node] = []
        if not self.at("op", ")"):
            args.append(self.expression())
            while self.at("op", ","):
                self.advance()
                args.append(self.expression())
        self.expect("op", ")")
        return args

    def primary(self) -> Node:
        kind, value, pos = self.advance()
        if kind in ("number", "string"):
            return Literal(value)
        if kind == "name":
            if value in _KEYWORD_LITERALS:
                return Literal(_KEYWORD_LITERALS[value])
            if self.at("op", "("):
                raise ExpressionSyntaxError(f"Function calls are not allowed ('{value}')")
            return Name(value)
        if kind == "op" and value == "(":
            node = self.expression()
            self.expect("op", ")")
            return node
        if kind == "end":
            raise ExpressionSyntaxError("Unexpected end of expression")
        raise ExpressionSyntaxError(f"Unexpected {value!r} at position {pos}")


def parse(expression: str) -> Node:
    if not expression or not expression.strip():
        raise ExpressionSyntaxError("Expression is empty")
    if len(expression) > MAX_EXPRESSION_LENGTH:
        raise ExpressionSyntaxError(f"Expression is longer than {MAX_EXPRESSION_LENGTH} characters")
    return _Parser(tokenize(expression)).parse()


def evaluate(expression: str, variables: Optional[Dict[str, Any]] = None) -> Any:
    return parse(expression).eval(dict(variables or {}))


def evaluate_condition(expression: str, value: Any, name: str = "input") -> bool:
    """Truthiness of ``expression`` with ``value`` bound to ``name``; errors count as False."""
    try:
        return bool(evaluate(expression, {name: value}))
    except (ExpressionError, RecursionError) as e:
        logger.info("condition %r evaluated as false: %s", expression, e)
        return False
