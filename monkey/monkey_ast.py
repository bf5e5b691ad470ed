"""
AST node types produced by the parser and consumed by the evaluator.

A `Program` is both the top-level unit and the body of every block
(function bodies, if/else branches).
"""
from enum import Enum
from typing import List, Optional, Tuple

from monkey.monkey_token import Span


class Operator(Enum):
    NOT = "not"
    NEG = "neg"
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    LESS = "less"
    GREATER = "greater"
    LESS_EQUAL = "less-equal"
    GREATER_EQUAL = "greater-equal"
    EQUAL = "equal"
    NOT_EQUAL = "not-equal"

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


_SYMBOLS = {
    Operator.NOT: "!",
    Operator.NEG: "-",
    Operator.ADD: "+",
    Operator.SUB: "-",
    Operator.MUL: "*",
    Operator.DIV: "/",
    Operator.LESS: "<",
    Operator.GREATER: ">",
    Operator.LESS_EQUAL: "<=",
    Operator.GREATER_EQUAL: ">=",
    Operator.EQUAL: "==",
    Operator.NOT_EQUAL: "!=",
}


class Node:
    """Base for all AST nodes. Equality ignores source spans."""
    _fields: Tuple[str, ...] = ()
    span: Optional[Span] = None

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return all(getattr(self, f) == getattr(other, f) for f in self._fields)

    def __repr__(self) -> str:
        fields = ", ".join(f"{f}={getattr(self, f)!r}" for f in self._fields)
        return f"{type(self).__name__}({fields})"


class Program(Node):
    _fields = ("statements",)

    def __init__(self, statements: Optional[List['Statement']] = None):
        self.statements: List[Statement] = list(statements or [])

    def __len__(self) -> int:
        return len(self.statements)

    def __iter__(self):
        return iter(self.statements)


# =================================================================
# Expressions
# =================================================================

class Expression(Node):
    pass


class Identifier(Expression):
    _fields = ("name",)

    def __init__(self, name: str):
        self.name = name


class IntegerLiteral(Expression):
    _fields = ("value",)

    def __init__(self, value: int):
        self.value = value


class BooleanLiteral(Expression):
    _fields = ("value",)

    def __init__(self, value: bool):
        self.value = value


class StringLiteral(Expression):
    _fields = ("value",)

    def __init__(self, value: str):
        self.value = value


class PrefixExpression(Expression):
    _fields = ("operator", "right")

    def __init__(self, operator: Operator, right: Expression):
        self.operator = operator
        self.right = right


class InfixExpression(Expression):
    _fields = ("operator", "left", "right")

    def __init__(self, operator: Operator, left: Expression, right: Expression):
        self.operator = operator
        self.left = left
        self.right = right


class FunctionLiteral(Expression):
    _fields = ("params", "body")

    def __init__(self, params: List[Identifier], body: Program):
        self.params = params
        self.body = body


class CallExpression(Expression):
    _fields = ("function", "arguments")

    def __init__(self, function: Expression, arguments: List[Expression]):
        self.function = function
        self.arguments = arguments


class ArrayLiteral(Expression):
    _fields = ("elements",)

    def __init__(self, elements: List[Expression]):
        self.elements = elements


class IndexExpression(Expression):
    _fields = ("left", "index")

    def __init__(self, left: Expression, index: Expression):
        self.left = left
        self.index = index


class HashLiteral(Expression):
    """Key/value pairs in source order; duplicates are kept for the evaluator."""
    _fields = ("pairs",)

    def __init__(self, pairs: List[Tuple[Expression, Expression]]):
        self.pairs = pairs


# =================================================================
# Statements
# =================================================================

class Statement(Node):
    pass


class LetStatement(Statement):
    _fields = ("name", "value")

    def __init__(self, name: Identifier, value: Expression):
        self.name = name
        self.value = value


class ReturnStatement(Statement):
    _fields = ("value",)

    def __init__(self, value: Expression):
        self.value = value


class IfStatement(Statement):
    _fields = ("condition", "consequence", "alternative")

    def __init__(self, condition: Expression, consequence: Program, alternative: Optional[Program] = None):
        self.condition = condition
        self.consequence = consequence
        self.alternative = alternative


class ExpressionStatement(Statement):
    _fields = ("expression",)

    def __init__(self, expression: Expression):
        self.expression = expression
