"""
Operator-precedence (Pratt) parser for Monkey.

The parser keeps exactly two tokens of lookahead: `current` and `peek`.
While an expression is being parsed `current` is its last token, and the
infix loop inspects `peek` to decide whether to keep extending it.
"""
from enum import IntEnum
from typing import Callable, Dict, List, Optional, Union

from monkey.monkey_token import Token, TokenType
from monkey.monkey_lexer import Lexer
from monkey.monkey_datatypes import INT_MAX
from monkey.monkey_ast import (
    Node, Program, Statement, Expression, Operator,
    Identifier, IntegerLiteral, BooleanLiteral, StringLiteral,
    PrefixExpression, InfixExpression, FunctionLiteral, CallExpression,
    ArrayLiteral, IndexExpression, HashLiteral,
    LetStatement, ReturnStatement, IfStatement, ExpressionStatement,
)


class Precedence(IntEnum):
    LOWEST = 1
    EQUALS = 2        # == !=
    LESS_GREATER = 3  # < > <= >=
    SUM = 4           # + -
    PRODUCT = 5       # * /
    PREFIX = 6        # !x -x
    CALL = 7          # f(x)
    INDEX = 8         # a[i]


PRECEDENCES: Dict[TokenType, Precedence] = {
    TokenType.EQUAL: Precedence.EQUALS,
    TokenType.NOT_EQUAL: Precedence.EQUALS,
    TokenType.LESS_THAN: Precedence.LESS_GREATER,
    TokenType.GREATER_THAN: Precedence.LESS_GREATER,
    TokenType.LESS_THAN_EQUAL: Precedence.LESS_GREATER,
    TokenType.GREATER_THAN_EQUAL: Precedence.LESS_GREATER,
    TokenType.PLUS: Precedence.SUM,
    TokenType.MINUS: Precedence.SUM,
    TokenType.ASTERISK: Precedence.PRODUCT,
    TokenType.SLASH: Precedence.PRODUCT,
    TokenType.LEFT_PAREN: Precedence.CALL,
    TokenType.LEFT_BRACKET: Precedence.INDEX,
}

INFIX_OPERATORS: Dict[TokenType, Operator] = {
    TokenType.PLUS: Operator.ADD,
    TokenType.MINUS: Operator.SUB,
    TokenType.ASTERISK: Operator.MUL,
    TokenType.SLASH: Operator.DIV,
    TokenType.LESS_THAN: Operator.LESS,
    TokenType.GREATER_THAN: Operator.GREATER,
    TokenType.LESS_THAN_EQUAL: Operator.LESS_EQUAL,
    TokenType.GREATER_THAN_EQUAL: Operator.GREATER_EQUAL,
    TokenType.EQUAL: Operator.EQUAL,
    TokenType.NOT_EQUAL: Operator.NOT_EQUAL,
}


class ParseError(Exception):
    """Base class for parse failures. Parsing never recovers from one."""
    pass


class UnexpectedToken(ParseError):
    """A required token did not match the expected kind."""
    def __init__(self, expected: Union[TokenType, str], found: Token):
        self.expected = expected
        self.found = found
        self.span = found.span
        super().__init__(f"expected {_describe(expected)}, found {_describe_token(found)}")


class NestingTooDeep(ParseError):
    """The input nests deeper than the parser can recurse."""
    def __init__(self, found: Token):
        self.found = found
        self.span = found.span
        super().__init__("input nested too deeply")


def _describe(expected: Union[TokenType, str]) -> str:
    if isinstance(expected, TokenType):
        if expected in (TokenType.EOF, TokenType.IDENTIFIER, TokenType.INTEGER, TokenType.STRING):
            return expected.name.lower().replace('_', ' ')
        return repr(expected.value)
    return expected


def _describe_token(token: Token) -> str:
    if token.type is TokenType.EOF:
        return "end of input"
    return f"{token.type.name} {token.literal!r}"


class Parser:
    """Builds a `Program` from the tokens of a `Lexer`."""

    def __init__(self, lexer: Lexer):
        self.lexer = lexer
        self.current: Token = lexer.next_token()
        self.peek: Token = lexer.next_token()
        self._depth = 0

        self._prefix_fns: Dict[TokenType, Callable[[], Expression]] = {
            TokenType.IDENTIFIER: self.parse_identifier,
            TokenType.INTEGER: self.parse_integer_literal,
            TokenType.TRUE: self.parse_boolean,
            TokenType.FALSE: self.parse_boolean,
            TokenType.STRING: self.parse_string_literal,
            TokenType.BANG: self.parse_prefix_expression,
            TokenType.MINUS: self.parse_prefix_expression,
            TokenType.LEFT_PAREN: self.parse_grouped_expression,
            TokenType.FUNCTION: self.parse_function_literal,
            TokenType.LEFT_BRACKET: self.parse_array_literal,
            TokenType.LEFT_BRACE: self.parse_hash_literal,
        }
        self._infix_fns: Dict[TokenType, Callable[[Expression], Expression]] = {
            token_type: self.parse_infix_expression for token_type in INFIX_OPERATORS
        }
        self._infix_fns[TokenType.LEFT_PAREN] = self.parse_call_expression
        self._infix_fns[TokenType.LEFT_BRACKET] = self.parse_index_expression

    # -----------------------------------------------------------------
    # Token handling
    # -----------------------------------------------------------------

    def advance(self):
        self.current = self.peek
        self.peek = self.lexer.next_token()

    def expect_peek(self, token_type: TokenType) -> Token:
        """Advance onto `peek` if it has the required kind, else fail."""
        if self.peek.type is not token_type:
            raise UnexpectedToken(token_type, self.peek)
        self.advance()
        return self.current

    def _at(self, node: Node, token: Token) -> Node:
        node.span = token.span
        return node

    def _peek_precedence(self) -> Precedence:
        return PRECEDENCES.get(self.peek.type, Precedence.LOWEST)

    def _current_precedence(self) -> Precedence:
        return PRECEDENCES.get(self.current.type, Precedence.LOWEST)

    # -----------------------------------------------------------------
    # Programs and statements
    # -----------------------------------------------------------------

    def parse_program(self) -> Program:
        """Parse statements until end of input, or until `}` inside a block.

        A block-closing `}` is left as the current token for the caller.
        """
        program = self._at(Program(), self.current)
        while self.current.type not in (TokenType.EOF, TokenType.RIGHT_BRACE):
            program.statements.append(self.parse_statement())
            self.advance()
            while self.current.type is TokenType.SEMICOLON:
                self.advance()

        if self._depth == 0 and self.current.type is not TokenType.EOF:
            raise UnexpectedToken(TokenType.EOF, self.current)
        return program

    def parse_block(self) -> Program:
        """Parse `{ ... }` with `current` on the opening brace; ends on `}`."""
        self.advance()
        self._depth += 1
        try:
            body = self.parse_program()
        finally:
            self._depth -= 1
        if self.current.type is not TokenType.RIGHT_BRACE:
            raise UnexpectedToken(TokenType.RIGHT_BRACE, self.current)
        return body

    def parse_statement(self) -> Statement:
        match self.current.type:
            case TokenType.LET:
                return self.parse_let_statement()
            case TokenType.RETURN:
                return self.parse_return_statement()
            case TokenType.IF:
                return self.parse_if_statement()
            case _:
                return self.parse_expression_statement()

    def parse_let_statement(self) -> LetStatement:
        token = self.current
        name_token = self.expect_peek(TokenType.IDENTIFIER)
        name = self._at(Identifier(name_token.literal), name_token)
        self.expect_peek(TokenType.ASSIGN)
        self.advance()
        value = self.parse_expression(Precedence.LOWEST)
        return self._at(LetStatement(name, value), token)

    def parse_return_statement(self) -> ReturnStatement:
        token = self.current
        self.advance()
        value = self.parse_expression(Precedence.LOWEST)
        return self._at(ReturnStatement(value), token)

    def parse_if_statement(self) -> IfStatement:
        token = self.current
        self.expect_peek(TokenType.LEFT_PAREN)
        self.advance()
        condition = self.parse_expression(Precedence.LOWEST)
        self.expect_peek(TokenType.RIGHT_PAREN)
        self.expect_peek(TokenType.LEFT_BRACE)
        consequence = self.parse_block()

        alternative: Optional[Program] = None
        if self.peek.type is TokenType.ELSE:
            self.advance()
            self.expect_peek(TokenType.LEFT_BRACE)
            alternative = self.parse_block()
        return self._at(IfStatement(condition, consequence, alternative), token)

    def parse_expression_statement(self) -> ExpressionStatement:
        token = self.current
        expression = self.parse_expression(Precedence.LOWEST)
        return self._at(ExpressionStatement(expression), token)

    # -----------------------------------------------------------------
    # Expressions
    # -----------------------------------------------------------------

    def parse_expression(self, precedence: Precedence) -> Expression:
        prefix = self._prefix_fns.get(self.current.type)
        if prefix is None:
            raise UnexpectedToken("expression", self.current)
        left = prefix()

        while self.peek.type is not TokenType.SEMICOLON and precedence < self._peek_precedence():
            infix = self._infix_fns[self.peek.type]
            self.advance()
            left = infix(left)
        return left

    def parse_identifier(self) -> Identifier:
        return self._at(Identifier(self.current.literal), self.current)

    def parse_integer_literal(self) -> IntegerLiteral:
        value = int(self.current.literal)
        if value > INT_MAX:
            raise UnexpectedToken("integer literal in 64-bit range", self.current)
        return self._at(IntegerLiteral(value), self.current)

    def parse_boolean(self) -> BooleanLiteral:
        return self._at(BooleanLiteral(self.current.type is TokenType.TRUE), self.current)

    def parse_string_literal(self) -> StringLiteral:
        return self._at(StringLiteral(self.current.literal), self.current)

    def parse_prefix_expression(self) -> PrefixExpression:
        token = self.current
        operator = Operator.NOT if token.type is TokenType.BANG else Operator.NEG
        self.advance()
        right = self.parse_expression(Precedence.PREFIX)
        return self._at(PrefixExpression(operator, right), token)

    def parse_infix_expression(self, left: Expression) -> InfixExpression:
        token = self.current
        precedence = self._current_precedence()
        self.advance()
        right = self.parse_expression(precedence)
        return self._at(InfixExpression(INFIX_OPERATORS[token.type], left, right), token)

    def parse_grouped_expression(self) -> Expression:
        self.advance()
        expression = self.parse_expression(Precedence.LOWEST)
        self.expect_peek(TokenType.RIGHT_PAREN)
        return expression

    def parse_function_literal(self) -> FunctionLiteral:
        token = self.current
        self.expect_peek(TokenType.LEFT_PAREN)
        params = self.parse_function_parameters()
        self.expect_peek(TokenType.LEFT_BRACE)
        body = self.parse_block()
        return self._at(FunctionLiteral(params, body), token)

    def parse_function_parameters(self) -> List[Identifier]:
        params: List[Identifier] = []
        if self.peek.type is TokenType.RIGHT_PAREN:
            self.advance()
            return params

        token = self.expect_peek(TokenType.IDENTIFIER)
        params.append(self._at(Identifier(token.literal), token))
        while self.peek.type is TokenType.COMMA:
            self.advance()
            token = self.expect_peek(TokenType.IDENTIFIER)
            params.append(self._at(Identifier(token.literal), token))
        self.expect_peek(TokenType.RIGHT_PAREN)
        return params

    def parse_call_expression(self, function: Expression) -> CallExpression:
        token = self.current
        arguments = self.parse_expression_list(TokenType.RIGHT_PAREN)
        return self._at(CallExpression(function, arguments), token)

    def parse_index_expression(self, left: Expression) -> IndexExpression:
        token = self.current
        self.advance()
        index = self.parse_expression(Precedence.LOWEST)
        self.expect_peek(TokenType.RIGHT_BRACKET)
        return self._at(IndexExpression(left, index), token)

    def parse_array_literal(self) -> ArrayLiteral:
        token = self.current
        return self._at(ArrayLiteral(self.parse_expression_list(TokenType.RIGHT_BRACKET)), token)

    def parse_expression_list(self, end: TokenType) -> List[Expression]:
        """Comma-separated expressions; `current` is the opening delimiter."""
        items: List[Expression] = []
        if self.peek.type is end:
            self.advance()
            return items

        self.advance()
        items.append(self.parse_expression(Precedence.LOWEST))
        while self.peek.type is TokenType.COMMA:
            self.advance()
            self.advance()
            items.append(self.parse_expression(Precedence.LOWEST))
        self.expect_peek(end)
        return items

    def parse_hash_literal(self) -> HashLiteral:
        token = self.current
        pairs = []
        if self.peek.type is TokenType.RIGHT_BRACE:
            self.advance()
            return self._at(HashLiteral(pairs), token)

        while True:
            self.advance()
            key = self.parse_expression(Precedence.LOWEST)
            self.expect_peek(TokenType.COLON)
            self.advance()
            value = self.parse_expression(Precedence.LOWEST)
            pairs.append((key, value))
            if self.peek.type is not TokenType.COMMA:
                break
            self.advance()
        self.expect_peek(TokenType.RIGHT_BRACE)
        return self._at(HashLiteral(pairs), token)


def parse(source: str) -> Program:
    """Lex and parse `source` into a `Program`."""
    return Parser(Lexer(source)).parse_program()
