"""
Token and source-span types produced by the Monkey lexer.
"""
from enum import Enum
from typing import Dict


class TokenType(Enum):
    EOF = "EOF"

    IDENTIFIER = "IDENTIFIER"
    INTEGER = "INTEGER"
    STRING = "STRING"

    # Operators
    ASSIGN = "="
    PLUS = "+"
    MINUS = "-"
    BANG = "!"
    ASTERISK = "*"
    SLASH = "/"

    LESS_THAN = "<"
    GREATER_THAN = ">"
    EQUAL = "=="
    NOT_EQUAL = "!="
    LESS_THAN_EQUAL = "<="
    GREATER_THAN_EQUAL = ">="

    # Delimiters
    COMMA = ","
    COLON = ":"
    SEMICOLON = ";"

    LEFT_PAREN = "("
    RIGHT_PAREN = ")"
    LEFT_BRACE = "{"
    RIGHT_BRACE = "}"
    LEFT_BRACKET = "["
    RIGHT_BRACKET = "]"

    # Keywords
    FUNCTION = "fn"
    LET = "let"
    TRUE = "true"
    FALSE = "false"
    IF = "if"
    ELSE = "else"
    RETURN = "return"


KEYWORDS: Dict[str, TokenType] = {
    "let": TokenType.LET,
    "fn": TokenType.FUNCTION,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "return": TokenType.RETURN,
}

# Single-character punctuation; '=', '!', '<' and '>' may also start a
# two-character operator and are handled separately by the lexer.
SINGLE_CHAR_TOKENS: Dict[str, TokenType] = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.ASTERISK,
    "/": TokenType.SLASH,
    ";": TokenType.SEMICOLON,
    ":": TokenType.COLON,
    ",": TokenType.COMMA,
    "(": TokenType.LEFT_PAREN,
    ")": TokenType.RIGHT_PAREN,
    "{": TokenType.LEFT_BRACE,
    "}": TokenType.RIGHT_BRACE,
    "[": TokenType.LEFT_BRACKET,
    "]": TokenType.RIGHT_BRACKET,
}

# first char -> (single-char kind, kind when followed by '=')
DOUBLE_CHAR_TOKENS: Dict[str, tuple] = {
    "=": (TokenType.ASSIGN, TokenType.EQUAL),
    "!": (TokenType.BANG, TokenType.NOT_EQUAL),
    "<": (TokenType.LESS_THAN, TokenType.LESS_THAN_EQUAL),
    ">": (TokenType.GREATER_THAN, TokenType.GREATER_THAN_EQUAL),
}


class Span:
    """A half-open column range `[start, end)` on a single source line.

    Lines and columns are zero-based. Tokens never span lines; asking for
    one is an internal fault.
    """
    __slots__ = ("start", "end", "line_start", "line_end")

    def __init__(self, start: int, end: int, line_start: int, line_end: int):
        if line_start != line_end:
            raise ValueError(
                f"multi-line tokens are not supported (lines {line_start}-{line_end})"
            )
        self.start = start
        self.end = end
        self.line_start = line_start
        self.line_end = line_end

    @property
    def line(self) -> int:
        return self.line_start

    def to_loc(self) -> dict:
        """One-based location dict used by error reporting."""
        return {'line': self.line_start + 1, 'col': self.start + 1}

    def __repr__(self) -> str:
        return f"[L{self.line_start}-{self.start}:{self.end}]"

    def __eq__(self, other):
        return isinstance(other, Span) and (
            self.start == other.start and
            self.end == other.end and
            self.line_start == other.line_start and
            self.line_end == other.line_end
        )

    def __hash__(self):
        return hash((self.start, self.end, self.line_start, self.line_end))


class Token:
    """One lexical unit: its kind, literal text and source span.

    For string tokens `literal` holds the decoded text (escapes resolved).
    """
    __slots__ = ("type", "literal", "span")

    def __init__(self, type: TokenType, literal: str, span: Span):
        self.type = type
        self.literal = literal
        self.span = span

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.literal!r} {self.span!r})"

    def __eq__(self, other):
        return isinstance(other, Token) and (
            self.type is other.type and
            self.literal == other.literal and
            self.span == other.span
        )

    def __hash__(self):
        return hash((self.type, self.literal, self.span))
