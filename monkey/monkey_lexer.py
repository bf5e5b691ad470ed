"""
The Monkey lexer: a pull-based producer of tokens.

`Lexer.next_token()` reads the source one character at a time and may be
called again after end-of-file; it keeps returning the EOF token.
"""
from typing import Iterable, Iterator, List

from monkey.monkey_token import (
    Token, TokenType, Span, KEYWORDS, SINGLE_CHAR_TOKENS, DOUBLE_CHAR_TOKENS
)

# Escape sequences recognised inside string literals.
ESCAPES = {
    "n": "\n",
    "t": "\t",
    '"': '"',
    "\\": "\\",
}
_REVERSE_ESCAPES = {v: k for k, v in ESCAPES.items()}


class LexError(Exception):
    """Base class for failures raised while tokenizing."""
    def __init__(self, message: str, span: Span):
        super().__init__(message)
        self.span = span


class UnsupportedToken(LexError):
    def __init__(self, char: str, span: Span):
        super().__init__(f"unsupported token {char!r}", span)
        self.char = char


class InvalidEscapeCharacter(LexError):
    def __init__(self, char: str, span: Span):
        super().__init__(f"invalid escape character {char!r}", span)
        self.char = char


def is_identifier(ch: str) -> bool:
    return ch == "_" or (ch.isascii() and ch.isalpha())


def is_digit(ch: str) -> bool:
    return len(ch) == 1 and "0" <= ch <= "9"


def is_whitespace(ch: str) -> bool:
    return ch != "" and ch.isspace()


def escape_string(text: str) -> str:
    """Inverse of the lexer's escape decoding."""
    return "".join("\\" + _REVERSE_ESCAPES[c] if c in _REVERSE_ESCAPES else c for c in text)


class Lexer:
    """Turns Monkey source text into tokens on demand."""

    def __init__(self, source: str):
        self.source = source
        self.position = 0  # index of `ch` in source
        self.line = 0
        self.column = 0
        # "" marks end of input
        self.ch = source[0] if source else ""

    def __iter__(self) -> Iterator[Token]:
        return tokenize_lexer(self)

    def _peek(self) -> str:
        nxt = self.position + 1
        return self.source[nxt] if nxt < len(self.source) else ""

    def _advance(self):
        if self.ch == "":
            return
        if self.ch == "\n":
            self.line += 1
            self.column = 0
        else:
            self.column += 1
        self.position += 1
        self.ch = self.source[self.position] if self.position < len(self.source) else ""

    def _skip_whitespace(self):
        while is_whitespace(self.ch):
            self._advance()

    def _token(self, token_type: TokenType, literal: str, start: int) -> Token:
        return Token(token_type, literal, Span(start, self.column, self.line, self.line))

    def next_token(self) -> Token:
        self._skip_whitespace()
        start = self.column
        ch = self.ch

        if ch == "":
            return self._token(TokenType.EOF, "", start)

        if ch in DOUBLE_CHAR_TOKENS:
            single, double = DOUBLE_CHAR_TOKENS[ch]
            if self._peek() == "=":
                self._advance()
                self._advance()
                return self._token(double, ch + "=", start)
            self._advance()
            return self._token(single, ch, start)

        if ch in SINGLE_CHAR_TOKENS:
            self._advance()
            return self._token(SINGLE_CHAR_TOKENS[ch], ch, start)

        if ch == '"':
            return self._read_string()

        if is_identifier(ch):
            text = self._read_while(is_identifier)
            return self._token(KEYWORDS.get(text, TokenType.IDENTIFIER), text, start)

        if is_digit(ch):
            return self._token(TokenType.INTEGER, self._read_while(is_digit), start)

        raise UnsupportedToken(ch, Span(start, start + 1, self.line, self.line))

    def _read_while(self, predicate) -> str:
        begin = self.position
        while predicate(self.ch):
            self._advance()
        return self.source[begin:self.position]

    def _read_string(self) -> Token:
        start = self.column
        line_start = self.line
        self._advance()  # opening quote

        chars: List[str] = []
        while self.ch not in ('"', ""):
            if self.ch == "\\":
                self._advance()
                if self.ch == "":
                    break
                decoded = ESCAPES.get(self.ch)
                if decoded is None:
                    raise InvalidEscapeCharacter(
                        self.ch, Span(self.column, self.column + 1, self.line, self.line)
                    )
                chars.append(decoded)
            else:
                chars.append(self.ch)
            self._advance()

        # An unterminated literal ends at end of input.
        if self.ch == '"':
            self._advance()

        return Token(TokenType.STRING, "".join(chars), Span(start, self.column, line_start, self.line))


# =================================================================
# Helpers
# =================================================================

def tokenize_lexer(lexer: Lexer) -> Iterator[Token]:
    while True:
        token = lexer.next_token()
        yield token
        if token.type is TokenType.EOF:
            return


def tokenize(source: str) -> List[Token]:
    """All tokens of `source`, ending with the EOF token."""
    return list(tokenize_lexer(Lexer(source)))


def token_text(token: Token) -> str:
    """The source spelling of a token (string literals re-escaped and quoted)."""
    if token.type is TokenType.STRING:
        return f'"{escape_string(token.literal)}"'
    return token.literal


def detokenize(tokens: Iterable[Token]) -> str:
    """Rebuild source text by placing each token at its span."""
    lines: List[str] = [""]
    for token in tokens:
        if token.type is TokenType.EOF:
            break
        while len(lines) <= token.span.line:
            lines.append("")
        current = lines[token.span.line]
        current += " " * max(token.span.start - len(current), 0)
        lines[token.span.line] = current + token_text(token)
    return "\n".join(lines)


def token_snapshot(source: str) -> str:
    """Render each token beneath its source line with `^` markers."""
    source_lines = source.split("\n")
    out: List[str] = []
    working_line = None
    for token in tokenize(source):
        span = token.span
        if span.line_start != span.line_end:
            raise ValueError("multi-line tokens are not supported")
        if span.line != working_line:
            working_line = span.line
            if working_line < len(source_lines):
                out.append(source_lines[working_line])
        width = max(span.end - span.start, 1)
        out.append(f"{' ' * span.start}{'^' * width} {token!r}")
    return "\n".join(out) + "\n"
