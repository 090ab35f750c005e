from __future__ import annotations
from enum import Enum, auto
from .errors import LexError


class TK(Enum):
    # Literals
    INT = auto()
    FLOAT = auto()
    STRING = auto()
    NAME = auto()
    # Keywords
    LET = auto()
    FN = auto()
    CLASS = auto()
    PUBLIC = auto()
    IF = auto()
    ELSE = auto()
    WHILE = auto()
    FOR = auto()
    IN = auto()
    RETURN = auto()
    TRUE = auto()
    FALSE = auto()
    # Symbols
    PLUS = auto()       # +
    MINUS = auto()      # -
    STAR = auto()       # *
    SLASH = auto()      # /
    PERCENT = auto()    # %
    BANG = auto()       # !
    AND = auto()        # &&
    OR = auto()         # ||
    EQ = auto()         # ==
    NEQ = auto()        # !=
    LT = auto()         # <
    LE = auto()         # <=
    GT = auto()         # >
    GE = auto()         # >=
    ASSIGN = auto()     # =
    ARROW = auto()      # ->
    LPAREN = auto()     # (
    RPAREN = auto()     # )
    LBRACE = auto()     # {
    RBRACE = auto()     # }
    LBRACKET = auto()   # [
    RBRACKET = auto()   # ]
    SEMICOLON = auto()  # ;
    COLON = auto()      # :
    COMMA = auto()      # ,
    DOT = auto()        # .
    DOTDOT = auto()     # ..
    EOF = auto()


KEYWORDS = {
    "let": TK.LET, "fn": TK.FN, "class": TK.CLASS, "public": TK.PUBLIC,
    "if": TK.IF, "else": TK.ELSE, "while": TK.WHILE, "for": TK.FOR,
    "in": TK.IN, "return": TK.RETURN, "true": TK.TRUE, "false": TK.FALSE,
}

# Longest match first: every two-character operator is tried before its prefix.
_TWO_CHAR = {
    "==": TK.EQ, "!=": TK.NEQ, "<=": TK.LE, ">=": TK.GE,
    "&&": TK.AND, "||": TK.OR, "->": TK.ARROW, "..": TK.DOTDOT,
}

_ONE_CHAR = {
    "+": TK.PLUS, "-": TK.MINUS, "*": TK.STAR, "/": TK.SLASH,
    "%": TK.PERCENT, "!": TK.BANG, "=": TK.ASSIGN, "<": TK.LT, ">": TK.GT,
    "(": TK.LPAREN, ")": TK.RPAREN, "{": TK.LBRACE, "}": TK.RBRACE,
    "[": TK.LBRACKET, "]": TK.RBRACKET, ";": TK.SEMICOLON, ":": TK.COLON,
    ",": TK.COMMA, ".": TK.DOT,
}

_DIGITS = frozenset("0123456789")
_INT_MAX = (1 << 63) - 1

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'"}


class Token:
    __slots__ = ("kind", "lexeme", "value", "line", "column")

    def __init__(self, kind: TK, lexeme: str, value: object, line: int, column: int):
        self.kind = kind
        self.lexeme = lexeme
        self.value = value
        self.line = line
        self.column = column

    @property
    def position(self) -> tuple[int, int]:
        return self.line, self.column

    def __eq__(self, other):
        if not isinstance(other, Token):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.lexeme == other.lexeme
            and self.value == other.value
            and self.position == other.position
        )

    def __hash__(self):
        return hash((self.kind, self.lexeme, self.line, self.column))

    def __repr__(self):
        return f"Token({self.kind}, {self.lexeme!r}, line={self.line}, column={self.column})"


class Lexer:
    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.line_start = 0
        self.tokens: list[Token] = []
        self._tokenize()

    def _char(self) -> str:
        return self.source[self.pos] if self.pos < len(self.source) else ""

    def _peek(self, offset: int = 1) -> str:
        p = self.pos + offset
        return self.source[p] if p < len(self.source) else ""

    def _column(self) -> int:
        return self.pos - self.line_start + 1

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.line_start = self.pos
        return ch

    def _skip_whitespace_and_comments(self):
        while self.pos < len(self.source):
            ch = self._char()
            if ch in " \t\r\n\f\v":
                self._advance()
            elif ch == "/" and self._peek() == "/":
                while self.pos < len(self.source) and self._char() != "\n":
                    self._advance()
            else:
                break

    def _read_string(self, quote: str, line: int, column: int) -> str:
        self._advance()  # skip opening quote
        buf: list[str] = []
        while self.pos < len(self.source):
            ch = self._advance()
            if ch == quote:
                return "".join(buf)
            if ch == "\\" and self.pos < len(self.source):
                esc = self._advance()
                buf.append(_ESCAPES.get(esc, "\\" + esc))
            else:
                buf.append(ch)
        raise LexError(quote, line, column, "unterminated string literal")

    def _read_number(self) -> tuple[str, TK, int | float]:
        start = self.pos
        line, column = self.line, self._column()
        while self._char() in _DIGITS:
            self._advance()
        if self._char() == "." and self._peek() in _DIGITS:
            self._advance()
            while self._char() in _DIGITS:
                self._advance()
            text = self.source[start:self.pos]
            return text, TK.FLOAT, float(text)
        text = self.source[start:self.pos]
        if len(text.lstrip("0")) > 19 or int(text) > _INT_MAX:
            raise LexError(text, line, column, f"integer literal {text} does not fit in 64 bits")
        return text, TK.INT, int(text)

    def _tokenize(self):
        while True:
            self._skip_whitespace_and_comments()
            line, column = self.line, self._column()
            if self.pos >= len(self.source):
                self.tokens.append(Token(TK.EOF, "", None, line, column))
                return

            ch = self._char()

            if ch in ('"', "'"):
                start = self.pos
                s = self._read_string(ch, line, column)
                self.tokens.append(Token(TK.STRING, self.source[start:self.pos], s, line, column))
                continue

            if ch in _DIGITS:
                text, kind, value = self._read_number()
                self.tokens.append(Token(kind, text, value, line, column))
                continue

            if (ch.isascii() and ch.isalpha()) or ch == "_":
                start = self.pos
                while self.pos < len(self.source) and (
                    (self.source[self.pos].isascii() and self.source[self.pos].isalnum())
                    or self.source[self.pos] == "_"
                ):
                    self.pos += 1
                word = self.source[start:self.pos]
                kind = KEYWORDS.get(word, TK.NAME)
                value = {TK.TRUE: True, TK.FALSE: False}.get(kind)
                self.tokens.append(Token(kind, word, value, line, column))
                continue

            pair = self.source[self.pos:self.pos + 2]
            if pair in _TWO_CHAR:
                self.pos += 2
                self.tokens.append(Token(_TWO_CHAR[pair], pair, None, line, column))
                continue

            if ch in _ONE_CHAR:
                self._advance()
                self.tokens.append(Token(_ONE_CHAR[ch], ch, None, line, column))
                continue

            raise LexError(ch, line, column)


def tokenize(source: str) -> list[Token]:
    """Split source text into tokens, ending with a single EOF token."""
    return Lexer(source).tokens
