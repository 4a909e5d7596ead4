"""MyPL tokenizer — lexes source text one token at a time."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import LexerError


# Token kind constants
TK_EOS = "EOS"
TK_ID = "ID"
TK_INT_VAL = "INT_VAL"
TK_DOUBLE_VAL = "DOUBLE_VAL"
TK_CHAR_VAL = "CHAR_VAL"
TK_STRING_VAL = "STRING_VAL"
TK_BOOL_VAL = "BOOL_VAL"

# Punctuation and operators
TK_LPAREN = "LPAREN"
TK_RPAREN = "RPAREN"
TK_DOT = "DOT"
TK_COMMA = "COMMA"
TK_COLON = "COLON"
TK_PLUS = "PLUS"
TK_MINUS = "MINUS"
TK_MULTIPLY = "MULTIPLY"
TK_DIVIDE = "DIVIDE"
TK_MODULO = "MODULO"
TK_ASSIGN = "ASSIGN"
TK_EQUAL = "EQUAL"
TK_NOT_EQUAL = "NOT_EQUAL"
TK_LESS = "LESS"
TK_LESS_EQUAL = "LESS_EQUAL"
TK_GREATER = "GREATER"
TK_GREATER_EQUAL = "GREATER_EQUAL"

# Keywords
TK_NEG = "NEG"
TK_AND = "AND"
TK_OR = "OR"
TK_NOT = "NOT"
TK_TYPE = "TYPE"
TK_WHILE = "WHILE"
TK_FOR = "FOR"
TK_TO = "TO"
TK_DO = "DO"
TK_IF = "IF"
TK_THEN = "THEN"
TK_ELSEIF = "ELSEIF"
TK_ELSE = "ELSE"
TK_END = "END"
TK_FUN = "FUN"
TK_VAR = "VAR"
TK_RETURN = "RETURN"
TK_NEW = "NEW"
TK_BOOL_TYPE = "BOOL_TYPE"
TK_INT_TYPE = "INT_TYPE"
TK_DOUBLE_TYPE = "DOUBLE_TYPE"
TK_CHAR_TYPE = "CHAR_TYPE"
TK_STRING_TYPE = "STRING_TYPE"
TK_NIL = "NIL"

KEYWORDS: dict[str, str] = {
    "neg": TK_NEG,
    "and": TK_AND,
    "or": TK_OR,
    "not": TK_NOT,
    "type": TK_TYPE,
    "while": TK_WHILE,
    "for": TK_FOR,
    "to": TK_TO,
    "do": TK_DO,
    "if": TK_IF,
    "then": TK_THEN,
    "elseif": TK_ELSEIF,
    "else": TK_ELSE,
    "end": TK_END,
    "fun": TK_FUN,
    "var": TK_VAR,
    "return": TK_RETURN,
    "new": TK_NEW,
    "bool": TK_BOOL_TYPE,
    "int": TK_INT_TYPE,
    "double": TK_DOUBLE_TYPE,
    "char": TK_CHAR_TYPE,
    "string": TK_STRING_TYPE,
    "nil": TK_NIL,
    "true": TK_BOOL_VAL,
    "false": TK_BOOL_VAL,
}

SINGLE_OPS: dict[str, str] = {
    "(": TK_LPAREN,
    ")": TK_RPAREN,
    ".": TK_DOT,
    ",": TK_COMMA,
    ":": TK_COLON,
    "+": TK_PLUS,
    "-": TK_MINUS,
    "*": TK_MULTIPLY,
    "/": TK_DIVIDE,
    "%": TK_MODULO,
}

# One-char operator -> (its kind, kind of the same char followed by '=')
PAIRED_OPS: dict[str, tuple[str, str]] = {
    "=": (TK_ASSIGN, TK_EQUAL),
    "<": (TK_LESS, TK_LESS_EQUAL),
    ">": (TK_GREATER, TK_GREATER_EQUAL),
}

# Characters that end an identifier or keyword
ID_TERMINATORS: set[str] = {
    "(",
    ")",
    ".",
    ",",
    ":",
    "+",
    "-",
    "*",
    "/",
    "%",
    "=",
    "<",
    ">",
    "!",
    "#",
    '"',
    "'",
}

WHITESPACE: set[str] = {" ", "\t", "\r", "\n"}


@dataclass(frozen=True)
class Token:
    """A token with kind, exact source text, and 1-indexed position."""

    kind: str
    lexeme: str
    line: int
    column: int


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z")


class Lexer:
    """Hand-written lexer producing one Token per next_token() call."""

    def __init__(self, source: str):
        self.source: str = source
        self.pos: int = 0
        self.line: int = 1
        self.column: int = 1

    # ── Helpers ──────────────────────────────────────────────

    def peek(self) -> str:
        if self.pos >= len(self.source):
            return ""
        return self.source[self.pos]

    def read(self) -> str:
        c = self.source[self.pos]
        self.pos += 1
        if c == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return c

    def error(self, msg: str, line: int, column: int) -> LexerError:
        return LexerError(msg, line, column)

    def skip_whitespace_and_comments(self) -> None:
        while True:
            c = self.peek()
            if c in WHITESPACE:
                self.read()
            elif c == "#":
                while self.peek() != "" and self.peek() != "\n":
                    self.read()
            else:
                return

    # ── Tokens ───────────────────────────────────────────────

    def next_token(self) -> Token:
        self.skip_whitespace_and_comments()
        line = self.line
        column = self.column
        c = self.peek()

        if c == "":
            return Token(TK_EOS, "", line, column)

        if c in SINGLE_OPS:
            self.read()
            return Token(SINGLE_OPS[c], c, line, column)

        if c in PAIRED_OPS:
            self.read()
            single, double = PAIRED_OPS[c]
            if self.peek() == "=":
                self.read()
                return Token(double, c + "=", line, column)
            return Token(single, c, line, column)

        if c == "!":
            self.read()
            if self.peek() != "=":
                raise self.error("invalid symbol '!'", line, column)
            self.read()
            return Token(TK_NOT_EQUAL, "!=", line, column)

        if c == "'":
            return self.lex_char(line, column)

        if c == '"':
            return self.lex_string(line, column)

        if _is_digit(c):
            return self.lex_number(line, column)

        if _is_alpha(c):
            return self.lex_word(line, column)

        raise self.error("unexpected character " + repr(c), line, column)

    def lex_char(self, line: int, column: int) -> Token:
        self.read()  # opening '
        c = self.peek()
        if c == "" or c == "'":
            raise self.error("expecting a single character in char literal", line, column)
        self.read()
        if self.peek() != "'":
            raise self.error("char literal must hold exactly one character", line, column)
        self.read()
        return Token(TK_CHAR_VAL, c, line, column)

    def lex_string(self, line: int, column: int) -> Token:
        self.read()  # opening "
        chars: list[str] = []
        while True:
            c = self.peek()
            if c == "":
                raise self.error("unterminated string, missing '\"'", line, column)
            if c == '"':
                self.read()
                break
            self.read()
            if c == "\n" and self.peek() in WHITESPACE:
                raise self.error(
                    "string literal cannot continue onto an indented line", line, column
                )
            chars.append(c)
        return Token(TK_STRING_VAL, "".join(chars), line, column)

    def lex_number(self, line: int, column: int) -> Token:
        start = self.pos
        seen_dot = False
        while _is_digit(self.peek()) or self.peek() == ".":
            if self.peek() == ".":
                if seen_dot:
                    raise self.error("too many decimal points in number", line, column)
                seen_dot = True
            self.read()
        lexeme = self.source[start : self.pos]
        if seen_dot:
            return Token(TK_DOUBLE_VAL, lexeme, line, column)
        return Token(TK_INT_VAL, lexeme, line, column)

    def lex_word(self, line: int, column: int) -> Token:
        start = self.pos
        while True:
            c = self.peek()
            if c == "" or c in WHITESPACE or c in ID_TERMINATORS:
                break
            self.read()
        word = self.source[start : self.pos]
        if word in KEYWORDS:
            return Token(KEYWORDS[word], word, line, column)
        return Token(TK_ID, word, line, column)


def tokenize(source: str) -> list[Token]:
    """Tokenize MyPL source into a flat list ending with TK_EOS."""
    lexer = Lexer(source)
    tokens: list[Token] = []
    while True:
        tok = lexer.next_token()
        tokens.append(tok)
        if tok.kind == TK_EOS:
            return tokens
