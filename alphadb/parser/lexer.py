"""
Query Lexer - Tokenizes query strings

Converts raw query text into a flat stream of tokens for the parser.
Parentheses, commas, '*' and comparison operators become standalone tokens,
quoted text becomes one STRING token with its quotes stripped, statement
terminators are dropped and everything else is split on whitespace.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, List, Optional

from ..core.errors import ParseError


class TokenType(Enum):
    """Types of tokens"""
    WORD = auto()       # keywords, identifiers, numbers, bare literals
    STRING = auto()     # quoted text
    OPERATOR = auto()   # = != <> < > <= >=
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    STAR = auto()
    EOF = auto()


@dataclass
class Token:
    """A single token"""
    type: TokenType
    value: Any
    pos: int

    def is_word(self, *words: str) -> bool:
        """Case-insensitive keyword test"""
        return self.type == TokenType.WORD and self.value.upper() in words

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r})"


class Lexer:
    """Query lexer - converts query text to tokens"""

    PUNCTUATION = {
        '(': TokenType.LPAREN,
        ')': TokenType.RPAREN,
        ',': TokenType.COMMA,
        '*': TokenType.STAR,
    }

    OPERATOR_CHARS = '=!<>'
    TWO_CHAR_OPERATORS = ('!=', '<>', '<=', '>=')

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def _current_char(self) -> Optional[str]:
        """Get current character or None if at end"""
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def _peek(self, offset: int = 1) -> Optional[str]:
        """Peek at character ahead"""
        pos = self.pos + offset
        if pos >= len(self.text):
            return None
        return self.text[pos]

    def _advance(self) -> str:
        char = self.text[self.pos]
        self.pos += 1
        return char

    def _skip_whitespace(self) -> None:
        while self._current_char() is not None and (
                self._current_char().isspace() or self._current_char() == ';'):
            self._advance()

    def _read_string(self, quote_char: str) -> Token:
        """Read a quoted literal; '' and a backslash escape the quote"""
        start = self.pos
        self._advance()  # Opening quote

        value = []
        while True:
            char = self._current_char()
            if char is None:
                raise ParseError(f"Unterminated string starting at position {start}")
            if char == '\\' and self._peek() == quote_char:
                self._advance()
                value.append(self._advance())
            elif char == quote_char and self._peek() == quote_char:
                self._advance()
                value.append(self._advance())
            elif char == quote_char:
                self._advance()  # Closing quote
                break
            else:
                value.append(self._advance())

        return Token(TokenType.STRING, ''.join(value), start)

    def _read_operator(self) -> Token:
        start = self.pos
        pair = self.text[self.pos:self.pos + 2]
        if pair in self.TWO_CHAR_OPERATORS:
            self.pos += 2
            return Token(TokenType.OPERATOR, pair, start)
        char = self._advance()
        if char == '!':
            raise ParseError(f"Unexpected character '!' at position {start}")
        return Token(TokenType.OPERATOR, char, start)

    def _read_word(self) -> Token:
        start = self.pos
        value = []
        while True:
            char = self._current_char()
            if char is None or char.isspace() or char == ';' or char in self.PUNCTUATION \
                    or char in self.OPERATOR_CHARS or char in '\'"':
                break
            value.append(self._advance())
        return Token(TokenType.WORD, ''.join(value), start)

    def tokenize(self) -> List[Token]:
        """Tokenize the entire input"""
        tokens = []

        while True:
            self._skip_whitespace()
            char = self._current_char()
            if char is None:
                break

            if char in '\'"':
                tokens.append(self._read_string(char))
            elif char in self.PUNCTUATION:
                tokens.append(Token(self.PUNCTUATION[char], char, self.pos))
                self._advance()
            elif char in self.OPERATOR_CHARS:
                tokens.append(self._read_operator())
            else:
                tokens.append(self._read_word())

        tokens.append(Token(TokenType.EOF, None, self.pos))
        return tokens


def tokenize(text: str) -> List[Token]:
    return Lexer(text).tokenize()


def split_statements(script: str) -> List[str]:
    """Split a script on semicolons that are not inside quotes"""
    statements = []
    current = []
    quote = None

    for char in script:
        if quote:
            if char == quote:
                quote = None
        elif char in '\'"':
            quote = char
        elif char == ';':
            statements.append(''.join(current))
            current = []
            continue
        current.append(char)
    statements.append(''.join(current))

    return [s.strip() for s in statements if s.strip()]
