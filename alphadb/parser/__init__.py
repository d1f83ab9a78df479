"""Parser module - Lexer and Parser"""

from .lexer import Lexer, Token, TokenType, tokenize
from .parser import Parser, parse_query

__all__ = ['Lexer', 'Token', 'TokenType', 'tokenize', 'Parser', 'parse_query']
