"""
Query Parser - Converts tokens into command objects

A single forward pass over the token stream, no backtracking. Every
statement kind has its own command dataclass; the executor handles exactly
this closed set.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from ..core.errors import ParseError
from ..core.types import looks_numeric, parse_number
from .lexer import Token, TokenType, tokenize


# ============================================================================
# Commands
# ============================================================================

@dataclass
class Condition:
    """A single WHERE comparison"""
    column: str
    operator: str
    value: Any

    def to_conditions(self) -> Dict[str, Dict[str, Any]]:
        """Condition mapping understood by Table.find"""
        return {self.column: {self.operator: self.value}}


@dataclass
class CreateTableCommand:
    table: str
    columns: Dict[str, Dict[str, Any]] = field(default_factory=dict)


@dataclass
class CreateIndexCommand:
    table: str
    column: str
    name: Optional[str] = None


@dataclass
class InsertCommand:
    table: str
    columns: List[str] = field(default_factory=list)
    values: List[Any] = field(default_factory=list)

    def record(self) -> Dict[str, Any]:
        return dict(zip(self.columns, self.values))


@dataclass
class SelectCommand:
    table: str
    columns: List[str] = field(default_factory=lambda: ['*'])
    where: Optional[Condition] = None
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None

    @property
    def select_all(self) -> bool:
        return '*' in self.columns


@dataclass
class UpdateCommand:
    table: str
    assignments: Dict[str, Any] = field(default_factory=dict)
    where: Optional[Condition] = None


@dataclass
class DeleteCommand:
    table: str
    where: Optional[Condition] = None


@dataclass
class DropTableCommand:
    table: str


@dataclass
class UseCommand:
    database: str


Command = Union[CreateTableCommand, CreateIndexCommand, InsertCommand, SelectCommand,
                UpdateCommand, DeleteCommand, DropTableCommand, UseCommand]


def coerce_literal(token: Token) -> Any:
    """
    Convert a literal token to a value.

    Quoted text stays text; numeric words become int or float; TRUE/FALSE
    become booleans; NULL becomes None; any other word is kept as raw text.
    """
    if token.type == TokenType.STRING:
        return token.value
    text = token.value
    if looks_numeric(text):
        return parse_number(text)
    upper = text.upper()
    if upper == 'TRUE':
        return True
    if upper == 'FALSE':
        return False
    if upper == 'NULL':
        return None
    return text


# ============================================================================
# Parser
# ============================================================================

class Parser:
    """Token-cursor parser for the AlphaDB query language"""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0

    def _current(self) -> Token:
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self._current()
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def _match(self, *types: TokenType) -> bool:
        return self._current().type in types

    def _match_word(self, *words: str) -> bool:
        return self._current().is_word(*words)

    def _consume_if(self, token_type: TokenType) -> bool:
        if self._match(token_type):
            self._advance()
            return True
        return False

    def _consume_word(self, *words: str) -> bool:
        if self._match_word(*words):
            self._advance()
            return True
        return False

    def _expect(self, token_type: TokenType, message: str) -> Token:
        if not self._match(token_type):
            raise ParseError(message)
        return self._advance()

    def _expect_word(self, word: str, message: str) -> Token:
        if not self._match_word(word):
            raise ParseError(message)
        return self._advance()

    def _expect_identifier(self, what: str) -> str:
        if not self._match(TokenType.WORD):
            raise ParseError(f"Expected {what}, got {self._describe(self._current())}")
        return self._advance().value

    def _expect_end(self) -> None:
        if not self._match(TokenType.EOF):
            raise ParseError(f"Unexpected token {self._describe(self._current())}")

    @staticmethod
    def _describe(token: Token) -> str:
        if token.type == TokenType.EOF:
            return "end of query"
        return f"'{token.value}'"

    def parse(self) -> Command:
        """Parse a single statement"""
        first = self._current()
        if first.type == TokenType.EOF:
            raise ParseError("Empty query")

        command = str(first.value).upper()
        if command == 'CREATE':
            return self._parse_create()
        if command == 'INSERT':
            return self._parse_insert()
        if command == 'SELECT':
            return self._parse_select()
        if command == 'UPDATE':
            return self._parse_update()
        if command == 'DELETE':
            return self._parse_delete()
        if command == 'DROP':
            return self._parse_drop()
        if command == 'USE':
            return self._parse_use()
        raise ParseError(f"Unknown command: {command}")

    def _parse_literal(self) -> Any:
        if not self._match(TokenType.STRING, TokenType.WORD):
            raise ParseError(f"Expected value, got {self._describe(self._current())}")
        return coerce_literal(self._advance())

    def _parse_condition(self) -> Condition:
        """column op literal"""
        column = self._expect_identifier("column name in WHERE")
        if self._match(TokenType.OPERATOR):
            operator = self._advance().value
            if operator == '<>':
                operator = '!='
        elif self._consume_word('LIKE'):
            operator = 'LIKE'
        else:
            raise ParseError(
                f"Expected comparison operator, got {self._describe(self._current())}")
        return Condition(column=column, operator=operator, value=self._parse_literal())

    def _parse_where(self) -> Optional[Condition]:
        if self._consume_word('WHERE'):
            return self._parse_condition()
        return None

    def _parse_create(self) -> Union[CreateTableCommand, CreateIndexCommand]:
        """Parse CREATE statement"""
        self._advance()
        if self._consume_word('TABLE'):
            return self._parse_create_table()
        if self._consume_word('INDEX'):
            return self._parse_create_index()
        if self._match_word('UNIQUE'):
            raise ParseError("CREATE UNIQUE INDEX is not supported; declare the column UNIQUE")
        raise ParseError("Expected TABLE or INDEX after CREATE")

    def _parse_create_table(self) -> CreateTableCommand:
        table = self._expect_identifier("table name")
        self._expect(TokenType.LPAREN, f"Expected ( after table name '{table}'")

        columns: Dict[str, Dict[str, Any]] = {}
        while True:
            name, definition = self._parse_column_def()
            if name in columns:
                raise ParseError(f"Duplicate column '{name}'")
            columns[name] = definition
            if not self._consume_if(TokenType.COMMA):
                break

        self._expect(TokenType.RPAREN, "Expected ) after column definitions")
        self._expect_end()
        return CreateTableCommand(table=table, columns=columns)

    def _parse_column_def(self):
        """col type [(n)] constraints..."""
        name = self._expect_identifier("column name")
        definition: Dict[str, Any] = {'type': self._expect_identifier(f"type for column '{name}'")}

        if self._consume_if(TokenType.LPAREN):
            size = self._expect_identifier(f"size for column '{name}'")
            if not size.isdigit():
                raise ParseError(f"Invalid size for column '{name}': {size}")
            definition['size'] = int(size)
            self._expect(TokenType.RPAREN, f"Expected ) after size of column '{name}'")

        while not self._match(TokenType.COMMA, TokenType.RPAREN, TokenType.EOF):
            if self._consume_word('PRIMARY'):
                self._expect_word('KEY', "Expected KEY after PRIMARY")
                definition['primaryKey'] = True
            elif self._consume_word('UNIQUE'):
                definition['unique'] = True
            elif self._consume_word('AUTO_INCREMENT', 'AUTOINCREMENT'):
                definition['autoIncrement'] = True
            elif self._consume_word('NOT'):
                self._expect_word('NULL', "Expected NULL after NOT")
                definition['required'] = True
            elif self._consume_word('NULL'):
                pass
            elif self._consume_word('DEFAULT'):
                definition['defaultValue'] = self._parse_literal()
            elif self._consume_word('REFERENCES'):
                reference = {'table': self._expect_identifier("referenced table")}
                if self._consume_if(TokenType.LPAREN):
                    reference['column'] = self._expect_identifier("referenced column")
                    self._expect(TokenType.RPAREN, "Expected ) after referenced column")
                definition['foreignKey'] = reference
            else:
                raise ParseError(
                    f"Unexpected token {self._describe(self._current())} "
                    f"in definition of column '{name}'")

        return name, definition

    def _parse_create_index(self) -> CreateIndexCommand:
        """CREATE INDEX [name] ON table ( column )"""
        name = None
        if not self._match_word('ON'):
            name = self._expect_identifier("index name")
        self._expect_word('ON', "Expected ON in CREATE INDEX")
        table = self._expect_identifier("table name")
        self._expect(TokenType.LPAREN, "Expected ( before indexed column")
        column = self._expect_identifier("column name")
        self._expect(TokenType.RPAREN, "Expected ) after indexed column")
        self._expect_end()
        return CreateIndexCommand(table=table, column=column, name=name)

    def _parse_insert(self) -> InsertCommand:
        """INSERT INTO name ( col, ... ) VALUES ( literal, ... )"""
        self._advance()
        self._expect_word('INTO', "Expected INTO after INSERT")
        table = self._expect_identifier("table name")

        if not self._consume_if(TokenType.LPAREN):
            raise ParseError("INSERT requires a column list")
        columns = []
        while True:
            column = self._expect_identifier("column name")
            if column in columns:
                raise ParseError(f"Duplicate column '{column}'")
            columns.append(column)
            if not self._consume_if(TokenType.COMMA):
                break
        self._expect(TokenType.RPAREN, "Expected ) after column list")

        self._expect_word('VALUES', "Expected VALUES")
        self._expect(TokenType.LPAREN, "Expected ( after VALUES")
        values = []
        while True:
            values.append(self._parse_literal())
            if not self._consume_if(TokenType.COMMA):
                break
        self._expect(TokenType.RPAREN, "Expected ) after values")
        self._expect_end()

        if len(columns) != len(values):
            raise ParseError("Column count doesn't match value count")
        return InsertCommand(table=table, columns=columns, values=values)

    def _parse_select(self) -> SelectCommand:
        """SELECT cols FROM name [WHERE ...] [ORDER BY col [ASC|DESC]] [LIMIT n]"""
        self._advance()

        columns = []
        while True:
            if self._consume_if(TokenType.STAR):
                columns.append('*')
            else:
                columns.append(self._expect_identifier("column name"))
            if not self._consume_if(TokenType.COMMA):
                break

        self._expect_word('FROM', "Expected FROM in SELECT")
        command = SelectCommand(table=self._expect_identifier("table name"), columns=columns)
        command.where = self._parse_where()

        if self._consume_word('ORDER'):
            self._expect_word('BY', "Expected BY after ORDER")
            command.order_by = self._expect_identifier("column name in ORDER BY")
            if self._consume_word('DESC'):
                command.descending = True
            else:
                self._consume_word('ASC')

        if self._consume_word('LIMIT'):
            limit = self._current()
            if limit.type != TokenType.WORD or not limit.value.isdigit():
                raise ParseError(
                    f"LIMIT expects a non-negative integer, got {self._describe(limit)}")
            self._advance()
            command.limit = int(limit.value)

        self._expect_end()
        return command

    def _parse_update(self) -> UpdateCommand:
        """UPDATE name SET col = literal, ... [WHERE ...]"""
        self._advance()
        table = self._expect_identifier("table name")
        self._expect_word('SET', "Expected SET after table name")

        assignments = {}
        while True:
            column = self._expect_identifier("column name")
            equals = self._current()
            if equals.type != TokenType.OPERATOR or equals.value != '=':
                raise ParseError("Expected = after column name")
            self._advance()
            assignments[column] = self._parse_literal()
            if not self._consume_if(TokenType.COMMA):
                break

        where = self._parse_where()
        self._expect_end()
        return UpdateCommand(table=table, assignments=assignments, where=where)

    def _parse_delete(self) -> DeleteCommand:
        """DELETE FROM name [WHERE ...]"""
        self._advance()
        self._expect_word('FROM', "Expected FROM after DELETE")
        table = self._expect_identifier("table name")
        where = self._parse_where()
        self._expect_end()
        return DeleteCommand(table=table, where=where)

    def _parse_drop(self) -> DropTableCommand:
        self._advance()
        self._expect_word('TABLE', "Expected TABLE after DROP")
        table = self._expect_identifier("table name")
        self._expect_end()
        return DropTableCommand(table=table)

    def _parse_use(self) -> UseCommand:
        self._advance()
        database = self._expect_identifier("database name")
        self._expect_end()
        return UseCommand(database=database)


def parse_query(text: str) -> Command:
    """Parse a query string into a command"""
    return Parser(tokenize(text)).parse()
