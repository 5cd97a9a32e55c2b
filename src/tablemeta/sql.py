"""
SQL text helpers for the MySQL driver.

Statement templates built by table bindings use ``?`` placeholders. PyMySQL
interpolates parameters client side with the ``%s`` format style, so before a
statement reaches the driver it goes through a single-pass tokenization:

    SQL + Args → Tokenize → Rewrite placeholders / escape percent → Output

Main entry points:
- `prepare_query(sql, args)` - Rewrite ``?`` to ``%s`` and escape literal ``%``
- `quote_identifier(identifier)` - Backtick-quote a table or column name
- `make_placeholders(count)` - Comma-joined ``?`` list for INSERT templates
"""
import re
from dataclasses import dataclass
from enum import Enum, auto

from libb import issequence

__all__ = [
    'tokenize_sql',
    'prepare_query',
    'standardize_placeholders',
    'has_placeholders',
    'quote_identifier',
    'make_placeholders',
]


class TokenType(Enum):
    """Lexical classes the placeholder rewriter distinguishes."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    IDENTIFIER = auto()         # `quoted`
    POSITIONAL_PH = auto()      # %s or ?
    PERCENT = auto()            # bare % (modulo, LIKE pattern outside literal)


@dataclass(slots=True)
class Token:
    """Span of SQL text with its class."""
    type: TokenType
    text: str
    start: int
    end: int


# Alternation order matters: literals and identifiers swallow any ? or % inside them
_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^'\\]|\\.|'')*'|"(?:[^"\\]|\\.|"")*")
    |(?P<ident>`(?:[^`]|``)*`)
    |(?P<percent_s>%s)
    |(?P<qmark>\?)
    |(?P<percent>%)
""", re.VERBOSE)

_HAS_PLACEHOLDER = re.compile(r'%s|\?')


def tokenize_sql(sql: str) -> list[Token]:
    """Split ``sql`` into tokens; joining the token texts gives ``sql`` back."""
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start], last_end, start))

        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        elif match.group('ident'):
            ttype = TokenType.IDENTIFIER
        elif match.group('percent_s') or match.group('qmark'):
            ttype = TokenType.POSITIONAL_PH
        else:
            ttype = TokenType.PERCENT

        tokens.append(Token(ttype, match.group(), start, end))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def _escape_percent(text: str) -> str:
    """Double every percent sign so the driver leaves it alone."""
    return text.replace('%', '%%')


def standardize_placeholders(sql: str) -> str:
    """Convert ``?`` placeholders to the driver's ``%s`` style.

    Placeholders inside string literals and quoted identifiers are left
    alone; every other percent sign is doubled.
    """
    result = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.POSITIONAL_PH:
            result.append('%s')
        elif token.type in {TokenType.STRING_LITERAL, TokenType.IDENTIFIER, TokenType.PERCENT}:
            result.append(_escape_percent(token.text))
        else:
            result.append(token.text)
    return ''.join(result)


def prepare_query(sql: str, args: tuple | list | None) -> tuple[str, tuple | None]:
    """Prepare SQL and parameters for the driver.

    Without arguments the statement is sent verbatim (the driver does no
    interpolation then). A single list or tuple argument is unwrapped when it
    carries exactly one value per placeholder.

    Returns
        Tuple of (processed_sql, processed_args)
    """
    if not args:
        return sql, None

    args = tuple(args)
    if len(args) == 1 and issequence(args[0]) and not isinstance(args[0], (str, bytes)):
        placeholder_count = sum(
            1 for t in tokenize_sql(sql) if t.type == TokenType.POSITIONAL_PH
        )
        if placeholder_count > 1 and len(args[0]) == placeholder_count:
            args = tuple(args[0])

    return standardize_placeholders(sql), args


def has_placeholders(sql: str | None) -> bool:
    """Check if SQL has positional placeholders outside literals.
    """
    if not sql or not _HAS_PLACEHOLDER.search(sql):
        return False
    return any(t.type == TokenType.POSITIONAL_PH for t in tokenize_sql(sql))


def quote_identifier(identifier: str) -> str:
    """Backtick-quote a MySQL identifier.

    Parameters
        identifier: Table or column name

    Returns
        Quoted identifier
    """
    return '`' + identifier.replace('`', '``') + '`'


def make_placeholders(count: int) -> str:
    """Return ``count`` comma-separated ``?`` placeholders.
    """
    return ', '.join(['?'] * count)

