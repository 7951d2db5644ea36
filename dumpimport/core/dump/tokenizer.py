"""
============================================================================
Value Tokenizer - VALUES (...), (...) → lignes de valeurs typées
============================================================================
Machine à états :
    OUTSIDE_ROW  → cherche '('
    IN_ROW       → ',' ferme une valeur, ')' ferme la ligne
    IN_STRING    → séquences d'échappement, '' et ' fermant
============================================================================
"""

import math
import re
from enum import Enum
from typing import Optional

from dumpimport.core.dump.models import InsertStatement, ParsedValue
from dumpimport.utils.logging import get_logger

logger = get_logger(__name__)

INSERT_HEADER_RE = re.compile(
    r"insert\s+into\s+`?([A-Za-z0-9_]+)`?\s*(\(([^)]*)\))?\s*values\s*",
    re.IGNORECASE,
)
INTEGER_RE = re.compile(r"^[+-]?\d+$")
DECIMAL_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

ESCAPE_MAP = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "0": "\0",
    "'": "'",
    '"': '"',
    "\\": "\\",
}


class TokenizerState(Enum):
    """États du tokenizer de VALUES"""

    OUTSIDE_ROW = "outside_row"
    IN_ROW = "in_row"
    IN_STRING = "in_string"


def parse_number(text: str) -> Optional[int | float]:
    """Nombre si le texte est entièrement numérique, sinon None"""
    if INTEGER_RE.match(text):
        return int(text)
    if DECIMAL_RE.match(text):
        value = float(text)
        if math.isfinite(value):
            return value
    return None


def coerce_token(raw: str, quoted: bool) -> ParsedValue:
    """
    Typer une valeur brute

    Les valeurs entre apostrophes restent des chaînes, sans conversion.

    Example:
        "NULL" → None, "\\N" → None, "" → None
        "TRUE" → True, "false" → False
        "42" → 42, "3.14" → 3.14, "abc" → "abc"
    """
    if quoted:
        return raw

    trimmed = raw.strip()
    if not trimmed:
        return None

    upper = trimmed.upper()
    if upper in ("NULL", "\\N"):
        return None
    if upper == "TRUE":
        return True
    if upper == "FALSE":
        return False

    number = parse_number(trimmed)
    if number is not None:
        return number
    return trimmed


class ValuesTokenizer:
    """Tokenizer d'une partie VALUES, une instance par instruction"""

    def __init__(self, values_part: str):
        self.values_part = values_part
        self.state = TokenizerState.OUTSIDE_ROW
        self.rows: list[list[ParsedValue]] = []
        self._row: list[ParsedValue] = []
        self._buffer: list[str] = []
        self._quoted = False

    def _reset_token(self) -> None:
        self._buffer = []
        self._quoted = False

    def _close_token(self) -> None:
        self._row.append(coerce_token("".join(self._buffer), self._quoted))
        self._reset_token()

    def tokenize(self) -> list[list[ParsedValue]]:
        text = self.values_part
        length = len(text)
        i = 0

        while i < length:
            ch = text[i]

            if self.state is TokenizerState.OUTSIDE_ROW:
                if ch == "(":
                    self._row = []
                    self._reset_token()
                    self.state = TokenizerState.IN_ROW
                i += 1
                continue

            if self.state is TokenizerState.IN_STRING:
                if ch == "\\" and i + 1 < length:
                    following = text[i + 1]
                    self._buffer.append(ESCAPE_MAP.get(following, following))
                    i += 2
                    continue
                if ch == "'":
                    if i + 1 < length and text[i + 1] == "'":
                        self._buffer.append("'")
                        i += 2
                        continue
                    self.state = TokenizerState.IN_ROW
                    i += 1
                    continue
                self._buffer.append(ch)
                i += 1
                continue

            # IN_ROW
            if ch == "'":
                if not self._quoted:
                    # Espaces avant l'apostrophe ouvrante ignorés
                    self._buffer = []
                self._quoted = True
                self.state = TokenizerState.IN_STRING
            elif ch == ",":
                self._close_token()
            elif ch == ")":
                self._close_token()
                self.rows.append(self._row)
                self._row = []
                self.state = TokenizerState.OUTSIDE_ROW
            elif not (self._quoted and ch.isspace()):
                self._buffer.append(ch)
            i += 1

        if self.state is not TokenizerState.OUTSIDE_ROW:
            logger.warning("Unterminated row in VALUES clause", state=self.state.value)

        return self.rows


def parse_values(values_part: str) -> list[list[ParsedValue]]:
    """Découper la partie VALUES en lignes de valeurs typées"""
    return ValuesTokenizer(values_part).tokenize()


def parse_insert_statement(statement: str) -> Optional[InsertStatement]:
    """
    Découper un INSERT : table, colonnes explicites, lignes

    Returns:
        InsertStatement, ou None si l'en-tête INSERT INTO ... VALUES est absent
    """
    match = INSERT_HEADER_RE.search(statement)
    if not match:
        return None

    columns_raw = match.group(3)
    columns = None
    if columns_raw is not None:
        columns = [
            column.strip().replace("`", "")
            for column in columns_raw.split(",")
        ]
        columns = [column for column in columns if column]

    values_part = statement[match.end():].strip()
    if values_part.endswith(";"):
        values_part = values_part[:-1]

    return InsertStatement(
        table_name_raw=match.group(1),
        columns=columns,
        rows=parse_values(values_part),
    )
