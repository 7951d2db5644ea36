"""
============================================================================
Statement Extractor - Schémas CREATE TABLE et instructions INSERT
============================================================================
Deux passes linéaires indépendantes sur le texte du dump :
1. Schémas : regex CREATE TABLE ... ( corps ) ENGINE=
2. INSERT  : scanner caractère par caractère, conscient des chaînes,
   un ';' dans une chaîne ne termine jamais l'instruction
============================================================================
"""

import re
from enum import Enum

from dumpimport.config.constants import StatementKind
from dumpimport.core.dump.models import RawStatement, TableSchema
from dumpimport.utils.logging import get_logger

logger = get_logger(__name__)

CREATE_TABLE_RE = re.compile(
    r"CREATE TABLE\s+`?([A-Za-z0-9_]+)`?\s*\(([\s\S]*?)\)\s*ENGINE=",
    re.IGNORECASE,
)
COLUMN_LINE_RE = re.compile(r"^`([^`]+)`\s+")
INSERT_START_RE = re.compile(r"insert\s+into", re.IGNORECASE)


class ScanState(Enum):
    """États du scanner d'instructions"""

    CODE = "code"
    STRING = "string"


def extract_create_table_schemas(sql_text: str) -> dict[str, TableSchema]:
    """
    Extraire les colonnes de chaque CREATE TABLE

    Args:
        sql_text: Contenu complet du dump

    Returns:
        {nom_table_minuscules: TableSchema}, tables sans colonnes exclues

    Example:
        CREATE TABLE `Customer` (
          `id` int NOT NULL,
          `name` varchar(255),
          PRIMARY KEY (`id`)
        ) ENGINE=InnoDB;
        → {"customer": TableSchema("customer", ("id", "name"))}
    """
    schemas: dict[str, TableSchema] = {}

    for match in CREATE_TABLE_RE.finditer(sql_text):
        table_name = match.group(1).lower()
        body = match.group(2)

        columns = []
        for line in body.splitlines():
            column_match = COLUMN_LINE_RE.match(line.strip())
            if column_match:
                columns.append(column_match.group(1))

        if columns:
            schemas[table_name] = TableSchema(table_name, tuple(columns))

    logger.debug("CREATE TABLE schemas extracted", tables=len(schemas))
    return schemas


class InsertScanner:
    """
    Découpe un dump en instructions INSERT complètes.

    Dans une chaîne, '' est une apostrophe échappée et un antislash
    protège le caractère suivant ; hors chaîne, ';' termine l'instruction
    (inclus).
    """

    def __init__(self, sql_text: str):
        self.sql_text = sql_text
        self.state = ScanState.CODE
        self.position = 0

    def __iter__(self):
        return self

    def __next__(self) -> RawStatement:
        match = INSERT_START_RE.search(self.sql_text, self.position)
        if match is None:
            raise StopIteration

        start = match.start()
        end = self._find_statement_end(start)
        self.position = end
        return RawStatement(StatementKind.INSERT, self.sql_text[start:end], start)

    def _find_statement_end(self, start: int) -> int:
        """Index juste après le ';' terminal (ou fin du texte)"""
        text = self.sql_text
        length = len(text)
        self.state = ScanState.CODE
        i = start

        while i < length:
            ch = text[i]

            if self.state is ScanState.STRING:
                if ch == "\\":
                    i += 2
                    continue
                if ch == "'":
                    if i + 1 < length and text[i + 1] == "'":
                        i += 2
                        continue
                    self.state = ScanState.CODE
                i += 1
                continue

            if ch == "'":
                self.state = ScanState.STRING
            elif ch == ";":
                return i + 1
            i += 1

        return length


def extract_insert_statements(sql_text: str) -> list[RawStatement]:
    """
    Extraire chaque INSERT ... VALUES (...); tel quel

    Returns:
        Instructions dans l'ordre d'apparition
    """
    statements = list(InsertScanner(sql_text))
    logger.debug("INSERT statements extracted", count=len(statements))
    return statements
