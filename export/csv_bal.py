"""BAL CSV export as a pull-based stream of encoded lines."""
from __future__ import annotations

import csv
import io
import logging
from collections import deque
from typing import Deque, Dict, Iterable, Iterator, List, Optional

from bal.communes import CommuneDirectory, StaticCommuneDirectory
from bal.schemas import Numero, Toponyme, Voie
from csvbal.rows import COLUMNS, numero_rows, toponyme_rows, voie_rows

logger = logging.getLogger(__name__)

DELIMITER = ";"
LINE_TERMINATOR = "\r\n"
ENCODING = "utf-8"


def _bucket_by_voie(numeros: Iterable[Numero]) -> Dict[str, List[Numero]]:
    """Group numeros by voie id in one pass.

    Holds every numero until its voie is reached, so memory grows with the
    numero count; voies and toponymes are still pulled one at a time.
    """
    buckets: Dict[str, List[Numero]] = {}
    for n in numeros:
        buckets.setdefault(n.voie, []).append(n)
    return buckets


class CsvBalStream:
    """Iterator over the encoded lines of a BAL CSV file.

    Each ``next()`` returns one CRLF-terminated line as bytes (the header
    first) and ``StopIteration`` signals the end. Voies and toponymes are
    pulled from their iterables one at a time; numeros are bucketed by voie
    up front so that each voie's rows come out together.
    """

    def __init__(
        self,
        voies: Iterable[Voie],
        numeros: Iterable[Numero],
        toponymes: Optional[Iterable[Toponyme]] = None,
        communes: Optional[CommuneDirectory] = None,
    ):
        self._voies: Iterator[Voie] = iter(voies)
        self._toponymes: Iterator[Toponyme] = iter(toponymes or [])
        self._numeros = _bucket_by_voie(numeros)
        self._communes = communes if communes is not None else StaticCommuneDirectory({})
        self._pending: Deque[Dict[str, str]] = deque()
        self._buffer = io.StringIO()
        self._writer = csv.writer(self._buffer, delimiter=DELIMITER, lineterminator=LINE_TERMINATOR)
        self._header_sent = False
        self._voies_done = False
        self._finished = False
        self.rows = 0

    def __iter__(self) -> "CsvBalStream":
        return self

    def __next__(self) -> bytes:
        if not self._header_sent:
            self._header_sent = True
            return self._encode(COLUMNS)
        while not self._pending:
            if not self._refill():
                self._finish()
                raise StopIteration
        row = self._pending.popleft()
        self.rows += 1
        return self._encode([row[c] for c in COLUMNS])

    def _encode(self, values: List[str]) -> bytes:
        self._writer.writerow(values)
        line = self._buffer.getvalue()
        self._buffer.seek(0)
        self._buffer.truncate(0)
        return line.encode(ENCODING)

    def _refill(self) -> bool:
        if not self._voies_done:
            voie = next(self._voies, None)
            if voie is not None:
                numeros = self._numeros.pop(voie.id, [])
                for n in numeros:
                    self._pending.extend(numero_rows(voie, n, self._communes))
                self._pending.extend(voie_rows(voie, bool(numeros), self._communes))
                return True
            self._voies_done = True
        toponyme = next(self._toponymes, None)
        if toponyme is not None:
            self._pending.extend(toponyme_rows(toponyme, self._communes))
            return True
        return False

    def _finish(self) -> None:
        if self._finished:
            return
        self._finished = True
        orphans = sum(len(v) for v in self._numeros.values())
        if orphans:
            logger.warning("Skipped %d numeros whose voie was not exported", orphans)
        logger.info("csv.export", extra={"rows": self.rows})


def export_rows(
    voies: Iterable[Voie],
    numeros: Iterable[Numero],
    toponymes: Optional[Iterable[Toponyme]] = None,
    communes: Optional[CommuneDirectory] = None,
) -> CsvBalStream:
    return CsvBalStream(voies, numeros, toponymes, communes)


def export_as_csv(
    voies: Iterable[Voie],
    numeros: Iterable[Numero],
    toponymes: Optional[Iterable[Toponyme]] = None,
    communes: Optional[CommuneDirectory] = None,
) -> str:
    return b"".join(export_rows(voies, numeros, toponymes, communes)).decode(ENCODING)


__all__ = ["CsvBalStream", "export_rows", "export_as_csv"]
