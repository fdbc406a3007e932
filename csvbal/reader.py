"""BAL CSV importer.

Parses untrusted ``;``-delimited text in the canonical column set and rebuilds
the voie / numero / toponyme graph. Row-level problems are collected in
``ImportResult.rejected``; only a structurally unusable file (no header,
missing required columns, undecodable bytes) makes the whole import invalid.
"""
from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from bal.errors import InvalidCoordinate, InvalidRow, MalformedInput
from bal.geo.projection import validate_lon_lat
from bal.schemas import ImportResult, Numero, Position, PositionType, RejectedRow, Toponyme, Voie
from csvbal.cle_interop import NUMERO_TOPONYME, format_cle_interop, parse_cle_interop
from csvbal.normalize import EMPTY_SLUG, normalize_nom, slugify

logger = logging.getLogger(__name__)

DELIMITER = ";"
REQUIRED_COLUMNS = ("cle_interop", "voie_nom", "numero", "commune_insee")

CsvInput = Union[bytes, str, Iterable[Union[bytes, str]]]


class BalRow(BaseModel):
    """One validated data row."""

    cle_interop: Optional[str] = None
    voie_nom: str
    numero: int
    suffixe: Optional[str] = None
    commune_insee: str
    position: Optional[PositionType] = None
    long: Optional[float] = None
    lat: Optional[float] = None
    source: Optional[str] = None
    date_der_maj: Optional[date] = None
    lieudit_complement_nom: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("numero")
    @classmethod
    def _numero_range(cls, v: int) -> int:
        if not 0 <= v <= NUMERO_TOPONYME:
            raise ValueError(f"numero must be within 0..{NUMERO_TOPONYME}")
        return v

    @field_validator("suffixe")
    @classmethod
    def _suffixe_lower(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        if "_" in v:
            raise ValueError("suffixe must not contain '_'")
        return v.lower()

    @field_validator("position", mode="before")
    @classmethod
    def _position_lower(cls, v: Any) -> Any:
        if isinstance(v, str):
            # "cage d'escalier" is often typed with a straight apostrophe
            return v.strip().lower().replace("'", "’") or None
        return v

    @field_validator("date_der_maj", mode="before")
    @classmethod
    def _lenient_date(cls, v: Any) -> Any:
        # An unreadable date does not invalidate the address itself
        if isinstance(v, str):
            try:
                return date.fromisoformat(v.strip()[:10])
            except ValueError:
                return None
        return v

    @model_validator(mode="after")
    def _coordinates_pair(self) -> "BalRow":
        if self.position is None and self.long is None and self.lat is None:
            return self
        if self.long is None or self.lat is None:
            raise ValueError("position fields require both long and lat")
        try:
            validate_lon_lat(self.long, self.lat)
        except InvalidCoordinate as e:
            raise ValueError(e.reason)
        return self

    def to_position(self) -> Optional[Position]:
        if self.long is None or self.lat is None:
            return None
        return Position.from_lon_lat(
            self.long, self.lat, type=self.position or PositionType.INCONNUE, source=self.source
        )

    def updated(self) -> Optional[datetime]:
        if self.date_der_maj is None:
            return None
        return datetime(self.date_der_maj.year, self.date_der_maj.month, self.date_der_maj.day, tzinfo=timezone.utc)


def _format_errors(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", ())) or "row"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def parse_row(line: int, raw: Dict[str, Optional[str]]) -> BalRow:
    try:
        return BalRow.model_validate(raw)
    except ValidationError as e:
        raise InvalidRow(line, _format_errors(e)) from e


def _decode_lines(data: CsvInput) -> Iterator[str]:
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedInput(f"input is not valid UTF-8: {e}") from e
        yield from io.StringIO(text, newline="")
        return
    if isinstance(data, str):
        yield from io.StringIO(data.lstrip("\ufeff"), newline="")
        return
    first = True
    for chunk in data:
        if isinstance(chunk, bytes):
            try:
                chunk = chunk.decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedInput(f"input is not valid UTF-8: {e}") from e
        if first:
            chunk = chunk.lstrip("\ufeff")
            first = False
        yield chunk


def _read_header(reader: Any) -> List[str]:
    for header in reader:
        if any(h.strip() for h in header):
            columns = [h.strip().lower() for h in header]
            missing = [c for c in REQUIRED_COLUMNS if c not in columns]
            if missing:
                raise MalformedInput(f"missing required columns: {', '.join(missing)}")
            return columns
    raise MalformedInput("empty file")


class _GraphBuilder:
    """Collapses accepted rows into voies, numeros and toponymes, keeping first-seen order."""

    def __init__(self) -> None:
        self.voies: Dict[Tuple[str, str, Optional[str]], Voie] = {}
        self.numeros: Dict[Tuple[str, str], Numero] = {}
        self.toponymes: Dict[Tuple[str, str], Toponyme] = {}

    def _voie(self, row: BalRow) -> Voie:
        # Same-name streets of one commune stay apart when their legacy codes differ
        code = _legacy_code(row)
        key = (row.commune_insee, normalize_nom(row.voie_nom), code)
        voie = self.voies.get(key)
        if voie is None:
            voie = Voie(commune=row.commune_insee, nom=row.voie_nom, code=code)
            self.voies[key] = voie
        return voie

    def _toponyme(self, row: BalRow) -> Optional[Toponyme]:
        nom = row.lieudit_complement_nom
        if not nom:
            return None
        key = (row.commune_insee, normalize_nom(nom))
        toponyme = self.toponymes.get(key)
        if toponyme is None:
            toponyme = Toponyme(commune=row.commune_insee, nom=nom)
            self.toponymes[key] = toponyme
        return toponyme

    def add(self, row: BalRow) -> None:
        voie = self._voie(row)
        position = row.to_position()
        updated = row.updated()

        if row.numero == NUMERO_TOPONYME:
            if position is not None:
                voie.positions.append(position)
            voie.updated = _latest(voie.updated, updated)
            return

        cle = format_cle_interop(row.commune_insee, voie.code or slugify(voie.nom), row.numero, row.suffixe)
        numero = self.numeros.get((voie.id, cle))
        if numero is None:
            toponyme = self._toponyme(row)
            numero = Numero(
                commune=row.commune_insee,
                voie=voie.id,
                toponyme=toponyme.id if toponyme else None,
                numero=row.numero,
                suffixe=row.suffixe,
            )
            self.numeros[(voie.id, cle)] = numero
        if position is not None:
            numero.positions.append(position)
        numero.updated = _latest(numero.updated, updated)


def _legacy_code(row: BalRow) -> Optional[str]:
    if not row.cle_interop:
        return None
    try:
        cle = parse_cle_interop(row.cle_interop)
    except ValueError:
        return None
    if cle.voie in (slugify(row.voie_nom), EMPTY_SLUG):
        return None
    return cle.voie


def _latest(a: Optional[datetime], b: Optional[datetime]) -> Optional[datetime]:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def import_rows(data: CsvInput) -> ImportResult:
    """Parse BAL CSV and rebuild the entity graph.

    Accepts raw bytes, text, or an iterable of byte/text lines (e.g. a streamed
    response). Never raises for bad content: the verdict is in ``is_valid``.
    """
    builder = _GraphBuilder()
    rejected: List[RejectedRow] = []
    accepted = 0
    try:
        reader = csv.reader(_decode_lines(data), delimiter=DELIMITER)
        columns = _read_header(reader)
        for values in reader:
            if not any(v.strip() for v in values):
                continue
            line = reader.line_num
            raw = dict(zip(columns, values))
            try:
                if len(values) != len(columns):
                    raise InvalidRow(line, f"expected {len(columns)} fields, got {len(values)}")
                row = parse_row(line, raw)
            except InvalidRow as e:
                rejected.append(RejectedRow(line=e.line, reason=e.reason, row=raw))
                continue
            builder.add(row)
            accepted += 1
    except (MalformedInput, csv.Error) as e:
        logger.warning("csv.import.invalid: %s", e)
        return ImportResult(is_valid=False, rejected=rejected, error=str(e))

    logger.info("csv.import", extra={"rows": accepted, "rejected": len(rejected)})
    return ImportResult(
        is_valid=True,
        voies=list(builder.voies.values()),
        numeros=list(builder.numeros.values()),
        toponymes=list(builder.toponymes.values()),
        accepted=accepted,
        rejected=rejected,
    )


def import_rows_strict(data: CsvInput) -> ImportResult:
    """Same as ``import_rows`` but raises ``MalformedInput`` for an unusable file."""
    result = import_rows(data)
    if not result.is_valid:
        raise MalformedInput(result.error or "invalid BAL CSV")
    return result


__all__ = ["BalRow", "parse_row", "import_rows", "import_rows_strict", "REQUIRED_COLUMNS"]
