"""Extraction of one commune from the national BAN export.

The export is a gzip-compressed ``;``-delimited CSV per department with at
least the columns code_insee, nom_voie, numero, rep, lat, lon.
"""
from __future__ import annotations

import csv
import gzip
import io
import logging
import math
import zlib
from dataclasses import dataclass, field
from time import time
from typing import Any, BinaryIO, Dict, Iterable, List, Mapping, Optional, Tuple

import requests
from urllib3.exceptions import HTTPError as TransportError

from bal.config import Settings, load_settings
from bal.errors import SourceUnavailable
from bal.schemas import ExtractedData, Numero, Position, PositionType, Voie
from csvbal.normalize import normalize_nom

logger = logging.getLogger(__name__)

BAN_SOURCE = "BAN"
DELIMITER = ";"


@dataclass(frozen=True)
class BanAdresse:
    code_commune: str
    nom_voie: str
    numero: int
    suffixe: Optional[str]
    positions: Tuple[Position, ...] = field(default_factory=tuple)


def get_code_departement(code_commune: str) -> str:
    """Overseas communes (97xxx) use a 3-character department code."""
    return code_commune[:3] if code_commune.startswith("97") else code_commune[:2]


def _parse_int(value: Optional[str]) -> Optional[int]:
    try:
        return int((value or "").strip())
    except ValueError:
        return None


def _parse_float(value: Optional[str]) -> Optional[float]:
    try:
        f = float((value or "").strip())
    except ValueError:
        return None
    return f if math.isfinite(f) else None


def parse_ban_row(row: Mapping[str, Optional[str]], code_commune: str, max_numero: int) -> Optional[BanAdresse]:
    """Filter and convert one BAN row; None when the row is for another commune or unusable."""
    if (row.get("code_insee") or "").strip() != code_commune:
        return None
    nom_voie = (row.get("nom_voie") or "").strip()
    numero = _parse_int(row.get("numero"))
    if not nom_voie or numero is None or numero == 0 or numero > max_numero:
        return None

    suffixe = (row.get("rep") or "").strip().lower() or None
    positions: Tuple[Position, ...] = ()
    lon = _parse_float(row.get("lon"))
    lat = _parse_float(row.get("lat"))
    if lon is not None and lat is not None:
        positions = (Position.from_lon_lat(lon, lat, type=PositionType.INCONNUE, source=BAN_SOURCE),)

    return BanAdresse(code_commune, nom_voie, numero, suffixe, positions)


def read_ban_export(fileobj: BinaryIO, code_commune: str, max_numero: int) -> List[BanAdresse]:
    """Decompress and parse a department export, keeping only ``code_commune`` rows."""
    text = io.TextIOWrapper(gzip.GzipFile(fileobj=fileobj), encoding="utf-8-sig", newline="")
    adresses: List[BanAdresse] = []
    for row in csv.DictReader(text, delimiter=DELIMITER):
        adresse = parse_ban_row(row, code_commune, max_numero)
        if adresse is not None:
            adresses.append(adresse)
    return adresses


def group_adresses(adresses: Iterable[BanAdresse]) -> Tuple[List[Voie], List[Numero]]:
    """Group addresses into voies by normalized street name and dedupe numbers.

    Pure function: the first literal name of a group names the voie, and the
    first (numero, suffixe) occurrence in a group wins. Later duplicates are
    dropped without being reported.
    """
    groups: Dict[str, List[BanAdresse]] = {}
    for a in adresses:
        groups.setdefault(normalize_nom(a.nom_voie), []).append(a)

    voies: List[Voie] = []
    numeros: List[Numero] = []
    dropped = 0
    for adresses_voie in groups.values():
        first = adresses_voie[0]
        voie = Voie(commune=first.code_commune, nom=first.nom_voie)
        voies.append(voie)

        seen = set()
        for a in adresses_voie:
            key = (a.numero, a.suffixe)
            if key in seen:
                dropped += 1
                continue
            seen.add(key)
            numeros.append(
                Numero(
                    voie=voie.id,
                    commune=a.code_commune,
                    numero=a.numero,
                    suffixe=a.suffixe,
                    positions=list(a.positions),
                )
            )
    if dropped:
        logger.debug("Dropped %d duplicate numeros while grouping", dropped)
    return voies, numeros


def extract_from_ban(
    code_commune: str, settings: Optional[Settings] = None, session: Any = None
) -> ExtractedData:
    """Fetch the department export and extract ``code_commune``. Raises SourceUnavailable."""
    settings = settings or load_settings()
    if session is None:
        with requests.Session() as own_session:
            return _extract_from_ban(code_commune, settings, own_session)
    return _extract_from_ban(code_commune, settings, session)


def _extract_from_ban(code_commune: str, settings: Settings, session: Any) -> ExtractedData:
    url = settings.ban_url(get_code_departement(code_commune))
    start = time()
    try:
        with session.get(url, stream=True, timeout=settings.fetch_timeout) as r:
            r.raise_for_status()
            if hasattr(r.raw, "decode_content"):
                r.raw.decode_content = True
            adresses = read_ban_export(r.raw, code_commune, settings.ban_max_numero)
    except (requests.RequestException, TransportError) as e:
        raise SourceUnavailable(url, f"download failed: {e}", e) from e
    except (OSError, EOFError, zlib.error, UnicodeDecodeError, csv.Error) as e:
        raise SourceUnavailable(url, f"cannot decode export: {e}", e) from e

    voies, numeros = group_adresses(adresses)
    logger.info(
        "extract.ban",
        extra={
            "commune": code_commune,
            "source": "ban",
            "url": url,
            "rows": len(adresses),
            "duration_ms": round((time() - start) * 1000.0, 2),
        },
    )
    return ExtractedData(voies=voies, numeros=numeros, source="ban")


__all__ = [
    "BanAdresse",
    "get_code_departement",
    "parse_ban_row",
    "read_ban_export",
    "group_adresses",
    "extract_from_ban",
]
