"""Row codec: voie / numero / toponyme entities to canonical BAL CSV rows.

Every value of a row is text. One row is produced per position, in source
order; an entity without positions still yields a single row with blank
position fields. Voie-level and toponyme rows use the 99999 sentinel number.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from bal.communes import CommuneDirectory
from bal.errors import InvalidCoordinate
from bal.geo.projection import GEODETIC_PRECISION, project, round_coordinate
from bal.schemas import Numero, Position, Toponyme, Voie
from csvbal.cle_interop import NUMERO_TOPONYME, format_cle_interop
from csvbal.normalize import slugify

logger = logging.getLogger(__name__)

COLUMNS: List[str] = [
    "cle_interop",
    "uid_adresse",
    "voie_nom",
    "numero",
    "suffixe",
    "commune_insee",
    "commune_nom",
    "position",
    "long",
    "lat",
    "x",
    "y",
    "source",
    "date_der_maj",
]


def format_number(value: Optional[float]) -> str:
    """Plain decimal text: no exponent, no trailing '.0' on integral values."""
    if value is None:
        return ""
    if isinstance(value, int):
        return str(value)
    if float(value).is_integer():
        return str(int(value))
    return format(Decimal(repr(float(value))), "f")


def format_date(updated: Optional[datetime]) -> str:
    if updated is None:
        return ""
    if updated.tzinfo is not None:
        updated = updated.astimezone(timezone.utc)
    return updated.date().isoformat()


def voie_slug(voie: Voie) -> str:
    """Street segment of the cle_interop: legacy code when known, else a slug of the name."""
    return voie.code or slugify(voie.nom)


def _position_fields(position: Optional[Position]) -> Dict[str, str]:
    if position is None:
        return {"position": "", "long": "", "lat": "", "x": "", "y": "", "source": ""}
    lon, lat = position.longitude, position.latitude
    try:
        x, y = project(lon, lat)
        x_s, y_s = format_number(x), format_number(y)
    except InvalidCoordinate as e:
        logger.warning("Cannot project position: %s", e)
        x_s = y_s = ""
    return {
        "position": position.type.value,
        "long": format_number(round_coordinate(lon, GEODETIC_PRECISION)),
        "lat": format_number(round_coordinate(lat, GEODETIC_PRECISION)),
        "x": x_s,
        "y": y_s,
        "source": position.source or "",
    }


def create_row(
    *,
    code_commune: str,
    code_voie: str,
    nom_voie: str,
    numero: int,
    suffixe: Optional[str] = None,
    position: Optional[Position] = None,
    updated: Optional[datetime] = None,
    communes: CommuneDirectory,
) -> Dict[str, str]:
    row = {
        "cle_interop": format_cle_interop(code_commune, code_voie, numero, suffixe),
        "uid_adresse": "",
        "voie_nom": nom_voie,
        "numero": format_number(numero),
        "suffixe": suffixe or "",
        "commune_insee": code_commune,
        "commune_nom": communes.get_nom(code_commune) or "",
    }
    row.update(_position_fields(position))
    row["date_der_maj"] = format_date(updated)
    return {c: row[c] for c in COLUMNS}


def numero_rows(voie: Voie, numero: Numero, communes: CommuneDirectory) -> List[Dict[str, str]]:
    positions: List[Optional[Position]] = list(numero.positions) or [None]
    return [
        create_row(
            code_commune=numero.commune,
            code_voie=voie_slug(voie),
            nom_voie=voie.nom,
            numero=numero.numero,
            suffixe=numero.suffixe,
            position=p,
            updated=numero.updated,
            communes=communes,
        )
        for p in positions
    ]


def voie_rows(voie: Voie, has_numeros: bool, communes: CommuneDirectory) -> List[Dict[str, str]]:
    """Sentinel rows for a voie: one per direct position, or one blank row for an empty voie."""
    if voie.positions:
        positions: List[Optional[Position]] = list(voie.positions)
    elif not has_numeros:
        positions = [None]
    else:
        return []
    return [
        create_row(
            code_commune=voie.commune,
            code_voie=voie_slug(voie),
            nom_voie=voie.nom,
            numero=NUMERO_TOPONYME,
            position=p,
            updated=voie.updated,
            communes=communes,
        )
        for p in positions
    ]


def toponyme_rows(toponyme: Toponyme, communes: CommuneDirectory) -> List[Dict[str, str]]:
    positions: List[Optional[Position]] = list(toponyme.positions) or [None]
    return [
        create_row(
            code_commune=toponyme.commune,
            code_voie=slugify(toponyme.nom),
            nom_voie=toponyme.nom,
            numero=NUMERO_TOPONYME,
            position=p,
            updated=toponyme.updated,
            communes=communes,
        )
        for p in positions
    ]


__all__ = [
    "COLUMNS",
    "create_row",
    "numero_rows",
    "voie_rows",
    "toponyme_rows",
    "format_number",
    "format_date",
    "voie_slug",
]
