from __future__ import annotations

import math
import uuid
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def new_id() -> str:
    return uuid.uuid4().hex


class PositionType(str, Enum):
    ENTREE = "entrée"
    DELIVRANCE_POSTALE = "délivrance postale"
    BATIMENT = "bâtiment"
    CAGE_ESCALIER = "cage d’escalier"
    LOGEMENT = "logement"
    PARCELLE = "parcelle"
    SEGMENT = "segment"
    SERVICE_TECHNIQUE = "service technique"
    INCONNUE = "inconnue"


class Point(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(description="[longitude, latitude] in WGS84 degrees")

    @field_validator("coordinates")
    @classmethod
    def _validate_coordinates(cls, v: List[float]) -> List[float]:
        if len(v) != 2:
            raise ValueError("coordinates must hold exactly [longitude, latitude]")
        if not all(math.isfinite(c) for c in v):
            raise ValueError("coordinates must be finite numbers")
        return v


class Position(BaseModel):
    """A typed point describing where an address element is located."""

    type: PositionType = PositionType.INCONNUE
    source: Optional[str] = None
    point: Point

    @property
    def longitude(self) -> float:
        return self.point.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.point.coordinates[1]

    @classmethod
    def from_lon_lat(
        cls, longitude: float, latitude: float, type: PositionType = PositionType.INCONNUE, source: Optional[str] = None
    ) -> "Position":
        return cls(type=type, source=source, point=Point(coordinates=[longitude, latitude]))


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(v for v in values if v))


class Voie(BaseModel):
    id: str = Field(default_factory=new_id)
    bal: Optional[str] = None
    commune: str
    nom: str
    code: Optional[str] = Field(default=None, description="Legacy street code (FANTOIR-like)")
    positions: List[Position] = Field(default_factory=list)
    updated: Optional[datetime] = None


class Toponyme(BaseModel):
    id: str = Field(default_factory=new_id)
    bal: Optional[str] = None
    commune: str
    nom: str
    positions: List[Position] = Field(default_factory=list)
    parcelles: List[str] = Field(default_factory=list)
    updated: Optional[datetime] = None

    @field_validator("parcelles")
    @classmethod
    def _unique_parcelles(cls, v: List[str]) -> List[str]:
        return _unique(v)


class Numero(BaseModel):
    """A house number attached to a voie, optionally cross-referenced to a toponyme."""

    id: str = Field(default_factory=new_id)
    bal: Optional[str] = None
    commune: str
    voie: str
    toponyme: Optional[str] = None
    # 99999 is reserved for street-level rows in BAL CSV
    numero: int = Field(ge=0, le=99998)
    suffixe: Optional[str] = None
    positions: List[Position] = Field(default_factory=list)
    comment: Optional[str] = None
    parcelles: List[str] = Field(default_factory=list)
    updated: Optional[datetime] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "commune": "54084",
                "voie": "5d5f0c0e8b1c4a2f9e6d7c8b9a0f1e2d",
                "numero": 42,
                "suffixe": "bis",
                "positions": [
                    {
                        "type": "entrée",
                        "source": "Mairie",
                        "point": {"type": "Point", "coordinates": [5.835188, 49.326038]},
                    }
                ],
            }
        }
    )

    @field_validator("suffixe")
    @classmethod
    def _normalize_suffixe(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().lower()
        if not v:
            return None
        if "_" in v:
            raise ValueError("suffixe must not contain '_'")
        return v

    @field_validator("parcelles")
    @classmethod
    def _unique_parcelles(cls, v: List[str]) -> List[str]:
        return _unique(v)

    @property
    def numero_complet(self) -> str:
        return f"{self.numero}{self.suffixe or ''}"


class RejectedRow(BaseModel):
    line: int = Field(description="1-based line number in the source file (header is line 1)")
    reason: str
    row: dict = Field(default_factory=dict)


class ImportResult(BaseModel):
    is_valid: bool
    voies: List[Voie] = Field(default_factory=list)
    numeros: List[Numero] = Field(default_factory=list)
    toponymes: List[Toponyme] = Field(default_factory=list)
    accepted: int = 0
    rejected: List[RejectedRow] = Field(default_factory=list)
    error: Optional[str] = None


class ExtractedData(BaseModel):
    voies: List[Voie] = Field(default_factory=list)
    numeros: List[Numero] = Field(default_factory=list)
    toponymes: List[Toponyme] = Field(default_factory=list)
    source: Literal["recovery", "ban"]
