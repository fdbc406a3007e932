from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Type, Union

from pydantic import BaseModel, ValidationError

from bal.errors import InvalidCoordinate
from bal.geo.projection import validate_lon_lat
from bal.schemas import Numero, Position, Toponyme, Voie

Record = Union[BaseModel, Dict[str, Any]]

_MODELS: Dict[str, Type[BaseModel]] = {"voie": Voie, "numero": Numero, "toponyme": Toponyme}


def _first_valid_position(positions: List[Position]) -> Optional[Position]:
    for p in positions:
        try:
            validate_lon_lat(p.longitude, p.latitude)
        except InvalidCoordinate:
            continue
        return p
    return None


def _properties(kind: str, record: Any) -> Dict[str, Any]:
    props: Dict[str, Any] = {"type": kind, "id": record.id, "commune": record.commune}
    if kind == "numero":
        props.update(
            {
                "voie": record.voie,
                "toponyme": record.toponyme,
                "numero": record.numero,
                "suffixe": record.suffixe,
                "numeroComplet": record.numero_complet,
            }
        )
    else:
        props["nom"] = record.nom
        if kind == "voie" and record.code:
            props["code"] = record.code
    return props


def to_feature(kind: str, record: Record) -> Optional[Dict[str, Any]]:
    """Point feature for a record, or None when it is invalid or has no usable position."""
    if isinstance(record, dict):
        try:
            record = _MODELS[kind].model_validate(record)
        except ValidationError:
            return None
    position = _first_valid_position(record.positions)
    if position is None:
        return None
    props = _properties(kind, record)
    props["positionType"] = position.type.value
    props["source"] = position.source
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [position.longitude, position.latitude]},
        "properties": props,
    }


class FeatureStream:
    """Single-pass iterator merging voie, numero and toponyme record streams into features.

    The three inputs are consumed in turn and only one record is held at a
    time. Records without a usable position are skipped.
    """

    def __init__(self, voies: Iterable[Record], numeros: Iterable[Record], toponymes: Iterable[Record]):
        self._sources: List[Tuple[str, Iterator[Record]]] = [
            ("voie", iter(voies)),
            ("numero", iter(numeros)),
            ("toponyme", iter(toponymes)),
        ]
        self._current = 0
        self.skipped = 0

    def __iter__(self) -> "FeatureStream":
        return self

    def __next__(self) -> Dict[str, Any]:
        while self._current < len(self._sources):
            kind, records = self._sources[self._current]
            for record in records:
                feature = to_feature(kind, record)
                if feature is not None:
                    return feature
                self.skipped += 1
            self._current += 1
        raise StopIteration


def stream_features(
    voies: Iterable[Record], numeros: Iterable[Record], toponymes: Iterable[Record]
) -> FeatureStream:
    return FeatureStream(voies, numeros, toponymes)


class FeatureCollectionEncoder:
    """Encode features lazily as the UTF-8 chunks of one GeoJSON FeatureCollection."""

    OPEN = b'{"type":"FeatureCollection","features":['
    CLOSE = b"]}"

    def __init__(self, features: Iterable[Dict[str, Any]]):
        self._features = iter(features)
        self._opened = False
        self._closed = False
        self._first = True

    def __iter__(self) -> "FeatureCollectionEncoder":
        return self

    def __next__(self) -> bytes:
        if not self._opened:
            self._opened = True
            return self.OPEN
        if self._closed:
            raise StopIteration
        feature = next(self._features, None)
        if feature is None:
            self._closed = True
            return self.CLOSE
        chunk = json.dumps(feature, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        if self._first:
            self._first = False
            return chunk
        return b"," + chunk


def feature_collection_chunks(features: Iterable[Dict[str, Any]]) -> FeatureCollectionEncoder:
    return FeatureCollectionEncoder(features)


__all__ = [
    "to_feature",
    "FeatureStream",
    "stream_features",
    "FeatureCollectionEncoder",
    "feature_collection_chunks",
]
