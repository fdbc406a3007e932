"""Commune reference lookups (code -> name, code -> boundary).

The pipeline never reaches for a global table: callers inject a
``CommuneDirectory``. ``StaticCommuneDirectory`` serves fixtures and local
files, ``ContoursCommuneDirectory`` is built from the administrative
boundaries GeoJSON published by Etalab.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

import requests

from bal.config import Settings, load_settings
from bal.errors import SourceUnavailable

logger = logging.getLogger(__name__)


class CommuneDirectory(Protocol):
    def get_nom(self, code_commune: str) -> Optional[str]:
        ...

    def get_contour(self, code_commune: str) -> Optional[Dict[str, Any]]:
        ...


class StaticCommuneDirectory:
    def __init__(self, noms: Mapping[str, str], contours: Optional[Mapping[str, Dict[str, Any]]] = None):
        self._noms = dict(noms)
        self._contours = dict(contours or {})

    def get_nom(self, code_commune: str) -> Optional[str]:
        return self._noms.get(code_commune)

    def get_contour(self, code_commune: str) -> Optional[Dict[str, Any]]:
        return self._contours.get(code_commune)

    @classmethod
    def from_json_file(cls, path: str) -> "StaticCommuneDirectory":
        """Load a ``{"54084": "Mont-Bonvillers", ...}`` mapping."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object mapping code to name")
        return cls({str(k): str(v) for k, v in data.items()})


class ContoursCommuneDirectory:
    """Index of boundary features keyed by ``properties.code``."""

    def __init__(self, features: Iterable[Dict[str, Any]]):
        self._index: Dict[str, Dict[str, Any]] = {}
        for f in features:
            code = (f.get("properties") or {}).get("code")
            if code:
                self._index[str(code)] = f

    def __len__(self) -> int:
        return len(self._index)

    def get_nom(self, code_commune: str) -> Optional[str]:
        feature = self._index.get(code_commune)
        if feature is None:
            return None
        return (feature.get("properties") or {}).get("nom")

    def get_contour(self, code_commune: str) -> Optional[Dict[str, Any]]:
        return self._index.get(code_commune)


def _get_remote_features(url: str, session: Any, timeout: float) -> List[Dict[str, Any]]:
    try:
        with session.get(url, timeout=timeout) as r:
            r.raise_for_status()
            body = r.json()
    except (requests.RequestException, ValueError) as e:
        raise SourceUnavailable(url, f"cannot load boundaries: {e}", e) from e
    features = body.get("features") if isinstance(body, dict) else None
    if not isinstance(features, list):
        raise SourceUnavailable(url, "response is not a FeatureCollection")
    return features


def prepare_contours_communes(
    settings: Optional[Settings] = None, session: Any = None
) -> ContoursCommuneDirectory:
    """Download communes and arrondissements municipaux boundaries into one index."""
    settings = settings or load_settings()
    if session is None:
        with requests.Session() as own_session:
            return prepare_contours_communes(settings, own_session)
    features = _get_remote_features(settings.contours_communes_url, session, settings.fetch_timeout)
    features += _get_remote_features(settings.contours_arrondissements_url, session, settings.fetch_timeout)
    directory = ContoursCommuneDirectory(features)
    logger.info("contours.loaded", extra={"rows": len(directory)})
    return directory


__all__ = [
    "CommuneDirectory",
    "StaticCommuneDirectory",
    "ContoursCommuneDirectory",
    "prepare_contours_communes",
]
