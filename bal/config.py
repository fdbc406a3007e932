"""Environment-driven settings.

Env vars:
  BAN_SOURCE_URL_PATTERN         national export URL, '<codeDepartement>' is substituted
  RECOVERY_URL_PATTERN           recovery snapshot URL, '<codeCommune>' is substituted
  CONTOURS_COMMUNES_URL          communes GeoJSON (code, nom, geometry)
  CONTOURS_ARRONDISSEMENTS_URL   arrondissements municipaux GeoJSON
  FETCH_TIMEOUT_SECONDS          (optional) network timeout, float, default 60
  BAN_MAX_NUMERO                 (optional) data-quality ceiling for BAN numbers, default 5000
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_BAN_SOURCE_URL_PATTERN = (
    "https://adresse.data.gouv.fr/data/ban/adresses/latest/csv/adresses-<codeDepartement>.csv.gz"
)
DEFAULT_RECOVERY_URL_PATTERN = "https://adresse.data.gouv.fr/data/sbg-recovery/<codeCommune>.csv"
DEFAULT_CONTOURS_COMMUNES_URL = (
    "http://etalab-datasets.geo.data.gouv.fr/contours-administratifs/latest/geojson/communes-100m.geojson"
)
DEFAULT_CONTOURS_ARRONDISSEMENTS_URL = (
    "http://etalab-datasets.geo.data.gouv.fr/contours-administratifs/latest/geojson/"
    "arrondissements-municipaux-100m.geojson"
)
DEFAULT_FETCH_TIMEOUT = 60.0
DEFAULT_BAN_MAX_NUMERO = 5000


@dataclass(frozen=True)
class Settings:
    ban_source_url_pattern: str = DEFAULT_BAN_SOURCE_URL_PATTERN
    recovery_url_pattern: str = DEFAULT_RECOVERY_URL_PATTERN
    contours_communes_url: str = DEFAULT_CONTOURS_COMMUNES_URL
    contours_arrondissements_url: str = DEFAULT_CONTOURS_ARRONDISSEMENTS_URL
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    ban_max_numero: int = DEFAULT_BAN_MAX_NUMERO

    def ban_url(self, code_departement: str) -> str:
        return self.ban_source_url_pattern.replace("<codeDepartement>", code_departement)

    def recovery_url(self, code_commune: str) -> str:
        return self.recovery_url_pattern.replace("<codeCommune>", code_commune)


def _env_number(env: Mapping[str, str], key: str, default, cast):
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", key, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %s", key, raw, default)
        return default
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env
    return Settings(
        ban_source_url_pattern=env.get("BAN_SOURCE_URL_PATTERN") or DEFAULT_BAN_SOURCE_URL_PATTERN,
        recovery_url_pattern=env.get("RECOVERY_URL_PATTERN") or DEFAULT_RECOVERY_URL_PATTERN,
        contours_communes_url=env.get("CONTOURS_COMMUNES_URL") or DEFAULT_CONTOURS_COMMUNES_URL,
        contours_arrondissements_url=env.get("CONTOURS_ARRONDISSEMENTS_URL")
        or DEFAULT_CONTOURS_ARRONDISSEMENTS_URL,
        fetch_timeout=_env_number(env, "FETCH_TIMEOUT_SECONDS", DEFAULT_FETCH_TIMEOUT, float),
        ban_max_numero=_env_number(env, "BAN_MAX_NUMERO", DEFAULT_BAN_MAX_NUMERO, int),
    )


__all__ = ["Settings", "load_settings"]
