from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

import requests

from bal.config import Settings, load_settings
from bal.schemas import ExtractedData
from csvbal.reader import import_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotAvailable:
    """No usable recovery snapshot for a commune."""

    reason: str


RecoveryResult = Union[ExtractedData, NotAvailable]


def fetch_recovery(code_commune: str, settings: Optional[Settings] = None, session: Any = None) -> RecoveryResult:
    """Fetch the archived BAL CSV of a commune.

    Every failure (network, HTTP status, unusable file) is reported as
    ``NotAvailable`` rather than raised: the caller falls back to the BAN.
    """
    settings = settings or load_settings()
    if session is None:
        with requests.Session() as own_session:
            return _fetch_recovery(code_commune, settings, own_session)
    return _fetch_recovery(code_commune, settings, session)


def _fetch_recovery(code_commune: str, settings: Settings, session: Any) -> RecoveryResult:
    url = settings.recovery_url(code_commune)
    try:
        with session.get(url, timeout=settings.fetch_timeout) as r:
            if r.status_code == 404:
                return NotAvailable("no recovery snapshot")
            r.raise_for_status()
            content = r.content
    except requests.RequestException as e:
        logger.debug("Recovery fetch failed for %s: %s", code_commune, e)
        return NotAvailable(f"fetch failed: {e}")

    result = import_rows(content)
    if not result.is_valid:
        return NotAvailable(f"unusable snapshot: {result.error}")

    logger.info(
        "extract.recovery",
        extra={"commune": code_commune, "source": "recovery", "url": url, "rows": result.accepted},
    )
    return ExtractedData(
        voies=result.voies,
        numeros=result.numeros,
        toponymes=result.toponymes,
        source="recovery",
    )


__all__ = ["NotAvailable", "RecoveryResult", "fetch_recovery"]
