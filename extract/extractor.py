from __future__ import annotations

import logging
import re
from typing import Any, Optional

import requests

from bal.config import Settings, load_settings
from bal.schemas import ExtractedData
from extract.ban import extract_from_ban
from extract.recovery import NotAvailable, fetch_recovery

logger = logging.getLogger(__name__)

# INSEE commune codes: 5 characters, Corsica uses 2A / 2B
CODE_COMMUNE_RE = re.compile(r"^(\d{2}|2[AB])\d{3}$")


def _check_code_commune(code_commune: str) -> str:
    code = (code_commune or "").strip().upper()
    if not CODE_COMMUNE_RE.match(code):
        raise ValueError(f"Invalid commune code: {code_commune!r}")
    return code


def extract(code_commune: str, settings: Optional[Settings] = None, session: Any = None) -> ExtractedData:
    """Extract the addresses of a commune: recovery snapshot first, BAN export otherwise.

    A missing or broken snapshot is a normal branch; a BAN failure raises
    ``SourceUnavailable`` since no other source is left.
    """
    code = _check_code_commune(code_commune)
    settings = settings or load_settings()
    if session is None:
        with requests.Session() as own_session:
            return _extract(code, settings, own_session)
    return _extract(code, settings, session)


def _extract(code_commune: str, settings: Settings, session: Any) -> ExtractedData:
    recovery = fetch_recovery(code_commune, settings, session)
    if isinstance(recovery, NotAvailable):
        logger.info(
            "Recovery snapshot unavailable (%s), using BAN",
            recovery.reason,
            extra={"commune": code_commune, "source": "ban"},
        )
        return extract_from_ban(code_commune, settings, session)
    return recovery


__all__ = ["extract", "CODE_COMMUNE_RE"]
