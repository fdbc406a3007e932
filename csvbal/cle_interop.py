from __future__ import annotations

from typing import NamedTuple, Optional

# Fixed protocol value for rows that carry no specific house number
NUMERO_TOPONYME = 99999
SEPARATOR = "_"
NUMERO_WIDTH = 5


class CleInterop(NamedTuple):
    commune: str
    voie: str
    numero: int
    suffixe: Optional[str]


def format_cle_interop(
    code_commune: str, code_voie: str, numero: int, suffixe: Optional[str] = None
) -> str:
    """Build ``<commune>_<voie>_<00042>[_<suffixe>]``.

    ``code_voie`` is lower-cased verbatim (no accent stripping); callers pass
    either a legacy street code or an already slugged name.
    """
    if isinstance(numero, bool) or not isinstance(numero, int):
        raise ValueError(f"numero must be an integer, got {numero!r}")
    if not 0 <= numero <= NUMERO_TOPONYME:
        raise ValueError(f"numero must be within 0..{NUMERO_TOPONYME}, got {numero}")
    if not code_commune:
        raise ValueError("code_commune is required")
    if not code_voie:
        raise ValueError("code_voie is required")

    parts = [code_commune, code_voie.lower(), str(numero).zfill(NUMERO_WIDTH)]
    if suffixe:
        parts.append(suffixe.lower())
    return SEPARATOR.join(parts)


def parse_cle_interop(cle: str) -> CleInterop:
    """Split a cle_interop back into its segments. Raises ValueError when malformed."""
    parts = (cle or "").strip().split(SEPARATOR)
    if len(parts) not in (3, 4) or not all(parts):
        raise ValueError(f"malformed cle_interop: {cle!r}")
    numero = parts[2]
    if len(numero) != NUMERO_WIDTH or not numero.isdigit():
        raise ValueError(f"malformed numero segment in cle_interop: {cle!r}")
    suffixe = parts[3].lower() if len(parts) == 4 else None
    return CleInterop(parts[0], parts[1].lower(), int(numero), suffixe)
