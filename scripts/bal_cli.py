#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import BinaryIO, Iterable, Optional

# Make the repository packages importable when run from a checkout
THIS_DIR = os.path.dirname(__file__)
ROOT_DIR = os.path.abspath(os.path.join(THIS_DIR, ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from bal.communes import CommuneDirectory, StaticCommuneDirectory, prepare_contours_communes  # noqa: E402
from bal.config import load_settings  # noqa: E402
from bal.errors import BalError  # noqa: E402
from bal.logging_setup import configure_logging  # noqa: E402
from bal.schemas import ExtractedData  # noqa: E402
from csvbal.reader import import_rows  # noqa: E402
from export.csv_bal import export_rows  # noqa: E402
from export.geojson import feature_collection_chunks, stream_features  # noqa: E402
from extract.extractor import extract  # noqa: E402

logger = logging.getLogger("bal_cli")


def _communes(args: argparse.Namespace) -> CommuneDirectory:
    if args.communes:
        return StaticCommuneDirectory.from_json_file(args.communes)
    if args.remote_communes:
        return prepare_contours_communes(load_settings())
    return StaticCommuneDirectory({})


def _write(chunks: Iterable[bytes], output: Optional[str]) -> None:
    out: BinaryIO
    if output:
        with open(output, "wb") as out:
            for chunk in chunks:
                out.write(chunk)
        print(f"Wrote {output}", file=sys.stderr)
        return
    out = sys.stdout.buffer
    for chunk in chunks:
        out.write(chunk)
    out.flush()


def _emit(data: ExtractedData, args: argparse.Namespace) -> None:
    if args.format == "geojson":
        chunks: Iterable[bytes] = feature_collection_chunks(
            stream_features(data.voies, data.numeros, data.toponymes)
        )
    else:
        chunks = export_rows(data.voies, data.numeros, data.toponymes, _communes(args))
    _write(chunks, args.output)


def cmd_extract(args: argparse.Namespace) -> int:
    data = extract(args.code_commune)
    print(
        f"{args.code_commune}: {len(data.voies)} voies, {len(data.numeros)} numeros (source={data.source})",
        file=sys.stderr,
    )
    _emit(data, args)
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    with open(args.input, "rb") as f:
        result = import_rows(f.read())
    if not result.is_valid:
        print(f"Invalid BAL CSV: {result.error}", file=sys.stderr)
        return 1
    print(f"{result.accepted} rows accepted, {len(result.rejected)} rejected", file=sys.stderr)
    for r in result.rejected[: args.show_rejected]:
        print(f"  line {r.line}: {r.reason}", file=sys.stderr)
    data = ExtractedData(voies=result.voies, numeros=result.numeros, toponymes=result.toponymes, source="recovery")
    _emit(data, args)
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Extract, import and export BAL address datasets.")
    ap.add_argument("--communes", help="JSON file mapping commune code to commune name")
    ap.add_argument("--remote-communes", action="store_true", help="Load commune names from the Etalab boundaries")
    sub = ap.add_subparsers(dest="command", required=True)

    p_extract = sub.add_parser("extract", help="Extract a commune from the recovery snapshot or the BAN")
    p_extract.add_argument("code_commune")
    p_convert = sub.add_parser("convert", help="Validate a BAL CSV file and export it again")
    p_convert.add_argument("input")
    p_convert.add_argument("--show-rejected", type=int, default=20, help="Max rejected rows to print")

    for p in (p_extract, p_convert):
        p.add_argument("--format", choices=["csv", "geojson"], default="csv")
        p.add_argument("--output", help="Output file (default: stdout)")
    p_extract.set_defaults(func=cmd_extract)
    p_convert.set_defaults(func=cmd_convert)
    return ap


def main(argv: Optional[list] = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (BalError, ValueError) as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
