from __future__ import annotations

from datetime import datetime, timedelta, timezone

from bal.communes import StaticCommuneDirectory
from bal.schemas import Numero, Position, PositionType, Toponyme, Voie
from csvbal.rows import COLUMNS, create_row, format_date, format_number, numero_rows, toponyme_rows, voie_rows

COMMUNES = StaticCommuneDirectory({"54084": "Mont-Bonvillers"})


def test_create_row():
    row = create_row(
        code_commune="54084",
        code_voie="XXXX",
        nom_voie="rue des peupliers",
        numero=12,
        suffixe="bis",
        updated=datetime(2019, 1, 1, tzinfo=timezone.utc),
        position=Position.from_lon_lat(5.835188, 49.326038, type=PositionType.ENTREE, source="Mairie"),
        communes=COMMUNES,
    )
    assert row == {
        "cle_interop": "54084_xxxx_00012_bis",
        "uid_adresse": "",
        "voie_nom": "rue des peupliers",
        "numero": "12",
        "suffixe": "bis",
        "commune_insee": "54084",
        "commune_nom": "Mont-Bonvillers",
        "position": "entrée",
        "long": "5.835188",
        "lat": "49.326038",
        "x": "906109.41",
        "y": "6917751.73",
        "source": "Mairie",
        "date_der_maj": "2019-01-01",
    }
    assert list(row) == COLUMNS


def test_create_row_without_position():
    row = create_row(code_commune="99999", code_voie="a100", nom_voie="rue", numero=3, communes=COMMUNES)
    assert row["commune_nom"] == ""
    for col in ("suffixe", "position", "long", "lat", "x", "y", "source", "date_der_maj"):
        assert row[col] == ""


def test_format_number():
    assert format_number(12) == "12"
    assert format_number(2.0) == "2"
    assert format_number(5.83315) == "5.83315"
    assert format_number(1e-05) == "0.00001"
    assert format_number(None) == ""


def test_format_date_uses_utc_calendar_date():
    assert format_date(datetime(2019, 1, 2, 1, 0, tzinfo=timezone(timedelta(hours=2)))) == "2019-01-01"
    assert format_date(datetime(2019, 2, 5, 18, 30)) == "2019-02-05"
    assert format_date(None) == ""


def test_numero_rows_one_per_position():
    voie = Voie(commune="54084", nom="allée des acacias", code="6789")
    numero = Numero(
        commune="54084",
        voie=voie.id,
        numero=6,
        positions=[
            Position.from_lon_lat(5.83315, 49.324433, type=PositionType.ENTREE),
            Position.from_lon_lat(5.8332, 49.3245, type=PositionType.BATIMENT),
        ],
    )
    rows = numero_rows(voie, numero, COMMUNES)
    assert [r["position"] for r in rows] == ["entrée", "bâtiment"]
    assert {r["cle_interop"] for r in rows} == {"54084_6789_00006"}


def test_voie_rows_sentinel():
    voie = Voie(commune="54084", nom="Rue des Aulnes")
    rows = voie_rows(voie, has_numeros=False, communes=COMMUNES)
    assert len(rows) == 1
    assert rows[0]["cle_interop"] == "54084_rue-des-aulnes_99999"
    assert rows[0]["numero"] == "99999"
    assert rows[0]["position"] == ""

    # a voie with numeros and no direct position needs no sentinel row
    assert voie_rows(voie, has_numeros=True, communes=COMMUNES) == []


def test_voie_rows_direct_positions_even_with_numeros():
    voie = Voie(
        commune="54084",
        nom="allée des acacias",
        code="6789",
        positions=[Position.from_lon_lat(5.834072, 49.324156, type=PositionType.SEGMENT, source="Mairie")],
    )
    rows = voie_rows(voie, has_numeros=True, communes=COMMUNES)
    assert len(rows) == 1
    assert rows[0]["x"] == "906035.82"
    assert rows[0]["y"] == "6917539.59"


def test_toponyme_rows():
    toponyme = Toponyme(commune="54084", nom="Le Haut du Bois")
    rows = toponyme_rows(toponyme, COMMUNES)
    assert len(rows) == 1
    assert rows[0]["cle_interop"] == "54084_le-haut-du-bois_99999"
    assert rows[0]["voie_nom"] == "Le Haut du Bois"
