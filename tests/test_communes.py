from __future__ import annotations

import json

import pytest
import requests

from bal.communes import ContoursCommuneDirectory, StaticCommuneDirectory, prepare_contours_communes
from bal.config import Settings
from bal.errors import SourceUnavailable
from tests.test_extract_ban import FakeResponse, FakeSession


def feature(code, nom):
    return {
        "type": "Feature",
        "properties": {"code": code, "nom": nom},
        "geometry": {"type": "Polygon", "coordinates": [[[5.8, 49.3], [5.9, 49.3], [5.9, 49.4], [5.8, 49.3]]]},
    }


def collection(*features):
    return json.dumps({"type": "FeatureCollection", "features": list(features)}).encode("utf-8")


def test_static_directory():
    communes = StaticCommuneDirectory({"54084": "Mont-Bonvillers"})
    assert communes.get_nom("54084") == "Mont-Bonvillers"
    assert communes.get_nom("00000") is None
    assert communes.get_contour("54084") is None


def test_static_directory_from_json_file(tmp_path):
    path = tmp_path / "communes.json"
    path.write_text(json.dumps({"54084": "Mont-Bonvillers"}), encoding="utf-8")
    assert StaticCommuneDirectory.from_json_file(str(path)).get_nom("54084") == "Mont-Bonvillers"

    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        StaticCommuneDirectory.from_json_file(str(path))


def test_contours_directory():
    communes = ContoursCommuneDirectory([feature("54084", "Mont-Bonvillers"), {"properties": {}}])
    assert len(communes) == 1
    assert communes.get_nom("54084") == "Mont-Bonvillers"
    assert communes.get_contour("54084")["geometry"]["type"] == "Polygon"
    assert communes.get_contour("75056") is None


def test_prepare_contours_communes():
    settings = Settings()
    session = FakeSession(
        {
            settings.contours_communes_url: FakeResponse(content=collection(feature("54084", "Mont-Bonvillers"))),
            settings.contours_arrondissements_url: FakeResponse(
                content=collection(feature("75101", "Paris 1er Arrondissement"))
            ),
        }
    )
    communes = prepare_contours_communes(settings, session)
    assert len(communes) == 2
    assert communes.get_nom("75101") == "Paris 1er Arrondissement"


@pytest.mark.parametrize("content", [b"not json", b'{"type": "Feature"}'])
def test_prepare_contours_communes_bad_payload(content):
    settings = Settings()
    session = FakeSession(
        {
            settings.contours_communes_url: FakeResponse(content=content),
            settings.contours_arrondissements_url: FakeResponse(content=collection()),
        }
    )
    with pytest.raises(SourceUnavailable):
        prepare_contours_communes(settings, session)


def test_prepare_contours_communes_unreachable():
    with pytest.raises(SourceUnavailable) as exc:
        prepare_contours_communes(Settings(), FakeSession({}))
    assert exc.value.url == Settings().contours_communes_url


def test_prepare_contours_communes_closes_its_own_session(monkeypatch):
    settings = Settings()
    session = FakeSession(
        {
            settings.contours_communes_url: FakeResponse(content=collection(feature("54084", "Mont-Bonvillers"))),
            settings.contours_arrondissements_url: FakeResponse(content=collection()),
        }
    )
    monkeypatch.setattr(requests, "Session", lambda: session)
    assert len(prepare_contours_communes(settings)) == 1
    assert session.closed
