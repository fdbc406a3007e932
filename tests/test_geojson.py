from __future__ import annotations

import json

from bal.schemas import Numero, Position, PositionType, Toponyme, Voie
from export.geojson import feature_collection_chunks, stream_features, to_feature


def make_records():
    voie = Voie(
        commune="54084",
        nom="allée des acacias",
        code="6789",
        positions=[Position.from_lon_lat(5.834072, 49.324156, type=PositionType.SEGMENT, source="Mairie")],
    )
    bare_voie = Voie(commune="54084", nom="rue des aulnes")
    numero = Numero(
        commune="54084",
        voie=voie.id,
        numero=1,
        suffixe="bis",
        positions=[Position.from_lon_lat(5.83315, 49.324433, type=PositionType.ENTREE, source="Mairie")],
    )
    toponyme = Toponyme(commune="54084", nom="Les Prés", positions=[Position.from_lon_lat(5.83, 49.32)])
    return [voie, bare_voie], [numero], [toponyme]


def test_to_feature_numero():
    voies, numeros, _ = make_records()
    feature = to_feature("numero", numeros[0])
    assert feature["type"] == "Feature"
    assert feature["geometry"] == {"type": "Point", "coordinates": [5.83315, 49.324433]}
    props = feature["properties"]
    assert props["type"] == "numero"
    assert props["voie"] == voies[0].id
    assert props["numeroComplet"] == "1bis"
    assert props["positionType"] == "entrée"
    assert props["source"] == "Mairie"


def test_to_feature_without_position():
    voies, _, _ = make_records()
    assert to_feature("voie", voies[1]) is None


def test_to_feature_accepts_dicts():
    feature = to_feature(
        "voie",
        {"commune": "54084", "nom": "rue haute", "positions": [{"point": {"coordinates": [5.8, 49.3]}}]},
    )
    assert feature["properties"]["nom"] == "rue haute"
    assert feature["properties"]["positionType"] == "inconnue"
    assert "code" not in feature["properties"]


def test_stream_features_order_and_skips():
    voies, numeros, toponymes = make_records()
    stream = stream_features(voies, numeros, toponymes)
    kinds = [f["properties"]["type"] for f in stream]
    assert kinds == ["voie", "numero", "toponyme"]
    assert stream.skipped == 1
    assert list(stream) == []


def test_stream_features_is_lazy():
    voies, numeros, toponymes = make_records()
    pulled = []

    def numero_source():
        for n in numeros:
            pulled.append(n.id)
            yield n

    stream = stream_features(voies, numero_source(), toponymes)
    next(stream)
    assert pulled == []
    next(stream)
    assert pulled == [numeros[0].id]


def test_feature_collection_chunks():
    voies, numeros, toponymes = make_records()
    body = b"".join(feature_collection_chunks(stream_features(voies, numeros, toponymes)))
    collection = json.loads(body.decode("utf-8"))
    assert collection["type"] == "FeatureCollection"
    assert len(collection["features"]) == 3
    assert collection["features"][2]["properties"]["nom"] == "Les Prés"


def test_feature_collection_chunks_empty():
    chunks = list(feature_collection_chunks([]))
    assert json.loads(b"".join(chunks)) == {"type": "FeatureCollection", "features": []}


def test_stream_features_skips_invalid_dict_records():
    good = {"commune": "54084", "nom": "rue haute", "positions": [{"point": {"coordinates": [5.8, 49.3]}}]}
    bad = {"commune": "54084", "nom": "rue basse", "positions": [{"point": {"coordinates": [5.8, 49.3, 2.0]}}]}
    stream = stream_features([good, bad, dict(good, nom="rue neuve")], [], [])
    assert [f["properties"]["nom"] for f in stream] == ["rue haute", "rue neuve"]
    assert stream.skipped == 1
