from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from bal.schemas import Numero, Point, Position, PositionType, Toponyme


def test_numero_suffixe_is_normalized():
    assert Numero(commune="54084", voie="v", numero=1, suffixe=" BIS ").suffixe == "bis"
    assert Numero(commune="54084", voie="v", numero=1, suffixe="  ").suffixe is None
    with pytest.raises(ValidationError):
        Numero(commune="54084", voie="v", numero=1, suffixe="a_b")


@pytest.mark.parametrize("numero", [-1, 99999, 100000])
def test_numero_range(numero):
    with pytest.raises(ValidationError):
        Numero(commune="54084", voie="v", numero=numero)


def test_numero_complet_and_ids():
    a = Numero(commune="54084", voie="v", numero=12, suffixe="ter")
    b = Numero(commune="54084", voie="v", numero=12)
    assert a.numero_complet == "12ter"
    assert b.numero_complet == "12"
    assert a.id != b.id


def test_parcelles_are_unique():
    toponyme = Toponyme(commune="54084", nom="Les Prés", parcelles=["54084000AB0012", "54084000AB0012", ""])
    assert toponyme.parcelles == ["54084000AB0012"]


@pytest.mark.parametrize("coordinates", [[5.8], [5.8, 49.3, 10.0], [math.nan, 49.3]])
def test_point_coordinates(coordinates):
    with pytest.raises(ValidationError):
        Point(coordinates=coordinates)


def test_position_from_lon_lat():
    position = Position.from_lon_lat(5.8, 49.3, type=PositionType.PARCELLE, source="Cadastre")
    assert (position.longitude, position.latitude) == (5.8, 49.3)
    assert position.model_dump(mode="json")["type"] == "parcelle"
    assert Position.model_validate({"point": {"coordinates": [1, 2]}}).type == PositionType.INCONNUE
