import math

import pytest

from agriconnect.core.errors import InvariantViolation
from agriconnect.core.geo import GeoPoint, distance_km, format_coordinate, round_km


def test_distance_is_zero_for_identical_points():
    p = GeoPoint(lat=12.97, lng=77.59)
    assert distance_km(p, p) == 0.0


def test_distance_is_symmetric():
    a = GeoPoint(lat=12.97, lng=77.59)
    b = GeoPoint(lat=13.08, lng=80.27)
    assert distance_km(a, b) == pytest.approx(distance_km(b, a))


def test_delhi_to_mumbai_haversine_reference():
    delhi = GeoPoint(lat=28.6139, lng=77.2090)
    mumbai = GeoPoint(lat=19.0760, lng=72.8777)
    assert distance_km(delhi, mumbai) == pytest.approx(1148.1, abs=0.5)


@pytest.mark.parametrize(
    "lat,lng",
    [(0.0, 0.0), (-43.5577, -29.1694), (30.3333, -162.6804), (86.8922, -104.0596), (90.0, 0.0)],
)
def test_antipodal_points_are_half_the_circumference_apart(lat, lng):
    a = GeoPoint(lat=lat, lng=lng)
    b = GeoPoint(lat=-lat, lng=lng + 180 if lng <= 0 else lng - 180)
    assert distance_km(a, b) == pytest.approx(math.pi * 6371.0, rel=1e-9)


def test_origin_point_is_a_valid_coordinate():
    zero = GeoPoint(lat=0.0, lng=0.0)
    assert distance_km(zero, GeoPoint(lat=0.0, lng=1.0)) == pytest.approx(111.19, abs=0.05)


@pytest.mark.parametrize("lat,lng", [(90.5, 0.0), (-91.0, 0.0), (0.0, 180.1), (0.0, -200.0)])
def test_out_of_range_coordinates_are_rejected(lat, lng):
    with pytest.raises(InvariantViolation):
        GeoPoint(lat=lat, lng=lng)


def test_round_km_and_coordinate_label():
    assert round_km(2.4719) == 2.5
    assert round_km(9.94) == 9.9
    assert format_coordinate(12.9716, 77.5946) == "12.97, 77.59"
