"""Tests for the geometry module."""

import math
import random
import unittest

from companion.geometry import (
    EARTH_RADIUS_KM,
    KAABA,
    GeoPoint,
    circular_distance,
    haversine_km,
    initial_bearing,
    normalize_degrees,
)

PARIS = GeoPoint(48.8566, 2.3522)
LONDON = GeoPoint(51.5074, -0.1278)


class TestGeoPoint(unittest.TestCase):
    def test_accepts_range_limits(self):
        GeoPoint(90.0, 180.0)
        GeoPoint(-90.0, -180.0)

    def test_rejects_latitude_out_of_range(self):
        with self.assertRaises(ValueError):
            GeoPoint(90.5, 0.0)

    def test_rejects_longitude_out_of_range(self):
        with self.assertRaises(ValueError):
            GeoPoint(0.0, -180.1)


class TestNormalizeDegrees(unittest.TestCase):
    def test_wraps_into_range(self):
        self.assertEqual(normalize_degrees(-90), 270)
        self.assertEqual(normalize_degrees(720), 0)
        self.assertEqual(normalize_degrees(365), 5)

    def test_tiny_negative_does_not_return_360(self):
        self.assertEqual(normalize_degrees(-1e-15), 0.0)


class TestInitialBearing(unittest.TestCase):
    def test_cardinal_directions_on_equator(self):
        origin = GeoPoint(0.0, 0.0)
        self.assertAlmostEqual(initial_bearing(origin, GeoPoint(10.0, 0.0)), 0.0)
        self.assertAlmostEqual(initial_bearing(origin, GeoPoint(0.0, 10.0)), 90.0)
        self.assertAlmostEqual(initial_bearing(origin, GeoPoint(-10.0, 0.0)), 180.0)
        self.assertAlmostEqual(initial_bearing(origin, GeoPoint(0.0, -10.0)), 270.0)

    def test_paris_to_kaaba(self):
        self.assertAlmostEqual(initial_bearing(PARIS, KAABA), 119.2, delta=1.2)

    def test_same_point_is_zero(self):
        self.assertEqual(initial_bearing(KAABA, KAABA), 0.0)

    def test_random_points_stay_in_range(self):
        rng = random.Random(1234)
        for _ in range(1000):
            origin = GeoPoint(rng.uniform(-90, 90), rng.uniform(-180, 180))
            bearing = initial_bearing(origin, KAABA)
            self.assertGreaterEqual(bearing, 0.0)
            self.assertLess(bearing, 360.0)


class TestHaversine(unittest.TestCase):
    def test_same_point_zero_distance(self):
        self.assertEqual(haversine_km(PARIS, PARIS), 0)

    def test_london_to_paris(self):
        self.assertTrue(340 < haversine_km(LONDON, PARIS) < 350)

    def test_paris_to_kaaba(self):
        self.assertAlmostEqual(haversine_km(PARIS, KAABA), 4497, delta=45)

    def test_symmetry(self):
        self.assertAlmostEqual(haversine_km(PARIS, KAABA), haversine_km(KAABA, PARIS))

    def test_antipode_is_half_circumference(self):
        antipode = GeoPoint(-KAABA.lat, KAABA.lon - 180.0)
        self.assertAlmostEqual(haversine_km(KAABA, antipode), math.pi * EARTH_RADIUS_KM, delta=1)

    def test_pole_origin(self):
        distance = haversine_km(GeoPoint(90.0, 0.0), KAABA)
        self.assertAlmostEqual(distance, math.radians(90.0 - KAABA.lat) * EARTH_RADIUS_KM, delta=1)


class TestCircularDistance(unittest.TestCase):
    def test_across_north(self):
        self.assertAlmostEqual(circular_distance(359, 1), 2)
        self.assertAlmostEqual(circular_distance(10, 350), 20)

    def test_opposite(self):
        self.assertEqual(circular_distance(0, 180), 180)

    def test_unnormalized_inputs(self):
        self.assertAlmostEqual(circular_distance(-5, 365), 10)


if __name__ == "__main__":
    unittest.main()
