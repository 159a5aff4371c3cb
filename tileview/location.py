# This file is part of the TileView project.
# Copyright (C) 2024 TileView contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Geographic locations and great-circle calculations on a spherical earth.
"""
from __future__ import division

import math
from collections import namedtuple

from tileview.exception import LocationFormatError

WGS84_EQUATORIAL_RADIUS = 6378137.0


class Location(namedtuple('Location', 'latitude longitude')):
    """
    A geographic location with latitude and longitude values in degrees.
    The longitude is stored as given and not normalized.

    >>> Location(53.5, 8.2)
    Location(latitude=53.5, longitude=8.2)
    >>> Location(0, 190).longitude
    190
    """
    __slots__ = ()

    @classmethod
    def parse(cls, location_string):
        """
        Create a `Location` from a ``"lat,lon"`` string.

        >>> Location.parse('53.5, 8.25')
        Location(latitude=53.5, longitude=8.25)
        >>> Location.parse('53.5') #doctest: +ELLIPSIS
        Traceback (most recent call last):
        ...
        tileview.exception.LocationFormatError: ...
        """
        pair = location_string.split(',')
        if len(pair) != 2:
            raise LocationFormatError(
                'location string must be a comma-separated pair of float values: %r'
                % (location_string, ))
        try:
            return cls(float(pair[0]), float(pair[1]))
        except ValueError:
            raise LocationFormatError(
                'location string must be a comma-separated pair of float values: %r'
                % (location_string, ))

    def __str__(self):
        return '%s,%s' % (self.latitude, self.longitude)


def normalize_longitude(longitude):
    """
    >>> normalize_longitude(190.0)
    -170.0
    >>> normalize_longitude(-190.0)
    170.0
    >>> normalize_longitude(180.0)
    180.0
    """
    if longitude < -180.0:
        longitude = math.fmod(longitude + 180.0, 360.0) + 180.0
    elif longitude > 180.0:
        longitude = math.fmod(longitude - 180.0, 360.0) - 180.0
    return longitude


def nearest_longitude(longitude, reference_longitude):
    """
    Return `longitude` rewrapped to lie within 180 degrees of
    `reference_longitude`.

    >>> nearest_longitude(-170.0, 175.0)
    190.0
    >>> nearest_longitude(170.0, -175.0)
    -190.0
    >>> nearest_longitude(10.0, 0.0)
    10.0
    """
    longitude = normalize_longitude(longitude)
    if longitude > reference_longitude + 180.0:
        longitude -= 360.0
    elif longitude < reference_longitude - 180.0:
        longitude += 360.0
    return longitude


def _clamp(value):
    return max(min(value, 1.0), -1.0)


def great_circle_azimuth(location1, location2):
    """
    Return the initial azimuth in degrees of the great circle from
    `location1` to `location2`.

    >>> round(great_circle_azimuth(Location(0, 0), Location(0, 10)), 6)
    90.0
    >>> round(great_circle_azimuth(Location(0, 0), Location(10, 0)), 6)
    0.0
    """
    lat1 = math.radians(location1.latitude)
    lon1 = math.radians(location1.longitude)
    lat2 = math.radians(location2.latitude)
    lon2 = math.radians(location2.longitude)
    cos_lat1 = math.cos(lat1)
    sin_lat1 = math.sin(lat1)
    cos_lat2 = math.cos(lat2)
    sin_lat2 = math.sin(lat2)
    cos_lon12 = math.cos(lon2 - lon1)
    sin_lon12 = math.sin(lon2 - lon1)

    return math.degrees(math.atan2(
        cos_lat2 * sin_lon12,
        cos_lat1 * sin_lat2 - sin_lat1 * cos_lat2 * cos_lon12))


def great_circle_distance(location1, location2):
    """
    Return the great circle distance in meters between both locations.

    >>> round(great_circle_distance(Location(0, 0), Location(0, 180)))
    20037508
    """
    lat1 = math.radians(location1.latitude)
    lon1 = math.radians(location1.longitude)
    lat2 = math.radians(location2.latitude)
    lon2 = math.radians(location2.longitude)
    cos_lat1 = math.cos(lat1)
    sin_lat1 = math.sin(lat1)
    cos_lat2 = math.cos(lat2)
    sin_lat2 = math.sin(lat2)
    cos_lon12 = math.cos(lon2 - lon1)
    sin_lon12 = math.sin(lon2 - lon1)
    a = cos_lat1 * sin_lat2 - sin_lat1 * cos_lat2 * cos_lon12
    b = cos_lat2 * sin_lon12
    s12 = math.atan2(math.sqrt(a * a + b * b),
                     sin_lat1 * sin_lat2 + cos_lat1 * cos_lat2 * cos_lon12)

    return WGS84_EQUATORIAL_RADIUS * s12


def great_circle_location(location, azimuth, distance):
    """
    Return the destination `Location` when travelling `distance` meters
    from `location` with the initial `azimuth` (degrees).

    >>> loc = great_circle_location(Location(0, 0), 90.0, great_circle_distance(Location(0, 0), Location(0, 10)))
    >>> round(loc.latitude, 6), round(loc.longitude, 6)
    (0.0, 10.0)
    """
    s12 = distance / WGS84_EQUATORIAL_RADIUS
    az1 = math.radians(azimuth)
    lat1 = math.radians(location.latitude)
    lon1 = math.radians(location.longitude)
    sin_s12 = math.sin(s12)
    cos_s12 = math.cos(s12)
    sin_az1 = math.sin(az1)
    cos_az1 = math.cos(az1)
    sin_lat1 = math.sin(lat1)
    cos_lat1 = math.cos(lat1)
    lat2 = math.asin(_clamp(sin_lat1 * cos_s12 + cos_lat1 * sin_s12 * cos_az1))
    lon2 = lon1 + math.atan2(sin_s12 * sin_az1,
                             cos_lat1 * cos_s12 - sin_lat1 * sin_s12 * cos_az1)

    return Location(math.degrees(lat2), math.degrees(lon2))


def get_azimuth_distance(location1, location2):
    """
    Return azimuth and angular distance, both in radians, from `location1`
    to `location2`.
    """
    lat1 = math.radians(location1.latitude)
    lon1 = math.radians(location1.longitude)
    lat2 = math.radians(location2.latitude)
    lon2 = math.radians(location2.longitude)
    cos_lat1 = math.cos(lat1)
    sin_lat1 = math.sin(lat1)
    cos_lat2 = math.cos(lat2)
    sin_lat2 = math.sin(lat2)
    cos_lon12 = math.cos(lon2 - lon1)
    sin_lon12 = math.sin(lon2 - lon1)
    cos_distance = sin_lat1 * sin_lat2 + cos_lat1 * cos_lat2 * cos_lon12
    azimuth = math.atan2(cos_lat2 * sin_lon12,
                         cos_lat1 * sin_lat2 - sin_lat1 * cos_lat2 * cos_lon12)
    distance = math.acos(_clamp(cos_distance))

    return azimuth, distance


def get_location(location, azimuth, distance):
    """
    Return the `Location` given by `azimuth` and angular `distance`
    (both in radians) from `location`.
    """
    lat = math.radians(location.latitude)
    sin_distance = math.sin(distance)
    cos_distance = math.cos(distance)
    cos_azimuth = math.cos(azimuth)
    sin_azimuth = math.sin(azimuth)
    cos_lat1 = math.cos(lat)
    sin_lat1 = math.sin(lat)
    sin_lat2 = sin_lat1 * cos_distance + cos_lat1 * sin_distance * cos_azimuth
    lat2 = math.asin(_clamp(sin_lat2))
    d_lon = math.atan2(sin_distance * sin_azimuth,
                       cos_lat1 * cos_distance - sin_lat1 * sin_distance * cos_azimuth)

    return Location(math.degrees(lat2), location.longitude + math.degrees(d_lon))
