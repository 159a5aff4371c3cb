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
Map projections between geographic locations and map coordinates (meters).
"""
from __future__ import division

import math
from collections import namedtuple

from pyproj import CRS, Transformer

from tileview.location import (
    Location,
    WGS84_EQUATORIAL_RADIUS,
    get_azimuth_distance,
    get_location,
)

import logging
log_proj = logging.getLogger('tileview.proj')

MAX_MERCATOR_LATITUDE = 85.0511287798
WEBMERCATOR_EPSG = set(('EPSG:900913', 'EPSG:3857', 'EPSG:102100', 'EPSG:102113'))


class Bounds(namedtuple('Bounds', 'x y width height')):
    """
    Rectangle in map or pixel coordinates.
    """
    __slots__ = ()

    @property
    def max_x(self):
        return self.x + self.width

    @property
    def max_y(self):
        return self.y + self.height

    @classmethod
    def from_points(cls, points):
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        return cls(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


class MapBoundingBox(namedtuple('MapBoundingBox', 'south west north east')):
    __slots__ = ()


class CenteredBoundingBox(namedtuple('CenteredBoundingBox', 'center width height')):
    """
    Bounding box given by its center `Location` and its width and
    height in meters.
    """
    __slots__ = ()


class MapProjection(object):
    """
    Base class of all map projections. Map coordinates are in meters.
    """
    crs_id = None

    def location_to_map(self, location):
        raise NotImplementedError()

    def map_to_location(self, point):
        raise NotImplementedError()

    def bounds_to_bounding_box(self, bounds):
        sw = self.map_to_location((bounds.x, bounds.y))
        ne = self.map_to_location((bounds.max_x, bounds.max_y))
        return MapBoundingBox(sw.latitude, sw.longitude, ne.latitude, ne.longitude)

    def bounding_box_to_bounds(self, bounding_box):
        sw = self.location_to_map(Location(bounding_box.south, bounding_box.west))
        ne = self.location_to_map(Location(bounding_box.north, bounding_box.east))
        return Bounds.from_points([sw, ne])

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self.crs_id)


class WebMercatorProjection(MapProjection):
    """
    Spherical Mercator (EPSG:3857). Longitudes are not wrapped, so locations
    east of 180 degrees map to x values beyond the world bounds.

    >>> p = WebMercatorProjection()
    >>> [round(v, 2) + 0.0 for v in p.location_to_map(Location(0, 180))]
    [20037508.34, 0.0]
    >>> loc = p.map_to_location((20037508.342789244, 0.0))
    >>> round(loc.longitude, 9), round(loc.latitude, 9) + 0.0
    (180.0, 0.0)
    """
    crs_id = 'EPSG:3857'

    def location_to_map(self, location):
        latitude = max(min(location.latitude, MAX_MERCATOR_LATITUDE), -MAX_MERCATOR_LATITUDE)
        x = WGS84_EQUATORIAL_RADIUS * math.radians(location.longitude)
        y = WGS84_EQUATORIAL_RADIUS * math.log(
            math.tan(math.pi / 4 + math.radians(latitude) / 2))
        return (x, y)

    def map_to_location(self, point):
        x, y = point
        longitude = math.degrees(x / WGS84_EQUATORIAL_RADIUS)
        latitude = 90.0 - math.degrees(
            2 * math.atan(math.exp(-y / WGS84_EQUATORIAL_RADIUS)))
        return Location(latitude, longitude)


class AzimuthalProjection(MapProjection):
    """
    Base class for azimuthal projections around `center`.
    """
    def __init__(self, center=None):
        self.center = center or Location(0.0, 0.0)

    def bounds_to_bounding_box(self, bounds):
        center = self.map_to_location((
            bounds.x + bounds.width / 2,
            bounds.y + bounds.height / 2))
        return CenteredBoundingBox(center, bounds.width, bounds.height)

    def bounding_box_to_bounds(self, bounding_box):
        if isinstance(bounding_box, CenteredBoundingBox):
            x, y = self.location_to_map(bounding_box.center)
            width = bounding_box.width
            height = bounding_box.height
            return Bounds(x - width / 2, y - height / 2, width, height)
        return MapProjection.bounding_box_to_bounds(self, bounding_box)

    def __repr__(self):
        return '%s(%r, center=%r)' % (self.__class__.__name__, self.crs_id, self.center)


class AzimuthalEquidistantProjection(AzimuthalProjection):
    """
    Spherical azimuthal equidistant projection.

    >>> p = AzimuthalEquidistantProjection(Location(50.0, 10.0))
    >>> p.location_to_map(Location(50.0, 10.0))
    (0.0, 0.0)
    """
    crs_id = 'AUTO2:97003'

    def location_to_map(self, location):
        if location == self.center:
            return (0.0, 0.0)
        azimuth, distance = get_azimuth_distance(self.center, location)
        distance *= WGS84_EQUATORIAL_RADIUS
        return (distance * math.sin(azimuth), distance * math.cos(azimuth))

    def map_to_location(self, point):
        x, y = point
        if x == 0 and y == 0:
            return self.center
        azimuth = math.atan2(x, y)
        distance = math.sqrt(x * x + y * y) / WGS84_EQUATORIAL_RADIUS
        return get_location(self.center, azimuth, distance)


class SRSProjection(MapProjection):
    """
    Projection for any CRS known to PROJ, e.g. national grids used by
    WMTS services.
    """
    def __init__(self, crs_id):
        self.crs_id = crs_id.upper()
        crs = CRS.from_user_input(self.crs_id)
        self._to_map = Transformer.from_crs('EPSG:4326', crs, always_xy=True)
        self._to_location = Transformer.from_crs(crs, 'EPSG:4326', always_xy=True)

    def location_to_map(self, location):
        x, y = self._to_map.transform(location.longitude, location.latitude)
        return (x, y)

    def map_to_location(self, point):
        longitude, latitude = self._to_location.transform(point[0], point[1])
        return Location(latitude, longitude)


def projection_for_crs(crs_id):
    """
    Return the projection for `crs_id`. Web Mercator codes use the
    spherical implementation.
    """
    if crs_id.upper() in WEBMERCATOR_EPSG:
        return WebMercatorProjection()
    log_proj.debug('creating projection for %s', crs_id)
    return SRSProjection(crs_id)
