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
Projection of the viewport onto tile indices.
"""
from __future__ import division

import math

from tileview.grid import TileGrid, TileMatrixBounds
from tileview.location import WGS84_EQUATORIAL_RADIUS
from tileview.projection import Bounds
from tileview.util.affine import Affine

TILE_SIZE = 256
WORLD_SIZE = 2 * math.pi * WGS84_EQUATORIAL_RADIUS


def zoom_level_for_viewport(zoom_level, zoom_level_offset=0.0):
    """
    Return the integer tile zoom level for a continuous map zoom level.

    >>> zoom_level_for_viewport(3.7)
    3
    >>> zoom_level_for_viewport(0.2, -1.0)
    0
    """
    return max(0, int(math.floor(zoom_level + zoom_level_offset)))


def map_to_tile_transform(zoom_level):
    """
    Transformation from Web Mercator meters to (fractional) tile indices
    of `zoom_level`, origin at the upper left corner of the world.
    """
    scale = (1 << zoom_level) / WORLD_SIZE
    return (Affine.identity()
        .translated(WORLD_SIZE / 2, -WORLD_SIZE / 2)
        .scaled(scale, -scale))


def tile_grid_for_viewport(inverse_viewport_transform, width, height, zoom_level):
    """
    Return the `TileGrid` covering the viewport at `zoom_level`.

    :param inverse_viewport_transform: `Affine` from view pixels to map meters
    :param width: viewport width in pixels
    :param height: viewport height in pixels
    """
    transform = inverse_viewport_transform.then(map_to_tile_transform(zoom_level))
    bounds = transform.transform_bounds(Bounds(0.0, 0.0, width, height))

    return TileGrid(zoom_level,
        int(math.floor(bounds.x)),
        int(math.floor(bounds.y)),
        int(math.floor(bounds.max_x)),
        int(math.floor(bounds.max_y)))


def map_to_tile_matrix_transform(tile_matrix):
    """
    Transformation from map coordinates to pixel coordinates of `tile_matrix`.
    """
    top_left_x, top_left_y = tile_matrix.top_left
    return (Affine.identity()
        .translated(-top_left_x, -top_left_y)
        .scaled(tile_matrix.scale, -tile_matrix.scale))


def tile_matrix_bounds(inverse_viewport_transform, width, height, tile_matrix):
    """
    Return the `TileMatrixBounds` of `tile_matrix` covered by the viewport,
    clamped into the matrix.
    """
    transform = inverse_viewport_transform.then(map_to_tile_matrix_transform(tile_matrix))
    bounds = transform.transform_bounds(Bounds(0.0, 0.0, width, height))

    x_min = int(math.floor(bounds.x / tile_matrix.tile_width))
    y_min = int(math.floor(bounds.y / tile_matrix.tile_height))
    x_max = int(math.floor(bounds.max_x / tile_matrix.tile_width))
    y_max = int(math.floor(bounds.max_y / tile_matrix.tile_height))

    x_min = max(x_min, 0)
    y_min = max(y_min, 0)
    x_max = min(max(x_max, 0), tile_matrix.matrix_width - 1)
    y_max = min(max(y_max, 0), tile_matrix.matrix_height - 1)

    return TileMatrixBounds(x_min, y_min, x_max, y_max)


def is_antimeridian_leap(origin_longitude, previous_origin_longitude):
    """
    Return ``True`` if the map origin moved by more than 180 degrees, i.e.
    the map center was rewrapped across the antimeridian.

    >>> is_antimeridian_leap(-179.0, 179.0)
    True
    >>> is_antimeridian_leap(10.0, 12.0)
    False
    """
    if previous_origin_longitude is None:
        return False
    return abs(origin_longitude - previous_origin_longitude) > 180.0
