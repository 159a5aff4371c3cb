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
Tile index and tile range types.
"""
from collections import namedtuple


class GridError(Exception):
    pass


def wrapped_x(x, zoom_level):
    """
    Return the column `x` reduced into ``[0, 2**zoom_level)``.

    >>> wrapped_x(-1, 1)
    1
    >>> wrapped_x(5, 2)
    1
    >>> wrapped_x(0, 0)
    0
    """
    num_tiles = 1 << zoom_level
    return ((x % num_tiles) + num_tiles) % num_tiles


class TileIndex(namedtuple('TileIndex', 'x y zoom_level')):
    """
    Index of a tile in a tile pyramid. `x` may lie outside of
    ``[0, 2**zoom_level)`` for tiles beyond the antimeridian.

    >>> TileIndex(-1, 0, 1).wrapped_x
    1
    >>> TileIndex(-1, 0, 1).wrapped_key == TileIndex(1, 0, 1).wrapped_key
    True
    """
    __slots__ = ()

    @property
    def wrapped_x(self):
        return wrapped_x(self.x, self.zoom_level)

    @property
    def wrapped_key(self):
        """
        Key of the map region this tile covers, equal for all tiles
        that only differ by full world wraps.
        """
        return (self.zoom_level, self.wrapped_x, self.y)


class TileGrid(namedtuple('TileGrid', 'zoom_level x_min y_min x_max y_max')):
    """
    Inclusive tile index bounds of the viewport at one zoom level.
    """
    __slots__ = ()

    @property
    def columns(self):
        return self.x_max - self.x_min + 1

    @property
    def rows(self):
        return self.y_max - self.y_min + 1


class TileMatrixBounds(namedtuple('TileMatrixBounds', 'x_min y_min x_max y_max')):
    """
    Inclusive tile column and row bounds within one WMTS tile matrix.
    """
    __slots__ = ()

    def indices(self, zoom_level):
        for y in range(self.y_min, self.y_max + 1):
            for x in range(self.x_min, self.x_max + 1):
                yield TileIndex(x, y, zoom_level)
