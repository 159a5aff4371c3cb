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
Tiles and reconciliation of tile sets.

.. digraph:: Schematic Call Graph

    ranksep = 0.1;
    node [shape="box", height="0", width="0"]

    l   [label="MapTileLayer" href="<tileview.layer.MapTileLayer>"]
    r   [label="reconcile_tiles"];
    ld  [label="TileImageLoader", href="<tileview.loader.TileImageLoader>"];

    {
        l -> r [label="tile grid"];
        l -> ld [label="load_tiles\\n(pending tiles)"];
    }

"""
from collections import OrderedDict, namedtuple

from tileview.grid import TileIndex


class Tile(object):
    """
    A tile of a layer. Tiles are created pending and resolved once by
    `set_image`, always on the control thread.

    :ivar image: the decoded image or ``None``
    :ivar fade_in: ``True`` if the renderer should animate the image
        appearance, ``False`` if the image was copied from an existing tile
    """
    def __init__(self, index, wraps=True):
        self.index = index
        self.wraps = wraps
        self.image = None
        self.pending = True
        self.fade_in = False

    @property
    def x(self):
        return self.index.x

    @property
    def y(self):
        return self.index.y

    @property
    def zoom_level(self):
        return self.index.zoom_level

    @property
    def column(self):
        """
        Column used for URLs and cache keys.
        """
        return self.index.wrapped_x if self.wraps else self.index.x

    def set_image(self, image, animate=True):
        self.pending = False
        if image is not None:
            self.image = image
            self.fade_in = animate

    def __repr__(self):
        return 'Tile(%r, pending=%r)' % (tuple(self.index), self.pending)


class TileCollection(object):
    """
    Ordered tiles of a layer, keyed by their `TileIndex`.
    """
    def __init__(self, tiles=()):
        self._tiles = OrderedDict()
        for tile in tiles:
            self._tiles[tile.index] = tile

    def add(self, tile):
        self._tiles[tile.index] = tile

    def get(self, index):
        return self._tiles.get(index)

    def __contains__(self, tile_or_index):
        if isinstance(tile_or_index, Tile):
            return self._tiles.get(tile_or_index.index) is tile_or_index
        return tile_or_index in self._tiles

    def __len__(self):
        return len(self._tiles)

    def __iter__(self):
        return iter(self._tiles.values())

    @property
    def pending(self):
        return [tile for tile in self._tiles.values() if tile.pending]

    def resolved_by_region(self):
        """
        Return a dict that maps the wrapped key of each tile with an image to
        the tile.
        """
        return dict((tile.index.wrapped_key, tile)
                    for tile in self._tiles.values() if tile.image is not None)

    def __repr__(self):
        return 'TileCollection(%r)' % list(self._tiles.values())


def zoom_level_range(grid_zoom_level, min_zoom_level, max_zoom_level, is_base_layer):
    """
    Return the range of zoom levels to fill for a grid at `grid_zoom_level`.
    Layers other than the base layer get no background levels.

    >>> list(zoom_level_range(3, 0, 18, True))
    [0, 1, 2, 3]
    >>> list(zoom_level_range(3, 0, 18, False))
    [3]
    >>> list(zoom_level_range(5, 1, 3, True))
    [1, 2, 3]
    """
    max_zoom = min(grid_zoom_level, max_zoom_level)
    min_zoom = min_zoom_level
    if min_zoom < max_zoom and not is_base_layer:
        min_zoom = max_zoom
    return range(min_zoom, max_zoom + 1)


def reconcile_tiles(previous, tile_grid, min_zoom_level=0, max_zoom_level=18,
                    is_base_layer=True):
    """
    Return the new `TileCollection` for `tile_grid`.

    Tiles of `previous` with equal index are reused. New tiles are pending,
    unless a tile of `previous` that shows the same map region across the
    antimeridian already has an image, which is then copied without fetching.
    """
    tiles = TileCollection()
    if tile_grid is None:
        return tiles

    resolved = previous.resolved_by_region() if previous is not None else {}

    for z in zoom_level_range(tile_grid.zoom_level, min_zoom_level, max_zoom_level,
                              is_base_layer):
        tile_size = 1 << (tile_grid.zoom_level - z)
        x1 = tile_grid.x_min // tile_size  # may be negative
        x2 = tile_grid.x_max // tile_size
        y1 = max(tile_grid.y_min // tile_size, 0)
        y2 = min(tile_grid.y_max // tile_size, (1 << z) - 1)

        for y in range(y1, y2 + 1):
            for x in range(x1, x2 + 1):
                index = TileIndex(x, y, z)
                tile = previous.get(index) if previous is not None else None

                if tile is None:
                    tile = Tile(index)
                    equivalent = resolved.get(index.wrapped_key)
                    if equivalent is not None:
                        tile.set_image(equivalent.image, animate=False)

                tiles.add(tile)

    return tiles


def reconcile_matrix_tiles(previous, bounds, zoom_level):
    """
    Return the new `TileCollection` of a WMTS tile matrix for `bounds`,
    reusing tiles of `previous` with equal column and row.
    """
    tiles = TileCollection()
    for index in bounds.indices(zoom_level):
        tile = previous.get(index) if previous is not None else None
        if tile is None:
            tile = Tile(index, wraps=False)
        tiles.add(tile)
    return tiles


class TilePlacement(namedtuple('TilePlacement', 'index image x y width height fade_in')):
    """
    Destination rectangle of a tile image in layer pixel coordinates.
    """
    __slots__ = ()

    @classmethod
    def for_tile(cls, tile, x, y, width, height):
        return cls(tile.index, tile.image, x, y, width, height, tile.fade_in)
