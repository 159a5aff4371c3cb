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

from tileview.grid import TileGrid, TileIndex, TileMatrixBounds
from tileview.tile import (
    Tile,
    TileCollection,
    TilePlacement,
    reconcile_matrix_tiles,
    reconcile_tiles,
    zoom_level_range,
)


def indices(tiles):
    return set(tuple(tile.index) for tile in tiles)


class TestTile(object):
    def test_new_tile_is_pending(self):
        tile = Tile(TileIndex(1, 2, 3))
        assert tile.pending
        assert tile.image is None
        assert (tile.x, tile.y, tile.zoom_level) == (1, 2, 3)

    def test_set_image(self):
        tile = Tile(TileIndex(1, 2, 3))
        tile.set_image('img')
        assert not tile.pending
        assert tile.image == 'img'
        assert tile.fade_in

    def test_set_image_without_animation(self):
        tile = Tile(TileIndex(1, 2, 3))
        tile.set_image('img', animate=False)
        assert not tile.fade_in

    def test_set_no_image(self):
        tile = Tile(TileIndex(1, 2, 3))
        tile.set_image(None)
        assert not tile.pending
        assert tile.image is None

    def test_column(self):
        assert Tile(TileIndex(-1, 0, 2)).column == 3
        assert Tile(TileIndex(-1, 0, 2), wraps=False).column == -1


class TestZoomLevelRange(object):
    def test_base_layer(self):
        assert list(zoom_level_range(4, 0, 18, True)) == [0, 1, 2, 3, 4]

    def test_overlay_layer(self):
        assert list(zoom_level_range(4, 0, 18, False)) == [4]

    def test_max_zoom_level(self):
        assert list(zoom_level_range(6, 2, 4, True)) == [2, 3, 4]
        assert list(zoom_level_range(6, 2, 4, False)) == [4]

    def test_below_min_zoom_level(self):
        assert list(zoom_level_range(1, 3, 18, True)) == []


class TestReconcileTiles(object):
    def test_no_grid(self):
        assert len(reconcile_tiles(TileCollection(), None)) == 0

    def test_four_tiles_at_zoom_1(self):
        tiles = reconcile_tiles(TileCollection(), TileGrid(1, 0, 0, 1, 1),
            min_zoom_level=0, max_zoom_level=2, is_base_layer=False)
        assert indices(tiles) == set([(0, 0, 1), (1, 0, 1), (0, 1, 1), (1, 1, 1)])
        assert all(tile.pending for tile in tiles)

    def test_background_levels(self):
        tiles = reconcile_tiles(TileCollection(), TileGrid(2, 1, 1, 2, 2),
            min_zoom_level=0, max_zoom_level=18, is_base_layer=True)
        assert indices(tiles) == set([
            (0, 0, 0),
            (0, 0, 1), (1, 0, 1), (0, 1, 1), (1, 1, 1),
            (1, 1, 2), (2, 1, 2), (1, 2, 2), (2, 2, 2),
        ])
        # coarser levels first
        assert [tile.zoom_level for tile in tiles][0] == 0

    def test_rows_clamped(self):
        tiles = reconcile_tiles(TileCollection(), TileGrid(1, 0, -1, 0, 2),
            is_base_layer=False)
        assert indices(tiles) == set([(0, 0, 1), (0, 1, 1)])

    def test_negative_columns_floored(self):
        tiles = reconcile_tiles(TileCollection(), TileGrid(2, -3, 0, -1, 0),
            min_zoom_level=1, is_base_layer=True)
        assert indices(tiles) == set([
            (-2, 0, 1), (-1, 0, 1),
            (-3, 0, 2), (-2, 0, 2), (-1, 0, 2),
        ])

    def test_max_zoom_level(self):
        tiles = reconcile_tiles(TileCollection(), TileGrid(3, 2, 2, 5, 5),
            max_zoom_level=2, is_base_layer=False)
        assert indices(tiles) == set([(1, 1, 2), (2, 1, 2), (1, 2, 2), (2, 2, 2)])

    def test_reuse_tiles(self):
        previous = reconcile_tiles(TileCollection(), TileGrid(2, 0, 0, 1, 1),
            is_base_layer=False)
        for tile in previous:
            tile.set_image('img')

        tiles = reconcile_tiles(previous, TileGrid(2, 1, 0, 2, 1), is_base_layer=False)

        assert previous.get(TileIndex(1, 0, 2)) is tiles.get(TileIndex(1, 0, 2))
        assert previous.get(TileIndex(1, 1, 2)) is tiles.get(TileIndex(1, 1, 2))
        assert TileIndex(0, 0, 2) not in tiles
        assert [tuple(t.index) for t in tiles.pending] == [(2, 0, 2), (2, 1, 2)]

    def test_unchanged_grid_is_idempotent(self):
        grid = TileGrid(3, 2, 2, 4, 3)
        previous = reconcile_tiles(TileCollection(), grid)
        tiles = reconcile_tiles(previous, grid)
        assert len(tiles) == len(previous)
        for tile in tiles:
            assert tile in previous

    def test_wrapped_tile_reuses_image(self):
        previous = reconcile_tiles(TileCollection(), TileGrid(1, 1, 0, 1, 0),
            is_base_layer=False)
        previous.get(TileIndex(1, 0, 1)).set_image('east')

        tiles = reconcile_tiles(previous, TileGrid(1, -1, 0, 1, 0), is_base_layer=False)

        wrapped = tiles.get(TileIndex(-1, 0, 1))
        assert not wrapped.pending
        assert wrapped.image == 'east'
        assert not wrapped.fade_in
        assert [tuple(t.index) for t in tiles.pending] == [(0, 0, 1)]

    def test_wrapped_pending_tile_not_copied(self):
        previous = reconcile_tiles(TileCollection(), TileGrid(1, 1, 0, 1, 0),
            is_base_layer=False)
        tiles = reconcile_tiles(previous, TileGrid(1, -1, 0, 1, 0), is_base_layer=False)
        assert tiles.get(TileIndex(-1, 0, 1)).pending


class TestReconcileMatrixTiles(object):
    def test_create(self):
        tiles = reconcile_matrix_tiles(None, TileMatrixBounds(0, 0, 1, 0), 4)
        assert indices(tiles) == set([(0, 0, 4), (1, 0, 4)])
        assert all(not t.wraps for t in tiles)

    def test_reuse_exact_index_only(self):
        previous = reconcile_matrix_tiles(None, TileMatrixBounds(0, 0, 1, 0), 1)
        for tile in previous:
            tile.set_image('img')
        tiles = reconcile_matrix_tiles(previous, TileMatrixBounds(1, 0, 2, 0), 1)
        assert tiles.get(TileIndex(1, 0, 1)) is previous.get(TileIndex(1, 0, 1))
        assert tiles.get(TileIndex(2, 0, 1)).pending

    def test_empty_bounds(self):
        assert len(reconcile_matrix_tiles(None, TileMatrixBounds(0, 0, -1, -1), 0)) == 0


class TestTilePlacement(object):
    def test_for_tile(self):
        tile = Tile(TileIndex(1, 2, 3))
        tile.set_image('img', animate=False)
        placement = TilePlacement.for_tile(tile, 10, 20, 256, 256)
        assert placement == TilePlacement(TileIndex(1, 2, 3), 'img', 10, 20, 256, 256, False)
