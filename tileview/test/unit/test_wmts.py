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

import logging

import pytest

from tileview.cache.memory import MemoryTileCache
from tileview.config.options import TileLayerOptions
from tileview.dispatch import Dispatcher
from tileview.grid import TileIndex, TileMatrixBounds
from tileview.grid.projector import TILE_SIZE, WORLD_SIZE
from tileview.loader import TileImageLoader
from tileview.location import Location
from tileview.test.helper import FakeHTTPClient, process_until
from tileview.tile import Tile
from tileview.viewport import MapViewport
from tileview.wmts import (
    WmtsCapabilities,
    WmtsTileLayer,
    WmtsTileMatrix,
    WmtsTileMatrixLayer,
    WmtsTileMatrixSet,
    WmtsTileSource,
    select_tile_matrixes,
)

WMTS_URL = 'http://wmts.example.org/{TileMatrixSet}/{TileMatrix}/{TileRow}/{TileCol}.png'


def matrix_with_scale(identifier, scale, size=1):
    return WmtsTileMatrix(identifier, 1 / (scale * 0.00028), (0.0, 0.0),
        256, 256, size, size)


def webmercator_matrix(zoom_level):
    scale = TILE_SIZE * 2 ** zoom_level / WORLD_SIZE
    return WmtsTileMatrix('z%d' % zoom_level, 1 / (scale * 0.00028),
        (-WORLD_SIZE / 2, WORLD_SIZE / 2), TILE_SIZE, TILE_SIZE,
        2 ** zoom_level, 2 ** zoom_level)


def webmercator_matrix_set(max_zoom_level=4):
    matrixes = [webmercator_matrix(z) for z in range(max_zoom_level + 1)]
    return WmtsTileMatrixSet('grid', 'EPSG:3857', list(reversed(matrixes)))


class TestWmtsTileMatrix(object):
    def test_scale(self):
        m = WmtsTileMatrix('0', 1000.0, (0.0, 0.0), 256, 256, 1, 1)
        assert m.scale == pytest.approx(1 / 0.28)

    def test_hashable(self):
        m1 = WmtsTileMatrix('0', 1000, [1.0, 2.0], 256, 256, 1, 1)
        m2 = WmtsTileMatrix('0', 1000.0, (1.0, 2.0), 256, 256, 1, 1)
        assert m1 == m2
        assert len(set([m1, m2])) == 1


class TestWmtsTileMatrixSet(object):
    def test_sorted_by_scale(self):
        matrixes = [matrix_with_scale(str(s), s) for s in (4, 1, 8, 2)]
        matrix_set = WmtsTileMatrixSet('set', 'EPSG:3857', matrixes)
        assert [m.identifier for m in matrix_set.tile_matrixes] == ['1', '2', '4', '8']

    @pytest.mark.parametrize('identifier,crs,matrixes', [
        ('', 'EPSG:3857', [matrix_with_scale('1', 1)]),
        (None, 'EPSG:3857', [matrix_with_scale('1', 1)]),
        ('set', '', [matrix_with_scale('1', 1)]),
        ('set', 'EPSG:3857', []),
        ('set', 'EPSG:3857', None),
    ])
    def test_invalid(self, identifier, crs, matrixes):
        with pytest.raises(ValueError):
            WmtsTileMatrixSet(identifier, crs, matrixes)


class TestSelectTileMatrixes(object):
    def setup_method(self):
        self.matrix_set = WmtsTileMatrixSet('set', 'EPSG:3857',
            [matrix_with_scale(str(s), s) for s in (1, 2, 4, 8)])

    def select(self, view_scale, is_base_layer=True, max_background_levels=10):
        return [m.identifier for m in select_tile_matrixes(self.matrix_set,
            view_scale, is_base_layer, max_background_levels)]

    def test_all_up_to_view_scale(self):
        assert self.select(3) == ['1', '2']
        assert self.select(8) == ['1', '2', '4', '8']

    def test_tolerance(self):
        assert self.select(1.9995) == ['1', '2']
        assert self.select(1.99) == ['1']

    def test_fallback_to_coarsest(self):
        assert self.select(0.5) == ['1']
        assert self.select(0.5, is_base_layer=False) == ['1']

    def test_overlay_only_finest(self):
        assert self.select(3, is_base_layer=False) == ['2']
        assert self.select(100, is_base_layer=False) == ['8']

    def test_background_levels(self):
        assert self.select(100, max_background_levels=1) == ['4', '8']
        assert self.select(100, max_background_levels=0) == ['8']


class TestWmtsTileSource(object):
    def setup_method(self):
        self.source = WmtsTileSource(WMTS_URL)
        self.source.tile_matrix_set = webmercator_matrix_set(2)

    def test_url(self):
        assert self.source.get_url(TileIndex(3, 1, 2)) == 'http://wmts.example.org/grid/z2/1/3.png'

    def test_column_not_wrapped(self):
        assert self.source.get_url(TileIndex(5, 0, 1)) == 'http://wmts.example.org/grid/z1/0/5.png'

    def test_zoom_level_without_matrix(self):
        assert self.source.get_url(TileIndex(0, 0, 3)) is None
        assert self.source.get_url(TileIndex(0, 0, -1)) is None

    def test_without_matrix_set(self):
        assert WmtsTileSource(WMTS_URL).get_url(TileIndex(0, 0, 0)) is None


class TestWmtsTileMatrixLayer(object):
    def test_bounds_and_tiles(self):
        viewport = MapViewport(500, 500, Location(0.0, 0.0), zoom_level=1.0)
        layer = WmtsTileMatrixLayer(webmercator_matrix(2), 2)

        assert layer.set_bounds(viewport.inverse_viewport_transform, 500, 500)
        assert not layer.set_bounds(viewport.inverse_viewport_transform, 500, 500)
        assert layer.bounds == TileMatrixBounds(0, 0, 3, 3)

        tiles = layer.update_tiles()
        assert len(tiles) == 16
        assert all(not t.wraps for t in tiles)
        placement = [p for p in layer.placements if p.index == TileIndex(3, 2, 2)][0]
        assert (placement.x, placement.y, placement.width, placement.height) == (768, 512, 256, 256)

    def test_transform(self):
        viewport = MapViewport(500, 500, Location(0.0, 0.0), zoom_level=1.0)
        layer = WmtsTileMatrixLayer(webmercator_matrix(1), 1)
        layer.set_bounds(viewport.inverse_viewport_transform, 500, 500)
        layer.set_transform(viewport)
        x, y = layer.transform.transform((0, 0))
        assert x == pytest.approx(-6.0)
        assert y == pytest.approx(-6.0)

    def test_tiles_reused(self):
        viewport = MapViewport(100, 100, Location(0.0, 0.0), zoom_level=2.0)
        layer = WmtsTileMatrixLayer(webmercator_matrix(2), 2)
        layer.set_bounds(viewport.inverse_viewport_transform, 100, 100)
        tiles = layer.update_tiles()
        viewport.set_size(200, 100)
        assert not layer.set_bounds(viewport.inverse_viewport_transform, 200, 100)
        viewport.set_size(600, 100)
        assert layer.set_bounds(viewport.inverse_viewport_transform, 600, 100)
        new_tiles = layer.update_tiles()
        for tile in tiles:
            assert new_tiles.get(tile.index) is tile


class TestWmtsTileLayer(object):
    def setup_method(self):
        self.dispatcher = Dispatcher()
        self.client = FakeHTTPClient()
        self.cache = MemoryTileCache()
        self.loader = TileImageLoader(cache=self.cache, http_client=self.client,
            dispatcher=self.dispatcher)
        self.options = TileLayerOptions(update_delay=0.05)
        self.viewport = MapViewport(500, 500, Location(0.0, 0.0), zoom_level=1.0)

    def create_layer(self, is_base_layer=True, **kw):
        kw.setdefault('tile_source', WmtsTileSource(WMTS_URL))
        kw.setdefault('tile_matrix_sets', [webmercator_matrix_set()])
        return WmtsTileLayer(name='wmts', options=self.options, loader=self.loader,
            viewport=self.viewport, is_base_layer=is_base_layer, **kw)

    def test_base_layer(self):
        layer = self.create_layer()
        assert [l.tile_matrix.identifier for l in layer.layers] == ['z0', 'z1']
        assert [len(l.tiles) for l in layer.layers] == [1, 4]

        process_until(self.dispatcher,
            lambda: all(not l.tiles.pending for l in layer.layers))

        assert sorted(self.client.requested) == sorted([
            'http://wmts.example.org/grid/z0/0/0.png',
            'http://wmts.example.org/grid/z1/0/0.png',
            'http://wmts.example.org/grid/z1/0/1.png',
            'http://wmts.example.org/grid/z1/1/0.png',
            'http://wmts.example.org/grid/z1/1/1.png',
        ])
        assert self.cache.get('wmts/grid/1/1/0.png') is not None
        assert len(layer.placement_groups()) == 2

    def test_overlay_layer(self):
        layer = self.create_layer(is_base_layer=False)
        assert [l.tile_matrix.identifier for l in layer.layers] == ['z1']

    def test_zoom_in_keeps_layers(self):
        layer = self.create_layer()
        first_layers = list(layer.layers)

        self.viewport.set_view(zoom_level=2.0)
        assert layer.layers == first_layers
        process_until(self.dispatcher, lambda: len(layer.layers) == 3)

        assert layer.layers[0] is first_layers[0]
        assert layer.layers[1] is first_layers[1]
        assert layer.layers[2].tile_matrix.identifier == 'z2'

    def test_unchanged_layers(self):
        layer = self.create_layer()
        tiles = [l.tiles for l in layer.layers]
        layer.update_tile_layer()
        assert [l.tiles for l in layer.layers] == tiles

    def test_no_matrix_set_for_crs(self):
        matrix_set = WmtsTileMatrixSet('utm', 'EPSG:25832', [webmercator_matrix(0)])
        layer = self.create_layer(tile_matrix_sets=[matrix_set])
        assert layer.layers == []
        assert layer.placement_groups() == []

    def test_without_tile_source(self):
        layer = self.create_layer(tile_source=None)
        assert len(layer.layers) == 2
        assert self.loader.queued_tiles == 0
        assert self.loader.active_workers == 0

    def test_capabilities_loader(self):
        calls = []

        def capabilities_loader(url, layer_identifier):
            calls.append((url, layer_identifier))
            return WmtsCapabilities('layer-1', WmtsTileSource(WMTS_URL),
                [webmercator_matrix_set()])

        layer = WmtsTileLayer('http://wmts.example.org/capabilities.xml', 'layer',
            name='wmts', options=self.options, loader=self.loader,
            viewport=self.viewport, capabilities_loader=capabilities_loader)
        assert layer.layers == []

        process_until(self.dispatcher, lambda: len(layer.layers) == 2)

        assert calls == [('http://wmts.example.org/capabilities.xml', 'layer')]
        assert layer.layer_identifier == 'layer-1'
        assert 'EPSG:3857' in layer.tile_matrix_sets
        assert layer.tile_source.tile_matrix_set is layer.tile_matrix_sets['EPSG:3857']

    def test_capabilities_failure(self, caplog):
        def capabilities_loader(url, layer_identifier):
            raise IOError('service unavailable')

        with caplog.at_level(logging.WARNING, logger='tileview.wmts'):
            layer = WmtsTileLayer('http://wmts.example.org/capabilities.xml',
                options=self.options, loader=self.loader, viewport=self.viewport,
                capabilities_loader=capabilities_loader)
            layer.load_capabilities().join(5)

        assert layer.layers == []
        assert layer.tile_source is None
        assert 'service unavailable' in caplog.text

    def test_capabilities_url_change_clears_matrix_sets(self):
        layer = self.create_layer()
        layer.capabilities_url = 'http://wmts.example.org/other.xml'
        assert layer.tile_matrix_sets == {}

    def test_missing_matrix_keeps_tile_pending(self):
        source = WmtsTileSource(WMTS_URL)
        source.tile_matrix_set = WmtsTileMatrixSet('grid', 'EPSG:3857', [webmercator_matrix(0)])
        tile = Tile(TileIndex(0, 0, 1), wraps=False)
        self.loader.load_tiles([tile], source, 'wmts')
        process_until(self.dispatcher, lambda: self.loader.active_workers == 0)
        self.dispatcher.process_events()
        assert tile.pending
        assert self.client.requested == []
