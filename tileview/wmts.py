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
Tile layers for WMTS tile matrix sets.
"""
from __future__ import division

import threading
from collections import namedtuple

from tileview.client.tile import TileSource
from tileview.grid import TileMatrixBounds
from tileview.grid.projector import map_to_tile_matrix_transform, tile_matrix_bounds
from tileview.layer import MapTileLayerBase
from tileview.tile import TileCollection, TilePlacement, reconcile_matrix_tiles
from tileview.util.affine import Affine, NonInvertibleTransformError

import logging
log = logging.getLogger('tileview.wmts')

# meters per pixel of the standardized rendering pixel size (0.28 mm)
PIXEL_SIZE = 0.00028
SCALE_TOLERANCE = 1.001


class WmtsTileMatrix(namedtuple('WmtsTileMatrix', [
        'identifier', 'scale_denominator', 'top_left',
        'tile_width', 'tile_height', 'matrix_width', 'matrix_height'])):
    """
    >>> m = WmtsTileMatrix('0', 559082264.0287178, (-20037508.3428, 20037508.3428),
    ...     256, 256, 1, 1)
    >>> round(m.scale * 20037508.3428 * 2)
    256
    """
    __slots__ = ()

    def __new__(cls, identifier, scale_denominator, top_left, tile_width, tile_height,
                matrix_width, matrix_height):
        return super(WmtsTileMatrix, cls).__new__(cls, identifier, float(scale_denominator),
            tuple(top_left), tile_width, tile_height, matrix_width, matrix_height)

    @property
    def scale(self):
        """
        Tile pixels per map unit.
        """
        return 1 / (self.scale_denominator * PIXEL_SIZE)


class WmtsTileMatrixSet(object):
    """
    Tile matrixes for one CRS, ordered by ascending scale.
    """
    def __init__(self, identifier, supported_crs, tile_matrixes):
        if not identifier:
            raise ValueError('identifier must not be empty')
        if not supported_crs:
            raise ValueError('supported_crs must not be empty')
        if not tile_matrixes:
            raise ValueError('tile_matrixes must not be empty')
        self.identifier = identifier
        self.supported_crs = supported_crs
        self.tile_matrixes = tuple(sorted(tile_matrixes, key=lambda m: m.scale))

    def __repr__(self):
        return 'WmtsTileMatrixSet(%r, %r, %d matrixes)' % (
            self.identifier, self.supported_crs, len(self.tile_matrixes))


class WmtsCapabilities(namedtuple('WmtsCapabilities',
        'layer_identifier tile_source tile_matrix_sets')):
    """
    Result of a capabilities loader: the layer identifier, a
    `WmtsTileSource` and the `WmtsTileMatrixSet` list of the layer.
    """
    __slots__ = ()


class WmtsTileSource(TileSource):
    """
    Tile source for RESTful WMTS URL templates. The zoom level of a tile is
    the index of its matrix in `tile_matrix_set`.

    >>> from tileview.grid import TileIndex
    >>> m = WmtsTileMatrix('L0', 1000.0, (0.0, 0.0), 256, 256, 4, 4)
    >>> s = WmtsTileSource('https://example.org/wmts/{TileMatrixSet}/{TileMatrix}/{TileRow}/{TileCol}.png')
    >>> s.tile_matrix_set = WmtsTileMatrixSet('grid', 'EPSG:3857', [m])
    >>> s.get_url(TileIndex(3, 1, 0))
    'https://example.org/wmts/grid/L0/1/3.png'
    >>> s.get_url(TileIndex(3, 1, 1)) is None
    True
    """
    def __init__(self, url_template, tile_matrix_set=None, http_client=None):
        TileSource.__init__(self, url_template, http_client=http_client)
        self.tile_matrix_set = tile_matrix_set

    def tile_column(self, index):
        return index.x

    def get_url(self, index):
        matrix_set = self.tile_matrix_set
        if matrix_set is None or not 0 <= index.zoom_level < len(matrix_set.tile_matrixes):
            return None
        return (self.url_template
            .replace('{TileMatrixSet}', matrix_set.identifier)
            .replace('{TileMatrix}', matrix_set.tile_matrixes[index.zoom_level].identifier)
            .replace('{TileCol}', str(index.x))
            .replace('{TileRow}', str(index.y)))


def select_tile_matrixes(tile_matrix_set, view_scale, is_base_layer=True,
                         max_background_levels=5):
    """
    Return the tile matrixes to show at `view_scale`, coarsest first.

    These are all matrixes with a scale up to the view scale, at least the
    coarsest one. Only the finest of them is used for overlay layers, at
    most ``max_background_levels + 1`` of the finest for the base layer.
    """
    max_scale = SCALE_TOLERANCE * view_scale
    matrixes = [m for m in tile_matrix_set.tile_matrixes if m.scale <= max_scale]

    if not matrixes:
        matrixes = [tile_matrix_set.tile_matrixes[0]]

    if not is_base_layer:
        matrixes = matrixes[-1:]
    elif len(matrixes) > max_background_levels + 1:
        matrixes = matrixes[len(matrixes) - max_background_levels - 1:]

    return matrixes


class WmtsTileMatrixLayer(object):
    """
    Visible tiles of one tile matrix. Tile positions are pixels relative to
    the upper left visible tile.
    """
    def __init__(self, tile_matrix, zoom_level):
        self.tile_matrix = tile_matrix
        self.zoom_level = zoom_level
        self.bounds = None
        self.tiles = TileCollection()
        self.placements = []
        self.transform = Affine.identity()

    def set_transform(self, viewport):
        if self.bounds is None:
            self.transform = Affine.identity()
            return
        matrix = self.tile_matrix
        self.transform = (Affine.identity()
            .translated(matrix.tile_width * self.bounds.x_min,
                        matrix.tile_height * self.bounds.y_min)
            .then(map_to_tile_matrix_transform(matrix).inverse())
            .then(viewport.viewport_transform))

    def set_bounds(self, inverse_viewport_transform, width, height):
        """
        Update the visible tile bounds. Returns ``True`` if they changed.
        """
        bounds = tile_matrix_bounds(inverse_viewport_transform, width, height,
            self.tile_matrix)
        if bounds == self.bounds:
            return False
        self.bounds = bounds
        return True

    def update_tiles(self):
        bounds = self.bounds or TileMatrixBounds(0, 0, -1, -1)
        self.tiles = reconcile_matrix_tiles(self.tiles, bounds, self.zoom_level)
        self.update_placements()
        return self.tiles

    def update_placements(self):
        matrix = self.tile_matrix
        placements = []
        if self.bounds is not None:
            for tile in self.tiles:
                placements.append(TilePlacement.for_tile(tile,
                    matrix.tile_width * (tile.x - self.bounds.x_min),
                    matrix.tile_height * (tile.y - self.bounds.y_min),
                    matrix.tile_width, matrix.tile_height))
        self.placements = placements

    def __repr__(self):
        return 'WmtsTileMatrixLayer(%r, %r)' % (self.tile_matrix.identifier, self.bounds)


class WmtsTileLayer(MapTileLayerBase):
    """
    Tile layer of a WMTS layer.

    The tile matrix sets and the tile source are loaded from
    `capabilities_url` in a background thread by
    ``capabilities_loader(capabilities_url, layer_identifier)``, which
    returns a `WmtsCapabilities`. Alternatively `tile_source` and
    `tile_matrix_sets` can be passed directly.
    """
    def __init__(self, capabilities_url=None, layer_identifier=None, name=None,
                 options=None, loader=None, viewport=None, is_base_layer=True,
                 capabilities_loader=None, tile_source=None, tile_matrix_sets=None,
                 dispatcher=None):
        self._capabilities_url = capabilities_url
        self.layer_identifier = layer_identifier
        self.capabilities_loader = capabilities_loader
        self.tile_matrix_sets = {}
        for matrix_set in tile_matrix_sets or []:
            self.tile_matrix_sets[matrix_set.supported_crs] = matrix_set
        self.layers = []
        MapTileLayerBase.__init__(self, tile_source=tile_source, name=name,
            options=options, loader=loader, viewport=viewport,
            is_base_layer=is_base_layer, dispatcher=dispatcher)

    @property
    def capabilities_url(self):
        return self._capabilities_url

    @capabilities_url.setter
    def capabilities_url(self, url):
        if url != self._capabilities_url:
            self._capabilities_url = url
            self.tile_matrix_sets.clear()

    def set_viewport(self, viewport):
        MapTileLayerBase.set_viewport(self, viewport)
        if viewport is not None and not self.tile_matrix_sets and self.capabilities_url:
            self.load_capabilities()

    def load_capabilities(self):
        """
        Start loading the capabilities in a background thread.
        """
        if self.capabilities_loader is None:
            log.warning('%s: no capabilities loader configured', self.capabilities_url)
            return None
        thread = threading.Thread(target=self._load_capabilities,
            args=(self.capabilities_url, self.layer_identifier),
            name='WmtsTileLayer-capabilities')
        thread.daemon = True
        thread.start()
        return thread

    def _load_capabilities(self, url, layer_identifier):
        try:
            capabilities = self.capabilities_loader(url, layer_identifier)
        except Exception as ex:
            log.warning('%s: %s', url, ex)
            return
        if capabilities is not None:
            self.dispatcher.invoke(self.capabilities_loaded, capabilities)

    def capabilities_loaded(self, capabilities):
        self.layer_identifier = capabilities.layer_identifier
        for matrix_set in capabilities.tile_matrix_sets:
            self.tile_matrix_sets[matrix_set.supported_crs] = matrix_set
        log.debug('loaded %d tile matrix sets for %s', len(capabilities.tile_matrix_sets),
            self.layer_identifier)
        self.tile_source = capabilities.tile_source

    def tile_source_changed(self):
        self.layers = []
        self.update_tile_layer()

    def has_tile_state(self):
        return bool(self.layers)

    def update_tile_layer(self):
        self._update_timer.cancel()
        viewport = self.viewport
        matrix_set = None
        if viewport is not None:
            matrix_set = self.tile_matrix_sets.get(viewport.crs_id)

        if matrix_set is None:
            self.layers = []
            self.update_tiles(None)
            return

        try:
            layers_changed = self.update_child_layers(matrix_set)
        except NonInvertibleTransformError as ex:
            log.error('unable to update tile matrix layers of %r: %s', self, ex)
            return

        if layers_changed:
            self.set_transform()
            self.update_tiles(matrix_set)

    def update_child_layers(self, matrix_set):
        """
        Update `layers` for the current view scale. Returns ``True`` if
        layers were added, removed or changed their bounds.
        """
        viewport = self.viewport
        inverse_transform = viewport.inverse_viewport_transform
        matrixes = select_tile_matrixes(matrix_set, viewport.view_scale,
            self.is_base_layer, self.options.max_background_levels)

        current_layers = dict((layer.tile_matrix, layer) for layer in self.layers)
        layers_changed = [l.tile_matrix for l in self.layers] != list(matrixes)
        layers = []

        for matrix in matrixes:
            layer = current_layers.get(matrix)
            if layer is None:
                layer = WmtsTileMatrixLayer(matrix, matrix_set.tile_matrixes.index(matrix))
                layers_changed = True
            if layer.set_bounds(inverse_transform, viewport.width, viewport.height):
                layers_changed = True
            layers.append(layer)

        self.layers = layers
        return layers_changed

    def set_transform(self):
        if self.viewport is None:
            return
        for layer in self.layers:
            layer.set_transform(self.viewport)

    def update_tiles(self, matrix_set):
        tiles = []
        for layer in self.layers:
            tiles.extend(layer.update_tiles())

        source_name = self.name
        if self.tile_source is not None and matrix_set is not None:
            self.tile_source.tile_matrix_set = matrix_set
            if source_name:
                source_name = '%s/%s' % (source_name, matrix_set.identifier)

        self.load_tiles(tiles, source_name)
        self.notify_changed()

    def update_placements(self):
        for layer in self.layers:
            layer.update_placements()

    def placement_groups(self):
        return [(layer.transform, layer.placements) for layer in self.layers]
