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
Tile layers keep the tiles of a tile source in sync with a `MapViewport`.
"""
from __future__ import division

from tileview.config.options import TileLayerOptions
from tileview.dispatch import DelayedCall
from tileview.grid.projector import (
    TILE_SIZE,
    is_antimeridian_leap,
    map_to_tile_transform,
    tile_grid_for_viewport,
    zoom_level_for_viewport,
)
from tileview.loader import TileImageLoader
from tileview.tile import TileCollection, TilePlacement, reconcile_tiles
from tileview.util.affine import Affine, NonInvertibleTransformError

import logging
log = logging.getLogger('tileview.system')


class MapTileLayerBase(object):
    """
    Base class of tile layers.

    Viewport changes only update the layer `transform` and restart the
    update timer. The tiles are updated once the viewport did not change
    for ``options.update_delay`` seconds, immediately if
    ``options.update_while_changing`` is set or if the map center crossed
    the antimeridian.

    All methods must be called from the control thread, i.e. the thread
    that runs ``dispatcher.process_events``. Layers of one map must share
    a `Dispatcher`, either through `dispatcher` or a shared `loader`.
    """
    def __init__(self, tile_source=None, name=None, options=None, loader=None,
                 viewport=None, is_base_layer=True, dispatcher=None):
        if (loader is not None and dispatcher is not None and
            loader.dispatcher is not dispatcher):
            raise ValueError('loader uses a different dispatcher')
        self.name = name
        self.options = options or TileLayerOptions()
        self.loader = loader or TileImageLoader(
            max_concurrent_fetches=self.options.max_concurrent_fetches,
            dispatcher=dispatcher)
        self.is_base_layer = is_base_layer
        self.transform = Affine.identity()
        self._tile_source = tile_source
        self._listeners = []
        self._origin_longitude = None
        self._update_timer = DelayedCall(self.dispatcher, self.options.update_delay,
            self.update_tile_layer)
        self.viewport = None
        if viewport is not None:
            self.set_viewport(viewport)

    @property
    def dispatcher(self):
        return self.loader.dispatcher

    @property
    def tile_source(self):
        return self._tile_source

    @tile_source.setter
    def tile_source(self, tile_source):
        if tile_source is not self._tile_source:
            self._tile_source = tile_source
            self.tile_source_changed()

    def tile_source_changed(self):
        self.update_tile_layer()

    @property
    def update_pending(self):
        """
        ``True`` while the delayed tile update is scheduled.
        """
        return self._update_timer.active

    def subscribe(self, callback):
        """
        Register `callback` to be called with the layer whenever its
        transform, tiles or tile images changed.
        """
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unsubscribe(self, callback):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def notify_changed(self):
        for callback in list(self._listeners):
            callback(self)

    def set_viewport(self, viewport):
        if self.viewport is not None:
            self.viewport.unsubscribe(self.viewport_changed)
        self.viewport = viewport
        if viewport is not None:
            viewport.subscribe(self.viewport_changed)
            self._origin_longitude = viewport.center.longitude
        self.update_tile_layer()

    def viewport_changed(self, viewport):
        origin_longitude = viewport.center.longitude

        if (not self.has_tile_state() or
            is_antimeridian_leap(origin_longitude, self._origin_longitude)):
            self.update_tile_layer()
        else:
            self.set_transform()
            self.notify_changed()
            if self.options.update_while_changing:
                self.update_tile_layer()
            else:
                self._update_timer.restart()

        self._origin_longitude = origin_longitude

    def close(self):
        """
        Stop updates and detach the layer from its viewport.
        """
        self._update_timer.cancel()
        if self.viewport is not None:
            self.viewport.unsubscribe(self.viewport_changed)
            self.viewport = None
        self.loader.load_tiles([], None)

    def load_tiles(self, tiles, source_name):
        self.loader.load_tiles(tiles, self.tile_source, source_name,
            tile_loaded=self.tile_loaded)

    def tile_loaded(self, tile):
        self.update_placements()
        self.notify_changed()

    def has_tile_state(self):
        raise NotImplementedError()

    def update_tile_layer(self):
        raise NotImplementedError()

    def set_transform(self):
        raise NotImplementedError()

    def update_placements(self):
        raise NotImplementedError()

    def placement_groups(self):
        """
        Return a list of ``(transform, placements)`` pairs. Each transform
        maps the pixel coordinates of its `TilePlacement` records to view
        pixels.
        """
        raise NotImplementedError()

    def __repr__(self):
        return '%s(%r, name=%r)' % (self.__class__.__name__, self.tile_source, self.name)


class MapTileLayer(MapTileLayerBase):
    """
    Layer of a tile pyramid in Web Mercator with 256 pixel tiles.

    The base layer also shows lower resolution tiles of the zoom levels
    down to `min_zoom_level` behind the current level.
    """
    def __init__(self, tile_source=None, name=None, options=None, loader=None,
                 viewport=None, is_base_layer=True, dispatcher=None):
        options = options or TileLayerOptions()
        self.min_zoom_level = options.min_zoom_level
        self.max_zoom_level = options.max_zoom_level
        self.zoom_level_offset = options.zoom_level_offset
        self.tile_grid = None
        self.tiles = TileCollection()
        self.placements = []
        MapTileLayerBase.__init__(self, tile_source=tile_source, name=name,
            options=options, loader=loader, viewport=viewport,
            is_base_layer=is_base_layer, dispatcher=dispatcher)

    def has_tile_state(self):
        return self.tile_grid is not None

    def tile_source_changed(self):
        self.update_tiles(clear_tiles=True)

    def update_tile_layer(self):
        self._update_timer.cancel()
        viewport = self.viewport

        if viewport is None:
            self.tile_grid = None
            self.update_tiles(clear_tiles=True)
            return

        try:
            inverse_transform = viewport.inverse_viewport_transform
        except NonInvertibleTransformError as ex:
            log.error('unable to update tile grid of %r: %s', self, ex)
            return

        zoom_level = zoom_level_for_viewport(viewport.zoom_level, self.zoom_level_offset)
        tile_grid = tile_grid_for_viewport(inverse_transform,
            viewport.width, viewport.height, zoom_level)

        if tile_grid != self.tile_grid:
            self.tile_grid = tile_grid
            self.set_transform()
            self.update_tiles()

    def set_transform(self):
        if self.tile_grid is None or self.viewport is None:
            self.transform = Affine.identity()
            return
        grid = self.tile_grid
        self.transform = (Affine.identity()
            .translated(TILE_SIZE * grid.x_min, TILE_SIZE * grid.y_min)
            .scaled(1 / TILE_SIZE, 1 / TILE_SIZE)
            .then(map_to_tile_transform(grid.zoom_level).inverse())
            .then(self.viewport.viewport_transform))

    def update_tiles(self, clear_tiles=False):
        previous = TileCollection() if clear_tiles else self.tiles

        if (self.tile_grid is not None and self.viewport is not None and
            self.tile_source is not None):
            self.tiles = reconcile_tiles(previous, self.tile_grid,
                self.min_zoom_level, self.max_zoom_level, self.is_base_layer)
        else:
            self.tiles = TileCollection()

        self.update_placements()
        self.load_tiles(self.tiles, self.name)
        self.notify_changed()

    def update_placements(self):
        grid = self.tile_grid
        placements = []
        if grid is not None:
            for tile in self.tiles:
                size = TILE_SIZE << (grid.zoom_level - tile.zoom_level)
                placements.append(TilePlacement.for_tile(tile,
                    size * tile.x - TILE_SIZE * grid.x_min,
                    size * tile.y - TILE_SIZE * grid.y_min,
                    size, size))
        self.placements = placements

    def placement_groups(self):
        return [(self.transform, self.placements)]
