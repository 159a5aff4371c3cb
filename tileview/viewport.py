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
Map viewport state and change notification.
"""
from __future__ import division

from tileview.grid.projector import TILE_SIZE, WORLD_SIZE
from tileview.location import Location, normalize_longitude
from tileview.projection import WebMercatorProjection, projection_for_crs
from tileview.util.affine import Affine

import logging
log = logging.getLogger('tileview.system')


class MapViewport(object):
    """
    The visible part of the map: projection, center, continuous zoom level,
    heading (clockwise degrees) and view size in pixels.

    Listeners registered with `subscribe` are called with the viewport after
    every change. The viewport must only be changed from the control thread.
    """
    def __init__(self, width=0, height=0, center=None, zoom_level=0.0, heading=0.0,
                 projection=None):
        self.projection = projection or WebMercatorProjection()
        self.width = width
        self.height = height
        self.center = self._coerce_center(center or Location(0.0, 0.0))
        self.zoom_level = float(zoom_level)
        self.heading = float(heading)
        self._listeners = []

    @staticmethod
    def _coerce_center(center):
        return Location(center.latitude, normalize_longitude(center.longitude))

    @property
    def crs_id(self):
        return self.projection.crs_id

    @property
    def view_scale(self):
        """
        View pixels per map meter.
        """
        return TILE_SIZE * 2.0 ** self.zoom_level / WORLD_SIZE

    @property
    def map_origin(self):
        """
        Map coordinates of the viewport center.
        """
        return self.projection.location_to_map(self.center)

    @property
    def view_origin(self):
        return (self.width / 2, self.height / 2)

    @property
    def viewport_transform(self):
        """
        `Affine` from map meters to view pixels.
        """
        origin_x, origin_y = self.map_origin
        scale = self.view_scale
        return (Affine.identity()
            .translated(-origin_x, -origin_y)
            .scaled(scale, -scale)
            .rotated(self.heading)
            .translated(*self.view_origin))

    @property
    def inverse_viewport_transform(self):
        return self.viewport_transform.inverse()

    def subscribe(self, callback):
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unsubscribe(self, callback):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self):
        for callback in list(self._listeners):
            callback(self)

    def set_view(self, center=None, zoom_level=None, heading=None):
        changed = False
        if center is not None:
            center = self._coerce_center(center)
            if center != self.center:
                self.center = center
                changed = True
        if zoom_level is not None and zoom_level != self.zoom_level:
            self.zoom_level = float(zoom_level)
            changed = True
        if heading is not None and heading != self.heading:
            self.heading = float(heading) % 360.0
            changed = True
        if changed:
            self._notify()

    def set_size(self, width, height):
        if (width, height) != (self.width, self.height):
            self.width = width
            self.height = height
            self._notify()

    def set_projection(self, projection):
        if isinstance(projection, str):
            projection = projection_for_crs(projection)
        if projection.crs_id != self.projection.crs_id:
            log.debug('switching viewport projection to %s', projection.crs_id)
            self.projection = projection
            self._notify()

    def __repr__(self):
        return '%s(%r, zoom_level=%r, heading=%r, size=(%r, %r))' % (
            self.__class__.__name__, self.center, self.zoom_level, self.heading,
            self.width, self.height)
