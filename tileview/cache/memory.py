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

import threading
from collections import OrderedDict

from tileview.cache.base import TileCacheBase, CacheItem

import logging
log = logging.getLogger('tileview.cache')


class MemoryTileCache(TileCacheBase):
    """
    In-process tile cache. Removes the least recently used items when
    `max_items` is set.
    """
    def __init__(self, max_items=None):
        self.max_items = max_items
        self._items = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            item = self._items.get(key)
            if item is not None:
                self._items.move_to_end(key)
            return item

    def set(self, key, buffer, expiration):
        with self._lock:
            self._items[key] = CacheItem(bytes(buffer), int(expiration))
            self._items.move_to_end(key)
            if self.max_items is not None:
                while len(self._items) > self.max_items:
                    removed, _ = self._items.popitem(last=False)
                    log.debug('removed %s from memory cache', removed)

    def __len__(self):
        with self._lock:
            return len(self._items)

    def __repr__(self):
        return '%s(max_items=%r)' % (self.__class__.__name__, self.max_items)
