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
Concurrent loading of tile images with cache revalidation.
"""
import threading
from collections import deque

from tileview.cache.base import CacheBackendError, cache_key
from tileview.client.http import HTTPClient, HTTPClientError, http_client_from_config
from tileview.client.tile import TileSourceError
from tileview.dispatch import Dispatcher
from tileview.image import decode_image, ImageDecodeError
from tileview.util.times import DEFAULT_CACHE_EXPIRATION, cache_expiration

import logging
log = logging.getLogger('tileview.loader')
log_cache = logging.getLogger('tileview.cache')

DEFAULT_MAX_CONCURRENT_FETCHES = 4


def is_tile_available(headers):
    """
    Return ``False`` if the response headers mark the tile as missing.

    >>> is_tile_available({'X-VE-Tile-Info': 'no-tile'})
    False
    >>> is_tile_available({})
    True
    """
    tile_info = headers.get('X-VE-Tile-Info')
    return tile_info is None or 'no-tile' not in tile_info


def is_http_url(url):
    return url.lower().startswith(('http://', 'https://'))


class TileImageLoader(object):
    """
    Loads the images of pending tiles with at most `max_concurrent_fetches`
    worker threads.

    Workers take tiles from a shared FIFO queue until it is empty. Results
    are applied to the tiles on the control thread through `dispatcher`.
    A tile stays pending if loading fails.

    :param cache: `TileCacheBase` for HTTP tiles, or ``None``
    :param http_client: client for cached HTTP requests
    :param default_expiration: cache lifetime in seconds for responses
        without a Cache-Control max-age
    """
    def __init__(self, cache=None, max_concurrent_fetches=DEFAULT_MAX_CONCURRENT_FETCHES,
                 http_client=None, default_expiration=DEFAULT_CACHE_EXPIRATION,
                 dispatcher=None):
        if max_concurrent_fetches < 1:
            raise ValueError('max_concurrent_fetches must be positive')
        self.cache = cache
        self.max_concurrent_fetches = max_concurrent_fetches
        self.http_client = http_client or HTTPClient()
        self.default_expiration = default_expiration
        self.dispatcher = dispatcher or Dispatcher()
        self._lock = threading.Lock()
        self._tile_queue = deque()
        self._active_workers = 0

    @property
    def active_workers(self):
        with self._lock:
            return self._active_workers

    @property
    def queued_tiles(self):
        with self._lock:
            return len(self._tile_queue)

    def load_tiles(self, tiles, tile_source, source_name=None, tile_loaded=None):
        """
        Replace the queue with the pending `tiles` and start workers.

        Tiles that were queued by a previous call and not yet started are
        dropped. Running requests are not interrupted.

        :param tile_loaded: called with each tile on the control thread,
            after its image was set
        """
        pending = [tile for tile in tiles if tile.pending]

        with self._lock:
            self._tile_queue.clear()

            if tile_source is None or not pending:
                return

            for tile in pending:
                self._tile_queue.append((tile, tile_source, source_name, tile_loaded))

            num_workers = min(len(pending), self.max_concurrent_fetches) - self._active_workers
            for _ in range(num_workers):
                self._active_workers += 1
                worker = threading.Thread(target=self._run_worker,
                    name='TileImageLoader-worker')
                worker.daemon = True
                worker.start()

        log.debug('queued %d tiles of %s', len(pending), source_name or tile_source)

    def _next_tile(self):
        with self._lock:
            if not self._tile_queue:
                self._active_workers -= 1
                return None
            return self._tile_queue.popleft()

    def _run_worker(self):
        while True:
            task = self._next_tile()
            if task is None:
                return
            tile, tile_source, source_name, tile_loaded = task
            try:
                image = self.load_image(tile, tile_source, source_name)
            except Exception as ex:
                log.warning('unable to load tile %s of %s: %s',
                    tuple(tile.index), source_name or tile_source, ex)
                continue
            self.dispatcher.invoke(self._set_tile_image, tile, image, tile_loaded)

    def _set_tile_image(self, tile, image, tile_loaded):
        tile.set_image(image)
        if tile_loaded is not None:
            tile_loaded(tile)

    def load_image(self, tile, tile_source, source_name=None):
        """
        Return the image of `tile`, or ``None`` if the server has no image
        for it.

        HTTP tiles are read from the cache when a cache and a source name
        are available. Missing or expired items are requested again; an
        expired image is returned if that request fails.

        :raise HTTPClientError: if the request fails and there is no cached image
        :raise TileSourceError: if the source has no URL for the tile
        """
        url = tile_source.get_url(tile.index)
        if url is None:
            raise TileSourceError('no tile URL for %r' % (tuple(tile.index), ))

        if self.cache is None or not source_name or not is_http_url(url):
            return tile_source.get_image(tile.index, http_client=self.http_client)

        key = cache_key(source_name, tile.zoom_level, tile.column, tile.y, url)
        image = None
        cache_item = None
        try:
            cache_item = self.cache.get(key)
        except CacheBackendError as ex:
            log_cache.warning('unable to read cached tile %s: %s', key, ex)

        if cache_item is not None:
            try:
                image = decode_image(cache_item.buffer)
            except ImageDecodeError as ex:
                log_cache.warning('unable to decode cached tile %s: %s', key, ex)

        if image is not None and not cache_item.is_expired():
            return image

        try:
            loaded_image = self._load_image_from_url(url, key)
        except (HTTPClientError, ImageDecodeError) as ex:
            if image is None:
                raise
            log.warning('%s: %s, using expired cached tile', url, ex)
            return image

        if loaded_image is None:
            return image
        return loaded_image

    def _load_image_from_url(self, url, key):
        response = self.http_client.open(url)

        if not is_tile_available(response.headers):
            log.debug('%s: no tile available', url)
            return None

        buffer = response.content
        image = decode_image(buffer)
        expiration = cache_expiration(response.headers, self.default_expiration)
        try:
            self.cache.set(key, buffer, expiration)
        except CacheBackendError as ex:
            log_cache.warning('unable to store tile %s: %s', key, ex)
        return image


def loader_from_config(conf, cache=None, dispatcher=None, http_client=None):
    tiles_conf = conf.get('tiles', {})
    return TileImageLoader(
        cache=cache,
        max_concurrent_fetches=tiles_conf.get('max_concurrent_fetches',
            DEFAULT_MAX_CONCURRENT_FETCHES),
        http_client=http_client or http_client_from_config(conf),
        default_expiration=conf.get('cache', {}).get('default_expiration',
            DEFAULT_CACHE_EXPIRATION),
        dispatcher=dispatcher,
    )
