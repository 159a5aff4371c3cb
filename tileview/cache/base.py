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
Tile image caching.

Caches store encoded tile images (the raw response bytes) together with an
absolute expiration time. Expired items are still returned by `get`, so that
loaders can fall back to them when revalidation fails.
"""
import posixpath
from abc import ABC, abstractmethod
from collections import namedtuple
from urllib.parse import urlsplit

from tileview.util.times import now_millis

DEFAULT_EXTENSION = '.jpg'


class CacheBackendError(Exception):
    pass


class CacheItem(namedtuple('CacheItem', 'buffer expiration')):
    """
    Cached tile data with `expiration` in milliseconds since the epoch.
    """
    __slots__ = ()

    def is_expired(self, now=None):
        if now is None:
            now = now_millis()
        return self.expiration < now


class TileCacheBase(ABC):
    """
    Base class of all tile caches. Implementations must be safe for
    concurrent calls from multiple loader threads.
    """

    @abstractmethod
    def get(self, key: str):
        """
        Return the `CacheItem` for `key` or ``None``.
        """
        pass

    @abstractmethod
    def set(self, key: str, buffer: bytes, expiration: int):
        """
        Store `buffer` for `key`, replacing any existing item.
        """
        pass


def url_extension(url):
    """
    Return the file extension of the `url` path, `DEFAULT_EXTENSION` if
    there is none.

    >>> url_extension('https://tile.example.org/4/8/5.png')
    '.png'
    >>> url_extension('https://tile.example.org/4/8/5?style=dark')
    '.jpg'
    >>> url_extension('https://tile.example.org/tiles/.hidden')
    '.jpg'
    """
    try:
        path = urlsplit(url).path
    except ValueError:
        return DEFAULT_EXTENSION
    file_name = posixpath.basename(path)
    ext_index = file_name.rfind('.')
    if ext_index > 0:
        return file_name[ext_index:]
    return DEFAULT_EXTENSION


def cache_key(source_name, zoom_level, column, row, url):
    """
    >>> cache_key('osm', 3, 7, 2, 'https://tile.example.org/3/7/2.png')
    'osm/3/7/2.png'
    """
    return '%s/%d/%d/%d%s' % (source_name, zoom_level, column, row, url_extension(url))
