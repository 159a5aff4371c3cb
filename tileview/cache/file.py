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

import os
import errno

from tileview.cache.base import TileCacheBase, CacheItem, CacheBackendError
from tileview.util.fs import ensure_directory, write_atomic

import logging
log = logging.getLogger('tileview.cache')


class FileTileCache(TileCacheBase):
    """
    Stores each tile buffer in a file below `cache_dir`. The cache key is
    used as relative path and the expiration is stored as modification
    time of the file.
    """
    def __init__(self, cache_dir, directory_permissions=None, file_permissions=None):
        self.cache_dir = cache_dir
        self.directory_permissions = directory_permissions
        self.file_permissions = file_permissions

    def tile_location(self, key):
        """
        >>> c = FileTileCache(cache_dir='/tmp/cache')
        >>> c.tile_location('osm/2/1/3.png').replace('\\\\', '/')
        '/tmp/cache/osm/2/1/3.png'
        >>> c.tile_location('../etc/passwd') #doctest: +ELLIPSIS
        Traceback (most recent call last):
        ...
        tileview.cache.base.CacheBackendError: ...
        """
        parts = key.split('/')
        if any(part in ('', '.', '..') or os.sep in part for part in parts):
            raise CacheBackendError('invalid cache key %r' % (key, ))
        location = os.path.join(self.cache_dir, *parts)
        return location

    def get(self, key):
        location = self.tile_location(key)
        try:
            stats = os.stat(location)
            with open(location, 'rb') as f:
                buffer = f.read()
        except OSError as ex:
            if ex.errno == errno.ENOENT:
                return None
            raise CacheBackendError('unable to read %s: %s' % (location, ex))
        return CacheItem(buffer, int(stats.st_mtime * 1000))

    def set(self, key, buffer, expiration):
        location = self.tile_location(key)
        try:
            ensure_directory(location, self.directory_permissions)
            log.debug('writing %s to %s', key, location)
            write_atomic(location, buffer)
            expiration_seconds = expiration / 1000.0
            os.utime(location, (expiration_seconds, expiration_seconds))
            if self.file_permissions:
                permission = int(self.file_permissions, base=8)
                os.chmod(location, permission)
        except OSError as ex:
            raise CacheBackendError('unable to write %s: %s' % (location, ex))

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self.cache_dir)
