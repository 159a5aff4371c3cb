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
Tile caches (in memory or on disk).
"""
from tileview.cache.base import (
    TileCacheBase,
    CacheItem,
    CacheBackendError,
    cache_key,
)
from tileview.cache.memory import MemoryTileCache
from tileview.cache.file import FileTileCache

__all__ = [
    'TileCacheBase', 'CacheItem', 'CacheBackendError', 'cache_key',
    'MemoryTileCache', 'FileTileCache', 'cache_from_config',
]


def cache_from_config(conf):
    """
    Create the tile cache for the ``cache`` section of `conf`.
    """
    cache_conf = conf.get('cache', {})
    if cache_conf.get('base_dir'):
        return FileTileCache(cache_conf['base_dir'],
            directory_permissions=cache_conf.get('directory_permissions'),
            file_permissions=cache_conf.get('file_permissions'))
    return MemoryTileCache(max_items=cache_conf.get('max_items'))
