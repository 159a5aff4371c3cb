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
Tile sources build tile URLs from tile indices and retrieve tile images.
"""
import os
from urllib.parse import urlsplit, unquote
from urllib.request import url2pathname

from tileview.client.http import HTTPClient
from tileview.image import decode_image


class TileSourceError(Exception):
    pass


class TileSource(object):
    """
    Tile source for a regular tile pyramid.

    The `url_template` may contain the placeholders ``{x}``, ``{y}``,
    ``{z}``, ``{s}`` (rotating subdomain) and ``{quadkey}``. The column
    is always the wrapped column index.

    >>> from tileview.grid import TileIndex
    >>> s = TileSource('https://{s}.tile.example.org/{z}/{x}/{y}.png', subdomains='abc')
    >>> s.get_url(TileIndex(-1, 1, 2))
    'https://b.tile.example.org/2/3/1.png'
    """
    def __init__(self, url_template, subdomains=None, http_client=None):
        self.url_template = url_template
        self.subdomains = list(subdomains) if subdomains else []
        self.http_client = http_client

    @property
    def is_http(self):
        return self.url_template.lower().startswith(('http://', 'https://'))

    def tile_column(self, index):
        return index.wrapped_x

    def tile_row(self, index):
        return index.y

    def get_url(self, index):
        """
        Return the URL of the tile, or ``None`` if the source has no tile
        for `index`.
        """
        x = self.tile_column(index)
        y = self.tile_row(index)
        url = (self.url_template
            .replace('{x}', str(x))
            .replace('{y}', str(y))
            .replace('{z}', str(index.zoom_level)))
        if '{s}' in url and self.subdomains:
            url = url.replace('{s}', self.subdomains[(x + y) % len(self.subdomains)])
        if '{quadkey}' in url:
            url = url.replace('{quadkey}', quadkey(x, y, index.zoom_level))
        return url

    def get_image(self, index, http_client=None):
        """
        Retrieve and decode the tile image without caching.
        """
        return decode_image(self.get_buffer(index, http_client=http_client))

    def get_buffer(self, index, http_client=None):
        url = self.get_url(index)
        if url is None:
            raise TileSourceError('no tile URL for %r' % (index, ))
        if self.is_http:
            client = http_client or self.http_client or HTTPClient()
            return client.open(url).content
        return read_file(url)

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self.url_template)


class TMSTileSource(TileSource):
    """
    Tile source with rows counted from the bottom (TMS).

    >>> from tileview.grid import TileIndex
    >>> TMSTileSource('/tiles/{z}/{x}/{y}.png').get_url(TileIndex(0, 0, 1))
    '/tiles/1/0/1.png'
    """
    def tile_row(self, index):
        return (1 << index.zoom_level) - 1 - index.y


def read_file(url):
    """
    Read a tile from a ``file://`` URL or a local path.
    """
    if url.lower().startswith('file:'):
        url = url2pathname(unquote(urlsplit(url).path))
    try:
        with open(os.path.expanduser(url), 'rb') as f:
            return f.read()
    except OSError as ex:
        raise TileSourceError('unable to read tile file %s: %s' % (url, ex))


def quadkey(x, y, zoom_level):
    """
    >>> quadkey(0, 0, 1)
    '0'
    >>> quadkey(1, 0, 1)
    '1'
    >>> quadkey(1, 2, 2)
    '21'
    """
    key = ''
    for i in range(zoom_level, 0, -1):
        digit = 0
        mask = 1 << (i-1)
        if (x & mask) != 0:
            digit += 1
        if (y & mask) != 0:
            digit += 2
        key += str(digit)
    return key
