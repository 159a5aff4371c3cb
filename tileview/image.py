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
Decoding of tile image buffers.
"""
from io import BytesIO

from PIL import Image, UnidentifiedImageError


magic_bytes = [
    ('png', (b"\211PNG\r\n\032\n",)),
    ('jpeg', (b"\xFF\xD8",)),
    ('tiff', (b"MM\x00\x2a", b"II\x2a\x00",)),
    ('gif', (b"GIF87a", b"GIF89a",)),
    ('webp', (b"RIFF",)),
]


class ImageDecodeError(Exception):
    pass


def peek_image_format(buf):
    """
    >>> peek_image_format(b'\\x89PNG\\r\\n\\x1a\\n...')
    'png'
    >>> peek_image_format(b'<html>') is None
    True
    """
    header = bytes(buf[:10])
    for format, magic in magic_bytes:
        if header.startswith(magic):
            return format
    return None


def decode_image(buffer):
    """
    Decode `buffer` into a fully loaded Pillow image.

    :raises ImageDecodeError: if the data is not a readable image
    """
    if not buffer:
        raise ImageDecodeError('empty image buffer')
    try:
        img = Image.open(BytesIO(buffer))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as ex:
        raise ImageDecodeError('unable to decode %s image: %s' % (
            peek_image_format(buffer) or 'unknown', ex))
    return img
