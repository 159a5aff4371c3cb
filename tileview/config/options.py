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
Validated options of tile layers.
"""
from tileview.config.config import load_default_config
from tileview.config.validator import validate
from tileview.exception import ConfigurationError

import logging
log = logging.getLogger('tileview.config')


class TileLayerOptions(object):
    """
    Options of a tile layer. All values are checked on construction.

    >>> TileLayerOptions(max_concurrent_fetches=0) #doctest: +ELLIPSIS
    Traceback (most recent call last):
    ...
    tileview.exception.ConfigurationError: ...
    """
    def __init__(self, max_concurrent_fetches=4, update_delay=0.5,
                 update_while_changing=False, max_background_levels=5,
                 min_zoom_level=0, max_zoom_level=18, zoom_level_offset=0.0):
        if not isinstance(max_concurrent_fetches, int) or max_concurrent_fetches < 1:
            raise ConfigurationError(
                'max_concurrent_fetches must be a positive integer, got %r'
                % (max_concurrent_fetches, ))
        if update_delay < 0:
            raise ConfigurationError('update_delay must not be negative, got %r' % (update_delay, ))
        if max_background_levels < 0:
            raise ConfigurationError(
                'max_background_levels must not be negative, got %r' % (max_background_levels, ))
        if min_zoom_level < 0 or min_zoom_level > max_zoom_level:
            raise ConfigurationError(
                'invalid zoom level range %r-%r' % (min_zoom_level, max_zoom_level))

        self.max_concurrent_fetches = max_concurrent_fetches
        self.update_delay = float(update_delay)
        self.update_while_changing = bool(update_while_changing)
        self.max_background_levels = max_background_levels
        self.min_zoom_level = min_zoom_level
        self.max_zoom_level = max_zoom_level
        self.zoom_level_offset = float(zoom_level_offset)

    @classmethod
    def from_config(cls, conf=None):
        """
        Create options from the ``tiles`` section of a loaded configuration.
        """
        if conf is None:
            conf = load_default_config()
        errors = validate(conf)
        if errors:
            for error in errors:
                log.error(error)
            raise ConfigurationError('invalid configuration: %s' % '; '.join(errors))
        return cls(**dict(conf.get('tiles', {})))

    def __repr__(self):
        return '%s(%s)' % (self.__class__.__name__, ', '.join(
            '%s=%r' % (k, v) for k, v in sorted(self.__dict__.items())))
