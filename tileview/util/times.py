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
Date and time utilities.
"""
import time

DEFAULT_CACHE_EXPIRATION = 3600 * 24


def now_millis():
    """
    Current wall-clock time in milliseconds since the epoch.
    """
    return int(time.time() * 1000)


def max_age(cache_control, default=DEFAULT_CACHE_EXPIRATION):
    """
    Return the ``max-age`` seconds of a Cache-Control header value,
    `default` if the directive is missing or invalid. Negative values
    are floored to zero.

    >>> max_age('public, max-age=120')
    120
    >>> max_age('no-cache')
    86400
    >>> max_age('max-age=abc')
    86400
    >>> max_age('max-age=-5')
    0
    """
    if not cache_control:
        return default
    for directive in cache_control.split(','):
        directive = directive.strip()
        if directive.lower().startswith('max-age='):
            try:
                return max(int(directive[8:].strip()), 0)
            except ValueError:
                return default
    return default


def cache_expiration(headers, default=DEFAULT_CACHE_EXPIRATION, now=None):
    """
    Return the absolute expiration in epoch milliseconds for a response
    with the given `headers`.
    """
    if now is None:
        now = now_millis()
    return now + 1000 * max_age(headers.get('cache-control'), default)
