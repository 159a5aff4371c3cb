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

tiles = dict(
    # number of concurrent tile downloads per layer
    max_concurrent_fetches = 4,
    # seconds to wait for the viewport to settle before updating tiles
    update_delay = 0.5,
    update_while_changing = False,
    max_background_levels = 5,
    min_zoom_level = 0,
    max_zoom_level = 18,
    zoom_level_offset = 0.0,
)

http = dict(
    connect_timeout = 10,
    read_timeout = 10,
    ssl_ca_certs = None,
    ssl_no_cert_checks = False,
    headers = {},
)

cache = dict(
    # seconds, used when responses have no Cache-Control max-age
    default_expiration = 3600 * 24,
    # directory of the file cache, memory cache if not set
    base_dir = None,
    # maximum number of tiles of the memory cache
    max_items = None,
    directory_permissions = None,
    file_permissions = None,
)
