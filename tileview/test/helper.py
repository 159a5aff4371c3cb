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
import time

from requests.structures import CaseInsensitiveDict

from tileview.test.image import create_tmp_image

red_tile = create_tmp_image((256, 256), color=(255, 0, 0))
blue_tile = create_tmp_image((256, 256), color=(0, 0, 255))


class FakeResponse(object):
    def __init__(self, content, headers=None):
        self.content = content
        self.headers = CaseInsensitiveDict(headers or {})


class FakeHTTPClient(object):
    """
    Returns the configured response for each URL, `default` for all other
    URLs. Exceptions in `responses` are raised. Records the requested URLs
    and the maximum number of concurrent requests.
    """
    def __init__(self, responses=None, default=red_tile, delay=0.0, gate=None):
        self.responses = responses or {}
        self.default = default
        self.delay = delay
        self.gate = gate
        self.requested = []
        self.active = 0
        self.max_active = 0
        self.lock = threading.Lock()

    def open(self, url):
        with self.lock:
            self.requested.append(url)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                self.gate.wait(5)
            if self.delay:
                time.sleep(self.delay)
            response = self.responses.get(url, self.default)
            if isinstance(response, Exception):
                raise response
            if isinstance(response, FakeResponse):
                return response
            return FakeResponse(response)
        finally:
            with self.lock:
                self.active -= 1


def process_until(dispatcher, condition, timeout=5.0):
    """
    Process dispatcher events until `condition()` is true.
    """
    deadline = time.time() + timeout
    while not condition():
        if time.time() > deadline:
            raise AssertionError('condition not reached within %s seconds' % timeout)
        dispatcher.process_events(timeout=0.02)
