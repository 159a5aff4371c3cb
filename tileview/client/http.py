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
HTTP access to tile servers.
"""
import time

import requests

from tileview.version import version
from tileview.client.log import log_request


class HTTPClientError(Exception):
    def __init__(self, arg, response_code=None, full_msg=None):
        Exception.__init__(self, arg)
        self.response_code = response_code
        self.full_msg = full_msg


class HTTPClient(object):
    """
    Blocking HTTP client with separate connect and read timeouts (seconds).
    One client can be shared by all loader threads.
    """
    def __init__(self, connect_timeout=10, read_timeout=10, headers=None,
                 ssl_ca_certs=None, insecure=False, hide_error_details=False):
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.hide_error_details = hide_error_details
        self.session = requests.Session()
        self.session.headers['User-Agent'] = 'TileView-%s' % (version, )
        if headers:
            self.session.headers.update(headers)
        if insecure:
            self.session.verify = False
        elif ssl_ca_certs:
            self.session.verify = ssl_ca_certs

    @property
    def timeout(self):
        return (self.connect_timeout, self.read_timeout)

    def open(self, url):
        """
        GET `url` and return the `requests.Response` with the body loaded.

        :raise HTTPClientError: for connection errors, timeouts, non-2xx
            responses and ``204 No Content``
        """
        code = None
        result = None
        start_time = time.time()
        try:
            result = self.session.get(url, timeout=self.timeout)
            code = result.status_code
        except requests.exceptions.MissingSchema as e:
            raise self.handle_url_exception(url, 'URL not correct', e.args[0]) from e
        except requests.exceptions.InvalidURL as e:
            raise self.handle_url_exception(url, 'URL not correct', e.args[0]) from e
        except requests.exceptions.SSLError as e:
            raise self.handle_url_exception(url, 'Could not verify connection to URL', e) from e
        except requests.exceptions.Timeout as e:
            raise self.handle_url_exception(url, 'Timeout while requesting URL', e) from e
        except requests.exceptions.RequestException as e:
            raise self.handle_url_exception(url, 'No response from URL', e) from e
        finally:
            log_request(url, code, result, duration=time.time()-start_time)

        if code == 204:
            raise HTTPClientError('HTTP Error "204 No Content"', response_code=204)
        if not 200 <= code < 300:
            raise self.handle_url_exception(url, 'HTTP Error', str(code), response_code=code)
        return result

    def handle_url_exception(self, url, message, reason, response_code=None):
        full_msg = '%s "%s": %s' % (message, url, reason)
        if self.hide_error_details:
            return HTTPClientError(
                '{} (see logs for URL and reason).'.format(message),
                response_code=response_code,
                full_msg=full_msg,
            )
        else:
            return HTTPClientError(
                full_msg,
                response_code=response_code,
            )


def http_client_from_config(conf):
    http_conf = conf.get('http', {})
    return HTTPClient(
        connect_timeout=http_conf.get('connect_timeout', 10),
        read_timeout=http_conf.get('read_timeout', 10),
        headers=http_conf.get('headers'),
        ssl_ca_certs=http_conf.get('ssl_ca_certs'),
        insecure=http_conf.get('ssl_no_cert_checks', False),
    )
