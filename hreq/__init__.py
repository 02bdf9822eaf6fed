'''
The actual http client
'''

import asyncio
import logging
import ssl
import sys
from importlib.metadata import version as _dist_version, PackageNotFoundError

import aiohttp
import certifi

from . import config
from . import fetcher
from . import jarfile
from . import redir
from . import stats
from . import urls
from .errors import HreqError, FetchError, RequestTimeout

LOGGER = logging.getLogger(__name__)
__title__ = 'hreq'
__author__ = 'hreq contributors'
__license__ = 'Apache 2.0'

try:
    __version__ = _dist_version(__title__)
except PackageNotFoundError:
    # uninstalled checkout
    __version__ = '0.0.0'


def _setting(conf, default, *keys):
    '''
    Like config.read, but a missing or empty setting gives default.
    A configured 0 stays 0.
    '''
    value = config.read(conf, *keys)
    if value is None:
        return default
    return value


class Requester:
    '''
    Issues one request, following redirects per the configured policy,
    against a cookie jar that outlives the process.
    '''
    def __init__(self, conf):
        self.conf = conf
        self.method = (config.read(conf, 'Request', 'Method') or 'GET').upper()
        self.timeout = float(config.read(conf, 'Request', 'Timeout') or 0)
        self.verbose = bool(config.read(conf, 'Request', 'Verbose'))
        self.chunk_size = int(config.read(conf, 'Request', 'ChunkSize') or 65536)
        max_redirects = _setting(conf, 10, 'Request', 'MaxRedirects')
        self.policy = redir.RedirectPolicy(int(max_redirects),
                                           bool(config.read(conf, 'Request', 'FailOnExceed')))

        self.jar_dir = config.read(conf, 'Jar', 'Directory') or ''
        self.max_per_domain = int(_setting(conf, jarfile.DEFAULT_MAX_PER_DOMAIN, 'Jar', 'MaxPerDomain'))
        self.max_total = int(_setting(conf, jarfile.DEFAULT_MAX_TOTAL, 'Jar', 'MaxTotal'))

        self.connect_timeout = float(config.read(conf, 'Fetcher', 'ConnectTimeout') or 0)
        self.ua = config.read(conf, 'Fetcher', 'UserAgent')

        self.jar = None
        self.session = None
        self.connector = None

    async def open(self):
        self.jar = jarfile.load(self.jar_dir, max_per_domain=self.max_per_domain,
                                max_total=self.max_total)
        stats.stats_set('jar size at start', len(self.jar))

        # see https://bugs.python.org/issue27970 for python not handling missing intermediates
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        self.connector = aiohttp.TCPConnector(ssl=ssl_context)

        # the overall timeout is enforced around the whole chain, not per hop
        timeout_kwargs = {'total': None}
        if self.connect_timeout:
            timeout_kwargs['sock_connect'] = self.connect_timeout
        timeout = aiohttp.ClientTimeout(**timeout_kwargs)

        self.session = aiohttp.ClientSession(connector=self.connector,
                                             cookie_jar=aiohttp.DummyCookieJar(),
                                             timeout=timeout)

    async def close(self):
        stats.report()
        if self.session is not None:
            await self.session.close()
        if self.connector is not None:
            await self.connector.close()

    def _default_headers(self, headers):
        headers = dict(headers or {})
        if self.ua and not any(k.lower() == 'user-agent' for k in headers):
            headers['User-Agent'] = self.ua
        return headers

    async def request(self, url, headers=None, body=None, method=None):
        '''
        Run the redirect chain and return the final response, body unread.
        '''
        method = (method or self.method).upper()
        try:
            url = urls.to_url(url)
        except (ValueError, TypeError) as e:
            raise HreqError('invalid url {!r}: {}'.format(url, e)) from e
        headers = self._default_headers(headers)
        via = []

        while True:
            response = await fetcher.fetch(self.session, self.jar, method, url, headers, body)
            via.append(url)

            if not redir.is_redirect(response):
                return response
            location = response.headers.get('Location')
            if not location:
                LOGGER.info('%d redirect for %s has no Location: header', response.status, url)
                return response

            try:
                decision = self.policy.check(via)
                if decision == redir.STOP_ACCEPT:
                    LOGGER.info('not following redirect after %d redirects, returning the last response',
                                len(via))
                    stats.stats_sum('redirect limit reached', 1)
                    return response
                method, url, headers, body = redir.next_request(method, url, headers, body,
                                                                response.status, location)
            except Exception:
                response.release()
                raise

            response.release()
            stats.stats_sum('redirects followed', 1)
            LOGGER.debug('following %d redirect to %s', response.status, url)

    def write_status(self, response, err):
        print(response.status, response.reason or '', file=err)
        print('', file=err)
        for k, v in response.raw_headers:
            line = k + b': ' + v
            print(line.decode(errors='ignore'), file=err)
        err.flush()

    async def _request_and_stream(self, url, headers, body, method, out, err):
        response = await self.request(url, headers=headers, body=body, method=method)
        try:
            if self.verbose:
                self.write_status(response, err)
            async for chunk in response.content.iter_chunked(self.chunk_size):
                out.write(chunk)
            out.flush()
        except aiohttp.ClientError as e:
            stats.stats_sum('fetch body ClientError', 1)
            raise FetchError('{}: {}'.format(type(e).__name__, e)) from e
        finally:
            response.release()
        return response.status

    async def run(self, url, headers=None, body=None, method=None, out=None, err=None):
        '''
        Request url, stream the final body to out, then save the jar.
        The jar is saved whether or not the request succeeded.
        '''
        if out is None:
            out = sys.stdout.buffer
        if err is None:
            err = sys.stderr

        try:
            coro = self._request_and_stream(url, headers, body, method, out, err)
            if self.timeout:
                status = await asyncio.wait_for(coro, self.timeout)
            else:
                status = await coro
        except asyncio.TimeoutError as e:
            stats.stats_sum('fetch timeout', 1)
            raise RequestTimeout(self.timeout) from e
        finally:
            self.save_jar()
        return status

    def save_jar(self):
        if self.jar is None:
            return
        try:
            jarfile.save(self.jar, self.jar_dir)
        except OSError as e:
            stats.stats_sum('jar save failed', 1)
            LOGGER.warning('unable to save cookie jar %s: %s', self.jar_dir, e)
