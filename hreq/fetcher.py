'''
One network round trip.

aiohttp never sees our cookie jar: the session is built with a
DummyCookieJar and automatic redirects are off, so every hop's Cookie
header comes from jar.cookies() and every hop's Set-Cookie headers,
redirect responses included, go through jar.set_cookies().

The response body is left unread for the caller to stream.
'''

import ssl
import logging

import aiohttp

from . import stats
from .errors import FetchError

LOGGER = logging.getLogger(__name__)


def _pop_header(headers, name):
    for k in list(headers):
        if k.lower() == name:
            return headers.pop(k)
    return None


def cookie_headers(jar, url, headers):
    '''
    Return a copy of headers with the jar's cookies for url appended to
    any Cookie header the user supplied.
    '''
    headers = dict(headers)
    jar_cookies = jar.cookie_header(url)
    if jar_cookies:
        user_cookies = _pop_header(headers, 'cookie')
        if user_cookies:
            headers['Cookie'] = user_cookies + '; ' + jar_cookies
        else:
            headers['Cookie'] = jar_cookies
    return headers


async def fetch(session, jar, method, url, headers, body=None):
    headers = cookie_headers(jar, url, headers)

    try:
        with stats.record_latency('fetcher fetching', url=url):
            response = await session.request(method, url, headers=headers, data=body,
                                             allow_redirects=False)
    except aiohttp.ClientError as e:
        # ClientError is a catchall: DNS errors, connect errors, protocol errors,
        # ClientConnectorCertificateError for a cert that doesn't match hostname
        stats.stats_sum('fetch ClientError', 1)
        raise FetchError('{}: {}'.format(type(e).__name__, e)) from e
    except ssl.CertificateError as e:
        stats.stats_sum('fetch SSL CertificateError', 1)
        raise FetchError('CertificateError: {}'.format(e)) from e
    except OSError as e:
        stats.stats_sum('fetch OSError', 1)
        raise FetchError('{}: {}'.format(type(e).__name__, e)) from e

    stats.stats_sum('fetch URLs', 1)
    stats.stats_sum('fetch http code=' + str(response.status), 1)
    LOGGER.debug('%s %s -> %d', method, url, response.status)

    set_cookies = response.headers.getall('Set-Cookie', [])
    if set_cookies:
        jar.set_cookie_headers(url, set_cookies)

    return response
