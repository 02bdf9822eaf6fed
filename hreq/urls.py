'''
URL and hostname helpers for cookie scoping.

yarl does the heavy lifting of parsing and IDNA-encoding hostnames; what's
left here are the RFC 6265 matching rules, which are about hostnames and
paths as plain strings.
'''

import ipaddress
import logging

from yarl import URL

LOGGER = logging.getLogger(__name__)

http_schemes = {'http', 'https'}
secure_schemes = {'https', 'wss'}


def to_url(url):
    if isinstance(url, URL):
        return url
    return URL(url)


def canonical_host(url):
    '''
    Lowercased, punycoded hostname without port or trailing dot.
    Returns '' for urls that have no host.
    '''
    url = to_url(url)
    try:
        host = url.raw_host
    except (ValueError, UnicodeError):
        LOGGER.debug('unable to extract a hostname from %s', url)
        return ''
    if not host:
        return ''
    host = host.lower()
    if host.endswith('.'):
        host = host[:-1]
    return host


def is_ip(host):
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


def has_dot_suffix(s, suffix):
    '''True if s ends in suffix and the character before suffix is a dot'''
    return len(s) > len(suffix) and s.endswith(suffix) and s[len(s)-len(suffix)-1] == '.'


def domain_match(host, domain, host_only):
    if host == domain:
        return True
    return not host_only and has_dot_suffix(host, domain)


def request_path(url):
    path = to_url(url).raw_path
    if not path:
        return '/'
    return path


def default_path(path):
    '''
    RFC 6265 section 5.1.4: the directory of the request path.
    '''
    if not path or path[0] != '/':
        return '/'
    i = path.rfind('/')
    if i == 0:
        return '/'
    return path[:i]


def path_match(req_path, cookie_path):
    '''
    RFC 6265 section 5.1.4 path-match.
    '''
    if req_path == cookie_path:
        return True
    if req_path.startswith(cookie_path):
        if cookie_path.endswith('/'):
            return True
        if req_path[len(cookie_path)] == '/':
            return True
    return False


def is_secure(url):
    return to_url(url).scheme in secure_schemes


def is_http(url):
    return to_url(url).scheme in http_schemes
