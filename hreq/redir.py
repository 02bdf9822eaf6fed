'''
Handle processing of redirects in fetches.

The decision to follow a redirect is a pure function of how many
redirects we've seen, the configured limit, and whether exceeding the
limit is an error. Everything else here is about building the next
hop's request: resolving Location, rewriting the method, and not
leaking credentials to other hosts.
'''

import logging

from yarl import URL

from . import urls
from .errors import RedirectError, RedirectLimitExceeded

LOGGER = logging.getLogger(__name__)

PROCEED = 'proceed'
STOP_ACCEPT = 'stop-accept'
STOP_FAIL = 'stop-fail'

REDIRECT_STATUSES = {301, 302, 303, 307, 308}

# dropped when a redirect leaves the original host and its subdomains
sensitive_headers = {'authorization', 'www-authenticate', 'cookie', 'cookie2'}
body_headers = {'content-type', 'content-length', 'content-encoding', 'transfer-encoding'}


def decide(hops, limit, fail_on_exceed):
    '''
    hops is the number of redirect responses received so far.
    '''
    if hops <= limit:
        return PROCEED
    if fail_on_exceed:
        return STOP_FAIL
    return STOP_ACCEPT


class RedirectPolicy:
    def __init__(self, limit=10, fail_on_exceed=False):
        self.limit = limit
        self.fail_on_exceed = fail_on_exceed

    def check(self, via):
        '''
        Called with the list of urls requested so far, before following
        the redirect that the last of them returned.
        '''
        decision = decide(len(via), self.limit, self.fail_on_exceed)
        if decision == STOP_FAIL:
            raise RedirectLimitExceeded(self.limit)
        return decision


def is_redirect(response):
    return response.status in REDIRECT_STATUSES


def resolve_location(url, location):
    try:
        next_url = urls.to_url(url).join(URL(location))
    except (ValueError, TypeError) as e:
        raise RedirectError('unable to follow redirect to {!r}: {}'.format(location, e)) from e
    if not urls.is_http(next_url) or not next_url.raw_host:
        raise RedirectError('unable to follow redirect to {!r}'.format(location))
    return next_url


def next_request(method, url, headers, body, status, location):
    '''
    Return (method, url, headers, body) for following a redirect.
    '''
    url = urls.to_url(url)
    next_url = resolve_location(url, location)

    # 301, 302 and 303 become a GET without a body, except for HEAD;
    # 307 and 308 replay the request as-is
    keep_body = status not in (301, 302, 303)
    if not keep_body and method not in ('GET', 'HEAD'):
        method = 'GET'

    old_host = urls.canonical_host(url)
    new_host = urls.canonical_host(next_url)
    same_site = new_host == old_host or urls.has_dot_suffix(new_host, old_host)

    next_headers = {}
    for k, v in headers.items():
        lk = k.lower()
        if not same_site and lk in sensitive_headers:
            LOGGER.debug('dropping %s header on redirect from %s to %s', k, old_host, new_host)
            continue
        if not keep_body and lk in body_headers:
            continue
        next_headers[k] = v

    return method, next_url, next_headers, body if keep_body else None
