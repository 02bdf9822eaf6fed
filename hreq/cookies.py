'''
Code related to cookies.

The jar is partitioned by the registrable domain of the host that set
the cookie, so a lookup only ever examines the cookies of one site
instead of every cookie in the jar. Within a partition cookies are
keyed by (domain, path, name).

Both partitions and the jar as a whole are bounded. When a Set-Cookie
pushes a partition over its limit, the least-recently-accessed cookies
of that same partition go first; only then is the global limit
enforced, across all partitions.

The jar does no locking and no I/O. See jarfile.py for persistence.
'''

from collections import namedtuple
from http.cookiejar import http2time
import heapq
import logging
import re
import time

from . import urls
from . import stats
from .publicsuffix import is_public_suffix, jar_key

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_PER_DOMAIN = 50
DEFAULT_MAX_TOTAL = 3000

SAME_SITE_MODES = ('', 'none', 'lax', 'strict')

SetCookie = namedtuple('SetCookie', ['name', 'value', 'domain', 'path', 'expires', 'max_age',
                                     'secure', 'http_only', 'same_site'])

_token = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_max_age = re.compile(r'^-?[0-9]+$')
_ctl = re.compile(r'[\x00-\x1f\x7f]')


def make_set_cookie(name, value, domain=None, path=None, expires=None, max_age=None,
                    secure=False, http_only=False, same_site=''):
    return SetCookie(name, value, domain, path, expires, max_age, secure, http_only, same_site)


def parse_set_cookie(header):
    '''
    Parse one Set-Cookie header value, RFC 6265 section 5.2.

    Returns a SetCookie, or None if the header is unusable. Unknown
    attributes and attributes with unparsable values are ignored.
    '''
    parts = header.split(';')
    name, sep, value = parts[0].partition('=')
    name = name.strip()
    value = value.strip()
    if not sep or not _token.match(name) or _ctl.search(value):
        LOGGER.debug('ignoring unparsable Set-Cookie header %r', header)
        return None

    domain = path = expires = max_age = None
    secure = http_only = False
    same_site = ''

    for av in parts[1:]:
        attr, _, val = av.partition('=')
        attr = attr.strip().lower()
        val = val.strip()
        if attr == 'domain':
            domain = val
        elif attr == 'path':
            path = val
        elif attr == 'expires':
            t = http2time(val) if val else None
            if t is not None:
                expires = float(t)
        elif attr == 'max-age':
            if _max_age.match(val):
                max_age = int(val)
        elif attr == 'secure':
            secure = True
        elif attr == 'httponly':
            http_only = True
        elif attr == 'samesite':
            val = val.lower()
            same_site = val if val in SAME_SITE_MODES else ''

    return SetCookie(name, value, domain, path, expires, max_age, secure, http_only, same_site)


class Cookie:
    '''
    A cookie as stored in the jar.

    expires is None for session cookies, which are never persisted.
    '''
    fields = ('name', 'value', 'domain', 'path', 'secure', 'http_only', 'same_site',
              'expires', 'creation', 'last_access', 'host_only', 'seq')

    def __init__(self, name, value, domain, path, secure=False, http_only=False, same_site='',
                 expires=None, creation=0.0, last_access=0.0, host_only=True, seq=0):
        self.name = name
        self.value = value
        self.domain = domain
        self.path = path
        self.secure = secure
        self.http_only = http_only
        self.same_site = same_site
        self.expires = expires
        self.creation = creation
        self.last_access = last_access
        self.host_only = host_only
        self.seq = seq

    @property
    def key(self):
        return (self.domain, self.path, self.name)

    @property
    def persistent(self):
        return self.expires is not None

    def is_expired(self, now):
        return self.expires is not None and self.expires <= now

    def should_send(self, secure, host, path):
        return (urls.domain_match(host, self.domain, self.host_only) and
                urls.path_match(path, self.path) and
                (secure or not self.secure))

    def to_dict(self):
        return dict((f, getattr(self, f)) for f in self.fields)

    @classmethod
    def from_dict(cls, d):
        '''
        Unknown keys are ignored so that newer snapshots still load.
        '''
        kwargs = dict((f, d[f]) for f in cls.fields if f in d)
        return cls(**kwargs)

    def __eq__(self, other):
        if not isinstance(other, Cookie):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return '<Cookie {}={} for {}{}>'.format(self.name, self.value, self.domain, self.path)


def _lru_order(c):
    return (c.last_access, c.creation, c.seq)


def _send_order(c):
    return (-len(c.path), c.creation, c.seq)


class CookieJar:
    def __init__(self, max_per_domain=DEFAULT_MAX_PER_DOMAIN, max_total=DEFAULT_MAX_TOTAL):
        self.max_per_domain = max_per_domain
        self.max_total = max_total
        self._partitions = {}
        self._next_seq = 0
        self.modified = set()  # partition keys changed since the last load or save

    def __len__(self):
        return sum(len(p) for p in self._partitions.values())

    def __iter__(self):
        for partition in self._partitions.values():
            yield from partition.values()

    def cookies(self, url, now=None):
        '''
        Return the cookies to send to url: longest path first, then oldest
        creation time first. Expired cookies met along the way are
        removed from the jar.
        '''
        if now is None:
            now = time.time()
        url = urls.to_url(url)
        if not urls.is_http(url):
            return []
        host = urls.canonical_host(url)
        if not host:
            return []

        key = jar_key(host)
        partition = self._partitions.get(key)
        if not partition:
            return []

        secure = urls.is_secure(url)
        path = urls.request_path(url)
        selected = []
        for ident, c in list(partition.items()):
            if c.is_expired(now):
                del partition[ident]
                self.modified.add(key)
                stats.stats_sum('cookies expired', 1)
                continue
            if not c.should_send(secure, host, path):
                continue
            c.last_access = now
            self.modified.add(key)
            selected.append(c)
        if not partition:
            del self._partitions[key]

        selected.sort(key=_send_order)
        return selected

    def cookie_header(self, url, now=None):
        selected = self.cookies(url, now=now)
        if not selected:
            return None
        return '; '.join(c.name + '=' + c.value for c in selected)

    def set_cookies(self, url, cookies, now=None):
        '''
        Store cookies received from url. Cookies that url is not allowed
        to set are dropped. Returns the number of cookies stored or deleted.
        '''
        if now is None:
            now = time.time()
        url = urls.to_url(url)
        if not urls.is_http(url):
            return 0
        host = urls.canonical_host(url)
        if not host:
            return 0

        key = jar_key(host)
        defpath = urls.default_path(urls.request_path(url))
        changed = 0

        for sc in cookies:
            try:
                cookie, remove = self._new_cookie(sc, host, defpath, now)
            except ValueError as e:
                LOGGER.debug('rejected cookie %s from %s: %s', sc.name, host, e)
                stats.stats_sum('cookies rejected', 1)
                continue

            partition = self._partitions.setdefault(key, {})
            ident = cookie.key
            if remove:
                if ident in partition:
                    del partition[ident]
                    self.modified.add(key)
                    stats.stats_sum('cookies deleted', 1)
                    changed += 1
                continue

            old = partition.get(ident)
            if old is not None:
                cookie.creation = old.creation
                cookie.seq = old.seq
            else:
                cookie.creation = now
                cookie.seq = self._next_seq
                self._next_seq += 1
            cookie.last_access = now
            partition[ident] = cookie
            self.modified.add(key)
            stats.stats_sum('cookies set', 1)
            changed += 1

        if not self._partitions.get(key):
            self._partitions.pop(key, None)
        if changed:
            self._evict(key, now)
        return changed

    def set_cookie_headers(self, url, headers, now=None):
        parsed = [parse_set_cookie(h) for h in headers]
        return self.set_cookies(url, [p for p in parsed if p is not None], now=now)

    def _new_cookie(self, sc, host, defpath, now):
        '''
        Validate a SetCookie against the host that sent it.
        Returns (cookie, remove) or raises ValueError.
        '''
        if not sc.name:
            raise ValueError('missing name')

        domain, host_only = self._domain_and_type(host, sc.domain)

        if sc.path and sc.path.startswith('/'):
            path = sc.path
        else:
            path = defpath

        remove = False
        expires = None
        if sc.max_age is not None:
            if sc.max_age <= 0:
                remove = True
            else:
                expires = now + sc.max_age
        elif sc.expires is not None:
            if sc.expires <= now:
                remove = True
            else:
                expires = sc.expires

        same_site = (sc.same_site or '').lower()
        if same_site not in SAME_SITE_MODES:
            same_site = ''

        cookie = Cookie(sc.name, sc.value, domain, path, secure=bool(sc.secure),
                        http_only=bool(sc.http_only), same_site=same_site,
                        expires=expires, host_only=host_only)
        return cookie, remove

    def _domain_and_type(self, host, domain):
        '''
        RFC 6265 sections 5.2.3 and 5.3 #4-#6. Returns (domain, host_only).
        '''
        if not domain:
            return host, True

        if urls.is_ip(host):
            # no subdomains of an address, so the only sensible domain is the address itself
            if domain != host:
                raise ValueError('illegal domain {} for address {}'.format(domain, host))
            return host, True

        if domain.startswith('.'):
            domain = domain[1:]
        if not domain or domain.startswith('.') or domain.endswith('.'):
            raise ValueError('malformed domain')
        try:
            domain = domain.encode('idna').decode('ascii').lower()
        except UnicodeError:
            raise ValueError('malformed domain')

        if is_public_suffix(domain):
            if host == domain:
                # the one case where a domain attribute yields a host-only cookie
                return host, True
            raise ValueError('domain {} is a public suffix'.format(domain))

        if host != domain and not urls.has_dot_suffix(host, domain):
            raise ValueError('domain {} does not match host {}'.format(domain, host))
        return domain, False

    def _evict(self, key, now):
        partition = self._partitions.get(key)
        if partition:
            for ident, c in list(partition.items()):
                if c.is_expired(now):
                    del partition[ident]
                    stats.stats_sum('cookies expired', 1)
            excess = len(partition) - self.max_per_domain
            if excess > 0:
                for c in sorted(partition.values(), key=_lru_order)[:excess]:
                    del partition[c.key]
                stats.stats_sum('cookies evicted per-domain', excess)
                LOGGER.debug('evicted %d cookies from %s', excess, key)
            if not partition:
                del self._partitions[key]

        excess = len(self) - self.max_total
        if excess > 0:
            victims = heapq.nsmallest(excess, ((k, c) for k, p in self._partitions.items()
                                               for c in p.values()),
                                      key=lambda kc: _lru_order(kc[1]))
            for k, c in victims:
                del self._partitions[k][c.key]
                self.modified.add(k)
                if not self._partitions[k]:
                    del self._partitions[k]
            stats.stats_sum('cookies evicted jar-wide', excess)
            LOGGER.debug('evicted %d cookies jar-wide', excess)

    def trim(self, now=None):
        '''
        Enforce both limits across the whole jar, e.g. after loading a
        snapshot written with larger limits. Partitions that lose cookies
        are marked modified.
        '''
        if now is None:
            now = time.time()
        for key in sorted(self._partitions):
            partition = self._partitions.get(key)
            if not partition:
                continue
            before = len(partition)
            self._evict(key, now)
            if len(self._partitions.get(key, ())) != before:
                self.modified.add(key)

    def partitions(self):
        '''
        (key, list of cookies) for every partition, including keys whose
        partition has been emptied since the last save.
        '''
        keys = set(self._partitions) | self.modified
        for key in sorted(keys):
            yield key, list(self._partitions.get(key, {}).values())

    def _restore(self, key, cookie):
        '''
        Insert a cookie loaded from storage, bypassing validation.
        '''
        self._partitions.setdefault(key, {})[cookie.key] = cookie
        self._next_seq = max(self._next_seq, cookie.seq + 1)
