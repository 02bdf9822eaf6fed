'''
Cookie jar persistence.

A jar on disk is a directory holding one json file per jar partition
(registrable domain), e.g. ~/.hreq-cookies/example.co.uk.json:

  {"version": 1, "cookies": [{"name": ..., "value": ..., ...}, ...]}

Only partitions that changed during the run are rewritten, each via a
temporary file and a rename, so a crash mid-save leaves the previous
file intact. Two hreq processes sharing a directory race on save: the
last writer of a given partition wins.

Loading never fails. Anything unreadable is logged and skipped, and the
request proceeds with whatever was readable.
'''

import json
import logging
import os
import tempfile
import time

from . import stats
from .cookies import Cookie, CookieJar, DEFAULT_MAX_PER_DOMAIN, DEFAULT_MAX_TOTAL, SAME_SITE_MODES
from .publicsuffix import jar_key

LOGGER = logging.getLogger(__name__)

FORMAT_VERSION = 1
SUFFIX = '.json'


def _filename(key):
    # ipv6 partitions have colons in them
    return key.replace(':', '_') + SUFFIX


def _entries(data):
    if not isinstance(data, dict) or not isinstance(data.get('cookies'), list):
        raise ValueError('not a cookie jar file')
    return data['cookies']


def _valid(c):
    return (isinstance(c.name, str) and c.name and isinstance(c.value, str) and
            isinstance(c.domain, str) and c.domain and
            isinstance(c.path, str) and c.path.startswith('/') and
            isinstance(c.expires, (int, float)) and
            isinstance(c.creation, (int, float)) and
            isinstance(c.last_access, (int, float)) and
            isinstance(c.seq, int) and isinstance(c.host_only, bool) and
            c.same_site in SAME_SITE_MODES)


def load(directory, max_per_domain=DEFAULT_MAX_PER_DOMAIN, max_total=DEFAULT_MAX_TOTAL, now=None):
    '''
    Build a jar from the snapshot in directory. An empty directory name
    means an in-memory jar.
    '''
    jar = CookieJar(max_per_domain=max_per_domain, max_total=max_total)
    if not directory:
        LOGGER.debug('using an in-memory cookie jar')
        return jar

    if now is None:
        now = time.time()
    directory = os.path.expanduser(directory)

    try:
        names = sorted(os.listdir(directory))
    except FileNotFoundError:
        LOGGER.warning('cookie jar %s does not exist, starting with an empty jar', directory)
        return jar
    except OSError as e:
        LOGGER.warning('unable to read cookie jar %s, starting with an empty jar: %s', directory, e)
        return jar

    for name in names:
        if not name.endswith(SUFFIX) or name.startswith('.'):
            continue
        path = os.path.join(directory, name)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                entries = _entries(json.load(f))
        except (OSError, ValueError) as e:
            LOGGER.warning('ignoring unreadable cookie jar file %s: %s', path, e)
            stats.stats_sum('jar files unreadable', 1)
            continue

        for d in entries:
            c = None
            if isinstance(d, dict):
                try:
                    c = Cookie.from_dict(d)
                except TypeError:
                    pass
            if c is None or not _valid(c):
                LOGGER.debug('ignoring malformed cookie entry in %s', path)
                stats.stats_sum('jar entries malformed', 1)
                continue
            c.secure = bool(c.secure)
            c.http_only = bool(c.http_only)
            if c.is_expired(now):
                continue
            jar._restore(jar_key(c.domain), c)
            stats.stats_sum('jar cookies loaded', 1)

    jar.modified.clear()
    jar.trim(now)
    LOGGER.debug('loaded %d cookies from %s', len(jar), directory)
    return jar


def _write_atomically(path, data):
    directory, name = os.path.split(path)
    f = tempfile.NamedTemporaryFile('w', encoding='utf-8', dir=directory,
                                    prefix='.' + name + '.', suffix='.tmp', delete=False)
    try:
        with f:
            json.dump(data, f, sort_keys=True, indent=1)
            f.flush()
            os.fsync(f.fileno())
        os.replace(f.name, path)
    except BaseException:
        try:
            os.unlink(f.name)
        except FileNotFoundError:
            pass
        raise


def save(jar, directory, now=None):
    '''
    Write the persistent cookies of every changed partition. Session
    cookies are dropped. Raises OSError if the directory is unwritable.
    '''
    if not directory:
        return
    if now is None:
        now = time.time()
    directory = os.path.expanduser(directory)
    os.makedirs(directory, mode=0o700, exist_ok=True)

    written = 0
    for key, cookies in jar.partitions():
        if key not in jar.modified:
            continue
        keep = [c for c in cookies if c.persistent and not c.is_expired(now)]
        path = os.path.join(directory, _filename(key))
        if not keep:
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass
            continue
        keep.sort(key=lambda c: c.seq)
        _write_atomically(path, {'version': FORMAT_VERSION, 'cookies': [c.to_dict() for c in keep]})
        written += len(keep)

    jar.modified.clear()
    stats.stats_sum('jar cookies saved', written)
    LOGGER.debug('saved %d cookies to %s', written, directory)
