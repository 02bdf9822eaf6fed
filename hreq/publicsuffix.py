'''
Public Suffix List lookups.

We use tldextract's bundled snapshot of the list, private domains
included, so that *.blogspot.com and friends are separate sites. No
network fetch of the list happens at runtime; a cookie jar should not
depend on reaching publicsuffix.org.

A name that matches no rule falls under the implicit "*" rule, which
makes its last label the public suffix. That is what makes bare
hostnames like "localhost" their own registrable domain.
'''

import logging

import cachetools
import tldextract

from . import urls

LOGGER = logging.getLogger(__name__)

_extract = tldextract.TLDExtract(suffix_list_urls=(), include_psl_private_domains=True)
_cache = cachetools.LRUCache(4096)


def _clean(domain):
    return domain.strip('.').lower()


@cachetools.cached(_cache)
def public_suffix(domain):
    domain = _clean(domain)
    if not domain:
        return ''
    tlde = _extract(domain)
    if tlde.suffix:
        return tlde.suffix
    return domain.rsplit('.', 1)[-1]


def is_public_suffix(domain):
    '''
    True if cookies cannot be scoped to exactly this domain, e.g. co.uk
    '''
    domain = _clean(domain)
    return bool(domain) and public_suffix(domain) == domain


def registrable_domain(host):
    '''
    The public suffix plus one label: www.example.co.uk -> example.co.uk

    A host that is itself a public suffix is returned unchanged.
    '''
    host = _clean(host)
    suffix = public_suffix(host)
    if not suffix or suffix == host:
        return host
    head = host[:-len(suffix)-1]
    return head.rsplit('.', 1)[-1] + '.' + suffix


def jar_key(host):
    '''
    Cookie jar partition for a host. IP addresses are their own partition.
    '''
    host = _clean(host)
    if urls.is_ip(host):
        return host
    return registrable_domain(host)
