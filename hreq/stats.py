'''
Counters and latency histograms for one hreq run.

Everything is module-level because a run is one request. The Requester
logs the lot at INFO when it closes, so use --loglevel INFO to see it.
'''

import logging
import time
from contextlib import contextmanager

from hdrh.histogram import HdrHistogram

LOGGER = logging.getLogger(__name__)

SLOWEST_KEPT = 5

start_time = time.time()
maxes = {}
sums = {}
sets = {}
latencies = {}


def stats_max(name, value):
    if name not in maxes or value > maxes[name]:
        maxes[name] = value


def stats_sum(name, value):
    '''Add value to a counter and return the new total.'''
    total = sums.get(name, 0) + value
    sums[name] = total
    return total


def stats_set(name, value):
    sets[name] = value


def record_a_latency(name, start, url=None):
    elapsed = time.time() - start
    if name not in latencies:
        # 1ms to 5 minutes, 2 significant figures
        latencies[name] = {'count': 0, 'time': 0.0, 'slowest': [],
                           'hist': HdrHistogram(1, 300 * 1000, 2)}
    latency = latencies[name]
    latency['count'] += 1
    latency['time'] += elapsed
    latency['hist'].record_value(max(1, int(elapsed * 1000)))

    if url is not None:
        slowest = latency['slowest']
        slowest.append((elapsed, str(url)))
        slowest.sort(reverse=True)
        del slowest[SLOWEST_KEPT:]


@contextmanager
def record_latency(name, url=None):
    start = time.time()
    try:
        yield
    finally:
        record_a_latency(name, start, url=url)


def report():
    LOGGER.info('hreq stats:')
    for kind, values, fmt in (('sum', sums, '%d'), ('max', maxes, '%d'), ('set', sets, '%s')):
        for name in sorted(values):
            LOGGER.info('  %s %s: ' + fmt, kind, name, values[name])

    for name, latency in sorted(latencies.items()):
        hist = latency['hist']
        LOGGER.info('  latency %s: %d calls, %.3f seconds total, median %.3fs, max %.3fs',
                    name, latency['count'], latency['time'],
                    hist.get_value_at_percentile(50.0) / 1000., hist.get_max_value() / 1000.)
        for elapsed, url in latency['slowest']:
            LOGGER.info('    %.3fs %s', elapsed, url)

    LOGGER.info('  elapsed %.3f seconds', time.time() - start_time)


def stat_value(name):
    '''
    Look name up among the counters, then the latencies (returning the
    call count). None if it was never recorded.
    '''
    for values in (maxes, sums, sets):
        if name in values:
            return values[name]
    if name in latencies:
        return latencies[name]['count']
    return None


def clear():
    global start_time
    start_time = time.time()
    for values in (maxes, sums, sets, latencies):
        values.clear()
