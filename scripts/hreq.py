#!/usr/bin/env python

'''
hreq: issue one http request, stream the response body to stdout.

Cookies persist across runs in a jar directory, ~/.hreq-cookies by
default; pass -j '' to use an in-memory jar.
'''
import sys
import os

import argparse
import asyncio
import logging

import hreq
import hreq.config as config
from hreq.errors import HreqError

LOGGER = logging.getLogger(__name__)


def header(s):
    k, sep, v = s.partition(':')
    if not sep or not k.strip():
        raise argparse.ArgumentTypeError("bad header format, expecting 'key:value'")
    return k.strip(), v.strip()


ARGS = argparse.ArgumentParser(description='hreq http client', add_help=False,
                               usage='%(prog)s [flags] url')
ARGS.add_argument('url', nargs='?')
ARGS.add_argument('-m', dest='method', action='store', help='http method (default get)')
ARGS.add_argument('-h', dest='header', action='append', type=header, help='http header, key:value')
ARGS.add_argument('-f', dest='body', action='store', help='request body file')
ARGS.add_argument('-v', dest='verbose', action='store_true', help='write status and headers to stderr')
ARGS.add_argument('-t', dest='timeout', action='store', type=float,
                  help='timeout in seconds (0 means no timeout)')
ARGS.add_argument('-r', dest='redirects', action='store', type=int, help='number of redirects to follow (default 10)')
ARGS.add_argument('-e', dest='fail_on_exceed', action='store_true',
                  help='exit with error if the redirection limit is exceeded')
ARGS.add_argument('-j', dest='jar', action='store',
                  help='directory to use as cookie jar (pass empty string to use an in-memory jar)')
ARGS.add_argument('--config', action='append')
ARGS.add_argument('--configfile', action='store')
ARGS.add_argument('--printdefault', action='store_true', help='print the default configuration')
ARGS.add_argument('--printfinal', action='store_true', help='print the final configuration')
ARGS.add_argument('--loglevel', action='store', help='set logging level, default WARNING')
ARGS.add_argument('--help', action='help', help='show this help message and exit')


def fold_args(conf, args):
    '''
    Command-line flags win over the config file.
    '''
    if args.method is not None:
        config.write(conf, args.method.upper(), 'Request', 'Method')
    if args.timeout is not None:
        config.write(conf, args.timeout, 'Request', 'Timeout')
    if args.redirects is not None:
        config.write(conf, args.redirects, 'Request', 'MaxRedirects')
    if args.fail_on_exceed:
        config.write(conf, True, 'Request', 'FailOnExceed')
    if args.verbose:
        config.write(conf, True, 'Request', 'Verbose')
    if args.jar is not None:
        config.write(conf, args.jar, 'Jar', 'Directory')
    return conf


async def fetch_one(requester, url, headers, body):
    await requester.open()
    try:
        await requester.run(url, headers=headers, body=body)
    finally:
        await requester.close()


def main():
    '''
    Main program: parse args, read config, issue the request.
    '''
    args = ARGS.parse_args()

    if args.printdefault:
        config.print_default()
        sys.exit(0)

    conf = fold_args(config.config(args.configfile, args.config), args)

    loglevel = os.getenv('HREQ_LOGLEVEL')
    if loglevel is None and args.loglevel:
        loglevel = args.loglevel
    if loglevel is None:
        loglevel = config.read(conf, 'Logging', 'LoggingLevel') or 'WARNING'
    logging.basicConfig(level=str(loglevel).upper())

    if args.printfinal:
        config.print_final(conf)
        sys.exit(0)

    if not args.url:
        ARGS.print_usage(sys.stderr)
        sys.exit(2)

    headers = dict(args.header or [])

    body = None
    if args.body:
        try:
            with open(args.body, 'rb') as f:
                body = f.read()
        except OSError as e:
            print(e, file=sys.stderr)
            sys.exit(1)

    requester = hreq.Requester(conf)
    try:
        asyncio.run(fetch_one(requester, args.url, headers, body))
    except HreqError as e:
        print(e, file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.stderr.flush()
        print('\nInterrupt. Exiting.\n', file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
