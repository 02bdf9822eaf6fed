import logging
import yaml

LOGGER = logging.getLogger(__name__)

'''
default_yaml exists to both set defaults and to document all
possible configuration variables.

Command-line flags are folded into the same dict, so the Requester
only ever looks at one configuration structure.
'''

default_yaml = '''
Request:
  Method: GET
  Timeout: 0  # seconds for the whole redirect chain plus body, 0 means no timeout
  MaxRedirects: 10
  FailOnExceed: false
  Verbose: false
  ChunkSize: 65536

Jar:
  Directory: ~/.hreq-cookies  # empty string means an in-memory jar
  MaxPerDomain: 50
  MaxTotal: 3000

Fetcher:
  ConnectTimeout: 0
#  UserAgent: hreq/0.1

Logging:
  LoggingLevel: WARNING
'''


def print_default():
    print(default_yaml)


def print_final(conf):
    print(yaml.safe_dump(conf, default_flow_style=False))


def merge_dicts(a, b):
    '''
    Merge 2-level dict b into a.
    Not very general purpose!
    '''
    c = a
    for k1 in b:
        if not b[k1]:
            continue
        for k2 in b[k1]:
            v = b[k1][k2]
            if k1 not in c or not c[k1]:
                c[k1] = {}
            c[k1][k2] = v
    return c


def type_fixup(rhs):
    '''
    Values given on the command line arrive as strings. Turn the
    obvious ones into the types yaml would have produced.
    '''
    if rhs.startswith('[') and rhs.endswith(']'):
        return [x.strip() for x in rhs[1:-1].split(',') if x.strip()]
    if rhs.lower() in ('true', 'yes'):
        return True
    if rhs.lower() in ('false', 'no'):
        return False
    try:
        return int(rhs)
    except ValueError:
        pass
    try:
        return float(rhs)
    except ValueError:
        pass
    return rhs


def override(conf, setting):
    '''
    Apply one Section.Key:value setting from the command line.
    Returns False, after logging why, if the setting is unusable.
    '''
    lhs, sep, rhs = setting.partition(':')
    keys = lhs.split('.')
    if not sep or len(keys) < 2 or not all(keys):
        LOGGER.error('invalid config of %s, expecting Section.Key:value', setting)
        return False
    try:
        write(conf, type_fixup(rhs.strip()), *keys)
    except (AttributeError, TypeError) as e:
        # e.g. Request.Method.Extra:1, where Request.Method is a string
        LOGGER.error('invalid config of %s, exception was %r', setting, e)
        return False
    return True


def config(configfile, configlist):
    '''
    Defaults, overlaid by the yaml configfile, overlaid by the
    Section.Key:value strings in configlist.
    '''
    conf = yaml.safe_load(default_yaml)

    if configfile:
        with open(configfile, 'r') as f:
            conf = merge_dicts(conf, yaml.safe_load(f) or {})

    for setting in configlist or ():
        override(conf, setting)

    return conf


def read(conf, *keys):
    '''
    Walk the config dict, returning None if any key along the way is missing.
    '''
    c = conf
    for k in keys:
        if not isinstance(c, dict) or k not in c:
            return None
        c = c[k]
    return c


def write(conf, value, *keys):
    c = conf
    for k in keys[:-1]:
        c = c.setdefault(k, {})
    c[keys[-1]] = value
