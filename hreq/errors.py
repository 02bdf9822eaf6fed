'''
Exceptions that end a request.

Cookie validation problems and jar persistence problems never show up
here: those are logged and the request carries on.
'''


class HreqError(Exception):
    pass


class FetchError(HreqError):
    '''Transport-level failure: DNS, connect, TLS, protocol.'''


class RequestTimeout(HreqError):
    def __init__(self, timeout):
        super().__init__('request timed out after {} seconds'.format(timeout))
        self.timeout = timeout


class RedirectError(HreqError):
    pass


class RedirectLimitExceeded(RedirectError):
    def __init__(self, limit):
        super().__init__('stopped after {} redirects'.format(limit))
        self.limit = limit
