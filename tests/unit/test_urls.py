from yarl import URL

import hreq.urls as urls


def test_canonical_host():
    ch = urls.canonical_host
    assert ch('http://WWW.Example.COM:8080/x') == 'www.example.com'
    assert ch('http://example.com./') == 'example.com'
    assert ch(URL('https://example.com/')) == 'example.com'
    assert ch('http://bücher.de/') == 'xn--bcher-kva.de'
    assert ch('http://127.0.0.1:8080/') == '127.0.0.1'
    assert ch('http://[::1]/') == '::1'
    assert ch('/relative/only') == ''


def test_is_ip():
    assert urls.is_ip('127.0.0.1')
    assert urls.is_ip('::1')
    assert not urls.is_ip('example.com')
    assert not urls.is_ip('1.2.3.4.example.com')


def test_has_dot_suffix():
    assert urls.has_dot_suffix('www.example.com', 'example.com')
    assert not urls.has_dot_suffix('example.com', 'example.com')
    assert not urls.has_dot_suffix('notexample.com', 'example.com')


def test_domain_match():
    assert urls.domain_match('example.com', 'example.com', True)
    assert not urls.domain_match('www.example.com', 'example.com', True)
    assert urls.domain_match('www.example.com', 'example.com', False)
    assert urls.domain_match('a.b.example.com', 'example.com', False)
    assert not urls.domain_match('badexample.com', 'example.com', False)


def test_default_path():
    dp = urls.default_path
    assert dp('') == '/'
    assert dp('foo') == '/'
    assert dp('/') == '/'
    assert dp('/foo') == '/'
    assert dp('/foo/') == '/foo'
    assert dp('/foo/bar') == '/foo'
    assert dp('/a/b/c') == '/a/b'


def test_path_match():
    pm = urls.path_match
    assert pm('/', '/')
    assert pm('/foo', '/')
    assert pm('/foo', '/foo')
    assert pm('/foo/', '/foo')
    assert pm('/foo/bar', '/foo')
    assert pm('/foo/bar', '/foo/')
    assert not pm('/foobar', '/foo')
    assert not pm('/', '/foo')
    assert not pm('/fo', '/foo')


def test_request_path():
    assert urls.request_path('http://example.com') == '/'
    assert urls.request_path('http://example.com/a/b?q=1') == '/a/b'


def test_schemes():
    assert urls.is_http('http://example.com/')
    assert urls.is_http('https://example.com/')
    assert not urls.is_http('ftp://example.com/')
    assert urls.is_secure('https://example.com/')
    assert not urls.is_secure('http://example.com/')
