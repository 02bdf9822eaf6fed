import hreq.publicsuffix as publicsuffix


def test_registrable_domain():
    rd = publicsuffix.registrable_domain
    assert rd('www.example.co.uk') == 'example.co.uk'
    assert rd('example.co.uk') == 'example.co.uk'
    assert rd('a.b.c.example.com') == 'example.com'
    assert rd('Example.COM') == 'example.com'
    assert rd('.example.com') == 'example.com'

    # a public suffix is its own registrable domain
    assert rd('co.uk') == 'co.uk'
    assert rd('com') == 'com'

    # no dot, not in the list
    assert rd('localhost') == 'localhost'

    # unknown tld falls under the implicit "*" rule
    assert rd('a.b.notarealtld') == 'b.notarealtld'


def test_private_domains():
    assert publicsuffix.is_public_suffix('blogspot.com')
    assert publicsuffix.registrable_domain('foo.blogspot.com') == 'foo.blogspot.com'


def test_is_public_suffix():
    ips = publicsuffix.is_public_suffix
    assert ips('com')
    assert ips('co.uk')
    assert ips('.co.uk')
    assert ips('uk')
    assert not ips('example.com')
    assert not ips('example.co.uk')
    assert not ips('www.example.co.uk')
    assert not ips('')


def test_public_suffix():
    ps = publicsuffix.public_suffix
    assert ps('www.example.co.uk') == 'co.uk'
    assert ps('example.com') == 'com'
    assert ps('localhost') == 'localhost'
    assert ps('') == ''


def test_jar_key():
    jk = publicsuffix.jar_key
    assert jk('www.example.co.uk') == 'example.co.uk'
    assert jk('127.0.0.1') == '127.0.0.1'
    assert jk('::1') == '::1'
    assert jk('co.uk') == 'co.uk'
