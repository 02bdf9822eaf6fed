import hreq.config as config


def test_merge_dicts():
    a = {'a': {'a': 1}}
    b = {'b': {'b': 2}}

    c = config.merge_dicts(a, b)

    assert c == {'a': {'a': 1}, 'b': {'b': 2}}

    a = {'a': {'a': 1}, 'b': {'c': 3}}
    c = config.merge_dicts(a, b)

    assert c == {'a': {'a': 1}, 'b': {'b': 2, 'c': 3}}

    # an empty section in a config file doesn't wipe out the defaults
    c = config.merge_dicts({'a': {'a': 1}}, {'a': None})
    assert c == {'a': {'a': 1}}


def test_type_fixup():
    tests = (('a', 'a'),
             ('a,b,c', 'a,b,c'),
             ('[a,b,c]', ['a', 'b', 'c']),
             ('3', 3),
             ('2.5', 2.5),
             ('true', True),
             ('False', False),
             ('', ''))

    for arg, result in tests:
        assert config.type_fixup(arg) == result


def test_defaults():
    conf = config.config(None, None)
    assert config.read(conf, 'Request', 'MaxRedirects') == 10
    assert config.read(conf, 'Request', 'FailOnExceed') is False
    assert config.read(conf, 'Jar', 'Directory') == '~/.hreq-cookies'
    assert config.read(conf, 'Jar', 'MaxPerDomain') == 50
    assert config.read(conf, 'Jar', 'MaxTotal') == 3000
    assert config.read(conf, 'Nope') is None
    assert config.read(conf, 'Request', 'Nope') is None


def test_configlist():
    conf = config.config(None, ['Request.MaxRedirects:3', 'Jar.Directory:', 'bogus', 'Bogus:1',
                                'New.Key:value'])
    assert config.read(conf, 'Request', 'MaxRedirects') == 3
    assert config.read(conf, 'Jar', 'Directory') == ''
    assert config.read(conf, 'New', 'Key') == 'value'


def test_configfile(tmp_path):
    cf = tmp_path / 'hreq.yml'
    cf.write_text('Request:\n  Timeout: 7\nJar:\n  MaxTotal: 10\n')
    conf = config.config(str(cf), ['Jar.MaxTotal:20'])
    assert config.read(conf, 'Request', 'Timeout') == 7
    assert config.read(conf, 'Request', 'MaxRedirects') == 10
    assert config.read(conf, 'Jar', 'MaxTotal') == 20


def test_write():
    conf = {}
    config.write(conf, 5, 'Request', 'MaxRedirects')
    assert conf == {'Request': {'MaxRedirects': 5}}
    config.write(conf, True, 'Request', 'FailOnExceed')
    assert config.read(conf, 'Request', 'FailOnExceed') is True


def test_print_default(capsys):
    config.print_default()
    out, err = capsys.readouterr()
    assert 'MaxRedirects' in out
    assert err == ''


def test_override():
    conf = config.config(None, None)
    assert config.override(conf, 'Request.Verbose: yes')
    assert config.read(conf, 'Request', 'Verbose') is True
    assert not config.override(conf, 'Request.:1')
    assert not config.override(conf, '.Verbose:1')
    assert not config.override(conf, 'Request.Method.Extra:1')
    assert config.read(conf, 'Request', 'Method') == 'GET'
