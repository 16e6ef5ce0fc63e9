from lanbeacon.discovery.service import ServiceDescriptor, as_descriptor


def test_identity_key():
    assert ServiceDescriptor("10.0.0.5", 8080, "api").key == "10.0.0.5:8080:api"


def test_from_dict_splits_extra():
    d = ServiceDescriptor.from_dict({'host': 'h', 'port': 80, 'name': 'web', 'tls': False})
    assert (d.host, d.port, d.name) == ('h', 80, 'web')
    assert d.extra == {'tls': False}
    assert d.to_dict() == {'host': 'h', 'port': 80, 'name': 'web', 'tls': False}


def test_completeness():
    assert ServiceDescriptor('h', 1, 'n').is_complete
    assert not ServiceDescriptor(None, 1, 'n').is_complete
    assert not ServiceDescriptor('h', None, 'n').is_complete
    assert not ServiceDescriptor('h', 1, '').is_complete
    assert not ServiceDescriptor('h', 0, 'n').is_complete


def test_port_coercion():
    assert ServiceDescriptor.from_dict({'port': '8080'}).port == 8080
    assert ServiceDescriptor.from_dict({'port': True}).port is None
    assert ServiceDescriptor.from_dict({'port': 'abc'}).port is None
    assert ServiceDescriptor.from_dict({'port': -1}).port is None


def test_non_string_host_and_name_rejected():
    d = ServiceDescriptor.from_dict({'host': 5, 'port': 1, 'name': ['x']})
    assert d.host is None and d.name is None


def test_as_descriptor():
    d = ServiceDescriptor('h', 1, 'n')
    assert as_descriptor(d) is d
    assert as_descriptor({'host': 'h', 'port': 1, 'name': 'n'}).key == 'h:1:n'
    assert as_descriptor(42) is None


def test_with_host_does_not_share_extra():
    d = ServiceDescriptor(None, 1, 'n', extra={'tags': ['a']})
    resolved = d.with_host('10.0.0.1')
    resolved.extra['tags'].append('b')
    assert d.extra == {'tags': ['a']}
    assert d.host is None


def test_non_ascii_digit_port_is_missing():
    assert ServiceDescriptor.from_dict({'port': '²'}).port is None
    assert ServiceDescriptor.from_dict({'port': '9' * 5000}).port is None
    assert ServiceDescriptor.from_dict({'port': 65536}).port is None
    assert ServiceDescriptor.from_dict({'port': ' 65535 '}).port == 65535
