import click
import pytest
from click.testing import CliRunner

from lanbeacon.cli import cli, parse_metadata, services_table
from lanbeacon.discovery.service import ServiceDescriptor, ServiceRecord


def test_parse_metadata():
    assert parse_metadata(['proto=http', 'path=/a=b']) == {'proto': 'http', 'path': '/a=b'}


@pytest.mark.parametrize('bad', ['novalue', '=x', 'port=1'])
def test_parse_metadata_rejects(bad):
    with pytest.raises(click.BadParameter):
        parse_metadata([bad])


def test_services_table():
    records = [
        ServiceRecord(ServiceDescriptor('10.0.0.5', 8080, 'api', {'proto': 'http'})),
        ServiceRecord(ServiceDescriptor('10.0.0.6', 22, 'ssh'), owned_locally=True),
    ]
    table = services_table(records)
    assert table.row_count == 2


def test_help():
    result = CliRunner().invoke(cli, ['--help'])
    assert result.exit_code == 0
    assert 'announce' in result.output
    assert 'browse' in result.output
