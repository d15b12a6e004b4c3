"""
Tests for the Okta API client, with the requests session mocked.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from bifrost.okta.client import (
    PAGE_LIMIT, OktaApiError, OktaClient, domain_name, normalize_base_url,
)

BASE_URL = 'https://corp.okta.com'


def response(data, status_code=200, next_url=None, headers=None):
    mock = MagicMock()
    mock.status_code = status_code
    mock.ok = status_code < 400
    mock.json.return_value = data
    mock.links = {'next': {'url': next_url}} if next_url else {}
    mock.headers = headers or {}
    return mock


@pytest.fixture
def session():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def client(session):
    return OktaClient('corp.okta.com', 'token', session=session)


def test_normalize_base_url():
    assert normalize_base_url('corp.okta.com') == BASE_URL
    assert normalize_base_url('https://corp.okta.com/') == BASE_URL
    assert domain_name('https://corp.okta.com/') == 'corp.okta.com'


def test_token_header(client, session):
    assert session.headers['Authorization'] == 'SSWS token'
    assert client.domain == 'corp.okta.com'
    assert OktaClient(BASE_URL, 'SSWS abc', session=MagicMock(headers={})).session.headers['Authorization'] == 'SSWS abc'


def test_token_required(session):
    with pytest.raises(ValueError):
        OktaClient('corp.okta.com', '', session=session)


def test_pagination_follows_next_link(client, session):
    next_url = f'{BASE_URL}/api/v1/users?after=00u1&limit={PAGE_LIMIT}'
    session.get.side_effect = [
        response([{'id': '00u1', 'profile': {'login': 'alice@corp.example'}}], next_url=next_url),
        response([{'id': '00u2', 'profile': {'login': 'bob@corp.example'}}]),
    ]

    users = client.list_users()

    assert [u.login for u in users] == ['alice@corp.example', 'bob@corp.example']
    first, second = session.get.call_args_list
    assert first.args[0] == f'{BASE_URL}/api/v1/users'
    assert first.kwargs['params'] == {'limit': PAGE_LIMIT}
    assert second.args[0] == next_url
    assert second.kwargs['params'] is None


def test_group_search(client, session):
    session.get.return_value = response([{'id': '00g1', 'profile': {'name': 'aws_111111111111_admin'}}])
    groups = client.list_groups('aws_')
    assert groups[0].aws_role_name == 'admin'
    assert session.get.call_args.kwargs['params'] == {'limit': PAGE_LIMIT, 'q': 'aws_'}


def test_unauthorized(client, session):
    session.get.return_value = response({'errorCode': 'E0000011'}, status_code=401)
    with pytest.raises(OktaApiError) as excinfo:
        client.list_users()
    assert excinfo.value.status_code == 401


def test_server_error(client, session):
    session.get.return_value = response({}, status_code=500)
    with pytest.raises(OktaApiError) as excinfo:
        client.list_users()
    assert excinfo.value.status_code == 500


def test_connection_error(client, session):
    session.get.side_effect = requests.exceptions.ConnectionError('unreachable')
    with pytest.raises(OktaApiError):
        client.list_users()


def test_non_list_body(client, session):
    session.get.return_value = response({'unexpected': True})
    with pytest.raises(OktaApiError):
        client.list_users()


@patch('bifrost.okta.client.time.sleep')
def test_rate_limit_is_retried(sleep, client, session):
    session.get.side_effect = [
        response([], status_code=429),
        response([{'id': '00u1', 'profile': {'login': 'alice@corp.example'}}]),
    ]
    assert len(client.list_users()) == 1
    sleep.assert_called_once_with(1)


@patch('bifrost.okta.client.time.sleep')
def test_rate_limit_gives_up(sleep, client, session):
    session.get.return_value = response([], status_code=429)
    with pytest.raises(OktaApiError) as excinfo:
        client.list_users()
    assert excinfo.value.status_code == 429


def test_fetch_directory(client, session):
    def get(url, params=None, timeout=None):
        if url.endswith('/api/v1/groups'):
            return response([
                {'id': '00g1', 'profile': {'name': 'aws_111111111111_admin'}},
                {'id': '00g2', 'profile': {'name': 'Engineering aws_ tools'}},
            ])
        if url.endswith('/api/v1/users'):
            return response([
                {'id': '00u1', 'profile': {'login': 'alice@corp.example'}},
                {'id': '00u2', 'profile': {'login': 'bob@corp.example'}},
            ])
        if url.endswith('/api/v1/groups/00g1/users'):
            return response([{'id': '00u1', 'profile': {'login': 'alice@corp.example'}}])
        raise AssertionError(f'unexpected request {url}')

    session.get.side_effect = get
    directory = client.fetch_directory()

    assert [g.id for g in directory.groups] == ['00g1']
    assert len(directory.users) == 2
    assert [m.user_id for m in directory.members_of('00g1')] == ['00u1']
    assert directory.members_of('00g2') == []
