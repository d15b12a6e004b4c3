"""
Tests for the bifrost command line.
"""

from unittest.mock import patch

import pytest
from botocore.exceptions import NoCredentialsError
from click.testing import CliRunner

from bifrost import __version__
from bifrost.cli import main
from bifrost.cli_utils import ExitCode
from bifrost.inventory import AccountInventory, ManagedPolicy
from bifrost.okta.client import OktaApiError
from bifrost.snapshot import SnapshotStore

from conftest import ACCOUNT_ID


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workspace(tmp_path, s3_inventory):
    """db/ with one account snapshot, output/ and conf/ paths."""
    SnapshotStore(tmp_path / 'db').save_inventory(s3_inventory)
    return tmp_path


def report_args(workspace, *extra):
    return [
        'report', *extra,
        '--db', str(workspace / 'db'),
        '--output', str(workspace / 'output'),
        '--config', str(workspace / 'conf'),
    ]


def test_version(runner):
    result = runner.invoke(main, ['version'])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_help(runner):
    result = runner.invoke(main, ['--help'])
    assert result.exit_code == 0
    assert 'report' in result.output and 'scan' in result.output


class TestReport:
    def test_unknown_service_prefix(self, runner, workspace):
        result = runner.invoke(main, report_args(workspace, 'not-a-service'))
        assert result.exit_code == ExitCode.INVALID_SERVICE_PREFIX

    def test_no_snapshots(self, runner, tmp_path):
        result = runner.invoke(main, ['report', 's3', '--db', str(tmp_path / 'empty')])
        assert result.exit_code == ExitCode.NO_DATA

    def test_unknown_account(self, runner, workspace):
        result = runner.invoke(main, report_args(workspace, 's3', '--account-id', '999999999999'))
        assert result.exit_code == ExitCode.NO_DATA

    def test_writes_report_file(self, runner, workspace):
        result = runner.invoke(main, report_args(workspace, 's3'))
        assert result.exit_code == 0, result.output

        text = (workspace / 'output' / 'authorization-paths.txt').read_text(encoding='utf-8')
        assert text.startswith('Report of accesses to Amazon S3 generated on ')
        assert '\tpath: AwsIamUser:bob->AwsIamGroup:Writers->AwsIamPolicy:WriteS3->s3 (WRITE)\n' in text
        assert 'carol' not in text

    def test_no_files_prints_the_report(self, runner, workspace):
        result = runner.invoke(main, report_args(workspace, 's3', '--no-files'))
        assert result.exit_code == 0, result.output
        assert 'path: AwsIamUser:alice->AwsIamGroup:Readers->AwsIamPolicy:ReadS3->s3' in result.output
        assert not (workspace / 'output' / 'authorization-paths.txt').exists()

    def test_graph_exports(self, runner, workspace):
        result = runner.invoke(main, report_args(workspace, 's3', '--dgml', '--graphviz', '--json', '--no-files'))
        assert result.exit_code == 0, result.output
        for name in ('graph.dgml', 'graph.dot', 'graph.json'):
            assert (workspace / 'output' / name).exists()

    def test_ignore_list(self, runner, workspace):
        (workspace / 'conf').mkdir()
        (workspace / 'conf' / 'IGNORE.csv').write_text('alice,s3\n', encoding='utf-8')
        result = runner.invoke(main, report_args(workspace, 's3', '--no-files'))
        assert result.exit_code == 0, result.output
        assert 'ID:alice' not in result.output
        assert 'ID:bob' in result.output

    def test_account_from_environment(self, runner, workspace):
        result = runner.invoke(main, report_args(workspace, 's3', '--no-files'), env={'AWS_ACCOUNT_ID': ACCOUNT_ID})
        assert result.exit_code == 0, result.output
        assert 'ID:bob' in result.output

    def test_malformed_policy(self, runner, tmp_path):
        bad = ManagedPolicy.from_api({
            'Arn': f'arn:aws:iam::{ACCOUNT_ID}:policy/Bad', 'PolicyName': 'Bad', 'Document': {'Statement': 'nope'},
        })
        SnapshotStore(tmp_path / 'db').save_inventory(AccountInventory(account_id=ACCOUNT_ID, managed_policies=[bad]))
        result = runner.invoke(main, ['report', 's3', '--db', str(tmp_path / 'db'), '--output', str(tmp_path / 'out')])
        assert result.exit_code == ExitCode.POLICY_PARSE_ERROR

    def test_okta_snapshot_is_used(self, runner, tmp_path, okta_inventory, okta_directory):
        store = SnapshotStore(tmp_path / 'db')
        store.save_inventory(okta_inventory)
        store.save_okta('corp.okta.com', okta_directory)

        result = runner.invoke(main, report_args(tmp_path, 's3', '--no-files'))
        assert result.exit_code == 0, result.output
        assert f'OktaUser:alice@corp.example->OktaGroup:aws_{ACCOUNT_ID}_okta-admin->AwsIamRole:okta-admin' \
               in result.output

    def test_invalid_workers(self, runner, workspace):
        result = runner.invoke(main, report_args(workspace, 's3', '--workers', '0'))
        assert result.exit_code == 2


class TestScan:
    @patch('bifrost.cli.run_scan')
    def test_passes_options(self, run_scan, runner, tmp_path):
        result = runner.invoke(
            main, ['scan', '--profile', 'prod', '--db', str(tmp_path), '--no-identity-center'],
            env={'OKTA_BASE_URL': 'corp.okta.com', 'OKTA_API_TOKEN': 'secret'},
        )
        assert result.exit_code == 0, result.output
        run_scan.assert_called_once_with(
            str(tmp_path),
            profile='prod',
            region=None,
            include_identity_center=False,
            okta_domain='corp.okta.com',
            okta_token='secret',
        )

    @pytest.mark.parametrize('error,exit_code', [
        (OktaApiError('Okta authentication failed', status_code=401), ExitCode.OKTA_ERROR),
        (RuntimeError('AWS authentication failed'), ExitCode.AWS_ERROR),
        (NoCredentialsError(), ExitCode.AWS_ERROR),
        (KeyError('boom'), ExitCode.ERROR),
    ])
    @patch('bifrost.cli.run_scan')
    def test_error_exit_codes(self, run_scan, runner, tmp_path, error, exit_code):
        run_scan.side_effect = error
        result = runner.invoke(main, ['scan', '--db', str(tmp_path)])
        assert result.exit_code == exit_code
