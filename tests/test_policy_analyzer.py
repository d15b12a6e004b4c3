"""
Tests for policy analysis: stanzas, read/write classification and
assume-role target resolution.
"""

import pytest

from bifrost.iam.policy_analyzer import (
    LABEL_CONTROLS, LABEL_READS, LABEL_REFERENCES, Stanza, analyze_policy, is_write_action, split_action,
)
from bifrost.iam.policy_document import PolicyParseError

ROLE_ARNS = [
    'arn:aws:iam::111111111111:role/app-prod',
    'arn:aws:iam::111111111111:role/app-dev',
    'arn:aws:iam::111111111111:role/admin',
]


def doc(*statements):
    return {'Version': '2012-10-17', 'Statement': list(statements)}


def allow(action, resource='*'):
    return {'Effect': 'Allow', 'Action': action, 'Resource': resource}


class TestActions:
    def test_split_action(self):
        assert split_action('s3:GetObject') == ('s3', 'GetObject')
        assert split_action('ec2:*') == ('ec2', '*')

    def test_split_action_without_prefix(self):
        with pytest.raises(PolicyParseError):
            split_action('GetObject')

    @pytest.mark.parametrize('name,write', [
        ('GetObject', False),
        ('ListBucket', False),
        ('DescribeInstances', False),
        ('SearchProducts', False),
        ('getobject', False),
        ('PutObject', True),
        ('DeleteBucket', True),
        ('*', True),
        ('Get*', False),
    ])
    def test_is_write_action(self, name, write):
        assert is_write_action(name) is write


class TestAnalyzePolicy:
    def test_any_action_is_a_catch_all_write(self):
        analysis = analyze_policy('p', doc(allow('*')), ROLE_ARNS)
        assert analysis.stanzas == (Stanza(deny=False, write=True, service='*'),)
        assert analysis.stanzas[0].action == '*'
        assert analysis.services() == ['*']

    def test_catch_all_ignores_service_filter(self):
        analysis = analyze_policy('p', doc(allow('*')), ROLE_ARNS, service_filter=['s3'])
        assert analysis.services() == ['*']

    def test_stanza_per_action(self):
        analysis = analyze_policy('p', doc(allow(['s3:GetObject', 'S3:PutObject'], 'arn:aws:s3:::b/*')), ROLE_ARNS)
        assert [s.action for s in analysis.stanzas] == ['s3:GetObject', 'S3:PutObject']
        assert [s.write for s in analysis.stanzas] == [False, True]
        assert analysis.services() == ['s3']
        assert analysis.stanzas[0].resources == ('arn:aws:s3:::b/*',)

    def test_any_resource_is_not_listed(self):
        analysis = analyze_policy('p', doc(allow('s3:GetObject')), ROLE_ARNS)
        assert analysis.stanzas[0].resources is None

    def test_service_filter(self):
        analysis = analyze_policy(
            'p', doc(allow(['s3:GetObject', 'ec2:DescribeInstances', 'EC2:StartInstances'])), ROLE_ARNS,
            service_filter=['EC2'],
        )
        assert analysis.services() == ['ec2']
        assert len(analysis.stanzas) == 2

    def test_excluded_prefixes(self):
        analysis = analyze_policy('p', doc(allow(['ssm-sap:PutResourcePermission', 'sysops-sap:Get'])), ROLE_ARNS)
        assert analysis.stanzas == ()

    def test_deny_write_does_not_grant_write(self):
        analysis = analyze_policy('p', doc({'Effect': 'Deny', 'Action': 's3:PutObject', 'Resource': '*'}), ROLE_ARNS)
        assert analysis.stanzas[0].write
        assert analysis.stanzas[0].deny
        assert analysis.read_only('s3')

    def test_condition_only_deny_yields_nothing(self):
        analysis = analyze_policy(
            'p',
            doc({'Effect': 'Deny', 'Resource': '*', 'Condition': {'Bool': {'aws:SecureTransport': 'false'}}}),
            ROLE_ARNS,
        )
        assert analysis.stanzas == ()

    def test_action_without_prefix_names_the_policy(self):
        with pytest.raises(PolicyParseError) as excinfo:
            analyze_policy('arn:aws:iam::111111111111:policy/Bad', doc(allow('GetObject')), ROLE_ARNS)
        assert excinfo.value.policy_ref == 'arn:aws:iam::111111111111:policy/Bad'

    def test_not_action_is_ignored(self):
        analysis = analyze_policy('p', doc({'Effect': 'Allow', 'NotAction': 'iam:*', 'Resource': '*'}), ROLE_ARNS)
        assert analysis.stanzas == ()


class TestSubsets:
    def test_subset_orders_writes_first(self):
        analysis = analyze_policy(
            'p', doc(allow(['s3:GetObject', 'ec2:RunInstances', 's3:PutObject', 's3:ListBucket'])), ROLE_ARNS
        )
        subset = analysis.subset_for_service('s3')
        assert [s.action for s in subset.stanzas] == ['s3:PutObject', 's3:GetObject', 's3:ListBucket']
        assert subset.service == 's3'
        assert subset.label == LABEL_CONTROLS
        assert subset.first_write_stanza().action == 's3:PutObject'

    def test_labels(self):
        analysis = analyze_policy('p', doc(allow('s3:GetObject')), ROLE_ARNS)
        assert analysis.label == LABEL_REFERENCES
        assert analysis.subset_for_service('s3').label == LABEL_READS
        assert str(analysis.subset_for_service('s3')) == LABEL_READS
        assert analysis.first_write_stanza() is None

    def test_read_only(self):
        analysis = analyze_policy('p', doc(allow(['s3:GetObject', 'ec2:TerminateInstances'])), ROLE_ARNS)
        assert analysis.read_only('s3')
        assert not analysis.read_only('ec2')
        assert not analysis.read_only()

    def test_merge_concatenates(self):
        first = analyze_policy('p', doc(allow('s3:GetObject')), ROLE_ARNS)
        second = analyze_policy('p', doc(allow('sts:AssumeRole', ROLE_ARNS[2])), ROLE_ARNS)
        merged = first.merge(second)
        assert merged.policy_ref == 'p'
        assert [s.action for s in merged.stanzas] == ['s3:GetObject', 'sts:AssumeRole']
        assert merged.assume_role_targets == (ROLE_ARNS[2],)


class TestAssumeRoleTargets:
    def test_glob_resource(self):
        analysis = analyze_policy('p', doc(allow('sts:AssumeRole', 'arn:aws:iam::111111111111:role/app-*')), ROLE_ARNS)
        assert analysis.assume_role_targets == (ROLE_ARNS[0], ROLE_ARNS[1])

    def test_single_character_glob(self):
        analysis = analyze_policy('p', doc(allow('sts:AssumeRole', 'arn:aws:iam::111111111111:role/app-?ev')), ROLE_ARNS)
        assert analysis.assume_role_targets == (ROLE_ARNS[1],)

    def test_glob_is_case_sensitive(self):
        analysis = analyze_policy('p', doc(allow('sts:AssumeRole', 'arn:aws:iam::111111111111:role/APP-*')), ROLE_ARNS)
        assert analysis.assume_role_targets == ()

    def test_any_resource_targets_every_role(self):
        analysis = analyze_policy('p', doc(allow('sts:AssumeRole')), ROLE_ARNS)
        assert analysis.assume_role_targets == tuple(ROLE_ARNS)

    def test_action_match_is_case_insensitive(self):
        analysis = analyze_policy('p', doc(allow('STS:assumerole', ROLE_ARNS[2])), ROLE_ARNS)
        assert analysis.assume_role_targets == (ROLE_ARNS[2],)

    def test_only_plain_assume_role_counts(self):
        analysis = analyze_policy('p', doc(allow(['sts:AssumeRoleWithSAML', 'sts:*'], ROLE_ARNS[0])), ROLE_ARNS)
        assert analysis.assume_role_targets == ()

    def test_targets_survive_service_filter(self):
        analysis = analyze_policy('p', doc(allow('sts:AssumeRole', ROLE_ARNS[0])), ROLE_ARNS, service_filter=['s3'])
        assert analysis.stanzas == ()
        assert analysis.assume_role_targets == (ROLE_ARNS[0],)

    def test_unknown_roles_are_dropped(self):
        analysis = analyze_policy(
            'p', doc(allow('sts:AssumeRole', 'arn:aws:iam::999999999999:role/elsewhere')), ROLE_ARNS
        )
        assert analysis.assume_role_targets == ()

    def test_deny_still_resolves_targets(self):
        analysis = analyze_policy(
            'p', doc({'Effect': 'Deny', 'Action': 'sts:AssumeRole', 'Resource': ROLE_ARNS[2]}), ROLE_ARNS
        )
        assert analysis.assume_role_targets == (ROLE_ARNS[2],)
