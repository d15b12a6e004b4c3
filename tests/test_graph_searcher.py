"""
Tests for path enumeration over the access graph.
"""

import pytest

from bifrost.graph.model import Edge, Node, NodeType, Relation
from bifrost.graph.searcher import GraphSearcher, find_service_node


def node(name, node_type):
    return Node(name, node_type, f'arn:test:{node_type.value}/{name}')


USER = node('alice', NodeType.USER)
OKTA_USER = node('alice@corp.example', NodeType.OKTA_USER)
GROUP_A = node('GroupA', NodeType.GROUP)
GROUP_B = node('GroupB', NodeType.GROUP)
OKTA_GROUP = node('aws_111111111111_ops', NodeType.OKTA_GROUP)
ROLE_A = node('RoleA', NodeType.ROLE)
ROLE_B = node('RoleB', NodeType.ROLE)
POLICY = node('Policy', NodeType.MANAGED_POLICY)
S3 = Node('s3', NodeType.SERVICE, 's3')


class TestFindAncestors:
    def test_single_path_is_ordered_from_the_ancestor(self):
        edges = [
            Edge(USER, GROUP_A, Relation.MEMBER_OF),
            Edge(GROUP_A, POLICY, Relation.ATTACHED_TO),
            Edge(POLICY, S3, Relation.REFERENCES),
        ]
        matches = list(GraphSearcher(edges).find_ancestors(S3, NodeType.USER))
        assert len(matches) == 1
        user, path = matches[0]
        assert user == USER
        assert path == tuple(edges)

    def test_every_distinct_path_is_yielded(self):
        edges = [
            Edge(USER, GROUP_A, Relation.MEMBER_OF),
            Edge(USER, GROUP_B, Relation.MEMBER_OF),
            Edge(GROUP_A, POLICY, Relation.ATTACHED_TO),
            Edge(GROUP_B, POLICY, Relation.ATTACHED_TO),
            Edge(POLICY, S3, Relation.REFERENCES),
        ]
        matches = list(GraphSearcher(edges).find_ancestors(S3, NodeType.USER))
        assert [m[0] for m in matches] == [USER, USER]
        assert {m[1][0].destination for m in matches} == {GROUP_A, GROUP_B}

    def test_walk_stops_at_first_wanted_node(self):
        edges = [
            Edge(USER, GROUP_A, Relation.MEMBER_OF),
            Edge(GROUP_A, POLICY, Relation.ATTACHED_TO),
            Edge(POLICY, S3, Relation.REFERENCES),
        ]
        matches = list(GraphSearcher(edges).find_ancestors(S3, {NodeType.GROUP, NodeType.USER}))
        assert [m[0] for m in matches] == [GROUP_A]

    def test_cycles_terminate(self):
        edges = [
            Edge(USER, ROLE_B, Relation.CAN_ASSUME),
            Edge(ROLE_A, ROLE_B, Relation.CAN_ASSUME),
            Edge(ROLE_B, ROLE_A, Relation.CAN_ASSUME),
            Edge(ROLE_A, POLICY, Relation.ATTACHED_TO),
            Edge(POLICY, S3, Relation.REFERENCES),
        ]
        searcher = GraphSearcher(edges)
        matches = list(searcher.find_ancestors(S3, NodeType.USER))
        assert len(matches) == 1
        assert [e.source for e in matches[0][1]] == [USER, ROLE_B, ROLE_A, POLICY]

        descendants = list(searcher.find_services_attached_to(USER))
        assert [d[0] for d in descendants] == [S3]

    def test_unreachable_target(self):
        assert list(GraphSearcher([]).find_ancestors(S3, NodeType.USER)) == []


class TestSpecializations:
    EDGES = [
        Edge(OKTA_USER, OKTA_GROUP, Relation.MEMBER_OF),
        Edge(OKTA_GROUP, ROLE_A, Relation.CAN_ASSUME),
        Edge(USER, GROUP_A, Relation.MEMBER_OF),
        Edge(GROUP_A, POLICY, Relation.ATTACHED_TO),
        Edge(ROLE_A, POLICY, Relation.ATTACHED_TO),
        Edge(POLICY, S3, Relation.REFERENCES),
    ]

    def test_users_include_every_leaf_identity(self):
        users = {m[0] for m in GraphSearcher(self.EDGES).find_users_attached_to(S3)}
        assert users == {USER, OKTA_USER}

    def test_identity_groups_prefer_okta(self):
        searcher = GraphSearcher(self.EDGES)
        assert [m[0] for m in searcher.find_identity_groups_attached_to(S3)] == [OKTA_GROUP]
        assert [m[0] for m in searcher.find_groups_attached_to(S3)] == [GROUP_A]

    def test_identity_groups_fall_back_to_iam_groups(self):
        searcher = GraphSearcher(self.EDGES[2:])
        assert [m[0] for m in searcher.find_identity_groups_attached_to(S3)] == [GROUP_A]

    def test_roles(self):
        assert [m[0] for m in GraphSearcher(self.EDGES).find_roles_attached_to(POLICY)] == [ROLE_A]

    def test_identity_principals(self):
        principal = node('alice', NodeType.IDENTITY_PRINCIPAL)
        edges = self.EDGES + [Edge(principal, USER, Relation.IS), Edge(principal, OKTA_USER, Relation.IS)]

        matches = list(GraphSearcher(edges).find_identity_principals_attached_to(S3))

        assert [m[0] for m in matches] == [principal, principal]
        assert sorted(m[1][0].destination.name for m in matches) == ['alice', 'alice@corp.example']


class TestFindServiceNode:
    def test_case_insensitive(self):
        assert find_service_node([USER, S3], 'S3') is S3

    def test_missing(self):
        assert find_service_node([USER], 's3') is None

    def test_duplicates_rejected(self):
        with pytest.raises(ValueError):
            find_service_node([S3, Node('S3', NodeType.SERVICE, 'arn:aws:s3')], 's3')
