"""
Tests for graph primitives: nodes, edges and the assembled AccessGraph.
"""

import networkx as nx

from bifrost.graph.model import AccessGraph, Edge, Node, NodeType, Relation
from bifrost.iam.policy_analyzer import analyze_policy

USER = Node('alice', NodeType.USER, 'arn:aws:iam::111111111111:user/alice', '111111111111')
GROUP = Node('Readers', NodeType.GROUP, 'arn:aws:iam::111111111111:group/Readers', '111111111111')
POLICY = Node('ReadS3', NodeType.MANAGED_POLICY, 'arn:aws:iam::111111111111:policy/ReadS3', '111111111111')
S3 = Node('s3', NodeType.SERVICE, 's3')


def s3_edge(action):
    analysis = analyze_policy(POLICY.arn, {'Statement': {'Effect': 'Allow', 'Action': action, 'Resource': '*'}}, [])
    return Edge(POLICY, S3, analysis.subset_for_service('s3'))


def sample_graph():
    return AccessGraph(
        nodes=[USER, GROUP, POLICY, S3],
        edges=[
            Edge(USER, GROUP, Relation.MEMBER_OF),
            Edge(GROUP, POLICY, Relation.ATTACHED_TO),
            s3_edge('s3:GetObject'),
        ],
    )


class TestNode:
    def test_equality_ignores_case_and_account(self):
        other = Node('ALICE', NodeType.USER, 'arn:aws:iam::111111111111:user/Alice')
        assert other == USER
        assert hash(other) == hash(USER)

    def test_type_matters(self):
        assert Node('s3', NodeType.SERVICE, 's3') != Node('s3', NodeType.GROUP, 's3')

    def test_key_and_typed_name(self):
        assert USER.key == 'user:arn:aws:iam::111111111111:user/alice'
        assert USER.typed_name == 'AwsIamUser:alice'
        assert S3.typed_name == 's3'
        assert Node('alice', NodeType.IDENTITY_PRINCIPAL, 'alice').typed_name == 'ID:alice'


class TestEdge:
    def test_relation_edge(self):
        edge = Edge(USER, GROUP, Relation.MEMBER_OF)
        assert edge.relation is Relation.MEMBER_OF
        assert edge.label_text == 'memberOf'
        assert edge.analysis is None
        assert not edge.grants_write

    def test_analysis_edges(self):
        read, write = s3_edge('s3:GetObject'), s3_edge('s3:PutObject')
        assert read.relation is Relation.REFERENCES
        assert read.label_text == 'reads' and not read.grants_write
        assert write.label_text == 'controls' and write.grants_write

    def test_deny_write_edge_does_not_grant_write(self):
        analysis = analyze_policy(POLICY.arn, {'Statement': {'Effect': 'Deny', 'Action': 's3:PutObject'}}, [])
        edge = Edge(POLICY, S3, analysis.subset_for_service('s3'))
        assert edge.label_text == 'controls'
        assert not edge.grants_write


class TestAccessGraph:
    def test_merge_drops_duplicates(self):
        first = sample_graph()
        second = AccessGraph(
            nodes=[Node('Alice', NodeType.USER, USER.arn.upper()), S3, Node('ec2', NodeType.SERVICE, 'ec2')],
            edges=[Edge(USER, GROUP, Relation.MEMBER_OF)],
        )
        merged = AccessGraph.merge(g for g in (first, second))
        assert len(merged.nodes) == 5
        assert len(merged.edges) == 3
        assert merged.nodes[0] is USER

    def test_nodes_of_type(self):
        assert sample_graph().nodes_of_type(NodeType.SERVICE) == [S3]

    def test_to_networkx(self):
        graph = sample_graph().to_networkx()
        assert isinstance(graph, nx.DiGraph)
        assert graph.number_of_nodes() == 4
        assert graph.nodes[USER.key]['type'] == 'user'
        attrs = graph.edges[POLICY.key, S3.key]
        assert attrs['relation'] == 'references'
        assert attrs['label'] == 'reads'
        assert attrs['write'] is False

    def test_cross_account_can_assume(self):
        role_a = Node('a', NodeType.ROLE, 'arn:aws:iam::111111111111:role/a')
        role_b = Node('b', NodeType.ROLE, 'arn:aws:iam::222222222222:role/b')
        graph = AccessGraph(nodes=[role_a, role_b], edges=[Edge(role_a, role_b, Relation.CAN_ASSUME)])
        assert graph.to_networkx().edges[role_a.key, role_b.key]['cross_account'] is True
        assert graph.stats()['cross_account_edges'] == 1

    def test_stats(self):
        stats = sample_graph().stats()
        assert stats['node_count'] == 4
        assert stats['edge_count'] == 3
        assert stats['nodes_by_type']['managed_policy'] == 1
        assert stats['edges_by_relation'] == {
            'attachedTo': 1, 'memberOf': 1, 'references': 1, 'canAssume': 0, 'is': 0,
        }
        assert stats['accounts'] == ['111111111111']

    def test_node_link_data(self):
        data = sample_graph().node_link_data()
        assert len(data['nodes']) == 4
        assert len(data['links']) == 3
        assert data['stats']['edge_count'] == 3
