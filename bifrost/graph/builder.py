"""
Graph Builder - Assembles the access graph from collected inventories.

Passes, per account:
  1. analyze managed policy documents (optionally on a thread pool)
  2. analyze role trust documents
  3. service nodes for every service prefix in any stanza
  4. managed policy nodes with ``references`` edges per service
  5. permission sets, groups, roles, users and Identity Store groups with
     ``attachedTo`` / ``memberOf`` edges
  6. role-assumption closure (``canAssume``)
  7. Okta groups mapped onto roles, Okta users
  8. Identity Store users
  9. identity correlation (``is``)
 10. pruning

Typical usage:
    builder = GraphBuilder(BuildOptions(service_prefixes=['s3']))
    graph = builder.build(inventory, okta_directory)
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, TypeVar

from bifrost.config import BuildOptions
from bifrost.graph.correlation import correlate_identities
from bifrost.graph.model import AccessGraph, Edge, Node, NodeType, POLICY_TYPES, Relation
from bifrost.graph.searcher import GraphSearcher
from bifrost.iam.arn_utils import extract_account_id
from bifrost.iam.policy_analyzer import PolicyAnalysis, analyze_policy
from bifrost.iam.policy_document import RawDocument
from bifrost.iam.trust_analyzer import TrustAnalysis, analyze_trust
from bifrost.inventory import AccountInventory, InlinePolicy, OktaDirectory

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')

ASSIGNMENT_GROUP = 'GROUP'
ASSIGNMENT_USER = 'USER'


def _run_pool(func: Callable[[T], R], items: Sequence[T], max_workers: int) -> List[R]:
    """Map ``func`` over ``items`` in input order, on a thread pool when asked to."""
    if max_workers > 1 and len(items) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(func, items))
    return [func(item) for item in items]


def analyze_policies(
    policies: Sequence[Tuple[str, RawDocument]],
    role_arns: Sequence[str],
    service_filter: Sequence[str] = (),
    max_workers: int = 1,
) -> Dict[str, PolicyAnalysis]:
    """
    Analyze ``(policy_ref, document)`` pairs.

    Duplicate refs (a policy split across API pages) are merged by
    concatenation, in input order.
    """
    def analyze(item: Tuple[str, RawDocument]) -> PolicyAnalysis:
        ref, document = item
        return analyze_policy(ref, document, role_arns, service_filter)

    merged: Dict[str, PolicyAnalysis] = {}
    for result in _run_pool(analyze, list(policies), max_workers):
        existing = merged.get(result.policy_ref)
        merged[result.policy_ref] = existing.merge(result) if existing else result
    return merged


def analyze_trusts(
    trust_documents: Sequence[Tuple[str, RawDocument]],
    max_workers: int = 1,
) -> Dict[str, TrustAnalysis]:
    """Analyze ``(role_arn, trust_document)`` pairs."""
    def analyze(item: Tuple[str, RawDocument]) -> TrustAnalysis:
        arn, document = item
        return analyze_trust(document, role_ref=arn)

    return {result.role_ref: result for result in _run_pool(analyze, list(trust_documents), max_workers)}


class GraphBuilder:
    """Builds the access graph of one AWS account"""

    def __init__(self, options: Optional[BuildOptions] = None):
        self.options = options or BuildOptions()
        self._reset()

    def _reset(self) -> None:
        self.nodes: List[Node] = []
        self.edges: List[Edge] = []
        self.policy_analyses: Dict[str, PolicyAnalysis] = {}
        self.trust_analyses: Dict[str, TrustAnalysis] = {}

        self._known_nodes: Set[Node] = set()
        self._known_edges: Set[Edge] = set()
        self._services: Dict[str, Node] = {}
        self._policies: Dict[str, Node] = {}
        self._roles: Dict[str, Node] = {}
        self._groups: Dict[str, Node] = {}
        self._permission_sets: Dict[str, Node] = {}
        self._role_policy_refs: Dict[str, List[str]] = {}

    # ------------------------------------------------------------------
    # Node / edge arena
    # ------------------------------------------------------------------

    def _add_node(self, node: Node) -> Node:
        if node not in self._known_nodes:
            self._known_nodes.add(node)
            self.nodes.append(node)
        return node

    def _add_edge(self, source: Node, destination: Node, label) -> None:
        edge = Edge(source, destination, label)
        if edge not in self._known_edges:
            self._known_edges.add(edge)
            self.edges.append(edge)

    def _service_node(self, prefix: str) -> Node:
        key = prefix.lower()
        if key not in self._services:
            self._services[key] = self._add_node(Node(name=key, type=NodeType.SERVICE, arn=key))
        return self._services[key]

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def build(self, inventory: AccountInventory, okta: Optional[OktaDirectory] = None) -> AccessGraph:
        """
        Build the access graph for one account.

        Args:
            inventory: Collected AWS and Identity Center data for the account
            okta: Okta directory, if Okta federates into AWS

        Returns:
            AccessGraph with pruned nodes and edges

        Raises:
            PolicyParseError: If any policy or trust document is malformed
        """
        self._reset()
        options = self.options
        account_id = inventory.account_id
        role_arns = inventory.role_arns

        logger.info("Building access graph for account %s", account_id)

        # 1. Managed policy analysis
        documents = []
        for policy in inventory.managed_policies:
            document = policy.document
            if document is None:
                logger.warning("Managed policy %s has no default version document, skipping", policy.arn)
                continue
            documents.append((policy.arn, document))
        logger.info("Analyzing managed policy contents... (count=%d)", len(documents))
        self.policy_analyses = analyze_policies(documents, role_arns, options.service_prefixes, options.max_workers)

        # 2. Trust analysis
        logger.info("Analyzing assume role policy document contents... (count=%d)", len(inventory.roles))
        self.trust_analyses = analyze_trusts(
            [(role.arn, role.trust_document) for role in inventory.roles],
            options.max_workers,
        )

        # 3. Service nodes
        for analysis in self.policy_analyses.values():
            for service in analysis.services():
                self._service_node(service)

        # 4. Managed policies
        names = {policy.arn: policy.name for policy in inventory.managed_policies}
        for arn, analysis in self.policy_analyses.items():
            node = self._add_node(Node(name=names[arn], type=NodeType.MANAGED_POLICY, arn=arn, account_id=account_id))
            self._policies[arn.lower()] = node
            for service in analysis.services():
                self._add_edge(node, self._service_node(service), analysis.subset_for_service(service))

        # 5. Principals holding policies
        for permission_set in inventory.permission_sets:
            node = self._add_node(Node(
                name=permission_set.name, type=NodeType.PERMISSION_SET, arn=permission_set.arn, account_id=account_id
            ))
            self._permission_sets[permission_set.arn.lower()] = node
            self._attach_policies(node, permission_set.attached_policy_arns, permission_set.inline_policies, role_arns)

        for group in inventory.groups:
            node = self._add_node(Node(name=group.name, type=NodeType.GROUP, arn=group.arn, account_id=account_id))
            self._groups[group.name.lower()] = node
            self._attach_policies(node, group.attached_policy_arns, group.inline_policies, role_arns)

        for role in inventory.roles:
            node = self._add_node(Node(name=role.name, type=NodeType.ROLE, arn=role.arn, account_id=account_id))
            self._roles[role.arn.lower()] = node
            self._role_policy_refs[role.arn.lower()] = self._attach_policies(
                node, role.attached_policy_arns, role.inline_policies, role_arns
            )

        if not options.no_identities:
            for user in inventory.users:
                node = self._add_node(Node(name=user.name, type=NodeType.USER, arn=user.arn, account_id=account_id))
                for group_name in user.group_names:
                    group_node = self._groups.get(group_name.lower())
                    if group_node is not None:
                        self._add_edge(node, group_node, Relation.MEMBER_OF)
                self._attach_policies(node, user.attached_policy_arns, user.inline_policies, role_arns)

        identity_store_groups = self._add_identity_store_assignments(inventory)

        # 6. Role assumption
        self._resolve_role_assumption()

        # 7. Okta
        if okta is not None:
            self._add_okta(inventory, okta)

        # 8. Identity Store users
        if not options.no_identities:
            self._add_identity_store_users(inventory, identity_store_groups)

        # 9. Identity correlation
        if not options.no_identities:
            principals, is_edges = correlate_identities(list(self.nodes), options.correlator)
            for principal in principals:
                self._add_node(principal)
            for edge in is_edges:
                self._add_edge(edge.source, edge.destination, edge.label)

        # 10. Pruning, then orphans
        if not options.no_prune:
            self._prune()
        self._drop_orphans()

        graph = AccessGraph(nodes=list(self.nodes), edges=list(self.edges))
        logger.info(
            "Built access graph for account %s: %d nodes, %d edges",
            account_id, len(graph.nodes), len(graph.edges)
        )
        return graph

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def _attach_policies(
        self,
        holder: Node,
        managed_arns: Iterable[str],
        inline_policies: Iterable[InlinePolicy],
        role_arns: Sequence[str],
    ) -> List[str]:
        """Add attachedTo edges to managed and inline policies; return the policy refs attached."""
        attached: List[str] = []

        for arn in managed_arns:
            policy_node = self._policies.get(arn.lower())
            if policy_node is None:
                logger.debug("%s references unknown managed policy %s", holder.name, arn)
                continue
            self._add_edge(holder, policy_node, Relation.ATTACHED_TO)
            attached.append(policy_node.arn)

        for inline in inline_policies:
            name = f"{holder.name}/{inline.name}"
            ref = f"{holder.arn}/inline/{inline.name}"
            analysis = analyze_policy(ref, inline.document, role_arns, self.options.service_prefixes)
            self.policy_analyses[ref] = analysis

            policy_node = self._add_node(Node(
                name=name, type=NodeType.INLINE_POLICY, arn=ref, account_id=holder.account_id
            ))
            self._policies[ref.lower()] = policy_node
            for service in analysis.services():
                self._add_edge(policy_node, self._service_node(service), analysis.subset_for_service(service))
            self._add_edge(holder, policy_node, Relation.ATTACHED_TO)
            attached.append(ref)

        return attached

    def _add_identity_store_assignments(self, inventory: AccountInventory) -> Dict[str, Node]:
        """Identity Store groups (and directly assigned users) -> permission sets."""
        group_names = {g.group_id: g.display_name for g in inventory.identity_store_groups}
        user_names = {u.user_id: u.user_name for u in inventory.identity_store_users}
        group_nodes: Dict[str, Node] = {}

        for assignment in inventory.account_assignments:
            if assignment.account_id != inventory.account_id:
                continue
            permission_set = self._permission_sets.get(assignment.permission_set_arn.lower())
            if permission_set is None:
                logger.debug("Assignment to unknown permission set %s", assignment.permission_set_arn)
                continue

            principal_type = assignment.principal_type.upper()
            if principal_type == ASSIGNMENT_GROUP:
                node = group_nodes.get(assignment.principal_id)
                if node is None:
                    node = self._add_node(Node(
                        name=group_names.get(assignment.principal_id, assignment.principal_id),
                        type=NodeType.IDENTITY_STORE_GROUP,
                        arn=assignment.principal_id,
                    ))
                    group_nodes[assignment.principal_id] = node
                self._add_edge(node, permission_set, Relation.ATTACHED_TO)

            elif principal_type == ASSIGNMENT_USER and not self.options.no_identities:
                user_name = user_names.get(assignment.principal_id)
                if user_name is None:
                    logger.debug("Assignment to unknown Identity Store user %s", assignment.principal_id)
                    continue
                node = self._add_node(Node(
                    name=user_name, type=NodeType.IDENTITY_STORE_USER, arn=assignment.principal_id
                ))
                self._add_edge(node, permission_set, Relation.ATTACHED_TO)

        return group_nodes

    def _add_identity_store_users(self, inventory: AccountInventory, group_nodes: Dict[str, Node]) -> None:
        users = {u.user_id: u for u in inventory.identity_store_users}
        for membership in inventory.group_memberships:
            group_node = group_nodes.get(membership.group_id)
            user = users.get(membership.user_id)
            if group_node is None or user is None:
                continue
            node = self._add_node(Node(name=user.user_name, type=NodeType.IDENTITY_STORE_USER, arn=user.user_id))
            self._add_edge(node, group_node, Relation.MEMBER_OF)

    def _resolve_role_assumption(self) -> None:
        """
        Add canAssume edges for sts:AssumeRole grants.

        For a policy P targeting role R and every role or user S holding P:
        - S -> R when R's trust names S or allows its account root
        - S -> R' for every target R' of P when S's own trust allows root
        - T -> R for every role T trusted by S that itself holds a policy
          targeting R
        """
        searcher = GraphSearcher(self.edges)
        holder_types = {NodeType.ROLE, NodeType.USER}

        for policy_ref, analysis in self.policy_analyses.items():
            if not analysis.assume_role_targets:
                continue
            policy_node = self._policies.get(policy_ref.lower())
            if policy_node is None:
                continue

            targets: List[Node] = []
            for arn in analysis.assume_role_targets:
                target = self._roles.get(arn.lower())
                if target is not None and target not in targets:
                    targets.append(target)
            if not targets:
                continue

            logger.debug("Policy %s can assume %s", policy_ref, ', '.join(t.arn for t in targets))

            holders: List[Node] = []
            for holder, _path in searcher.find_ancestors(policy_node, holder_types):
                if holder not in holders:
                    holders.append(holder)
            if not holders:
                logger.debug("  but is not attached to any role or user")
                continue

            for holder in holders:
                logger.debug("  and is held by %s", holder.arn)
                for target in targets:
                    if target == holder:
                        continue
                    target_trust = self.trust_analyses.get(target.arn)
                    if target_trust and (target_trust.root_allowed or target_trust.trusts(holder.arn)):
                        logger.debug("    which %s trusts: %s -> %s", target.name, holder.name, target.name)
                        self._add_edge(holder, target, Relation.CAN_ASSUME)

                if holder.type is not NodeType.ROLE:
                    continue
                self._expand_through_holder_trust(holder, targets)

    def _expand_through_holder_trust(self, holder: Node, targets: List[Node]) -> None:
        holder_trust = self.trust_analyses.get(holder.arn)
        if holder_trust is None:
            return

        if holder_trust.root_allowed:
            logger.debug("    %s can be assumed by anything granted sts:AssumeRole to it", holder.name)
            for target in targets:
                if target != holder:
                    self._add_edge(holder, target, Relation.CAN_ASSUME)
            return

        for trusted_arn in holder_trust.trusted_principals:
            trusted = self._roles.get(trusted_arn.lower())
            if trusted is None:
                logger.debug("    trusted entity %s is unresolved (skipping)", trusted_arn)
                continue
            trusted_refs = self._role_policy_refs.get(trusted.arn.lower(), [])
            for target in targets:
                if target == trusted:
                    continue
                if any(target.arn in self.policy_analyses[ref].assume_role_targets
                       for ref in trusted_refs if ref in self.policy_analyses):
                    logger.debug("    trusted entity %s CAN assume %s", trusted.name, target.name)
                    self._add_edge(trusted, target, Relation.CAN_ASSUME)

    def _add_okta(self, inventory: AccountInventory, okta: OktaDirectory) -> None:
        """Okta groups named aws_<account>_<role> federate into matching roles via SAML."""
        providers = {p.arn.lower(): extract_account_id(p.arn) for p in inventory.saml_providers}
        roles_by_name: Dict[str, List] = {}
        for role in inventory.roles:
            roles_by_name.setdefault(role.name.lower(), []).append(role)

        group_nodes: List[Tuple[Node, str]] = []
        for group in okta.groups:
            if not group.aws_role_name:
                continue

            matching_role = None
            for role in roles_by_name.get(group.aws_role_name.lower(), []):
                trust = self.trust_analyses.get(role.arn)
                if trust is None:
                    continue
                if any(arn.lower() in providers and providers[arn.lower()] == group.aws_account_id
                       for arn in trust.saml_providers):
                    matching_role = role
                    break

            if matching_role is None:
                continue
            role_node = self._roles.get(matching_role.arn.lower())
            if role_node is None:
                continue

            group_node = self._add_node(Node(name=group.name, type=NodeType.OKTA_GROUP, arn=group.id))
            self._add_edge(group_node, role_node, Relation.CAN_ASSUME)
            group_nodes.append((group_node, group.id))

        logger.info("Mapped %d Okta group(s) onto roles in account %s", len(group_nodes), inventory.account_id)

        if self.options.no_identities:
            return

        users = {u.user_id.lower(): u for u in okta.users}
        for group_node, group_id in group_nodes:
            for member in okta.members_of(group_id):
                user = users.get(member.user_id.lower())
                # Suspended or deactivated users can still be assigned but have no login
                if user is None or not user.login:
                    continue
                user_node = self._add_node(Node(name=user.login, type=NodeType.OKTA_USER, arn=user.user_id))
                self._add_edge(user_node, group_node, Relation.MEMBER_OF)

    def _prune(self) -> None:
        """
        Drop nodes that cannot reach a service.

        Non-service nodes without outgoing edges are removed repeatedly,
        together with the edges entering them.
        """
        nodes = list(self.nodes)
        edges = list(self.edges)

        while True:
            has_outgoing = {edge.source for edge in edges}
            dead = {n for n in nodes if n.type is not NodeType.SERVICE and n not in has_outgoing}
            if not dead:
                break
            nodes = [n for n in nodes if n not in dead]
            edges = [e for e in edges if e.source not in dead and e.destination not in dead]

        pruned = len(self.nodes) - len(nodes)
        self.nodes = nodes
        self.edges = edges
        self._known_nodes = set(self.nodes)
        self._known_edges = set(self.edges)

        remaining_policies = sum(1 for n in self._known_nodes if n.type in POLICY_TYPES)
        logger.info("Pruned %d unrelated node(s); %d policy node(s) remain", pruned, remaining_policies)

    def _drop_orphans(self) -> None:
        """Drop nodes without any incident edge."""
        connected = {e.source for e in self.edges} | {e.destination for e in self.edges}
        orphans = [n for n in self.nodes if n not in connected]
        if orphans:
            self.nodes = [n for n in self.nodes if n in connected]
            self._known_nodes = set(self.nodes)
            logger.debug("Dropped %d orphan node(s)", len(orphans))


def build_access_graph(
    inventories: Iterable[AccountInventory],
    okta: Optional[OktaDirectory] = None,
    options: Optional[BuildOptions] = None,
) -> AccessGraph:
    """Build one graph per account and merge them."""
    builder = GraphBuilder(options)
    return AccessGraph.merge(builder.build(inventory, okta) for inventory in inventories)
