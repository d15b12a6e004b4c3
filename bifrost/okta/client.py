"""
Okta Client - Reads groups, users and group memberships from the Okta API.

Authentication uses an API token (``Authorization: SSWS <token>``). List
endpoints are paginated through the ``Link: <...>; rel="next"`` header, and
HTTP 429 responses are retried once the ``X-Rate-Limit-Reset`` epoch passes.

Typical usage:
    client = OktaClient('example.okta.com', api_token)
    directory = client.fetch_directory()
"""

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from bifrost.inventory import OktaDirectory, OktaGroup, OktaGroupMember, OktaUser

logger = logging.getLogger(__name__)

# Constants
PAGE_LIMIT = 200
REQUEST_TIMEOUT = 30
MAX_RATE_LIMIT_RETRIES = 3
DEFAULT_GROUP_PREFIX = 'aws_'


class OktaApiError(RuntimeError):
    """Raised when the Okta API rejects a request or cannot be reached"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def normalize_base_url(domain: str) -> str:
    """``example.okta.com`` or ``https://example.okta.com/`` -> ``https://example.okta.com``"""
    domain = domain.strip().rstrip('/')
    if not domain.startswith(('https://', 'http://')):
        domain = f'https://{domain}'
    return domain


def domain_name(domain: str) -> str:
    """Host part of an Okta domain or base URL, used to name snapshot files."""
    return normalize_base_url(domain).split('://', 1)[1]


class OktaClient:
    """Thin read-only wrapper over the Okta management API"""

    def __init__(self, domain: str, api_token: str, session: Optional[requests.Session] = None):
        """
        Args:
            domain: Okta org domain or base URL
            api_token: API token, with or without the ``SSWS `` prefix
            session: Pre-built requests session (tests pass a mock)
        """
        if not api_token:
            raise ValueError("An Okta API token is required")

        self.base_url = normalize_base_url(domain)
        if not api_token.startswith('SSWS '):
            api_token = f'SSWS {api_token}'

        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': api_token,
            'Accept': 'application/json',
            'Content-Type': 'application/json',
        })

    @property
    def domain(self) -> str:
        return domain_name(self.base_url)

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        for attempt in range(MAX_RATE_LIMIT_RETRIES + 1):
            try:
                response = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT)
            except requests.exceptions.RequestException as e:
                raise OktaApiError(f"Request to {url} failed: {e}") from e

            if response.status_code == 429 and attempt < MAX_RATE_LIMIT_RETRIES:
                reset = response.headers.get('X-Rate-Limit-Reset')
                wait = max(int(reset) - int(time.time()), 1) if reset else 1
                logger.warning("Okta rate limit hit on %s, waiting %d seconds", url, wait)
                time.sleep(wait)
                continue

            if response.status_code == 401:
                raise OktaApiError("Okta authentication failed, check the API token", status_code=401)
            if not response.ok:
                raise OktaApiError(
                    f"Okta API returned {response.status_code} for {url}", status_code=response.status_code
                )
            return response

        raise OktaApiError(f"Okta rate limit not lifted for {url}", status_code=429)

    def _paginate(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """GET every page of a list endpoint."""
        url: Optional[str] = f'{self.base_url}{endpoint}'
        params = {'limit': PAGE_LIMIT, **(params or {})}
        results: List[Dict[str, Any]] = []
        pages = 0

        while url:
            response = self._get(url, params=params)
            data = response.json()
            if not isinstance(data, list):
                raise OktaApiError(f"Expected a list from {endpoint}, got {type(data).__name__}")
            results.extend(data)
            pages += 1

            # The next link already carries the query string
            url = response.links.get('next', {}).get('url')
            params = None

        logger.debug("Fetched %d record(s) from %s in %d page(s)", len(results), endpoint, pages)
        return results

    def list_groups(self, name_prefix: Optional[str] = None) -> List[OktaGroup]:
        params = {'q': name_prefix} if name_prefix else None
        return [OktaGroup.from_api(g) for g in self._paginate('/api/v1/groups', params)]

    def list_users(self) -> List[OktaUser]:
        return [OktaUser.from_api(u) for u in self._paginate('/api/v1/users')]

    def list_group_users(self, group_id: str) -> List[OktaGroupMember]:
        return [
            OktaGroupMember.from_api(m, group_id=group_id)
            for m in self._paginate(f'/api/v1/groups/{group_id}/users')
        ]

    def fetch_directory(self, group_prefix: Optional[str] = DEFAULT_GROUP_PREFIX) -> OktaDirectory:
        """
        Collect groups, users and memberships.

        Args:
            group_prefix: Only groups whose name starts with this are read
                (and their members); None reads every group

        Returns:
            OktaDirectory ready to be saved or mapped onto roles
        """
        groups = self.list_groups(group_prefix)
        if group_prefix:
            # The q= search is a prefix match on several profile fields
            groups = [g for g in groups if g.name.lower().startswith(group_prefix.lower())]
        logger.info("Found %d Okta group(s) in %s", len(groups), self.domain)

        users = self.list_users()
        memberships = {group.id: self.list_group_users(group.id) for group in groups}

        logger.info(
            "Fetched Okta directory %s: %d groups, %d users, %d memberships",
            self.domain, len(groups), len(users), sum(len(m) for m in memberships.values()),
        )
        return OktaDirectory(groups=groups, users=users, memberships=memberships)
