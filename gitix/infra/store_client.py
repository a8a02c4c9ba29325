"""
Object store client for gitix.

Typed access to a hosted Git repository through the GitHub Git Data API:
- blobs, trees (shallow or recursive), commits, refs and tags
- compare and pull requests for the UI and merge proposals
- bounded retry with exponential backoff for reads only

Writes (POST/PATCH/DELETE) are sent exactly once so a retry can never
create duplicate objects. Every response is validated into the domain
variants in `gitix.domain.objects`; a malformed payload is a StoreError.
"""

import base64
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import requests

from ..domain.objects import (
    BlobRef,
    CommitRef,
    RefRef,
    TreeEntry,
    TreeListing,
    TreeRef,
    entries_to_api,
)
from ..exit_codes import Conflict, NotFound, StoreError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.github.com"
PAGE_SIZE = 100

# HTTP methods that are safe to repeat
IDEMPOTENT_METHODS = ('GET', 'HEAD')


@dataclass
class RateLimitStatus:
    """Store API rate limit status."""
    remaining: int
    limit: int
    reset_time: int  # Unix timestamp
    used: int

    @property
    def minutes_until_reset(self) -> int:
        now = int(time.time())
        return max(0, (self.reset_time - now) // 60)

    @property
    def is_low(self) -> bool:
        """Check if rate limit is getting low (< 100 remaining)."""
        return self.remaining < 100


def _error_message(response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict) and data.get('message'):
        return data['message']
    return f"HTTP {response.status_code}"


class ObjectStoreClient:
    """
    Client for one repository's object graph.

    Example:
        client = ObjectStoreClient("octo", "notes", token="...")
        head = client.get_branch_head("main")
        commit = client.get_commit(head)
        listing = client.get_tree(commit.tree)
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        token: Optional[str] = None,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize ObjectStoreClient.

        Args:
            owner: Repository owner
            repo: Repository name
            token: API token (defaults to GITIX_TOKEN or GITHUB_TOKEN env var)
            api_base: API root URL
            timeout: HTTP request timeout in seconds
            max_retries: Maximum attempts for read requests
            base_delay: Base delay for exponential backoff
            max_delay: Maximum delay between retries
            session: Pre-built session (tests inject a mock here)
        """
        if not owner or not repo:
            raise ValueError("Repository owner and name are required")
        self.owner = owner
        self.repo = repo
        self.api_base = api_base.rstrip('/')
        self.token = token or os.environ.get('GITIX_TOKEN') or os.environ.get('GITHUB_TOKEN')
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._rate_limit_status: Optional[RateLimitStatus] = None

        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/vnd.github+json',
            'User-Agent': 'gitix',
        })
        if self.token:
            self.session.headers['Authorization'] = f'token {self.token}'

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'ObjectStoreClient':
        """Build a client from the `store` section of a gitix config."""
        store = config.get('store', {})
        return cls(
            owner=store.get('owner', ''),
            repo=store.get('repo', ''),
            token=store.get('token') or None,
            api_base=store.get('api_base', DEFAULT_API_BASE),
            timeout=store.get('timeout_seconds', 30),
            max_retries=store.get('max_retries', 3),
            base_delay=store.get('base_delay', 1.0),
            max_delay=store.get('max_delay', 60.0),
        )

    @property
    def repo_path(self) -> str:
        return f"repos/{self.owner}/{self.repo}"

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _update_rate_limit_from_headers(self, headers) -> None:
        """Update rate limit status from response headers."""
        try:
            remaining = int(headers.get('X-RateLimit-Remaining', -1))
            limit = int(headers.get('X-RateLimit-Limit', -1))
            reset_time = int(headers.get('X-RateLimit-Reset', 0))
            used = int(headers.get('X-RateLimit-Used', 0))
        except (ValueError, TypeError):
            return

        if remaining >= 0 and limit >= 0:
            self._rate_limit_status = RateLimitStatus(
                remaining=remaining,
                limit=limit,
                reset_time=reset_time,
                used=used,
            )
            if self._rate_limit_status.is_low:
                logger.warning(
                    f"Store API rate limit low: {remaining}/{limit} remaining, "
                    f"resets in {self._rate_limit_status.minutes_until_reset} minutes"
                )

    def get_rate_limit_status(self) -> Optional[RateLimitStatus]:
        """Rate limit status seen on the last response, if any."""
        return self._rate_limit_status

    def _backoff(self, attempt: int, response=None) -> float:
        if response is not None:
            reset_time = response.headers.get('X-RateLimit-Reset')
            if reset_time:
                try:
                    wait_time = int(reset_time) - int(time.time())
                except ValueError:
                    wait_time = 0
                if 0 < wait_time < self.max_delay:
                    return wait_time
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    def _request(
        self,
        method: str,
        endpoint: str,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON body.

        Reads are retried on transport errors, rate limiting and 5xx;
        writes get exactly one attempt.

        Raises:
            NotFound: on 404
            Conflict: on 409
            StoreError: on any other failure (carries the upstream status)
        """
        url = f"{self.api_base}/{endpoint}"
        attempts = self.max_retries if method in IDEMPOTENT_METHODS else 1
        last_error: Optional[StoreError] = None

        for attempt in range(attempts):
            logger.debug(f"{method} {endpoint} (attempt {attempt + 1}/{attempts})")
            try:
                response = self.session.request(
                    method, url, json=json_body, params=params, timeout=self.timeout
                )
            except requests.RequestException as e:
                last_error = StoreError(f"Store request failed for {endpoint}: {e}")
                logger.warning(str(last_error))
                if attempt < attempts - 1:
                    time.sleep(self._backoff(attempt))
                continue

            self._update_rate_limit_from_headers(response.headers)
            status = response.status_code

            if status < 400:
                if status == 204 or not response.content:
                    return {}
                try:
                    return response.json()
                except ValueError:
                    raise StoreError(f"Invalid JSON from store for {endpoint}", status)

            message = _error_message(response)
            if status == 404:
                raise NotFound(f"Not found in store: {endpoint}")
            if status == 409:
                raise Conflict(f"Store conflict for {endpoint}: {message}")

            retryable = (status in (403, 429) and 'rate limit' in message.lower()) or status >= 500
            last_error = StoreError(f"Store error {status} for {endpoint}: {message}", status)
            if retryable and attempt < attempts - 1:
                delay = self._backoff(attempt, response)
                logger.info(f"Store returned {status}, waiting {delay}s (attempt {attempt + 1})")
                time.sleep(delay)
                continue
            raise last_error

        raise last_error or StoreError(f"Store request failed for {endpoint}")

    def _parse(self, parser, data, what: str):
        try:
            return parser(data)
        except (ValueError, TypeError, KeyError) as e:
            raise StoreError(f"Malformed {what} response from store: {e}")

    # =========================================================================
    # BLOBS
    # =========================================================================

    def get_blob(self, sha: str) -> BlobRef:
        """Fetch a blob with its decoded content."""
        data = self._request('GET', f"{self.repo_path}/git/blobs/{sha}")
        try:
            if data.get('encoding') == 'base64':
                content = base64.b64decode(data.get('content', ''))
            else:
                content = (data.get('content') or '').encode('utf-8')
        except (ValueError, TypeError, AttributeError) as e:
            raise StoreError(f"Malformed blob response from store: {e}")
        return self._parse(lambda d: BlobRef.from_api_response(d, content=content), data, 'blob')

    def create_blob(self, content: bytes) -> BlobRef:
        """Upload content as a new blob."""
        payload = {
            'content': base64.b64encode(bytes(content)).decode('ascii'),
            'encoding': 'base64',
        }
        data = self._request('POST', f"{self.repo_path}/git/blobs", json_body=payload)
        blob = self._parse(BlobRef.from_api_response, data, 'blob')
        logger.debug(f"Created blob {blob.sha[:7]} ({len(content)} bytes)")
        return blob

    # =========================================================================
    # TREES
    # =========================================================================

    def get_tree(self, sha: str, recursive: bool = False) -> TreeListing:
        """
        Fetch a tree listing.

        Args:
            sha: Tree sha
            recursive: Return every descendant with slash-separated paths
        """
        params = {'recursive': '1'} if recursive else None
        data = self._request('GET', f"{self.repo_path}/git/trees/{sha}", params=params)
        listing = self._parse(TreeListing.from_api_response, data, 'tree')
        if listing.truncated:
            logger.warning(f"Tree listing for {sha[:7]} was truncated by the store")
        return listing

    def create_tree(self, entries: Iterable[TreeEntry], base_tree: Optional[str] = None) -> TreeRef:
        """
        Create a tree from entries.

        With `base_tree` the entries are overlaid on that tree (nested
        paths allowed); without it they are the complete new listing.
        """
        payload: Dict[str, Any] = {'tree': entries_to_api(list(entries))}
        if base_tree:
            payload['base_tree'] = base_tree
        data = self._request('POST', f"{self.repo_path}/git/trees", json_body=payload)
        tree = self._parse(TreeRef.from_api_response, data, 'tree')
        logger.debug(f"Created tree {tree.sha[:7]}")
        return tree

    # =========================================================================
    # COMMITS
    # =========================================================================

    def get_commit(self, sha: str) -> CommitRef:
        data = self._request('GET', f"{self.repo_path}/git/commits/{sha}")
        return self._parse(CommitRef.from_api_response, data, 'commit')

    def create_commit(self, message: str, tree: str, parents: List[str]) -> CommitRef:
        payload = {'message': message, 'tree': tree, 'parents': list(parents)}
        data = self._request('POST', f"{self.repo_path}/git/commits", json_body=payload)
        commit = self._parse(CommitRef.from_api_response, data, 'commit')
        logger.debug(f"Created commit {commit.sha[:7]} on tree {tree[:7]}")
        return commit

    # =========================================================================
    # REFS
    # =========================================================================

    def get_ref(self, ref: str) -> RefRef:
        """Fetch a ref given as `heads/<branch>` or `tags/<tag>`."""
        data = self._request('GET', f"{self.repo_path}/git/ref/{ref}")
        return self._parse(RefRef.from_api_response, data, 'ref')

    def get_branch_head(self, branch: str) -> str:
        """Commit sha the branch currently points at."""
        try:
            return self.get_ref(f"heads/{branch}").sha
        except NotFound:
            raise NotFound(f"Branch '{branch}' not found.")

    def create_ref(self, ref: str, sha: str) -> RefRef:
        """
        Create a new ref.

        Raises:
            Conflict: if the ref already exists
        """
        payload = {'ref': f"refs/{ref}", 'sha': sha}
        try:
            data = self._request('POST', f"{self.repo_path}/git/refs", json_body=payload)
        except StoreError as e:
            if e.status_code == 422 and 'already exists' in e.message.lower():
                raise Conflict(f"Ref '{ref}' already exists.", Conflict.EXISTS)
            raise
        return self._parse(RefRef.from_api_response, data, 'ref')

    def update_ref(self, ref: str, sha: str, force: bool = False) -> RefRef:
        """
        Move a ref to `sha`.

        Without `force` the store only accepts a fast-forward.

        Raises:
            Conflict: (stale_ref) when the update is not a fast-forward
        """
        payload = {'sha': sha, 'force': force}
        try:
            data = self._request('PATCH', f"{self.repo_path}/git/refs/{ref}", json_body=payload)
        except StoreError as e:
            if e.status_code == 422 and 'fast forward' in e.message.lower():
                raise Conflict(f"Ref '{ref}' moved; update is not a fast forward.", Conflict.STALE_REF)
            raise
        return self._parse(RefRef.from_api_response, data, 'ref')

    def delete_ref(self, ref: str) -> None:
        self._request('DELETE', f"{self.repo_path}/git/refs/{ref}")
        logger.debug(f"Deleted ref {ref}")

    def _paginate(self, endpoint: str) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            data = self._request('GET', endpoint, params={'per_page': PAGE_SIZE, 'page': page})
            if not isinstance(data, list):
                raise StoreError(f"Malformed listing response from store for {endpoint}")
            items.extend(data)
            if len(data) < PAGE_SIZE:
                return items
            page += 1

    def list_tags(self) -> List[RefRef]:
        """All tags of the repository."""
        data = self._paginate(f"{self.repo_path}/tags")
        return [self._parse(RefRef.from_tag_listing, item, 'tag') for item in data]

    def list_branches(self) -> List[RefRef]:
        data = self._paginate(f"{self.repo_path}/branches")
        return [self._parse(RefRef.from_branch_listing, item, 'branch') for item in data]

    def list_commits(self, branch: str, limit: int = 10) -> List[CommitRef]:
        """The most recent commits reachable from `branch`, newest first."""
        params = {'sha': branch, 'per_page': max(1, min(limit, PAGE_SIZE))}
        try:
            data = self._request('GET', f"{self.repo_path}/commits", params=params)
        except NotFound:
            raise NotFound(f"Branch '{branch}' not found.")
        if not isinstance(data, list):
            raise StoreError(f"Malformed commit listing response from store for '{branch}'")
        return [self._parse(CommitRef.from_commit_listing, item, 'commit') for item in data]

    # =========================================================================
    # UI HELPERS
    # =========================================================================

    def compare(self, base: str, head: str) -> Dict[str, Any]:
        """Raw comparison of two refs or commits."""
        return self._request('GET', f"{self.repo_path}/compare/{base}...{head}")

    def create_pull_request(self, title: str, body: str, head: str, base: str) -> Dict[str, Any]:
        """Open a pull request merging `head` into `base`."""
        payload = {'title': title, 'body': body, 'head': head, 'base': base}
        data = self._request('POST', f"{self.repo_path}/pulls", json_body=payload)
        if not isinstance(data, dict) or 'html_url' not in data:
            raise StoreError("Malformed pull request response from store")
        return data
