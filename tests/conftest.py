"""
Shared fixtures for gitix tests.

FakeObjectStore is an in-memory, content-addressed stand-in for
ObjectStoreClient. It counts every object it is asked to create so the
rewrite properties (trees per edit, blob reuse, nothing created on a
conflict) can be asserted directly.
"""

import hashlib
from typing import Dict, List, Optional

import pytest

from gitix.config import get_default_config
from gitix.domain.objects import (
    MODE_FILE,
    MODE_TREE,
    BlobRef,
    CommitRef,
    EntryKind,
    RefRef,
    TreeEntry,
    TreeListing,
    TreeRef,
    blob_sha,
)
from gitix.infra.actor_store import (
    AUTH_BRANCH_NOT_PERMITTED,
    AUTH_BAD_SECRET,
    AUTH_NOT_FOUND,
    AUTH_OK,
    Actor,
    AuthResult,
)
from gitix.domain.requests import Credentials
from gitix.exit_codes import Conflict, NotFound


def _tree_sha(entries) -> str:
    text = "\n".join(f"{e.mode} {e.kind.value} {e.sha}\t{e.name}" for e in sorted(entries, key=lambda e: e.name))
    return hashlib.sha1(f"tree\0{text}".encode()).hexdigest()


class FakeObjectStore:
    """In-memory object store with the ObjectStoreClient surface."""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.trees: Dict[str, tuple] = {}
        self.commits: Dict[str, CommitRef] = {}
        self.refs: Dict[str, str] = {}
        self.pull_requests: List[dict] = []
        self.failures: Dict[str, Exception] = {}
        self._commit_counter = 0
        self.reset_counters()
        # The empty tree always exists
        self._store_tree([])

    def reset_counters(self):
        self.blobs_created = 0
        self.trees_created = 0
        self.commits_created = 0

    def fail(self, method: str, error: Exception):
        """Make every later call to `method` raise `error`."""
        self.failures[method] = error

    def _maybe_fail(self, method: str):
        if method in self.failures:
            raise self.failures[method]

    # -- seeding -------------------------------------------------------------

    def seed(self, branch: str, files: Dict[str, bytes]) -> str:
        """Create a branch whose single commit holds `files` (path -> bytes)."""
        entries = []
        for path, content in files.items():
            sha = self.create_blob(content).sha
            entries.append(TreeEntry(path, MODE_FILE, EntryKind.BLOB, sha))
        root = self.create_tree(entries).sha
        commit = self.create_commit("Initial commit", root, [])
        self.refs[f"heads/{branch}"] = commit.sha
        self.reset_counters()
        return commit.sha

    def files_at(self, branch: str) -> Dict[str, str]:
        """Map of path -> blob sha for everything on a branch."""
        root = self.commits[self.refs[f"heads/{branch}"]].tree
        return {e.name: e.sha for e in self.get_tree(root, recursive=True).entries if e.is_blob}

    def head(self, branch: str) -> str:
        return self.refs[f"heads/{branch}"]

    # -- blobs ---------------------------------------------------------------

    def get_blob(self, sha: str) -> BlobRef:
        self._maybe_fail('get_blob')
        if sha not in self.blobs:
            raise NotFound(f"Not found: blob {sha}")
        content = self.blobs[sha]
        return BlobRef(sha=sha, size=len(content), content=content)

    def create_blob(self, content: bytes) -> BlobRef:
        self._maybe_fail('create_blob')
        sha = blob_sha(bytes(content))
        self.blobs[sha] = bytes(content)
        self.blobs_created += 1
        return BlobRef(sha=sha)

    # -- trees ---------------------------------------------------------------

    def _store_tree(self, entries) -> str:
        sha = _tree_sha(entries)
        self.trees[sha] = tuple(sorted(entries, key=lambda e: e.name))
        return sha

    def _build(self, base: Dict[str, TreeEntry], entries: List[TreeEntry]) -> str:
        result = dict(base)
        nested: Dict[str, List[TreeEntry]] = {}
        for entry in entries:
            head, _, rest = entry.name.partition('/')
            if rest:
                nested.setdefault(head, []).append(entry.renamed(rest))
            else:
                result[head] = entry
        for name, children in nested.items():
            existing = result.get(name)
            sub_base = {}
            if existing is not None and existing.is_tree:
                sub_base = {e.name: e for e in self.trees[existing.sha]}
            sub_sha = self._build(sub_base, children)
            result[name] = TreeEntry(name, MODE_TREE, EntryKind.TREE, sub_sha)
        return self._store_tree(list(result.values()))

    def get_tree(self, sha: str, recursive: bool = False) -> TreeListing:
        self._maybe_fail('get_tree')
        if sha not in self.trees:
            raise NotFound(f"Not found: tree {sha}")
        if not recursive:
            return TreeListing(sha=sha, entries=self.trees[sha])
        return TreeListing(sha=sha, entries=tuple(self._walk(sha, '')))

    def _walk(self, sha: str, prefix: str):
        for entry in self.trees[sha]:
            path = f"{prefix}{entry.name}"
            yield entry.renamed(path)
            if entry.is_tree:
                yield from self._walk(entry.sha, f"{path}/")

    def create_tree(self, entries, base_tree: Optional[str] = None) -> TreeRef:
        self._maybe_fail('create_tree')
        base = {}
        if base_tree is not None:
            base = {e.name: e for e in self.trees[base_tree]}
        sha = self._build(base, list(entries))
        self.trees_created += 1
        return TreeRef(sha=sha)

    # -- commits -------------------------------------------------------------

    def get_commit(self, sha: str) -> CommitRef:
        self._maybe_fail('get_commit')
        if sha not in self.commits:
            raise NotFound(f"Not found: commit {sha}")
        return self.commits[sha]

    def create_commit(self, message: str, tree: str, parents: List[str]) -> CommitRef:
        self._maybe_fail('create_commit')
        self._commit_counter += 1
        sha = hashlib.sha1(f"commit {self._commit_counter} {tree} {parents}".encode()).hexdigest()
        commit = CommitRef(sha=sha, tree=tree, parents=tuple(parents), message=message)
        self.commits[sha] = commit
        self.commits_created += 1
        return commit

    def _ancestors(self, sha: str):
        seen = set()
        stack = [sha]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self.commits[current].parents)
        return seen

    # -- refs ----------------------------------------------------------------

    def _ref(self, ref: str) -> RefRef:
        name = ref.split('/', 1)[1]
        return RefRef(name=name, ref=f"refs/{ref}", sha=self.refs[ref])

    def get_ref(self, ref: str) -> RefRef:
        self._maybe_fail('get_ref')
        if ref not in self.refs:
            raise NotFound(f"Not found: ref {ref}")
        return self._ref(ref)

    def get_branch_head(self, branch: str) -> str:
        self._maybe_fail('get_branch_head')
        ref = f"heads/{branch}"
        if ref not in self.refs:
            raise NotFound(f"Branch '{branch}' not found.")
        return self.refs[ref]

    def create_ref(self, ref: str, sha: str) -> RefRef:
        self._maybe_fail('create_ref')
        if ref in self.refs:
            raise Conflict(f"Reference already exists: refs/{ref}", Conflict.EXISTS)
        self.refs[ref] = sha
        return self._ref(ref)

    def update_ref(self, ref: str, sha: str, force: bool = False) -> RefRef:
        self._maybe_fail('update_ref')
        if ref not in self.refs:
            raise NotFound(f"Not found: ref {ref}")
        if not force and self.refs[ref] not in self._ancestors(sha):
            raise Conflict("Update is not a fast forward", Conflict.STALE_REF)
        self.refs[ref] = sha
        return self._ref(ref)

    def delete_ref(self, ref: str) -> None:
        self._maybe_fail('delete_ref')
        if ref not in self.refs:
            raise NotFound(f"Not found: ref {ref}")
        del self.refs[ref]

    # -- listings ------------------------------------------------------------

    def list_tags(self) -> List[RefRef]:
        self._maybe_fail('list_tags')
        return [self._ref(r) for r in self.refs if r.startswith('tags/')]

    def list_branches(self) -> List[RefRef]:
        self._maybe_fail('list_branches')
        return [self._ref(r) for r in self.refs if r.startswith('heads/')]

    def list_commits(self, branch: str, limit: int = 10) -> List[CommitRef]:
        """First-parent history of a branch, newest first."""
        self._maybe_fail('list_commits')
        sha = self.get_branch_head(branch)
        history = []
        while sha and len(history) < limit:
            commit = self.commits[sha]
            history.append(commit)
            sha = commit.parents[0] if commit.parents else None
        return history

    def tag_names(self) -> List[str]:
        return sorted(r.name for r in self.list_tags())

    def compare(self, base: str, head: str) -> dict:
        self._maybe_fail('compare')
        return {'status': 'ahead', 'ahead_by': 1, 'behind_by': 0,
                'base': self.get_branch_head(base), 'head': self.get_branch_head(head), 'files': []}

    def create_pull_request(self, title: str, body: str, head: str, base: str) -> dict:
        self._maybe_fail('create_pull_request')
        number = len(self.pull_requests) + 1
        pull = {'number': number, 'title': title, 'body': body, 'head': head, 'base': base,
                'html_url': f"https://github.example/acme/site/pull/{number}"}
        self.pull_requests.append(pull)
        return pull


class FakeAuth:
    """
    Permission collaborator with a fixed rule set.

    `permissions` maps username -> permitted branches; `superuser` may
    write anywhere. Secrets are all "pw".
    """

    def __init__(self, permissions=None, superuser="admin", can_create_branches=()):
        self.permissions = permissions if permissions is not None else {'alice': ['drafts', 'main']}
        self.superuser = superuser
        self.can_create_branches = set(can_create_branches)
        self.calls = []

    def validate_actor(self, username, secret, branch=None):
        self.calls.append((username, branch))
        if username != self.superuser and username not in self.permissions:
            return AuthResult(False, "Invalid username or password.", AUTH_NOT_FOUND)
        if secret != "pw":
            return AuthResult(False, "Invalid username or password.", AUTH_BAD_SECRET)
        actor = Actor(
            id=1,
            username=username,
            active=True,
            branch_permissions=list(self.permissions.get(username, [])),
            can_create_branches=username in self.can_create_branches,
        )
        if username != self.superuser and branch is not None and branch not in actor.branch_permissions:
            return AuthResult(False, f"User '{username}' is not permitted to modify branch '{branch}'.",
                              AUTH_BRANCH_NOT_PERMITTED, actor)
        return AuthResult(True, None, AUTH_OK, actor)


SEED_FILES = {
    'README.md': b"# Site\n",
    'project/docs/readme.md': b"Read me first.\n",
    'project/docs/guide.md': b"A guide.\n",
    'project/src/main.tcl': b"puts hello\n",
    'src/a.tcl': b"set a 1\n",
    'src/b.tcl': b"set b 2\n",
    'exp1/a.txt': b"alpha\n",
    'exp1/b.txt': b"beta\n",
    'exp1/sub/c.txt': b"gamma\n",
}


@pytest.fixture
def config():
    cfg = get_default_config()
    cfg['store']['owner'] = 'acme'
    cfg['store']['repo'] = 'site'
    return cfg


@pytest.fixture
def store():
    fake = FakeObjectStore()
    fake.seed('main', SEED_FILES)
    fake.refs['heads/drafts'] = fake.refs['heads/main']
    return fake


@pytest.fixture
def auth():
    return FakeAuth()


@pytest.fixture
def alice():
    return Credentials('alice', 'pw')
