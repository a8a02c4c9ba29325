"""
Object-graph domain types for gitix.

The remote store answers with loosely-shaped JSON. These frozen value
objects are the tagged variants that JSON is validated into once, at the
client boundary:

- TreeEntry: one named child of a tree (blob, tree or submodule commit)
- TreeListing: a fetched tree with its entries
- BlobRef, TreeRef, CommitRef, RefRef: the objects the store creates

`from_api_response` raises ValueError on a malformed payload; the client
turns that into a StoreError.
"""

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class EntryKind(Enum):
    """Kind of object a tree entry points at."""
    BLOB = "blob"
    TREE = "tree"
    COMMIT = "commit"  # submodule gitlink


MODE_FILE = "100644"
MODE_EXECUTABLE = "100755"
MODE_SYMLINK = "120000"
MODE_TREE = "040000"
MODE_SUBMODULE = "160000"


def blob_sha(content: bytes) -> str:
    """Compute the git object id a blob with this content will get."""
    header = f"blob {len(content)}\0".encode()
    return hashlib.sha1(header + content).hexdigest()


def _require(data: Dict[str, Any], key: str, what: str) -> Any:
    if not isinstance(data, dict) or data.get(key) in (None, ""):
        raise ValueError(f"Invalid {what} data: missing '{key}'")
    return data[key]


@dataclass(frozen=True)
class TreeEntry:
    """
    One directory entry.

    Attributes:
        name: Path segment (or a slash-separated path inside a recursive listing)
        mode: Git file mode string ("100644", "040000", ...)
        kind: Object kind
        sha: Object id of the child
    """
    name: str
    mode: str
    kind: EntryKind
    sha: str

    @property
    def is_tree(self) -> bool:
        return self.kind == EntryKind.TREE

    @property
    def is_blob(self) -> bool:
        return self.kind == EntryKind.BLOB

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'TreeEntry':
        """Create from one element of a tree listing's `tree` array."""
        name = _require(data, 'path', 'tree entry')
        kind_value = _require(data, 'type', 'tree entry')
        try:
            kind = EntryKind(kind_value)
        except ValueError:
            raise ValueError(f"Unknown tree entry type: {kind_value!r}")
        return cls(
            name=name,
            mode=_require(data, 'mode', 'tree entry'),
            kind=kind,
            sha=_require(data, 'sha', 'tree entry'),
        )

    def to_api(self) -> Dict[str, Any]:
        """Convert to the shape the store's create-tree call expects."""
        return {
            'path': self.name,
            'mode': self.mode,
            'type': self.kind.value,
            'sha': self.sha,
        }

    def renamed(self, name: str) -> 'TreeEntry':
        return TreeEntry(name=name, mode=self.mode, kind=self.kind, sha=self.sha)

    def pointing_to(self, sha: str) -> 'TreeEntry':
        return TreeEntry(name=self.name, mode=self.mode, kind=self.kind, sha=sha)


@dataclass(frozen=True)
class TreeListing:
    """A fetched tree: its own sha plus its entries, in store order."""
    sha: str
    entries: Tuple[TreeEntry, ...]
    truncated: bool = False

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'TreeListing':
        sha = _require(data, 'sha', 'tree')
        raw_entries = data.get('tree')
        if not isinstance(raw_entries, list):
            raise ValueError("Invalid tree data: 'tree' is not a list")
        return cls(
            sha=sha,
            entries=tuple(TreeEntry.from_api_response(e) for e in raw_entries),
            truncated=bool(data.get('truncated', False)),
        )

    def find(self, name: str) -> Optional[TreeEntry]:
        """Return the entry with this name, if any."""
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def find_tree(self, name: str) -> Optional[TreeEntry]:
        """Return the sub-directory entry with this name, if any."""
        entry = self.find(name)
        if entry is not None and entry.is_tree:
            return entry
        return None


@dataclass(frozen=True)
class BlobRef:
    """A blob in the store. `content` is only populated on reads."""
    sha: str
    size: Optional[int] = None
    content: Optional[bytes] = None

    @classmethod
    def from_api_response(cls, data: Dict[str, Any], content: Optional[bytes] = None) -> 'BlobRef':
        return cls(sha=_require(data, 'sha', 'blob'), size=data.get('size'), content=content)


@dataclass(frozen=True)
class TreeRef:
    """A tree the store just created."""
    sha: str

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'TreeRef':
        return cls(sha=_require(data, 'sha', 'tree'))


@dataclass(frozen=True)
class CommitRef:
    """
    A commit: the tree it snapshots, its parents, message and author.

    `html_url` is kept so the UI can link to the commit. `date` is only
    known for commits read from the history listing.
    """
    sha: str
    tree: str
    parents: Tuple[str, ...] = ()
    message: str = ""
    author: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
    html_url: Optional[str] = None
    date: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'CommitRef':
        sha = _require(data, 'sha', 'commit')
        tree = _require(data, 'tree', 'commit')
        tree_sha = _require(tree, 'sha', 'commit tree')
        parents = tuple(p['sha'] for p in data.get('parents', []) if isinstance(p, dict) and p.get('sha'))
        return cls(
            sha=sha,
            tree=tree_sha,
            parents=parents,
            message=data.get('message', ''),
            author=data.get('author') or {},
            html_url=data.get('html_url'),
        )

    @classmethod
    def from_commit_listing(cls, data: Dict[str, Any]) -> 'CommitRef':
        """Create from one element of a branch's commit history listing."""
        sha = _require(data, 'sha', 'commit')
        inner = _require(data, 'commit', 'commit')
        tree_sha = _require(_require(inner, 'tree', 'commit'), 'sha', 'commit tree')
        author = dict(inner.get('author') or {})
        login = (data.get('author') or {}).get('login')
        if login:
            author['login'] = login
        committed = (inner.get('committer') or {}).get('date') or author.get('date')
        parents = tuple(p['sha'] for p in data.get('parents', []) if isinstance(p, dict) and p.get('sha'))
        return cls(
            sha=sha,
            tree=tree_sha,
            parents=parents,
            message=inner.get('message', ''),
            author=author,
            html_url=data.get('html_url'),
            date=committed,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            'sha': self.sha,
            'tree': self.tree,
            'parents': list(self.parents),
            'message': self.message,
        }
        if self.author:
            result['author'] = self.author
        if self.html_url:
            result['html_url'] = self.html_url
        if self.date:
            result['date'] = self.date
        return result


@dataclass(frozen=True)
class RefRef:
    """
    A named pointer: branch (`heads/...`) or tag (`tags/...`).

    `name` is the short name ("main", "1.2.3"); `ref` the full ref path.
    """
    name: str
    ref: str
    sha: str

    @property
    def is_tag(self) -> bool:
        return self.ref.startswith('refs/tags/')

    @property
    def is_branch(self) -> bool:
        return self.ref.startswith('refs/heads/')

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'RefRef':
        """Create from a git/refs response (`{"ref": ..., "object": {"sha": ...}}`)."""
        ref = _require(data, 'ref', 'ref')
        obj = _require(data, 'object', 'ref')
        sha = _require(obj, 'sha', 'ref object')
        name = ref
        for prefix in ('refs/heads/', 'refs/tags/'):
            if ref.startswith(prefix):
                name = ref[len(prefix):]
                break
        return cls(name=name, ref=ref, sha=sha)

    @classmethod
    def from_tag_listing(cls, data: Dict[str, Any]) -> 'RefRef':
        """Create from one element of the repository tag listing."""
        name = _require(data, 'name', 'tag')
        commit = _require(data, 'commit', 'tag')
        return cls(name=name, ref=f"refs/tags/{name}", sha=_require(commit, 'sha', 'tag commit'))

    @classmethod
    def from_branch_listing(cls, data: Dict[str, Any]) -> 'RefRef':
        """Create from one element of the branch listing."""
        name = _require(data, 'name', 'branch')
        commit = _require(data, 'commit', 'branch')
        return cls(name=name, ref=f"refs/heads/{name}", sha=_require(commit, 'sha', 'branch commit'))


def entries_to_api(entries: List[TreeEntry]) -> List[Dict[str, Any]]:
    """Convert a list of entries to create-tree payload form."""
    return [entry.to_api() for entry in entries]
