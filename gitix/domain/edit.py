"""
Leaf-level tree edits for gitix.

An edit describes what happens to the entry list of the single directory
that holds the mutation target. Edits are pure: they take the current
entries and return new ones, raising the taxonomy error that explains
why they cannot apply. Creating tree objects is the mutation engine's
job, not theirs.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from ..exit_codes import Conflict, InvariantViolation, NotFound
from .objects import EntryKind, TreeEntry


def _index_of(entries: Sequence[TreeEntry], name: str) -> int:
    for i, entry in enumerate(entries):
        if entry.name == name:
            return i
    return -1


class TreeEdit:
    """Base class for edits applied to one directory's entries."""

    def apply(self, entries: Sequence[TreeEntry]) -> List[TreeEntry]:
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True)
class RemoveEntry(TreeEdit):
    """Drop the entry called `name`."""
    name: str

    def apply(self, entries: Sequence[TreeEntry]) -> List[TreeEntry]:
        if _index_of(entries, self.name) < 0:
            raise NotFound(f"Item '{self.name}' not found.")
        return [e for e in entries if e.name != self.name]

    def describe(self) -> str:
        return f"remove {self.name}"


@dataclass(frozen=True)
class InsertEntry(TreeEdit):
    """
    Add an entry pointing at an existing object.

    With `overwrite` an entry of the same name and kind is replaced in
    place. Without it, or when the kinds differ, an existing name is a
    Conflict.
    """
    name: str
    mode: str
    kind: EntryKind
    sha: str
    overwrite: bool = False

    @classmethod
    def of(cls, entry: TreeEntry, name: str = None, overwrite: bool = False) -> 'InsertEntry':
        """Insert a copy of `entry`, optionally under another name."""
        return cls(name=name or entry.name, mode=entry.mode, kind=entry.kind,
                   sha=entry.sha, overwrite=overwrite)

    @property
    def entry(self) -> TreeEntry:
        return TreeEntry(name=self.name, mode=self.mode, kind=self.kind, sha=self.sha)

    def apply(self, entries: Sequence[TreeEntry]) -> List[TreeEntry]:
        result = list(entries)
        index = _index_of(result, self.name)
        if index >= 0:
            if not self.overwrite or result[index].kind != self.kind:
                raise Conflict(f"An item named '{self.name}' already exists.", Conflict.EXISTS)
            result[index] = self.entry
        else:
            result.append(self.entry)
        return result

    def describe(self) -> str:
        return f"insert {self.name} -> {self.sha[:7]}"


@dataclass(frozen=True)
class RenameEntry(TreeEdit):
    """Move an entry to a new name. The object sha is kept, nothing is re-uploaded."""
    old_name: str
    new_name: str

    def apply(self, entries: Sequence[TreeEntry]) -> List[TreeEntry]:
        if self.old_name == self.new_name:
            raise InvariantViolation(f"Renaming '{self.old_name}' to itself changes nothing.")
        index = _index_of(entries, self.old_name)
        if index < 0:
            raise NotFound(f"Item '{self.old_name}' not found.")
        if _index_of(entries, self.new_name) >= 0:
            raise Conflict(f"An item named '{self.new_name}' already exists.", Conflict.EXISTS)
        original = entries[index]
        result = [e for e in entries if e.name != self.old_name]
        result.append(original.renamed(self.new_name))
        return result

    def describe(self) -> str:
        return f"rename {self.old_name} -> {self.new_name}"


@dataclass(frozen=True)
class EditBatch(TreeEdit):
    """Several edits applied in order to the same directory."""
    edits: Tuple[TreeEdit, ...]

    def apply(self, entries: Sequence[TreeEntry]) -> List[TreeEntry]:
        result = list(entries)
        for edit in self.edits:
            result = edit.apply(result)
        return result

    def describe(self) -> str:
        return "; ".join(edit.describe() for edit in self.edits)
