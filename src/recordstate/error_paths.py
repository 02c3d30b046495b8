"""
Error paths and the validation error router.

An error path addresses a local attribute somewhere in a nested record tree:

    name                      attribute on the root
    settings.locale           attribute of the nested record at "settings"
    addresses[c12].zip        attribute of the member with client id c12 in
                              the nested collection at "addresses"

Paths are parsed once into ErrorPath (a tuple of PathSegment) and both the
harvesting pass and the distribution pass work on the structured form. The
string form is what error maps use as keys.

Routing (see NestedRecord.merge_in_nested_errors):
1. harvest: every failing nested record / collection member contributes its
   own error map, re-keyed under its path from the root
2. distribute: every entry of the combined map is walked down the tree and
   attached to the local validation_error of the node it ends on

Harvesting must run first: it re-validates nested nodes, which resets their
validation_error, and distribution adds onto those fresh error states.
"""

from dataclasses import dataclass
from enum import Enum
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from recordstate.collection import Collection
from recordstate.errors import PathResolutionError
from recordstate.record import Record

logger = logging.getLogger(__name__)

ErrorMap = Dict[str, List[str]]

_MEMBER_ID = re.compile(r"\[(.*?)\]")


class SegmentKind(Enum):
    FIELD = "field"
    MEMBER = "member"


@dataclass(frozen=True)
class PathSegment:
    """A single step: a field of a record, or a member of a collection."""
    kind: SegmentKind
    key: str
    member_id: Optional[str] = None

    @classmethod
    def field(cls, key: str) -> 'PathSegment':
        return cls(SegmentKind.FIELD, key)

    @classmethod
    def member(cls, key: str, member_id: str) -> 'PathSegment':
        return cls(SegmentKind.MEMBER, key, member_id)

    @property
    def is_member(self) -> bool:
        return self.kind is SegmentKind.MEMBER

    def __str__(self) -> str:
        if self.is_member:
            return f"{self.key}[{self.member_id}]"
        return self.key


@dataclass(frozen=True)
class ErrorPath:
    """Ordered segments from a root record down to an erroring attribute."""
    segments: Tuple[PathSegment, ...]

    @classmethod
    def of(cls, *segments: PathSegment) -> 'ErrorPath':
        return cls(tuple(segments))

    @classmethod
    def parse(cls, text: str) -> 'ErrorPath':
        """Parse ``key.sub``/``key[cid].sub`` notation.

        Raises:
            PathResolutionError: a bracketed segment carries no client id
        """
        segments = []
        for part in text.split("."):
            if "[" not in part:
                segments.append(PathSegment.field(part))
                continue
            match = _MEMBER_ID.search(part)
            member_id = match.group(1) if match else ""
            if not member_id:
                raise PathResolutionError("Unable to obtain the client id.", path=text, step=part)
            segments.append(PathSegment.member(part[:part.index("[")], member_id))
        return cls(tuple(segments))

    def __str__(self) -> str:
        return ".".join(str(segment) for segment in self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    @property
    def leaf(self) -> PathSegment:
        return self.segments[-1]

    @property
    def parents(self) -> Tuple[PathSegment, ...]:
        return self.segments[:-1]

    def prefixed(self, *segments: PathSegment) -> 'ErrorPath':
        """This path re-rooted beneath the given segments."""
        return ErrorPath(tuple(segments) + self.segments)


def as_messages(messages: Union[str, Iterable[str], None]) -> List[str]:
    if messages is None:
        return []
    if isinstance(messages, str):
        return [messages]
    return list(messages)


def merge_error_maps(target: ErrorMap, path: str, messages: Union[str, Iterable[str]]) -> ErrorMap:
    """Append messages to target[path] (creating it), never replacing existing ones."""
    target[path] = list(target.get(path, [])) + as_messages(messages)
    return target


def _failing_errors(record: Record) -> Mapping[str, Any]:
    """A record's error map after re-validating it (empty when valid)."""
    if record.is_valid():
        return {}
    return record.validation_error or {}


def harvest_nested_record_errors(root: Record, errors: Mapping[str, Any]) -> ErrorMap:
    """Errors of failing nested records, re-keyed as ``key.<nested key>``.

    Each harvested list starts with whatever `errors` already holds for that path.
    """
    harvested: ErrorMap = {}
    for entry in root.nested_schema.entries():
        nested = root.get(entry.key)
        if not entry.is_record or not isinstance(nested, Record):
            continue
        for nested_key, messages in _failing_errors(nested).items():
            path = str(ErrorPath.parse(nested_key).prefixed(PathSegment.field(entry.key)))
            harvested.setdefault(path, as_messages(errors.get(path)))
            merge_error_maps(harvested, path, messages)
    return harvested


def harvest_nested_collection_errors(root: Record, errors: Mapping[str, Any]) -> ErrorMap:
    """Errors of failing collection members, re-keyed as ``key[<cid>].<member key>``.

    Members are addressed by client id because their positions can change.
    """
    harvested: ErrorMap = {}
    for entry in root.nested_schema.entries():
        nested = root.get(entry.key)
        if not entry.is_collection or not isinstance(nested, Collection):
            continue
        for member in nested:
            for member_key, messages in _failing_errors(member).items():
                prefix = PathSegment.member(entry.key, member.cid)
                path = str(ErrorPath.parse(member_key).prefixed(prefix))
                harvested.setdefault(path, as_messages(errors.get(path)))
                merge_error_maps(harvested, path, messages)
    return harvested


def _descend(node: Record, key: str, path: str) -> Record:
    """Nested record declared at key, or node itself when there is none."""
    schema = getattr(node, "nested_schema", None)
    entry = schema.get(key) if schema is not None else None
    child = node.get(key) if entry is not None and entry.is_record else None
    if isinstance(child, Record):
        return child
    logger.warning(
        f"Error path {path!r}: no nested record at {key!r} on {type(node).__name__}, "
        f"staying on the current node"
    )
    return node


def resolve_error_target(root: Record, path: ErrorPath, text: Optional[str] = None) -> Record:
    """Walk every segment but the last and return the node the leaf belongs to.

    Raises:
        PathResolutionError: a collection, a member, or the target cannot be found
    """
    text = text if text is not None else str(path)
    node: Optional[Record] = root
    for segment in path.parents:
        if segment.is_member:
            collection = node.get(segment.key) if node is not None else None
            if not isinstance(collection, Collection):
                raise PathResolutionError(
                    "Unable to obtain the nested collection.", path=text, step=str(segment)
                )
            node = collection.get_by_cid(segment.member_id)
            if node is None:
                raise PathResolutionError(
                    f"Unable to obtain the collection member with client id {segment.member_id!r}.",
                    path=text, step=str(segment),
                )
        else:
            node = _descend(node, segment.key, text)

    if node is None or path.leaf.is_member:
        raise PathResolutionError("Unable to obtain the nested instance.", path=text, step=str(path.leaf))
    return node


def distribute_errors(root: Record, errors: Mapping[str, Any]) -> Mapping[str, Any]:
    """Attach every entry of errors to the validation_error of the node its path ends on.

    Must be called on the root of the tree the paths are relative to. Entries
    written before a failing path stay written; the failure propagates.
    """
    for text, messages in errors.items():
        path = ErrorPath.parse(text)
        target = resolve_error_target(root, path, text)
        if target.validation_error is None:
            target.validation_error = {}
        target.validation_error[path.leaf.key] = as_messages(messages)
        logger.debug(f"Attached {text!r} to {type(target).__name__}(cid={target.cid}) as {path.leaf.key!r}")
    return errors
