"""
IAM Policy Document Model

Parses identity policies and role trust policies into typed statements.
The loosely-typed fields of the IAM policy grammar are decoded by JSON kind:

    Action / NotAction / Resource / NotResource    "*" | "x" | ["x", ...]
    Principal / NotPrincipal                       "*" | {"AWS": "x" | ["x", ...], ...}

A literal "*" always decodes to the ANY sentinel of the matching collection
and never to a one-element list, so there is exactly one way to say
"anything".

Typical usage:
    document = parse_policy_document(raw_json, policy_ref=policy_arn)
    for statement in document.statements:
        if statement.action.is_any:
            ...
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union
from urllib.parse import unquote

logger = logging.getLogger(__name__)

WILDCARD = '*'
PRINCIPAL_KEYS = ('AWS', 'Federated', 'Service', 'CanonicalUser')
EFFECTS = ('Allow', 'Deny')

RawDocument = Union[str, bytes, Mapping[str, Any]]


class PolicyParseError(ValueError):
    """A policy or trust document does not follow the IAM policy grammar."""

    def __init__(self, reason: str, policy_ref: Optional[str] = None):
        self.reason = reason
        self.policy_ref = policy_ref
        super().__init__(f"{policy_ref}: {reason}" if policy_ref else reason)

    def for_policy(self, policy_ref: str) -> 'PolicyParseError':
        """Return a copy of this error attributed to ``policy_ref``."""
        return PolicyParseError(self.reason, policy_ref=policy_ref)


class JsonKind(Enum):
    NULL = 'null'
    BOOLEAN = 'boolean'
    NUMBER = 'number'
    STRING = 'string'
    ARRAY = 'array'
    OBJECT = 'object'


_KIND_BY_TYPE = {
    type(None): JsonKind.NULL,
    bool: JsonKind.BOOLEAN,
    int: JsonKind.NUMBER,
    float: JsonKind.NUMBER,
    str: JsonKind.STRING,
    list: JsonKind.ARRAY,
    tuple: JsonKind.ARRAY,
    dict: JsonKind.OBJECT,
}


def json_kind(value: Any) -> JsonKind:
    """Classify a decoded JSON value by token kind."""
    kind = _KIND_BY_TYPE.get(type(value))
    if kind is not None:
        return kind
    if isinstance(value, Mapping):
        return JsonKind.OBJECT
    raise PolicyParseError(f"Unsupported JSON value of type {type(value).__name__}")


class _StringSet:
    """Ordered, de-duplicated string collection with a distinguished ANY value."""

    __slots__ = ('_values', '_is_any')

    FIELD = 'value'
    ANY: '_StringSet'

    def __init__(self, values: Iterable[str] = ()):
        if isinstance(values, str):
            raise TypeError(f"{type(self).__name__} expects an iterable of strings, not a string")

        cleaned: List[str] = []
        for value in values:
            if not isinstance(value, str):
                raise TypeError(f"{type(self).__name__} values must be strings, got {type(value).__name__}")
            if value == WILDCARD:
                raise ValueError(
                    f"{type(self).__name__} cannot hold a literal '*'; use {type(self).__name__}.ANY"
                )
            if value and value not in cleaned:
                cleaned.append(value)

        self._values: Tuple[str, ...] = tuple(cleaned)
        self._is_any = False

    @classmethod
    def _make_any(cls):
        instance = object.__new__(cls)
        instance._values = ()
        instance._is_any = True
        return instance

    @classmethod
    def from_json(cls, value: Any):
        """Decode a ``"*" | "x" | ["x", ...]`` field."""
        kind = json_kind(value)

        if kind is JsonKind.STRING:
            return cls.ANY if value == WILDCARD else cls([value])

        if kind is JsonKind.ARRAY:
            items = []
            for item in value:
                if json_kind(item) is not JsonKind.STRING:
                    raise PolicyParseError(f"{cls.FIELD} entries must be strings, got {json_kind(item).value}")
                items.append(item)
            if WILDCARD in items:
                return cls.ANY
            return cls(items)

        raise PolicyParseError(f"{cls.FIELD} must be a string or an array of strings, not {kind.value}")

    def to_json(self) -> Union[str, List[str]]:
        return WILDCARD if self._is_any else list(self._values)

    @property
    def is_any(self) -> bool:
        return self._is_any

    @property
    def is_empty(self) -> bool:
        return not self._is_any and not self._values

    @property
    def values(self) -> Tuple[str, ...]:
        return self._values

    def __bool__(self) -> bool:
        return not self.is_empty

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, item: object) -> bool:
        return item in self._values

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        if self._is_any or other._is_any:
            return self is other
        return self._values == other._values

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._is_any, self._values))

    def __reduce__(self):
        if self._is_any:
            return (_any_of, (type(self),))
        return (type(self), (self._values,))

    def __repr__(self) -> str:
        if self._is_any:
            return f"{type(self).__name__}.ANY"
        return f"{type(self).__name__}({list(self._values)!r})"


def _any_of(cls):
    return cls.ANY


class ActionList(_StringSet):
    """Action / NotAction of a statement."""

    __slots__ = ()
    FIELD = 'Action'


class ResourceList(_StringSet):
    """Resource / NotResource of a statement."""

    __slots__ = ()
    FIELD = 'Resource'


ActionList.ANY = ActionList._make_any()
ResourceList.ANY = ResourceList._make_any()


def _canonical_principal_key(key: str) -> str:
    for known in PRINCIPAL_KEYS:
        if key.lower() == known.lower():
            return known
    raise PolicyParseError(f"Unrecognized principal type {key!r}; expected one of {', '.join(PRINCIPAL_KEYS)}")


class PrincipalMap(Mapping):
    """Principal / NotPrincipal of a statement, keyed by principal type."""

    __slots__ = ('_entries', '_is_any')

    ANY: 'PrincipalMap'

    def __init__(self, entries: Optional[Mapping[str, Iterable[str]]] = None):
        normalized: Dict[str, Tuple[str, ...]] = {}
        for key, values in (entries or {}).items():
            canonical = _canonical_principal_key(key)
            if canonical in normalized:
                raise PolicyParseError(f"Duplicate principal type {key!r}")
            if isinstance(values, str):
                raise TypeError("PrincipalMap values must be iterables of strings")

            cleaned: List[str] = []
            for value in values:
                if value == WILDCARD:
                    raise ValueError("PrincipalMap cannot hold a literal '*'; use PrincipalMap.ANY")
                if value and value not in cleaned:
                    cleaned.append(value)
            normalized[canonical] = tuple(cleaned)

        self._entries = normalized
        self._is_any = False

    @classmethod
    def _make_any(cls) -> 'PrincipalMap':
        instance = object.__new__(cls)
        instance._entries = {}
        instance._is_any = True
        return instance

    @classmethod
    def from_json(cls, value: Any) -> 'PrincipalMap':
        """
        Decode a Principal block.

        ``"*"`` and any principal type whose value is ``"*"`` decode to ANY;
        both mean "every principal" to IAM.
        """
        kind = json_kind(value)

        if kind is JsonKind.STRING:
            if value == WILDCARD:
                return cls.ANY
            raise PolicyParseError(f"Principal must be '*' or a principal map, got {value!r}")

        if kind is not JsonKind.OBJECT:
            raise PolicyParseError(f"Principal must be '*' or a principal map, not {kind.value}")

        entries: Dict[str, List[str]] = {}
        for key, raw in value.items():
            raw_kind = json_kind(raw)
            if raw_kind is JsonKind.STRING:
                items = [raw]
            elif raw_kind is JsonKind.ARRAY:
                items = []
                for item in raw:
                    if json_kind(item) is not JsonKind.STRING:
                        raise PolicyParseError(f"Principal {key} entries must be strings")
                    items.append(item)
            else:
                raise PolicyParseError(f"Principal {key} must be a string or an array of strings, not {raw_kind.value}")

            if WILDCARD in items:
                return cls.ANY
            entries[key] = items

        return cls(entries)

    def to_json(self) -> Union[str, Dict[str, List[str]]]:
        if self._is_any:
            return WILDCARD
        return {key: list(values) for key, values in self._entries.items()}

    @property
    def is_any(self) -> bool:
        return self._is_any

    @property
    def aws(self) -> Tuple[str, ...]:
        return self._entries.get('AWS', ())

    @property
    def federated(self) -> Tuple[str, ...]:
        return self._entries.get('Federated', ())

    @property
    def service(self) -> Tuple[str, ...]:
        return self._entries.get('Service', ())

    @property
    def canonical_user(self) -> Tuple[str, ...]:
        return self._entries.get('CanonicalUser', ())

    def __getitem__(self, key: str) -> Tuple[str, ...]:
        for known in PRINCIPAL_KEYS:
            if key.lower() == known.lower():
                return self._entries[known]
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrincipalMap):
            return NotImplemented
        if self._is_any or other._is_any:
            return self is other
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash((self._is_any, frozenset(self._entries.items())))

    def __reduce__(self):
        if self._is_any:
            return (_any_of, (PrincipalMap,))
        return (PrincipalMap, ({key: list(values) for key, values in self._entries.items()},))

    def __repr__(self) -> str:
        if self._is_any:
            return 'PrincipalMap.ANY'
        return f"PrincipalMap({self.to_json()!r})"


PrincipalMap.ANY = PrincipalMap._make_any()


@dataclass
class PolicyStatement:
    """Single statement of a policy document"""
    effect: str = 'Allow'
    sid: Optional[str] = None
    principal: Optional[PrincipalMap] = None
    not_principal: Optional[PrincipalMap] = None
    action: ActionList = field(default_factory=ActionList)
    not_action: ActionList = field(default_factory=ActionList)
    resource: ResourceList = field(default_factory=ResourceList)
    not_resource: ResourceList = field(default_factory=ResourceList)
    condition: Optional[Dict[str, Any]] = None

    @property
    def is_deny(self) -> bool:
        return self.effect.lower() == 'deny'

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.sid is not None:
            data['Sid'] = self.sid
        data['Effect'] = self.effect
        if self.principal is not None:
            data['Principal'] = self.principal.to_json()
        if self.not_principal is not None:
            data['NotPrincipal'] = self.not_principal.to_json()
        for key, value in (
            ('Action', self.action),
            ('NotAction', self.not_action),
            ('Resource', self.resource),
            ('NotResource', self.not_resource),
        ):
            if value:
                data[key] = value.to_json()
        if self.condition is not None:
            data['Condition'] = self.condition
        return data


@dataclass
class PolicyDocument:
    """Parsed policy document"""
    statements: List[PolicyStatement] = field(default_factory=list)
    version: Optional[str] = None
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.version is not None:
            data['Version'] = self.version
        if self.id is not None:
            data['Id'] = self.id
        data['Statement'] = [statement.to_dict() for statement in self.statements]
        return data

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)


def decode_document(document: RawDocument, policy_ref: Optional[str] = None) -> Mapping[str, Any]:
    """
    Turn a raw policy document into a decoded JSON object.

    The IAM API returns documents URL-encoded; boto3 decodes them to dicts,
    cached copies may hold either form. Text that does not start with ``{``
    is URL-decoded before JSON parsing.

    Raises:
        PolicyParseError: If the text is not valid JSON or not a JSON object
    """
    if isinstance(document, bytes):
        document = document.decode('utf-8')

    if isinstance(document, str):
        text = document.strip()
        if not text.startswith('{'):
            text = unquote(text)
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as e:
            raise PolicyParseError(f"Invalid JSON: {e}", policy_ref=policy_ref) from e
    else:
        decoded = document

    if json_kind(decoded) is not JsonKind.OBJECT:
        raise PolicyParseError("Policy document must be a JSON object", policy_ref=policy_ref)
    return decoded


def _optional_string(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if json_kind(value) is not JsonKind.STRING:
        raise PolicyParseError(f"{key} must be a string")
    return value


def _parse_statement(data: Any) -> PolicyStatement:
    if json_kind(data) is not JsonKind.OBJECT:
        raise PolicyParseError(f"Statement must be an object, not {json_kind(data).value}")

    effect = _optional_string(data, 'Effect')
    if effect is None:
        raise PolicyParseError("Statement has no Effect")
    if effect.lower() not in ('allow', 'deny'):
        raise PolicyParseError(f"Effect must be Allow or Deny, got {effect!r}")

    condition = data.get('Condition')
    if condition is not None and json_kind(condition) is not JsonKind.OBJECT:
        raise PolicyParseError("Condition must be an object")

    return PolicyStatement(
        effect=effect,
        sid=_optional_string(data, 'Sid'),
        principal=PrincipalMap.from_json(data['Principal']) if 'Principal' in data else None,
        not_principal=PrincipalMap.from_json(data['NotPrincipal']) if 'NotPrincipal' in data else None,
        action=ActionList.from_json(data['Action']) if 'Action' in data else ActionList(),
        not_action=ActionList.from_json(data['NotAction']) if 'NotAction' in data else ActionList(),
        resource=ResourceList.from_json(data['Resource']) if 'Resource' in data else ResourceList(),
        not_resource=ResourceList.from_json(data['NotResource']) if 'NotResource' in data else ResourceList(),
        condition=dict(condition) if condition is not None else None,
    )


def parse_policy_document(document: RawDocument, policy_ref: Optional[str] = None) -> PolicyDocument:
    """
    Parse a policy document.

    Args:
        document: JSON text (optionally URL-encoded) or an already decoded dict
        policy_ref: ARN or name of the policy, used in error messages

    Returns:
        PolicyDocument with typed statements

    Raises:
        PolicyParseError: If the document does not follow the policy grammar
    """
    data = decode_document(document, policy_ref=policy_ref)

    try:
        if 'Statement' not in data:
            raise PolicyParseError("Policy document has no Statement")

        raw_statements = data['Statement']
        kind = json_kind(raw_statements)
        if kind is JsonKind.OBJECT:
            raw_statements = [raw_statements]
        elif kind is not JsonKind.ARRAY:
            raise PolicyParseError(f"Statement must be an object or an array, not {kind.value}")

        parsed = PolicyDocument(
            statements=[_parse_statement(statement) for statement in raw_statements],
            version=_optional_string(data, 'Version'),
            id=_optional_string(data, 'Id'),
        )
    except PolicyParseError as e:
        if policy_ref and not e.policy_ref:
            raise e.for_policy(policy_ref) from e
        raise

    logger.debug("Parsed %s: %d statement(s)", policy_ref or 'policy document', len(parsed.statements))
    return parsed
