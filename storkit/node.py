"""Node lookups, readiness, taints and node affinity matching."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping

from storkit.errors import NotFoundError
from storkit.tolerations import taint_is_well_known, toleration_tolerates_taint

logger = logging.getLogger(__name__)

HOSTNAME_LABEL = "kubernetes.io/hostname"

_QUALIFIED_NAME_MAX_LENGTH = 63
_DNS1123_SUBDOMAIN_MAX_LENGTH = 253
_LABEL_VALUE_MAX_LENGTH = 63

_QUALIFIED_NAME = re.compile(r"([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]")
_DNS1123_SUBDOMAIN = re.compile(r"[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*")
_LABEL_VALUE = re.compile(r"(([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9])?")
_INTEGER = re.compile(r"[+-]?[0-9]+")


class Operator(str, Enum):
    """Node selector operators."""

    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"
    GT = "Gt"
    LT = "Lt"


def _qualified_name_errors(value: str) -> list[str]:
    parts = value.split("/")
    errors: list[str] = []
    if len(parts) == 1:
        name = parts[0]
    elif len(parts) == 2:
        prefix, name = parts
        if not prefix:
            errors.append("prefix part must be non-empty")
        elif len(prefix) > _DNS1123_SUBDOMAIN_MAX_LENGTH or not _DNS1123_SUBDOMAIN.fullmatch(prefix):
            errors.append("prefix part must be a lowercase DNS-1123 subdomain")
    else:
        return [
            "a qualified name must consist of alphanumeric characters, '-', '_' or '.', "
            "with an optional DNS subdomain prefix and '/'"
        ]
    if not name:
        errors.append("name part must be non-empty")
    elif len(name) > _QUALIFIED_NAME_MAX_LENGTH:
        errors.append(f"name part must be no more than {_QUALIFIED_NAME_MAX_LENGTH} characters")
    if not _QUALIFIED_NAME.fullmatch(name):
        errors.append(
            "name part must consist of alphanumeric characters, '-', '_' or '.', "
            "and must start and end with an alphanumeric character"
        )
    return errors


def _label_value_errors(value: str) -> list[str]:
    errors: list[str] = []
    if len(value) > _LABEL_VALUE_MAX_LENGTH:
        errors.append(f"must be no more than {_LABEL_VALUE_MAX_LENGTH} characters")
    if not _LABEL_VALUE.fullmatch(value):
        errors.append(
            "a valid label must be an empty string or consist of alphanumeric characters, "
            "'-', '_' or '.', and must start and end with an alphanumeric character"
        )
    return errors


def is_qualified_name(value: str) -> bool:
    """True if ``value`` is a valid label key: an optional DNS subdomain prefix and a name."""
    return not _qualified_name_errors(value)


def is_valid_label_value(value: str) -> bool:
    """True if ``value`` may be used as a label value."""
    return not _label_value_errors(value)


def _parse_int(text: str) -> int | None:
    return int(text) if _INTEGER.fullmatch(text) else None


@dataclass(frozen=True)
class Requirement:
    """One label requirement: a key, an operator and the values it compares against."""

    key: str
    operator: Operator
    values: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "operator", Operator(self.operator))
        object.__setattr__(self, "values", tuple(self.values))
        errors = _qualified_name_errors(self.key)
        if errors:
            raise ValueError(f"invalid label key {self.key!r}: {'; '.join(errors)}")
        if self.operator in (Operator.IN, Operator.NOT_IN):
            if not self.values:
                raise ValueError("for 'in', 'notin' operators, values set can't be empty")
        elif self.operator in (Operator.EXISTS, Operator.DOES_NOT_EXIST):
            if self.values:
                raise ValueError("values set must be empty for exists and does not exist")
        else:
            if len(self.values) != 1:
                raise ValueError("for 'Gt', 'Lt' operators, exactly one value is required")
            if _parse_int(self.values[0]) is None:
                raise ValueError(
                    f"for 'Gt', 'Lt' operators, the value must be an integer: {self.values[0]!r}"
                )
        for value in self.values:
            errors = _label_value_errors(value)
            if errors:
                raise ValueError(f"invalid label value {value!r}: {'; '.join(errors)}")

    def matches(self, labels: Mapping[str, str]) -> bool:
        present = self.key in labels
        if self.operator is Operator.IN:
            return present and labels[self.key] in self.values
        if self.operator is Operator.NOT_IN:
            return not present or labels[self.key] not in self.values
        if self.operator is Operator.EXISTS:
            return present
        if self.operator is Operator.DOES_NOT_EXIST:
            return not present
        if not present:
            return False
        actual = _parse_int(labels[self.key])
        if actual is None:
            return False
        bound = int(self.values[0])
        return actual > bound if self.operator is Operator.GT else actual < bound


@dataclass(frozen=True)
class LabelSelector:
    """A set of requirements that all must hold; ``nothing`` makes it match no labels."""

    requirements: tuple[Requirement, ...] = ()
    nothing: bool = False

    def matches(self, labels: Mapping[str, str] | None) -> bool:
        if self.nothing:
            return False
        labels = labels or {}
        return all(requirement.matches(labels) for requirement in self.requirements)


def _labels(node: dict) -> dict:
    return (node.get("metadata") or {}).get("labels") or {}


def _name(node: dict) -> str:
    return (node.get("metadata") or {}).get("name", "")


def get_node_name_from_hostname(nodes: Iterable[dict], host_name: str) -> str:
    """Name of the first node whose hostname label equals ``host_name``."""
    for node in nodes:
        if _labels(node).get(HOSTNAME_LABEL) == host_name:
            return _name(node)
    raise LookupError("node not found")


def get_node_host_name_label(node: dict) -> str:
    """The hostname label of a node."""
    try:
        return _labels(node)[HOSTNAME_LABEL]
    except KeyError:
        raise LookupError("hostname not found on the node") from None


def get_node_host_name(nodes: Iterable[dict], node_name: str) -> str:
    """The hostname label of the node called ``node_name``."""
    for node in nodes:
        if _name(node) == node_name:
            return get_node_host_name_label(node)
    raise NotFoundError(f"node {node_name!r} not found")


def get_node_host_names(nodes: Iterable[dict]) -> dict[str, str]:
    """Map each node name to its hostname label (empty when the label is missing)."""
    return {_name(node): _labels(node).get(HOSTNAME_LABEL, "") for node in nodes}


def get_node_schedulable(node: dict) -> bool:
    """False if the node is marked unschedulable."""
    return not (node.get("spec") or {}).get("unschedulable", False)


def node_selector_requirements_as_selector(requirements: list[dict]) -> LabelSelector:
    """Turn node selector requirements into a label selector; none at all matches nothing."""
    if not requirements:
        return LabelSelector(nothing=True)
    parsed = []
    for expr in requirements:
        raw_operator = expr.get("operator")
        try:
            operator = Operator(raw_operator)
        except ValueError:
            raise ValueError(f"{raw_operator!r} is not a valid node selector operator") from None
        parsed.append(Requirement(expr.get("key", ""), operator, tuple(expr.get("values") or ())))
    return LabelSelector(tuple(parsed))


def node_meets_affinity_terms(node: dict, affinity: dict | None) -> bool:
    """True if the node meets any required node selector term; preferred terms are ignored."""
    if affinity is None:
        return True
    required = affinity.get("requiredDuringSchedulingIgnoredDuringExecution")
    if required is None:
        return True
    for term in required.get("nodeSelectorTerms") or []:
        expressions = term.get("matchExpressions") or []
        try:
            selector = node_selector_requirements_as_selector(expressions)
        except ValueError as err:
            raise ValueError(
                f"failed to parse affinity MatchExpressions: {expressions}, "
                f"regarding as not match. {err}"
            ) from err
        if selector.matches(_labels(node)):
            return True
    return False


def node_is_tolerable(
    node: dict, tolerations: list[dict], ignore_well_known_taints: bool
) -> bool:
    """True if every taint of the node is tolerated, optionally skipping well-known taints."""
    for taint in (node.get("spec") or {}).get("taints") or []:
        if ignore_well_known_taints and taint_is_well_known(taint):
            continue
        if not any(toleration_tolerates_taint(toleration, taint) for toleration in tolerations):
            return False
    return True


def node_is_ready(node: dict) -> bool:
    """True if the node reports a true Ready condition."""
    return any(
        condition.get("type") == "Ready" and condition.get("status") == "True"
        for condition in (node.get("status") or {}).get("conditions") or []
    )


def get_not_ready_kubernetes_nodes(nodes: Iterable[dict]) -> list[dict]:
    """The nodes that are not ready."""
    return [node for node in nodes if not node_is_ready(node)]


def generate_node_affinity(node_affinity: str) -> dict:
    """Build a required node affinity from ``key=v1,v2;key2`` style text.

    ``key=values`` becomes an ``In`` requirement and a bare ``key`` an ``Exists``
    requirement. Keys and values are validated; keys are stripped of spaces.
    """
    expressions: list[dict] = []
    for node_label in node_affinity.split(";"):
        parts = node_label.split("=")
        key = parts[0].strip(" ")
        if not key:
            continue
        errors = _qualified_name_errors(key)
        if errors:
            raise ValueError(f"invalid label key: {key} err: {errors}")
        if len(parts) > 1:
            values = parts[1].split(",")
            for value in values:
                value = value.strip(" ")
                errors = _label_value_errors(value)
                if errors:
                    raise ValueError(f"invalid label value: {value} err: {errors}")
            expressions.append({"key": key, "operator": Operator.IN.value, "values": values})
        else:
            expressions.append({"key": key, "operator": Operator.EXISTS.value})
    return {
        "requiredDuringSchedulingIgnoredDuringExecution": {
            "nodeSelectorTerms": [{"matchExpressions": expressions}]
        }
    }