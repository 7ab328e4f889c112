# src/topology/behaviors.py — v1
"""Behavior synthesizer: manifest patterns to routing rules.

Produces the default rule (catch-all, bound to the default compute origin)
plus an ordered mapping of additional rules, each built from the template
of its origin role. Which rule wins at request time is decided by the
routing layer; this module only decides the set and content of rules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from opennext_topology.api.models import RuleOverride
from opennext_topology.config.defaults import (
    CATCH_ALL_PATTERNS,
    DEFAULT_ORIGIN_KEY,
    MANAGED_CACHING_OPTIMIZED,
)
from opennext_topology.core.models import Behavior, Manifest, OriginRole, RoleKind
from opennext_topology.topology.resources import RoutingRule

logger = logging.getLogger(__name__)

GET_HEAD: tuple[str, ...] = ("GET", "HEAD")
GET_HEAD_OPTIONS: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")
ALL_METHODS: tuple[str, ...] = ("DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT")

_METHOD_SETS: dict[str, tuple[str, ...]] = {
    "GET_HEAD": GET_HEAD,
    "GET_HEAD_OPTIONS": GET_HEAD_OPTIONS,
    "ALL": ALL_METHODS,
}


class RoutingError(Exception):
    """Raised when a caller-supplied rule targets an unknown origin."""


@dataclass(frozen=True)
class PolicySet:
    """Logical ids of the shared routing policies."""

    cache_policy: str
    origin_request_policy: str
    response_headers_policy: str
    host_rewrite_function: str
    static_cache_policy: str = MANAGED_CACHING_OPTIMIZED


@dataclass
class BehaviorSet:
    default_rule: RoutingRule
    rules: dict[str, RoutingRule] = field(default_factory=dict)
    dropped: list[Behavior] = field(default_factory=list)

    @property
    def patterns(self) -> list[str]:
        return list(self.rules)


def is_catch_all(pattern: str) -> bool:
    return pattern in CATCH_ALL_PATTERNS


def build_default_rule(origin_id: str, policies: PolicySet) -> RoutingRule:
    """All methods, full dynamic policy set, host rewrite on viewer request."""
    return _dynamic_rule("*", origin_id, policies)


def build_rule(
    pattern: str, role: OriginRole, origin_id: str, policies: PolicySet
) -> RoutingRule:
    """Build the rule for one pattern from its role template."""
    if role.kind is RoleKind.STATIC_ASSETS:
        return RoutingRule(
            pattern=pattern,
            origin_id=origin_id,
            allowed_methods=GET_HEAD,
            cached_methods=GET_HEAD,
            cache_policy=policies.static_cache_policy,
        )
    if role.kind is RoleKind.IMAGE_OPTIMIZER:
        return RoutingRule(
            pattern=pattern,
            origin_id=origin_id,
            allowed_methods=GET_HEAD_OPTIONS,
            cached_methods=GET_HEAD_OPTIONS,
            cache_policy=policies.cache_policy,
            origin_request_policy=policies.origin_request_policy,
            viewer_functions=(policies.host_rewrite_function,),
        )
    return _dynamic_rule(pattern, origin_id, policies)


def synthesize_behaviors(
    manifest: Manifest,
    roles: dict[str, OriginRole],
    targets: dict[str, str],
    policies: PolicySet,
    additional_rules: dict[str, RuleOverride] | None = None,
) -> BehaviorSet:
    """Turn the manifest's behavior list into a routing rule set.

    Args:
        manifest: Normalized manifest.
        roles: Origin key -> role, from classifier.classify_all().
        targets: Origin key -> distribution origin id.
        policies: Shared policy ids.
        additional_rules: Caller rules keyed by pattern; they replace
            manifest-derived rules for the same pattern.

    Returns:
        BehaviorSet with the default rule, additional rules in manifest
        order (caller-only patterns appended), and dropped behaviors.
    """
    default_rule = build_default_rule(targets[DEFAULT_ORIGIN_KEY], policies)
    behavior_set = BehaviorSet(default_rule=default_rule)

    for behavior in manifest.behaviors:
        if is_catch_all(behavior.pattern):
            continue

        role = roles.get(behavior.origin) if behavior.origin else None
        origin_id = targets.get(behavior.origin) if behavior.origin else None
        if role is None or origin_id is None:
            logger.debug(
                "Dropping behavior %r: origin=%r edge_function=%r has no routing target",
                behavior.pattern, behavior.origin, behavior.edge_function,
            )
            behavior_set.dropped.append(behavior)
            continue

        behavior_set.rules[behavior.pattern] = build_rule(
            behavior.pattern, role, origin_id, policies
        )

    for pattern, override in (additional_rules or {}).items():
        behavior_set.rules[pattern] = _rule_from_override(
            pattern, override, targets, policies
        )

    logger.info(
        "Synthesized %d additional rules (%d caller-supplied), dropped %d behaviors",
        len(behavior_set.rules),
        len(additional_rules or {}),
        len(behavior_set.dropped),
    )
    return behavior_set


def _dynamic_rule(pattern: str, origin_id: str, policies: PolicySet) -> RoutingRule:
    return RoutingRule(
        pattern=pattern,
        origin_id=origin_id,
        allowed_methods=ALL_METHODS,
        cached_methods=GET_HEAD_OPTIONS,
        cache_policy=policies.cache_policy,
        origin_request_policy=policies.origin_request_policy,
        response_headers_policy=policies.response_headers_policy,
        viewer_functions=(policies.host_rewrite_function,),
    )


def _rule_from_override(
    pattern: str,
    override: RuleOverride,
    targets: dict[str, str],
    policies: PolicySet,
) -> RoutingRule:
    origin_id = targets.get(override.origin)
    if origin_id is None:
        raise RoutingError(
            f"Rule {pattern!r} targets origin {override.origin!r}, "
            f"known origins: {sorted(targets)}"
        )
    methods = _METHOD_SETS[override.allowed_methods]
    return RoutingRule(
        pattern=pattern,
        origin_id=origin_id,
        allowed_methods=methods,
        cached_methods=GET_HEAD if methods == GET_HEAD else GET_HEAD_OPTIONS,
        cache_policy=override.cache_policy or policies.cache_policy,
        origin_request_policy=(
            policies.origin_request_policy if override.forward_headers else None
        ),
        response_headers_policy=(
            policies.response_headers_policy if override.response_headers else None
        ),
        viewer_functions=(
            (policies.host_rewrite_function,) if override.host_rewrite else ()
        ),
    )
