"""ACL payload builders for firewall policy compilation.

Rule names are looked up in the policy-rule catalog; each rule becomes one
ACL entry keyed by its sequence number. Only the protocol and the first
source_list entry are translated from a rule's match criteria; any other
match key is skipped with a warning.
"""
import logging
from typing import Any, Mapping, Optional

from ..errors import DuplicateSequenceError, UnknownRuleError
from ..intent.schema import PolicyRule

logger = logging.getLogger(__name__)

ACL_TYPE = "ACL_IPV4"

PROTOCOLS = {
    "TCP": "IP_TCP",
    "UDP": "IP_UDP",
    "ICMP": "IP_ICMP",
}

TRANSLATED_MATCH_KEYS = {"protocol", "source_list"}


def forwarding_action(action: str) -> str:
    return "DROP" if action == "discard" else "ACCEPT"


def _ipv4_match(rule_name: str, match: Mapping[str, Any]) -> dict[str, Any]:
    config: dict[str, Any] = {}

    protocol = match.get("protocol")
    if isinstance(protocol, str):
        identity = PROTOCOLS.get(protocol.upper())
        if identity:
            config["protocol"] = identity
        else:
            logger.warning(
                f"Rule '{rule_name}': unsupported protocol '{protocol}' not translated"
            )

    sources = match.get("source_list")
    if isinstance(sources, list) and sources:
        config["source-address"] = str(sources[0])

    for key in match:
        if key not in TRANSLATED_MATCH_KEYS:
            logger.warning(f"Rule '{rule_name}': skipping unsupported match key '{key}'")

    return config


def build_acl_entry(rule_name: str, rule: PolicyRule) -> dict[str, Any]:
    """Build one ACL entry from a policy rule."""
    return {
        "sequence-id": rule.sequence,
        "config": {"sequence-id": rule.sequence},
        "ipv4": {"config": _ipv4_match(rule_name, rule.match)},
        "actions": {"config": {"forwarding-action": forwarding_action(rule.action)}},
    }


def build_acl_set(
    name: str,
    rule_names: list[str],
    policy_rules: Mapping[str, PolicyRule],
) -> dict[str, Any]:
    """Build a complete ACL set payload.

    Args:
        name: Filter name
        rule_names: Rule names from the interface policy, in policy order
        policy_rules: Global policy-rule catalog

    Returns:
        openconfig-acl acl-set payload with entries ordered by sequence

    Raises:
        UnknownRuleError: If a rule name is not in the catalog
        DuplicateSequenceError: If two rules share a sequence number
    """
    entries: dict[int, dict[str, Any]] = {}
    owners: dict[int, str] = {}

    for rule_name in rule_names:
        rule = policy_rules.get(rule_name)
        if rule is None:
            raise UnknownRuleError(
                f"Policy rule '{rule_name}' referenced by filter '{name}' not found"
            )
        if rule.sequence in owners:
            raise DuplicateSequenceError(
                f"Filter '{name}': rules '{owners[rule.sequence]}' and '{rule_name}' "
                f"share sequence {rule.sequence}"
            )
        owners[rule.sequence] = rule_name
        entries[rule.sequence] = build_acl_entry(rule_name, rule)

    logger.debug(f"Built ACL set {name} with {len(entries)} entries")

    return {
        "openconfig-acl:acl-set": [
            {
                "name": name,
                "type": ACL_TYPE,
                "config": {"name": name, "type": ACL_TYPE},
                "acl-entries": {
                    "acl-entry": [entries[seq] for seq in sorted(entries)],
                },
            }
        ]
    }


def build_acl_binding(
    in_filter: Optional[str],
    out_filter: Optional[str],
) -> dict[str, Any]:
    """Bind ingress and/or egress filters to a sub-interface.

    Only named sides appear in the payload.
    """
    config: dict[str, str] = {}
    if in_filter:
        config["ingress-acl-set"] = in_filter
    if out_filter:
        config["egress-acl-set"] = out_filter
    return {"openconfig-interfaces:acl": {"config": config}}
