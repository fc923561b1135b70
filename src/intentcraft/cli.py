#!/usr/bin/env python3
"""intentcraft command line.

Usage:
    intentcraft [--intent-dir DIR] resolve DEVICE [--json]
    intentcraft [--intent-dir DIR] compile DEVICE ACTION [ARGS...]
    intentcraft [--intent-dir DIR] apply DEVICE ACTION [ARGS...] [--host HOST] [--username USER]

Environment variables:
    INTENTCRAFT_INTENT_DIR      Intent directory (default: search ./intent, ...)
    INTENTCRAFT_PASSWORD        Device password for apply
    INTENTCRAFT_LOG_LEVEL       Console log level
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Callable, Optional

from . import __version__
from .compiler.compiler import ConfigCompiler
from .compiler.schema import CompiledChange
from .device.session import DeviceSession
from .errors import IntentcraftError, ValidationError
from .intent.loader import load_global_intent
from .intent.schema import ResolvedIntent
from .transport.base import TransportConfig
from .transport.restconf import RestconfTransport
from .utils.audit_log import setup_audit_logging
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

Builder = Callable[[ConfigCompiler, list[str]], CompiledChange]

# action -> (usage, min args, max args, builder)
ACTIONS: dict[str, tuple[str, int, int, Optional[Builder]]] = {
    "interface-admin": (
        "IF enable|disable", 2, 2,
        lambda c, a: c.interface_admin_state(a[0], a[1]),
    ),
    "interface-speed": (
        "IF SPEED_MBPS", 2, 2,
        lambda c, a: c.interface_speed(a[0], a[1]),
    ),
    "bridge": (
        "IF add|delete [access|trunk VLAN[,VLAN...]]", 2, 4,
        lambda c, a: c.bridge_interface(
            a[0], a[1],
            a[2] if len(a) > 2 else None,
            a[3].split(",") if len(a) > 3 else [],
        ),
    ),
    "lag-member": (
        "AE MEMBER add|remove", 3, 3,
        lambda c, a: c.lag_member(a[0], a[1], a[2]),
    ),
    "lacp": (
        "AE enable|disable", 2, 2,
        lambda c, a: c.lag_lacp(a[0], a[1]),
    ),
    "subinterface": (
        "IF INDEX add|delete [IP/PREFIXLEN]", 3, 4,
        lambda c, a: c.subinterface(a[0], a[1], a[2], a[3] if len(a) > 3 else None),
    ),
    "subinterface-admin": (
        "IF INDEX enable|disable", 3, 3,
        lambda c, a: c.subinterface_admin_state(a[0], a[1], a[2]),
    ),
    "subinterface-bandwidth": (
        "IF INDEX MBPS [SERVICE]", 3, 4,
        lambda c, a: c.subinterface_bandwidth(a[0], a[1], a[2], a[3] if len(a) > 3 else None),
    ),
    "firewall-policy": (
        "IF INDEX SERVICE", 3, 3,
        lambda c, a: c.firewall_policy(a[0], a[1], a[2]),
    ),
    "baseline": ("", 0, 0, lambda c, a: c.baseline()),
    # Needs the VRF's current route targets, so only available with apply
    "vpn": ("VRF VPN add|delete", 3, 3, None),
}


def _check_args(action: str, args: list[str]) -> None:
    usage, low, high, _ = ACTIONS[action]
    if not low <= len(args) <= high:
        raise ValidationError(f"usage: {action} {usage}".rstrip())


def build_change(compiler: ConfigCompiler, action: str, args: list[str]) -> CompiledChange:
    """Compile one CLI action.

    Raises:
        ValidationError: Wrong argument count, or an action that needs device state
    """
    _check_args(action, args)
    builder = ACTIONS[action][3]
    if builder is None:
        raise ValidationError(f"'{action}' reads device state; use apply")
    return builder(compiler, args)


def intent_summary(resolved: ResolvedIntent) -> dict[str, Any]:
    """Summarize a resolved intent for display."""
    return {
        "device": resolved.device_name,
        "region": resolved.region,
        "site": resolved.site,
        "mgmt_ip": resolved.mgmt_ip,
        "config_class": resolved.config_class,
        "roles": [
            role for role, flag in (
                ("router", resolved.is_router),
                ("bridge", resolved.is_bridge),
                ("border-router", resolved.is_border_router),
                ("route-reflector", resolved.is_route_reflector),
            ) if flag
        ],
        "aliases": dict(resolved.aliases),
        "prefix_lists": {k: list(v) for k, v in resolved.prefix_lists.items()},
        "communities": dict(resolved.communities),
        "vpns": {
            name: {"import_target": vpn.import_target, "export_target": vpn.export_target}
            for name, vpn in resolved.vpns.items()
        },
        "bridge_domain_vlans": (
            sorted(resolved.active_bridge_domain.vlans)
            if resolved.active_bridge_domain else []
        ),
    }


def print_summary(summary: dict[str, Any]) -> None:
    print(f"Device:       {summary['device']}")
    print(f"Region:       {summary['region']}")
    print(f"Site:         {summary['site'] or '-'}")
    print(f"Management:   {summary['mgmt_ip'] or '-'}")
    print(f"Config class: {summary['config_class'] or '-'}")
    print(f"Roles:        {', '.join(summary['roles']) or '-'}")
    print(f"Aliases ({len(summary['aliases'])}):")
    for key, value in sorted(summary["aliases"].items()):
        print(f"  {key:24s} {value}")
    print(f"VPNs ({len(summary['vpns'])}):")
    for name, targets in sorted(summary["vpns"].items()):
        print(f"  {name:24s} import={targets['import_target']} export={targets['export_target']}")


def print_change(change: CompiledChange) -> None:
    print(f"# {change.description}")
    for op in change.operations:
        print(f"{op.operation.value.upper():8s} {op.path}  (timeout {op.timeout:g}s)")
        if op.payload is not None:
            print(json.dumps(op.payload, indent=2))


async def run_apply(resolved: ResolvedIntent, args: argparse.Namespace) -> CompiledChange:
    host = args.host or resolved.mgmt_ip
    if not host:
        raise ValidationError(f"no --host given and {resolved.device_name} has no mgmt_ip")

    config = TransportConfig(
        host=host,
        port=args.port,
        username=args.username,
        password_env=args.password_env,
        verify_ssl=not args.insecure,
    )
    transport = RestconfTransport(config, device_id=resolved.device_name)

    async with DeviceSession(resolved, transport) as session:
        if args.action == "vpn":
            _check_args(args.action, args.args)
            vrf_name, vpn_name, action = args.args
            return await session.configure_vpn_membership(vrf_name, vpn_name, action)
        change = build_change(session.compiler, args.action, args.args)
        await session.apply(change, operation=args.action)
        return change


def _add_action_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("device")
    parser.add_argument("action", choices=sorted(ACTIONS))
    parser.add_argument("args", nargs="*")


def build_parser() -> argparse.ArgumentParser:
    action_help = "\n".join(
        f"    {name:24s} {usage}" for name, (usage, _, _, _) in ACTIONS.items()
    )
    parser = argparse.ArgumentParser(
        prog="intentcraft",
        description="Resolve network intent and compile device configuration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Actions:
{action_help}

Examples:
    intentcraft resolve pe1-east
    intentcraft compile pe1-east bridge ge-0/0/1 add trunk 100,200,300
    intentcraft apply pe1-east firewall-policy ge-0/0/1 100 internet --username admin
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--intent-dir",
        help="Intent directory (default: $INTENTCRAFT_INTENT_DIR or ./intent)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    resolve_p = sub.add_parser("resolve", help="Show the resolved intent for a device")
    resolve_p.add_argument("device")
    resolve_p.add_argument("--json", action="store_true", help="Print JSON")

    compile_p = sub.add_parser("compile", help="Print the wire operations for an action (dry run)")
    _add_action_args(compile_p)

    apply_p = sub.add_parser("apply", help="Compile an action and apply it to the device")
    _add_action_args(apply_p)
    apply_p.add_argument("--host", help="Management address (default: profile mgmt_ip)")
    apply_p.add_argument("--port", type=int, default=443)
    apply_p.add_argument("--username", default="admin")
    apply_p.add_argument(
        "--password-env",
        default="INTENTCRAFT_PASSWORD",
        help="Environment variable holding the password",
    )
    apply_p.add_argument("--insecure", action="store_true", help="Skip TLS verification")
    apply_p.add_argument("--audit-dir", help="Audit log directory (default: ~/.intentcraft)")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else None)

    try:
        intent = load_global_intent(args.intent_dir)
        resolved = intent.resolve(args.device)

        if args.command == "resolve":
            summary = intent_summary(resolved)
            if args.json:
                print(json.dumps(summary, indent=2, sort_keys=True))
            else:
                print_summary(summary)
        elif args.command == "compile":
            print_change(build_change(ConfigCompiler(resolved), args.action, args.args))
        else:
            setup_audit_logging(args.audit_dir)
            change = asyncio.run(run_apply(resolved, args))
            print(f"Applied: {change.description} ({change.total_operations} operations)")
    except IntentcraftError as e:
        logger.debug(f"{type(e).__name__}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
