"""Tests for the configuration compiler."""
import json

import pytest

from intentcraft.compiler.compiler import BASELINE_CONFIGLETS, ConfigCompiler, load_configlet
from intentcraft.compiler.schema import ACL_TIMEOUT, CONFIGLET_TIMEOUT, Operation
from intentcraft.device.topology import VRF
from intentcraft.errors import (
    ConfigletError,
    DuplicateSequenceError,
    InvalidBandwidthError,
    InvalidCIDRError,
    InvalidSpeedError,
    InvalidVlanIdError,
    MalformedPolicyError,
    ModeCardinalityError,
    PolicyNotFoundError,
    UnknownRuleError,
    ValidationError,
)
from intentcraft.intent.assembler import assemble
from intentcraft.intent.schema import Service


@pytest.fixture
def compiler(resolved):
    return ConfigCompiler(resolved)


class TestInterfaceActions:
    """Tests for physical interface actions."""

    def test_enable(self, compiler):
        change = compiler.interface_admin_state("ge-0/0/1", "enable")
        assert change.total_operations == 1
        op = change.operations[0]
        assert op.path == "interfaces/interface[name=ge-0/0/1]/config/enabled"
        assert op.operation == Operation.UPDATE
        assert op.payload == {"openconfig-interfaces:enabled": True}

    def test_disable(self, compiler):
        op = compiler.interface_admin_state("ge-0/0/1", "disable").operations[0]
        assert op.payload == {"openconfig-interfaces:enabled": False}

    def test_bad_admin_action(self, compiler):
        with pytest.raises(ValidationError):
            compiler.interface_admin_state("ge-0/0/1", "toggle")

    def test_speed(self, compiler):
        op = compiler.interface_speed("ge-0/0/1", "10000").operations[0]
        assert op.path.endswith("/ethernet/config/port-speed")
        assert op.payload == {"openconfig-if-ethernet:port-speed": "SPEED_10GB"}

    def test_bad_speed(self, compiler):
        with pytest.raises(InvalidSpeedError):
            compiler.interface_speed("ge-0/0/1", "1234")


class TestBridgeInterface:
    """Tests for L2 bridging."""

    def test_trunk(self, compiler):
        change = compiler.bridge_interface("ge-0/0/1", "add", "trunk", ["100", "200", "300"])
        assert change.total_operations == 1
        op = change.operations[0]
        assert op.operation == Operation.REPLACE
        assert op.path == "interfaces/interface[name=ge-0/0/1]/ethernet/switched-vlan"
        assert op.payload == {
            "openconfig-vlan:switched-vlan": {
                "config": {"interface-mode": "TRUNK", "trunk-vlans": [100, 200, 300]},
            }
        }

    def test_access(self, compiler):
        op = compiler.bridge_interface("ge-0/0/1", "add", "access", ["100"]).operations[0]
        assert op.payload["openconfig-vlan:switched-vlan"]["config"] == {
            "interface-mode": "ACCESS",
            "access-vlan": 100,
        }

    def test_access_two_vlans(self, compiler):
        with pytest.raises(ModeCardinalityError):
            compiler.bridge_interface("ge-0/0/1", "add", "access", ["100", "200"])

    def test_access_no_vlans(self, compiler):
        with pytest.raises(ModeCardinalityError):
            compiler.bridge_interface("ge-0/0/1", "add", "access", [])

    def test_trunk_no_vlans(self, compiler):
        with pytest.raises(ModeCardinalityError):
            compiler.bridge_interface("ge-0/0/1", "add", "trunk", [])

    def test_trunk_bad_vlan(self, compiler):
        with pytest.raises(InvalidVlanIdError):
            compiler.bridge_interface("ge-0/0/1", "add", "trunk", ["100", "4095"])

    def test_bad_mode(self, compiler):
        with pytest.raises(ValidationError):
            compiler.bridge_interface("ge-0/0/1", "add", "hybrid", ["100"])

    def test_missing_mode(self, compiler):
        with pytest.raises(ValidationError):
            compiler.bridge_interface("ge-0/0/1", "add")

    def test_delete(self, compiler):
        op = compiler.bridge_interface("ge-0/0/1", "delete").operations[0]
        assert op.operation == Operation.DELETE
        assert op.payload is None


class TestLag:
    """Tests for LAG actions."""

    def test_add_member(self, compiler):
        op = compiler.lag_member("ae0", "ge-0/0/2", "add").operations[0]
        assert op.path == "interfaces/interface[name=ge-0/0/2]/ethernet/config/aggregate-id"
        assert op.operation == Operation.UPDATE
        assert op.payload == {"openconfig-if-aggregate:aggregate-id": "ae0"}

    def test_remove_member(self, compiler):
        op = compiler.lag_member("ae0", "ge-0/0/2", "remove").operations[0]
        assert op.operation == Operation.DELETE
        assert op.payload is None

    def test_lacp_enable(self, compiler):
        op = compiler.lag_lacp("ae0", "enable").operations[0]
        assert op.path == "interfaces/interface[name=ae0]/aggregation/config/lag-type"
        assert op.payload == {"openconfig-if-aggregate:lag-type": "LACP"}

    def test_lacp_disable(self, compiler):
        op = compiler.lag_lacp("ae0", "disable").operations[0]
        assert op.payload == {"openconfig-if-aggregate:lag-type": "STATIC"}


class TestSubinterface:
    """Tests for sub-interface actions."""

    def test_add(self, compiler):
        change = compiler.subinterface("ge-0/0/1", 100, "add", "10.0.0.1/30")
        op = change.operations[0]
        assert op.operation == Operation.UPDATE
        assert op.path == "interfaces/interface[name=ge-0/0/1]/subinterfaces/subinterface[index=100]"
        subif = op.payload["openconfig-interfaces:subinterface"][0]
        assert subif["index"] == 100
        address = subif["openconfig-if-ip:ipv4"]["addresses"]["address"][0]
        assert address["ip"] == "10.0.0.1"
        assert address["config"] == {"ip": "10.0.0.1", "prefix-length": 30}

    def test_add_string_index(self, compiler):
        op = compiler.subinterface("ge-0/0/1", "100", "add", "10.0.0.1/30").operations[0]
        assert op.path.endswith("subinterface[index=100]")

    def test_add_without_prefix(self, compiler):
        with pytest.raises(InvalidCIDRError):
            compiler.subinterface("ge-0/0/1", 100, "add", "10.0.0.1")

    def test_add_without_address(self, compiler):
        with pytest.raises(InvalidCIDRError):
            compiler.subinterface("ge-0/0/1", 100, "add")

    def test_delete(self, compiler):
        op = compiler.subinterface("ge-0/0/1", 100, "delete").operations[0]
        assert op.operation == Operation.DELETE

    @pytest.mark.parametrize("index", [-1, "x", None])
    def test_bad_index(self, compiler, index):
        with pytest.raises(ValidationError):
            compiler.subinterface("ge-0/0/1", index, "delete")

    def test_admin_state(self, compiler):
        op = compiler.subinterface_admin_state("ge-0/0/1", 100, "disable").operations[0]
        assert op.path.endswith("subinterface[index=100]/config/enabled")
        assert op.payload == {"openconfig-interfaces:enabled": False}


class TestBandwidth:
    """Tests for sub-interface shaping."""

    def test_shaping(self, compiler):
        op = compiler.subinterface_bandwidth("ge-0/0/1", 100, "100", "internet").operations[0]
        assert op.path == "qos/interfaces/interface[interface-id=ge-0/0/1.100]/output/config"
        assert op.payload == {
            "openconfig-qos:config": {
                "interface-id": "ge-0/0/1.100",
                "scheduler-policy": "SHAPE-100M",
            }
        }

    def test_speed_not_allowed_for_service(self, compiler):
        with pytest.raises(InvalidBandwidthError, match="internet"):
            compiler.subinterface_bandwidth("ge-0/0/1", 100, "50", "internet")

    def test_service_without_shaping(self, compiler):
        op = compiler.subinterface_bandwidth("ge-0/0/1", 100, "50", "egress-only").operations[0]
        assert op.payload["openconfig-qos:config"]["scheduler-policy"] == "SHAPE-50M"

    def test_zero(self, compiler):
        with pytest.raises(InvalidBandwidthError):
            compiler.subinterface_bandwidth("ge-0/0/1", 100, "0")


class TestVpnMembership:
    """Tests for VRF route-target changes."""

    def test_add(self, compiler):
        vrf = VRF(
            name="CUST-A",
            import_route_targets=["64512:900"],
            export_route_targets=["64512:901"],
        )
        change = compiler.vpn_membership(vrf, "blue", "add")
        op = change.operations[0]
        assert op.operation == Operation.REPLACE
        assert op.path == (
            "network-instances/network-instance[name=CUST-A]"
            "/afi-safis/afi-safi[afi-safi-name=IPV4_UNICAST]/config"
        )
        assert op.payload == {
            "openconfig-network-instance:config": {
                "afi-safi-name": "IPV4_UNICAST",
                "import-route-target": ["64512:100", "64512:900"],
                "export-route-target": ["64512:101", "64512:901"],
            }
        }

    def test_delete(self, compiler):
        vrf = VRF(
            name="CUST-A",
            import_route_targets=["64512:100", "64512:900"],
            export_route_targets=["64512:101"],
        )
        config = compiler.vpn_membership(vrf, "blue", "delete").operations[0].payload[
            "openconfig-network-instance:config"
        ]
        assert config["import-route-target"] == ["64512:900"]
        assert config["export-route-target"] == []

    def test_vrf_not_modified(self, compiler):
        vrf = VRF(name="CUST-A", import_route_targets=["64512:900"])
        compiler.vpn_membership(vrf, "blue", "add")
        assert vrf.import_route_targets == ["64512:900"]

    def test_unknown_vpn(self, compiler):
        with pytest.raises(PolicyNotFoundError):
            compiler.vpn_membership(VRF(name="CUST-A"), "green", "add")


class TestFirewallPolicy:
    """Tests for firewall policy compilation."""

    def test_both_filters(self, compiler):
        change = compiler.firewall_policy("ge-0/0/1", 100, "internet")

        assert change.total_operations == 3
        ingress, egress, binding = change.operations
        assert ingress.path == "acl/acl-sets/acl-set[name=INET-IN][type=ACL_IPV4]"
        assert egress.path == "acl/acl-sets/acl-set[name=INET-OUT][type=ACL_IPV4]"
        assert binding.path == (
            "interfaces/interface[name=ge-0/0/1]/subinterfaces/subinterface[index=100]/ipv4/acl"
        )
        assert all(op.operation == Operation.REPLACE for op in change.operations)
        assert all(op.timeout == ACL_TIMEOUT for op in change.operations)
        assert binding.payload == {
            "openconfig-interfaces:acl": {
                "config": {"ingress-acl-set": "INET-IN", "egress-acl-set": "INET-OUT"},
            }
        }

    def test_ingress_entries(self, compiler):
        ingress = compiler.firewall_policy("ge-0/0/1", 100, "internet").operations[0]
        entries = ingress.payload["openconfig-acl:acl-set"][0]["acl-entries"]["acl-entry"]
        assert [e["sequence-id"] for e in entries] == [10, 100]
        assert entries[0]["ipv4"]["config"] == {
            "protocol": "IP_TCP",
            "source-address": "10.0.0.0/8",
        }
        assert entries[1]["actions"]["config"]["forwarding-action"] == "DROP"

    def test_egress_only(self, compiler):
        change = compiler.firewall_policy("ge-0/0/1", 100, "egress-only")
        assert change.total_operations == 2
        assert change.operations[0].path.startswith("acl/acl-sets/acl-set[name=EDGE-OUT]")
        assert change.operations[1].payload == {
            "openconfig-interfaces:acl": {"config": {"egress-acl-set": "EDGE-OUT"}},
        }

    def test_missing_out_name(self, compiler):
        with pytest.raises(MalformedPolicyError):
            compiler.firewall_policy("ge-0/0/1", 100, "broken")

    def test_rule_list_wrong_type(self, compiler):
        with pytest.raises(MalformedPolicyError):
            compiler.firewall_policy("ge-0/0/1", 100, "bad-rules")

    def test_unknown_service(self, compiler):
        with pytest.raises(PolicyNotFoundError):
            compiler.firewall_policy("ge-0/0/1", 100, "nonexistent")

    def test_no_all_scope(self, compiler):
        with pytest.raises(PolicyNotFoundError, match="all"):
            compiler.firewall_policy("ge-0/0/1", 100, "no-policy")

    def test_empty_all_scope(self, global_intent):
        global_intent.network.services["empty"] = Service.model_validate(
            {"interface_policy": {"all": None}}
        )
        compiler = ConfigCompiler(assemble(global_intent, "pe1-east"))
        with pytest.raises(PolicyNotFoundError, match="all"):
            compiler.firewall_policy("ge-0/0/1", 100, "empty")

    def test_duplicate_sequence(self, compiler):
        with pytest.raises(DuplicateSequenceError):
            compiler.firewall_policy("ge-0/0/1", 100, "dup-seq")

    def test_unknown_rule(self, compiler):
        with pytest.raises(UnknownRuleError):
            compiler.firewall_policy("ge-0/0/1", 100, "ghost-rule")


class TestBaseline:
    """Tests for baseline configlets."""

    def test_packaged_configlets(self, compiler):
        change = compiler.baseline()
        assert change.total_operations == len(BASELINE_CONFIGLETS)
        for op in change.operations:
            assert op.path == "/"
            assert op.operation == Operation.REPLACE
            assert op.timeout == CONFIGLET_TIMEOUT
            assert isinstance(op.payload, dict) and op.payload

    def test_order(self, compiler):
        keys = [next(iter(op.payload)) for op in compiler.baseline().operations]
        assert keys == [
            "openconfig-system:system",
            "openconfig-qos:qos",
            "openconfig-routing-policy:routing-policy",
        ]

    def test_custom_directory(self, resolved, tmp_path):
        for i, name in enumerate(BASELINE_CONFIGLETS):
            (tmp_path / f"{name}.json").write_text(json.dumps({"marker": i}))
        change = ConfigCompiler(resolved, configlet_dir=tmp_path).baseline()
        assert [op.payload for op in change.operations] == [{"marker": 0}, {"marker": 1}, {"marker": 2}]

    def test_missing_configlet(self, resolved, tmp_path):
        (tmp_path / "system_common.json").write_text("{}")
        with pytest.raises(ConfigletError, match="qos_common"):
            ConfigCompiler(resolved, configlet_dir=tmp_path).baseline()

    def test_invalid_json(self, tmp_path):
        (tmp_path / "broken.json").write_text("{not json")
        with pytest.raises(ConfigletError):
            load_configlet("broken", tmp_path)

    def test_not_an_object(self, tmp_path):
        (tmp_path / "list.json").write_text("[1, 2]")
        with pytest.raises(ConfigletError):
            load_configlet("list", tmp_path)


class TestChangeSerialization:
    """Tests for compiled change output."""

    def test_to_dict(self, compiler):
        data = compiler.interface_admin_state("ge-0/0/1", "enable").to_dict()
        assert data["description"] == "enable ge-0/0/1"
        assert data["operations"] == [{
            "path": "interfaces/interface[name=ge-0/0/1]/config/enabled",
            "operation": "update",
            "payload": {"openconfig-interfaces:enabled": True},
            "timeout": 10.0,
        }]
        json.dumps(data)
