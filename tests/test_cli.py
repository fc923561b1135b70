"""Tests for the command line interface."""
import json
import logging

import pytest

from intentcraft import cli
from intentcraft.transport.memory import MemoryTransport
from intentcraft.utils.audit_log import audit_logger, get_recent_changes

SYSTEM_STATE = {"openconfig-system:state": {"hostname": "pe1-east"}}


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep CLI runs from installing handlers on the real log files."""
    monkeypatch.setattr(cli, "setup_logging", lambda level=None: None)


@pytest.fixture
def restore_audit_logger():
    yield
    for handler in list(audit_logger.handlers):
        handler.close()
        audit_logger.removeHandler(handler)
    audit_logger.propagate = True
    audit_logger.setLevel(logging.NOTSET)


@pytest.fixture
def memory_device(monkeypatch):
    """Route apply through an in-memory device instead of RESTCONF."""
    transport = MemoryTransport({"system/state": SYSTEM_STATE})
    created = {}

    def factory(config, device_id=""):
        created["config"] = config
        transport.device_id = device_id
        return transport

    monkeypatch.setattr(cli, "RestconfTransport", factory)
    transport.created = created
    return transport


def run(intent_dir, *argv):
    return cli.main(["--intent-dir", str(intent_dir), *argv])


class TestResolveCommand:
    """Tests for `intentcraft resolve`."""

    def test_json(self, intent_dir, capsys):
        assert run(intent_dir, "resolve", "pe1-east", "--json") == 0

        summary = json.loads(capsys.readouterr().out)
        assert summary["device"] == "pe1-east"
        assert summary["config_class"] == "mx-pe"
        assert summary["roles"] == ["router"]
        assert summary["vpns"]["blue"] == {"import_target": "64512:100", "export_target": "64512:101"}
        assert summary["communities"]["blackhole"] == "64512:666"
        assert summary["bridge_domain_vlans"] == [100, 200]

    def test_text(self, intent_dir, capsys):
        assert run(intent_dir, "resolve", "pe1-east") == 0
        out = capsys.readouterr().out
        assert "Device:       pe1-east" in out
        assert "import=64512:100" in out

    def test_unknown_device(self, intent_dir, capsys):
        assert run(intent_dir, "resolve", "nope") == 1
        assert "no profile found for device: nope" in capsys.readouterr().err

    def test_unknown_region(self, intent_dir, capsys):
        assert run(intent_dir, "resolve", "pe9-north") == 1
        assert "north" in capsys.readouterr().err

    def test_missing_intent_dir(self, tmp_path, capsys):
        assert run(tmp_path, "resolve", "pe1-east") == 1
        assert "network_intent.yaml" in capsys.readouterr().err


class TestCompileCommand:
    """Tests for `intentcraft compile`."""

    def test_trunk(self, intent_dir, capsys):
        assert run(intent_dir, "compile", "pe1-east", "bridge", "ge-0/0/1", "add", "trunk", "100,200,300") == 0
        out = capsys.readouterr().out
        assert "REPLACE  interfaces/interface[name=ge-0/0/1]/ethernet/switched-vlan" in out
        assert '"interface-mode": "TRUNK"' in out

    def test_firewall_policy(self, intent_dir, capsys):
        assert run(intent_dir, "compile", "pe1-east", "firewall-policy", "ge-0/0/1", "100", "internet") == 0
        out = capsys.readouterr().out
        assert "acl-set[name=INET-IN]" in out
        assert "acl-set[name=INET-OUT]" in out
        assert "(timeout 30s)" in out

    def test_baseline(self, intent_dir, capsys):
        assert run(intent_dir, "compile", "pe1-east", "baseline") == 0
        assert capsys.readouterr().out.count("REPLACE  /") == 3

    def test_validation_error(self, intent_dir, capsys):
        assert run(intent_dir, "compile", "pe1-east", "bridge", "ge-0/0/1", "add", "access", "100,200") == 1
        assert "Error: access mode requires exactly one VLAN" in capsys.readouterr().err

    def test_policy_error(self, intent_dir, capsys):
        assert run(intent_dir, "compile", "pe1-east", "firewall-policy", "ge-0/0/1", "100", "broken") == 1
        assert "malformed" in capsys.readouterr().err

    def test_wrong_arg_count(self, intent_dir, capsys):
        assert run(intent_dir, "compile", "pe1-east", "interface-admin", "ge-0/0/1") == 1
        assert "usage: interface-admin IF enable|disable" in capsys.readouterr().err

    def test_vpn_needs_apply(self, intent_dir, capsys):
        assert run(intent_dir, "compile", "pe1-east", "vpn", "CUST-A", "blue", "add") == 1
        assert "use apply" in capsys.readouterr().err

    def test_unknown_action(self, intent_dir):
        with pytest.raises(SystemExit):
            run(intent_dir, "compile", "pe1-east", "reboot")


class TestApplyCommand:
    """Tests for `intentcraft apply`."""

    def test_apply(self, intent_dir, tmp_path, capsys, memory_device, restore_audit_logger):
        audit_dir = tmp_path / "audit"
        rc = run(
            intent_dir, "apply", "pe1-east", "interface-admin", "ge-0/0/1", "disable",
            "--audit-dir", str(audit_dir),
        )

        assert rc == 0
        assert "Applied: disable ge-0/0/1 (1 operations)" in capsys.readouterr().out
        assert memory_device.created["config"].host == "192.0.2.10"
        assert [w.path for w in memory_device.writes] == [
            "interfaces/interface[name=ge-0/0/1]/config/enabled",
        ]

        records = get_recent_changes(str(audit_dir / "audit.log"))
        assert len(records) == 1
        assert records[0].device_id == "pe1-east"
        assert records[0].operation == "interface-admin"
        assert records[0].success is True

    def test_apply_host_override(self, intent_dir, tmp_path, memory_device, restore_audit_logger):
        rc = run(
            intent_dir, "apply", "pe1-east", "baseline",
            "--host", "198.51.100.7", "--insecure", "--audit-dir", str(tmp_path),
        )
        assert rc == 0
        config = memory_device.created["config"]
        assert config.host == "198.51.100.7"
        assert config.verify_ssl is False
        assert len(memory_device.writes) == 3

    def test_apply_failure(self, intent_dir, tmp_path, capsys, memory_device, restore_audit_logger):
        memory_device.fail_on("interfaces/interface[name=ge-0/0/1]/config/enabled", "locked")
        rc = run(
            intent_dir, "apply", "pe1-east", "interface-admin", "ge-0/0/1", "enable",
            "--audit-dir", str(tmp_path),
        )

        assert rc == 1
        assert "operation 1 of 1 failed: locked" in capsys.readouterr().err
        record = get_recent_changes(str(tmp_path / "audit.log"))[0]
        assert record.success is False
        assert record.failed_index == 0
        assert record.applied == 0

    def test_apply_without_host(self, intent_dir, tmp_path, capsys, memory_device, restore_audit_logger):
        rc = run(
            intent_dir, "apply", "pe2-west", "baseline", "--audit-dir", str(tmp_path),
        )
        assert rc == 1
        assert "no --host" in capsys.readouterr().err


class TestIntentSummary:
    """Tests for the resolved-intent summary."""

    def test_summary_is_json_serializable(self, resolved):
        summary = cli.intent_summary(resolved)
        assert json.loads(json.dumps(summary)) == summary
        assert summary["aliases"]["pe-asnum"] == "64512"
