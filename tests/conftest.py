"""Shared fixtures: a small two-region network intent."""
import copy

import pytest
import yaml

from intentcraft.intent.schema import (
    DeviceProfile,
    GlobalIntent,
    NetworkIntent,
    PlatformProfiles,
    SiteIntent,
)

NETWORK = {
    "version": "1.0",
    "reverse_exclude": ["rd-suffix"],
    "generic_alias": {
        "customer-rt": "<pe-asnum>:100",
        "mgmt-vrf": "MGMT",
        "rd-suffix": "100",
    },
    "prefix_lists": {
        "rfc1918": ["10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16"],
        "mgmt": ["192.0.2.0/24"],
    },
    "communities": {
        "blackhole": "<pe-asnum>:666",
        "no-export": "65535:65281",
    },
    "services": {
        "internet": {
            "description": "Internet access",
            "service_type": "l3",
            "interface_policy": {
                "all": {
                    "in_name": "INET-IN",
                    "out_name": "INET-OUT",
                    "in_rule": ["allow-web", "deny-any"],
                    "out_rule": ["allow-any"],
                },
            },
            "routing_behavior": {"vrf_default_vpn": ["blue", "red"]},
        },
        "egress-only": {
            "interface_policy": {
                "all": {
                    "in_name": "",
                    "out_name": "EDGE-OUT",
                    "in_rule": [],
                    "out_rule": ["allow-any"],
                },
            },
        },
        "broken": {
            "interface_policy": {
                "all": {
                    "in_name": "BROKEN-IN",
                    "in_rule": ["allow-web"],
                    "out_rule": [],
                },
            },
        },
        "bad-rules": {
            "interface_policy": {
                "all": {
                    "in_name": "BAD-IN",
                    "out_name": "BAD-OUT",
                    "in_rule": "allow-web",
                    "out_rule": [],
                },
            },
        },
        "dup-seq": {
            "interface_policy": {
                "all": {
                    "in_name": "DUP-IN",
                    "out_name": "",
                    "in_rule": ["allow-any", "also-ten"],
                    "out_rule": [],
                },
            },
        },
        "ghost-rule": {
            "interface_policy": {
                "all": {
                    "in_name": "GHOST-IN",
                    "out_name": "",
                    "in_rule": ["does-not-exist"],
                    "out_rule": [],
                },
            },
        },
        "no-policy": {"description": "Service without interface policy"},
    },
    "policy_rules": {
        "allow-web": {
            "application": "http",
            "sequence": 10,
            "match": {
                "protocol": "tcp",
                "source_list": ["10.0.0.0/8", "172.16.0.0/12"],
                "destination_port": 80,
            },
            "action": "accept",
        },
        "deny-any": {"sequence": 100, "action": "discard"},
        "allow-any": {"sequence": 10, "action": "accept"},
        "also-ten": {"sequence": 10, "action": "discard"},
    },
    "prefix_service_mapping": {
        "10.0.0.0/8": ["internet"],
        "10.20.0.0/16": ["egress-only"],
    },
    "bandwidth_shaping": {
        "internet": {"valid_speeds": [10, 100, 1000]},
    },
    "regions": {
        "east": {
            "pe_as_num": 64512,
            "pe_as_name": "east-net",
            "generic_alias": {"region-name": "east"},
            "prefix_lists": {"mgmt": ["198.51.100.0/24"]},
            "bridge": {
                "domains": {
                    "metro": {
                        "baseline_vlans": ["1"],
                        "vlans": {
                            100: {"description": "customer a"},
                            200: {"description": "customer b"},
                        },
                    },
                },
            },
        },
        "west": {"pe_as_num": 64513, "pe_as_name": "west-net"},
    },
    "vpns": {
        "blue": {
            "description": "Blue VPN",
            "import_target": "<pe-asnum>:100",
            "export_target": "<pe-asnum>:101",
        },
        "red": {
            "description": "Red VPN",
            "import_target": "<pe-asnum>:200",
            "export_target": "<pe-asnum>:201",
        },
    },
}

PLATFORM = {
    "vendors": {
        "juniper": {
            "chassis": {
                "mx480": {
                    "config_class": "mx-pe",
                    "cards": {
                        "FPC-0": {"valid_speeds": ["1000", "10000"], "bridging": True},
                        "ae": {"valid_ports": ["0-3"]},
                    },
                    "ae_profiles": {
                        "standard": {
                            "core": {"description": "core bundle", "trunk_type": "l3"},
                        },
                    },
                },
            },
        },
    },
}

PROFILES = {
    "pe1-east": {
        "region": "east",
        "site": "nyc",
        "mgmt_ip": "192.0.2.10",
        "vendor": "juniper",
        "chassis": "mx480",
        "is_router": True,
        "bridge_domain": "metro",
        "ae_profile": "standard",
        "generic_alias": {"mgmt-vrf": "MGMT-PE1"},
        "prefix_lists": {"rfc1918": ["10.0.0.0/8"]},
        "vlan_port_mapping": {
            "default": ["100", "200", "300"],
            "ge-0/0/2": ["400"],
        },
    },
    "pe2-west": {
        "region": "west",
        "is_router": True,
    },
    "pe9-north": {
        "region": "north",
    },
    "pe8-east": {
        "region": "east",
        "bridge_domain": "no-such-domain",
    },
}


@pytest.fixture
def global_intent():
    return GlobalIntent(
        network=NetworkIntent.model_validate(copy.deepcopy(NETWORK)),
        site=SiteIntent(),
        platform=PlatformProfiles.model_validate(copy.deepcopy(PLATFORM)),
        device_profiles={
            name: DeviceProfile.model_validate(copy.deepcopy(profile))
            for name, profile in PROFILES.items()
        },
    )


@pytest.fixture
def resolved(global_intent):
    return global_intent.resolve("pe1-east")


@pytest.fixture
def intent_dir(tmp_path):
    """Write the intent documents as a YAML tree."""
    root = tmp_path / "intent"
    profiles = root / "profiles"
    profiles.mkdir(parents=True)

    (root / "network_intent.yaml").write_text(yaml.safe_dump(NETWORK))
    (root / "platform.yaml").write_text(yaml.safe_dump(PLATFORM))
    (root / "site_intent.yaml").write_text(yaml.safe_dump({
        "regions": {"east": {"sites": {"nyc": {"site_ip": "192.0.2.1"}}}},
    }))
    for name, profile in PROFILES.items():
        (profiles / f"{name}.yaml").write_text(yaml.safe_dump(profile))
    return root
