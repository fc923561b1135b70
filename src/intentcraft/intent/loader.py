"""Intent document loading from a YAML directory tree.

Expected layout:

```
intent/
  network_intent.yaml
  site_intent.yaml        (optional)
  platform.yaml           (optional)
  profiles/
    pe1-east.yaml
    pe2-east.yaml
```

The profile file stem is the device name.
"""
import logging
import os
from pathlib import Path
from typing import Any, Optional, Type, TypeVar

import yaml
from pydantic import BaseModel, ValidationError as PydanticValidationError

from ..errors import IntentLoadError
from .schema import (
    DeviceProfile,
    GlobalIntent,
    NetworkIntent,
    PlatformProfiles,
    SiteIntent,
)

logger = logging.getLogger(__name__)

NETWORK_FILE = "network_intent.yaml"
SITE_FILE = "site_intent.yaml"
PLATFORM_FILE = "platform.yaml"
PROFILES_DIR = "profiles"

M = TypeVar("M", bound=BaseModel)


def find_intent_dir() -> Path:
    """Find the intent directory.

    INTENTCRAFT_INTENT_DIR wins; otherwise the first existing directory of
    the standard search paths that holds a network intent document.
    """
    env_dir = os.environ.get("INTENTCRAFT_INTENT_DIR")
    if env_dir:
        return Path(env_dir)

    search_paths = [
        Path.cwd() / "intent",
        Path.home() / ".config" / "intentcraft" / "intent",
        Path("/etc/intentcraft/intent"),
    ]

    for path in search_paths:
        if (path / NETWORK_FILE).exists():
            return path

    raise IntentLoadError(
        f"Could not find an intent directory. Create ./intent/{NETWORK_FILE} "
        f"or set INTENTCRAFT_INTENT_DIR"
    )


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise IntentLoadError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise IntentLoadError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise IntentLoadError(
            f"{path}: expected a mapping at top level, got {type(data).__name__}"
        )
    return data


def _validate(model: Type[M], data: dict[str, Any], source: str) -> M:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise IntentLoadError(f"{source}: {e}") from e


def load_network_intent(path: Path) -> NetworkIntent:
    return _validate(NetworkIntent, _read_yaml(path), str(path))


def load_device_profiles(profiles_dir: Path) -> dict[str, DeviceProfile]:
    """Load every profile in a directory.

    A profile that fails to parse is logged and skipped so that one bad
    file does not take down resolution for the rest of the network. Asking
    for that device later yields UnknownDeviceError.
    """
    profiles: dict[str, DeviceProfile] = {}
    if not profiles_dir.is_dir():
        logger.warning(f"No profiles directory at {profiles_dir}")
        return profiles

    for path in sorted(profiles_dir.iterdir()):
        if path.suffix not in (".yaml", ".yml"):
            continue
        try:
            profiles[path.stem] = _validate(DeviceProfile, _read_yaml(path), str(path))
        except IntentLoadError as e:
            logger.warning(f"Skipping device profile {path.name}: {e}")

    logger.debug(f"Loaded {len(profiles)} device profiles from {profiles_dir}")
    return profiles


def load_global_intent(intent_dir: Optional[str] = None) -> GlobalIntent:
    """Load all intent documents from a directory.

    Args:
        intent_dir: Directory path; searched for when omitted

    Returns:
        GlobalIntent holding the validated documents

    Raises:
        IntentLoadError: If the network intent is missing or any required
            document is invalid
    """
    root = Path(intent_dir) if intent_dir else find_intent_dir()
    logger.info(f"Loading intent from {root}")

    network_path = root / NETWORK_FILE
    if not network_path.exists():
        raise IntentLoadError(f"Missing {NETWORK_FILE} in {root}")
    network = load_network_intent(network_path)

    site = SiteIntent()
    site_path = root / SITE_FILE
    if site_path.exists():
        site = _validate(SiteIntent, _read_yaml(site_path), str(site_path))

    platform = PlatformProfiles()
    platform_path = root / PLATFORM_FILE
    if platform_path.exists():
        platform = _validate(PlatformProfiles, _read_yaml(platform_path), str(platform_path))

    return GlobalIntent(
        network=network,
        site=site,
        platform=platform,
        device_profiles=load_device_profiles(root / PROFILES_DIR),
    )
