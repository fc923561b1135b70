"""Exception hierarchy for intent resolution, compilation and transport."""
from typing import Optional


class IntentcraftError(Exception):
    """Base class for all intentcraft errors."""
    pass


# --- Resolution ---

class ResolutionError(IntentcraftError):
    """Intent could not be resolved for a device. No partial result exists."""
    pass


class IntentLoadError(ResolutionError):
    """An intent document is missing, unreadable or fails validation."""
    pass


class UnknownDeviceError(ResolutionError):
    """No device profile exists for the requested device."""

    def __init__(self, device_name: str):
        super().__init__(f"no profile found for device: {device_name}")
        self.device_name = device_name


class UnknownRegionError(ResolutionError):
    """Device profile references a region absent from the network intent."""

    def __init__(self, region: str, device_name: str = ""):
        msg = f"region '{region}' not found in network intent"
        if device_name:
            msg += f" (device {device_name})"
        super().__init__(msg)
        self.region = region


class UnknownBridgeDomainError(ResolutionError):
    """Device profile names a bridge domain its region does not define."""

    def __init__(self, domain: str, region: str):
        super().__init__(
            f"bridge domain '{domain}' not defined in region '{region}'"
        )
        self.domain = domain
        self.region = region


class CyclicAliasError(ResolutionError):
    """Alias substitution exceeded the maximum nesting depth."""

    def __init__(self, token: str, depth: int):
        super().__init__(
            f"alias '{token}' did not resolve within {depth} substitutions "
            f"(cyclic definition?)"
        )
        self.token = token
        self.depth = depth


# --- Validation (raised before any wire call) ---

class ValidationError(IntentcraftError):
    """User-supplied action arguments are invalid."""
    pass


class InvalidVlanIdError(ValidationError):
    pass


class InvalidCIDRError(ValidationError):
    pass


class ModeCardinalityError(ValidationError):
    pass


class InvalidSpeedError(ValidationError):
    pass


class InvalidBandwidthError(ValidationError):
    pass


# --- Policy ---

class PolicyError(IntentcraftError):
    """Service, policy or rule definitions are missing or malformed."""
    pass


class PolicyNotFoundError(PolicyError):
    pass


class MalformedPolicyError(PolicyError):
    pass


class UnknownRuleError(PolicyError):
    pass


class DuplicateSequenceError(PolicyError):
    pass


class ConfigletError(IntentcraftError):
    """A baseline configlet could not be loaded."""
    pass


# --- Transport ---

class TransportError(IntentcraftError):
    """A remote read or write failed. Never retried internally."""

    def __init__(
        self,
        message: str,
        path: str = "",
        operation: str = "",
        applied: Optional[list] = None,
        index: Optional[int] = None,
    ):
        context = []
        if operation:
            context.append(f"op={operation}")
        if path:
            context.append(f"path={path}")
        full = f"{message} ({', '.join(context)})" if context else message
        super().__init__(full)
        self.reason = message
        self.path = path
        self.operation = operation
        # Operations already written before the failure (no rollback)
        self.applied = applied or []
        self.index = index
