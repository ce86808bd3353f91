"""Structured error hierarchy for cogniplug."""

from __future__ import annotations


class CogniplugError(Exception):
    """Base for all cogniplug errors."""

    pass


class InvalidConfiguration(CogniplugError):
    """Non-positive capacity, contradictory budget or other bad setting."""

    pass


class RegistryError(CogniplugError):
    """Plugin registry operation failed."""

    pass


class RegistryConflictError(RegistryError):
    """Conflict declared against an unregistered (or the same) plugin id."""

    def __init__(self, plugin_id: str, unknown_ids: list[str] | None = None, reason: str = ""):
        self.plugin_id = plugin_id
        self.unknown_ids = list(unknown_ids or [])
        detail = reason or f"unregistered plugin ids: {', '.join(self.unknown_ids)}"
        super().__init__(f"Cannot set conflicts for '{plugin_id}': {detail}")


class UnknownPluginError(RegistryError):
    """Plugin id is not registered."""

    def __init__(self, plugin_id: str):
        self.plugin_id = plugin_id
        super().__init__(f"Plugin '{plugin_id}' is not registered")


class PluginError(CogniplugError):
    """A single plugin call failed. Isolated to that plugin and round."""

    phase = "unknown"

    def __init__(self, plugin_id: str, message: str = ""):
        self.plugin_id = plugin_id
        super().__init__(message or f"Plugin '{plugin_id}' failed during {self.phase}")


class ActivationQueryFailure(PluginError):
    """should_activate() raised, timed out or was rejected by the breaker."""

    phase = "activation"


class InvocationFailure(PluginError):
    """intervene() still failing after retries were exhausted."""

    phase = "invocation"


class CircuitOpen(InvocationFailure):
    """Circuit breaker is open: the call was rejected without being attempted."""

    def __init__(self, key: str, retry_after: float = 0.0, plugin_id: str | None = None):
        self.key = key
        self.retry_after = retry_after
        # Keys are "<plugin_id>:<phase>"; plugin ids may themselves contain ":"
        plugin_id = plugin_id if plugin_id is not None else key.rsplit(":", 1)[0]
        super().__init__(
            plugin_id, f"Circuit breaker is OPEN for {key} (retry in {retry_after:.2f}s)"
        )


class PluginTimeoutError(CogniplugError):
    """A plugin call exceeded its per-call timeout."""

    def __init__(self, key: str, timeout: float):
        self.key = key
        self.timeout = timeout
        super().__init__(f"Operation {key} timed out after {timeout}s")


class AdmissionRequiredError(CogniplugError):
    """Caller required at least one admission but the registry is empty."""

    pass


class RoundIncompleteError(CogniplugError):
    """Round was cancelled or hit its deadline while completeness was required."""

    def __init__(self, abandoned: list[str]):
        self.abandoned = list(abandoned)
        super().__init__(f"Round abandoned {len(self.abandoned)} plugin call(s)")


class SerializationError(CogniplugError):
    """Learning state export/import failed."""

    pass
