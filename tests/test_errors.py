"""Tests for the cogniplug error hierarchy."""

from cogniplug.errors import (
    ActivationQueryFailure,
    AdmissionRequiredError,
    CircuitOpen,
    CogniplugError,
    InvalidConfiguration,
    InvocationFailure,
    PluginError,
    PluginTimeoutError,
    RegistryConflictError,
    RegistryError,
    RoundIncompleteError,
    SerializationError,
    UnknownPluginError,
)


def test_error_hierarchy():
    assert issubclass(InvalidConfiguration, CogniplugError)
    assert issubclass(RegistryConflictError, RegistryError)
    assert issubclass(UnknownPluginError, RegistryError)
    assert issubclass(ActivationQueryFailure, PluginError)
    assert issubclass(InvocationFailure, PluginError)
    assert issubclass(CircuitOpen, InvocationFailure)
    for error in (
        PluginTimeoutError,
        AdmissionRequiredError,
        RoundIncompleteError,
        SerializationError,
        RegistryError,
        PluginError,
    ):
        assert issubclass(error, CogniplugError)
    assert issubclass(CogniplugError, Exception)


def test_plugin_errors_carry_phase_and_id():
    activation = ActivationQueryFailure("p1")
    invocation = InvocationFailure("p2", "custom message")

    assert activation.plugin_id == "p1"
    assert activation.phase == "activation"
    assert "activation" in str(activation)
    assert invocation.phase == "invocation"
    assert str(invocation) == "custom message"


def test_circuit_open_derives_plugin_id_from_key():
    error = CircuitOpen("planner:invocation", retry_after=3.5)

    assert error.plugin_id == "planner"
    assert error.key == "planner:invocation"
    assert error.retry_after == 3.5
    assert "OPEN" in str(error)


def test_registry_conflict_error_lists_unknown_ids():
    error = RegistryConflictError("a", ["x", "y"])
    assert error.unknown_ids == ["x", "y"]
    assert "x, y" in str(error)


def test_timeout_and_incomplete_attributes():
    timeout = PluginTimeoutError("p:activation", 2.0)
    incomplete = RoundIncompleteError(["slow", "slower"])

    assert timeout.key == "p:activation"
    assert timeout.timeout == 2.0
    assert incomplete.abandoned == ["slow", "slower"]
    assert "2" in str(incomplete)


def test_circuit_open_keeps_colons_in_plugin_id():
    assert CircuitOpen("ns:planner:activation").plugin_id == "ns:planner"
    assert CircuitOpen("odd:key", plugin_id="explicit").plugin_id == "explicit"
