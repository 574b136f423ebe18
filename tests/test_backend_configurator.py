"""Tests for flag validation and backend switching."""
import asyncio

import pytest

from services.pose_overlay.core.BackendConfigurator import BackendConfigurator, validate_flags
from services.pose_overlay.core.errors import BackendUnavailableError, InvalidArgumentError
from services.pose_overlay.core.params import DEFAULT_BACKEND


@pytest.fixture
def alerts():
    return []


@pytest.fixture
def refreshed():
    return []


@pytest.fixture
def configurator(config, engine, alerts, refreshed):
    return BackendConfigurator(config, engine, alert=alerts.append, on_backend_fallback=refreshed.append)


class TestFlagValidation:
    """Flags must be in the allow-list and in range before anything is applied."""

    def test_none_is_a_noop(self, configurator, engine):
        before = engine.flags.get_flags()
        asyncio.run(configurator.set_backend_and_env_flags(None, "tflite-cpu"))
        assert engine.flags.get_flags() == before
        assert engine.backend_name is None

    @pytest.mark.parametrize("bad", [["TFLITE_USE_XNNPACK"], "TFLITE_USE_XNNPACK", 3])
    def test_non_mapping_rejected(self, configurator, bad):
        with pytest.raises(InvalidArgumentError, match="mapping is expected"):
            asyncio.run(configurator.set_backend_and_env_flags(bad, "tflite-cpu"))

    def test_unknown_flag_rejected_and_nothing_applied(self, configurator, engine):
        before = engine.flags.get_flags()
        flags = {"TFLITE_NUM_THREADS": 2, "WEBGL_PACK": False}
        with pytest.raises(InvalidArgumentError, match="WEBGL_PACK is not a tunable"):
            asyncio.run(configurator.set_backend_and_env_flags(flags, "tflite-cpu"))
        assert engine.flags.get_flags() == before
        assert engine.backend_name is None

    def test_out_of_range_value_rejected(self, configurator, engine):
        with pytest.raises(InvalidArgumentError, match="TFLITE_NUM_THREADS value is expected") as exc:
            asyncio.run(configurator.set_backend_and_env_flags({"TFLITE_NUM_THREADS": 3}, "tflite-cpu"))
        assert "3" in str(exc.value)
        assert engine.flags.get("TFLITE_NUM_THREADS") == -1

    def test_int_does_not_satisfy_bool_flag(self):
        with pytest.raises(InvalidArgumentError):
            validate_flags({"TFLITE_USE_XNNPACK": 1})

    def test_bool_does_not_satisfy_int_flag(self):
        with pytest.raises(InvalidArgumentError):
            validate_flags({"TFLITE_NUM_THREADS": True})

    def test_valid_flags_applied_as_given(self, configurator, engine):
        flags = {"TFLITE_NUM_THREADS": 4, "TFLITE_USE_XNNPACK": False, "CHECK_COMPUTATION_FOR_ERRORS": True}
        asyncio.run(configurator.set_backend_and_env_flags(flags, "tflite-cpu"))
        for name, value in flags.items():
            assert engine.flags.get(name) == value

    def test_other_runtime_skips_reset(self, configurator, engine, config):
        asyncio.run(configurator.set_backend_and_env_flags({"TFLITE_NUM_THREADS": 2}, "mediapipe-gpu"))
        assert engine.flags.get("TFLITE_NUM_THREADS") == 2
        assert engine.backend_name is None
        assert engine.registry == {}
        assert config.last_backend is None


class TestBackendReset:
    """Backend activation, re-initialization and fallback."""

    def test_activates_registered_backend(self, configurator, engine, config):
        asyncio.run(configurator.set_backend_and_env_flags({}, "tflite-cpu"))
        assert engine.backend_name == "cpu"
        assert engine.backend.name == "cpu"
        assert config.last_backend == "tflite-cpu"

    def test_active_backend_is_rebuilt_with_new_flags(self, configurator, engine):
        asyncio.run(configurator.set_backend_and_env_flags({"TFLITE_NUM_THREADS": 1}, "tflite-cpu"))
        first = engine.backend
        asyncio.run(configurator.set_backend_and_env_flags({"TFLITE_NUM_THREADS": 8}, "tflite-cpu"))
        second = engine.backend

        assert first is not second
        assert first.disposed
        assert second.flags_at_creation["TFLITE_NUM_THREADS"] == 8
        assert "cpu" in engine.registry_factory

    def test_unregistered_backend_raises(self, configurator):
        with pytest.raises(BackendUnavailableError, match="webnn backend is not registered"):
            asyncio.run(configurator.set_backend_and_env_flags({}, "tflite-webnn"))

    def test_missing_optional_backend_falls_back_to_default(self, configurator, config, alerts, refreshed):
        config.backend = "tflite-gpu"
        asyncio.run(configurator.set_backend_and_env_flags({}, "tflite-gpu"))

        assert config.backend == DEFAULT_BACKEND
        assert len(alerts) == 1
        assert "gpu backend is not registered" in alerts[0]
        assert refreshed == [config]

    def test_missing_optional_backend_falls_back_to_last_known_good(self, configurator, engine, config, alerts):
        asyncio.run(configurator.set_backend_and_env_flags({}, "tflite-wasm"))
        assert config.last_backend == "tflite-wasm"

        config.backend = "tflite-gpu"
        asyncio.run(configurator.set_backend_and_env_flags({}, "tflite-gpu"))

        assert config.backend == "tflite-wasm"
        assert engine.backend_name == "wasm"
        assert alerts

    def test_fallback_without_hooks_only_logs(self, config, engine, caplog):
        configurator = BackendConfigurator(config, engine)
        with caplog.at_level("WARNING"):
            asyncio.run(configurator.set_backend_and_env_flags({}, "tflite-gpu"))
        assert config.backend == DEFAULT_BACKEND
        assert any("gpu backend is not registered" in r.message for r in caplog.records)

    def test_flags_applied_before_backend_lookup_fails(self, configurator, engine):
        with pytest.raises(BackendUnavailableError):
            asyncio.run(configurator.set_backend_and_env_flags({"TFLITE_NUM_THREADS": 2}, "tflite-webnn"))
        assert engine.flags.get("TFLITE_NUM_THREADS") == 2
