import logging
from collections.abc import Mapping
from typing import Any, Callable, List, Optional

from services.pose_overlay.core import params
from services.pose_overlay.core.ComputeEngine import ComputeEngine, GPU_DELEGATE_LIBRARY
from services.pose_overlay.core.errors import BackendUnavailableError, InvalidArgumentError
from services.pose_overlay.core.params import RuntimeConfig

logger = logging.getLogger(__name__)


def _in_range(value: Any, allowed: List[Any]) -> bool:
    # True == 1 in Python; a bool flag must not accept ints and vice versa.
    return any(
        isinstance(candidate, bool) == isinstance(value, bool) and candidate == value
        for candidate in allowed
    )


def validate_flags(flag_config: Any) -> None:
    if not isinstance(flag_config, Mapping):
        raise InvalidArgumentError(
            f"A mapping is expected, while a(n) {type(flag_config).__name__} is found."
        )

    for flag, value in flag_config.items():
        if flag not in params.TUNABLE_FLAG_VALUE_RANGE_MAP:
            raise InvalidArgumentError(f"{flag} is not a tunable or valid environment flag.")
        allowed = params.TUNABLE_FLAG_VALUE_RANGE_MAP[flag]
        if not _in_range(value, allowed):
            raise InvalidArgumentError(
                f"{flag} value is expected to be in the range {allowed}, while {value!r} is found."
            )


class BackendConfigurator:
    """
    Applies tunable compute flags and switches the active compute backend.

    `alert` is shown to the user when an optional backend is missing;
    `on_backend_fallback` is called with the config after it was rewritten to the
    fallback backend so that whatever displays the config can refresh.
    """

    def __init__(
        self,
        config: RuntimeConfig,
        engine: ComputeEngine,
        alert: Optional[Callable[[str], None]] = None,
        on_backend_fallback: Optional[Callable[[RuntimeConfig], None]] = None,
    ):
        self.config = config
        self.engine = engine
        self.alert = alert or logger.warning
        self.on_backend_fallback = on_backend_fallback

    async def set_backend_and_env_flags(self, flag_config: Optional[Mapping], backend: str) -> None:
        if flag_config is None:
            return
        validate_flags(flag_config)

        self.engine.flags.set_flags(flag_config)

        runtime, _, backend_name = backend.partition("-")
        if runtime == params.MANAGED_RUNTIME:
            await self.reset_backend(backend_name)

    async def reset_backend(self, backend_name: str) -> None:
        engine = self.engine
        if backend_name not in engine.registry_factory:
            if backend_name in params.OPTIONAL_BACKENDS:
                self.alert(
                    f"{backend_name} backend is not registered. This machine may not support it: "
                    f"the TFLite GPU delegate ({GPU_DELEGATE_LIBRARY}) could not be loaded."
                )
                self.config.backend = self.config.last_backend or params.DEFAULT_BACKEND
                logger.info(f"Falling back to {self.config.backend}")
                if self.on_backend_fallback is not None:
                    self.on_backend_fallback(self.config)
                return
            raise BackendUnavailableError(f"{backend_name} backend is not registered.")

        if backend_name in engine.registry:
            # Re-register so the next activation builds a fresh instance with current flags.
            factory = engine.find_backend_factory(backend_name)
            engine.remove_backend(backend_name)
            engine.register_backend(backend_name, factory)

        await engine.set_backend(backend_name)
        self.config.last_backend = f"{params.MANAGED_RUNTIME}-{backend_name}"
