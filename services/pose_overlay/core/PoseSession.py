import logging
from collections import deque
from typing import Callable, Deque, List, Optional

from services.pose_overlay.core import params
from services.pose_overlay.core.BackendConfigurator import BackendConfigurator
from services.pose_overlay.core.BackendInterface import PoseBackend
from services.pose_overlay.core.ComputeEngine import ComputeEngine, create_default_engine
from services.pose_overlay.core.PoseRenderer import PoseRenderer
from services.pose_overlay.core.params import RuntimeConfig

logger = logging.getLogger(__name__)

# Alerts kept for display; older ones are only in the log.
MAX_MESSAGES = 20


def build_pose_backend(config: RuntimeConfig, engine: ComputeEngine) -> PoseBackend:
    if config.model in ("movenet", "posenet"):
        from services.pose_overlay.core.MoveNetPoseBackend import MoveNetPoseBackend

        model_path = params.MOVENET_MODEL_PATHS.get(config.model_config.model_type)
        if model_path is None:
            raise ValueError(f"Unknown MoveNet model type: {config.model_config.model_type}")
        return MoveNetPoseBackend(engine, model_path=model_path)
    elif config.model == "blazepose":
        from services.pose_overlay.core.MediaPipePoseBackend import MediaPipePoseBackend

        return MediaPipePoseBackend()
    else:
        raise ValueError(f"Unknown model: {config.model}")


class PoseSession:
    """
    One detection session: the shared config, the compute engine, the
    configurator driving it and the renderer reading it.

    Backend fallbacks are picked up on the next `apply_pending()` call, which is
    how a UI re-applies the backend it was told to show.
    """

    def __init__(
        self,
        config: RuntimeConfig,
        engine: Optional[ComputeEngine] = None,
        alert: Optional[Callable[[str], None]] = None,
    ):
        self.config = config
        self.engine = engine if engine is not None else create_default_engine()
        self.messages: Deque[str] = deque(maxlen=MAX_MESSAGES)
        self._alert = alert
        self.configurator = BackendConfigurator(
            config,
            self.engine,
            alert=self._on_alert,
            on_backend_fallback=self._on_backend_fallback,
        )
        self.renderer = PoseRenderer(config)
        self.fallback_pending = False

    def _on_alert(self, message: str) -> None:
        logger.warning(message)
        self.messages.append(message)
        if self._alert is not None:
            self._alert(message)

    def _on_backend_fallback(self, config: RuntimeConfig) -> None:
        self.fallback_pending = True

    async def start(self) -> None:
        await self.configurator.set_backend_and_env_flags(self.config.flags, self.config.backend)
        await self.apply_pending()

    async def apply_pending(self) -> None:
        if not self.fallback_pending:
            return
        self.fallback_pending = False
        await self.configurator.set_backend_and_env_flags(self.config.flags, self.config.backend)

    async def switch_backend(self, backend: str) -> None:
        self.config.backend = backend
        await self.configurator.set_backend_and_env_flags(self.config.flags, backend)
        await self.apply_pending()

    async def cycle_backend(self, choices: Optional[List[str]] = None) -> str:
        choices = choices or params.BACKEND_CHOICES
        try:
            nxt = choices[(choices.index(self.config.backend) + 1) % len(choices)]
        except ValueError:
            nxt = choices[0]
        await self.switch_backend(nxt)
        return self.config.backend
