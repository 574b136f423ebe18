import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional

import numpy as np
import tensorflow as tf

from services.pose_overlay.core import params
from services.pose_overlay.core.errors import BackendUnavailableError

logger = logging.getLogger(__name__)

GPU_DELEGATE_LIBRARY = "libtensorflowlite_gpu_delegate.so"

DEFAULT_FLAG_VALUES: Dict[str, Any] = {
    "TFLITE_NUM_THREADS": -1,
    "TFLITE_USE_XNNPACK": True,
    "TFLITE_PRESERVE_ALL_TENSORS": False,
    "CHECK_COMPUTATION_FOR_ERRORS": False,
}


class EnvironmentFlags:
    """Flag store read by compute backends when they are constructed."""

    def __init__(self, defaults: Optional[Mapping[str, Any]] = None):
        self._flags: Dict[str, Any] = dict(DEFAULT_FLAG_VALUES if defaults is None else defaults)

    def set_flags(self, flags: Mapping[str, Any]) -> None:
        self._flags.update(flags)

    def get(self, name: str, default: Any = None) -> Any:
        return self._flags.get(name, default)

    def get_flags(self) -> Dict[str, Any]:
        return dict(self._flags)


class ComputeBackend(ABC):
    """One compute target the pose model can run on."""

    name: str = ""

    def __init__(self, flags: EnvironmentFlags):
        self.flags = flags

    @abstractmethod
    def make_interpreter(self, model_path: str) -> "tf.lite.Interpreter":
        ...

    def check_output(self, values: np.ndarray) -> np.ndarray:
        if self.flags.get("CHECK_COMPUTATION_FOR_ERRORS") and not np.all(np.isfinite(values)):
            raise ValueError(f"The result of the {self.name} backend contains NaN or Inf values.")
        return values

    def dispose(self) -> None:
        pass


class CpuComputeBackend(ComputeBackend):
    name = "cpu"

    def make_interpreter(self, model_path: str) -> "tf.lite.Interpreter":
        if self.flags.get("TFLITE_USE_XNNPACK", True):
            resolver = tf.lite.experimental.OpResolverType.AUTO
        else:
            resolver = tf.lite.experimental.OpResolverType.BUILTIN_WITHOUT_DEFAULT_DELEGATES
        interpreter = tf.lite.Interpreter(
            model_path=model_path,
            num_threads=self.flags.get("TFLITE_NUM_THREADS", -1),
            experimental_op_resolver_type=resolver,
            experimental_preserve_all_tensors=bool(self.flags.get("TFLITE_PRESERVE_ALL_TENSORS", False)),
        )
        interpreter.allocate_tensors()
        return interpreter


class GpuComputeBackend(ComputeBackend):
    name = "gpu"

    def __init__(self, flags: EnvironmentFlags):
        super().__init__(flags)
        # Raises ValueError when the delegate library is not present.
        self._delegate = tf.lite.experimental.load_delegate(GPU_DELEGATE_LIBRARY)

    def make_interpreter(self, model_path: str) -> "tf.lite.Interpreter":
        interpreter = tf.lite.Interpreter(
            model_path=model_path,
            experimental_delegates=[self._delegate],
            experimental_preserve_all_tensors=bool(self.flags.get("TFLITE_PRESERVE_ALL_TENSORS", False)),
        )
        interpreter.allocate_tensors()
        return interpreter

    def dispose(self) -> None:
        self._delegate = None


BackendFactory = Callable[[EnvironmentFlags], ComputeBackend]


class ComputeEngine:
    """
    Registry of compute backend factories plus the live backend instances.

    `registry_factory` holds every registered factory, `registry` only the
    backends that have been instantiated. At most one backend is active.
    """

    def __init__(self, flags: Optional[EnvironmentFlags] = None):
        self.flags = flags if flags is not None else EnvironmentFlags()
        self.registry_factory: Dict[str, BackendFactory] = {}
        self.registry: Dict[str, ComputeBackend] = {}
        self.backend_name: Optional[str] = None

    @property
    def backend(self) -> Optional[ComputeBackend]:
        if self.backend_name is None:
            self._initialize_default_backend()
        if self.backend_name is None:
            return None
        return self.registry.get(self.backend_name)

    def _initialize_default_backend(self) -> None:
        """Activate the first registered backend that builds, trying the default one first."""
        default = params.DEFAULT_BACKEND.partition("-")[2]
        for name in sorted(self.registry_factory, key=lambda n: n != default):
            if name not in self.registry:
                try:
                    self.registry[name] = self.registry_factory[name](self.flags)
                except Exception as e:
                    logger.warning(f"Initialization of backend {name} failed: {e}")
                    continue
            self.backend_name = name
            logger.info(f"No compute backend selected, falling back to {name}")
            return

    def register_backend(self, name: str, factory: BackendFactory) -> bool:
        if name in self.registry_factory:
            logger.warning(f"{name} backend was already registered. Reusing existing backend factory.")
            return False
        self.registry_factory[name] = factory
        return True

    def find_backend_factory(self, name: str) -> Optional[BackendFactory]:
        return self.registry_factory.get(name)

    def remove_backend(self, name: str) -> None:
        if name not in self.registry_factory:
            raise BackendUnavailableError(f"{name} backend not found in registry")
        instance = self.registry.pop(name, None)
        if instance is not None:
            instance.dispose()
        del self.registry_factory[name]
        if self.backend_name == name:
            self.backend_name = None

    async def set_backend(self, name: str) -> ComputeBackend:
        factory = self.registry_factory.get(name)
        if factory is None:
            raise BackendUnavailableError(f"Backend name '{name}' not found in registry")

        if name not in self.registry:
            try:
                instance = await asyncio.to_thread(factory, self.flags)
            except Exception as e:
                logger.warning(f"Initialization of backend {name} failed: {e}")
                raise BackendUnavailableError(f"Initialization of backend {name} failed") from e
            self.registry[name] = instance

        self.backend_name = name
        logger.info(f"Active compute backend: {name}")
        return self.registry[name]


def gpu_delegate_available() -> bool:
    try:
        tf.lite.experimental.load_delegate(GPU_DELEGATE_LIBRARY)
    except (ValueError, OSError, RuntimeError):
        return False
    return True


def create_default_engine(flags: Optional[EnvironmentFlags] = None) -> ComputeEngine:
    engine = ComputeEngine(flags)
    engine.register_backend(CpuComputeBackend.name, CpuComputeBackend)
    if gpu_delegate_available():
        engine.register_backend(GpuComputeBackend.name, GpuComputeBackend)
    else:
        logger.info("TFLite GPU delegate not found; gpu backend not registered")
    return engine
