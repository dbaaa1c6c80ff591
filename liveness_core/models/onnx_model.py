"""ONNX Runtime classifier session with lazy, one-time acquisition.

Both classifier models (occlusion, liveness) are consumed through the same
small contract:
- ``available``: whether a session can be (or has been) acquired
- ``infer(tensor)``: run one (1, 3, 224, 224) float32 input, return the first output
- ``release()``: drop the session; safe to call more than once

One session is shared by every call on a pipeline. ``InferenceSession.run`` is
safe to call concurrently, and the input tensor is always owned by the caller,
so no staging buffer is shared between calls.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

import numpy as np
import onnxruntime as rt

from ..pipeline.errors import InferenceFailure, ModelUnavailable


logger = logging.getLogger(__name__)

SessionFactory = Callable[[Path, Sequence[str]], "rt.InferenceSession"]


def default_session_factory(model_path: Path, providers: Sequence[str]) -> "rt.InferenceSession":
    return rt.InferenceSession(str(model_path), providers=list(providers))


class OnnxClassifierModel:
    def __init__(
        self,
        model_path: Union[str, Path, None],
        name: str,
        providers: Sequence[str] = ("CPUExecutionProvider",),
        session_factory: Optional[SessionFactory] = None,
        logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
    ):
        self.model_path = Path(model_path) if model_path is not None else None
        self.name = name
        self.providers = tuple(providers)
        self.session_factory = session_factory or default_session_factory
        self.logger = logger if logger is not None else logging.getLogger(__name__)

        self._session = None
        self._input_name: Optional[str] = None
        self._load_error: Optional[ModelUnavailable] = None
        self._lock = threading.Lock()

    def acquire(self):
        """Return the session, creating it on first use.

        A failed load is remembered and re-raised on later calls until
        ``reload()`` is called.
        """
        if self._session is not None:
            return self._session
        with self._lock:
            if self._session is not None:
                return self._session
            if self._load_error is not None:
                raise self._load_error

            try:
                if self.model_path is None or not self.model_path.is_file():
                    raise FileNotFoundError(f"Model not found at {self.model_path}")
                session = self.session_factory(self.model_path, self.providers)
                self._input_name = session.get_inputs()[0].name
            except Exception as e:
                self.logger.error("Failed to load %s model: %s", self.name, e)
                self._load_error = ModelUnavailable(f"Failed to load {self.name} model: {e}")
                raise self._load_error from e

            self._session = session
            self.logger.info("%s model loaded: %s (input: %s)", self.name, self.model_path, self._input_name)
            return session

    @property
    def available(self) -> bool:
        try:
            self.acquire()
        except ModelUnavailable:
            return False
        return True

    def reload(self) -> bool:
        """Retry a failed load. Returns True when a session is ready."""
        with self._lock:
            self._load_error = None
        return self.available

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        session = self.acquire()
        try:
            outputs = session.run(None, {self._input_name: np.asarray(tensor, dtype=np.float32)})
        except Exception as e:
            self.logger.error("%s inference error: %s", self.name, e)
            raise InferenceFailure(f"Error during {self.name} inference: {e}") from e

        if not outputs:
            raise InferenceFailure(f"{self.name} model returned no outputs")
        output = np.asarray(outputs[0], dtype=np.float32)
        self.logger.debug("%s output shape: %s", self.name, output.shape)
        return output

    def release(self) -> None:
        with self._lock:
            session, self._session = self._session, None
            self._input_name = None
        if session is not None:
            self.logger.debug("%s session released", self.name)
