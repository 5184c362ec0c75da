"""Detection model lifecycle and raw inference."""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

import numpy as np
import torch

from ..backends.base_backend import BaseBackend
from ..core.constants import MODEL_INPUT_SIZE
from ..core.entities import ScannerState
from ..core.exceptions import DetectorNotReadyError, ModelLoadError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]  # fraction 0..1


class InferenceScope:
    """Holds the tensors created during one inference call.

    ``release`` drops the scope's references and updates the owner's live
    count; the memory itself is freed once no other reference remains.
    """

    def __init__(self, owner: "Detector"):
        self._owner = owner
        self._tensors: List[torch.Tensor] = []

    def track(self, tensor):
        if isinstance(tensor, torch.Tensor):
            self._tensors.append(tensor)
            self._owner._live_tensors += 1
        return tensor

    def release(self) -> None:
        self._owner._live_tensors -= len(self._tensors)
        self._tensors.clear()


class Detector:
    """Runs the QR detection model and returns raw candidate rows.

    Lifecycle follows ScannerState: UNINITIALIZED -> LOADING -> READY | FAILED.
    ``infer`` may only be called once READY.
    """

    def __init__(self, backend: BaseBackend, model_path: str, input_size: int = MODEL_INPUT_SIZE):
        self.backend = backend
        self.model_path = model_path
        self.input_size = input_size
        self._state = ScannerState.UNINITIALIZED
        self._state_lock = threading.Lock()
        self._load_error: Optional[str] = None
        self._load_thread: Optional[threading.Thread] = None
        self._live_tensors = 0

    @property
    def state(self) -> ScannerState:
        return self._state

    @property
    def load_error(self) -> Optional[str]:
        return self._load_error

    @property
    def live_tensors(self) -> int:
        """Number of inference tensors not yet released (0 between calls)."""
        return self._live_tensors

    def is_ready(self) -> bool:
        return self._state is ScannerState.READY

    def load(self, progress_callback: Optional[ProgressCallback] = None) -> ScannerState:
        """Load and warm up the model synchronously.

        Args:
            progress_callback: Called with the load fraction (0..1)

        Returns:
            The resulting ScannerState (READY or FAILED). A detector that
            already left UNINITIALIZED is not reloaded.
        """
        with self._state_lock:
            if self._state is not ScannerState.UNINITIALIZED:
                logger.warning(f"Model load ignored, detector is {self._state.value}")
                return self._state
            self._state = ScannerState.LOADING

        report = progress_callback or (lambda fraction: None)
        try:
            report(0.0)
            logger.info(f"Loading detection model from {self.model_path}")
            self.backend.load_model(self.model_path)
            report(0.75)
            self._warmup()
            report(1.0)
        except Exception as e:
            self._load_error = str(e)
            self._state = ScannerState.FAILED
            logger.error(f"Model load failed: {e}")
            return self._state

        self._state = ScannerState.READY
        logger.info("Detection model ready")
        return self._state

    def load_async(self, progress_callback: Optional[ProgressCallback] = None,
                   done_callback: Optional[Callable[[ScannerState], None]] = None) -> threading.Thread:
        """Load the model on a background thread."""
        def _run():
            state = self.load(progress_callback)
            if done_callback:
                done_callback(state)

        self._load_thread = threading.Thread(target=_run, name="model-loader", daemon=True)
        self._load_thread.start()
        return self._load_thread

    def wait_until_loaded(self, timeout: Optional[float] = None) -> ScannerState:
        if self._load_thread is not None:
            self._load_thread.join(timeout)
        return self._state

    def infer(self, tensor: np.ndarray) -> np.ndarray:
        """Run the model on a (1, S, S, 3) tensor.

        Returns:
            float32 array of shape (N, 4 + classes) with rows
            (cx, cy, w, h, confidence, ...), box columns normalized to [0, 1]

        Raises:
            DetectorNotReadyError: If the model is not READY
        """
        if self._state is not ScannerState.READY:
            raise DetectorNotReadyError(f"Detector is {self._state.value}, not ready")

        with self._inference_scope() as scope:
            return self._run(scope, tensor)

    def _run(self, scope: InferenceScope, tensor: np.ndarray) -> np.ndarray:
        device = getattr(self.backend, 'device', 'cpu')
        chw = np.ascontiguousarray(np.transpose(tensor, (0, 3, 1, 2)))
        im = scope.track(torch.from_numpy(chw).to(device))

        output = scope.track(self._first_output(self.backend.forward(im)))
        if output.dim() == 3:
            output = scope.track(output[0])
        # (4 + classes, N) -> (N, 4 + classes)
        rows = output.transpose(0, 1).float().cpu().numpy().copy()
        rows[:, :4] /= float(self.input_size)
        return rows

    @staticmethod
    def _first_output(output):
        if isinstance(output, (list, tuple)):
            output = output[0]
        if isinstance(output, np.ndarray):
            output = torch.from_numpy(output)
        return output

    @contextmanager
    def _inference_scope(self) -> Iterator[InferenceScope]:
        scope = InferenceScope(self)
        try:
            with torch.inference_mode():
                yield scope
        finally:
            scope.release()
            if torch.cuda.is_available() and str(getattr(self.backend, 'device', 'cpu')).startswith('cuda'):
                torch.cuda.empty_cache()

    def _warmup(self) -> None:
        """One forward pass on an all-ones input, as the first real pass would otherwise pay for graph setup."""
        dummy = np.ones((1, self.input_size, self.input_size, 3), dtype=np.float32)
        try:
            with self._inference_scope() as scope:
                self._run(scope, dummy)
        except Exception as e:
            raise ModelLoadError(f"Model warm-up failed: {e}") from e
