"""Base backend interface for model implementations."""
from abc import ABC, abstractmethod
from typing import Any


class BaseBackend(ABC):
    """Abstract base class for raw detection model backends.

    A backend takes a channel-first float tensor of shape (1, 3, S, S) and
    returns the model's raw head output, typically (1, 4 + classes, N).
    """

    def __init__(self, device: str = "cpu"):
        self.device = device
        self.is_loaded = False

    @abstractmethod
    def load_model(self, model_path: str) -> None:
        """Load a model from path. Raises ModelLoadError on failure."""
        pass

    @abstractmethod
    def forward(self, tensor: Any) -> Any:
        """Run one forward pass and return the raw output."""
        pass
