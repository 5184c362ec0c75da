"""Custom exceptions for the application."""


class ApplicationError(Exception):
    """Base application error."""
    pass


class ConfigError(ApplicationError):
    """Configuration-related errors."""
    pass


class CameraAccessError(ApplicationError):
    """Camera permission denied, device missing or device busy."""
    pass


class ModelLoadError(ApplicationError):
    """Detection model could not be loaded or warmed up."""
    pass


class DetectionError(ApplicationError):
    """Base exception for detection-related errors."""
    pass


class DetectorNotReadyError(DetectionError):
    """Inference requested before the model reached the Ready state."""
    pass


class FrameUnavailable(DetectionError):
    """No decoded camera frame is available for this pass."""
    pass


class InvalidRegion(DetectionError):
    """Crop region collapsed to zero width or height."""
    pass


class DecodeFailure(DetectionError):
    """No QR symbol could be decoded from the cropped region."""
    pass
