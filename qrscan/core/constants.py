"""Application-wide constants and user-facing status texts."""

APP_NAME = "qrscan"
VERSION = "1.0.0"

MODEL_INPUT_SIZE = 640
DETECTION_THRESHOLD = 0.25

STATUS_LOADING_DEPENDENCIES = "Loading dependencies..."
STATUS_LOADING_MODEL = "Loading detection model..."
STATUS_READY = "Ready"
STATUS_INIT_FAILED = "Initialization failed"

STATUS_SCANNING = "Scanning..."
STATUS_ADJUST_PLACEMENT = "Please adjust placement or brightness of QR code"
STATUS_NOT_DECODED = "QR code found but could not be decoded, retrying..."
STATUS_OPENING_URL = "Opening URL: {url}"
STATUS_DECODED_TEXT = "Decoded text: {text}"
STATUS_SWITCHING_CAMERA = "Switching camera..."

ERROR_CAMERA_ACCESS = "Failed to access camera"
ERROR_CAMERA_ENUMERATION = "Failed to detect cameras"
