# helmet_overlay/helmet_engine/common/enums.py
from enum import Enum, IntEnum

class PoseState(str, Enum):
    """Defines the tracking state of the OverlayProcessor."""
    INITIALIZING = "INITIALIZING"
    SEARCHING = "SEARCHING"
    TRACKING = "TRACKING"
    LOST_TARGET = "LOST_TARGET"

class FaceplateState(str, Enum):
    """Defines the state of the faceplate open/close animation."""
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    ANIMATING = "ANIMATING"

class ShapeGroup(str, Enum):
    """The rigid group a helmet shape is attached to."""
    SHELL = "SHELL"
    FACEPLATE = "FACEPLATE"

class SegmentKind(str, Enum):
    MOVE = "M"
    LINE = "L"
    QUAD = "Q"
    CLOSE = "Z"

class FillKind(str, Enum):
    SOLID = "SOLID"
    LINEAR = "LINEAR"
    RADIAL = "RADIAL"

class LogLevel(str, Enum):
    """Defines logging levels for structured logging."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"

class FaceLandmark(IntEnum):
    """Semantic landmark roles mapped to MediaPipe FaceMesh indices."""
    LEFT_EYE_OUTER = 33
    RIGHT_EYE_OUTER = 263
    NOSE_TIP = 1
    CHIN = 152
    FOREHEAD = 10
    LEFT_CHEEK = 234
    RIGHT_CHEEK = 454
