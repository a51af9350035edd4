# helmet_overlay/helmet_engine/common/exceptions.py

class PoseUnavailable(Exception):
    """Raised when landmarks are missing or too degenerate to derive a pose.

    Callers treat it exactly like a frame with no face detected.
    """
