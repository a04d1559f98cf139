"""
Error taxonomy for the classification pipeline
"""


class WasteCamError(Exception):
    """Base class for all pipeline errors"""


class EncodingError(WasteCamError):
    """Frame could not be converted to the expected pixel grid"""


class InferenceError(WasteCamError):
    """Model not loaded, tensor shape mismatch or model call failure"""


class DecisionError(WasteCamError):
    """Probability vector has no usable candidate"""


class ResourceError(WasteCamError):
    """Model handle could not be loaded"""
