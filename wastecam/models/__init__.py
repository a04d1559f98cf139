"""
Models package initialization
"""

from .classifier import InferenceAdapter, ModelHandle
from .decision import LABELS, Classification, decide
from .encoder import TensorEncoder

__all__ = ['InferenceAdapter', 'ModelHandle', 'LABELS', 'Classification', 'decide', 'TensorEncoder']
