# Services package
from .result_forwarder import ResultForwarder

__all__ = ['ResultForwarder']
