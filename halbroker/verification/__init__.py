from .accumulator import AccumulatorService
from .reporter import VerificationReporter

__all__ = ["AccumulatorService", "VerificationReporter"]
