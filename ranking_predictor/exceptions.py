"""
Error types raised by the ranking prediction engine
"""


class PredictionError(Exception):
    """Base class for prediction engine errors"""


class InvalidInputError(PredictionError, ValueError):
    """Input violates the engine's preconditions (negative rank, bad format, ...)"""
