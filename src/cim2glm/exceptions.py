__all__ = [
    "TranslationError",
    "FatalInputError",
    "UnknownBusError",
]


class TranslationError(Exception):
    pass


class FatalInputError(TranslationError):
    """The CIM input could not be read or parsed; nothing was translated."""
    pass


class UnknownBusError(TranslationError, KeyError):
    pass
