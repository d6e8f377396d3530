"""Exception types raised by the hard-rod GCMC engine."""


class ConfigurationError(ValueError):
    """Invalid engine parameters, detected at construction before any step runs."""


class UndefinedStatisticError(ArithmeticError):
    """
    A derived statistic has no defined value for the current state,
    e.g. the order parameter of an empty lattice.
    """
