class ColornetError(Exception):
    """
    Base class for all fatal errors of the package.

    Every subclass carries the process exit status used by the command line tool.
    """
    exit_code = 1


class ConfigurationError(ColornetError):
    exit_code = 2


class InputFileError(ColornetError):
    exit_code = 3


class BitmaskIndexError(ColornetError, IndexError):
    exit_code = 4


class DeltaRangeError(ConfigurationError):
    exit_code = 5


class SolverError(ColornetError):
    """
    Failure while building or solving the mixed-integer program.
    The ILP path catches it, logs it and ends without a solution file.
    """
    exit_code = 6
