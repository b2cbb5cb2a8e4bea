"""
Search parameters shared by the command line tool, the enumerator and the ILP solver.

Modes:
    0 - MODE_ILP: maximum connected subnetwork through a mixed-integer program
    1 - MODE_EXACT: level-wise enumeration, no colorfulness constraint
    2 - MODE_COLORFUL: enumeration, subnetworks must use at least two alteration types
    3 - MODE_BACKGROUND_EXCLUSIVE: enumeration, one or two nodes outside the background alteration
    4 - MODE_ALMOST: enumeration allowing up to `delta` missing alterations per sample
"""

from dataclasses import dataclass

from colornet.exceptions import ConfigurationError, DeltaRangeError

MODE_ILP = 0
MODE_EXACT = 1
MODE_COLORFUL = 2
MODE_BACKGROUND_EXCLUSIVE = 3
MODE_ALMOST = 4

MODES = (MODE_ILP, MODE_EXACT, MODE_COLORFUL, MODE_BACKGROUND_EXCLUSIVE, MODE_ALMOST)

DEFAULT_OUTPUT = {
    MODE_ILP: "output.txt",
    MODE_EXACT: "output.tsv",
    MODE_COLORFUL: "output_colorful.tsv",
    MODE_BACKGROUND_EXCLUSIVE: "output_colorful.tsv",
    MODE_ALMOST: "output.tsv",
}

DEFAULT_BACKGROUND = "EXPROUT"
MAX_SOLVER_THREADS = 32


@dataclass(frozen=True)
class SearchConfig:
    """
    Validated search parameters

    Attributes:
    -----------
    min_patient_support - minimal number of samples supporting a subnetwork
    mode - one of MODES
    n_proc - number of worker processes (solver threads for MODE_ILP)
    delta - maximal number of missing alterations per sample, MODE_ALMOST only (1 or 2)
    alpha - fraction of min_patient_support a single gene must reach, MODE_ALMOST only
    background - alteration type excluded from the count in MODE_BACKGROUND_EXCLUSIVE
    """
    min_patient_support: int
    mode: int = MODE_EXACT
    n_proc: int = 1
    delta: int = 1
    alpha: float = 1.0
    background: str = DEFAULT_BACKGROUND

    def __post_init__(self):
        if self.min_patient_support < 1:
            raise ConfigurationError(
                "Minimal patient support should be at least 1, got {0}".format(self.min_patient_support))
        if self.mode not in MODES:
            raise ConfigurationError("Unknown mode {0}, expected one of {1}".format(self.mode, MODES))
        if self.n_proc < 1:
            raise ConfigurationError("Set a correct number for n_proc, right now the value is {0}".format(self.n_proc))
        if self.mode == MODE_ALMOST and self.delta not in (1, 2):
            raise DeltaRangeError("Illegal maximum mismatch bound {0}, only 1 or 2 are supported".format(self.delta))
        if not 0 < self.alpha <= 1:
            raise ConfigurationError("alpha should be in (0, 1], got {0}".format(self.alpha))

    @property
    def solver_threads(self):
        return min(self.n_proc, MAX_SOLVER_THREADS)

    @property
    def default_output(self):
        return DEFAULT_OUTPUT[self.mode]
