"""
colornet command line tool

Example:
    colornet -n network.txt -l alterations.txt -s 5 -m 2 -t 4
"""

import argparse
import logging
import sys
from typing import List, Optional

from colornet.config import SearchConfig, MODE_ILP, DEFAULT_BACKGROUND, MAX_SOLVER_THREADS
from colornet.enumerator import SubnetworkEnumerator
from colornet.exceptions import ColornetError
from colornet.ilp import run_ilp_search
from colornet.load_data import data_preprocessing
from colornet.results_processing import results_analysis, save_ilp_solution

logger = logging.getLogger("colornet")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="colornet",
        description="Connected, recurrently altered (colorful) subnetworks of a gene interaction network",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Modes:
  0  maximum subnetwork through a mixed-integer program
  1  level-wise enumeration
  2  level-wise enumeration, at least two alteration types per subnetwork
  3  level-wise enumeration, one or two nodes outside the background alteration (-b)
  4  level-wise enumeration, up to -d missing alterations per sample
        """
    )
    parser.add_argument("-n", dest="network", required=True, help="network file, one edge per line")
    parser.add_argument("-l", dest="alterations", required=True,
                        help="alteration profiles, 'sample gene alterationType' per line")
    parser.add_argument("-s", dest="support", type=int, required=True, help="minimal patient support")
    parser.add_argument("-m", dest="mode", type=int, required=True, choices=range(5), help="search mode")
    parser.add_argument("-t", dest="threads", type=int, default=None,
                        help="solver threads for mode 0 (default: {0}), worker processes for modes 1-4 "
                             "(default: 1)".format(MAX_SOLVER_THREADS))
    parser.add_argument("-o", dest="output", default=None, help="output file (default depends on the mode)")
    parser.add_argument("-b", dest="background", default=DEFAULT_BACKGROUND,
                        help="background alteration for mode 3 (default: %(default)s)")
    parser.add_argument("-d", dest="delta", type=int, default=1, help="maximal mismatches per sample for mode 4")
    parser.add_argument("-a", dest="alpha", type=float, default=1.0,
                        help="single gene support fraction for mode 4 (default: %(default)s)")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging and progress bars")
    parser.add_argument("--log-file", default=None, help="also write the log to this file")
    return parser


def setup_logging(verbose=False, log_file=None):
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, mode="w"))
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s", handlers=handlers, force=True)


def log_header(text):
    line = "*" * (len(text) + 4)
    logger.info(line)
    logger.info("* %s *", text)
    logger.info(line)


def main(args: Optional[List[str]] = None) -> int:
    parsed = build_parser().parse_args(args)
    setup_logging(parsed.verbose, parsed.log_file)
    log_header("colornet")
    try:
        threads = parsed.threads
        if threads is None:
            threads = MAX_SOLVER_THREADS if parsed.mode == MODE_ILP else 1
        config = SearchConfig(parsed.support, mode=parsed.mode, n_proc=threads, delta=parsed.delta,
                              alpha=parsed.alpha, background=parsed.background)
        output = parsed.output or config.default_output

        log_header("Reading Input")
        context = data_preprocessing(parsed.network, parsed.alterations)

        log_header("Solving the problem")
        if config.mode == MODE_ILP:
            solution = run_ilp_search(context, config.min_patient_support, n_threads=config.solver_threads,
                                      verbose=parsed.verbose)
            if solution is not None:
                save_ilp_solution(solution, context, output)
            return 0

        enumerator = SubnetworkEnumerator(context, config.min_patient_support, mode=config.mode,
                                          background=config.background, delta=config.delta, alpha=config.alpha)
        terminal, _ = enumerator.run_search(n_proc=config.n_proc, verbose=parsed.verbose)
        results_analysis(terminal, context).save(output)
    except ColornetError as e:
        logger.error("%s", e)
        return e.exit_code
    return 0


if __name__ == "__main__":
    sys.exit(main())
