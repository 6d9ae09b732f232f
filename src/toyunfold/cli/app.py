"""Command-line interface for the toy unfolding test using argparse."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from toyunfold.core.exceptions import ConfigurationError
from toyunfold.workflows.unfold_test import DEFAULT_RESPONSE_PATH, RunStatus, UnfoldTestConfig, run_unfold_test

logger = logging.getLogger(__name__)

DEFAULTS = UnfoldTestConfig()

EXIT_CODES = {
    RunStatus.COMPLETED: 0,
    RunStatus.TRAINED: 0,
    RunStatus.UNKNOWN_METHOD: 0,
    RunStatus.GENERATION_FAILED: 1,
    RunStatus.RESPONSE_UNAVAILABLE: 1,
    RunStatus.BINNING_MISMATCH: 1,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toyunfold",
        description="Toy Monte Carlo closure test for 1-D unfolding algorithms",
    )
    parser.add_argument("method", nargs="?", type=int, default=DEFAULTS.method,
                        help="1 Bayes, 2 SVD, 3 bin-by-bin, 4 matrix inversion (default: %(default)s)")
    parser.add_argument("stage", nargs="?", type=int, default=DEFAULTS.stage,
                        help="0 train and test, 1 train only, 2 test only (default: %(default)s)")
    parser.add_argument("ftrain", nargs="?", type=int, default=DEFAULTS.train_pdf,
                        help="training PDF code (default: %(default)s)")
    parser.add_argument("ftest", nargs="?", type=int, default=DEFAULTS.test_pdf,
                        help="test PDF code (default: %(default)s)")
    parser.add_argument("nb", nargs="?", type=int, default=DEFAULTS.n_bins,
                        help="number of bins (default: %(default)s)")
    parser.add_argument("ntest", nargs="?", type=int, default=DEFAULTS.n_test,
                        help="test events (default: %(default)s)")
    parser.add_argument("ntrain", nargs="?", type=int, default=DEFAULTS.n_train,
                        help="training events (default: %(default)s)")
    parser.add_argument("xlo", nargs="?", type=float, default=DEFAULTS.low,
                        help="lower edge (default: %(default)s)")
    parser.add_argument("xhi", nargs="?", type=float, default=DEFAULTS.high,
                        help="upper edge (default: %(default)s)")
    parser.add_argument("regparm", nargs="?", type=int, default=None,
                        help="Bayes iterations or SVD kterm (default: 4 for Bayes, 20 for SVD)")
    parser.add_argument("ntoys", nargs="?", type=int, default=DEFAULTS.n_toys,
                        help="toys for the SVD covariance (default: %(default)s)")
    parser.add_argument("--response-file", type=Path, default=DEFAULT_RESPONSE_PATH,
                        help="where the trained response is written and read (.json, .yaml)")
    parser.add_argument("--plot-file", type=Path, default=Path("unfold_test.pdf"))
    parser.add_argument("--no-plots", action="store_true", help="do not write the diagnostic PDF")
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    parser.add_argument("-v", "--verbose", action="store_true", help="log the per-bin comparison table")
    return parser


def config_from_args(args: argparse.Namespace) -> UnfoldTestConfig:
    return UnfoldTestConfig(
        method=args.method,
        stage=args.stage,
        train_pdf=args.ftrain,
        test_pdf=args.ftest,
        n_bins=args.nb,
        n_test=args.ntest,
        n_train=args.ntrain,
        low=args.xlo,
        high=args.xhi,
        regparm=args.regparm,
        n_toys=args.ntoys,
        response_path=args.response_file,
        plot_path=None if args.no_plots else args.plot_file,
        seed=args.seed,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    config = config_from_args(args)
    try:
        ctx = run_unfold_test(config)
    except ConfigurationError as exc:
        for problem in exc.problems:
            print(f"toyunfold: {problem}", file=sys.stderr)
        return 1
    return EXIT_CODES[ctx.status]


if __name__ == "__main__":
    sys.exit(main())
