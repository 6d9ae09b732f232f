"""
Toy Monte Carlo unfolding test workflow.

Sequences the three stages of an unfolding closure test:

- TRAIN: sample a training PDF, smear it through the detector model and
  fill the response (matches and misses). The response is written to the
  object store.
- TEST: sample an independent test PDF and fill truth and measured
  histograms with the same detector model.
- UNFOLD: unfold the measured histogram with the selected method and
  compare it with the truth (residuals, pulls, chi2).

``Stage.BOTH`` runs everything in one go, ``Stage.TRAIN`` stops after
writing the response and ``Stage.TEST`` reads a previously written
response from the store.

All state of one invocation lives in a :class:`RunContext`, created fresh
by :func:`run_unfold_test`.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np

from toyunfold.core.exceptions import ConfigurationError, GenerationError, PersistenceError, UnknownMethodError
from toyunfold.core.histogram import Histogram1D
from toyunfold.core.response import UnfoldResponse
from toyunfold.generation.pdfs import PDF_NAMES, generate, pdf_histogram
from toyunfold.generation.smearing import DetectorModel
from toyunfold.io.artifacts import FileObjectStore, ObjectStore, read_response, write_response
from toyunfold.solvers.base import UnfoldMethod, UnfoldResult
from toyunfold.solvers.factory import create_unfolder
from toyunfold.validation.metrics import (
    chi2_probability,
    comparison_table,
    format_comparison_table,
    pull_histogram,
    residual_histogram,
    unfolding_chi2,
)

logger = logging.getLogger(__name__)

DEFAULT_RESPONSE_PATH = Path("unfold_test_response.json")


class Stage(Enum):
    BOTH = 0
    TRAIN = 1
    TEST = 2


class RunStatus(Enum):
    COMPLETED = "completed"
    TRAINED = "trained"
    GENERATION_FAILED = "generation_failed"
    RESPONSE_UNAVAILABLE = "response_unavailable"
    UNKNOWN_METHOD = "unknown_method"
    BINNING_MISMATCH = "binning_mismatch"


@dataclass
class UnfoldTestConfig:
    """
    Parameters of one unfolding test run.

    Attributes
    ----------
    method : int
        Unfolding method code: 1 Bayes, 2 SVD, 3 bin-by-bin, 4 invert.
    stage : int
        0 train and test, 1 train only (writes the response), 2 test only
        (reads the response).
    train_pdf, test_pdf : int
        PDF selector codes (see ``toyunfold.generation.pdfs``).
    n_bins : int
        Number of bins of every histogram.
    n_test, n_train : int
        Number of generated test and training events.
    low, high : float
        Histogram and generation range.
    regparm : int, optional
        Bayes iterations or SVD kterm; method default when None.
    n_toys : int
        Toys used for the SVD covariance.
    """

    method: int = 1
    stage: int = 0
    train_pdf: int = 2
    test_pdf: int = 5
    n_bins: int = 40
    n_test: int = 10000
    n_train: int = 100000
    low: float = -12.5
    high: float = 10.0
    regparm: Optional[int] = None
    n_toys: int = 1000
    train_mean: float = 0.0
    train_width: float = 2.5
    test_mean: float = 1.0
    test_width: float = 2.0
    response_path: Path = DEFAULT_RESPONSE_PATH
    plot_path: Optional[Path] = None
    seed: Optional[int] = None

    def validate(self) -> List[str]:
        """Return every violated precondition (empty when the run can start)."""
        problems: List[str] = []
        if self.low >= self.high:
            problems.append(f"xlo ({self.low}) >= xhi ({self.high})")
        if self.n_test <= 0:
            problems.append(f"ntest ({self.n_test}) <= 0")
        if self.n_train <= 0:
            problems.append(f"ntrain ({self.n_train}) <= 0")
        if self.n_bins <= 0:
            problems.append(f"nb ({self.n_bins}) <= 0")
        if self.train_pdf < 1:
            problems.append(f"ftrain ({self.train_pdf}) < 1")
        if self.test_pdf < 1:
            problems.append(f"ftest ({self.test_pdf}) < 1")
        if self.stage not in {s.value for s in Stage}:
            problems.append(f"stage ({self.stage}) is not one of 0, 1, 2")
        if self.n_toys < 0:
            problems.append(f"ntoys ({self.n_toys}) < 0")
        if self.unfold_method is UnfoldMethod.BAYES and self.regparm is not None and self.regparm < 1:
            problems.append(f"regparm ({self.regparm}) < 1 Bayesian iterations")
        return problems

    def check(self) -> None:
        problems = self.validate()
        if problems:
            raise ConfigurationError(problems)

    @property
    def unfold_method(self) -> Optional[UnfoldMethod]:
        try:
            return UnfoldMethod.from_code(self.method)
        except UnknownMethodError:
            return None

    @property
    def effective_regparm(self) -> int:
        if self.regparm is not None:
            return self.regparm
        method = self.unfold_method
        return method.default_regparm if method is not None else 0

    @property
    def no_smear(self) -> bool:
        method = self.unfold_method
        return method is not None and method.requires_no_smear

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["response_path"] = str(self.response_path)
        data["plot_path"] = str(self.plot_path) if self.plot_path is not None else None
        return data


@dataclass
class RunContext:
    """State owned by a single unfolding test run."""

    config: UnfoldTestConfig
    rng: np.random.Generator
    detector: DetectorModel
    store: ObjectStore
    response: Optional[UnfoldResponse] = None
    histograms: Dict[str, Histogram1D] = field(default_factory=dict)
    result: Optional[UnfoldResult] = None
    chi2: Optional[float] = None
    status: Optional[RunStatus] = None

    @classmethod
    def create(
        cls,
        config: UnfoldTestConfig,
        store: Optional[ObjectStore] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> "RunContext":
        return cls(
            config=config,
            rng=rng if rng is not None else np.random.default_rng(config.seed),
            detector=DetectorModel(config.n_bins, config.low, config.high, no_smear=config.no_smear),
            store=store if store is not None else FileObjectStore(config.response_path, config.to_dict()),
        )

    def hist(self, name: str) -> Histogram1D:
        return self.histograms[name]


def _banner(name: str) -> str:
    return f" {name} ".center(79, "=")


def train(ctx: RunContext) -> UnfoldResponse:
    """Fill a fresh response from ``n_train`` smeared events of the training PDF."""
    cfg = ctx.config
    x_true = generate(cfg.train_pdf, cfg.n_train, cfg.low, cfg.high, ctx.rng, cfg.train_mean, cfg.train_width)
    ctx.histograms["train_pdf"] = pdf_histogram(x_true, "trainpdf", "Training PDF", cfg.n_bins, cfg.low, cfg.high)

    response = UnfoldResponse.setup(cfg.n_bins, cfg.low, cfg.high, name="response", title="test 1-D Unfolding")
    x_meas, accepted = ctx.detector.smear_sample(x_true, ctx.rng)
    response.fill_many(x_meas[accepted], x_true[accepted])
    response.miss_many(x_true[~accepted])

    ctx.histograms["train_truth"] = response.truth.clone("traintrue", "Training Truth")
    ctx.histograms["train_measured"] = response.measured.clone("train", "Training Measured")
    ctx.response = response
    logger.info(
        "Trained response on %d %s events: %d accepted, %d missed",
        cfg.n_train, PDF_NAMES[cfg.train_pdf], int(accepted.sum()), int((~accepted).sum()),
    )
    return response


def test(ctx: RunContext) -> None:
    """Fill test truth and measured histograms; the response is not touched."""
    cfg = ctx.config
    x_true = generate(cfg.test_pdf, cfg.n_test, cfg.low, cfg.high, ctx.rng, cfg.test_mean, cfg.test_width)
    ctx.histograms["test_pdf"] = pdf_histogram(x_true, "pdf", "PDF", cfg.n_bins, cfg.low, cfg.high)

    truth = Histogram1D("true", "Test Truth", cfg.n_bins, cfg.low, cfg.high)
    measured = Histogram1D("meas", "Test Measured", cfg.n_bins, cfg.low, cfg.high)
    truth.fill_many(x_true)
    x_meas, accepted = ctx.detector.smear_sample(x_true, ctx.rng)
    measured.fill_many(x_meas[accepted])

    ctx.histograms["truth"] = truth
    ctx.histograms["measured"] = measured
    logger.info(
        "Generated %d %s test events: %d measured in range",
        cfg.n_test, PDF_NAMES[cfg.test_pdf], int(measured.sum()),
    )


def unfold(ctx: RunContext) -> UnfoldResult:
    """Unfold the test measurement and fill residual and pull histograms."""
    cfg = ctx.config
    if ctx.response is None:
        raise RuntimeError("unfold() called before a response was trained or loaded")
    unfolder = create_unfolder(cfg.method, regparm=cfg.regparm, n_toys=cfg.n_toys, rng=ctx.rng)
    truth = ctx.hist("truth")
    measured = ctx.hist("measured")

    result = unfolder.unfold(ctx.response, measured)
    residuals = residual_histogram(result.reco, truth)
    ctx.histograms["reco"] = result.reco
    ctx.histograms["residuals"] = residuals
    ctx.histograms["pulls"] = pull_histogram(residuals)
    ctx.result = result

    ctx.chi2 = unfolding_chi2(result.reco, result.covariance, truth)
    logger.info(
        "%s unfolding (regparm %d): chi2/ndf = %.2f/%d, P = %.3g",
        result.method.label, result.regparm, ctx.chi2, truth.n_bins, chi2_probability(ctx.chi2, truth.n_bins),
    )
    logger.debug("\n%s", format_comparison_table(comparison_table(truth, measured, result.reco)))
    return result


def run_unfold_test(
    config: UnfoldTestConfig,
    store: Optional[ObjectStore] = None,
    rng: Optional[np.random.Generator] = None,
) -> RunContext:
    """
    Run the stages selected by ``config.stage``.

    Raises
    ------
    ConfigurationError
        When a numeric precondition is violated; nothing is run.

    Returns
    -------
    RunContext
        Histograms, response and result of the run. ``status`` tells whether
        it completed or at which point it stopped.
    """
    config.check()
    ctx = RunContext.create(config, store=store, rng=rng)
    stage = Stage(config.stage)

    logger.info(
        "toyunfold (method=%s, stage=%d, ftrain=%d, ftest=%d, nb=%d, ntest=%d, ntrain=%d, "
        "xlo=%g, xhi=%g, regparm=%d, ntoys=%d)",
        config.method, config.stage, config.train_pdf, config.test_pdf, config.n_bins,
        config.n_test, config.n_train, config.low, config.high, config.effective_regparm, config.n_toys,
    )

    try:
        _run_stages(ctx, stage)
    finally:
        if config.plot_path is not None:
            from toyunfold.plots.unfolding import write_diagnostic_plots

            write_diagnostic_plots(ctx, config.plot_path)
    return ctx


def _binning_problem(response: UnfoldResponse, config: UnfoldTestConfig) -> Optional[str]:
    expected = Histogram1D("expected", "", config.n_bins, config.low, config.high)
    for axis in (response.measured, response.truth):
        if not axis.same_binning(expected):
            return (
                f"{axis.title.lower()} axis has {axis.n_bins} bins on [{axis.low}, {axis.high}), "
                f"run uses {config.n_bins} bins on [{config.low}, {config.high})"
            )
    return None


def _run_stages(ctx: RunContext, stage: Stage) -> None:
    if stage is not Stage.TEST:
        logger.info(_banner("TRAIN"))
        try:
            train(ctx)
        except GenerationError as exc:
            logger.error("Training failed: %s", exc)
            ctx.status = RunStatus.GENERATION_FAILED
            return
        write_response(ctx.store, ctx.response)
        if stage is Stage.TRAIN:
            ctx.status = RunStatus.TRAINED
            return

    if ctx.response is None:
        try:
            ctx.response = read_response(ctx.store)
        except PersistenceError as exc:
            logger.error("%s", exc)
            ctx.status = RunStatus.RESPONSE_UNAVAILABLE
            return
        problem = _binning_problem(ctx.response, ctx.config)
        if problem:
            logger.error("Stored response %r does not match this run: %s", ctx.response.name, problem)
            ctx.status = RunStatus.BINNING_MISMATCH
            return

    logger.info(_banner("TEST"))
    try:
        test(ctx)
    except GenerationError as exc:
        logger.error("Test generation failed: %s", exc)
        ctx.status = RunStatus.GENERATION_FAILED
        return

    logger.info(_banner("UNFOLD"))
    try:
        unfold(ctx)
    except UnknownMethodError as exc:
        logger.error("%s", exc)
        ctx.status = RunStatus.UNKNOWN_METHOD
        return
    ctx.status = RunStatus.COMPLETED
