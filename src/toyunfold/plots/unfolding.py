"""
Diagnostic plots for the toy unfolding test.

Writes a multi-page PDF:

- training PDF, truth and measured spectra
- test truth, measurement and unfolded result, with residuals and pulls
- the trained response matrix
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

import numpy as np

try:
    import matplotlib.pyplot as plt
    from matplotlib.backends.backend_pdf import PdfPages
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False

from toyunfold.core.histogram import Histogram1D
from toyunfold.validation.metrics import MAX_PULL

if TYPE_CHECKING:
    from toyunfold.workflows.unfold_test import RunContext

logger = logging.getLogger(__name__)


# =============================================================================
# Plot Style Configuration
# =============================================================================

PLOT_STYLE = {
    "figure.figsize": (8.5, 11),
    "font.size": 10,
    "axes.labelsize": 11,
    "axes.titlesize": 11,
    "legend.fontsize": 9,
    "lines.linewidth": 1.2,
    "axes.grid": True,
    "grid.alpha": 0.3,
    "grid.linestyle": "--",
}


def apply_plot_style():
    if HAS_MATPLOTLIB:
        plt.rcParams.update(PLOT_STYLE)


COLORS = {
    "pdf": "#2ca02c",       # Green
    "truth": "#1f77b4",     # Blue
    "measured": "#ff7f0e",  # Orange
    "reco": "#d62728",      # Red
    "zero": "#7f7f7f",      # Grey
}


# =============================================================================
# Histogram drawing
# =============================================================================

def draw_histogram(
    ax: Any,
    hist: Histogram1D,
    color: str,
    label: Optional[str] = None,
    errors: bool = False,
    line: bool = True,
) -> None:
    """Draw a histogram as a step line, as markers with error bars, or both."""
    if line:
        values = np.append(hist.values, hist.values[-1])
        ax.step(hist.edges, values, where="post", color=color, label=label if not errors else None)
    if errors:
        ax.errorbar(
            hist.centers, hist.values, yerr=hist.errors,
            fmt="o", markersize=2.5, color=color, label=label,
        )


def _zero_line(ax: Any, hist: Histogram1D) -> None:
    ax.axhline(0.0, color=COLORS["zero"], linewidth=0.8)
    ax.set_xlim(hist.low, hist.high)


def plot_training(ctx: "RunContext") -> Any:
    """Training PDF (scaled to events per bin) with training truth and measurement."""
    fig, ax = plt.subplots()
    train_pdf = ctx.histograms["train_pdf"]
    draw_histogram(ax, train_pdf, COLORS["pdf"], label="training PDF")
    draw_histogram(ax, ctx.histograms["train_truth"], COLORS["truth"], label="training truth")
    draw_histogram(ax, ctx.histograms["train_measured"], COLORS["measured"], label="training measured")
    ax.set_xlim(train_pdf.low, train_pdf.high)
    ax.set_ylim(bottom=0.0)
    ax.set_xlabel("x")
    ax.set_ylabel("events / bin")
    ax.set_title("Training")
    ax.legend(loc="best")
    return fig


def plot_unfolding(ctx: "RunContext") -> Any:
    """Test spectra and unfolded result over residual and pull panels."""
    fig, axes = plt.subplots(
        4, 1, sharex=True, gridspec_kw={"height_ratios": [3, 1.2, 1.2, 1.2]},
    )
    spectra, resid_ax, pull_ax, err_ax = axes
    truth = ctx.histograms["truth"]
    reco = ctx.histograms["reco"]

    if "test_pdf" in ctx.histograms:
        draw_histogram(spectra, ctx.histograms["test_pdf"], COLORS["pdf"], label="test PDF")
    draw_histogram(spectra, truth, COLORS["truth"], label="truth")
    draw_histogram(spectra, ctx.histograms["measured"], COLORS["measured"], label="measured")
    draw_histogram(spectra, reco, COLORS["reco"], label="unfolded", errors=True, line=False)
    spectra.set_ylim(bottom=0.0)
    spectra.set_ylabel("events / bin")
    title = "Unfolding"
    if ctx.result is not None:
        title = f"{ctx.result.method.label} unfolding (regparm {ctx.result.regparm})"
    if ctx.chi2 is not None:
        title += f", chi2/ndf = {ctx.chi2:.1f}/{truth.n_bins}"
    spectra.set_title(title)
    spectra.legend(loc="best")

    residuals = ctx.histograms["residuals"]
    draw_histogram(resid_ax, residuals, COLORS["reco"], errors=True, line=False)
    _zero_line(resid_ax, residuals)
    resid_ax.set_ylabel("reco - truth")

    pulls = ctx.histograms["pulls"]
    pull_ax.bar(pulls.centers, pulls.values, width=pulls.bin_width, color=COLORS["reco"], alpha=0.6)
    _zero_line(pull_ax, pulls)
    pull_ax.set_ylim(-MAX_PULL, MAX_PULL)
    pull_ax.set_ylabel("pull")

    err_ax.step(reco.centers, reco.errors, where="mid", color=COLORS["reco"], label="unfolded")
    err_ax.step(truth.centers, truth.errors, where="mid", color=COLORS["truth"], label="sqrt(truth)")
    _zero_line(err_ax, reco)
    err_ax.set_ylabel("error")
    err_ax.set_xlabel("x")
    err_ax.legend(loc="best")
    return fig


def plot_response(ctx: "RunContext") -> Any:
    """Trained response matrix, measured bins on the y axis."""
    response = ctx.response
    fig, ax = plt.subplots()
    image = ax.imshow(
        response.matrix,
        origin="lower",
        aspect="auto",
        extent=(response.truth.low, response.truth.high, response.measured.low, response.measured.high),
        cmap="viridis",
    )
    fig.colorbar(image, ax=ax, label="events")
    ax.grid(False)
    ax.set_xlabel("true x")
    ax.set_ylabel("measured x")
    ax.set_title(response.title or response.name)
    return fig


def write_diagnostic_plots(ctx: "RunContext", path: Union[str, Path]) -> Optional[Path]:
    """
    Write every page the run has data for to a PDF file.

    Returns the path written, or None when the run produced nothing to plot.
    """
    if not HAS_MATPLOTLIB:
        raise ImportError("matplotlib required for plotting")

    pages = []
    if "train_pdf" in ctx.histograms:
        pages.append(plot_training)
    if "reco" in ctx.histograms:
        pages.append(plot_unfolding)
    if ctx.response is not None:
        pages.append(plot_response)
    if not pages:
        logger.info("Nothing to plot; %s not written", path)
        return None

    apply_plot_style()
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with PdfPages(path) as pdf:
        for page in pages:
            fig = page(ctx)
            fig.tight_layout()
            pdf.savefig(fig)
            plt.close(fig)
    logger.info("Wrote %d plot pages to %s", len(pages), path)
    return path
