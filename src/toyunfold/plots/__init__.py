"""toyunfold diagnostic plots."""

from toyunfold.plots.unfolding import (
    COLORS,
    PLOT_STYLE,
    apply_plot_style,
    draw_histogram,
    plot_response,
    plot_training,
    plot_unfolding,
    write_diagnostic_plots,
)

__all__ = [
    "COLORS",
    "PLOT_STYLE",
    "apply_plot_style",
    "draw_histogram",
    "plot_response",
    "plot_training",
    "plot_unfolding",
    "write_diagnostic_plots",
]
