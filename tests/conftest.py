"""Shared fixtures: a small trained response and seeded random generators."""

from __future__ import annotations

import numpy as np
import pytest

from toyunfold.core.response import UnfoldResponse
from toyunfold.generation.pdfs import generate
from toyunfold.generation.smearing import DetectorModel

N_BINS = 10
LOW, HIGH = 0.0, 10.0


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


def train_response(rng, no_smear=False, pdf_code=2, n_events=20000):
    detector = DetectorModel(N_BINS, LOW, HIGH, no_smear=no_smear)
    x_true = generate(pdf_code, n_events, LOW, HIGH, rng, mean=5.0, width=2.0)
    x_meas, accepted = detector.smear_sample(x_true, rng)
    response = UnfoldResponse.setup(N_BINS, LOW, HIGH)
    response.fill_many(x_meas[accepted], x_true[accepted])
    response.miss_many(x_true[~accepted])
    return response


@pytest.fixture
def smeared_response(rng):
    return train_response(rng)


@pytest.fixture
def efficiency_only_response(rng):
    return train_response(rng, no_smear=True, pdf_code=1)
