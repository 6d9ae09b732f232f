import numpy as np
import pytest

from toyunfold.core.exceptions import BinningMismatchError
from toyunfold.core.histogram import Histogram1D
from toyunfold.core.response import UnfoldResponse


def test_fill_and_miss_define_efficiency():
    response = UnfoldResponse.setup(4, 0.0, 4.0)
    response.fill(0.5, 0.5)
    response.fill(1.5, 0.5)
    response.miss(0.5)
    response.miss(0.5)
    assert response.truth.values[0] == 4.0
    assert response.matrix[0, 0] == 1.0
    assert response.matrix[1, 0] == 1.0
    assert response.efficiency[0] == pytest.approx(0.5)
    assert response.efficiency[1] == 0.0


def test_measured_outside_range_counts_as_truth_only():
    response = UnfoldResponse.setup(4, 0.0, 4.0)
    response.fill(-3.0, 0.5)
    assert response.truth.values[0] == 1.0
    assert response.measured.underflow == 1.0
    assert response.matrix.sum() == 0.0


def test_fill_many_matches_single_fills():
    rng = np.random.default_rng(7)
    xt = rng.uniform(0.0, 10.0, size=400)
    xm = xt + rng.normal(-0.5, 1.0, size=400)
    single = UnfoldResponse.setup(10, 0.0, 10.0)
    for m, t in zip(xm, xt):
        single.fill(m, t)
    batch = UnfoldResponse.setup(10, 0.0, 10.0)
    batch.fill_many(xm, xt)
    assert np.allclose(single.matrix, batch.matrix)
    assert np.allclose(single.measured.values, batch.measured.values)
    assert np.allclose(single.truth.values, batch.truth.values)


def test_probability_columns_sum_to_efficiency(smeared_response):
    prob = smeared_response.probability_matrix
    assert prob.shape == (smeared_response.n_measured, smeared_response.n_true)
    assert np.allclose(prob.sum(axis=0), smeared_response.efficiency)
    assert np.all(smeared_response.efficiency <= 1.0 + 1e-12)


def test_fake_fraction():
    response = UnfoldResponse.setup(2, 0.0, 2.0)
    response.fill(0.5, 0.5)
    response.fake(0.5)
    assert response.fake_fraction[0] == pytest.approx(0.5)
    assert response.fake_fraction[1] == 0.0


def test_check_measured_rejects_other_binning():
    response = UnfoldResponse.setup(4, 0.0, 4.0)
    with pytest.raises(BinningMismatchError):
        response.check_measured(Histogram1D("m", "", 5, 0.0, 4.0))


def test_dict_roundtrip_preserves_matrix(smeared_response):
    restored = UnfoldResponse.from_dict(smeared_response.to_dict())
    assert np.allclose(restored.matrix, smeared_response.matrix)
    assert np.allclose(restored.truth.values, smeared_response.truth.values)
    assert restored.name == smeared_response.name
