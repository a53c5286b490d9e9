import itertools

import numpy as np
import pytest
from _common import dense_from_pixels, dense_from_records, dense_from_selection

from hicmatrix import ContactMatrix
from hicmatrix.core import Selector
from hicmatrix.core._rangequery import (
    DISJOINT,
    EQUAL,
    NESTED,
    OVERLAPPING,
    _comes_before,
    _contains,
    classify_windows,
    mirror,
    normalize_windows,
    overlap_breakpoints,
)
from hicmatrix.io import MatrixWriter, ResGroupReader


def make_selector(path, resolution, chunksize=10_000_000):
    reader = ResGroupReader(path, resolution)
    return Selector(
        reader, reader.read_bin1_offsets(), reader.read_weights(), chunksize
    )


def full_dense(path, resolution):
    reader = ResGroupReader(path, resolution)
    return dense_from_pixels(reader.read_pixels(), reader.n_bins)


def all_windows(n):
    return [(a, b) for a in range(n) for b in range(a + 1, n + 1)]


def test_comes_before():
    assert _comes_before(0, 5, 3, 6)
    assert _comes_before(0, 5, 0, 3)
    assert _comes_before(0, 5, 0, 5)
    assert not _comes_before(0, 3, 0, 5)
    assert not _comes_before(3, 6, 0, 5)


def test_contains():
    assert _contains(0, 5, 1, 3)
    assert _contains(0, 5, 0, 5)
    assert not _contains(0, 5, 3, 6)


@pytest.mark.parametrize("windows,kind,breaks", [
    ((0, 5, 0, 5), EQUAL, (0, 5)),
    ((0, 3, 5, 8), DISJOINT, (5, 5)),
    ((0, 8, 2, 5), NESTED, (2, 5)),
    ((0, 8, 0, 5), NESTED, (0, 5)),
    ((0, 5, 3, 8), OVERLAPPING, (3, 5)),
    ((0, 5, 5, 8), OVERLAPPING, (5, 5)),
    ((0, 5, 3, 5), NESTED, (3, 5)),
])
def test_classify_windows(windows, kind, breaks):
    assert classify_windows(*windows) == kind
    assert overlap_breakpoints(kind, *windows) == breaks


def test_classification_is_total():
    for (i0, i1), (j0, j1) in itertools.product(all_windows(6), repeat=2):
        a0, a1, b0, b1, swapped = normalize_windows(i0, i1, j0, j1)
        assert swapped == (not _comes_before(i0, i1, j0, j1))
        kind = classify_windows(a0, a1, b0, b1)
        assert kind in (EQUAL, DISJOINT, NESTED, OVERLAPPING)


def test_unordered_windows_rejected():
    with pytest.raises(RuntimeError):
        classify_windows(3, 8, 0, 5)


def test_mirror():
    dct = {
        "bin1_id": np.array([0, 0, 1]),
        "bin2_id": np.array([0, 2, 2]),
        "count": np.array([5, 1, 2]),
    }
    out = mirror(dct)
    entries = set(zip(out["bin1_id"], out["bin2_id"], out["count"]))
    assert entries == {(0, 0, 5), (0, 2, 1), (1, 2, 2), (2, 0, 1), (2, 1, 2)}
    assert len(out["count"]) == 5


def test_stored_block_is_upper_triangle(small_matrix):
    sel = make_selector(small_matrix, 50)
    block = sel.fetch_stored_block(0, 6, 0, 6)
    assert np.all(block["bin1_id"] <= block["bin2_id"])
    assert len(block["count"]) == ResGroupReader(small_matrix, 50).n_pixels
    empty = sel.fetch_stored_block(3, 3, 0, 6)
    assert len(empty["bin1_id"]) == 0


def test_triangular_roundtrip(small_matrix, small_tigs, small_records):
    sel = make_selector(small_matrix, 50)
    full = mirror(sel.fetch_stored_block(0, 6, 0, 6))
    out = dense_from_selection(full, 0, 6, 0, 6)
    assert np.array_equal(out, dense_from_records(small_tigs, small_records, 50))


def test_symmetric_windows(small_matrix):
    grp = ContactMatrix(small_matrix)[50].init_selector()
    for i0, i1 in all_windows(6):
        arr = grp.submatrix(i0, i1, i0, i1, balance=False)
        assert arr.shape == (i1 - i0, i1 - i0)
        assert np.array_equal(arr, arr.T)
        dct = grp.select(i0, i1, i0, i1)
        cells = list(zip(dct["bin1_id"], dct["bin2_id"]))
        assert len(cells) == len(set(cells))


def test_example_query(example_matrix):
    sel = make_selector(example_matrix, 500)
    dct = sel.select(0, 5, 0, 5)
    entries = set(zip(dct["bin1_id"], dct["bin2_id"], dct["count"]))
    assert entries == {(0, 0, 2), (1, 2, 1), (2, 1, 1)}

    dct = sel.select(0, 2, 2, 5)
    assert list(zip(dct["bin1_id"], dct["bin2_id"], dct["count"])) == [(1, 2, 1)]

    dct = sel.select(2, 5, 0, 2)
    assert list(zip(dct["bin1_id"], dct["bin2_id"], dct["count"])) == [(2, 1, 1)]


@pytest.mark.parametrize("chunksize", [10_000_000, 3])
def test_all_windows_match_dense(small_matrix, chunksize):
    sel = make_selector(small_matrix, 50, chunksize)
    dense = full_dense(small_matrix, 50)
    n = dense.shape[0]
    assert n == 6

    for (i0, i1), (j0, j1) in itertools.product(all_windows(n), repeat=2):
        dct = sel.select(i0, i1, j0, j1)
        rows, cols = dct["bin1_id"], dct["bin2_id"]
        assert np.all((rows >= i0) & (rows < i1))
        assert np.all((cols >= j0) & (cols < j1))

        out = dense_from_selection(dct, i0, i1, j0, j1)
        expected = dense[i0:i1, j0:j1]
        assert np.array_equal(out, expected), (i0, i1, j0, j1)
        # every nonzero cell exactly once
        assert len(rows) == np.count_nonzero(expected)


def test_transposed_queries_agree(random_matrix):
    sel = make_selector(random_matrix, 50)
    rng = np.random.RandomState(11)
    n = sel.n_bins
    for _ in range(100):
        i0, i1 = sorted(rng.choice(n + 1, 2, replace=False))
        j0, j1 = sorted(rng.choice(n + 1, 2, replace=False))
        a = dense_from_selection(sel.select(i0, i1, j0, j1), i0, i1, j0, j1)
        b = dense_from_selection(sel.select(j0, j1, i0, i1), j0, j1, i0, i1)
        assert np.array_equal(a, b.T)


def test_balanced_selection(random_matrix):
    n_bins = ResGroupReader(random_matrix, 50).n_bins
    rng = np.random.RandomState(5)
    weights = rng.uniform(0.5, 2.0, n_bins)
    weights[[3, 17]] = np.nan
    MatrixWriter(random_matrix, "a").write_weights(50, weights)

    sel = make_selector(random_matrix, 50)
    dense = full_dense(random_matrix, 50)
    balanced = dense * weights[:, None] * weights[None, :]
    for (i0, i1, j0, j1) in [(0, 49, 0, 49), (10, 30, 0, 15), (40, 49, 5, 45)]:
        dct = sel.select(i0, i1, j0, j1, balance=True)
        out = dense_from_selection(dct, i0, i1, j0, j1, field="balanced")
        expected = np.where(
            dense[i0:i1, j0:j1] != 0, balanced[i0:i1, j0:j1], 0
        )
        np.testing.assert_allclose(out, expected, equal_nan=True)


@pytest.mark.parametrize("chunksize", [10_000_000, 3])
def test_all_windows_match_dense_balanced(small_matrix, chunksize):
    weights = np.array([0.5, 2.0, np.nan, 1.5, 0.25, 1.0])
    MatrixWriter(small_matrix, "a").write_weights(50, weights)
    sel = make_selector(small_matrix, 50, chunksize)
    dense = full_dense(small_matrix, 50)
    balanced = np.where(
        dense != 0, dense * weights[:, None] * weights[None, :], 0
    )

    for (i0, i1), (j0, j1) in itertools.product(all_windows(6), repeat=2):
        dct = sel.select(i0, i1, j0, j1, balance=True)
        assert len(dct["balanced"]) == np.count_nonzero(dense[i0:i1, j0:j1])
        out = dense_from_selection(dct, i0, i1, j0, j1, field="balanced")
        np.testing.assert_allclose(
            out, balanced[i0:i1, j0:j1], equal_nan=True,
            err_msg=str((i0, i1, j0, j1)),
        )


def test_balanced_selection_requires_weights(example_matrix):
    sel = make_selector(example_matrix, 500)
    with pytest.raises(ValueError):
        sel.select(0, 5, 0, 5, balance=True)
