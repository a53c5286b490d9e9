import numpy as np
import pandas as pd
import pytest
from _common import dense_from_pixels

import hicmatrix
from hicmatrix import ContactMatrix
from hicmatrix.errors import MatrixIndexError, ResolutionError, SelectorUninitError
from hicmatrix.io import MatrixWriter


def test_contact_matrix_metadata(example_matrix):
    clr = ContactMatrix(example_matrix)
    assert clr.resolutions == [500]
    assert 500 in clr
    assert 1000 not in clr
    assert clr.n_tigs == 2
    assert clr.tig_names == ["c0", "c1"]
    assert clr.tig_lengths.tolist() == [1000, 1500]
    assert clr.tig_id("c1") == 1
    with pytest.raises(KeyError):
        clr.tig_id("c2")
    assert clr.info["format"] == "HDF5::HICMATRIX"

    with pytest.raises(ResolutionError):
        clr.res_group(1000)

    grp = clr[500]
    assert grp.n_bins == 5
    assert grp.n_pixels == 2
    assert grp.bin_coords().tolist() == [
        [0, 500], [500, 1000], [0, 500], [500, 1000], [1000, 1500]
    ]
    assert grp.bin_chrom_ids().tolist() == [0, 0, 1, 1, 1]
    assert grp.chrom_offsets().tolist() == [0, 2, 5]
    assert grp.weights() is None
    assert grp.trans_max().tolist() == [0, 0, 0, 0, 0]
    assert grp.info()["nbins"] == 5


def test_selector_lifecycle(example_matrix):
    grp = ContactMatrix(example_matrix)[500]
    assert not grp.is_query_ready
    with pytest.raises(SelectorUninitError):
        grp.select(0, 5, 0, 5)

    assert grp.init_selector() is grp
    assert grp.is_query_ready
    dct = grp.select(0, 5, 0, 5)
    assert len(dct["count"]) == 3

    grp.drop_selector()
    assert not grp.is_query_ready
    with pytest.raises(SelectorUninitError):
        grp.submatrix(0, 5, 0, 5, balance=False)


def test_init_selectors(example_matrix):
    clr = ContactMatrix(example_matrix)
    clr.init_selectors()
    assert all(clr[res].is_query_ready for res in clr.resolutions)


@pytest.mark.parametrize("window", [
    (0, 6, 0, 5),
    (-1, 3, 0, 5),
    (3, 3, 0, 5),
    (4, 2, 0, 5),
    (0, 5, 5, 5),
])
def test_invalid_windows(example_matrix, window):
    grp = ContactMatrix(example_matrix)[500].init_selector()
    with pytest.raises(MatrixIndexError):
        grp.select(*window)


def test_submatrix(example_matrix):
    grp = ContactMatrix(example_matrix)[500].init_selector()
    arr = grp.submatrix(0, 5, 0, 5, balance=False)
    expected = np.zeros((5, 5))
    expected[0, 0] = 2
    expected[1, 2] = expected[2, 1] = 1
    assert np.array_equal(arr, expected)

    mat = grp.submatrix(1, 3, 0, 5, balance=False, sparse=True)
    assert mat.shape == (2, 5)
    assert np.array_equal(mat.toarray(), expected[1:3])


def test_pixel_streaming(random_matrix):
    grp = ContactMatrix(random_matrix)[50]
    raw = grp.raw_pixels()
    assert isinstance(raw, pd.DataFrame)
    assert len(raw) == grp.n_pixels

    chunks = grp.pixel_chunks(100)
    assert len(chunks) == -(-grp.n_pixels // 100)
    parts = list(chunks)
    assert len(parts) == len(chunks)
    assert all(len(p["count"]) <= 100 for p in parts)
    assert np.array_equal(
        np.concatenate([p["bin2_id"] for p in parts]), raw["bin2_id"].to_numpy()
    )
    # consumed
    assert list(chunks) == []

    sub = grp.raw_pixels(10, 20)
    assert sub["bin1_id"].tolist() == raw["bin1_id"].iloc[10:20].tolist()

    with pytest.raises(ValueError):
        grp.pixel_chunks(0)
    with pytest.raises(MatrixIndexError):
        grp.raw_pixels(0, grp.n_pixels + 1)
    with pytest.raises(ValueError):
        grp.balanced_pixels()
    with pytest.raises(ValueError):
        grp.pixel_chunks(100, balance=True)


def test_balanced_access(random_matrix):
    clr = ContactMatrix(random_matrix)
    grp = clr[50]
    n = grp.n_bins
    weights = np.linspace(0.5, 1.5, n)
    weights[7] = np.nan
    MatrixWriter(random_matrix, "a").write_weights(50, weights)
    grp.init_selector()

    pixels = grp.balanced_pixels()
    expected = pixels["count"] * weights[pixels["bin1_id"]] * weights[pixels["bin2_id"]]
    np.testing.assert_allclose(pixels["balanced"], expected)

    dense = dense_from_pixels(grp.raw_pixels(), n)
    balanced = dense * weights[:, None] * weights[None, :]
    balanced[~np.isfinite(balanced)] = 0

    assert np.allclose(grp.submatrix(0, n, 0, n), balanced)
    for k in [0, 7, 20, n - 1]:
        assert np.allclose(grp.balanced_row(k), balanced[k])
        assert np.allclose(grp.balanced_column(k), balanced[:, k])

        cols, values = grp.balanced_row_nnz(k)
        assert np.all(np.diff(cols) > 0)
        assert np.all(np.isfinite(values))
        assert np.allclose(values, balanced[k, cols])
        assert set(cols) == set(np.flatnonzero(balanced[k]))

    assert len(grp.balanced_row_nnz(7)[0]) == 0
    with pytest.raises(MatrixIndexError):
        grp.balanced_row(n)
    with pytest.raises(MatrixIndexError):
        grp.balanced_column(-1)


def test_balance_reloads_selector(random_matrix):
    clr = ContactMatrix(random_matrix)
    grp = clr[50].init_selector()
    with pytest.raises(ValueError):
        grp.select(0, 5, 0, 5, balance=True)

    weights, stats = clr.balance(50, strategy="LEN")
    assert stats["strategy"] == "LEN"
    assert np.allclose(weights, 1 / 50)
    dct = grp.select(0, 5, 0, 5, balance=True)
    np.testing.assert_allclose(dct["balanced"], dct["count"] / 2500)


def test_zoom_existing_resolution(random_matrix):
    clr = ContactMatrix(random_matrix)
    with pytest.raises(ValueError):
        clr.zoom(50, 50)
    with pytest.raises(ResolutionError):
        clr.zoom(25, 100)
    grp = clr.zoom(50, 100)
    assert clr.resolutions == [50, 100]
    assert grp.resolution == 100
    assert ContactMatrix(random_matrix).resolutions == [50, 100]


def test_package_exports():
    for name in ["ContactMatrix", "ResolutionGroup", "PairsBuilder",
                 "create_from_pairs", "balance_matrix", "zoom_matrix",
                 "store_trans_max", "MatrixWriter", "MatrixReader"]:
        assert hasattr(hicmatrix, name)
