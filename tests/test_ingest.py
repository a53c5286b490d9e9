from io import StringIO

import numpy as np
import pandas as pd
import pytest
from _common import dense_from_pixels, dense_from_records, pairs_text, random_pairs

from hicmatrix.create import PairsBuilder, aggregate_pixels, as_tig_lengths


def test_as_tig_lengths():
    lengths = as_tig_lengths([("a", 10), ("b", 5)])
    assert list(lengths.index) == ["a", "b"]
    assert lengths.tolist() == [10, 5]
    assert as_tig_lengths(pd.Series([3], index=["x"])).dtype == np.int64


def test_aggregate_pixels():
    chunks = [
        pd.DataFrame({"bin1_id": [0, 1, 0], "bin2_id": [3, 1, 3]}),
        pd.DataFrame({"bin1_id": [], "bin2_id": []}),
        pd.DataFrame({"bin1_id": [0, 0], "bin2_id": [2, 3]}),
    ]
    pixels = aggregate_pixels(chunks)
    assert pixels["bin1_id"].tolist() == [0, 0, 1]
    assert pixels["bin2_id"].tolist() == [2, 3, 1]
    assert pixels["count"].tolist() == [1, 3, 1]


def test_aggregate_weighted_pixels():
    chunks = [
        pd.DataFrame({"bin1_id": [0, 1], "bin2_id": [0, 1], "count": [5, 2]}),
        pd.DataFrame({"bin1_id": [1], "bin2_id": [1], "count": [4]}),
    ]
    pixels = aggregate_pixels(chunks)
    assert pixels["count"].tolist() == [5, 6]


def test_aggregate_nothing():
    pixels = aggregate_pixels([])
    assert len(pixels) == 0
    assert list(pixels.columns) == ["bin1_id", "bin2_id", "count"]


def test_example_binning(tig_lengths, example_records):
    builder = PairsBuilder(tig_lengths, 500, StringIO(pairs_text(example_records)))
    assert builder.n_bins == 5
    assert builder.chrom_offset.tolist() == [0, 2, 5]
    pixels = builder.build()
    assert pixels["bin1_id"].tolist() == [0, 1]
    assert pixels["bin2_id"].tolist() == [0, 2]
    assert pixels["count"].tolist() == [2, 1]
    assert builder.n_records == 3
    assert builder.n_skipped == 0


def test_pairs_orientation(tig_lengths):
    # the later bin listed first still lands in the upper triangle
    text = pairs_text([("c1", 1400, "c0", 10)])
    pixels = PairsBuilder(tig_lengths, 500, StringIO(text)).build()
    assert pixels["bin1_id"].tolist() == [0]
    assert pixels["bin2_id"].tolist() == [4]


def test_positions_clamped(tig_lengths):
    records = [
        ("c0", 5000, "c0", 1000),
        ("c1", -20, "c1", 1500),
    ]
    pixels = PairsBuilder(tig_lengths, 500, StringIO(pairs_text(records))).build()
    assert pixels["bin1_id"].tolist() == [1, 2]
    assert pixels["bin2_id"].tolist() == [1, 4]


def test_huge_positions_clamped_to_last_bin(tig_lengths):
    text = (
        "r1\tc0\t99999999999999999999\tc1\t10\t+\t-\n"
        "r2\tc1\t18446744073709551615\tc1\t1e3\t+\t-\n"
    )
    builder = PairsBuilder(tig_lengths, 500, StringIO(text))
    pixels = builder.build()
    assert builder.n_skipped == 0
    assert pixels["bin1_id"].tolist() == [1, 4]
    assert pixels["bin2_id"].tolist() == [2, 4]


def test_fractional_positions_skipped(tig_lengths):
    text = (
        "r1\tc0\t12.7\tc0\t20\t+\t-\n"
        "r2\tc0\t10\tc1\t1e-3\t+\t-\n"
        "r3\tc0\tinf\tc1\t20\t+\t-\n"
        + pairs_text([("c0", 10, "c1", 20)])
    )
    builder = PairsBuilder(tig_lengths, 500, StringIO(text))
    pixels = builder.build()
    assert builder.n_records == 4
    assert builder.n_skipped == 3
    assert pixels["bin1_id"].tolist() == [0]
    assert pixels["bin2_id"].tolist() == [2]


def test_skipped_records(tig_lengths):
    text = (
        "## pairs format v1.0\n"
        + pairs_text([("c0", 10, "c0", 20)])
        + "r1\tc0\t10\tnope\t20\t+\t-\n"
        + "r2\tc0\tten\tc1\t20\t+\t-\n"
        + pairs_text([("c1", 600, "c1", 700)])
    )
    builder = PairsBuilder(tig_lengths, 500, StringIO(text))
    pixels = builder.build()
    assert builder.n_records == 4
    assert builder.n_skipped == 2
    assert pixels["count"].sum() == 2


def test_empty_contig_skipped():
    lengths = pd.Series([0, 1000], index=["empty", "full"])
    text = pairs_text([("empty", 0, "full", 10), ("full", 10, "full", 20)])
    builder = PairsBuilder(lengths, 500, StringIO(text))
    pixels = builder.build()
    assert builder.n_bins == 2
    assert builder.n_skipped == 1
    assert pixels["bin1_id"].tolist() == [0]


def test_chunked_reading_matches(tig_lengths):
    records = random_pairs(tig_lengths, 500, seed=3)
    text = pairs_text(records)
    whole = PairsBuilder(tig_lengths, 100, StringIO(text)).build()
    chunked = PairsBuilder(tig_lengths, 100, StringIO(text), chunksize=37).build()
    pd.testing.assert_frame_equal(whole, chunked)

    n_bins = 25
    arr = dense_from_pixels(whole, n_bins)
    expected = dense_from_records(tig_lengths, records, 100)
    assert np.array_equal(arr, expected)
    assert whole["count"].sum() == len(records)


def test_bad_resolution(tig_lengths):
    with pytest.raises(ValueError):
        PairsBuilder(tig_lengths, 0, StringIO(""))
    with pytest.raises(ValueError):
        PairsBuilder(tig_lengths, 500, StringIO(""), chunksize=0)
