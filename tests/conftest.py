import os.path as op

import pandas as pd
import pytest
from _common import build_from_records, random_pairs

# two contigs: c0 gives bins 0-1, c1 gives bins 2-4 at 500 bp
EXAMPLE_RECORDS = [
    ("c0", 100, "c0", 400),
    ("c0", 100, "c0", 400),
    ("c0", 600, "c1", 50),
]


@pytest.fixture
def tig_lengths():
    return pd.Series([1000, 1500], index=["c0", "c1"], name="length")


@pytest.fixture
def example_records():
    return list(EXAMPLE_RECORDS)


@pytest.fixture
def example_matrix(tmpdir, tig_lengths, example_records):
    path = op.join(str(tmpdir), "example.h5")
    return build_from_records(path, tig_lengths, example_records, 500)


@pytest.fixture
def small_tigs():
    return pd.Series([100, 200], index=["ta", "tb"], name="length")


@pytest.fixture
def small_records(small_tigs):
    return random_pairs(small_tigs, 60, seed=1)


@pytest.fixture
def small_matrix(tmpdir, small_tigs, small_records):
    # 6 bins at 50 bp
    path = op.join(str(tmpdir), "small.h5")
    return build_from_records(path, small_tigs, small_records, 50)


@pytest.fixture
def random_tigs():
    return pd.Series([230, 480, 700, 1000], index=["t1", "t2", "t3", "t4"],
                     name="length")


@pytest.fixture
def random_records(random_tigs):
    return random_pairs(random_tigs, 4000, seed=7)


@pytest.fixture
def random_matrix(tmpdir, random_tigs, random_records):
    # 5 + 10 + 14 + 20 = 49 bins at 50 bp
    path = op.join(str(tmpdir), "random.h5")
    return build_from_records(path, random_tigs, random_records, 50)
