import io
from pathlib import Path
import numpy as np
import pandas as pd
import pytest
from bedpool.bed import BedReader
from bedpool.config import ALL_COLS, BED_COLS
from bedpool.merge import sync2

CHROMS = ["chr1", "chr10", "chr2", "chrX"]


def read_track(p: Path | io.StringIO) -> pd.DataFrame:
    return pd.read_table(
        p,
        header=None,
        names=ALL_COLS,
        sep=r"\s+",
        dtype={"chrom": str, "start": int, "end": int},
    )


def random_track(rng: np.random.Generator, n: int) -> list[str]:
    keys = sorted(
        {
            (str(rng.choice(CHROMS)), int(s), int(s) + int(rng.integers(1, 50)))
            for s in rng.integers(0, 10_000, n)
        }
    )
    lines = []
    for c, s, e in keys:
        cov = int(rng.integers(1, 40))
        meth = int(rng.integers(0, cov + 1))
        lines.append(f"{c}\t{s}\t{e}\t{meth / cov:.4f}\t{meth}\t{cov}")
    return lines


def line_key(s: str) -> tuple[str, int, int]:
    c, start, end = s.split("\t")[:3]
    return c, int(start), int(end)


def run_pool(a: Path, b: Path) -> str:
    out = io.StringIO()
    with BedReader.open(a) as ra, BedReader.open(b) as rb:
        sync2(ra, rb, out)
    return out.getvalue()


@pytest.fixture(params=[0, 1, 2, 3])
def tracks(request, write_bed) -> tuple[Path, Path, str]:
    rng = np.random.default_rng(request.param)
    a = random_track(rng, 200)
    # share roughly half the keys with the first track
    shared = [x for x in a if rng.random() < 0.5]
    bd = {line_key(x): x for x in random_track(rng, 200)}
    bd.update({line_key(x): x for x in shared})
    b = [bd[k] for k in sorted(bd)]
    pa = write_bed("a.bed", a)
    pb = write_bed("b.bed", b)
    return pa, pb, run_pool(pa, pb)


def keys_of(df: pd.DataFrame) -> list[tuple[str, int, int]]:
    return list(df[BED_COLS].itertuples(index=False, name=None))


def test_sorted_and_unique(tracks) -> None:
    _, _, out = tracks
    ks = keys_of(read_track(io.StringIO(out)))
    assert ks == sorted(set(ks))


def test_key_union(tracks) -> None:
    a, b, out = tracks
    union = set(keys_of(read_track(a))) | set(keys_of(read_track(b)))
    ks = keys_of(read_track(io.StringIO(out)))
    assert set(ks) == union
    assert len(ks) == len(union)


def test_matches_groupby(tracks) -> None:
    a, b, out = tracks
    # the in-memory version of what the merge does in constant memory
    expected = (
        pd.concat([read_track(a), read_track(b)])
        .groupby(BED_COLS, as_index=False)
        .agg(meth=("meth", "sum"), cov=("cov", "sum"), n=("cov", "count"))
    )
    actual = read_track(io.StringIO(out))
    df = expected.merge(actual, on=BED_COLS, suffixes=("_exp", "_act"), validate="1:1")
    assert len(df) == len(expected)
    assert (df["meth_exp"] == df["meth_act"]).all()
    assert (df["cov_exp"] == df["cov_act"]).all()
    pooled = df[df["n"] == 2]
    assert len(pooled) > 0
    np.testing.assert_allclose(
        pooled["ratio"],
        (pooled["meth_exp"] / pooled["cov_exp"]).astype(np.float32),
        rtol=1e-6,
    )


def test_passthrough_is_verbatim(tracks) -> None:
    a, b, out = tracks
    ka = {tuple(x.split("\t")[:3]): x for x in a.read_text().splitlines()}
    kb = {tuple(x.split("\t")[:3]): x for x in b.read_text().splitlines()}
    only = {k: v for k, v in {**ka, **kb}.items() if (k in ka) != (k in kb)}
    lines = {tuple(x.split("\t")[:3]): x for x in out.splitlines()}
    assert len(only) > 0
    for k, v in only.items():
        assert lines[k] == v


def test_self_merge(write_bed) -> None:
    lines = random_track(np.random.default_rng(42), 300)
    a = write_bed("a.bed", lines)
    b = write_bed("b.bed", lines)
    orig = read_track(a)
    pooled = read_track(io.StringIO(run_pool(a, b)))
    assert keys_of(pooled) == keys_of(orig)
    assert (pooled["meth"] == orig["meth"] * 2).all()
    assert (pooled["cov"] == orig["cov"] * 2).all()
    np.testing.assert_allclose(
        pooled["ratio"],
        (orig["meth"] / orig["cov"]).astype(np.float32),
        rtol=1e-6,
    )
