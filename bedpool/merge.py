import logging
from enum import Enum
from typing import IO, NamedTuple
import numpy as np
from typing_extensions import assert_never
from bedpool.bed import BedReader, Record
from bedpool.errors import DesignError, OutputError

logger = logging.getLogger(__name__)


class Step(Enum):
    LEFT = "left"
    RIGHT = "right"
    BOTH = "both"
    DONE = "done"


class MergeStats(NamedTuple):
    left: int
    right: int
    both: int

    @property
    def total(self) -> int:
        return self.left + self.right + self.both


def classify(a: Record | None, b: Record | None) -> Step:
    """Decide what to do with the pending record on each side.

    LEFT/RIGHT mean emit that side unchanged (either because its key is
    smaller or because the other side is exhausted), BOTH means the keys are
    equal and the two records must be combined.
    """
    if a is None and b is None:
        return Step.DONE
    if b is None:
        return Step.LEFT
    if a is None:
        return Step.RIGHT
    if a.coords == b.coords:
        return Step.BOTH
    return Step.LEFT if a.coords < b.coords else Step.RIGHT


def combine(a: Record, b: Record) -> Record:
    # overflow and zero coverage give inf/nan; these are passed through as-is
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        meth = np.float32(a.meth + b.meth)
        cov = np.float32(a.cov + b.cov)
        ratio = np.float32(meth / cov)
    return Record(a.coords, ratio, meth, cov)


def write_record(out: IO[str], r: Record) -> None:
    try:
        out.write(r.fmt() + "\n")
    except OSError as e:
        raise OutputError(e) from e


def sync2(left: BedReader, right: BedReader, out: IO[str]) -> MergeStats:
    """Merge two sorted methylation tracks into 'out'.

    Records with the same coordinates in both inputs are pooled (meth and cov
    summed, ratio recomputed); everything else is passed through unchanged.
    Only one record per side is held at any time.

    ASSUME both inputs are sorted by (chrom, start, end) and that neither
    repeats a key; otherwise the output is neither sorted nor unique.
    """
    n_left = n_right = n_both = 0

    a = left.read()
    b = right.read()
    while (step := classify(a, b)) is not Step.DONE:
        if step is Step.BOTH:
            if a is None or b is None:
                raise DesignError("classify returned BOTH with a side exhausted")
            write_record(out, combine(a, b))
            n_both += 1
            a = left.read()
            b = right.read()
        elif step is Step.LEFT:
            if a is None:
                raise DesignError("classify returned LEFT with no left record")
            write_record(out, a)
            n_left += 1
            a = left.read()
        elif step is Step.RIGHT:
            if b is None:
                raise DesignError("classify returned RIGHT with no right record")
            write_record(out, b)
            n_right += 1
            b = right.read()
        else:
            assert_never(step)

    stats = MergeStats(n_left, n_right, n_both)
    logger.info(
        "Pooled %s and %s: %i records (%i only in first, %i only in second, %i shared)",
        left.path,
        right.path,
        stats.total,
        stats.left,
        stats.right,
        stats.both,
    )
    return stats
