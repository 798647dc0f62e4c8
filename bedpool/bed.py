import re
import zlib
import logging
from pathlib import Path
from types import TracebackType
from typing import Callable, Iterator, NamedTuple, TypeVar
import numpy as np
from bedpool.config import ALL_COLS
from bedpool.errors import FileError, ParseError, UnsortedError
from bedpool.io import TextInput, open_text_maybe_gzip

logger = logging.getLogger(__name__)

X = TypeVar("X")

NCOLS = len(ALL_COLS)

UINT64_MAX = 2**64 - 1

# largest magnitude at which every integer is exactly representable in float32
FLOAT32_EXACT_INT = 2**24

# runs of ASCII whitespace (unicode spaces like \xa0 stay part of a field)
_FIELD = re.compile(r"[^ \t\n\r\f]+")


class Coords(NamedTuple):
    chrom: str
    start: int
    end: int

    def fmt(self) -> str:
        return f"{self.chrom}:{self.start}-{self.end}"


class Record(NamedTuple):
    """One line of a methylation track.

    'fields' holds the raw text columns the record was parsed from; it is None
    for records made by combining two others.
    """

    coords: Coords
    ratio: np.float32
    meth: np.float32
    cov: np.float32
    fields: tuple[str, ...] | None = None

    def fmt(self) -> str:
        if self.fields is not None:
            return "\t".join(self.fields)
        c = self.coords
        return "\t".join(
            [
                c.chrom,
                str(c.start),
                str(c.end),
                fmt_float(self.ratio),
                fmt_count(self.meth),
                fmt_count(self.cov),
            ]
        )


def fmt_float(x: np.float32) -> str:
    # shortest string that round-trips through float32 (eg 1.0, 0.33333334)
    return str(np.float32(x))


def fmt_count(x: np.float32) -> str:
    """Format a statistic that is usually a whole number of reads.

    Integral values are written without a decimal point so pooled counts look
    like the counts that went in; anything else falls back to fmt_float.
    """
    if np.isfinite(x) and abs(x) < FLOAT32_EXACT_INT and x == np.trunc(x):
        return str(int(x))
    return fmt_float(x)


def parse_uint(s: str) -> int:
    digits = s[1:] if s.startswith("+") else s
    if digits == "":
        raise ValueError("cannot parse integer from empty string")
    if not (digits.isascii() and digits.isdigit()):
        raise ValueError("invalid digit found in string")
    x = int(digits)
    if x > UINT64_MAX:
        raise ValueError("number too large to fit in target type")
    return x


def parse_float32(s: str) -> np.float32:
    # float() also takes "1_000" and non-ASCII digits, neither of which is a
    # float as far as a BED file is concerned
    if "_" in s or not s.isascii():
        raise ValueError(f"could not convert string to float: '{s}'")
    x = float(s)
    with np.errstate(over="ignore"):
        return np.float32(x)


def parse_field(i: int, s: str, what: str, f: Callable[[str], X]) -> X:
    try:
        return f(s)
    except ValueError as e:
        raise ValueError(
            f"column {i + 1} ({ALL_COLS[i]}): expected {what}, got '{s}': {e}"
        ) from e


def split_line(s: str) -> list[str]:
    return _FIELD.findall(s)


def parse_record(line: str) -> Record:
    """Parse one line of a six-column methylation track.

    Columns after the sixth are ignored. Raise ValueError with a message
    naming the offending column if the line cannot be parsed.
    """
    fs = split_line(line)
    if len(fs) < NCOLS:
        raise ValueError(f"expected {NCOLS} columns, found {len(fs)}")
    fs = fs[:NCOLS]
    coords = Coords(
        fs[0],
        parse_field(1, fs[1], "unsigned integer", parse_uint),
        parse_field(2, fs[2], "unsigned integer", parse_uint),
    )
    ratio, meth, cov = [
        parse_field(i, fs[i], "float", parse_float32) for i in range(3, NCOLS)
    ]
    return Record(coords, ratio, meth, cov, tuple(fs))


class BedReader:
    """Pull parser over one coordinate-sorted methylation track.

    Records are produced one at a time by 'read' (None at end of file, and
    forever after). 'lineno' counts lines consumed, so it points at the
    offending line when parsing fails.

    ASSUME the file is sorted by (chrom, start, end); if 'check_sorted' is set
    a key that goes backwards raises UnsortedError instead of silently
    producing a garbled merge.
    """

    def __init__(self, path: Path, handle: TextInput, check_sorted: bool = True) -> None:
        self.path = path
        self.lineno = 0
        self.last: str | None = None
        self.at_eof = False
        self.check_sorted = check_sorted
        self._prev: Coords | None = None
        self._handle = handle

    @classmethod
    def open(cls, path: Path | str, check_sorted: bool = True) -> "BedReader":
        p = Path(path)
        try:
            h = open_text_maybe_gzip(p)
        except OSError as e:
            raise FileError(p, e) from e
        logger.info("Opened %s (%s)", p, "gzip" if h.gzipped else "plain text")
        return cls(p, h, check_sorted)

    def read(self) -> Record | None:
        if self.at_eof:
            return None
        try:
            line = self._handle.text.readline()
        except (OSError, EOFError, UnicodeDecodeError, zlib.error) as e:
            raise FileError(self.path, e) from e
        if line == "":
            self.at_eof = True
            logger.info("Read %i lines from %s", self.lineno, self.path)
            return None

        self.lineno += 1
        self.last = line
        try:
            rec = parse_record(line)
        except ValueError as e:
            raise ParseError(self.path, self.lineno, str(e)) from e

        if self.check_sorted:
            if self._prev is not None and rec.coords < self._prev:
                raise UnsortedError(
                    self.path,
                    self.lineno,
                    f"{rec.coords.fmt()} comes after {self._prev.fmt()}",
                )
            self._prev = rec.coords
        return rec

    def __iter__(self) -> Iterator[Record]:
        while (r := self.read()) is not None:
            yield r

    def close(self) -> None:
        self._handle.close()

    def __enter__(self) -> "BedReader":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
