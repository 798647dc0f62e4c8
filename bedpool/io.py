import gzip
import io
import logging
from logging import Logger
from pathlib import Path
from typing import IO, NamedTuple, TextIO

GZIP_MAGIC = b"\x1f\x8b"


class TextInput(NamedTuple):
    text: TextIO
    raw: IO[bytes]
    gzipped: bool

    def close(self) -> None:
        # GzipFile does not close a file object it was handed
        self.text.close()
        self.raw.close()


def is_gzip_stream(i: io.BufferedReader) -> bool:
    # peek rather than read so nothing is consumed; the input may be a pipe
    return i.peek(2)[:2] == GZIP_MAGIC


def open_text_maybe_gzip(p: Path) -> TextInput:
    """Open a text file for reading, decompressing on the fly if it is gzipped.

    Detection is done on content rather than on the extension, since tracks
    are often handed around as '.bed' even when bgzipped. The path is opened
    exactly once so process substitutions and FIFOs work.

    NOTE: any OSError from opening propagates; decoding errors only surface
    once lines are read.
    """
    f = open(p, "rb")
    try:
        gz = is_gzip_stream(f)
        if gz:
            t = io.TextIOWrapper(gzip.GzipFile(fileobj=f, mode="rb"), encoding="utf-8")
        else:
            t = io.TextIOWrapper(f, encoding="utf-8")
    except BaseException:
        f.close()
        raise
    return TextInput(t, f, gz)


# set up basic logger that prints to a file and (optionally) the console and
# captures warnings so those don't go unnoticed
def setup_logging(path: Path | str, console: bool = False) -> Logger:
    logging.basicConfig(
        filename=path,
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    logging.captureWarnings(True)
    logger = logging.getLogger()
    if console:
        logger.addHandler(logging.StreamHandler())
    return logger
