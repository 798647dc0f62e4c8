import gzip
from pathlib import Path
from typing import Callable
import pytest

WriteBed = Callable[..., Path]


@pytest.fixture
def write_bed(tmp_path: Path) -> WriteBed:
    """Write lines to a (optionally gzipped) file in tmp_path and return it."""

    def go(name: str, lines: list[str], gz: bool = False) -> Path:
        p = tmp_path / name
        text = "".join(x + "\n" for x in lines)
        if gz:
            with gzip.open(p, "wt") as f:
                f.write(text)
        else:
            p.write_text(text)
        return p

    return go
