from pathlib import Path
from typing import Mapping
from pydantic import BaseModel, ConfigDict, ValidationError
from bedpool.errors import ConfigError

ENV_PREFIX = "BEDPOOL_"

BED_COLS = ["chrom", "start", "end"]
STAT_COLS = ["ratio", "meth", "cov"]
ALL_COLS = [*BED_COLS, *STAT_COLS]


class PoolConfig(BaseModel):
    """Everything needed to run one pooling job."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    file1: Path
    file2: Path
    # fail on keys that go backwards within one input
    check_sorted: bool = True
    log: Path | None = None

    @classmethod
    def from_env(
        cls,
        file1: Path | str,
        file2: Path | str,
        environ: Mapping[str, str],
    ) -> "PoolConfig":
        """Build a config from the two input paths and BEDPOOL_* variables.

        Only variables matching a field are considered (eg BEDPOOL_LOG,
        BEDPOOL_CHECK_SORTED); empty values count as unset.
        """
        opts = {
            k: v
            for k in ["check_sorted", "log"]
            if (v := environ.get(ENV_PREFIX + k.upper(), "")) != ""
        }
        try:
            return cls(file1=Path(file1), file2=Path(file2), **opts)
        except ValidationError as e:
            errs = "; ".join(
                f"{ENV_PREFIX}{'.'.join(map(str, x['loc'])).upper()}: {x['msg']}"
                for x in e.errors()
            )
            raise ConfigError(f"invalid configuration: {errs}") from e
