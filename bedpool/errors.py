from pathlib import Path


class BedpoolError(Exception):
    """Base for every error that is reported to the user.

    str() of any subclass is the single diagnostic line printed by the CLI.
    """

    pass


class FileError(BedpoolError):
    def __init__(self, path: Path | str, cause: BaseException) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"{path}: file error: {cause}")


class ParseError(BedpoolError):
    kind = "parse error"

    def __init__(self, path: Path | str, lineno: int, msg: str) -> None:
        self.path = Path(path)
        self.lineno = lineno
        self.msg = msg
        super().__init__(f"{path}:{lineno}: {self.kind}: {msg}")


class UnsortedError(ParseError):
    kind = "unsorted input"


class OutputError(BedpoolError):
    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"output error: {cause}")


class ConfigError(BedpoolError):
    pass


class DesignError(Exception):
    """Exception raised when the code is designed incorrectly (ie the 'this
    should not happen' error)"""

    pass
