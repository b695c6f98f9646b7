"""
Exit code value type shared by tools, the pipeline and the process supervisor.
"""

from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class ExitCode:
    """
    A process or tool exit code. Zero means success.

    `ExitCode.SUCCESS` and `ExitCode.FAILURE` are the canonical values; every
    component boundary that only distinguishes success from failure returns
    one of them.
    """

    code: int

    SUCCESS: ClassVar["ExitCode"]
    FAILURE: ClassVar["ExitCode"]

    @property
    def is_success(self) -> bool:
        return self.code == 0

    def __int__(self) -> int:
        return self.code

    def __str__(self) -> str:
        return f"[{self.code}, {'Success' if self.is_success else 'Failure'}]"

    @classmethod
    def from_code(cls, code: int) -> "ExitCode":
        """Return the canonical instance for 0 and 1, a new value otherwise."""
        if code == 0:
            return cls.SUCCESS
        if code == 1:
            return cls.FAILURE
        return cls(code)


ExitCode.SUCCESS = ExitCode(0)
ExitCode.FAILURE = ExitCode(1)
