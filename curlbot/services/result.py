from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    # Set when the value is a degraded stand-in (canned reply, skipped integration).
    fallback: bool = False

    @staticmethod
    def success(value: T) -> "Result[T]":
        return Result(ok=True, value=value)

    @staticmethod
    def degraded(value: T, error: str, code: str = "unknown") -> "Result[T]":
        return Result(ok=True, value=value, error=error, error_code=code, fallback=True)

    @staticmethod
    def skipped(code: str) -> "Result[T]":
        return Result(ok=False, error=f"skipped: {code}", error_code=code)

    @staticmethod
    def failure(error: str, code: str = "unknown") -> "Result[T]":
        return Result(ok=False, error=error, error_code=code)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default
