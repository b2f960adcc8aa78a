"""
Use case results

Use cases never raise to their caller. They return either Success(value)
or Failure(DomainError), and the API layer maps the error code to an
HTTP status.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, TypeVar, Union

from forgeops.exceptions import ForgeOpsException

T = TypeVar("T")


@dataclass(frozen=True)
class DomainError:
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: ForgeOpsException) -> "DomainError":
        return cls(code=exc.error_code, message=exc.message, details=dict(exc.details))

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    is_success = True
    is_failure = False


@dataclass(frozen=True)
class Failure:
    error: DomainError
    is_success = False
    is_failure = True


Result = Union[Success[T], Failure]


def success(value: T) -> Success[T]:
    return Success(value)


def failure(code: str, message: str, details: Dict[str, Any] = None) -> Failure:
    return Failure(DomainError(code=code, message=message, details=details or {}))
