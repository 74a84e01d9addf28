import typing as ty
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True)
class Reason:
    """Why a Deferred was rejected.

    Identity is (domain, code) - two Reasons with the same domain and code
    compare equal regardless of message or details, which are descriptive only.
    """

    domain: str
    code: int
    message: str = field(default="", compare=False)
    details: ty.Mapping[str, ty.Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    @classmethod
    def from_exception(cls, exc: BaseException, code: int = 0) -> "Reason":
        exc_type = type(exc)
        return cls(
            domain=f"{exc_type.__module__}.{exc_type.__qualname__}",
            code=code,
            message=str(exc),
            details=dict(exception=exc),
        )

    @property
    def exception(self) -> ty.Optional[BaseException]:
        return self.details.get("exception")

    def __str__(self) -> str:
        return f"{self.domain}({self.code}): {self.message}"
