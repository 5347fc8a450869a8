# DID Connect - Wallet DID Authorization Server
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Result types used by every fallible operation in the authorization flow.

Guards in the registry, gateway, stores and server hand back ``Ok(value)`` or
``Err(AuthError)`` instead of raising; callers branch on ``is_err()`` and
either forward the error or ``unwrap()`` the value.
"""

from typing import TYPE_CHECKING, Any, Generic, NoReturn, TypeVar

from attrs import frozen
from beartype import beartype

T = TypeVar("T")
E = TypeVar("E")


@frozen
class Ok(Generic[T]):
    """Successful outcome."""

    value: T

    @beartype
    def is_ok(self) -> bool:
        return True

    @beartype
    def is_err(self) -> bool:
        return False

    @beartype
    def unwrap(self) -> T:
        return self.value

    @beartype
    def unwrap_err(self) -> NoReturn:
        raise ValueError(f"Expected an error, got Ok({self.value!r})")


@frozen
class Err(Generic[E]):
    """Failed outcome carrying a typed error."""

    error: E

    @beartype
    def is_ok(self) -> bool:
        return False

    @beartype
    def is_err(self) -> bool:
        return True

    @beartype
    def unwrap(self) -> NoReturn:
        raise ValueError(f"Called unwrap on Err value: {self.error}")

    @beartype
    def unwrap_err(self) -> E:
        return self.error


if TYPE_CHECKING:
    Result = Ok[T] | Err[E]
else:

    class Result(Generic[T, E]):
        """Annotation-only alias: ``Result[T, E]`` resolves to ``Ok | Err``."""

        def __class_getitem__(cls, params: Any) -> Any:
            return Ok[Any] | Err[Any]
