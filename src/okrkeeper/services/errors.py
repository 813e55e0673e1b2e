"""Application errors and the plumbing that turns them into Results.

Service bodies raise ``ApplicationError`` subclasses internally; the
``returns_result`` decorator is the single place they become ``Err`` values,
so no expected failure ever escapes a service operation as an exception.
"""

import functools
import logging
from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, Optional, TypeVar, Union

from pydantic import BaseModel, ValidationError

from okrkeeper.core.result import Err, Ok, Result
from okrkeeper.repositories.ports import RepositoryError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")

Payload = Union[Mapping[str, Any], BaseModel]


class ApplicationError(Exception):
    """Base exception for service errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class InvalidInputError(ApplicationError):
    """Input failed validation. No I/O was attempted."""

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class DeniedError(ApplicationError):
    """Actor lacks the role, ownership or invariant safety the action needs."""
    pass


class LastAdminError(DeniedError):
    """Change would leave the team without an admin."""
    pass


class AlreadyMemberError(DeniedError):
    """User already belongs to the team."""
    pass


class InvitationNotPendingError(DeniedError):
    """Invitation already left the pending state."""
    pass


class DuplicateInvitationError(DeniedError):
    """A pending invitation exists for the same team and email."""
    pass


class TeamNotEmptyError(DeniedError):
    """Team still has members other than the actor."""
    pass


class NotFoundError(ApplicationError):
    """A required entity does not exist."""

    def __init__(self, entity: str):
        super().__init__(f"{entity} not found")
        self.entity = entity


class InfrastructureError(ApplicationError):
    """Storage failure, reported with a stable message; the cause is kept for logs."""
    pass


def validate(model_cls: type[M], data: Payload) -> M:
    """Validate raw operation input into ``model_cls``.

    Raises:
        InvalidInputError: If the payload does not satisfy the model
    """
    if isinstance(data, model_cls):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump()
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        if location:
            message = f"Invalid input: {location}: {first.get('msg', 'invalid value')}"
        else:
            # Whole-model checks such as an update with nothing to change
            message = first.get("msg", "Invalid input")
        raise InvalidInputError(message, errors=errors) from e


@contextmanager
def repository_errors(message: str) -> Iterator[None]:
    """Wrap repository failures in an InfrastructureError with a stable message."""
    try:
        yield
    except RepositoryError as e:
        raise InfrastructureError(message, cause=e) from e


def returns_result(
    func: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[Result[T, ApplicationError]]]:
    """Convert a service coroutine's return value to ``Ok`` and its
    ApplicationError to ``Err``."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Result[T, ApplicationError]:
        operation = func.__qualname__
        try:
            value = await func(*args, **kwargs)
        except InfrastructureError as e:
            logger.warning(f"{operation} failed: {e.message} (cause: {e.cause!r})")
            return Err(e)
        except (DeniedError, NotFoundError) as e:
            logger.info(f"{operation} refused: {e.message}")
            return Err(e)
        except ApplicationError as e:
            logger.debug(f"{operation} rejected input: {e.message}")
            return Err(e)
        except RepositoryError as e:
            logger.warning(f"{operation} hit an unwrapped storage error: {e!r}")
            return Err(InfrastructureError("Storage operation failed", cause=e))
        return Ok(value)

    return wrapper
