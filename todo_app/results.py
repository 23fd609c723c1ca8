from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from todo_app.errors import TodoError

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    payload: T


@dataclass(frozen=True)
class Failure:
    error: TodoError


Result = Union[Success[T], Failure]
