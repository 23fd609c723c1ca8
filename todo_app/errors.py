class TodoError(Exception):
    """Base class for every error raised by the todo service."""


class DatabaseConnectionError(TodoError):
    """The pool could not be established, or a connection was not acquired in time."""


class MigrationError(TodoError):
    """A schema migration failed; startup must abort."""


class RepositoryError(TodoError):
    """A query failed (constraint violation, lost connection, timeout)."""


class TodoNotFound(RepositoryError):
    def __init__(self, todo_id: int):
        super().__init__(f"todo {todo_id} not found")
        self.todo_id = todo_id


class RenderError(TodoError):
    """Template lookup or rendering failed."""
