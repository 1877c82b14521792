class DemandasError(Exception):
    """Base error; carries the HTTP status the API answers with."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DemandasError):
    status_code = 400


class TaskNotFound(DemandasError):
    status_code = 404

    def __init__(self, task_id: int):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class StorageError(DemandasError):
    status_code = 500
