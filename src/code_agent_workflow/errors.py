from __future__ import annotations


class WorkflowError(Exception):
    """Base class for errors raised by the generation pipeline."""


class NonRetriableError(WorkflowError):
    """A step failure that retrying cannot fix."""


class Unauthenticated(NonRetriableError):
    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class QuotaExceeded(NonRetriableError):
    def __init__(self, ms_before_next: int = 0, message: str = "You have run out of credits"):
        super().__init__(message)
        self.ms_before_next = ms_before_next


class ProjectNotFound(NonRetriableError):
    def __init__(self, project_id: str):
        super().__init__(f"Project not found: {project_id}")
        self.project_id = project_id


class InvalidRequest(NonRetriableError, ValueError):
    pass


class CommandFailedError(WorkflowError):
    def __init__(self, command: str, exit_code: int, stdout: str = "", stderr: str = ""):
        super().__init__(f"Command exited with code {exit_code}: {command}")
        self.command = command
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
