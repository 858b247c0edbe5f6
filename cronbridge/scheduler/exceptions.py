"""Exceptions for cron job scheduling."""


class SchedulerError(Exception):
    """Base exception for cron job scheduling errors."""
    
    def __init__(self, message: str, job_name: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.job_name = job_name
    
    def __str__(self) -> str:
        if self.job_name:
            return f"{self.message} (job: {self.job_name})"
        return self.message


class InvalidDefinitionError(SchedulerError):
    """Raised when a cron definition cannot be turned into a timer."""
    pass
