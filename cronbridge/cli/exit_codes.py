"""Standard exit codes for Cronbridge.

This module defines the exit codes used across the Cronbridge CLI
for consistent error reporting and scripting support.
"""


class ExitCode:
    """Standard exit codes for Cronbridge.
    
    These codes follow common Unix conventions where possible:
    - 0: Success
    - 1: General error
    - 130: Script terminated by Ctrl+C (SIGINT)
    
    Cronbridge-specific codes:
    - 2: Configuration error
    - 5: Sync client error
    - 7: Invalid argument or job definition
    - 8: Not found
    """
    
    SUCCESS = 0
    GENERAL_ERROR = 1
    
    CONFIGURATION_ERROR = 2
    SYNC_ERROR = 5
    INVALID_ARGUMENT = 7
    NOT_FOUND = 8
    
    # Signal-based exits (128 + signal number)
    CANCELLED = 130  # Ctrl+C (SIGINT = 2)
    
    @classmethod
    def get_name(cls, code: int) -> str:
        """Get the name of an exit code."""
        names = {
            cls.SUCCESS: "SUCCESS",
            cls.GENERAL_ERROR: "GENERAL_ERROR",
            cls.CONFIGURATION_ERROR: "CONFIGURATION_ERROR",
            cls.SYNC_ERROR: "SYNC_ERROR",
            cls.INVALID_ARGUMENT: "INVALID_ARGUMENT",
            cls.NOT_FOUND: "NOT_FOUND",
            cls.CANCELLED: "CANCELLED",
        }
        return names.get(code, f"UNKNOWN({code})")
    
    @classmethod
    def get_description(cls, code: int) -> str:
        """Get the description of an exit code."""
        descriptions = {
            cls.SUCCESS: "Operation completed successfully",
            cls.GENERAL_ERROR: "An unexpected error occurred",
            cls.CONFIGURATION_ERROR: "Configuration error or invalid config file",
            cls.SYNC_ERROR: "Job registry or sync client error",
            cls.INVALID_ARGUMENT: "Invalid argument or job definition",
            cls.NOT_FOUND: "Requested resource not found",
            cls.CANCELLED: "Operation cancelled by user",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")
