"""
Domain exceptions raised by the seating services
"""


class SeatingError(Exception):
    """Base class for seating service errors"""


class GuestNotFoundError(SeatingError, LookupError):
    def __init__(self, guest_id: str):
        super().__init__(f"Guest {guest_id} not found")
        self.guest_id = guest_id


class CommandNotFoundError(SeatingError, LookupError):
    def __init__(self, command_id: int):
        super().__init__(f"Command {command_id} not found")
        self.command_id = command_id


class ExcelImportError(SeatingError):
    """Raised when an uploaded spreadsheet cannot be turned into guests"""


class RollbackError(SeatingError):
    """Raised when a command can no longer be undone against the current state"""
