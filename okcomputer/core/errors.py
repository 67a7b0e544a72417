"""Exception taxonomy for the OK Computer core"""


class OKComputerError(Exception):
    """Base class for every error raised by the core."""


class SanitizationError(OKComputerError):
    """Raised when untrusted input nests deeper than the sanitizer allows."""


class InputRejectedError(OKComputerError):
    """Protocol-level rejection of a tool call's arguments."""


class ToolNotFoundError(OKComputerError):
    """Raised when a call names a tool the registry does not know."""

    def __init__(self, name: str, available: list[str]):
        self.name = name
        self.available = available
        super().__init__(f"Tool not found: {name}. Available tools: {', '.join(available)}")


class StateInvariantError(OKComputerError, ValueError):
    """A state store mutation was refused because it would break an invariant."""


class ResourceNotFoundError(OKComputerError):
    pass


class PromptNotFoundError(OKComputerError):
    pass
