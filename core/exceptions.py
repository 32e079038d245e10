class SimulatorError(Exception):
    """Base class for errors raised by the service simulator."""
    pass

class DurationParseError(SimulatorError):
    """Raised when a duration token such as '250ms' cannot be parsed."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"invalid duration {token!r}")

class SimulatedError(SimulatorError):
    """Error injected by an endpoint's errorOnCall setting."""
    pass

class RouteCallError(SimulatorError):
    """Raised when a downstream route could not be reached."""

    def __init__(self, uri: str, cause: Exception):
        self.uri = uri
        self.cause = cause
        super().__init__(f"Get \"http://{uri}\": {cause}")
