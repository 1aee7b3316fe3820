class FetchError(Exception):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        transient: bool = False,
    ):
        self.message = message
        self.status_code = status_code
        self.transient = transient
        super().__init__(message)


class InputValidationError(Exception):
    def __init__(self, message: str, hint: str | None = None):
        self.message = message
        self.hint = hint
        super().__init__(message)


class OutputWriteError(Exception):
    def __init__(self, message: str, path: str):
        self.message = message
        self.path = path
        super().__init__(message)


class StationNotFoundError(Exception):
    def __init__(self, call_sign: str):
        self.call_sign = call_sign
        self.message = f"Station {call_sign} not found"
        super().__init__(self.message)
