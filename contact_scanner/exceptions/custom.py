class InvalidWebsiteUrlError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ScanError(Exception):
    def __init__(self, message: str = "Failed to scan website"):
        self.message = message
        super().__init__(message)
