"""UniFi controller exceptions"""

from typing import Optional


class UniFiError(Exception):
    """Base exception for UniFi controller access"""
    pass


class AuthenticationError(UniFiError):
    """Login was rejected, or the session could not be renewed after a 401"""
    pass


class ParseError(UniFiError):
    """Non-success response status or a body that does not match the expected shape"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RequestFailed(UniFiError):
    """Transport-level failure talking to the controller"""
    pass
