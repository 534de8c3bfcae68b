

class InvalidHostError(Exception):
    """Raised when a host token is not a valid [user[:password]@]host[:port]"""
    pass


class NoAuthMethodError(Exception):
    """Raised when no agent, key file or password can be offered"""
    pass


class UnknownHostException(Exception):
    """Raised when a host is unknown (dns failure)"""
    pass


class ConnectionErrorException(Exception):
    """Raised on error connecting (connection refused/timed out)"""
    pass


class SessionError(Exception):
    """Raised on errors establishing SSH session"""
    pass


class AuthenticationException(Exception):
    """Raised when every authentication method was refused"""
    pass


class Timeout(Exception):
    """Raised when a batch does not complete before its deadline"""
    pass
