class ReleaseError(Exception):
    """Custom exception for release errors"""

    pass


class ChangelogError(ReleaseError):
    """Raised when a changelog cannot be converted to HTML release notes"""

    pass


class AppcastError(ReleaseError):
    """Raised when an appcast lists its releases out of order"""

    pass
