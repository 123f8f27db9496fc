"""Exception hierarchy for StrandTrace."""


class StrandTraceError(Exception):
    """Base class for all StrandTrace errors"""
    pass


class ConfigError(StrandTraceError):
    """Configuration related errors"""
    pass


class FingerprintError(StrandTraceError):
    """Fingerprint generation/verification errors"""
    pass


class MalformedRecordError(FingerprintError):
    """Required fingerprint fields are missing or unparseable"""
    pass


class DimensionMismatchError(FingerprintError):
    """Candidate image size disagrees with the recorded metadata"""

    def __init__(self, expected, actual):
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        super().__init__(
            f"Dimension mismatch! Expected {self.expected[0]}x{self.expected[1]}, "
            f"got {self.actual[0]}x{self.actual[1]}"
        )
