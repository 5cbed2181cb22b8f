"""Exception hierarchy for curve calibration."""


class CalibrationError(ValueError):
    """Raised for structural problems detected before any numerical work."""

    pass


class OverlapError(CalibrationError):
    """Raised when tenors with identical curve dates are bootstrapped."""

    pass


class ProductNotSupportedError(CalibrationError):
    """Raised when a calibrator cannot build a pricer for a product."""

    pass


class CircularDependencyError(CalibrationError):
    """Raised when a strict dependency graph finds a curve that depends on itself."""

    pass
