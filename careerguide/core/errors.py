from typing import List, Optional


class CareerGuideError(Exception):
    """Base class for errors raised by the admissions core."""


class ValidationError(CareerGuideError):
    """A grade or requirement value is not on the grade scale."""


class NotFoundError(CareerGuideError):
    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class EligibilityError(CareerGuideError):
    """
    Returned (not raised) by AdmissionsEngine.submit_application when the
    eligibility guard reports blockers. `reasons` holds every Blocker.
    """

    def __init__(self, reasons: List, message: str = "Student is not eligible to apply"):
        super().__init__(message)
        self.reasons = list(reasons)


class IllegalTransitionError(CareerGuideError):
    def __init__(self, message: str, current_status: Optional[str] = None, action: Optional[str] = None):
        super().__init__(message)
        self.current_status = current_status
        self.action = action


class ConcurrentModificationError(CareerGuideError):
    def __init__(self, application_id: str, expected: str, actual: str):
        super().__init__(
            f"Application {application_id} changed concurrently: expected status {expected}, found {actual}"
        )
        self.application_id = application_id
        self.expected = expected
        self.actual = actual
