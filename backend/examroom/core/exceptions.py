from typing import Optional


class ExamSessionError(Exception):
    """Base class for errors surfaced by the exam session engine."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ExamValidationError(ExamSessionError):
    """Entry checks failed before the exam could begin."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class ActiveSessionElsewhere(ExamSessionError):
    """The student already has an in-progress session for a different exam."""

    status_code = 409

    def __init__(self, session_id: str, exam_id: int, exam_code: Optional[str] = None):
        super().__init__(
            "You already have an active exam session. You can only take one exam at a time."
        )
        self.session_id = session_id
        self.exam_id = exam_id
        self.exam_code = exam_code


class ActiveSessionConflict(ExamSessionError):
    status_code = 409

    def __init__(self, message: str = "You already have an active exam session."):
        super().__init__(message)


class InvalidSessionState(ExamSessionError):
    status_code = 409


class SessionAccessDenied(ExamSessionError):
    status_code = 403


class SubmissionError(ExamSessionError):
    status_code = 500

    def __init__(self, message: str = "Failed to submit exam. Please try again."):
        super().__init__(message)
