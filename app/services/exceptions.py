# app/services/exceptions.py - Domain errors raised by the enrollment pipeline


class EnrollmentError(Exception):
    """Base class for enrollment pipeline errors"""
    pass


class EnrollmentNotFoundError(EnrollmentError):
    def __init__(self, enrollment_id):
        self.enrollment_id = enrollment_id
        super().__init__(f"Simplified enrollment {enrollment_id} not found")


class CourseNotFoundError(EnrollmentError):
    def __init__(self, course_id):
        self.course_id = course_id
        super().__init__(f"Course {course_id} not found")


class InvalidEnrollmentStateError(EnrollmentError):
    """The simplified enrollment is not in a status the operation accepts"""

    def __init__(self, enrollment_id, status: str):
        self.enrollment_id = enrollment_id
        self.status = status
        super().__init__(f"Simplified enrollment {enrollment_id} cannot be converted from status '{status}'")


class MissingStudentEmailError(EnrollmentError):
    def __init__(self, enrollment_id):
        self.enrollment_id = enrollment_id
        super().__init__(f"Simplified enrollment {enrollment_id} has no student email")
