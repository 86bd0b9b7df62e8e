"""
Record types produced by the WebKiosk portal client.

Every record is created fresh per scrape call and converts to the camelCase
dictionary shape the mobile/web client consumes via ``to_dict()``.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ExamType(Enum):
    """Exam types exposed to the client."""
    T1 = "T1"
    T2 = "T2"
    T3 = "T3"
    FINAL = "FINAL"
    ASSIGNMENT = "ASSIGNMENT"


class AttendanceStatus(Enum):
    """Attendance standing of a subject."""
    GOOD = "Good"
    WARNING = "Warning"
    CRITICAL = "Critical"

    @classmethod
    def from_percentage(cls, percentage: float) -> "AttendanceStatus":
        if percentage >= 75:
            return cls.GOOD
        if percentage >= 50:
            return cls.WARNING
        return cls.CRITICAL


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class Credentials:
    """Login credentials for one portal login call. Never persisted."""

    def __init__(self, enrollment_number: str, date_of_birth: str, password: str):
        self.enrollment_number = enrollment_number
        self.date_of_birth = date_of_birth
        self.password = password

    def __repr__(self) -> str:
        return f"Credentials(enrollment_number={self.enrollment_number!r})"


class AttendanceCount:
    """Attended/total pair for one lecture stream."""

    def __init__(self, attended: int = 0, total: int = 0):
        self.attended = attended
        self.total = total

    def to_dict(self) -> Dict[str, int]:
        return {"attended": self.attended, "total": self.total}


class SubjectAttendance:
    """Attendance counts for the lecture, tutorial and practical streams."""

    def __init__(self, lectures: AttendanceCount, tutorials: AttendanceCount,
                 practicals: AttendanceCount):
        self.lectures = lectures
        self.tutorials = tutorials
        self.practicals = practicals

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {
            "lectures": self.lectures.to_dict(),
            "tutorials": self.tutorials.to_dict(),
            "practicals": self.practicals.to_dict(),
        }


class Subject:
    """Attendance record for one subject."""

    def __init__(self, subject_id: str, name: str, code: str, attendance: SubjectAttendance,
                 percentage: int, semester: int, credits: int, faculty: str = ""):
        self.subject_id = subject_id
        self.name = name
        self.code = code
        self.faculty = faculty
        self.attendance = attendance
        self.percentage = percentage
        self.semester = semester
        self.credits = credits

    @property
    def status(self) -> AttendanceStatus:
        return AttendanceStatus.from_percentage(self.percentage)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subjectId": self.subject_id,
            "name": self.name,
            "code": self.code,
            "faculty": self.faculty,
            "attendance": self.attendance.to_dict(),
            "percentage": self.percentage,
            "semester": self.semester,
            "credits": self.credits,
            "status": self.status.value,
        }


class StudentInfo:
    """
    Student summary parsed from the attendance page.

    ``found`` records whether the info row was present; its fields may still be
    empty when the row text does not match the expected labels.
    """

    def __init__(self, name: str = "", enrollment_number: str = "", course: str = "",
                 current_semester: int = 0, found: bool = False):
        self.name = name
        self.enrollment_number = enrollment_number
        self.course = course
        self.current_semester = current_semester
        self.found = found

    def to_dict(self) -> Dict[str, Any]:
        if not self.found:
            return {}
        return {
            "name": self.name,
            "enrollmentNumber": self.enrollment_number,
            "course": self.course,
            "currentSemester": self.current_semester,
        }


class AttendanceResult:
    """Outcome of an attendance scrape."""

    def __init__(self, subjects: List[Subject], student_info: StudentInfo, table_found: bool,
                 error: Optional[str] = None):
        self.subjects = subjects
        self.student_info = student_info
        self.table_found = table_found
        self.error = error

    @classmethod
    def not_found(cls, reason: str) -> "AttendanceResult":
        return cls(subjects=[], student_info=StudentInfo(), table_found=False, error=reason)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "subjects": [subject.to_dict() for subject in self.subjects],
            "studentInfo": self.student_info.to_dict(),
            "tableFound": self.table_found,
        }
        if self.error:
            result["error"] = self.error
        return result


class ExamMark:
    """Marks for one exam component of one subject."""

    def __init__(self, subject_id: str, subject_code: str, subject_name: str, semester: int,
                 exam_type: ExamType, marks_obtained: float, max_marks: int, percentage: float,
                 grade: str, exam_date: datetime, published_date: datetime, user_id: str = ""):
        self.user_id = user_id
        self.subject_id = subject_id
        self.subject_code = subject_code
        self.subject_name = subject_name
        self.semester = semester
        self.exam_type = exam_type
        self.marks_obtained = marks_obtained
        self.max_marks = max_marks
        self.percentage = percentage
        self.grade = grade
        self.exam_date = exam_date
        self.published_date = published_date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "subjectId": self.subject_id,
            "subjectCode": self.subject_code,
            "subjectName": self.subject_name,
            "semester": self.semester,
            "examType": self.exam_type.value,
            "marksObtained": self.marks_obtained,
            "maxMarks": self.max_marks,
            "percentage": self.percentage,
            "grade": self.grade,
            "examDate": _isoformat(self.exam_date),
            "publishedDate": _isoformat(self.published_date),
        }


class SGPACGPARecord:
    """SGPA/CGPA figures for one semester."""

    def __init__(self, semester: int, sgpa: float, cgpa: float, credits: int, academic_year: str,
                 published_date: datetime, subjects: Optional[List[Dict[str, Any]]] = None,
                 user_id: str = ""):
        self.user_id = user_id
        self.semester = semester
        self.sgpa = sgpa
        self.cgpa = cgpa
        self.credits = credits
        self.subjects = subjects if subjects is not None else []
        self.academic_year = academic_year
        self.published_date = published_date

    @property
    def grade_points(self) -> float:
        return self.sgpa * self.credits

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "semester": self.semester,
            "sgpa": self.sgpa,
            "cgpa": self.cgpa,
            "credits": self.credits,
            "gradePoints": self.grade_points,
            "subjects": list(self.subjects),
            "academicYear": self.academic_year,
            "publishedDate": _isoformat(self.published_date),
        }


class SyncResult:
    """Everything collected by a full sync."""

    def __init__(self, attendance: List[Subject], exam_marks: List[ExamMark],
                 sgpa_cgpa: List[SGPACGPARecord], student_info: Optional[StudentInfo] = None):
        self.attendance = attendance
        self.exam_marks = exam_marks
        self.sgpa_cgpa = sgpa_cgpa
        self.student_info = student_info or StudentInfo()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attendance": [subject.to_dict() for subject in self.attendance],
            "examMarks": [mark.to_dict() for mark in self.exam_marks],
            "sgpaCgpa": [record.to_dict() for record in self.sgpa_cgpa],
            "studentInfo": self.student_info.to_dict(),
        }
