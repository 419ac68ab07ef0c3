"""Domain models for the roster importer."""

from .course import CourseRecord, CourseSummary, ParsedCourse
from .error_record import ErrorRecord
from .offday import ExpandedOffDayRecord, IngestionSummary, OffDayEntry, ParsedOffDayRequest
from .processing_result import FileStat, RunResult, UploadResult
from .sheet import Sheet

__all__ = [
    # Spreadsheet
    "Sheet",
    # Off-days
    "ParsedOffDayRequest",
    "ExpandedOffDayRecord",
    "OffDayEntry",
    "IngestionSummary",
    # Courses
    "ParsedCourse",
    "CourseRecord",
    "CourseSummary",
    # Results
    "UploadResult",
    "FileStat",
    "RunResult",
    "ErrorRecord",
]
