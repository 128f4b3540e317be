from models.timeslot import TimeBlock
from models.availability import Availability, ValidationWarning, parse_availability
from models.course import CourseRecord, DepartmentShare, HardcodedPlacement, Session
from models.classroom import ClassroomRecord
from models.teacher import TeacherRecord
from models.schedule import ScheduleEntry
from models.dataset import SchedulingDataset, FeasibilityReport

__all__ = [
    "TimeBlock",
    "Availability",
    "ValidationWarning",
    "parse_availability",
    "CourseRecord",
    "DepartmentShare",
    "HardcodedPlacement",
    "Session",
    "ClassroomRecord",
    "TeacherRecord",
    "ScheduleEntry",
    "SchedulingDataset",
    "FeasibilityReport",
]
