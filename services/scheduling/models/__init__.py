from .holidays import SchoolHoliday
from .rotations import TeacherRotation, Period
