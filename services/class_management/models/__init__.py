from .classes import SchoolClass
from .students import Student
from .teachers import Teacher
from .users import SchoolUser, SchoolUserRole
