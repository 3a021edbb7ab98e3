from hrms.models.academics import ClassSection, Subject  # noqa: F401
from hrms.models.activity_log import ActivityLog, ScheduleAction  # noqa: F401
from hrms.models.faculty import EmploymentStatus, EmploymentType, Faculty  # noqa: F401
from hrms.models.leave_request import LeaveRequest, LeaveStatus, LeaveType  # noqa: F401
from hrms.models.schedule import DAY_VALUES, ScheduleEntry, Weekday  # noqa: F401
from hrms.models.user import User, UserStatus  # noqa: F401
