from .requests import AttendanceCreate, AttendanceRecordIn
from .responses import AttendanceResponse
