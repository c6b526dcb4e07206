from .requests import SchoolCreate, SchoolStatusUpdate
from .responses import SchoolResponse
