from .requests import LoginRequest, RegisterRequest
from .responses import TenantLookupResponse, TokenResponse, UserResponse
