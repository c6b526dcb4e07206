from .requests import PushKeys, PushSendRequest, PushSubscribeRequest, PushUnsubscribeRequest
from .responses import PushSendResponse, VapidKeyResponse
