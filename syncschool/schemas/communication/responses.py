from syncschool.schemas.common import APIModel


class VapidKeyResponse(APIModel):
    public_key: str


class PushSendResponse(APIModel):
    sent: int
    failed: int
    removed: int
