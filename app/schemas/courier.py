from pydantic import BaseModel


class CourierCheckRequest(BaseModel):
    phone: str = ""
