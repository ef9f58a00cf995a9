from pydantic import BaseModel
from typing import Optional, Generic, TypeVar, List, Union

T = TypeVar("T")

class BaseResponse(BaseModel, Generic[T]):
    success: bool
    message: str
    data: Optional[T] = None
    errors: Optional[Union[str, List[str], dict]] = None


def error_payload(message: str, errors=None) -> dict:
    return BaseResponse(success=False, message=message, errors=errors if errors is not None else message).model_dump()
