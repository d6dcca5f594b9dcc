from typing import Optional

from pydantic import BaseModel


class OperationResult(BaseModel):
    """Единый результат операции: {success, message}"""

    success: bool
    message: Optional[str] = None

    class Config:
        frozen = True

    @classmethod
    def ok(cls, message: Optional[str] = None) -> "OperationResult":
        return cls(success=True, message=message)

    @classmethod
    def failure(cls, message: str) -> "OperationResult":
        return cls(success=False, message=message)
