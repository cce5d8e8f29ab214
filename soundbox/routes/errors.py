from fastapi import HTTPException

from ..errors import SoundboxError


def http_error(error: SoundboxError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)
