from typing import Any
from fastapi import Response

from school_backend.interface.results import ActionResult


def unwrap_result(result: ActionResult, response: Response) -> Any:
    """Raise for failed results; carry status code and total count onto ``response``"""
    data = result.unwrap()
    response.status_code = result.http_status
    if result.total is not None:
        response.headers["X-Total-Count"] = str(result.total)
    return data
