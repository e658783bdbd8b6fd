from typing import Any


def api_response(data: Any, message: str = "Success", status_code: int = 200) -> dict:
    return {
        "statusCode": status_code,
        "data": data,
        "message": message,
        "success": status_code < 400,
    }
