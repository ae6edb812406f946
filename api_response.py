"""Response envelope helpers.

Every response, success or error, has the shape
``{status, code, message, data|errors, metadata?}``.
"""

from typing import Any, Optional

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"

MSG_CREATED = "Registro criado com sucesso"
MSG_VALIDATION_ERROR = "Erro de validação"
MSG_INTERNAL_ERROR = "Erro interno do servidor"


def success_response(code: int, message: str, data: Any = None, metadata: Optional[dict] = None) -> dict:
    """Build a success envelope. ``data`` is omitted only when it is None."""
    response = {
        "status": STATUS_SUCCESS,
        "code": code,
        "message": message,
    }
    if data is not None:
        response["data"] = data
    if metadata is not None:
        response["metadata"] = metadata
    return response


def error_response(code: int, message: str, errors: Any = None) -> dict:
    response = {
        "status": STATUS_ERROR,
        "code": code,
        "message": message,
    }
    if errors is not None:
        response["errors"] = errors
    return response
