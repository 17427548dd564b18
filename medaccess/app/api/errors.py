# medaccess/app/api/errors.py
"""Turn failed service Results into HTTP errors."""
import logging
from typing import Any, Mapping, NoReturn, Optional

from fastapi import HTTPException, status

from medaccess.app.core import result as r

logger = logging.getLogger(__name__)

# Applied to every endpoint, overridable per call
DEFAULT_STATUS = {
    r.STORAGE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_for_result(result: r.Result[Any], status_map: Optional[Mapping[str, int]] = None) -> NoReturn:
    """
    Raise an HTTPException for a failed ``result``.

    ``detail`` carries ``{type, message}``. Kinds missing from the map
    become 500.
    """
    mapping = {**DEFAULT_STATUS, **(status_map or {})}
    code = mapping.get(result.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if code >= 500:
        logger.error("Request failed with %s: %s", result.kind, result.message)
    raise HTTPException(status_code=code, detail=result.to_error())


def http_error(code: int, message: str) -> HTTPException:
    return HTTPException(status_code=code, detail={"message": message})
