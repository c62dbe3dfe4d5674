"""Response envelope helpers.

Every JSON response is ``{"status": {"code", "message"}, "data"}``; pages add
``"paging"``. The HTTP status always equals ``status.code``.
"""
from typing import Any, Iterable, Optional

from fastapi import status as http_status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from crowdfund.core.pagination import Paging


def _encode(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    return jsonable_encoder(data)


def single_response(
    data: Any, message: str, status_code: int = http_status.HTTP_200_OK
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": {"code": status_code, "message": message},
            "data": _encode(data),
        },
    )


def many_response(
    data: Iterable[Any], paging: Optional[Paging], message: str
) -> JSONResponse:
    """
    Envelope for a collection.

    Unpaged collections (e.g. a campaign's transactions) report a single page
    holding every row.
    """
    items = [_encode(item) for item in data]
    if paging is None:
        paging = Paging.build(1, len(items), len(items))
    return JSONResponse(
        status_code=http_status.HTTP_200_OK,
        content={
            "status": {"code": http_status.HTTP_200_OK, "message": message},
            "data": items,
            "paging": paging.to_dict(),
        },
    )


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": {"code": status_code, "message": message},
            "data": None,
        },
    )
