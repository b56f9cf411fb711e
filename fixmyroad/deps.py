from fastapi import Request

from fixmyroad.errors import ApiError
from fixmyroad.store import ReportStore
from fixmyroad.uploads import UploadStorage


def get_store(request: Request) -> ReportStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise ApiError("database_not_connected")
    return store


def get_uploads(request: Request) -> UploadStorage:
    return request.app.state.uploads
