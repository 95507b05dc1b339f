"""
Users routes.

List endpoint supports filtering (``role=admin``, ``age[gte]=18``),
sorting (``sort=-createdAt,name``), field selection (``fields=name,email``)
and pagination (``page=2&limit=10``).
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from query_api.config import Settings
from query_api.core.interfaces import IUserStore
from query_api.core.models import QueryResult
from query_api.errors import AppError
from query_api.query.features import APIFeatures
from query_api.query.query_string import parse_query_string

router = APIRouter(tags=["users"])


def get_user_store(request: Request) -> IUserStore:
    """Store attached to the app at startup; overridden in tests."""
    return request.app.state.user_store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _request_query(request: Request) -> Dict[str, Any]:
    query = getattr(request.state, "query", None)
    if query is None:
        query = parse_query_string(request.query_params.multi_items())
    return query


@router.get("")
@router.get("/", include_in_schema=False)
def get_all_users(
    request: Request,
    store: IUserStore = Depends(get_user_store),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    features = (
        APIFeatures(None, _request_query(request), settings.features_config)
        .filter()
        .sort()
        .limit_fields()
        .paginate()
    )
    users = store.find(features.spec)

    return QueryResult(
        requested_at=getattr(request.state, "request_time", None),
        results=len(users),
        data={"users": users},
    ).model_dump(by_alias=True)


@router.get("/{user_id}")
def get_user(user_id: str, store: IUserStore = Depends(get_user_store)) -> Dict[str, Any]:
    user = store.get(user_id)
    if user is None:
        raise AppError("No user found with that ID", 404)
    return {"status": "success", "data": {"user": user}}
