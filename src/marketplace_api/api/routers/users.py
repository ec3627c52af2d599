from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_api.api.deps import db_session, query_options
from marketplace_api.auth.deps import require_roles
from marketplace_api.db.repositories.users import UserRepo
from marketplace_api.errors import NotFound
from marketplace_api.query.features import QueryFeatures, QueryOptions
from marketplace_api.query.sql import project

router = APIRouter(
    prefix="/api/users", tags=["users"], dependencies=[Depends(require_roles("admin"))]
)


@router.get("")
async def list_users(
    request: Request,
    options: QueryOptions = Depends(query_options),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    spec = (
        QueryFeatures(request.query_params, options=options)
        .filter()
        .sort()
        .limit_fields()
        .paginate()
        .spec
    )
    users = await UserRepo(session).find_many(spec, strict=options.strict)
    return {
        "status": "success",
        "results": len(users),
        "data": {"users": [project(u, spec, columns=UserRepo.columns) for u in users]},
    }


@router.get("/{user_id}")
async def get_user(
    user_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> dict[str, Any]:
    user = await UserRepo(session).find_by_id(user_id)
    if user is None:
        raise NotFound("user_not_found")
    view = QueryFeatures({}).limit_fields().spec
    return {"status": "success", "data": {"user": project(user, view, columns=UserRepo.columns)}}
