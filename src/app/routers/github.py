# src/app/routers/github.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from src.app.deps import get_commit_info_service, rate_limited
from src.app.services.commit_info import CommitInfoService

router = APIRouter(prefix="/api/github", tags=["github"])


@router.get("/last-commit", dependencies=[Depends(rate_limited("github"))])
async def last_commit(
    owner: Optional[str] = Query(None),
    repo: Optional[str] = Query(None),
    branch: Optional[str] = Query(None),
    service: CommitInfoService = Depends(get_commit_info_service),
) -> JSONResponse:
    result = await run_in_threadpool(service.last_commit, owner, repo, branch)
    return JSONResponse(result.body, status_code=result.status_code, headers=result.headers)
