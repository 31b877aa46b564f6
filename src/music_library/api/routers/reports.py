"""
music_library.api.routers.reports

Reporting endpoints backed by the reporting connection.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from music_library.api.deps import report_repo
from music_library.db.repositories.reports import ReportRepo

router = APIRouter(prefix="/v1/reports", tags=["reports"])


class TrackCountResponse(BaseModel):
    total_tracks: int


class AlbumReportResponse(BaseModel):
    id: int
    title: str
    artist: str
    track_count: int
    avg_duration: float


@router.get("/track-count", response_model=TrackCountResponse)
async def track_count(repo: ReportRepo = Depends(report_repo)) -> TrackCountResponse:
    return TrackCountResponse(total_tracks=await repo.total_track_count())


@router.get("/top-albums", response_model=list[AlbumReportResponse])
async def top_albums(
    limit: int = Query(default=10, ge=1, le=100),
    repo: ReportRepo = Depends(report_repo),
) -> list[AlbumReportResponse]:
    rows = await repo.top_albums(limit)
    return [AlbumReportResponse.model_validate(r, from_attributes=True) for r in rows]
