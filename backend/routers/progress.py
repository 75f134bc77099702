"""Progress router — watchlist, watch history, resume positions and preferences."""

from fastapi import APIRouter, Depends

from database import get_store
from models import (
    HistoryItem, HistoryRequest, Preferences, ResumePosition, ResumeRequest,
    WatchlistItem, WatchlistRequest,
)
from services.progress import ProgressStore

router = APIRouter(tags=["progress"])


# ── Watchlist ───────────────────────────────────────────────────

@router.get("/watchlist", response_model=list[WatchlistItem])
async def get_watchlist(store: ProgressStore = Depends(get_store)):
    return await store.get_watchlist()


@router.post("/watchlist", response_model=list[WatchlistItem])
async def add_to_watchlist(item: WatchlistRequest, store: ProgressStore = Depends(get_store)):
    await store.add_to_watchlist(item)
    return await store.get_watchlist()


@router.get("/watchlist/{item_id}")
async def is_in_watchlist(item_id: str, store: ProgressStore = Depends(get_store)):
    return {"id": item_id, "in_watchlist": await store.is_in_watchlist(item_id)}


@router.delete("/watchlist/{item_id}")
async def remove_from_watchlist(item_id: str, store: ProgressStore = Depends(get_store)):
    await store.remove_from_watchlist(item_id)
    return {"deleted": item_id}


# ── History ─────────────────────────────────────────────────────

@router.get("/history", response_model=list[HistoryItem])
async def get_history(store: ProgressStore = Depends(get_store)):
    return await store.get_history()


@router.post("/history", response_model=list[HistoryItem])
async def add_to_history(item: HistoryRequest, store: ProgressStore = Depends(get_store)):
    await store.add_to_history(item)
    return await store.get_history()


# ── Resume positions ────────────────────────────────────────────

@router.get("/resume/{video_id}", response_model=ResumePosition)
async def get_resume_position(video_id: str, store: ProgressStore = Depends(get_store)):
    return ResumePosition(id=video_id, position=await store.get_resume_position(video_id))


@router.put("/resume/{video_id}", response_model=ResumePosition)
async def save_resume_position(
    video_id: str, body: ResumeRequest, store: ProgressStore = Depends(get_store),
):
    await store.save_resume_position(video_id, body.position)
    return ResumePosition(id=video_id, position=body.position)


# ── Preferences ─────────────────────────────────────────────────

@router.get("/preferences", response_model=Preferences)
async def get_preferences(store: ProgressStore = Depends(get_store)):
    return await store.get_preferences()


@router.put("/preferences", response_model=Preferences)
async def save_preferences(prefs: Preferences, store: ProgressStore = Depends(get_store)):
    await store.save_preferences(prefs)
    return prefs
