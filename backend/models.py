"""Pydantic models shared across the application."""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


# ── Remote storage models ───────────────────────────────────────

class VideoMediaMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    width: Optional[int] = None
    height: Optional[int] = None
    duration_millis: Optional[int] = Field(None, alias="durationMillis")


class RemoteEntry(BaseModel):
    """Snapshot of one Drive file or folder as returned by a listing call."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    mime_type: str = Field("", alias="mimeType")
    size: Optional[int] = None  # Drive sends this as a string
    created_time: Optional[datetime] = Field(None, alias="createdTime")
    modified_time: Optional[datetime] = Field(None, alias="modifiedTime")
    parents: list[str] = []
    thumbnail_link: Optional[str] = Field(None, alias="thumbnailLink")
    video_media_metadata: Optional[VideoMediaMetadata] = Field(None, alias="videoMediaMetadata")

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE

    @property
    def kind(self) -> str:
        return "folder" if self.is_folder else "file"

    @property
    def duration_seconds(self) -> Optional[float]:
        meta = self.video_media_metadata
        if meta is None or meta.duration_millis is None:
            return None
        return meta.duration_millis / 1000


class ParsedName(BaseModel):
    """Structured metadata recovered from a raw filename."""
    title: str
    year: Optional[str] = None
    season: Optional[int] = None
    episode: Optional[int] = None
    quality: Optional[str] = None
    genre: Optional[str] = None


# ── Catalog models ──────────────────────────────────────────────

class SubtitleTrack(BaseModel):
    src: str
    src_lang: str = "en"
    label: str = "EN"
    default: bool = False


class CatalogMovie(BaseModel):
    kind: Literal["movie"] = "movie"
    id: str
    title: str
    year: Optional[str] = None
    genre: Optional[str] = None
    quality: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[float] = None  # seconds
    file_size: Optional[int] = None  # bytes
    subtitles: list[SubtitleTrack] = []


class Episode(BaseModel):
    kind: Literal["episode"] = "episode"
    id: str
    title: str
    season: int = Field(ge=1)
    episode: int = Field(ge=1)
    series_title: str = ""
    duration: Optional[float] = None
    thumbnail: Optional[str] = None
    subtitles: list[SubtitleTrack] = []


Video = Annotated[Union[CatalogMovie, Episode], Field(discriminator="kind")]


class SeriesEntry(BaseModel):
    title: str
    seasons: dict[str, list[Episode]] = {}


class Catalog(BaseModel):
    movies: list[CatalogMovie] = []
    series: dict[str, SeriesEntry] = {}
    total_files: int = 0
    last_scanned: datetime


class FolderScan(BaseModel):
    """Classified contents of one top-level folder (or loose root files)."""
    name: str
    movies: list[CatalogMovie] = []
    seasons: Optional[dict[str, list[Episode]]] = None  # set only for series folders


class Chapter(BaseModel):
    time: float
    title: str
    thumbnail: Optional[str] = None


class VideoDetails(BaseModel):
    """Everything the player needs to start a session for one video."""
    video: Video
    stream_url: str
    chapters: list[Chapter] = []
    intro_start: Optional[float] = None
    intro_end: Optional[float] = None
    outro_start: Optional[float] = None


class SearchResult(BaseModel):
    id: str
    title: str
    type: Literal["movie", "series"]
    year: Optional[str] = None
    genre: Optional[str] = None
    thumbnail: Optional[str] = None


class FolderRef(BaseModel):
    id: str
    name: str


class BrowseVideo(BaseModel):
    id: str
    name: str
    title: str
    year: Optional[str] = None
    season: Optional[int] = None
    episode: Optional[int] = None
    size: Optional[int] = None
    subtitles: list[SubtitleTrack] = []
    created_time: Optional[datetime] = None
    modified_time: Optional[datetime] = None


class BrowseListing(BaseModel):
    folder_id: str
    folders: list[FolderRef] = []
    videos: list[BrowseVideo] = []


class StreamLocator(BaseModel):
    url: str
    file_id: str


# ── Device-local state models ───────────────────────────────────

ContentType = Literal["movie", "series"]


class WatchlistRequest(BaseModel):
    id: str
    title: str
    type: ContentType
    thumbnail: Optional[str] = None


class WatchlistItem(WatchlistRequest):
    added_at: datetime


class HistoryRequest(BaseModel):
    id: str
    title: str
    type: ContentType
    thumbnail: Optional[str] = None
    position: float = Field(0.0, ge=0)  # seconds watched
    duration: Optional[float] = None


class HistoryItem(HistoryRequest):
    watched_at: datetime


class ResumeRequest(BaseModel):
    position: float = Field(ge=0)


class ResumePosition(ResumeRequest):
    id: str


class Preferences(BaseModel):
    theme: Literal["dark", "light"] = "dark"
    autoplay: bool = True
    subtitles_enabled: bool = True
    volume: float = Field(0.8, ge=0.0, le=1.0)

